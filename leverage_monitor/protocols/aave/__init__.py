"""Aave V3 protocol support."""
from .source import AaveV3PositionSource

__all__ = ["AaveV3PositionSource"]
