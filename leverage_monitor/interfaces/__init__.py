"""Protocol interfaces for the leverage position monitor."""
from .chain import ChainClient
from .notifier import Notifier
from .position_source import PositionSource
from .price_oracle import PriceOracle
from .scheduler import ScheduleHandle, Scheduler

__all__ = [
    "ChainClient",
    "Notifier",
    "PositionSource",
    "PriceOracle",
    "ScheduleHandle",
    "Scheduler",
]
