"""Service modules"""
from .factory import build_service
from .monitor import MonitorService, MonitorState

__all__ = ["MonitorService", "MonitorState", "build_service"]
