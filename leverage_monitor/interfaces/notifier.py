"""Notifier protocol — notification channel abstraction."""
from typing import Protocol

from ..models import Alert


class Notifier(Protocol):
    """Abstract interface for delivering alerts and reports."""

    async def notify(self, alert: Alert) -> bool: ...

    async def send_report(self, report: str) -> bool: ...
