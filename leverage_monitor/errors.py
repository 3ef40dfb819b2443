"""Error taxonomy for the leverage position monitor."""
from __future__ import annotations


class MonitorError(Exception):
    """Base class for all monitor errors."""


class InvalidInput(MonitorError, ValueError):
    """Malformed calculator arguments — a caller bug, never retried."""


class DegenerateState(MonitorError):
    """Position state that cannot be turned into a snapshot (e.g. zero collateral)."""


class SourceUnavailable(MonitorError):
    """The position source could not answer (network or protocol failure)."""
