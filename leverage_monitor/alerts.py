"""Alert management — leveled alerts in a bounded history."""
from __future__ import annotations

import logging
from collections import deque
from threading import Lock

from .collector import Clock, utc_now
from .models import Alert, AlertLevel, RiskAssessment

logger = logging.getLogger(__name__)

DEFAULT_ALERT_CAPACITY = 50

_LOG_LEVELS = {
    AlertLevel.INFO: logging.INFO,
    AlertLevel.WARNING: logging.WARNING,
    AlertLevel.CRITICAL: logging.CRITICAL,
}


class AlertManager:
    """Turns risk findings into alerts.

    There is no deduplication: a condition that holds for several cycles
    produces one alert per cycle.
    """

    def __init__(
        self, capacity: int = DEFAULT_ALERT_CAPACITY, clock: Clock = utc_now
    ) -> None:
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self._alerts: deque[Alert] = deque(maxlen=capacity)
        self._capacity = capacity
        self._clock = clock
        self._lock = Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def record(
        self, level: AlertLevel, message: str, action_required: bool = False
    ) -> Alert:
        alert = Alert(
            level=level,
            message=message,
            timestamp=self._clock(),
            action_required=action_required,
        )
        with self._lock:
            self._alerts.append(alert)

        logger.log(_LOG_LEVELS[level], "%s: %s", level.value, message)
        if action_required:
            logger.warning("ACTION REQUIRED - Review position immediately")
        return alert

    def process(self, assessment: RiskAssessment) -> list[Alert]:
        """Record one alert per finding, in finding order."""
        return [
            self.record(f.level, f.message, action_required=f.action_required)
            for f in assessment.findings
        ]

    def record_failure(self, error: BaseException) -> Alert:
        return self.record(
            AlertLevel.CRITICAL, f"Health check failed: {error}", action_required=True
        )

    def recent(self, n: int = 10) -> list[Alert]:
        if n <= 0:
            return []
        with self._lock:
            return list(self._alerts)[-n:]

    def history(self) -> list[Alert]:
        with self._lock:
            return list(self._alerts)

    def pending_actions(self) -> list[Alert]:
        with self._lock:
            return [a for a in self._alerts if a.action_required]

    def __len__(self) -> int:
        with self._lock:
            return len(self._alerts)
