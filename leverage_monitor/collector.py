"""Snapshot collection — polls the position source into a bounded history."""
from __future__ import annotations

import logging
import math
from collections import deque
from datetime import datetime, timezone
from threading import Lock
from typing import Callable

from .calculator import DAYS_PER_YEAR, compute_liquidation_price
from .errors import DegenerateState, SourceUnavailable
from .interfaces.position_source import PositionSource
from .models import PositionSnapshot, PositionState

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

DEFAULT_SNAPSHOT_CAPACITY = 100


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SnapshotHistory:
    """Bounded append-only buffer of position snapshots (oldest evicted)."""

    def __init__(self, capacity: int = DEFAULT_SNAPSHOT_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self._buffer: deque[PositionSnapshot] = deque(maxlen=capacity)
        self._capacity = capacity
        self._lock = Lock()

    def append(self, snapshot: PositionSnapshot) -> bool:
        """Append a snapshot; drop it if it is older than the newest entry."""
        with self._lock:
            if self._buffer and snapshot.timestamp < self._buffer[-1].timestamp:
                logger.warning(
                    "Non-monotonic timestamp detected: new=%s last=%s — dropping snapshot",
                    snapshot.timestamp,
                    self._buffer[-1].timestamp,
                )
                return False
            self._buffer.append(snapshot)
            return True

    def latest(self) -> PositionSnapshot | None:
        with self._lock:
            return self._buffer[-1] if self._buffer else None

    def tail(self, n: int) -> list[PositionSnapshot]:
        """Return a copy of the last ``n`` snapshots (oldest → newest)."""
        if n <= 0:
            return []
        with self._lock:
            return list(self._buffer)[-n:]

    def snapshots(self) -> list[PositionSnapshot]:
        with self._lock:
            return list(self._buffer)

    def __len__(self) -> int:
        with self._lock:
            return len(self._buffer)

    @property
    def capacity(self) -> int:
        return self._capacity


class PositionSnapshotCollector:
    """Build one PositionSnapshot per poll from a PositionSource."""

    def __init__(
        self,
        source: PositionSource,
        address: str,
        history: SnapshotHistory,
        liquidation_threshold: float,
        entry_price: float,
        borrow_apy: float,
        clock: Clock = utc_now,
    ) -> None:
        self._source = source
        self._address = address
        self._history = history
        self._liquidation_threshold = liquidation_threshold
        self._entry_price = entry_price
        self._borrow_apy = borrow_apy
        self._clock = clock
        self._last_price: float | None = None

    @property
    def history(self) -> SnapshotHistory:
        return self._history

    async def collect(self) -> PositionSnapshot:
        """Poll the source, derive health metrics and record a snapshot.

        Raises:
            SourceUnavailable: the position could not be fetched (or no
                price is available at all). Nothing is recorded.
            DegenerateState: zero or negative amounts, or a clock that went
                backwards. Nothing is recorded.
        """
        # Price first: sources may reuse it to value the position.
        price = await self._fetch_price()
        try:
            position = await self._source.get_position(self._address)
        except SourceUnavailable:
            raise
        except Exception as e:
            raise SourceUnavailable(f"Position query failed: {e}") from e

        snapshot = self.build_snapshot(position, price)

        if not self._history.append(snapshot):
            raise DegenerateState(
                f"Snapshot at {snapshot.timestamp} is older than the latest recorded snapshot"
            )
        self._last_price = price
        logger.info(
            "Snapshot — Collateral: %.4f  Debt: %.4f  HF: %.3f  LTV: %.2f%%  Price: $%.4f",
            snapshot.collateral,
            snapshot.debt,
            snapshot.health_factor,
            snapshot.loan_to_value * 100,
            snapshot.asset_price,
        )
        return snapshot

    async def _fetch_price(self) -> float:
        """Fetch the asset price, falling back to the last known one."""
        try:
            return await self._source.get_price()
        except Exception as e:
            fallback = self._last_known_price()
            if fallback is None:
                if isinstance(e, SourceUnavailable):
                    raise
                raise SourceUnavailable(f"Price query failed: {e}") from e
            logger.warning(
                "Price unavailable (%s); using last known price $%.4f", e, fallback
            )
            return fallback

    def _last_known_price(self) -> float | None:
        if self._last_price is not None:
            return self._last_price
        latest = self._history.latest()
        return latest.asset_price if latest else None

    def build_snapshot(self, position: PositionState, price: float) -> PositionSnapshot:
        """Derive a snapshot from raw amounts — pure apart from the clock."""
        collateral, debt = position.collateral, position.debt

        if collateral <= 0:
            raise DegenerateState(f"Position has no collateral ({collateral})")
        if debt < 0:
            raise DegenerateState(f"Position reports negative debt ({debt})")

        lt = self._liquidation_threshold
        health_factor = (collateral * lt) / debt if debt > 0 else math.inf

        ltv = debt / collateral
        if ltv > 1:
            logger.warning("Debt exceeds collateral (LTV %.2f%%); clamping to 100%%", ltv * 100)
            ltv = 1.0

        net_pnl = (
            collateral * price
            - collateral * self._entry_price
            - debt * price * self._borrow_apy / DAYS_PER_YEAR
        )

        return PositionSnapshot(
            timestamp=self._clock(),
            collateral=collateral,
            debt=debt,
            health_factor=health_factor,
            loan_to_value=ltv,
            asset_price=price,
            liquidation_price=compute_liquidation_price(collateral, debt, lt),
            net_pnl=net_pnl,
        )
