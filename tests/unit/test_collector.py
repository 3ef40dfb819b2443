"""Unit tests for the snapshot history and collector."""
from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from typing import Callable
from unittest.mock import AsyncMock

import pytest

from leverage_monitor.collector import PositionSnapshotCollector, SnapshotHistory
from leverage_monitor.errors import DegenerateState, SourceUnavailable
from leverage_monitor.models import PositionSnapshot, PositionState

T0 = datetime(2025, 1, 1, tzinfo=timezone.utc)

SnapshotFactory = Callable[..., PositionSnapshot]


def _collector(source: AsyncMock, clock, capacity: int = 100) -> PositionSnapshotCollector:
    return PositionSnapshotCollector(
        source=source,
        address="0xabc",
        history=SnapshotHistory(capacity),
        liquidation_threshold=0.8,
        entry_price=0.45,
        borrow_apy=0.12,
        clock=clock,
    )


class TestSnapshotHistory:
    def test_evicts_oldest_at_capacity(self, snapshot_factory: SnapshotFactory) -> None:
        history = SnapshotHistory(capacity=100)
        for i in range(101):
            history.append(snapshot_factory(timestamp=T0 + timedelta(minutes=i)))

        assert len(history) == 100
        assert history.snapshots()[0].timestamp == T0 + timedelta(minutes=1)
        assert history.latest().timestamp == T0 + timedelta(minutes=100)

    def test_tail_returns_newest_in_order(self, snapshot_factory: SnapshotFactory) -> None:
        history = SnapshotHistory(capacity=10)
        for i in range(5):
            history.append(snapshot_factory(timestamp=T0 + timedelta(minutes=i)))

        tail = history.tail(2)
        assert [s.timestamp for s in tail] == [
            T0 + timedelta(minutes=3),
            T0 + timedelta(minutes=4),
        ]
        assert history.tail(0) == []

    def test_drops_older_timestamp(self, snapshot_factory: SnapshotFactory) -> None:
        history = SnapshotHistory(capacity=10)
        assert history.append(snapshot_factory(timestamp=T0 + timedelta(minutes=5)))
        assert not history.append(snapshot_factory(timestamp=T0))
        assert len(history) == 1

    def test_empty_history(self) -> None:
        history = SnapshotHistory(capacity=3)
        assert history.latest() is None
        assert history.snapshots() == []
        assert len(history) == 0

    def test_rejects_non_positive_capacity(self) -> None:
        with pytest.raises(ValueError):
            SnapshotHistory(capacity=0)


class TestPositionSnapshotCollector:
    @pytest.mark.asyncio
    async def test_collect_reference_position(self, source_factory, fake_clock) -> None:
        source = source_factory(collateral=174.2968, debt=98.1291, price=0.45)
        collector = _collector(source, fake_clock)

        snap = await collector.collect()

        assert snap.health_factor == pytest.approx(1.420, abs=1e-3)
        assert snap.loan_to_value == pytest.approx(98.1291 / 174.2968)
        assert snap.liquidation_price == pytest.approx(98.1291 / (174.2968 * 0.8))
        assert snap.asset_price == 0.45
        assert snap.timestamp == T0
        assert collector.history.latest() is snap
        source.get_position.assert_awaited_once_with("0xabc")

    @pytest.mark.asyncio
    async def test_net_pnl(self, source_factory, fake_clock) -> None:
        source = source_factory(collateral=100.0, debt=50.0, price=0.55)
        snap = await _collector(source, fake_clock).collect()

        expected = 100 * 0.55 - 100 * 0.45 - 50 * 0.55 * 0.12 / 365
        assert snap.net_pnl == pytest.approx(expected)

    @pytest.mark.asyncio
    async def test_zero_debt_is_infinitely_healthy(self, source_factory, fake_clock) -> None:
        snap = await _collector(source_factory(debt=0.0), fake_clock).collect()
        assert math.isinf(snap.health_factor)
        assert snap.loan_to_value == 0.0
        assert snap.liquidation_price == 0.0

    @pytest.mark.asyncio
    async def test_zero_collateral_is_degenerate(self, source_factory, fake_clock) -> None:
        collector = _collector(source_factory(collateral=0.0, debt=10.0), fake_clock)
        with pytest.raises(DegenerateState):
            await collector.collect()
        assert len(collector.history) == 0

    @pytest.mark.asyncio
    async def test_negative_debt_is_degenerate(self, source_factory, fake_clock) -> None:
        collector = _collector(source_factory(debt=-1.0), fake_clock)
        with pytest.raises(DegenerateState):
            await collector.collect()

    @pytest.mark.asyncio
    async def test_ltv_clamped_when_debt_exceeds_collateral(
        self, source_factory, fake_clock
    ) -> None:
        snap = await _collector(source_factory(collateral=10.0, debt=12.0), fake_clock).collect()
        assert snap.loan_to_value == 1.0
        assert snap.health_factor == pytest.approx(8.0 / 12.0)

    @pytest.mark.asyncio
    async def test_source_failure_records_nothing(self, source_factory, fake_clock) -> None:
        source = source_factory()
        source.get_position.side_effect = SourceUnavailable("rpc down")
        collector = _collector(source, fake_clock)

        with pytest.raises(SourceUnavailable):
            await collector.collect()
        assert len(collector.history) == 0

    @pytest.mark.asyncio
    async def test_unexpected_source_error_is_wrapped(self, source_factory, fake_clock) -> None:
        source = source_factory()
        source.get_position.side_effect = RuntimeError("boom")

        with pytest.raises(SourceUnavailable, match="boom"):
            await _collector(source, fake_clock).collect()

    @pytest.mark.asyncio
    async def test_price_falls_back_to_last_known(self, source_factory, fake_clock) -> None:
        source = source_factory(price=0.50)
        collector = _collector(source, fake_clock)
        await collector.collect()

        source.get_price.side_effect = SourceUnavailable("oracle down")
        snap = await collector.collect()

        assert snap.asset_price == 0.50
        assert len(collector.history) == 2

    @pytest.mark.asyncio
    async def test_price_failure_without_fallback_raises(self, source_factory, fake_clock) -> None:
        source = source_factory()
        source.get_price.side_effect = SourceUnavailable("oracle down")
        collector = _collector(source, fake_clock)

        with pytest.raises(SourceUnavailable):
            await collector.collect()
        assert len(collector.history) == 0

    def test_build_snapshot_uses_clock(self, source_factory) -> None:
        stamp = datetime(2025, 6, 1, tzinfo=timezone.utc)
        collector = _collector(source_factory(), lambda: stamp)
        snap = collector.build_snapshot(PositionState(collateral=150.0, debt=100.0), 1.0)
        assert snap.timestamp == stamp
        assert snap.health_factor == pytest.approx(1.2)

    @pytest.mark.asyncio
    async def test_backward_clock_is_degenerate(self, source_factory) -> None:
        stamps = iter([T0 + timedelta(hours=1), T0])
        source = source_factory(price=0.45)
        collector = _collector(source, lambda: next(stamps))
        await collector.collect()

        source.get_price.return_value = 0.60
        with pytest.raises(DegenerateState, match="older than the latest"):
            await collector.collect()

        assert len(collector.history) == 1
        assert collector.history.latest().asset_price == 0.45

    @pytest.mark.asyncio
    async def test_price_fetched_before_position(self, source_factory, fake_clock) -> None:
        calls: list[str] = []
        source = source_factory()

        def price() -> float:
            calls.append("price")
            return 0.45

        def position(address: str) -> PositionState:
            calls.append("position")
            return PositionState(collateral=150.0, debt=100.0)

        source.get_price.side_effect = price
        source.get_position.side_effect = position

        await _collector(source, fake_clock).collect()

        assert calls == ["price", "position"]
