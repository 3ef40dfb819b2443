"""Shared test fixtures and sample data."""
from __future__ import annotations

import textwrap
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Awaitable, Callable
from unittest.mock import AsyncMock

import pytest

from leverage_monitor.config import (
    AppConfig,
    ChainConfig,
    EmailConfig,
    EmergencyConfig,
    MonitorConfig,
    NotificationsConfig,
    PositionConfig,
    PriceOracleConfig,
    ProtocolConfig,
    PythConfig,
    TelegramConfig,
)
from leverage_monitor.models import PositionSnapshot, PositionState, RepayResult

WALLET = "0x1111111111111111111111111111111111111111"
POOL = "0x2222222222222222222222222222222222222222"


# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------


class FakeClock:
    """Deterministic clock advancing a fixed step per call."""

    def __init__(
        self,
        start: datetime = datetime(2025, 1, 1, tzinfo=timezone.utc),
        step: timedelta = timedelta(minutes=15),
    ) -> None:
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        now = self.current
        self.current += self.step
        return now


class ManualHandle:
    def __init__(self) -> None:
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    async def wait(self) -> None:
        return None


class ManualScheduler:
    """Scheduler that only runs the callback when a test calls ``tick()``."""

    def __init__(self) -> None:
        self.interval: float | None = None
        self.callback: Callable[[], Awaitable[None]] | None = None
        self.handle: ManualHandle | None = None
        self.schedule_calls = 0

    def schedule(
        self, interval_seconds: float, callback: Callable[[], Awaitable[None]]
    ) -> ManualHandle:
        self.schedule_calls += 1
        self.interval = interval_seconds
        self.callback = callback
        self.handle = ManualHandle()
        return self.handle

    async def tick(self) -> None:
        assert self.callback is not None and self.handle is not None
        if not self.handle.cancelled:
            await self.callback()


def make_source(
    collateral: float = 174.2968,
    debt: float = 98.1291,
    price: float = 0.45,
    balance: float = 1000.0,
) -> AsyncMock:
    source = AsyncMock()
    source.get_position.return_value = PositionState(collateral=collateral, debt=debt)
    source.get_price.return_value = price
    source.get_balance.return_value = balance
    source.repay.return_value = RepayResult(success=True, tx_ref="0xtx")
    return source


def make_snapshot(
    collateral: float = 150.0,
    debt: float = 100.0,
    price: float = 0.45,
    health_factor: float | None = None,
    timestamp: datetime = datetime(2025, 1, 1, tzinfo=timezone.utc),
    liquidation_threshold: float = 0.8,
) -> PositionSnapshot:
    if health_factor is None:
        health_factor = (collateral * liquidation_threshold) / debt if debt else float("inf")
    return PositionSnapshot(
        timestamp=timestamp,
        collateral=collateral,
        debt=debt,
        health_factor=health_factor,
        loan_to_value=min(debt / collateral, 1.0),
        asset_price=price,
        liquidation_price=debt / (collateral * liquidation_threshold),
        net_pnl=0.0,
    )


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_protocol_config() -> ProtocolConfig:
    return ProtocolConfig(
        name="yei",
        pool_address=POOL,
        ltv=0.75,
        liquidation_threshold=0.80,
        supply_apy=0.08,
        borrow_apy=0.12,
    )


@pytest.fixture()
def sample_pyth_config() -> PythConfig:
    return PythConfig(
        hermes_url="https://hermes.pyth.network/v2/updates/price/latest",
        feeds={"SEI": "abc123"},
    )


@pytest.fixture()
def sample_app_config(
    sample_protocol_config: ProtocolConfig, sample_pyth_config: PythConfig
) -> AppConfig:
    return AppConfig(
        monitor=MonitorConfig(check_interval_minutes=15, snapshot_capacity=100, alert_capacity=50),
        position=PositionConfig(
            label="test-wallet", address=WALLET, asset="SEI", entry_price=0.45
        ),
        emergency=EmergencyConfig(auto_execute=False, repay_fraction=0.25, gas_reserve=1.0),
        chain=ChainConfig(
            rpc_endpoints=("https://rpc1.example.com", "https://rpc2.example.com"),
            rpc_timeout=10,
        ),
        protocol=sample_protocol_config,
        price_oracle=PriceOracleConfig(provider="pyth", pyth=sample_pyth_config),
        notifications=NotificationsConfig(
            telegram=TelegramConfig(
                enabled=True,
                alert_bot_token="fake-alert-token",
                log_bot_token="fake-log-token",
                chat_id="12345",
            ),
            email=EmailConfig(enabled=False),
        ),
    )


@pytest.fixture()
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def manual_scheduler() -> ManualScheduler:
    return ManualScheduler()


# ---------------------------------------------------------------------------
# Config YAML fixture
# ---------------------------------------------------------------------------

SAMPLE_YAML = textwrap.dedent("""\
    monitor:
      check_interval_minutes: 5
      snapshot_capacity: 20
      alert_capacity: 10
    position:
      label: test-wallet
      address: "0xTEST"
      asset: SEI
      entry_price: 0.5
    emergency:
      auto_execute: false
      repay_fraction: 0.25
      gas_reserve: 2.0
    chain:
      rpc_endpoints: ["https://rpc.example.com"]
      rpc_timeout: 10
    protocol:
      name: yei
      pool_address: "0xPOOL"
      ltv: 0.75
      liquidation_threshold: 0.8
    price_oracle:
      provider: pyth
      pyth:
        hermes_url: "https://hermes.example.com"
        feeds: {SEI: "aaa"}
    notifications:
      telegram:
        enabled: true
        alert_bot_token: "tok1"
        log_bot_token: "tok2"
        chat_id: "999"
      email:
        enabled: false
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file


# ---------------------------------------------------------------------------
# Factory fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def source_factory() -> Callable[..., AsyncMock]:
    return make_source


@pytest.fixture()
def snapshot_factory() -> Callable[..., PositionSnapshot]:
    return make_snapshot
