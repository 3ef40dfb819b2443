"""Configuration loader — reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MonitorConfig:
    check_interval_minutes: int = 15
    snapshot_capacity: int = 100
    alert_capacity: int = 50


@dataclass(frozen=True)
class PositionConfig:
    label: str = ""
    address: str = ""
    asset: str = "SEI"
    entry_price: float = 0.45
    staking_apy: float = 0.08


@dataclass(frozen=True)
class EmergencyConfig:
    auto_execute: bool = False
    repay_fraction: float = 0.25
    gas_reserve: float = 1.0


@dataclass(frozen=True)
class ChainConfig:
    rpc_endpoints: tuple[str, ...] = ()
    rpc_timeout: int = 30


@dataclass(frozen=True)
class ProtocolConfig:
    name: str = "yei"
    pool_address: str = ""
    ltv: float = 0.75
    liquidation_threshold: float = 0.80
    supply_apy: float = 0.08
    borrow_apy: float = 0.12
    base_currency_decimals: int = 8
    native_decimals: int = 18


@dataclass(frozen=True)
class PythConfig:
    hermes_url: str = "https://hermes.pyth.network/v2/updates/price/latest"
    feeds: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class PriceOracleConfig:
    provider: str = "pyth"
    pyth: PythConfig = field(default_factory=PythConfig)


@dataclass(frozen=True)
class TelegramConfig:
    enabled: bool = False
    alert_bot_token: str = ""
    log_bot_token: str = ""
    chat_id: str = ""


@dataclass(frozen=True)
class EmailConfig:
    enabled: bool = False
    alert_email: str = ""
    smtp_server: str = "smtp.gmail.com"
    smtp_port: int = 587
    sender_email: str = ""
    sender_password: str = ""


@dataclass(frozen=True)
class NotificationsConfig:
    telegram: TelegramConfig = field(default_factory=TelegramConfig)
    email: EmailConfig = field(default_factory=EmailConfig)


@dataclass(frozen=True)
class AppConfig:
    monitor: MonitorConfig = field(default_factory=MonitorConfig)
    position: PositionConfig = field(default_factory=PositionConfig)
    emergency: EmergencyConfig = field(default_factory=EmergencyConfig)
    chain: ChainConfig = field(default_factory=ChainConfig)
    protocol: ProtocolConfig = field(default_factory=ProtocolConfig)
    price_oracle: PriceOracleConfig = field(default_factory=PriceOracleConfig)
    notifications: NotificationsConfig = field(default_factory=NotificationsConfig)


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


def _as_bool(value: Any) -> bool:
    # Interpolated env values arrive as strings ("false", "0", "").
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _build_monitor(raw: dict[str, Any]) -> MonitorConfig:
    return MonitorConfig(
        check_interval_minutes=int(raw.get("check_interval_minutes", 15)),
        snapshot_capacity=int(raw.get("snapshot_capacity", 100)),
        alert_capacity=int(raw.get("alert_capacity", 50)),
    )


def _build_position(raw: dict[str, Any]) -> PositionConfig:
    return PositionConfig(
        label=raw.get("label", ""),
        address=raw.get("address", ""),
        asset=raw.get("asset", "SEI"),
        entry_price=float(raw.get("entry_price", 0.45)),
        staking_apy=float(raw.get("staking_apy", 0.08)),
    )


def _build_emergency(raw: dict[str, Any]) -> EmergencyConfig:
    return EmergencyConfig(
        auto_execute=_as_bool(raw.get("auto_execute", False)),
        repay_fraction=float(raw.get("repay_fraction", 0.25)),
        gas_reserve=float(raw.get("gas_reserve", 1.0)),
    )


def _build_chain(raw: dict[str, Any]) -> ChainConfig:
    return ChainConfig(
        # Unset ${VAR} endpoints interpolate to "".
        rpc_endpoints=tuple(e for e in raw.get("rpc_endpoints", []) if e),
        rpc_timeout=int(raw.get("rpc_timeout", 30)),
    )


def _build_protocol(raw: dict[str, Any]) -> ProtocolConfig:
    return ProtocolConfig(
        name=raw.get("name", "yei"),
        pool_address=raw.get("pool_address", ""),
        ltv=float(raw.get("ltv", 0.75)),
        liquidation_threshold=float(raw.get("liquidation_threshold", 0.80)),
        supply_apy=float(raw.get("supply_apy", 0.08)),
        borrow_apy=float(raw.get("borrow_apy", 0.12)),
        base_currency_decimals=int(raw.get("base_currency_decimals", 8)),
        native_decimals=int(raw.get("native_decimals", 18)),
    )


def _build_price_oracle(raw: dict[str, Any]) -> PriceOracleConfig:
    pyth_raw = raw.get("pyth", {})
    return PriceOracleConfig(
        provider=raw.get("provider", "pyth"),
        pyth=PythConfig(
            hermes_url=pyth_raw.get("hermes_url", PythConfig.hermes_url),
            feeds=dict(pyth_raw.get("feeds", {})),
        ),
    )


def _build_notifications(raw: dict[str, Any]) -> NotificationsConfig:
    tg = raw.get("telegram", {})
    em = raw.get("email", {})
    return NotificationsConfig(
        telegram=TelegramConfig(
            enabled=_as_bool(tg.get("enabled", False)),
            alert_bot_token=tg.get("alert_bot_token", ""),
            log_bot_token=tg.get("log_bot_token", ""),
            chat_id=str(tg.get("chat_id", "")),
        ),
        email=EmailConfig(
            enabled=_as_bool(em.get("enabled", False)),
            alert_email=em.get("alert_email", ""),
            smtp_server=em.get("smtp_server", "smtp.gmail.com"),
            smtp_port=int(em.get("smtp_port", 587)),
            sender_email=em.get("sender_email", ""),
            sender_password=em.get("sender_password", ""),
        ),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (one level up from this package).
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    cfg = AppConfig(
        monitor=_build_monitor(raw.get("monitor", {})),
        position=_build_position(raw.get("position", {})),
        emergency=_build_emergency(raw.get("emergency", {})),
        chain=_build_chain(raw.get("chain", {})),
        protocol=_build_protocol(raw.get("protocol", {})),
        price_oracle=_build_price_oracle(raw.get("price_oracle", {})),
        notifications=_build_notifications(raw.get("notifications", {})),
    )

    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def _validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    if not cfg.position.address:
        raise ValueError(f"Position '{cfg.position.label}' has no address")

    if cfg.monitor.check_interval_minutes <= 0:
        raise ValueError("check_interval_minutes must be positive")
    if cfg.monitor.snapshot_capacity <= 0 or cfg.monitor.alert_capacity <= 0:
        raise ValueError("History capacities must be positive")

    if not 0 < cfg.protocol.liquidation_threshold <= 1:
        raise ValueError(
            f"liquidation_threshold must be in (0, 1], got {cfg.protocol.liquidation_threshold}"
        )
    if not 0 < cfg.protocol.ltv <= 1:
        raise ValueError(f"ltv must be in (0, 1], got {cfg.protocol.ltv}")

    if not 0 < cfg.emergency.repay_fraction <= 1:
        raise ValueError(
            f"repay_fraction must be in (0, 1], got {cfg.emergency.repay_fraction}"
        )
    if cfg.emergency.gas_reserve < 0:
        raise ValueError("gas_reserve cannot be negative")

    if not cfg.chain.rpc_endpoints:
        raise ValueError("At least one RPC endpoint must be configured")
