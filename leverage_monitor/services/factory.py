"""Wire a MonitorService from configuration."""
from __future__ import annotations

from ..chains.evm import EvmClient
from ..config import AppConfig
from ..interfaces.notifier import Notifier
from ..notifications import EmailNotifier, TelegramNotifier
from ..oracles import PythOracle
from ..protocols.aave import AaveV3PositionSource
from .monitor import MonitorService


def build_notifiers(config: AppConfig) -> list[Notifier]:
    notifiers: list[Notifier] = []
    if config.notifications.telegram.enabled:
        notifiers.append(TelegramNotifier(config.notifications.telegram))
    if config.notifications.email.enabled:
        notifiers.append(EmailNotifier(config.notifications.email))
    return notifiers


def build_position_source(config: AppConfig) -> AaveV3PositionSource:
    return AaveV3PositionSource(
        EvmClient(config.chain),
        PythOracle(config.price_oracle.pyth, timeout=config.chain.rpc_timeout),
        config.protocol,
        asset=config.position.asset,
    )


def build_service(config: AppConfig) -> MonitorService:
    """Build a MonitorService backed by the configured chain, oracle and notifiers."""
    return MonitorService(
        build_position_source(config),
        config,
        notifiers=build_notifiers(config),
    )
