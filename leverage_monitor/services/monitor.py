"""Monitoring orchestration — one position, one timer-driven loop."""
from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Sequence

from ..alerts import AlertManager
from ..calculator import compute_daily_yield
from ..collector import Clock, PositionSnapshotCollector, SnapshotHistory, utc_now
from ..config import AppConfig
from ..emergency import EmergencyProcedureController
from ..errors import DegenerateState, SourceUnavailable
from ..interfaces.notifier import Notifier
from ..interfaces.position_source import PositionSource
from ..interfaces.scheduler import ScheduleHandle, Scheduler
from ..models import (
    Alert,
    AlertLevel,
    CycleResult,
    Dashboard,
    EmergencyAction,
    HealthTrend,
    Performance,
    RiskStatus,
)
from ..reporting import render_report
from ..risk import RiskEvaluator
from ..scheduling import AsyncioScheduler

logger = logging.getLogger(__name__)

RECENT_ALERTS_LIMIT = 10
HEALTH_TREND_DELTA = 0.1


class MonitorState(str, Enum):
    IDLE = "IDLE"
    RUNNING = "RUNNING"
    STOPPED = "STOPPED"


class MonitorService:
    """Orchestrates collection, evaluation, alerting and emergency response."""

    def __init__(
        self,
        source: PositionSource,
        config: AppConfig,
        *,
        scheduler: Scheduler | None = None,
        clock: Clock = utc_now,
        notifiers: Sequence[Notifier] = (),
    ) -> None:
        self._config = config
        self._clock = clock
        self._scheduler: Scheduler = scheduler or AsyncioScheduler()
        self._notifiers: list[Notifier] = list(notifiers)

        protocol = config.protocol
        self._history = SnapshotHistory(config.monitor.snapshot_capacity)
        self._collector = PositionSnapshotCollector(
            source,
            config.position.address,
            self._history,
            liquidation_threshold=protocol.liquidation_threshold,
            entry_price=config.position.entry_price,
            borrow_apy=protocol.borrow_apy,
            clock=clock,
        )
        self._evaluator = RiskEvaluator()
        self._alerts = AlertManager(config.monitor.alert_capacity, clock=clock)
        self._emergency = EmergencyProcedureController(
            source,
            config.position.address,
            liquidation_threshold=protocol.liquidation_threshold,
            repay_fraction=config.emergency.repay_fraction,
            gas_reserve=config.emergency.gas_reserve,
            auto_execute=config.emergency.auto_execute,
        )

        self._state = MonitorState.IDLE
        self._handle: ScheduleHandle | None = None
        self._cycle_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def state(self) -> MonitorState:
        return self._state

    @property
    def history(self) -> SnapshotHistory:
        return self._history

    @property
    def alerts(self) -> AlertManager:
        return self._alerts

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self, check_interval_minutes: int | None = None) -> ScheduleHandle | None:
        """Run a cycle now, then every interval until ``stop()``.

        Returns the schedule handle, or ``None`` if ``stop()`` was called
        while the first cycle was still running.
        """
        if self._state is MonitorState.RUNNING:
            logger.warning("Monitoring already active")
            return self._handle
        if self._state is MonitorState.STOPPED:
            raise RuntimeError("Monitor has been stopped and cannot be restarted")

        interval = check_interval_minutes or self._config.monitor.check_interval_minutes
        self._state = MonitorState.RUNNING
        logger.info(
            "Starting leverage position monitoring (checking every %d minutes)", interval
        )

        try:
            await self.run_cycle()
        except Exception as e:
            # A failed first cycle does not stop scheduling.
            logger.error("Error in monitoring loop: %s", e)

        if self._state is not MonitorState.RUNNING:
            return None

        self._handle = self._scheduler.schedule(interval * 60, self._scheduled_cycle)
        return self._handle

    def stop(self) -> None:
        """Stop monitoring; an in-flight cycle completes, no new one starts."""
        if self._state is not MonitorState.RUNNING:
            logger.info("Monitor is not running (state: %s)", self._state.value)
            return

        self._state = MonitorState.STOPPED
        if self._handle is not None:
            self._handle.cancel()
        logger.info("Monitoring stopped")

    async def _scheduled_cycle(self) -> None:
        if self._state is not MonitorState.RUNNING:
            return
        await self.run_cycle()

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------

    async def run_cycle(self) -> CycleResult:
        """Collect → evaluate → alert → (CRITICAL) emergency → notify."""
        async with self._cycle_lock:
            result = await self._run_cycle_locked()
        await self._dispatch(result.alerts)
        return result

    async def _run_cycle_locked(self) -> CycleResult:
        logger.info("Performing health check...")
        previous = self._history.latest()

        try:
            snapshot = await self._collector.collect()
        except (SourceUnavailable, DegenerateState) as e:
            logger.error("Health check failed: %s", e)
            return CycleResult(alerts=(self._alerts.record_failure(e),))

        assessment = self._evaluator.evaluate(snapshot, previous)
        logger.info(
            "Position status: %s (HF %.3f, liquidation risk %.2f)",
            assessment.status.value,
            assessment.health_factor,
            assessment.liquidation_risk_score,
        )
        alerts = self._alerts.process(assessment)

        emergency: EmergencyAction | None = None
        if assessment.status is RiskStatus.CRITICAL:
            try:
                emergency = await self._emergency.trigger(snapshot)
            except SourceUnavailable as e:
                logger.error("Emergency procedure failed: %s", e)
                alerts.append(
                    self._alerts.record(
                        AlertLevel.CRITICAL,
                        f"Emergency procedure failed: {e}",
                        action_required=True,
                    )
                )
            else:
                alerts.append(self._record_emergency_outcome(emergency))

        return CycleResult(
            snapshot=snapshot,
            assessment=assessment,
            alerts=tuple(alerts),
            emergency=emergency,
        )

    def _record_emergency_outcome(self, action: EmergencyAction) -> Alert:
        asset = self._config.position.asset
        if action.executed:
            message = (
                f"Emergency repay of {action.repay_amount:.4f} {asset} executed "
                f"(tx {action.tx_ref}); projected health factor "
                f"{action.projected_health_factor:.3f}"
            )
        elif not action.funding_sufficient:
            message = (
                f"Insufficient balance for emergency repay of {action.repay_amount:.4f} "
                f"{asset} (balance {action.balance:.4f}, gas reserve "
                f"{self._emergency.gas_reserve:.4f}) - transfer more {asset} "
                "or close other positions"
            )
        elif self._emergency.auto_execute:
            message = (
                f"Emergency repay of {action.repay_amount:.4f} {asset} "
                "was not confirmed by the source - repay manually"
            )
        else:
            message = (
                f"Recommended emergency repay: {action.repay_amount:.4f} {asset} "
                f"would improve health factor to {action.projected_health_factor:.3f} "
                "(auto-execution disabled)"
            )
        return self._alerts.record(AlertLevel.INFO, message)

    # ------------------------------------------------------------------
    # Notification dispatch
    # ------------------------------------------------------------------

    async def _dispatch(self, alerts: Sequence[Alert]) -> None:
        for alert in alerts:
            for notifier in self._notifiers:
                try:
                    await notifier.notify(alert)
                except Exception as e:
                    logger.error("Notifier notify failed: %s", e)

    async def send_report(self) -> str:
        """Render the report and deliver it through every notifier."""
        report = self.generate_report()
        for notifier in self._notifiers:
            try:
                await notifier.send_report(report)
            except Exception as e:
                logger.error("Notifier send_report failed: %s", e)
        logger.info("Position report sent")
        return report

    # ------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------

    def get_dashboard(self) -> Dashboard:
        snapshots = self._history.snapshots()
        current = snapshots[-1] if snapshots else None

        health_trend = HealthTrend.STABLE
        if len(snapshots) >= 3:
            delta = snapshots[-1].health_factor - snapshots[-3].health_factor
            if delta > HEALTH_TREND_DELTA:
                health_trend = HealthTrend.IMPROVING
            elif delta < -HEALTH_TREND_DELTA:
                health_trend = HealthTrend.DECLINING

        daily_yield = 0.0
        if current is not None and len(snapshots) >= 2:
            daily_yield = compute_daily_yield(
                current.collateral, current.debt, self._config.position.staking_apy
            )

        return Dashboard(
            current_snapshot=current,
            recent_alerts=tuple(self._alerts.recent(RECENT_ALERTS_LIMIT)),
            performance=Performance(
                total_pnl=current.net_pnl if current is not None else 0.0,
                daily_yield=daily_yield,
                health_trend=health_trend,
            ),
            snapshot_count=len(snapshots),
        )

    def generate_report(self) -> str:
        return render_report(
            self.get_dashboard(), self._clock(), asset=self._config.position.asset
        )
