"""Data models — all frozen (immutable)."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class AlertLevel(str, Enum):
    INFO = "INFO"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"


class RiskStatus(str, Enum):
    HEALTHY = "HEALTHY"
    STABLE = "STABLE"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"


class HealthTrend(str, Enum):
    IMPROVING = "IMPROVING"
    DECLINING = "DECLINING"
    STABLE = "STABLE"


class RiskLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


@dataclass(frozen=True)
class PositionState:
    """Raw collateral/debt amounts as reported by the position source."""

    collateral: float
    debt: float


@dataclass(frozen=True)
class RepayResult:
    success: bool
    tx_ref: str = ""


@dataclass(frozen=True)
class PositionSnapshot:
    """Point-in-time view of the monitored position.

    Amounts are in units of the collateral asset and ``asset_price`` is in
    USD. ``liquidation_price`` is ``debt / (collateral * lt)``: a ratio of
    debt to collateral value, not a USD quote.
    """

    timestamp: datetime
    collateral: float
    debt: float
    health_factor: float
    loan_to_value: float
    asset_price: float
    liquidation_price: float
    net_pnl: float


@dataclass(frozen=True)
class Alert:
    level: AlertLevel
    message: str
    timestamp: datetime
    action_required: bool = False


@dataclass(frozen=True)
class RiskFinding:
    """A single condition detected by the risk evaluator."""

    kind: str
    level: AlertLevel
    message: str
    action_required: bool = False


@dataclass(frozen=True)
class RiskAssessment:
    status: RiskStatus
    health_factor: float
    liquidation_risk_score: float
    recommendations: tuple[str, ...] = ()
    findings: tuple[RiskFinding, ...] = ()


@dataclass(frozen=True)
class LeverageParams:
    collateral_amount: float
    target_leverage: float
    safety_buffer: float
    max_borrow_amount: float
    safe_borrow_amount: float
    resulting_ltv: float
    health_factor: float
    liquidation_price: float

    @property
    def total_exposure(self) -> float:
        return self.collateral_amount + self.safe_borrow_amount

    @property
    def leverage_ratio(self) -> float:
        return self.total_exposure / self.collateral_amount


@dataclass(frozen=True)
class NetApy:
    total_exposure: float
    gross_yield: float
    borrow_cost: float
    net_yield: float
    net_apy: float


@dataclass(frozen=True)
class LeverageRisk:
    risk_level: RiskLevel
    warnings: tuple[str, ...] = ()
    recommendations: tuple[str, ...] = ()


@dataclass(frozen=True)
class EmergencyAction:
    """Outcome of an emergency de-risking attempt.

    ``funding_sufficient=False`` is the report-only outcome: the wallet
    cannot cover the repayment plus gas, so nothing was submitted.
    """

    repay_amount: float
    pre_health_factor: float
    projected_health_factor: float
    projected_ltv: float
    balance: float
    funding_sufficient: bool
    executed: bool = False
    tx_ref: str = ""


@dataclass(frozen=True)
class Performance:
    total_pnl: float
    daily_yield: float
    health_trend: HealthTrend


@dataclass(frozen=True)
class Dashboard:
    current_snapshot: PositionSnapshot | None
    recent_alerts: tuple[Alert, ...]
    performance: Performance
    snapshot_count: int = 0


@dataclass(frozen=True)
class CycleResult:
    """Everything a single monitoring cycle produced."""

    snapshot: PositionSnapshot | None = None
    assessment: RiskAssessment | None = None
    alerts: tuple[Alert, ...] = ()
    emergency: EmergencyAction | None = None

    @property
    def succeeded(self) -> bool:
        return self.snapshot is not None
