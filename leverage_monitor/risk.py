"""Risk evaluation — health classification, risk score and findings."""
from __future__ import annotations

import math

from .models import AlertLevel, PositionSnapshot, RiskAssessment, RiskFinding, RiskStatus

# Health-factor bands, most severe first: hf < bound → status.
CRITICAL_HEALTH_FACTOR = 1.2
WARNING_HEALTH_FACTOR = 1.5
STABLE_HEALTH_FACTOR = 2.0

PRICE_MOVE_THRESHOLD = 0.10
LTV_WARNING_THRESHOLD = 0.70

_RECOMMENDATIONS: dict[RiskStatus, tuple[str, ...]] = {
    RiskStatus.CRITICAL: (
        "Repay debt or add collateral immediately",
        "Position at high liquidation risk",
    ),
    RiskStatus.WARNING: (
        "Consider repaying some debt or adding collateral",
        "Monitor position closely",
    ),
    RiskStatus.STABLE: (
        "Position is stable",
        "Continue monitoring market conditions",
    ),
    RiskStatus.HEALTHY: (
        "Position is healthy",
        "Continue monitoring",
    ),
}


def classify_health(health_factor: float) -> RiskStatus:
    if health_factor < CRITICAL_HEALTH_FACTOR:
        return RiskStatus.CRITICAL
    if health_factor < WARNING_HEALTH_FACTOR:
        return RiskStatus.WARNING
    if health_factor < STABLE_HEALTH_FACTOR:
        return RiskStatus.STABLE
    return RiskStatus.HEALTHY


def liquidation_risk_score(health_factor: float) -> float:
    """0 at HF ≥ 1.5, rising linearly to 1 at HF ≤ 1.0."""
    if math.isinf(health_factor):
        return 0.0
    return min(1.0, max(0.0, (WARNING_HEALTH_FACTOR - health_factor) / 0.5))


def recommendations_for(status: RiskStatus) -> tuple[str, ...]:
    return _RECOMMENDATIONS[status]


class RiskEvaluator:
    """Stateless evaluator of the current (and optionally previous) snapshot."""

    def evaluate(
        self,
        current: PositionSnapshot,
        previous: PositionSnapshot | None = None,
    ) -> RiskAssessment:
        status = classify_health(current.health_factor)
        findings: list[RiskFinding] = []

        health_finding = self._health_finding(status, current.health_factor)
        if health_finding:
            findings.append(health_finding)

        if previous is not None:
            price_finding = self._price_move_finding(current, previous)
            if price_finding:
                findings.append(price_finding)

        if current.loan_to_value > LTV_WARNING_THRESHOLD:
            findings.append(
                RiskFinding(
                    kind="ltv",
                    level=AlertLevel.WARNING,
                    message=(
                        f"High LTV {current.loan_to_value * 100:.2f}% "
                        "- Near liquidation threshold"
                    ),
                    action_required=True,
                )
            )

        return RiskAssessment(
            status=status,
            health_factor=current.health_factor,
            liquidation_risk_score=liquidation_risk_score(current.health_factor),
            recommendations=recommendations_for(status),
            findings=tuple(findings),
        )

    @staticmethod
    def _health_finding(status: RiskStatus, health_factor: float) -> RiskFinding | None:
        if status is RiskStatus.CRITICAL:
            return RiskFinding(
                kind="health",
                level=AlertLevel.CRITICAL,
                message=(
                    f"URGENT: Health factor {health_factor:.3f} "
                    "- Immediate action required!"
                ),
                action_required=True,
            )
        if status is RiskStatus.WARNING:
            return RiskFinding(
                kind="health",
                level=AlertLevel.WARNING,
                message=(
                    f"Low health factor {health_factor:.3f} "
                    "- Consider adding collateral"
                ),
            )
        return None

    @staticmethod
    def _price_move_finding(
        current: PositionSnapshot, previous: PositionSnapshot
    ) -> RiskFinding | None:
        if previous.asset_price <= 0:
            return None

        change = (current.asset_price - previous.asset_price) / previous.asset_price
        if abs(change) <= PRICE_MOVE_THRESHOLD:
            return None

        direction = "increased" if change > 0 else "decreased"
        return RiskFinding(
            kind="price_move",
            level=AlertLevel.WARNING,
            message=f"Price {direction} by {abs(change) * 100:.2f}%",
        )
