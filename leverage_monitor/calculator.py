"""Pure leverage math — no I/O, no clock."""
from __future__ import annotations

from .errors import InvalidInput
from .models import LeverageParams, LeverageRisk, NetApy, RiskLevel

DAYS_PER_YEAR = 365


def compute_leverage_params(
    collateral: float,
    target_leverage: float,
    safety_buffer: float,
    protocol_ltv: float,
    liquidation_threshold: float,
) -> LeverageParams:
    """Size a borrow against ``collateral``.

    The protocol's maximum borrow (``collateral * protocol_ltv``) is reduced
    by ``safety_buffer`` to get the amount that is actually borrowed.

    Raises:
        InvalidInput: on non-positive collateral, a target leverage of 1x or
            less, or out-of-range buffer / protocol parameters.
    """
    if collateral <= 0:
        raise InvalidInput(f"Collateral must be positive, got {collateral}")
    if target_leverage <= 1:
        raise InvalidInput(f"Target leverage must exceed 1x, got {target_leverage}")
    if not 0 <= safety_buffer < 1:
        raise InvalidInput(f"Safety buffer must be in [0, 1), got {safety_buffer}")
    if protocol_ltv <= 0:
        raise InvalidInput(f"Protocol LTV must be positive, got {protocol_ltv}")
    if liquidation_threshold <= 0:
        raise InvalidInput(
            f"Liquidation threshold must be positive, got {liquidation_threshold}"
        )

    max_borrow = collateral * protocol_ltv
    safe_borrow = max_borrow * (1 - safety_buffer)

    return LeverageParams(
        collateral_amount=collateral,
        target_leverage=target_leverage,
        safety_buffer=safety_buffer,
        max_borrow_amount=max_borrow,
        safe_borrow_amount=safe_borrow,
        resulting_ltv=safe_borrow / collateral,
        health_factor=(collateral * liquidation_threshold) / safe_borrow,
        liquidation_price=safe_borrow / (collateral * liquidation_threshold),
    )


def compute_net_apy(
    collateral: float,
    borrowed: float,
    supply_apy: float,
    borrow_apy: float,
    yield_apy: float,
) -> NetApy:
    """Net APY on the initial collateral.

    Collateral earns the supply rate, borrowed funds earn ``yield_apy``
    (staking, LP) and pay ``borrow_apy``.
    """
    if collateral == 0:
        raise InvalidInput("Collateral must be non-zero to compute net APY")

    gross_yield = collateral * supply_apy + borrowed * yield_apy
    borrow_cost = borrowed * borrow_apy
    net_yield = gross_yield - borrow_cost

    return NetApy(
        total_exposure=collateral + borrowed,
        gross_yield=gross_yield,
        borrow_cost=borrow_cost,
        net_yield=net_yield,
        net_apy=net_yield / collateral,
    )


def compute_liquidation_price(
    collateral: float, debt: float, liquidation_threshold: float
) -> float:
    """Price at which ``debt`` reaches the liquidation threshold of ``collateral``."""
    if collateral <= 0:
        raise InvalidInput(f"Collateral must be positive, got {collateral}")
    if liquidation_threshold <= 0:
        raise InvalidInput(
            f"Liquidation threshold must be positive, got {liquidation_threshold}"
        )
    if debt < 0:
        raise InvalidInput(f"Debt cannot be negative, got {debt}")
    return debt / (collateral * liquidation_threshold)


def compute_daily_yield(collateral: float, debt: float, staking_apy: float) -> float:
    """Estimated daily yield on the full exposure (collateral + borrowed)."""
    return (collateral + debt) * staking_apy / DAYS_PER_YEAR


def assess_leverage_risk(params: LeverageParams) -> LeverageRisk:
    """Static risk grade for a planned leverage position."""
    warnings: list[str] = []

    if params.resulting_ltv > 0.7:
        risk_level = RiskLevel.HIGH
        warnings.append("Very high LTV - liquidation risk")
    elif params.resulting_ltv > 0.5:
        risk_level = RiskLevel.MEDIUM
        warnings.append("Moderate liquidation risk")
    else:
        risk_level = RiskLevel.LOW

    if params.leverage_ratio > 2.5:
        warnings.append("High leverage increases volatility")

    return LeverageRisk(
        risk_level=risk_level,
        warnings=tuple(warnings),
        recommendations=(
            "Monitor position daily",
            "Set up liquidation alerts",
            "Keep additional collateral asset for emergency paydown",
        ),
    )
