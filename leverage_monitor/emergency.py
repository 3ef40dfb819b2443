"""Emergency de-risking — partial debt repayment on CRITICAL health."""
from __future__ import annotations

import logging
import math

from .errors import SourceUnavailable
from .interfaces.position_source import PositionSource
from .models import EmergencyAction, PositionSnapshot

logger = logging.getLogger(__name__)

DEFAULT_REPAY_FRACTION = 0.25
DEFAULT_GAS_RESERVE = 1.0


class EmergencyProcedureController:
    """Compute, fund-check and (optionally) submit an emergency repayment.

    Repayment is only submitted when ``auto_execute`` is enabled; the
    default is a dry run that reports what would be repaid.
    """

    def __init__(
        self,
        source: PositionSource,
        address: str,
        liquidation_threshold: float,
        repay_fraction: float = DEFAULT_REPAY_FRACTION,
        gas_reserve: float = DEFAULT_GAS_RESERVE,
        auto_execute: bool = False,
    ) -> None:
        self._source = source
        self._address = address
        self._liquidation_threshold = liquidation_threshold
        self._repay_fraction = repay_fraction
        self._gas_reserve = gas_reserve
        self._auto_execute = auto_execute

    @property
    def auto_execute(self) -> bool:
        return self._auto_execute

    @property
    def gas_reserve(self) -> float:
        return self._gas_reserve

    def project(self, snapshot: PositionSnapshot) -> tuple[float, float, float]:
        """Return ``(repay_amount, projected_health_factor, projected_ltv)``."""
        repay_amount = snapshot.debt * self._repay_fraction
        remaining = snapshot.debt - repay_amount

        if remaining <= 0:
            return repay_amount, math.inf, 0.0

        projected_hf = (snapshot.collateral * self._liquidation_threshold) / remaining
        return repay_amount, projected_hf, remaining / snapshot.collateral

    async def trigger(self, snapshot: PositionSnapshot) -> EmergencyAction:
        """Run the emergency procedure for a CRITICAL snapshot.

        Insufficient funding is reported on the result, not raised.
        Any failure of the balance query or the repay call is raised as
        ``SourceUnavailable``.
        """
        logger.critical("EMERGENCY PROCEDURES TRIGGERED — position at high risk of liquidation")

        repay_amount, projected_hf, projected_ltv = self.project(snapshot)
        logger.warning(
            "Recommended emergency repay: %.4f (HF %.3f → %.3f)",
            repay_amount,
            snapshot.health_factor,
            projected_hf,
        )

        try:
            balance = await self._source.get_balance(self._address)
        except SourceUnavailable:
            raise
        except Exception as e:
            raise SourceUnavailable(f"Balance query failed: {e}") from e
        funding_sufficient = balance >= repay_amount + self._gas_reserve

        executed = False
        tx_ref = ""
        if not funding_sufficient:
            logger.error(
                "Insufficient balance for emergency repay: have %.4f, need %.4f",
                balance,
                repay_amount + self._gas_reserve,
            )
        elif not self._auto_execute:
            logger.info("Sufficient balance for emergency repay; auto-execution disabled")
        else:
            try:
                result = await self._source.repay(repay_amount)
            except SourceUnavailable:
                raise
            except Exception as e:
                raise SourceUnavailable(f"Repay submission failed: {e}") from e
            executed = result.success
            tx_ref = result.tx_ref
            if executed:
                logger.info("Emergency repay submitted: %s", tx_ref)
            else:
                logger.error("Emergency repay was rejected by the source")

        return EmergencyAction(
            repay_amount=repay_amount,
            pre_health_factor=snapshot.health_factor,
            projected_health_factor=projected_hf,
            projected_ltv=projected_ltv,
            balance=balance,
            funding_sufficient=funding_sufficient,
            executed=executed,
            tx_ref=tx_ref,
        )
