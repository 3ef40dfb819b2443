"""Aave V3 position source — one wallet's position in a single-asset loop."""
from __future__ import annotations

import logging

from ...config import ProtocolConfig
from ...errors import SourceUnavailable
from ...interfaces.chain import ChainClient
from ...interfaces.price_oracle import PriceOracle
from ...models import PositionState, RepayResult
from . import parser

logger = logging.getLogger(__name__)


class AaveV3PositionSource:
    """Read a leveraged position from an Aave V3 pool (e.g. Yei Finance).

    The pool reports collateral and debt in its base currency (USD); both
    are converted to units of the monitored asset with the oracle price.
    """

    def __init__(
        self,
        chain_client: ChainClient,
        oracle: PriceOracle,
        config: ProtocolConfig,
        asset: str,
    ) -> None:
        self._client = chain_client
        self._oracle = oracle
        self._config = config
        self._asset = asset
        self._last_price: float | None = None
        # Set by get_price, consumed by the next get_position.
        self._unused_price: float | None = None

    @property
    def protocol_name(self) -> str:
        return self._config.name

    async def get_price(self) -> float:
        price = await self._oracle.fetch_price(self._asset)
        self._last_price = price
        self._unused_price = price
        return price

    async def _conversion_price(self) -> float:
        """Price for valuing the position, reusing one just fetched by ``get_price``."""
        if self._unused_price is None:
            try:
                await self.get_price()
            except SourceUnavailable as e:
                if self._last_price is None:
                    raise
                logger.warning(
                    "Price unavailable (%s); converting with last price $%.4f",
                    e,
                    self._last_price,
                )
                return self._last_price

        price, self._unused_price = self._unused_price, None
        return price

    async def get_position(self, address: str) -> PositionState:
        if not self._config.pool_address:
            raise SourceUnavailable(f"No pool address configured for {self.protocol_name}")

        try:
            call_data = parser.encode_address_call(
                parser.GET_USER_ACCOUNT_DATA_SELECTOR, address
            )
        except ValueError as e:
            raise SourceUnavailable(str(e)) from e

        raw = await self._client.eth_call(self._config.pool_address, call_data)
        try:
            account = parser.parse_account_data(raw, self._config.base_currency_decimals)
        except ValueError as e:
            raise SourceUnavailable(f"Could not decode account data: {e}") from e

        price = await self._conversion_price()
        collateral = parser.base_to_asset_amount(account["total_collateral_base"], price)
        debt = parser.base_to_asset_amount(account["total_debt_base"], price)

        logger.debug(
            "%s account — collateral $%.2f debt $%.2f on-chain HF %.4f",
            self.protocol_name,
            account["total_collateral_base"],
            account["total_debt_base"],
            account["health_factor"],
        )
        return PositionState(collateral=collateral, debt=debt)

    async def get_balance(self, address: str) -> float:
        wei = await self._client.get_balance(address)
        return parser.to_native_amount(wei, self._config.native_decimals)

    async def repay(self, amount: float) -> RepayResult:
        # Submitting a repay needs a transaction signer; this source is read-only.
        raise SourceUnavailable(
            f"Cannot submit repay of {amount:.4f} {self._asset}: no transaction signer configured"
        )
