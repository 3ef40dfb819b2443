"""Pyth Network price oracle (Hermes HTTP API)."""
import logging
import ssl
from typing import Any

import aiohttp
import certifi

from ..config import PythConfig
from ..errors import SourceUnavailable

logger = logging.getLogger(__name__)


def parse_price_update(item: dict[str, Any]) -> float:
    """Convert a Hermes ``parsed`` entry to a float price (``price * 10^expo``)."""
    price_data = item.get("price", {})
    price_raw = int(price_data.get("price", 0))
    expo = int(price_data.get("expo", 0))
    return price_raw * (10**expo)


class PythOracle:
    """Fetch prices from Pyth Network oracle."""

    def __init__(self, config: PythConfig, timeout: int = 30) -> None:
        self.hermes_url = config.hermes_url
        self.price_feeds = dict(config.feeds)
        self.timeout = timeout

    async def fetch_prices(self, symbols: list[str] | None = None) -> dict[str, float]:
        """Fetch current prices for the configured (or requested) feeds.

        Raises:
            SourceUnavailable: on HTTP or network errors.
        """
        feeds = self.price_feeds
        if symbols is not None:
            feeds = {k: v for k, v in self.price_feeds.items() if k in symbols}

        feed_ids = sorted(set(feeds.values()))
        if not feed_ids:
            return {}

        query_params = "&".join(f"ids[]={fid}" for fid in feed_ids)
        url = f"{self.hermes_url}?{query_params}"

        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        try:
            async with aiohttp.ClientSession(connector=connector) as session:
                async with session.get(
                    url, timeout=aiohttp.ClientTimeout(total=self.timeout)
                ) as response:
                    if response.status != 200:
                        raise SourceUnavailable(
                            f"Pyth returned HTTP {response.status}"
                        )
                    data = await response.json()
        except SourceUnavailable:
            raise
        except Exception as e:
            logger.error("Error fetching prices from Pyth: %s", e)
            raise SourceUnavailable(f"Pyth request failed: {e}") from e

        id_to_assets: dict[str, list[str]] = {}
        for asset, feed_id in feeds.items():
            # Hermes returns ids without the 0x prefix.
            id_to_assets.setdefault(feed_id.removeprefix("0x"), []).append(asset)

        prices: dict[str, float] = {}
        for item in data.get("parsed", []):
            feed_id = str(item.get("id", "")).removeprefix("0x")
            for asset in id_to_assets.get(feed_id, []):
                prices[asset] = parse_price_update(item)

        for asset, price in sorted(prices.items()):
            logger.debug("Pyth price %s: $%.4f", asset, price)
        return prices

    async def fetch_price(self, symbol: str) -> float:
        """Fetch a single positive price or raise ``SourceUnavailable``."""
        if symbol not in self.price_feeds:
            raise SourceUnavailable(f"No Pyth feed configured for {symbol}")

        prices = await self.fetch_prices([symbol])
        price = prices.get(symbol, 0.0)
        if price <= 0:
            raise SourceUnavailable(f"Pyth returned no usable price for {symbol}")
        return price
