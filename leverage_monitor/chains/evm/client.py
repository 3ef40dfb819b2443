"""EVM JSON-RPC client with endpoint fallback."""
import logging
import ssl
from typing import Any

import aiohttp
import certifi

from ...config import ChainConfig
from ...errors import SourceUnavailable

logger = logging.getLogger(__name__)


class EvmClient:
    """Read-only EVM RPC client that rotates to the next endpoint on failure."""

    def __init__(self, config: ChainConfig) -> None:
        self.endpoints = list(config.rpc_endpoints)
        self.timeout = config.rpc_timeout
        self.current_rpc_index = 0

    async def rpc_call(self, method: str, params: list[Any]) -> Any:
        """Make an RPC call, trying each endpoint once starting from the last good one.

        Raises:
            SourceUnavailable: when every endpoint failed.
        """
        if not self.endpoints:
            raise SourceUnavailable("No RPC endpoints configured")

        payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}
        ssl_context = ssl.create_default_context(cafile=certifi.where())

        last_error: Exception | None = None
        for attempt in range(len(self.endpoints)):
            rpc_index = (self.current_rpc_index + attempt) % len(self.endpoints)
            rpc_url = self.endpoints[rpc_index]

            try:
                connector = aiohttp.TCPConnector(ssl=ssl_context)
                async with aiohttp.ClientSession(connector=connector) as session:
                    async with session.post(
                        rpc_url,
                        json=payload,
                        timeout=aiohttp.ClientTimeout(total=self.timeout),
                    ) as response:
                        result = await response.json()
                        if "error" in result:
                            raise RuntimeError(f"RPC Error: {result['error']}")

                        if rpc_index != self.current_rpc_index:
                            logger.info("Switched to RPC endpoint: %s", rpc_url)
                            self.current_rpc_index = rpc_index

                        return result.get("result")
            except Exception as e:
                last_error = e
                logger.warning("RPC endpoint %s failed: %s", rpc_url, e)
                if attempt < len(self.endpoints) - 1:
                    logger.info("Trying next endpoint...")

        raise SourceUnavailable(f"All RPC endpoints failed. Last error: {last_error}")

    async def eth_call(self, to: str, data: str) -> str:
        """Execute a read-only contract call at the latest block."""
        result = await self.rpc_call("eth_call", [{"to": to, "data": data}, "latest"])
        if not isinstance(result, str):
            raise SourceUnavailable(f"Unexpected eth_call result: {result!r}")
        return result

    async def get_balance(self, address: str) -> int:
        """Native balance in wei."""
        result = await self.rpc_call("eth_getBalance", [address, "latest"])
        try:
            return int(result, 16)
        except (TypeError, ValueError) as e:
            raise SourceUnavailable(f"Unexpected eth_getBalance result: {result!r}") from e
