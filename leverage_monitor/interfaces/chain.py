"""Chain client protocol — EVM JSON-RPC abstraction."""
from typing import Protocol


class ChainClient(Protocol):
    """Abstract interface for the read-only RPC calls the monitor needs."""

    async def eth_call(self, to: str, data: str) -> str: ...

    async def get_balance(self, address: str) -> int: ...
