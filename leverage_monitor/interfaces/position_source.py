"""Position source protocol — the lending position the monitor watches."""
from typing import Protocol

from ..models import PositionState, RepayResult


class PositionSource(Protocol):
    """Abstract interface to a single lending position.

    Every method raises ``SourceUnavailable`` on network or protocol errors.
    """

    async def get_position(self, address: str) -> PositionState: ...

    async def get_price(self) -> float: ...

    async def get_balance(self, address: str) -> float: ...

    async def repay(self, amount: float) -> RepayResult: ...
