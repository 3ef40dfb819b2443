"""Pure ABI helpers for Aave V3 pool reads — no I/O."""
from __future__ import annotations

import math
from typing import Any

# keccak256("getUserAccountData(address)")[:4]
GET_USER_ACCOUNT_DATA_SELECTOR = "bf92857c"

WORD_HEX_CHARS = 64
UINT256_MAX = 2**256 - 1

# Percentages (LTV, liquidation threshold) are reported in basis points.
BPS = 10_000
HEALTH_FACTOR_DECIMALS = 18


def encode_address_call(selector: str, address: str) -> str:
    """ABI-encode a single-address call, e.g. ``getUserAccountData(user)``."""
    addr = address.lower().removeprefix("0x")
    if len(addr) != 40 or any(c not in "0123456789abcdef" for c in addr):
        raise ValueError(f"Invalid EVM address: {address}")
    return "0x" + selector.removeprefix("0x") + addr.rjust(WORD_HEX_CHARS, "0")


def decode_words(data: str) -> list[int]:
    """Split ABI return data into uint256 words."""
    body = data.removeprefix("0x")
    if not body or len(body) % WORD_HEX_CHARS:
        raise ValueError(f"Malformed ABI data ({len(body)} hex chars)")
    return [
        int(body[i : i + WORD_HEX_CHARS], 16)
        for i in range(0, len(body), WORD_HEX_CHARS)
    ]


def parse_account_data(data: str, base_currency_decimals: int = 8) -> dict[str, Any]:
    """Decode ``getUserAccountData`` return data.

    Returns base-currency (USD) values as floats, the liquidation threshold
    and LTV as fractions, and the on-chain health factor (``inf`` when the
    user has no debt, which the pool reports as ``uint256.max``).
    """
    words = decode_words(data)
    if len(words) < 6:
        raise ValueError(f"Expected 6 words from getUserAccountData, got {len(words)}")

    collateral, debt, available, threshold_bps, ltv_bps, hf_raw = words[:6]
    scale = 10**base_currency_decimals

    return {
        "total_collateral_base": collateral / scale,
        "total_debt_base": debt / scale,
        "available_borrows_base": available / scale,
        "liquidation_threshold": threshold_bps / BPS,
        "ltv": ltv_bps / BPS,
        "health_factor": (
            math.inf if hf_raw == UINT256_MAX else hf_raw / 10**HEALTH_FACTOR_DECIMALS
        ),
    }


def base_to_asset_amount(base_value: float, price: float) -> float:
    """Convert a base-currency value into asset units at ``price``."""
    if price <= 0:
        raise ValueError(f"Price must be positive, got {price}")
    return base_value / price


def to_native_amount(raw_amount: int, decimals: int = 18) -> float:
    """Convert a raw integer token amount (e.g. wei) to whole units."""
    return raw_amount / (10**decimals)
