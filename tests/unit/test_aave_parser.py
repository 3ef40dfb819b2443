"""Unit tests for Aave V3 ABI helpers."""
from __future__ import annotations

import math

import pytest

from leverage_monitor.protocols.aave.parser import (
    GET_USER_ACCOUNT_DATA_SELECTOR,
    UINT256_MAX,
    base_to_asset_amount,
    decode_words,
    encode_address_call,
    parse_account_data,
    to_native_amount,
)

USER = "0x1111111111111111111111111111111111111111"


def _words(*values: int) -> str:
    return "0x" + "".join(f"{v:064x}" for v in values)


class TestEncodeAddressCall:
    def test_pads_address_to_one_word(self) -> None:
        data = encode_address_call(GET_USER_ACCOUNT_DATA_SELECTOR, USER)
        assert data.startswith("0xbf92857c")
        assert len(data) == 2 + 8 + 64
        assert data.endswith("1" * 40)

    def test_checksum_address_is_lowercased(self) -> None:
        data = encode_address_call("bf92857c", "0xABCDEFabcdef0000000000000000000000000000")
        assert "abcdefabcdef" in data

    @pytest.mark.parametrize("address", ["0x123", "not-an-address", "0x" + "z" * 40])
    def test_invalid_address_rejected(self, address: str) -> None:
        with pytest.raises(ValueError):
            encode_address_call(GET_USER_ACCOUNT_DATA_SELECTOR, address)


class TestDecodeWords:
    def test_splits_words(self) -> None:
        assert decode_words(_words(1, 2, 3)) == [1, 2, 3]

    @pytest.mark.parametrize("data", ["0x", "", "0x1234"])
    def test_malformed_rejected(self, data: str) -> None:
        with pytest.raises(ValueError):
            decode_words(data)


class TestParseAccountData:
    def test_decodes_values(self) -> None:
        data = _words(
            7_843_356_000,  # $78.43 collateral (8 decimals)
            4_415_809_500,  # $44.16 debt
            1_466_707_500,
            8_000,  # 80% liquidation threshold
            7_500,  # 75% LTV
            1_420_900_000_000_000_000,
        )

        account = parse_account_data(data)

        assert account["total_collateral_base"] == pytest.approx(78.43356)
        assert account["total_debt_base"] == pytest.approx(44.158095)
        assert account["liquidation_threshold"] == pytest.approx(0.8)
        assert account["ltv"] == pytest.approx(0.75)
        assert account["health_factor"] == pytest.approx(1.4209)

    def test_no_debt_health_factor_is_infinite(self) -> None:
        account = parse_account_data(_words(100, 0, 0, 8_000, 7_500, UINT256_MAX))
        assert math.isinf(account["health_factor"])

    def test_short_data_rejected(self) -> None:
        with pytest.raises(ValueError, match="Expected 6 words"):
            parse_account_data(_words(1, 2, 3))


class TestConversions:
    def test_base_to_asset_amount(self) -> None:
        assert base_to_asset_amount(45.0, 0.45) == pytest.approx(100.0)

    def test_base_to_asset_requires_positive_price(self) -> None:
        with pytest.raises(ValueError):
            base_to_asset_amount(45.0, 0.0)

    def test_to_native_amount(self) -> None:
        assert to_native_amount(2_500_000_000_000_000_000) == pytest.approx(2.5)
        assert to_native_amount(1_000_000, decimals=6) == pytest.approx(1.0)
