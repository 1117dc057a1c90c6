"""Tests for amount conversion and bech32 address handling."""

from decimal import Decimal

import bech32
import pytest

from agent_cosmos_ai.wallet.address import (
    convert_prefix,
    decode_address,
    is_valid_address,
    validate_address,
)
from agent_cosmos_ai.wallet.units import format_amount, from_base_units, to_base_units


class TestUnits:
    @pytest.mark.parametrize(
        "amount,expected",
        [("1.5", 1_500_000), (2, 2_000_000), (0.1, 100_000), ("0.000001", 1), (Decimal("3"), 3_000_000)],
    )
    def test_to_base_units(self, amount, expected):
        assert to_base_units(amount, 6) == expected

    def test_zero_decimals(self):
        assert to_base_units("42", 0) == 42

    @pytest.mark.parametrize("amount", ["0", "-1", 0, -0.5])
    def test_non_positive(self, amount):
        with pytest.raises(ValueError, match="Amount must be positive"):
            to_base_units(amount, 6)

    @pytest.mark.parametrize("amount", ["abc", "", "nan", "inf", True])
    def test_invalid(self, amount):
        with pytest.raises(ValueError):
            to_base_units(amount, 6)

    def test_too_many_places(self):
        with pytest.raises(ValueError, match="more than 6 decimal places"):
            to_base_units("1.0000001", 6)
        with pytest.raises(ValueError):
            to_base_units("1.5", 0)

    def test_long_amounts_are_exact(self):
        with pytest.raises(ValueError, match="more than 6 decimal places"):
            to_base_units("1234567890123456789012.3456789", 6)
        assert to_base_units("1234567890123456789012.345678", 6) == 1234567890123456789012345678
        assert from_base_units(1234567890123456789012345678, 6) == Decimal("1234567890123456789012.345678")

    def test_from_base_units(self):
        assert from_base_units(1_500_000, 6) == Decimal("1.5")
        assert from_base_units("42", 0) == Decimal(42)

    def test_format_amount(self):
        assert format_amount(Decimal("1.23456"), 4) == "1.2346"
        assert format_amount("0.005", 2) == "0.01"
        assert format_amount(0, 2) == "0.00"


class TestAddress:
    def test_decode(self, osmo_recipient):
        hrp, payload = decode_address(osmo_recipient)
        assert hrp == "osmo"
        assert payload == bytes([7] * 20)

    def test_validate_normalises(self, osmo_recipient):
        assert validate_address(f"  {osmo_recipient.upper()} ", "osmo") == osmo_recipient

    def test_wrong_prefix(self, cosmos_recipient):
        with pytest.raises(ValueError, match="expected 'osmo'"):
            validate_address(cosmos_recipient, "osmo")

    def test_bad_checksum(self, osmo_recipient):
        broken = osmo_recipient[:-1] + ("q" if osmo_recipient[-1] != "q" else "p")
        assert not is_valid_address(broken)

    def test_is_valid_address(self, osmo_recipient, cosmos_recipient):
        assert is_valid_address(osmo_recipient)
        assert is_valid_address(osmo_recipient, "osmo")
        assert not is_valid_address(cosmos_recipient, "osmo")
        assert not is_valid_address(bech32.bech32_encode("osmo", bech32.convertbits(bytes(8), 8, 5)))

    def test_garbage(self):
        assert not is_valid_address("0x1234567890abcdef")
        assert not is_valid_address("")

    def test_convert_prefix(self, osmo_recipient, cosmos_recipient):
        assert convert_prefix(osmo_recipient, "cosmos") == cosmos_recipient
        assert convert_prefix(cosmos_recipient, "cosmos") == cosmos_recipient
