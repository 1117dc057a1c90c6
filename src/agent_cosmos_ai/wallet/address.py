"""Bech32 address helpers."""

from __future__ import annotations

import bech32

# Account addresses are 20 bytes, module/contract addresses 32 bytes.
_VALID_LENGTHS = (20, 32)


def decode_address(address: str) -> tuple[str, bytes]:
    """Decode a bech32 address into ``(prefix, payload bytes)``.

    Raises ``ValueError`` if the string is not valid bech32.
    """
    hrp, data = bech32.bech32_decode(address.strip())
    if hrp is None or data is None:
        raise ValueError(f"'{address}' is not a valid bech32 address")
    payload = bech32.convertbits(data, 5, 8, False)
    if payload is None:
        raise ValueError(f"'{address}' has an invalid bech32 payload")
    return hrp, bytes(payload)


def validate_address(address: str, prefix: str | None = None) -> str:
    """Return the normalised address or raise ``ValueError`` with the reason."""
    hrp, payload = decode_address(address)
    if prefix is not None and hrp != prefix:
        raise ValueError(
            f"Address '{address}' has prefix '{hrp}', expected '{prefix}'"
        )
    if len(payload) not in _VALID_LENGTHS:
        raise ValueError(
            f"Address '{address}' has a {len(payload)}-byte payload"
        )
    return address.strip().lower()


def is_valid_address(address: str, prefix: str | None = None) -> bool:
    try:
        validate_address(address, prefix)
    except ValueError:
        return False
    return True


def convert_prefix(address: str, prefix: str) -> str:
    """Re-encode *address* with another bech32 prefix (same key, other chain)."""
    hrp, data = bech32.bech32_decode(address.strip())
    if hrp is None or data is None:
        raise ValueError(f"'{address}' is not a valid bech32 address")
    if hrp == prefix:
        return address.strip()
    return bech32.bech32_encode(prefix, data)
