"""Exact conversion between display amounts (e.g. ATOM) and base units (uatom)."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext


def _to_decimal(amount: str | int | float | Decimal) -> Decimal:
    if isinstance(amount, bool):
        raise ValueError(f"Invalid amount '{amount}'")
    if isinstance(amount, float):
        # repr() keeps the shortest round-tripping form, e.g. 0.1 -> "0.1"
        amount = repr(amount)
    try:
        value = Decimal(str(amount).strip())
    except InvalidOperation:
        raise ValueError(f"Invalid amount '{amount}'. Provide a number like '0.5'.") from None
    if not value.is_finite():
        raise ValueError(f"Invalid amount '{amount}'")
    return value


def _exact_precision(value: Decimal, decimals: int) -> int:
    # scaleb rounds to the context precision; size it so nothing is dropped
    return max(28, len(value.as_tuple().digits) + abs(decimals) + 1)


def to_base_units(amount: str | int | float | Decimal, decimals: int) -> int:
    """Convert a display amount to integer base units.

    Raises ``ValueError`` for non-numeric, non-positive amounts or amounts
    with more fractional digits than the token supports.
    """
    value = _to_decimal(amount)
    if value <= 0:
        raise ValueError("Amount must be positive.")
    with localcontext() as ctx:
        ctx.prec = _exact_precision(value, decimals)
        scaled = value.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise ValueError(
            f"Amount '{amount}' has more than {decimals} decimal places."
        )
    return int(scaled)


def from_base_units(raw: int | str, decimals: int) -> Decimal:
    """Convert integer base units to a display amount."""
    value = Decimal(int(raw))
    with localcontext() as ctx:
        ctx.prec = _exact_precision(value, decimals)
        return value.scaleb(-decimals)


def format_amount(value: Decimal | str | int, places: int) -> str:
    """Fixed-point string with *places* decimals, rounded half-up."""
    quantum = Decimal(1).scaleb(-places)
    return str(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))
