"""Decimal helpers. Amounts travel as strings; arithmetic happens on Decimal."""

from decimal import Decimal, InvalidOperation

from ledgersync.exceptions import ParseError


def to_decimal(value: object) -> Decimal:
    """Parse a source amount (str/int/Decimal) strictly. Floats are rejected."""
    if isinstance(value, float):
        raise ParseError(f"Refusing float amount: {value!r}")
    if isinstance(value, str):
        value = value.replace(",", "").strip()
    try:
        result = Decimal(value)  # type: ignore[arg-type]
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise ParseError(f"Invalid amount: {value!r}") from exc
    if not result.is_finite():
        raise ParseError(f"Invalid amount: {value!r}")
    return result


def format_decimal(value: Decimal) -> str:
    """Plain notation without exponent or trailing zeros ("1.50" -> "1.5")."""
    if value == 0:
        return "0"
    return format(value.normalize(), "f")


def negate(value: Decimal) -> str:
    return format_decimal(-value)
