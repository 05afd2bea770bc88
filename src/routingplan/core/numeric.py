from __future__ import annotations

from decimal import ROUND_CEILING, Decimal, InvalidOperation


def to_decimal(value, default: Decimal | int = 0) -> Decimal:
    """Coerce a quantity into an exact Decimal.

    Floats go through ``str`` so 0.1 stays 0.1; ``None`` and blanks give ``default``.
    """
    if value is None:
        return Decimal(default)
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        return Decimal(int(value))
    if isinstance(value, int):
        return Decimal(value)
    s = str(value).strip()
    if not s:
        return Decimal(default)
    try:
        return Decimal(s)
    except InvalidOperation as exc:
        raise ValueError(f"invalid decimal: {value!r}") from exc


def ceil_div(qty: Decimal, divisor: Decimal) -> Decimal:
    """Exact ceiling of ``qty / divisor`` as an integral Decimal."""
    if divisor <= 0:
        raise ValueError(f"divisor must be positive: {divisor}")
    return (Decimal(qty) / Decimal(divisor)).to_integral_value(rounding=ROUND_CEILING)


def max_duration(durations: list[int]) -> int:
    return max(durations) if durations else 0


def to_seconds(value: Decimal | int) -> int:
    # Truncates toward zero like a long conversion.
    return int(value)
