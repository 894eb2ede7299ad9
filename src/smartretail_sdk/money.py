from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

ZERO = Decimal("0.00")
CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def to_decimal(value: Decimal | int | float | str | None, default: Decimal = ZERO) -> Decimal:
    """Coerce user or wire input to Decimal; floats go through str() to avoid binary noise."""
    if value is None:
        return default
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("bool is not a money value")
    try:
        text = str(value).strip()
        if not text:
            return default
        result = Decimal(text)
    except InvalidOperation as exc:
        raise ValueError(f"not a decimal value: {value!r}") from exc
    if not result.is_finite():
        raise ValueError(f"not a finite decimal value: {value!r}")
    return result


def round2(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def format_amount(value: Decimal) -> str:
    return f"{round2(value):.2f}"
