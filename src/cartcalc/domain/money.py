"""Decimal money helpers.

Amounts are ``Decimal`` throughout. A cart carries two precisions: the
display precision used for report values, and a higher calculator
precision that every intermediate subtotal is rounded to before it feeds
the next formula. Rounding is half-up, matching common currency display.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

ZERO = Decimal("0")

DEFAULT_PRECISION = 2
DEFAULT_CALCULATOR_PRECISION = 4


def to_decimal(value: object) -> Decimal:
    """Coerce *value* to ``Decimal``.

    Floats go through ``str`` so that ``0.07025`` stays ``0.07025`` rather
    than its binary expansion. ``None`` and the empty string are zero.

    Raises:
        ValueError: If *value* cannot be read as a finite number.
    """
    if isinstance(value, bool):
        return Decimal(int(value))
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, Decimal):
        result = value
    elif value is None or value == "":
        return ZERO
    elif isinstance(value, float):
        result = Decimal(str(value))
    else:
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation as exc:
            msg = f"Not a decimal amount: {value!r}"
            raise ValueError(msg) from exc
    if not result.is_finite():
        msg = f"Not a finite amount: {value!r}"
        raise ValueError(msg)
    return result


def quantize(value: object, places: int) -> Decimal:
    """Round *value* half-up to *places* fractional digits."""
    exponent = Decimal(1).scaleb(-places)
    result = to_decimal(value).quantize(exponent, rounding=ROUND_HALF_UP)
    if result.is_zero():
        return result.copy_abs()
    return result


def format_amount(value: object, places: int) -> str:
    """Fixed-point string with exactly *places* digits and no separators.

    Examples:
        >>> format_amount("112.49", 2)
        '112.49'
        >>> format_amount(Decimal("70.2500"), 2)
        '70.25'
        >>> format_amount(20, 2)
        '20.00'
    """
    return f"{quantize(value, places):f}"
