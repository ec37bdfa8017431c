"""
Numeric coercion for ledger inputs.

Pure checks with no I/O.  Form submissions arrive as ``int``, ``float``,
``str`` or ``Decimal``; the ledgers compute exclusively in ``Decimal``.
Floats are converted through ``str()`` so that ``0.1`` becomes
``Decimal("0.1")`` rather than its binary expansion.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from mill_kernel.exceptions import InvalidQuantityError

DISPLAY_PLACES = Decimal("0.01")


def coerce_decimal(value: Any) -> Decimal | None:
    """
    Convert ``value`` to a finite ``Decimal``.

    Returns ``None`` for booleans, ``None``, non-numeric strings, NaN and
    infinities.  Never raises.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation:
            return None
    else:
        return None
    if not result.is_finite():
        return None
    return result


def to_decimal(value: Any, default: Decimal = Decimal("0")) -> Decimal:
    """Lenient conversion for stored fields; missing or junk becomes ``default``."""
    result = coerce_decimal(value)
    return default if result is None else result


def require_non_negative(value: Any, field: str) -> Decimal:
    """
    Coerce a form number that must be ``>= 0``.

    Raises:
        InvalidQuantityError: ``value`` is not a finite number, or is negative.
    """
    result = coerce_decimal(value)
    if result is None or result < 0:
        raise InvalidQuantityError(value, field=field)
    return result


def round_for_display(value: Decimal) -> Decimal:
    """2-decimal rounding for display only; ledger arithmetic never rounds."""
    return value.quantize(DISPLAY_PLACES, rounding=ROUND_HALF_UP)


def decimal_to_json(value: Decimal) -> int | float | str:
    """
    JSON-friendly number for the record store.

    Integral values become ``int``.  Fractional values become ``float``
    when the float reads back as the same Decimal, otherwise the Decimal's
    string, so a stored quantity is never truncated.
    """
    if value == value.to_integral_value():
        return int(value)
    as_float = float(value)
    if Decimal(str(as_float)) == value:
        return as_float
    return str(value)


def parse_iso_date(value: Any) -> date | None:
    """
    Read a stored date.

    Accepts ``date``/``datetime`` objects and ISO strings, including full
    timestamps (``2025-03-01T08:00:00Z`` reads as ``2025-03-01``).
    Returns ``None`` for missing or unparseable values.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            return None
    return None
