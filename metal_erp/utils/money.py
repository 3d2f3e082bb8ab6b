"""
Numeric helpers shared by the record schemas and the ledger services.

Stored data comes from spreadsheets and older clients, so amounts may be
missing, strings with separators, or NaN. Nothing here raises: anything that
can't be read as a finite number becomes zero.
"""
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from metal_erp.core.config import settings

ZERO = Decimal("0")

_NON_NUMERIC = re.compile(r"[^\d.\-]")


def _normalise_separators(text: str) -> str:
    """
    "1 250,50" and "1,250.50" both mean 1250.50: with both marks present the
    later one is the decimal point, a lone comma is one too.
    """
    if "," in text and "." in text:
        if text.rfind(",") > text.rfind("."):
            return text.replace(".", "").replace(",", ".")
        return text.replace(",", "")
    return text.replace(",", ".")


def to_decimal(value: Any) -> Decimal:
    """Coerce value to a finite Decimal; unreadable values become 0."""
    if value is None or isinstance(value, bool):
        return ZERO

    if isinstance(value, Decimal):
        return value if value.is_finite() else ZERO

    if isinstance(value, (int, float)):
        try:
            parsed = Decimal(str(value))
        except InvalidOperation:
            return ZERO
        return parsed if parsed.is_finite() else ZERO

    if isinstance(value, str):
        cleaned = _NON_NUMERIC.sub("", _normalise_separators(value))
        if not cleaned:
            return ZERO
        try:
            parsed = Decimal(cleaned)
        except InvalidOperation:
            return ZERO
        return parsed if parsed.is_finite() else ZERO

    return ZERO


def to_optional_decimal(value: Any) -> Optional[Decimal]:
    """Like to_decimal, but keeps None (and blank strings) as None."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return to_decimal(value)


def safe_rate(rate: Any, default_rate: Any = None) -> Decimal:
    """
    Pick a usable UZS-per-USD rate.

    A stored snapshot rate wins when it is plausible (above MIN_PLAUSIBLE_RATE);
    otherwise the given default is used, and if that is implausible too the
    configured DEFAULT_EXCHANGE_RATE.
    """
    floor = settings.MIN_PLAUSIBLE_RATE
    fallback = to_decimal(default_rate)
    if fallback <= floor:
        fallback = settings.DEFAULT_EXCHANGE_RATE

    r = to_decimal(rate)
    return r if r > floor else fallback
