"""Money helpers shared by the validator, allocation engine and API.

Amounts are ``Decimal`` values internally. They are rounded to cents
at the edges: when an extracted receipt is validated, in JSON output
and in persisted records.
"""

from __future__ import annotations

import logging
import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
CENT = Decimal("0.01")

# Absolute tolerance for every "approximately equal" money comparison
MONEY_TOLERANCE = Decimal("0.02")

_NON_NUMERIC = re.compile(r"[^\d.,]")
_LEADING_NUMBER = re.compile(r"^\d*(?:\.\d*)?")
# A string that is nothing but an amount, e.g. "5", "$5.00", "1,234.50 EUR"
_MONEY_LITERAL = re.compile(
    r"^\s*(?:[$€£¥₹]|[A-Z]{3})?\s*(?:\d[\d,]*(?:\.\d+)?|\.\d+)\s*(?:[A-Z]{3})?\s*$"
)


def _normalise_separators(digits: str) -> str:
    """Resolve comma/period usage into a single decimal point."""
    has_comma = "," in digits
    has_period = "." in digits
    if has_comma and has_period:
        # The right-most separator is the decimal point, the other is grouping
        if digits.rfind(",") > digits.rfind("."):
            return digits.replace(".", "").replace(",", ".")
        return digits.replace(",", "")
    if has_comma:
        return digits.replace(",", ".")
    return digits


def coerce_money(value: Any, field: str = "amount") -> Decimal:
    """Coerce an extracted value to a non-negative ``Decimal``.

    Strings are stripped of everything but digits, commas and periods
    before parsing. Booleans, ``None`` and anything unparseable become
    zero; a note is logged when a present value had to be discarded.
    """
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        return value if value.is_finite() and value > ZERO else ZERO
    if isinstance(value, (int, float)):
        try:
            amount = Decimal(str(value))
        except InvalidOperation:
            amount = ZERO
        if not amount.is_finite():
            logger.info("[money] malformed %s value %r coerced to 0", field, value)
            return ZERO
        return amount if amount > ZERO else ZERO
    if isinstance(value, str):
        cleaned = _normalise_separators(_NON_NUMERIC.sub("", value))
        match = _LEADING_NUMBER.match(cleaned)
        number = match.group(0) if match else ""
        if number in ("", "."):
            if value.strip():
                logger.info("[money] malformed %s value %r coerced to 0", field, value)
            return ZERO
        if number.endswith("."):
            number = number[:-1]
        if number.startswith("."):
            number = "0" + number
        return Decimal(number)
    logger.info("[money] unsupported %s value type %s coerced to 0", field, type(value).__name__)
    return ZERO


def is_money_like(value: Any) -> bool:
    """Return True for numbers and strings that consist solely of an amount."""
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float, Decimal)):
        return True
    if isinstance(value, str):
        return bool(_MONEY_LITERAL.match(value))
    return False


def round_money(value: Decimal) -> Decimal:
    """Round to cents using half-up, the way receipts are printed."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def money_sum(values: Iterable[Decimal]) -> Decimal:
    return sum(values, ZERO)


def money_close(a: Decimal, b: Decimal, tolerance: Decimal = MONEY_TOLERANCE) -> bool:
    """Return True when ``a`` and ``b`` differ by no more than ``tolerance``."""
    return abs(a - b) <= tolerance


def money_fmt(value: Decimal) -> str:
    """Format an amount with exactly two decimals (no currency symbol)."""
    return f"{round_money(value):.2f}"
