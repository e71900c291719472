"""Amount parsing - every amount is an integer count of minor units (cents)"""

import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from pesalog.domain.exceptions import InvalidAmountError

_AMOUNT_SHAPE = re.compile(r"^(?:\d{1,3}(?:,\d{3})+|\d+)(?:\.\d+)?$")
_ONE_CENT = Decimal("0.01")


def parse_amount_to_cents(amount_str: str) -> int:
    """
    Parse a message amount into integer cents.

    Thousands separators must group by three and are then stripped; a
    trailing separator left by the capture is ignored. The value is rounded
    half-up to the nearest cent. Decimal arithmetic only; no float ever
    touches the value.

    Examples:
        "330.00"   -> 33000
        "1,234.56" -> 123456
        "670.0"    -> 67000
        "7.175"    -> 718

    Raises:
        InvalidAmountError: empty, negative, non-numeric or misgrouped input
    """
    if amount_str is None:
        raise InvalidAmountError("Amount is missing")

    text = amount_str.strip().rstrip(",")
    if not _AMOUNT_SHAPE.match(text):
        raise InvalidAmountError(f"Not an amount: {amount_str!r}")
    cleaned = text.replace(",", "")

    try:
        value = Decimal(cleaned).quantize(_ONE_CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation as e:
        raise InvalidAmountError(f"Not an amount: {amount_str!r}") from e

    cents = value * 100
    if cents != cents.to_integral_value():
        raise InvalidAmountError(f"Amount does not resolve to whole cents: {amount_str!r}")
    return int(cents)


def parse_optional_amount(amount_str: str | None) -> int | None:
    """Parse an optional capture; absent stays absent"""
    if amount_str is None or not amount_str.strip():
        return None
    return parse_amount_to_cents(amount_str)


def parse_currency(text: str) -> str:
    """Normalise a currency marker (KES, Ksh, USD, $...) to an ISO code"""
    normalized = text.upper().strip()
    if "USD" in normalized or "$" in normalized:
        return "USD"
    if "EUR" in normalized:
        return "EUR"
    if "GBP" in normalized:
        return "GBP"
    return "KES"
