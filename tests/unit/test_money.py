"""Unit tests for amount parsing"""

import pytest

from pesalog.domain.exceptions import InvalidAmountError, MalformedCaptureError
from pesalog.domain.money import parse_amount_to_cents, parse_currency, parse_optional_amount


@pytest.mark.parametrize(
    "text,cents",
    [
        ("330.00", 33000),
        ("1,234.56", 123456),
        ("670.0", 67000),
        ("5,000", 500000),
        ("17,000.00", 1700000),
        ("0.00", 0),
        (" 716.62 ", 71662),
        ("5,000,", 500000),
        ("1,234,567.00", 123456700),
    ],
)
def test_parse_amount_to_cents(text, cents):
    """Thousands separators are stripped, value is exact integer cents"""
    assert parse_amount_to_cents(text) == cents


def test_parse_amount_rounds_half_up():
    """Sub-cent precision rounds half-up, never through float"""
    assert parse_amount_to_cents("7.175") == 718
    assert parse_amount_to_cents("7.174") == 717


@pytest.mark.parametrize("text", ["", ",,", "abc", "-5.00", "1.2.3", None, "1,2,3", "12,34.00", "1234,567", ",500"])
def test_parse_amount_rejects_garbage(text):
    with pytest.raises(InvalidAmountError):
        parse_amount_to_cents(text)


def test_invalid_amount_is_a_malformed_capture():
    """Parser treats amount failures like any other malformed capture"""
    with pytest.raises(MalformedCaptureError):
        parse_amount_to_cents("Ksh")


def test_parse_optional_amount():
    assert parse_optional_amount(None) is None
    assert parse_optional_amount("  ") is None
    assert parse_optional_amount("1,200.00") == 120000


def test_parse_currency():
    assert parse_currency("usd") == "USD"
    assert parse_currency("Ksh") == "KES"
    assert parse_currency("KES") == "KES"
    assert parse_currency("EUR") == "EUR"
