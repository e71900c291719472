"""Unit tests for sender classification and the message filter"""

import pytest

from pesalog.domain.message_filter import MessageFilter
from pesalog.domain.models import SenderType
from pesalog.domain.senders import classify_sender, is_financial_sender


@pytest.mark.parametrize(
    "sender,expected",
    [
        ("MPESA", SenderType.MOBILE_MONEY),
        ("M-PESA", SenderType.MOBILE_MONEY),
        ("Safaricom", SenderType.MOBILE_MONEY),
        ("KCBMPESA", SenderType.MOBILE_MONEY),  # mobile money wins over bank tokens
        ("KCB", SenderType.BANK),
        ("Equity Bank", SenderType.BANK),
        ("NCBA", SenderType.BANK),
        ("VISA", SenderType.CARD),
        ("MasterCard", SenderType.CARD),
        ("Mum", SenderType.UNKNOWN),
        ("", SenderType.UNKNOWN),
        (None, SenderType.UNKNOWN),
    ],
)
def test_classify_sender(sender, expected):
    assert classify_sender(sender) == expected


def test_is_financial_sender():
    assert is_financial_sender("MPESA")
    assert not is_financial_sender("+254712345678")


def test_should_process_known_sender_regardless_of_body():
    assert MessageFilter().should_process("MPESA", "Happy holidays from Safaricom")


def test_should_process_unknown_sender_needs_keywords():
    message_filter = MessageFilter()
    assert message_filter.should_process("21456", "Ksh500.00 sent to JOHN DOE")
    assert not message_filter.should_process("Mum", "See you at 5pm")


@pytest.mark.parametrize(
    "body",
    [
        "Failed. You do not have enough money in your M-PESA account.",
        "Transaction declined by issuer",
        "Insufficient funds in your M-PESA account to send Ksh500.00",
        "Your request timed out. Please try again.",
        "Wrong PIN entered.",
        "Payment unsuccessful.",
        "Your transfer was not successful",
    ],
)
def test_is_failed_transaction(body):
    assert MessageFilter().is_failed_transaction(body)


def test_successful_confirmation_is_not_failed():
    body = "UAH3H46D7H Confirmed. Ksh330.00 sent to EDWARD KAMAU 0718824980 on 17/1/26 at 5:34 AM."
    assert not MessageFilter().is_failed_transaction(body)
