"""Unit tests for the linked-message merge rule"""

from datetime import datetime

from pesalog.domain.linking import LinkedMessage, is_authoritative, merge_linked_messages
from pesalog.domain.models import DialectKind, NoMatch, ParsedRecord, SourceChannel, TransactionType

PAYBILL_DATE = datetime(2026, 1, 3, 19, 41)


def paybill_record(**overrides) -> ParsedRecord:
    fields = dict(
        kind=DialectKind.MPESA_PAYBILL_ALT,
        transaction_type=TransactionType.EXPENSE,
        source=SourceChannel.MOBILE_MONEY,
        ref_code="UA33H2XY8R",
        amount_cents=500000,
        currency="KES",
        counterparty="KCB Paybill A/C",
        transaction_date=PAYBILL_DATE,
        counterparty_account="5249110087145733",
    )
    fields.update(overrides)
    return ParsedRecord(**fields)


def confirmation_record(**overrides) -> ParsedRecord:
    fields = dict(
        kind=DialectKind.BANK_CONFIRMATION,
        transaction_type=TransactionType.EXPENSE,
        source=SourceChannel.BANK,
        ref_code="UA33H2XY8R",
        amount_cents=499999,
        currency="KES",
        counterparty="KCB PAYBILL ACCOUNT FULL NAME LTD",
        transaction_date=datetime(2026, 1, 3, 19, 45),
        counterparty_account="5249110087145733",
    )
    fields.update(overrides)
    return ParsedRecord(**fields)


def test_is_authoritative():
    assert is_authoritative(paybill_record())
    assert not is_authoritative(confirmation_record())


def test_merge_keeps_primary_amount_and_longer_name():
    merged = merge_linked_messages(
        [
            LinkedMessage(1, datetime(2026, 1, 3, 19, 41), paybill_record()),
            LinkedMessage(2, datetime(2026, 1, 3, 19, 46), confirmation_record()),
        ]
    )

    assert merged.ref_code == "UA33H2XY8R"
    assert merged.amount_cents == 500000
    assert merged.transaction_date == PAYBILL_DATE
    assert merged.counterparty == "KCB PAYBILL ACCOUNT FULL NAME LTD"
    assert merged.account == "5249110087145733"
    assert merged.source_message_ids == [1, 2]


def test_merge_is_independent_of_arrival_order():
    early_confirmation = [
        LinkedMessage(1, datetime(2026, 1, 3, 19, 40), confirmation_record()),
        LinkedMessage(2, datetime(2026, 1, 3, 19, 41), paybill_record()),
    ]
    late_confirmation = [
        LinkedMessage(1, datetime(2026, 1, 3, 19, 41), paybill_record()),
        LinkedMessage(2, datetime(2026, 1, 3, 19, 46), confirmation_record()),
    ]

    first = merge_linked_messages(early_confirmation)
    second = merge_linked_messages(late_confirmation)

    assert (first.amount_cents, first.transaction_date, first.counterparty) == (
        second.amount_cents,
        second.transaction_date,
        second.counterparty,
    )


def test_shorter_confirmation_name_does_not_replace():
    merged = merge_linked_messages(
        [
            LinkedMessage(1, PAYBILL_DATE, paybill_record(counterparty="KCB PAYBILL ACCOUNT FULL NAME LIMITED")),
            LinkedMessage(2, PAYBILL_DATE, confirmation_record(counterparty="KCB")),
        ]
    )
    assert merged.counterparty == "KCB PAYBILL ACCOUNT FULL NAME LIMITED"


def test_later_authoritative_record_overrides_earlier():
    merged = merge_linked_messages(
        [
            LinkedMessage(1, datetime(2026, 1, 3, 19, 41), paybill_record(amount_cents=400000)),
            LinkedMessage(2, datetime(2026, 1, 3, 19, 42), paybill_record(amount_cents=500000, fee_cents=0)),
        ]
    )
    assert merged.amount_cents == 500000
    assert merged.fee_cents == 0


def test_non_authoritative_group_fills_fields():
    merged = merge_linked_messages(
        [LinkedMessage(1, PAYBILL_DATE, confirmation_record(counterparty_account=None, fee_cents=None))]
    )
    assert merged.amount_cents == 499999
    assert merged.counterparty == "KCB PAYBILL ACCOUNT FULL NAME LTD"
    assert merged.account is None


def test_unparseable_members_are_ignored():
    merged = merge_linked_messages(
        [
            LinkedMessage(1, PAYBILL_DATE, NoMatch()),
            LinkedMessage(2, PAYBILL_DATE, paybill_record()),
        ]
    )
    assert merged.amount_cents == 500000
    assert merged.source_message_ids == [1, 2]
