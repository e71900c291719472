"""Merge rule for messages that share a reference code"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Sequence

from pesalog.domain.models import DialectKind, MergedFields, NoMatch, ParsedRecord, SourceChannel


@dataclass(frozen=True)
class LinkedMessage:
    """One member of a linked group, already re-parsed"""

    raw_message_id: int
    received_at: datetime
    parsed: ParsedRecord | NoMatch


def is_authoritative(record: ParsedRecord) -> bool:
    """Mobile money settles the money; its amount/date/fee win"""
    return record.source == SourceChannel.MOBILE_MONEY


def merge_linked_messages(messages: Sequence[LinkedMessage]) -> MergedFields:
    """
    Re-derive merged fields from scratch for a linked group.

    Rules:
    - Mobile-money records are authoritative for reference, amount, date,
      fee, counterparty and account (later receipts override earlier ones)
    - Other records only fill fields still missing
    - A bank confirmation overrides the counterparty when its name is
      strictly longer (paybill short names vs. full business names)

    Authoritative records are applied first so arrival order never
    changes the outcome.
    """
    ordered = sorted(messages, key=lambda m: (m.received_at, m.raw_message_id))
    records: List[ParsedRecord] = [m.parsed for m in ordered if isinstance(m.parsed, ParsedRecord)]
    merged = MergedFields(source_message_ids=[m.raw_message_id for m in ordered])

    for record in records:
        if not is_authoritative(record):
            continue
        merged.ref_code = record.ref_code
        merged.amount_cents = record.amount_cents
        merged.transaction_date = record.transaction_date
        merged.counterparty = record.counterparty
        if record.fee_cents is not None:
            merged.fee_cents = record.fee_cents
        if record.counterparty_account:
            merged.account = record.counterparty_account

    for record in records:
        if is_authoritative(record):
            continue
        merged.ref_code = merged.ref_code or record.ref_code
        merged.amount_cents = merged.amount_cents or record.amount_cents
        merged.transaction_date = merged.transaction_date or record.transaction_date
        if merged.fee_cents is None:
            merged.fee_cents = record.fee_cents
        if not merged.account:
            merged.account = record.counterparty_account

        if record.kind == DialectKind.BANK_CONFIRMATION:
            if record.counterparty and len(record.counterparty) > len(merged.counterparty):
                merged.counterparty = record.counterparty
        elif not merged.counterparty:
            merged.counterparty = record.counterparty

    return merged
