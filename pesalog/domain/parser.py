"""Dialect matcher - turns message text into typed ParsedRecords"""

import hashlib
import logging
import re
from datetime import datetime
from typing import Callable, Dict, Optional

from pesalog.config import settings
from pesalog.domain.dialects import Dialect, DialectLibrary
from pesalog.domain.exceptions import MalformedCaptureError
from pesalog.domain.models import DebtFigures, DialectKind, NoMatch, ParsedRecord
from pesalog.domain.money import parse_amount_to_cents, parse_currency, parse_optional_amount
from pesalog.utils.date_utils import parse_due_date, parse_sms_date, parse_till_date

logger = logging.getLogger(__name__)

Groups = Dict[str, Optional[str]]

# Carriers wrap long messages mid-token; rejoin a 10-char reference split across lines
_WRAPPED_LEADING_REF = re.compile(r"^([A-Z0-9]{1,9})[ \t]*\r?\n[ \t]*([A-Z0-9]{1,9})(?=\s)")
_REF_FOLLOWED_BY_BREAK = re.compile(r"([A-Z0-9]{10})[ \t]*\r?\n\s*")


def normalize_body(body: str) -> str:
    """Canonicalise line breaks inside and directly after a reference token"""
    text = body.strip()
    match = _WRAPPED_LEADING_REF.match(text)
    joined = match.group(1) + match.group(2) if match else ""
    if len(joined) == 10 and any(ch.isdigit() for ch in joined):
        text = joined + text[match.end():]
    return _REF_FOLLOWED_BY_BREAK.sub(r"\1 ", text)


def card_ref_code(card_mask: str, merchant: str, when: datetime, amount_cents: int) -> str:
    """Card alerts print no reference; derive a stable one so re-delivery is a duplicate"""
    key = f"{card_mask}|{merchant.upper()}|{when.isoformat()}|{amount_cents}"
    return "CARD-" + hashlib.sha1(key.encode("utf-8")).hexdigest()[:12].upper()


class DialectMatcher:
    """Applies the dialect library in precedence order; first valid match wins"""

    def __init__(self, library: DialectLibrary | None = None, currency: str | None = None):
        self.library = library or DialectLibrary()
        self.currency = currency or settings.default_currency
        self._builders: Dict[DialectKind, Callable[[Dialect, Groups, datetime], ParsedRecord]] = {
            DialectKind.FULIZA: self._fuliza,
            DialectKind.FULIZA_AUTO_REPAYMENT: self._fuliza_auto_repayment,
            DialectKind.FULIZA_REPAYMENT: self._fuliza_repayment,
            DialectKind.MSHWARI_TRANSFER: self._mshwari_transfer,
            DialectKind.MPESA_RECEIVED: self._mpesa_received,
            DialectKind.BANK_TRANSFER: self._bank_transfer,
            DialectKind.MPESA_AIRTIME: self._mpesa_airtime,
            DialectKind.MPESA_AGENT: self._mpesa_agent,
            DialectKind.MPESA_TILL: self._mpesa_till,
            DialectKind.MPESA_PAYBILL_ALT: self._mpesa_paybill,
            DialectKind.MPESA_PAYBILL: self._mpesa_paybill,
            DialectKind.MPESA_SEND: self._mpesa_send,
            DialectKind.BANK_CONFIRMATION: self._bank_confirmation,
            DialectKind.CARD_TRANSACTION: self._card_transaction,
        }

    def parse(self, body: str, received_at: datetime | None = None) -> ParsedRecord | NoMatch:
        """
        Parse a message body.

        Dialects whose text carries no date take `received_at` (or now) as
        the transaction timestamp. A dialect that matches but yields a
        malformed amount/date is rejected exactly like a non-match.

        Returns:
            ParsedRecord on the first valid match, NoMatch otherwise
        """
        normalized = normalize_body(body)
        fallback_date = received_at or datetime.now()
        malformed: list[str] = []

        for dialect in self.library:
            found = dialect.match(normalized)
            if found is None:
                continue
            try:
                return self._build(dialect, found.groupdict(), fallback_date)
            except MalformedCaptureError as e:
                logger.warning(
                    f"Malformed {dialect.kind.value} capture: {e}",
                    extra={"dialect": dialect.kind.value},
                )
                malformed.append(f"{dialect.kind.value}: {e}")

        if malformed:
            return NoMatch(reason="Malformed capture (" + "; ".join(malformed) + ")")
        return NoMatch()

    def _build(self, dialect: Dialect, groups: Groups, fallback_date: datetime) -> ParsedRecord:
        builder = self._builders.get(dialect.kind)
        if builder is None:
            raise MalformedCaptureError(f"No record builder for {dialect.kind.value}")
        return builder(dialect, groups, fallback_date)

    def _record(self, dialect: Dialect, **fields) -> ParsedRecord:
        fields.setdefault("currency", self.currency)
        return ParsedRecord(
            kind=dialect.kind,
            transaction_type=dialect.transaction_type,
            source=dialect.source,
            **fields,
        )

    # ---- facility dialects ------------------------------------------------

    def _fuliza(self, dialect: Dialect, g: Groups, fallback_date: datetime) -> ParsedRecord:
        principal = parse_amount_to_cents(g["principal"])
        return self._record(
            dialect,
            ref_code=g["ref_code"].upper(),
            amount_cents=principal,
            counterparty="Fuliza M-Pesa",
            transaction_date=fallback_date,
            fee_cents=parse_amount_to_cents(g["fee"]),
            debt=DebtFigures(
                principal_cents=principal,
                total_outstanding_cents=parse_amount_to_cents(g["total_outstanding"]),
                due_date=parse_due_date(g["due_date"]),
            ),
        )

    def _fuliza_auto_repayment(self, dialect: Dialect, g: Groups, fallback_date: datetime) -> ParsedRecord:
        return self._record(
            dialect,
            ref_code=g["ref_code"].upper(),
            amount_cents=parse_amount_to_cents(g["amount"]),
            counterparty="Fuliza M-Pesa",
            transaction_date=fallback_date,
            balance_cents=parse_amount_to_cents(g["balance"]),
            debt=DebtFigures(
                available_limit_cents=parse_amount_to_cents(g["available_limit"]),
                payment_type=g["payment_type"].lower(),
            ),
        )

    def _fuliza_repayment(self, dialect: Dialect, g: Groups, fallback_date: datetime) -> ParsedRecord:
        return self._record(
            dialect,
            ref_code=g["ref_code"].upper(),
            amount_cents=parse_amount_to_cents(g["amount"]),
            counterparty="Fuliza M-Pesa",
            transaction_date=fallback_date,
        )

    # ---- mobile money -----------------------------------------------------

    def _mshwari_transfer(self, dialect: Dialect, g: Groups, fallback_date: datetime) -> ParsedRecord:
        return self._record(
            dialect,
            ref_code=g["ref_code"].upper(),
            amount_cents=parse_amount_to_cents(g["amount"]),
            counterparty="M-Shwari",
            transaction_date=parse_sms_date(g["date"], g["time"]),
            balance_cents=parse_optional_amount(g.get("mpesa_balance")),
        )

    def _mpesa_received(self, dialect: Dialect, g: Groups, fallback_date: datetime) -> ParsedRecord:
        return self._record(
            dialect,
            ref_code=g["ref_code"].upper(),
            amount_cents=parse_amount_to_cents(g["amount"]),
            counterparty=g["sender"].strip(),
            counterparty_phone=g.get("phone"),
            transaction_date=parse_sms_date(g["date"], g["time"]),
        )

    def _mpesa_airtime(self, dialect: Dialect, g: Groups, fallback_date: datetime) -> ParsedRecord:
        return self._record(
            dialect,
            ref_code=g["ref_code"].upper(),
            amount_cents=parse_amount_to_cents(g["amount"]),
            counterparty="Airtime",
            transaction_date=parse_sms_date(g["date"], g["time"]),
            balance_cents=parse_optional_amount(g.get("balance")),
        )

    def _mpesa_agent(self, dialect: Dialect, g: Groups, fallback_date: datetime) -> ParsedRecord:
        return self._record(
            dialect,
            ref_code=g["ref_code"].upper(),
            amount_cents=parse_amount_to_cents(g["amount"]),
            counterparty=g["agent_name"].strip(),
            transaction_date=parse_sms_date(g["date"], g["time"]),
            balance_cents=parse_amount_to_cents(g["balance"]),
        )

    def _mpesa_till(self, dialect: Dialect, g: Groups, fallback_date: datetime) -> ParsedRecord:
        return self._record(
            dialect,
            ref_code=g["ref_code"].upper(),
            amount_cents=parse_amount_to_cents(g["amount"]),
            counterparty=g["till_name"].strip(),
            counterparty_account=g["till_number"],
            transaction_date=parse_till_date(g["date"], g["time"]),
        )

    def _mpesa_paybill(self, dialect: Dialect, g: Groups, fallback_date: datetime) -> ParsedRecord:
        return self._record(
            dialect,
            ref_code=g["ref_code"].upper(),
            amount_cents=parse_amount_to_cents(g["amount"]),
            counterparty=g["paybill_name"].strip(),
            counterparty_account=g["account"],
            transaction_date=parse_sms_date(g["date"], g["time"]),
            balance_cents=parse_optional_amount(g.get("balance")),
            fee_cents=parse_optional_amount(g.get("fee")),
        )

    def _mpesa_send(self, dialect: Dialect, g: Groups, fallback_date: datetime) -> ParsedRecord:
        return self._record(
            dialect,
            ref_code=g["ref_code"].upper(),
            amount_cents=parse_amount_to_cents(g["amount"]),
            counterparty=g["recipient"].strip().rstrip("."),
            counterparty_phone=g.get("phone"),
            transaction_date=parse_sms_date(g["date"], g["time"]),
            balance_cents=parse_optional_amount(g.get("balance")),
            fee_cents=parse_optional_amount(g.get("fee")),
        )

    # ---- bank and card ----------------------------------------------------

    def _bank_transfer(self, dialect: Dialect, g: Groups, fallback_date: datetime) -> ParsedRecord:
        return self._record(
            dialect,
            ref_code=g["mpesa_ref"].upper(),
            secondary_ref_code=g.get("bank_ref"),
            amount_cents=parse_amount_to_cents(g["amount"]),
            counterparty=g["sender"].strip(),
            transaction_date=fallback_date,
        )

    def _bank_confirmation(self, dialect: Dialect, g: Groups, fallback_date: datetime) -> ParsedRecord:
        return self._record(
            dialect,
            ref_code=g["ref_code"].upper(),
            amount_cents=parse_amount_to_cents(g["amount"]),
            counterparty=g["business"].strip(),
            counterparty_account=g["account"],
            transaction_date=parse_sms_date(g["date"], g["time"]),
        )

    def _card_transaction(self, dialect: Dialect, g: Groups, fallback_date: datetime) -> ParsedRecord:
        amount = parse_amount_to_cents(g["amount"])
        merchant = g["merchant"].strip()
        when = parse_sms_date(g["date"], g["time"])
        return self._record(
            dialect,
            ref_code=card_ref_code(g["card_mask"], merchant, when, amount),
            amount_cents=amount,
            currency=parse_currency(g["currency"]),
            counterparty=merchant,
            counterparty_account=g["card_mask"],
            transaction_date=when,
            balance_cents=parse_optional_amount(g.get("balance")),
        )
