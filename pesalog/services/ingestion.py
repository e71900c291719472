"""Ingestion pipeline - filter, parse, de-duplicate, link, persist, route"""

import logging
import threading
import time
from dataclasses import asdict, dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pesalog.domain.exceptions import PersistenceError
from pesalog.domain.linking import is_authoritative
from pesalog.domain.message_filter import MessageFilter
from pesalog.domain.models import (
    DialectKind,
    MergedFields,
    NoMatch,
    ParsedRecord,
    SourceChannel,
    TransactionStatus,
)
from pesalog.domain.parser import DialectMatcher
from pesalog.infrastructure.database.models import LedgerTransaction, RawMessage
from pesalog.infrastructure.database.repositories import RawMessageRepository, TransactionRepository
from pesalog.infrastructure.observability.logging import log_import_summary, log_message_outcome
from pesalog.infrastructure.observability.metrics import import_duration_histogram, record_outcome
from pesalog.services.debts import DebtReconciler
from pesalog.services.linker import ReferenceLinker
from pesalog.utils.date_utils import to_naive_local

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


class OutcomeStatus(str, Enum):
    NOT_FINANCIAL = "not_financial"
    FAILED_TRANSACTION_SKIPPED = "failed_transaction_skipped"
    PARSE_FAILED = "parse_failed"
    DUPLICATE = "duplicate"
    PROCESSED = "processed"


@dataclass(frozen=True)
class InboundMessage:
    """One (sender, body, timestamp) tuple from the push or pull channel"""

    sender: str
    body: str
    timestamp: datetime


@dataclass(frozen=True)
class ProcessingOutcome:
    status: OutcomeStatus
    raw_message_id: Optional[int] = None
    transaction_id: Optional[int] = None
    needs_classification: bool = False
    is_person_to_person: bool = False
    dialect: Optional[DialectKind] = None
    reason: Optional[str] = None


@dataclass
class ImportSummary:
    """Aggregate counts for a batch; per-message errors are not surfaced"""

    total: int = 0
    processed: int = 0
    duplicates: int = 0
    failed: int = 0  # no dialect matched
    skipped: int = 0  # not financial or failed transaction
    errors: int = 0  # persistence failures, skipped and counted
    cancelled: bool = False
    last_processed_at: Optional[datetime] = None


class IngestionPipeline:
    """
    Orchestrates one message end to end.

    Every call is one unit of work: raw message status, transaction and
    debt mutations commit together or roll back together. A process-wide
    lock serialises the duplicate check so the push and pull channels
    cannot both insert the same event.
    """

    def __init__(
        self,
        matcher: DialectMatcher,
        message_filter: MessageFilter,
        linker: ReferenceLinker,
        reconciler: DebtReconciler,
    ):
        self.matcher = matcher
        self.message_filter = message_filter
        self.linker = linker
        self.reconciler = reconciler
        self._lock = threading.Lock()

    def process_message(
        self,
        db: Session,
        sender: str,
        body: str,
        timestamp: datetime | None = None,
    ) -> ProcessingOutcome:
        """
        Process one inbound message.

        Raises:
            PersistenceError: the store rejected a write (unit of work rolled back)
        """
        start_time = time.time()
        received_at = to_naive_local(timestamp or datetime.now())

        with self._lock:
            try:
                outcome = self._process(db, sender, body, received_at)
                db.commit()
            except SQLAlchemyError as e:
                db.rollback()
                record_outcome("error")
                logger.error(f"Persistence failure while processing message: {e}", extra={"sender": sender})
                raise PersistenceError(str(e)) from e
            except Exception:
                db.rollback()
                raise

        dialect = outcome.dialect.value if outcome.dialect else None
        record_outcome(outcome.status.value, dialect)
        log_message_outcome(
            outcome.status.value,
            outcome.raw_message_id,
            outcome.transaction_id,
            dialect,
            (time.time() - start_time) * 1000,
        )
        return outcome

    def _process(self, db: Session, sender: str, body: str, received_at: datetime) -> ProcessingOutcome:
        # 1. Filter gate; failed transactions never reach storage
        if not self.message_filter.should_process(sender, body):
            return ProcessingOutcome(OutcomeStatus.NOT_FINANCIAL, reason="Not a financial message")
        if self.message_filter.is_failed_transaction(body):
            return ProcessingOutcome(
                OutcomeStatus.FAILED_TRANSACTION_SKIPPED, reason="Failed transaction - skipped"
            )

        # 2. Store raw message
        messages = RawMessageRepository(db)
        raw = messages.create(sender, body, received_at)

        # 3. Parse
        parsed = self.matcher.parse(body, received_at)
        if isinstance(parsed, NoMatch):
            messages.mark_failed(raw, parsed.reason)
            return ProcessingOutcome(OutcomeStatus.PARSE_FAILED, raw_message_id=raw.id, reason=parsed.reason)

        # 4. Duplicate / related message
        transactions = TransactionRepository(db)
        existing = transactions.get_by_ref_code(parsed.ref_code)
        if existing:
            merged = self.linker.link(db, raw.id, body)
            if merged and raw.linked_ref_code:
                self.linker.attach_transaction(db, raw.linked_ref_code, existing.id)
            self._enrich_existing(existing, parsed, merged)
            messages.mark_parsed(raw, parsed.ref_code)
            return ProcessingOutcome(
                OutcomeStatus.DUPLICATE,
                raw_message_id=raw.id,
                transaction_id=existing.id,
                dialect=parsed.kind,
            )

        # 5. Debt events are routed to the reconciler and auto-classified.
        #    A dropped repayment leaves no transaction, only a parsed message.
        if parsed.is_debt_draw or parsed.is_debt_repayment:
            if messages.has_parsed(parsed.ref_code, exclude_id=raw.id):
                messages.mark_parsed(raw, parsed.ref_code)
                return ProcessingOutcome(
                    OutcomeStatus.DUPLICATE,
                    raw_message_id=raw.id,
                    dialect=parsed.kind,
                    reason="Debt event already handled",
                )
            return self._route_debt_event(db, raw, parsed)

        # 6. Regular transaction, enriched from any linked messages
        merged = self.linker.link(db, raw.id, body)
        transaction = self._create_transaction(transactions, raw, parsed, merged)
        if merged and raw.linked_ref_code:
            self.linker.attach_transaction(db, raw.linked_ref_code, transaction.id)
        messages.mark_parsed(raw, parsed.ref_code)

        return ProcessingOutcome(
            OutcomeStatus.PROCESSED,
            raw_message_id=raw.id,
            transaction_id=transaction.id,
            needs_classification=transaction.status == TransactionStatus.PENDING_CLASSIFICATION.value,
            is_person_to_person=parsed.is_person_to_person,
            dialect=parsed.kind,
        )

    def _route_debt_event(self, db: Session, raw: RawMessage, parsed: ParsedRecord) -> ProcessingOutcome:
        if parsed.is_debt_draw:
            transaction = self.reconciler.apply_draw(db, parsed, raw.id)
        else:
            transaction = self.reconciler.apply_repayment(db, parsed, raw.id)

        RawMessageRepository(db).mark_parsed(raw, parsed.ref_code)
        return ProcessingOutcome(
            OutcomeStatus.PROCESSED,
            raw_message_id=raw.id,
            transaction_id=transaction.id if transaction else None,
            needs_classification=False,
            is_person_to_person=False,
            dialect=parsed.kind,
            reason=None if transaction else "No open facility for repayment",
        )

    def _create_transaction(
        self,
        transactions: TransactionRepository,
        raw: RawMessage,
        parsed: ParsedRecord,
        merged: MergedFields | None,
    ) -> LedgerTransaction:
        counterparty = (merged.counterparty if merged else "") or parsed.counterparty
        account = (merged.account if merged else None) or parsed.counterparty_account
        return transactions.create(
            primary_ref_code=parsed.ref_code,
            secondary_ref_code=parsed.secondary_ref_code,
            type=parsed.transaction_type.value,
            source=parsed.source.value,
            amount_cents=parsed.amount_cents,
            currency=parsed.currency,
            fee_cents=parsed.fee_cents or 0,
            counterparty=counterparty,
            counterparty_phone=parsed.counterparty_phone,
            counterparty_account=account,
            balance_after_cents=parsed.balance_cents,
            transaction_date=parsed.transaction_date,
            raw_message_id=raw.id,
            status=TransactionStatus.PENDING_CLASSIFICATION.value,
            is_auto_classified=False,
        )

    def _enrich_existing(
        self,
        existing: LedgerTransaction,
        parsed: ParsedRecord,
        merged: MergedFields | None,
    ) -> None:
        """
        Fold a related message into an existing transaction.

        A bank confirmation may carry a fuller display name. A mobile-money
        receipt arriving after a bank-sourced entry replaces its amount,
        date and fee. A missing account is filled from any message.
        """
        if existing.status == TransactionStatus.ARCHIVED.value:
            return

        if merged and is_authoritative(parsed) and existing.source != SourceChannel.MOBILE_MONEY.value:
            existing.amount_cents = merged.amount_cents
            existing.transaction_date = merged.transaction_date
            existing.source = parsed.source.value
            if merged.fee_cents is not None:
                existing.fee_cents = merged.fee_cents

        if parsed.kind == DialectKind.BANK_CONFIRMATION:
            candidate = (merged.counterparty if merged else "") or parsed.counterparty
            if candidate and len(candidate) > len(existing.counterparty or ""):
                existing.counterparty = candidate

        if not existing.counterparty_account:
            existing.counterparty_account = (merged.account if merged else None) or parsed.counterparty_account

    def import_historical(
        self,
        db: Session,
        messages: Iterable[InboundMessage],
        progress: ProgressCallback | None = None,
        cancel_event: threading.Event | None = None,
    ) -> ImportSummary:
        """
        Replay a batch of messages.

        Precondition enforced here: messages are applied oldest first, since
        linking and debt accumulation are order-sensitive. Cancellation is
        checked between messages; a message in flight always completes.
        A persistence failure skips that message and is counted in `errors`.
        """
        start_time = time.time()
        ordered = sorted(messages, key=lambda m: to_naive_local(m.timestamp))
        summary = ImportSummary(total=len(ordered))

        with import_duration_histogram.time():
            for index, message in enumerate(ordered, start=1):
                if cancel_event is not None and cancel_event.is_set():
                    summary.cancelled = True
                    break

                try:
                    outcome = self.process_message(db, message.sender, message.body, message.timestamp)
                except PersistenceError:
                    summary.errors += 1
                else:
                    self._count(summary, outcome)
                    summary.last_processed_at = to_naive_local(message.timestamp)

                if progress is not None:
                    progress(index, summary.total)

        log_import_summary(asdict(summary), (time.time() - start_time) * 1000)
        return summary

    @staticmethod
    def _count(summary: ImportSummary, outcome: ProcessingOutcome) -> None:
        if outcome.status == OutcomeStatus.PROCESSED:
            summary.processed += 1
        elif outcome.status == OutcomeStatus.DUPLICATE:
            summary.duplicates += 1
        elif outcome.status == OutcomeStatus.PARSE_FAILED:
            summary.failed += 1
        else:
            summary.skipped += 1
