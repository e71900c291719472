"""Debt ledger reconciler - overdraft facility and peer debt state machines"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from pesalog.config import settings
from pesalog.domain.debts import apply_repayment, status_after_draw, sweep_status
from pesalog.domain.exceptions import DebtNotFoundError
from pesalog.domain.models import (
    DebtKind,
    DebtStatus,
    ParsedRecord,
    SourceChannel,
    TransactionStatus,
    TransactionType,
)
from pesalog.infrastructure.database.models import Debt, DebtPayment, LedgerTransaction
from pesalog.infrastructure.database.repositories import (
    CategoryRepository,
    DebtRepository,
    TransactionRepository,
)
from pesalog.infrastructure.observability.metrics import debt_event_counter
from pesalog.utils.date_utils import days_until_due, is_overdue

logger = logging.getLogger(__name__)

FACILITY_SOURCE = "M-Pesa Fuliza"
PEER_DEBT_KINDS = (DebtKind.OWED_TO_PERSON, DebtKind.OWED_BY_PERSON)


@dataclass
class FacilitySummary:
    outstanding_cents: int = 0
    due_date: Optional[datetime] = None
    is_overdue: bool = False
    days_until_due: Optional[int] = None


@dataclass
class PeerDebtItem:
    debt_id: int
    counterparty: str
    outstanding_cents: int


@dataclass
class PeerDebtTotals:
    total_cents: int = 0
    count: int = 0
    items: List[PeerDebtItem] = field(default_factory=list)


@dataclass
class DebtSummary:
    """Dashboard view of open debts"""

    facility: FacilitySummary
    owed_by_others: PeerDebtTotals
    owed_to_others: PeerDebtTotals


class DebtReconciler:
    """
    Applies draw, repayment and manual events to debts.

    Stateless: all state lives in the store. Methods flush but never commit;
    the caller owns the unit of work.
    """

    def _facility_transaction(
        self,
        db: Session,
        record: ParsedRecord,
        raw_message_id: int | None,
        transaction_type: TransactionType,
        amount_cents: int,
        fee_cents: int = 0,
    ) -> LedgerTransaction:
        category = CategoryRepository(db).ensure_system_categories()
        return TransactionRepository(db).create(
            primary_ref_code=record.ref_code,
            type=transaction_type.value,
            source=SourceChannel.MOBILE_MONEY.value,
            amount_cents=amount_cents,
            currency=record.currency,
            fee_cents=fee_cents,
            counterparty=record.counterparty,
            category_id=category.id,
            is_auto_classified=True,
            confidence=1.0,
            balance_after_cents=record.balance_cents,
            transaction_date=record.transaction_date,
            raw_message_id=raw_message_id,
            status=TransactionStatus.CLASSIFIED.value,
        )

    def apply_draw(
        self,
        db: Session,
        record: ParsedRecord,
        raw_message_id: int | None = None,
        now: datetime | None = None,
    ) -> LedgerTransaction:
        """
        Apply a facility draw.

        The message reports the authoritative new total outstanding, not a
        delta. An open facility is updated in place (fees accumulate, due
        date refreshes); otherwise a new facility debt is opened.
        """
        now = now or datetime.now()
        figures = record.debt
        fee = record.fee_cents or 0
        debts = DebtRepository(db)

        transaction = self._facility_transaction(
            db, record, raw_message_id, TransactionType.DEBT, record.amount_cents, fee
        )

        facility = debts.find_open(DebtKind.REVOLVING_FACILITY)
        if facility:
            facility.total_outstanding_cents = figures.total_outstanding_cents
            facility.last_draw_cents = figures.principal_cents
            facility.fees_charged_cents = (facility.fees_charged_cents or 0) + fee
            facility.due_date = figures.due_date
            facility.status = status_after_draw(DebtStatus(facility.status), figures.due_date, now).value
            db.flush()
        else:
            facility = debts.create(
                kind=DebtKind.REVOLVING_FACILITY.value,
                source=FACILITY_SOURCE,
                principal_cents=figures.principal_cents,
                fees_charged_cents=fee,
                total_outstanding_cents=figures.total_outstanding_cents,
                last_draw_cents=figures.principal_cents,
                created_date=record.transaction_date,
                due_date=figures.due_date,
                status=DebtStatus.ACTIVE.value,
                original_transaction_id=transaction.id,
            )

        debt_event_counter.labels(event="draw").inc()
        logger.info(
            "Facility draw applied",
            extra={
                "debt_id": facility.id,
                "ref_code": record.ref_code,
                "total_outstanding_cents": facility.total_outstanding_cents,
            },
        )
        return transaction

    def apply_repayment(
        self,
        db: Session,
        record: ParsedRecord,
        raw_message_id: int | None = None,
    ) -> Optional[LedgerTransaction]:
        """
        Apply a facility repayment.

        With no open facility the event is dropped with a warning: a
        historical import can legitimately start mid-lifecycle.
        """
        debts = DebtRepository(db)
        facility = debts.find_open(DebtKind.REVOLVING_FACILITY)
        if facility is None:
            debt_event_counter.labels(event="repayment_dropped").inc()
            logger.warning(
                "No open facility debt found for repayment",
                extra={"ref_code": record.ref_code, "amount_cents": record.amount_cents},
            )
            return None

        transaction = self._facility_transaction(
            db, record, raw_message_id, TransactionType.DEBT_REPAYMENT, record.amount_cents
        )
        self._apply_payment(
            db,
            facility,
            record.amount_cents,
            record.transaction_date,
            transaction_id=transaction.id,
            notes="Auto-detected facility repayment",
        )
        debt_event_counter.labels(event="repayment").inc()
        return transaction

    def _apply_payment(
        self,
        db: Session,
        debt: Debt,
        amount_cents: int,
        payment_date: datetime,
        transaction_id: int | None = None,
        notes: str | None = None,
    ) -> DebtPayment:
        payment = DebtRepository(db).add_payment(debt, amount_cents, payment_date, transaction_id, notes)
        outstanding, status = apply_repayment(
            debt.total_outstanding_cents, amount_cents, DebtStatus(debt.status)
        )
        debt.total_outstanding_cents = outstanding
        debt.status = status.value
        db.flush()
        return payment

    def create_peer_debt(
        self,
        db: Session,
        kind: DebtKind,
        amount_cents: int,
        counterparty: str,
        counterparty_phone: str | None = None,
        transaction_id: int | None = None,
        due_date: datetime | None = None,
        notes: str | None = None,
    ) -> Debt:
        """Record money lent (owed_by_person) or borrowed (owed_to_person)"""
        if kind not in PEER_DEBT_KINDS:
            raise ValueError(f"Not a peer debt kind: {kind.value}")
        return DebtRepository(db).create(
            kind=kind.value,
            principal_cents=amount_cents,
            total_outstanding_cents=amount_cents,
            fees_charged_cents=0,
            counterparty=counterparty,
            counterparty_phone=counterparty_phone,
            created_date=datetime.now(),
            due_date=due_date,
            original_transaction_id=transaction_id,
            status=DebtStatus.ACTIVE.value,
            notes=notes,
        )

    def _require(self, db: Session, debt_id: int) -> Debt:
        debt = DebtRepository(db).get(debt_id)
        if debt is None:
            raise DebtNotFoundError(f"Debt {debt_id} not found")
        return debt

    def record_payment(
        self,
        db: Session,
        debt_id: int,
        amount_cents: int,
        transaction_id: int | None = None,
        notes: str | None = None,
    ) -> Debt:
        """Manual payment against any debt"""
        debt = self._require(db, debt_id)
        self._apply_payment(db, debt, amount_cents, datetime.now(), transaction_id, notes)
        debt_event_counter.labels(event="manual_payment").inc()
        return debt

    def mark_paid(self, db: Session, debt_id: int) -> Debt:
        debt = self._require(db, debt_id)
        debt.total_outstanding_cents = 0
        debt.status = DebtStatus.PAID.value
        db.flush()
        return debt

    def write_off(self, db: Session, debt_id: int) -> Debt:
        """Forgiven/uncollectible: status changes, the balance is kept for reporting"""
        debt = self._require(db, debt_id)
        debt.status = DebtStatus.WRITTEN_OFF.value
        db.flush()
        return debt

    def sweep_overdue(self, db: Session, now: datetime | None = None) -> List[Debt]:
        """Promote active/partially paid debts past their due date to overdue"""
        now = now or datetime.now()
        promoted: List[Debt] = []
        for debt in DebtRepository(db).list_sweepable():
            new_status = sweep_status(DebtStatus(debt.status), debt.due_date, now)
            if new_status.value != debt.status:
                debt.status = new_status.value
                promoted.append(debt)
        db.flush()
        if promoted:
            debt_event_counter.labels(event="overdue").inc(len(promoted))
            logger.info("Debts marked overdue", extra={"debt_ids": [d.id for d in promoted]})
        return promoted

    def active_debts(self, db: Session) -> List[Debt]:
        return DebtRepository(db).list_open()

    def due_soon(self, db: Session, days: int | None = None, now: datetime | None = None) -> List[Debt]:
        """Open debts falling due within `days` (not yet overdue)"""
        now = now or datetime.now()
        horizon = now + timedelta(days=settings.due_soon_days if days is None else days)
        return [
            debt
            for debt in DebtRepository(db).list_sweepable()
            if now <= debt.due_date <= horizon
        ]

    def total_facility_fees(self, db: Session) -> int:
        return DebtRepository(db).total_fees(DebtKind.REVOLVING_FACILITY)

    def get_with_payments(self, db: Session, debt_id: int) -> Tuple[Debt, List[DebtPayment]]:
        debt = self._require(db, debt_id)
        return debt, DebtRepository(db).payments_for(debt_id)

    def summary(self, db: Session, now: datetime | None = None) -> DebtSummary:
        open_debts = DebtRepository(db).list_open()

        facility = FacilitySummary()
        facility_debt = next((d for d in open_debts if d.kind == DebtKind.REVOLVING_FACILITY.value), None)
        if facility_debt:
            facility = FacilitySummary(
                outstanding_cents=facility_debt.total_outstanding_cents,
                due_date=facility_debt.due_date,
                is_overdue=bool(facility_debt.due_date and is_overdue(facility_debt.due_date, now)),
                days_until_due=days_until_due(facility_debt.due_date, now) if facility_debt.due_date else None,
            )

        def totals(kind: DebtKind) -> PeerDebtTotals:
            matching = [d for d in open_debts if d.kind == kind.value]
            return PeerDebtTotals(
                total_cents=sum(d.total_outstanding_cents for d in matching),
                count=len(matching),
                items=[
                    PeerDebtItem(d.id, d.counterparty or "Unknown", d.total_outstanding_cents)
                    for d in matching
                ],
            )

        return DebtSummary(
            facility=facility,
            owed_by_others=totals(DebtKind.OWED_BY_PERSON),
            owed_to_others=totals(DebtKind.OWED_TO_PERSON),
        )
