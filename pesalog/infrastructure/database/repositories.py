"""Data access layer for ledger entities"""

from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from pesalog.config import settings
from pesalog.domain.models import DebtKind, DebtStatus, OPEN_DEBT_STATUSES, ParseStatus, SWEEPABLE_DEBT_STATUSES
from pesalog.infrastructure.database.models import (
    Category,
    Debt,
    DebtPayment,
    LedgerTransaction,
    RawMessage,
    RelatedMessage,
    UserSetting,
)


def _values(statuses) -> List[str]:
    return [s.value for s in statuses]


class RawMessageRepository:
    """Repository for ingested messages"""

    def __init__(self, db: Session):
        self.db = db

    def create(self, sender: str, body: str, received_at: datetime) -> RawMessage:
        """Persist a message as pending"""
        message = RawMessage(
            sender=sender,
            body=body,
            received_at=received_at,
            parse_status=ParseStatus.PENDING.value,
        )
        self.db.add(message)
        self.db.flush()  # Get ID without committing
        return message

    def get(self, message_id: int) -> Optional[RawMessage]:
        return self.db.get(RawMessage, message_id)

    def mark_parsed(self, message: RawMessage, ref_code: str | None = None) -> None:
        message.parse_status = ParseStatus.PARSED.value
        message.parse_error = None
        message.parsed_at = datetime.now()
        if ref_code and not message.linked_ref_code:
            message.linked_ref_code = ref_code
        self.db.flush()

    def mark_failed(self, message: RawMessage, reason: str) -> None:
        message.parse_status = ParseStatus.FAILED.value
        message.parse_error = reason
        message.parsed_at = datetime.now()
        self.db.flush()

    def set_linked_ref_code(self, message: RawMessage, ref_code: str) -> None:
        message.linked_ref_code = ref_code
        self.db.flush()

    def find_by_ref_code(self, ref_code: str, exclude_id: int | None = None) -> List[RawMessage]:
        """Messages already tagged with a reference code"""
        query = self.db.query(RawMessage).filter(RawMessage.linked_ref_code == ref_code)
        if exclude_id is not None:
            query = query.filter(RawMessage.id != exclude_id)
        return query.order_by(RawMessage.received_at, RawMessage.id).all()

    def has_parsed(self, ref_code: str, exclude_id: int | None = None) -> bool:
        """True when another message with this code was already handled"""
        query = self.db.query(RawMessage.id).filter(
            RawMessage.linked_ref_code == ref_code,
            RawMessage.parse_status == ParseStatus.PARSED.value,
        )
        if exclude_id is not None:
            query = query.filter(RawMessage.id != exclude_id)
        return query.first() is not None

    def count_by_status(self) -> Dict[str, int]:
        rows = (
            self.db.query(RawMessage.parse_status, func.count(RawMessage.id))
            .group_by(RawMessage.parse_status)
            .all()
        )
        return {status: count for status, count in rows}

    def reset_parse_status(self) -> int:
        """Put every message back to pending so it can be replayed"""
        return (
            self.db.query(RawMessage)
            .update(
                {
                    RawMessage.parse_status: ParseStatus.PENDING.value,
                    RawMessage.parse_error: None,
                    RawMessage.parsed_at: None,
                    RawMessage.linked_ref_code: None,
                },
                synchronize_session=False,
            )
        )


class TransactionRepository:
    """Repository for ledger transactions"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, transaction_id: int) -> Optional[LedgerTransaction]:
        return self.db.get(LedgerTransaction, transaction_id)

    def get_by_ref_code(self, ref_code: str) -> Optional[LedgerTransaction]:
        return (
            self.db.query(LedgerTransaction)
            .filter(LedgerTransaction.primary_ref_code == ref_code)
            .first()
        )

    def create(self, **fields) -> LedgerTransaction:
        transaction = LedgerTransaction(**fields)
        self.db.add(transaction)
        self.db.flush()
        return transaction

    def list_recent(self, status: str | None = None, limit: int = 50) -> List[LedgerTransaction]:
        """Most recent transactions, optionally filtered by lifecycle status"""
        query = self.db.query(LedgerTransaction)
        if status:
            query = query.filter(LedgerTransaction.status == status)
        return (
            query.order_by(LedgerTransaction.transaction_date.desc(), LedgerTransaction.id.desc())
            .limit(limit)
            .all()
        )


class RelatedMessageRepository:
    """Repository for message linkage edges"""

    def __init__(self, db: Session):
        self.db = db

    def link(self, first_id: int, second_id: int, ref_code: str) -> Tuple[RelatedMessage, bool]:
        """
        Create an edge between two messages, idempotently.

        The pair is stored ordered (lower id first) so (a, b) and (b, a)
        resolve to the same edge.

        Returns:
            (edge, created)
        """
        primary_id, secondary_id = min(first_id, second_id), max(first_id, second_id)
        existing = (
            self.db.query(RelatedMessage)
            .filter(
                RelatedMessage.ref_code == ref_code,
                RelatedMessage.primary_message_id == primary_id,
                RelatedMessage.secondary_message_id == secondary_id,
            )
            .first()
        )
        if existing:
            return existing, False

        edge = RelatedMessage(
            primary_message_id=primary_id,
            secondary_message_id=secondary_id,
            ref_code=ref_code,
        )
        self.db.add(edge)
        self.db.flush()
        return edge, True

    def attach_transaction(self, ref_code: str, transaction_id: int) -> int:
        """Stamp every edge for a reference code with the transaction it resolved to"""
        updated = (
            self.db.query(RelatedMessage)
            .filter(RelatedMessage.ref_code == ref_code)
            .update({RelatedMessage.transaction_id: transaction_id}, synchronize_session=False)
        )
        self.db.flush()
        return updated


class DebtRepository:
    """Repository for debts and their payment log"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, debt_id: int) -> Optional[Debt]:
        return self.db.get(Debt, debt_id)

    def find_open(self, kind: DebtKind) -> Optional[Debt]:
        """The open instance of a debt kind (there should be at most one for facilities)"""
        return (
            self.db.query(Debt)
            .filter(Debt.kind == kind.value, Debt.status.in_(_values(OPEN_DEBT_STATUSES)))
            .order_by(Debt.created_date.desc(), Debt.id.desc())
            .first()
        )

    def create(self, **fields) -> Debt:
        debt = Debt(**fields)
        self.db.add(debt)
        self.db.flush()
        return debt

    def add_payment(
        self,
        debt: Debt,
        amount_cents: int,
        payment_date: datetime,
        transaction_id: int | None = None,
        notes: str | None = None,
    ) -> DebtPayment:
        payment = DebtPayment(
            debt_id=debt.id,
            transaction_id=transaction_id,
            amount_cents=amount_cents,
            payment_date=payment_date,
            notes=notes,
        )
        self.db.add(payment)
        self.db.flush()
        return payment

    def list_open(self) -> List[Debt]:
        return (
            self.db.query(Debt)
            .filter(Debt.status.in_(_values(OPEN_DEBT_STATUSES)))
            .order_by(Debt.created_date.desc(), Debt.id.desc())
            .all()
        )

    def list_sweepable(self) -> List[Debt]:
        """Active/partially paid debts that carry a due date"""
        return (
            self.db.query(Debt)
            .filter(Debt.status.in_(_values(SWEEPABLE_DEBT_STATUSES)), Debt.due_date.isnot(None))
            .order_by(Debt.id)
            .all()
        )

    def payments_for(self, debt_id: int) -> List[DebtPayment]:
        return (
            self.db.query(DebtPayment)
            .filter(DebtPayment.debt_id == debt_id)
            .order_by(DebtPayment.payment_date.desc(), DebtPayment.id.desc())
            .all()
        )

    def total_fees(self, kind: DebtKind) -> int:
        total = (
            self.db.query(func.coalesce(func.sum(Debt.fees_charged_cents), 0))
            .filter(Debt.kind == kind.value)
            .scalar()
        )
        return int(total or 0)


class CategoryRepository:
    """Repository for categories"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, category_id: int) -> Optional[Category]:
        return self.db.get(Category, category_id)

    def get_by_name(self, name: str) -> Optional[Category]:
        return self.db.query(Category).filter(Category.name == name).first()

    def ensure_system_categories(self) -> Category:
        """Seed the fixed category debt events are tagged to"""
        category = self.get_by_name(settings.facility_category_name)
        if category is None:
            category = Category(name=settings.facility_category_name, is_system=True)
            self.db.add(category)
            self.db.flush()
        return category


class SettingsRepository:
    """Key-value settings: get/set(key) -> optional string"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, key: str) -> Optional[str]:
        setting = self.db.query(UserSetting).filter(UserSetting.key == key).first()
        return setting.value if setting else None

    def set(self, key: str, value: str | None) -> None:
        setting = self.db.query(UserSetting).filter(UserSetting.key == key).first()
        if setting:
            setting.value = value
        else:
            self.db.add(UserSetting(key=key, value=value))
        self.db.flush()


class MaintenanceRepository:
    """Bulk data reset"""

    def __init__(self, db: Session):
        self.db = db

    def _delete_ledger(self) -> Dict[str, int]:
        # Children before parents
        self.db.query(DebtPayment).delete(synchronize_session=False)
        self.db.query(RelatedMessage).delete(synchronize_session=False)
        debts = self.db.query(Debt).delete(synchronize_session=False)
        transactions = self.db.query(LedgerTransaction).delete(synchronize_session=False)
        return {"transactions": transactions, "debts": debts}

    def clear_all(self) -> Dict[str, int]:
        """Delete transactions, debts, links and raw messages"""
        counts = self._delete_ledger()
        counts["raw_messages"] = self.db.query(RawMessage).delete(synchronize_session=False)
        self.db.flush()
        return counts

    def clear_transactions_only(self) -> Dict[str, int]:
        """Delete the ledger but keep raw messages, reset to pending for replay"""
        counts = self._delete_ledger()
        counts["raw_messages"] = RawMessageRepository(self.db).reset_parse_status()
        self.db.flush()
        return counts
