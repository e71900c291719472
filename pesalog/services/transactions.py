"""Transaction queries and the classification hook"""

from typing import List

from sqlalchemy.orm import Session

from pesalog.domain.exceptions import (
    ArchivedTransactionError,
    CategoryNotFoundError,
    TransactionNotFoundError,
)
from pesalog.domain.models import TransactionStatus
from pesalog.infrastructure.database.models import LedgerTransaction
from pesalog.infrastructure.database.repositories import CategoryRepository, TransactionRepository


def get_transaction(db: Session, transaction_id: int) -> LedgerTransaction:
    transaction = TransactionRepository(db).get(transaction_id)
    if transaction is None:
        raise TransactionNotFoundError(f"Transaction {transaction_id} not found")
    return transaction


def list_transactions(db: Session, status: TransactionStatus | None = None, limit: int = 50) -> List[LedgerTransaction]:
    return TransactionRepository(db).list_recent(status.value if status else None, limit)


def _require_mutable(db: Session, transaction_id: int) -> LedgerTransaction:
    transaction = get_transaction(db, transaction_id)
    if transaction.status == TransactionStatus.ARCHIVED.value:
        raise ArchivedTransactionError(f"Transaction {transaction_id} is archived")
    return transaction


def classify_transaction(
    db: Session,
    transaction_id: int,
    category_id: int,
    confidence: float | None = None,
    auto: bool = False,
) -> LedgerTransaction:
    """
    Assign a category and move the transaction to classified.

    Raises:
        TransactionNotFoundError: unknown transaction
        ArchivedTransactionError: archived transactions are never mutated
        CategoryNotFoundError: unknown category
    """
    transaction = _require_mutable(db, transaction_id)
    if CategoryRepository(db).get(category_id) is None:
        raise CategoryNotFoundError(f"Category {category_id} not found")

    transaction.category_id = category_id
    transaction.confidence = confidence
    transaction.is_auto_classified = auto
    transaction.status = TransactionStatus.CLASSIFIED.value
    db.flush()
    return transaction


def archive_transaction(db: Session, transaction_id: int) -> LedgerTransaction:
    transaction = _require_mutable(db, transaction_id)
    transaction.status = TransactionStatus.ARCHIVED.value
    db.flush()
    return transaction
