"""Data reset operations"""

import logging
from typing import Dict

from sqlalchemy.orm import Session

from pesalog.infrastructure.database.repositories import MaintenanceRepository

logger = logging.getLogger(__name__)


def clear_all_data(db: Session) -> Dict[str, int]:
    """Delete every transaction, debt, link and raw message"""
    counts = MaintenanceRepository(db).clear_all()
    db.commit()
    logger.warning("All ledger data cleared", extra=counts)
    return counts


def clear_transactions_only(db: Session) -> Dict[str, int]:
    """Delete the ledger but keep raw messages as pending, ready for replay"""
    counts = MaintenanceRepository(db).clear_transactions_only()
    db.commit()
    logger.warning("Ledger cleared, raw messages kept for reprocessing", extra=counts)
    return counts
