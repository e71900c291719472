"""Debt state transitions - pure functions over balances and statuses"""

from datetime import datetime
from typing import Tuple

from pesalog.domain.models import DebtStatus, SWEEPABLE_DEBT_STATUSES


def apply_repayment(
    outstanding_cents: int,
    repaid_cents: int,
    status: DebtStatus = DebtStatus.ACTIVE,
) -> Tuple[int, DebtStatus]:
    """
    Apply a repayment to a running balance.

    Outstanding never goes below zero; an over-payment clamps to zero and
    settles the debt. An overdue debt stays overdue until settled.

    Example:
        71662 - 50000 -> (21662, partially_paid)
        21662 - 30000 -> (0, paid)
    """
    new_outstanding = max(0, outstanding_cents - max(0, repaid_cents))
    if new_outstanding == 0:
        return 0, DebtStatus.PAID
    if status == DebtStatus.OVERDUE:
        return new_outstanding, DebtStatus.OVERDUE
    return new_outstanding, DebtStatus.PARTIALLY_PAID


def status_after_draw(status: DebtStatus, due_date: datetime | None, now: datetime) -> DebtStatus:
    """A draw refreshes the due date; an overdue facility recovers if the new date is ahead"""
    if status == DebtStatus.OVERDUE and (due_date is None or due_date >= now):
        return DebtStatus.ACTIVE
    return status


def sweep_status(status: DebtStatus, due_date: datetime | None, now: datetime) -> DebtStatus:
    """Overdue sweep for one debt; idempotent"""
    if status in SWEEPABLE_DEBT_STATUSES and due_date is not None and due_date < now:
        return DebtStatus.OVERDUE
    return status
