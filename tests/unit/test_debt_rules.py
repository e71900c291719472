"""Unit tests for debt state transitions"""

from datetime import datetime, timedelta

import pytest

from pesalog.domain.debts import apply_repayment, status_after_draw, sweep_status
from pesalog.domain.models import DebtStatus

NOW = datetime(2026, 1, 20, 12, 0)


def test_partial_then_full_repayment():
    outstanding, status = apply_repayment(71662, 50000)
    assert (outstanding, status) == (21662, DebtStatus.PARTIALLY_PAID)

    outstanding, status = apply_repayment(outstanding, 30000, status)
    assert (outstanding, status) == (0, DebtStatus.PAID)


def test_exact_repayment_settles():
    assert apply_repayment(50000, 50000) == (0, DebtStatus.PAID)


def test_overdue_stays_overdue_until_settled():
    assert apply_repayment(50000, 10000, DebtStatus.OVERDUE) == (40000, DebtStatus.OVERDUE)
    assert apply_repayment(40000, 40000, DebtStatus.OVERDUE) == (0, DebtStatus.PAID)


def test_negative_repayment_is_ignored():
    assert apply_repayment(50000, -100) == (50000, DebtStatus.PARTIALLY_PAID)


@pytest.mark.parametrize(
    "events",
    [
        [("draw", 71662), ("repay", 50000), ("repay", 30000)],
        [("draw", 10000), ("repay", 2500), ("draw", 20000), ("repay", 50000)],
        [("repay", 100), ("draw", 500), ("repay", 499), ("repay", 1)],
    ],
)
def test_outstanding_never_negative(events):
    """Reported totals are authoritative; repayments clamp at zero"""
    outstanding, status = 0, DebtStatus.ACTIVE
    last_reported, repaid_since = 0, 0

    for event, cents in events:
        if event == "draw":
            outstanding, status = cents, DebtStatus.ACTIVE
            last_reported, repaid_since = cents, 0
        else:
            outstanding, status = apply_repayment(outstanding, cents, status)
            repaid_since += cents
        assert outstanding >= 0
        assert outstanding == max(0, last_reported - repaid_since)


def test_sweep_promotes_past_due():
    past_due = NOW - timedelta(days=1)
    assert sweep_status(DebtStatus.ACTIVE, past_due, NOW) == DebtStatus.OVERDUE
    assert sweep_status(DebtStatus.PARTIALLY_PAID, past_due, NOW) == DebtStatus.OVERDUE


def test_sweep_leaves_others_alone():
    past_due = NOW - timedelta(days=1)
    assert sweep_status(DebtStatus.ACTIVE, NOW + timedelta(days=1), NOW) == DebtStatus.ACTIVE
    assert sweep_status(DebtStatus.ACTIVE, None, NOW) == DebtStatus.ACTIVE
    assert sweep_status(DebtStatus.PAID, past_due, NOW) == DebtStatus.PAID
    assert sweep_status(DebtStatus.WRITTEN_OFF, past_due, NOW) == DebtStatus.WRITTEN_OFF


def test_sweep_is_idempotent():
    past_due = NOW - timedelta(days=1)
    once = sweep_status(DebtStatus.ACTIVE, past_due, NOW)
    assert sweep_status(once, past_due, NOW) == once


def test_draw_with_future_due_date_recovers_overdue():
    assert status_after_draw(DebtStatus.OVERDUE, NOW + timedelta(days=30), NOW) == DebtStatus.ACTIVE
    assert status_after_draw(DebtStatus.OVERDUE, NOW - timedelta(days=1), NOW) == DebtStatus.OVERDUE
    assert status_after_draw(DebtStatus.PARTIALLY_PAID, NOW + timedelta(days=30), NOW) == DebtStatus.PARTIALLY_PAID
