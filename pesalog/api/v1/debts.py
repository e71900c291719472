"""GET/POST /v1/debts - debt ledger queries and manual debt events"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from pesalog.api.dependencies import get_reconciler, get_request_id
from pesalog.api.v1.schemas import (
    DebtDetailResponse,
    DebtListResponse,
    DebtPaymentResponse,
    DebtResponse,
    DebtSummaryResponse,
    FacilitySummarySchema,
    PaymentRequest,
    PeerDebtRequest,
    PeerDebtTotalsSchema,
    SweepResponse,
)
from pesalog.domain.exceptions import DebtNotFoundError
from pesalog.domain.models import DebtKind
from pesalog.infrastructure.database.session import get_db
from pesalog.services.debts import DebtReconciler

router = APIRouter()


@router.get("/debts", response_model=DebtListResponse)
def list_active_debts(
    db: Session = Depends(get_db),
    reconciler: DebtReconciler = Depends(get_reconciler),
):
    """Open debts (active, partially paid, overdue)"""
    debts = reconciler.active_debts(db)
    return DebtListResponse(debts=[DebtResponse.model_validate(d) for d in debts])


@router.get("/debts/summary", response_model=DebtSummaryResponse)
def get_debt_summary(
    db: Session = Depends(get_db),
    reconciler: DebtReconciler = Depends(get_reconciler),
):
    """Facility outstanding and peer debt totals in both directions"""
    summary = reconciler.summary(db)
    return DebtSummaryResponse(
        facility=FacilitySummarySchema.model_validate(summary.facility),
        owed_by_others=PeerDebtTotalsSchema.model_validate(summary.owed_by_others),
        owed_to_others=PeerDebtTotalsSchema.model_validate(summary.owed_to_others),
        total_facility_fees_cents=reconciler.total_facility_fees(db),
    )


@router.get("/debts/due-soon", response_model=DebtListResponse)
def list_debts_due_soon(
    days: Optional[int] = Query(None, ge=0, description="Horizon in days; defaults to the configured window"),
    db: Session = Depends(get_db),
    reconciler: DebtReconciler = Depends(get_reconciler),
):
    debts = reconciler.due_soon(db, days)
    return DebtListResponse(debts=[DebtResponse.model_validate(d) for d in debts])


@router.post("/debts/overdue-sweep", response_model=SweepResponse)
def sweep_overdue_debts(
    request: Request,
    db: Session = Depends(get_db),
    reconciler: DebtReconciler = Depends(get_reconciler),
):
    """Promote debts past their due date to overdue; safe to run repeatedly"""
    try:
        promoted = reconciler.sweep_overdue(db)
        db.commit()
    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": get_request_id(request)})
        raise HTTPException(status_code=500, detail="Internal server error")

    return SweepResponse(promoted_debt_ids=[d.id for d in promoted])


@router.get("/debts/{debt_id}", response_model=DebtDetailResponse)
def get_debt(
    debt_id: int,
    db: Session = Depends(get_db),
    reconciler: DebtReconciler = Depends(get_reconciler),
):
    """Debt with its payment history"""
    try:
        debt, payments = reconciler.get_with_payments(db, debt_id)
    except DebtNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return DebtDetailResponse(
        **DebtResponse.model_validate(debt).model_dump(),
        payments=[DebtPaymentResponse.model_validate(p) for p in payments],
    )


@router.post("/debts", response_model=DebtResponse, status_code=201)
def create_peer_debt(
    request_body: PeerDebtRequest,
    request: Request,
    db: Session = Depends(get_db),
    reconciler: DebtReconciler = Depends(get_reconciler),
):
    """Record money lent to or borrowed from a person"""
    try:
        debt = reconciler.create_peer_debt(
            db,
            kind=DebtKind(request_body.kind),
            amount_cents=request_body.amount_cents,
            counterparty=request_body.counterparty,
            counterparty_phone=request_body.counterparty_phone,
            transaction_id=request_body.transaction_id,
            due_date=request_body.due_date,
            notes=request_body.notes,
        )
        db.commit()
    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": get_request_id(request)})
        raise HTTPException(status_code=500, detail="Internal server error")

    return DebtResponse.model_validate(debt)


@router.post("/debts/{debt_id}/payments", response_model=DebtResponse)
def record_debt_payment(
    debt_id: int,
    request_body: PaymentRequest,
    request: Request,
    db: Session = Depends(get_db),
    reconciler: DebtReconciler = Depends(get_reconciler),
):
    try:
        debt = reconciler.record_payment(
            db,
            debt_id,
            request_body.amount_cents,
            transaction_id=request_body.transaction_id,
            notes=request_body.notes,
        )
        db.commit()
    except DebtNotFoundError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": get_request_id(request)})
        raise HTTPException(status_code=500, detail="Internal server error")

    return DebtResponse.model_validate(debt)


@router.post("/debts/{debt_id}/mark-paid", response_model=DebtResponse)
def mark_debt_paid(
    debt_id: int,
    request: Request,
    db: Session = Depends(get_db),
    reconciler: DebtReconciler = Depends(get_reconciler),
):
    try:
        debt = reconciler.mark_paid(db, debt_id)
        db.commit()
    except DebtNotFoundError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": get_request_id(request)})
        raise HTTPException(status_code=500, detail="Internal server error")

    return DebtResponse.model_validate(debt)


@router.post("/debts/{debt_id}/write-off", response_model=DebtResponse)
def write_off_debt(
    debt_id: int,
    request: Request,
    db: Session = Depends(get_db),
    reconciler: DebtReconciler = Depends(get_reconciler),
):
    try:
        debt = reconciler.write_off(db, debt_id)
        db.commit()
    except DebtNotFoundError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": get_request_id(request)})
        raise HTTPException(status_code=500, detail="Internal server error")

    return DebtResponse.model_validate(debt)
