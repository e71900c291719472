"""GET/POST /v1/transactions - ledger queries and classification"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from pesalog.api.dependencies import get_request_id
from pesalog.api.v1.schemas import ClassifyRequest, TransactionListResponse, TransactionResponse
from pesalog.domain.exceptions import (
    ArchivedTransactionError,
    CategoryNotFoundError,
    TransactionNotFoundError,
)
from pesalog.domain.models import TransactionStatus
from pesalog.infrastructure.database.session import get_db
from pesalog.services import transactions as transaction_service

router = APIRouter()


@router.get("/transactions", response_model=TransactionListResponse)
def list_transactions(
    status: Optional[TransactionStatus] = Query(None, description="Lifecycle status filter"),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
):
    """Most recent transactions; `pending_classification` lists the prompt queue"""
    transactions = transaction_service.list_transactions(db, status, limit)
    return TransactionListResponse(
        transactions=[TransactionResponse.model_validate(t) for t in transactions]
    )


@router.get("/transactions/{transaction_id}", response_model=TransactionResponse)
def get_transaction(transaction_id: int, db: Session = Depends(get_db)):
    try:
        transaction = transaction_service.get_transaction(db, transaction_id)
    except TransactionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return TransactionResponse.model_validate(transaction)


@router.post("/transactions/{transaction_id}/classify", response_model=TransactionResponse)
def classify_transaction(
    transaction_id: int,
    request_body: ClassifyRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """Assign a category to a transaction awaiting classification"""
    try:
        transaction = transaction_service.classify_transaction(
            db,
            transaction_id,
            request_body.category_id,
            confidence=request_body.confidence,
            auto=request_body.auto,
        )
        db.commit()
    except (TransactionNotFoundError, CategoryNotFoundError) as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))
    except ArchivedTransactionError as e:
        db.rollback()
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": get_request_id(request)})
        raise HTTPException(status_code=500, detail="Internal server error")

    return TransactionResponse.model_validate(transaction)


@router.post("/transactions/{transaction_id}/archive", response_model=TransactionResponse)
def archive_transaction(transaction_id: int, request: Request, db: Session = Depends(get_db)):
    try:
        transaction = transaction_service.archive_transaction(db, transaction_id)
        db.commit()
    except TransactionNotFoundError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))
    except ArchivedTransactionError as e:
        db.rollback()
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": get_request_id(request)})
        raise HTTPException(status_code=500, detail="Internal server error")

    return TransactionResponse.model_validate(transaction)
