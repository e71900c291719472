"""POST /v1/data/reset - wipe the ledger"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from pesalog.api.dependencies import get_request_id
from pesalog.api.v1.schemas import ResetRequest, ResetResponse
from pesalog.infrastructure.database.session import get_db
from pesalog.services.data_management import clear_all_data, clear_transactions_only

router = APIRouter()


@router.post("/data/reset", response_model=ResetResponse)
def reset_data(request_body: ResetRequest, request: Request, db: Session = Depends(get_db)):
    """
    Delete transactions, debts and links.

    With `keep_messages` the raw messages survive, reset to pending so a
    later import can rebuild the ledger from them.
    """
    try:
        if request_body.keep_messages:
            counts = clear_transactions_only(db)
        else:
            counts = clear_all_data(db)
    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": get_request_id(request)})
        raise HTTPException(status_code=500, detail="Internal server error")

    return ResetResponse(deleted=counts)
