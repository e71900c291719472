"""POST /v1/messages - push, historical import and poll ingestion endpoints"""

import logging
from dataclasses import asdict
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from pesalog.api.dependencies import get_pipeline, get_poller, get_request_id
from pesalog.api.v1.schemas import (
    ImportRequest,
    ImportSummaryResponse,
    InboundMessageSchema,
    MessageRequest,
    MessageStatsResponse,
    ProcessingOutcomeResponse,
)
from pesalog.domain.exceptions import PersistenceError
from pesalog.infrastructure.database.repositories import RawMessageRepository
from pesalog.infrastructure.database.session import get_db
from pesalog.services.ingestion import InboundMessage, IngestionPipeline
from pesalog.services.polling import MessagePoller

router = APIRouter()


def _to_inbound(messages: List[InboundMessageSchema]) -> List[InboundMessage]:
    return [InboundMessage(sender=m.sender, body=m.body, timestamp=m.timestamp) for m in messages]


@router.post("/messages", response_model=ProcessingOutcomeResponse)
def process_message(
    request_body: MessageRequest,
    request: Request,
    db: Session = Depends(get_db),
    pipeline: IngestionPipeline = Depends(get_pipeline),
):
    """
    Process one message from the real-time push channel.

    Flow:
    1. Filter non-financial and failed-transaction messages
    2. Store the raw message and parse it
    3. Link by reference code; report duplicates
    4. Route debt events to the reconciler or create a pending transaction
    """
    request_id = get_request_id(request)

    try:
        outcome = pipeline.process_message(db, request_body.sender, request_body.body, request_body.timestamp)
    except PersistenceError as e:
        logging.error(f"Persistence error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Storage unavailable")
    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    return ProcessingOutcomeResponse(
        status=outcome.status.value,
        raw_message_id=outcome.raw_message_id,
        transaction_id=outcome.transaction_id,
        needs_classification=outcome.needs_classification,
        is_person_to_person=outcome.is_person_to_person,
        dialect=outcome.dialect.value if outcome.dialect else None,
        reason=outcome.reason,
    )


@router.post("/messages/import", response_model=ImportSummaryResponse)
def import_messages(
    request_body: ImportRequest,
    request: Request,
    db: Session = Depends(get_db),
    pipeline: IngestionPipeline = Depends(get_pipeline),
):
    """
    Replay a historical batch, oldest first.

    Returns:
        Aggregate counts; per-message errors are not surfaced
    """
    try:
        summary = pipeline.import_historical(db, _to_inbound(request_body.messages))
    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": get_request_id(request)})
        raise HTTPException(status_code=500, detail="Internal server error")

    return ImportSummaryResponse(**asdict(summary))


@router.post("/messages/poll", response_model=ImportSummaryResponse)
def poll_messages(
    request_body: ImportRequest,
    request: Request,
    db: Session = Depends(get_db),
    poller: MessagePoller = Depends(get_poller),
):
    """Pull-channel batch; only messages newer than the stored watermark are imported"""
    try:
        summary = poller.poll(db, _to_inbound(request_body.messages))
    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": get_request_id(request)})
        raise HTTPException(status_code=500, detail="Internal server error")

    return ImportSummaryResponse(**asdict(summary))


@router.get("/messages/stats", response_model=MessageStatsResponse)
def get_message_stats(db: Session = Depends(get_db)):
    """Parse outcomes in aggregate, e.g. how many messages could not be parsed"""
    return MessageStatsResponse(**RawMessageRepository(db).count_by_status())
