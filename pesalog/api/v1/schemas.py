"""Pydantic schemas for API request/response validation"""

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class MessageRequest(BaseModel):
    """Request body for POST /v1/messages (push channel)"""

    sender: str = Field(..., min_length=1, description="Sender ID as shown by the device")
    body: str = Field(..., min_length=1, description="Raw message text")
    timestamp: Optional[datetime] = Field(None, description="Delivery time; defaults to now")


class InboundMessageSchema(BaseModel):
    """One message in an import or poll batch"""

    sender: str = Field(..., min_length=1)
    body: str = Field(..., min_length=1)
    timestamp: datetime


class ImportRequest(BaseModel):
    """Request body for POST /v1/messages/import and /v1/messages/poll"""

    messages: List[InboundMessageSchema]


class ProcessingOutcomeResponse(BaseModel):
    """Response for POST /v1/messages"""

    status: str
    raw_message_id: Optional[int] = None
    transaction_id: Optional[int] = None
    needs_classification: bool = False
    is_person_to_person: bool = False
    dialect: Optional[str] = None
    reason: Optional[str] = None


class ImportSummaryResponse(BaseModel):
    """Aggregate counts for an import or poll batch"""

    total: int
    processed: int
    duplicates: int
    failed: int
    skipped: int
    errors: int
    cancelled: bool
    last_processed_at: Optional[datetime] = None


class MessageStatsResponse(BaseModel):
    """Response for GET /v1/messages/stats - raw message counts by parse status"""

    pending: int = 0
    parsed: int = 0
    failed: int = 0
    ignored: int = 0


class TransactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    primary_ref_code: str
    secondary_ref_code: Optional[str] = None
    type: str
    source: str
    amount_cents: int
    currency: str
    fee_cents: int
    counterparty: Optional[str] = None
    counterparty_phone: Optional[str] = None
    counterparty_account: Optional[str] = None
    category_id: Optional[int] = None
    is_auto_classified: bool
    confidence: Optional[float] = None
    balance_after_cents: Optional[int] = None
    transaction_date: datetime
    raw_message_id: Optional[int] = None
    status: str


class TransactionListResponse(BaseModel):
    transactions: List[TransactionResponse]


class ClassifyRequest(BaseModel):
    """Request body for POST /v1/transactions/{id}/classify"""

    category_id: int
    confidence: Optional[float] = Field(None, ge=0.0, le=1.0)
    auto: bool = False


class DebtPaymentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    amount_cents: int
    payment_date: datetime
    transaction_id: Optional[int] = None
    notes: Optional[str] = None


class DebtResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    kind: str
    source: Optional[str] = None
    principal_cents: int
    fees_charged_cents: int
    total_outstanding_cents: int
    last_draw_cents: Optional[int] = None
    created_date: datetime
    due_date: Optional[datetime] = None
    counterparty: Optional[str] = None
    counterparty_phone: Optional[str] = None
    status: str
    original_transaction_id: Optional[int] = None
    notes: Optional[str] = None


class DebtDetailResponse(DebtResponse):
    """Response for GET /v1/debts/{id}"""

    payments: List[DebtPaymentResponse]


class DebtListResponse(BaseModel):
    debts: List[DebtResponse]


class PeerDebtRequest(BaseModel):
    """Request body for POST /v1/debts"""

    kind: Literal["owed_to_person", "owed_by_person"]
    amount_cents: int = Field(..., gt=0, description="Amount in cents")
    counterparty: str = Field(..., min_length=1)
    counterparty_phone: Optional[str] = None
    transaction_id: Optional[int] = None
    due_date: Optional[datetime] = None
    notes: Optional[str] = None


class PaymentRequest(BaseModel):
    """Request body for POST /v1/debts/{id}/payments"""

    amount_cents: int = Field(..., gt=0, description="Amount in cents")
    transaction_id: Optional[int] = None
    notes: Optional[str] = None


class FacilitySummarySchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    outstanding_cents: int
    due_date: Optional[datetime] = None
    is_overdue: bool
    days_until_due: Optional[int] = None


class PeerDebtItemSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    debt_id: int
    counterparty: str
    outstanding_cents: int


class PeerDebtTotalsSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_cents: int
    count: int
    items: List[PeerDebtItemSchema]


class DebtSummaryResponse(BaseModel):
    """Response for GET /v1/debts/summary"""

    model_config = ConfigDict(from_attributes=True)

    facility: FacilitySummarySchema
    owed_by_others: PeerDebtTotalsSchema
    owed_to_others: PeerDebtTotalsSchema
    total_facility_fees_cents: int = 0


class SweepResponse(BaseModel):
    promoted_debt_ids: List[int]


class ResetRequest(BaseModel):
    """Request body for POST /v1/data/reset"""

    keep_messages: bool = Field(False, description="Keep raw messages as pending for reprocessing")


class ResetResponse(BaseModel):
    deleted: Dict[str, int]
