"""Domain models - pure Python dataclasses and enums for the message ledger"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class DialectKind(str, Enum):
    """Closed set of recognised message dialects"""

    FULIZA = "fuliza"
    FULIZA_AUTO_REPAYMENT = "fuliza_auto_repayment"
    FULIZA_REPAYMENT = "fuliza_repayment"
    MSHWARI_TRANSFER = "mshwari_transfer"
    MPESA_RECEIVED = "mpesa_received"
    BANK_TRANSFER = "bank_transfer"
    MPESA_AIRTIME = "mpesa_airtime"
    MPESA_AGENT = "mpesa_agent"
    MPESA_TILL = "mpesa_till"
    MPESA_PAYBILL_ALT = "mpesa_paybill_alt"
    MPESA_PAYBILL = "mpesa_paybill"
    MPESA_SEND = "mpesa_send"
    BANK_CONFIRMATION = "bank_confirmation"
    CARD_TRANSACTION = "card_transaction"


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER = "transfer"
    DEBT = "debt"
    DEBT_REPAYMENT = "debt_repayment"


class SourceChannel(str, Enum):
    MOBILE_MONEY = "mobile_money"
    BANK = "bank"
    CARD = "card"
    MANUAL = "manual"


class SenderType(str, Enum):
    MOBILE_MONEY = "mobile_money"
    BANK = "bank"
    CARD = "card"
    UNKNOWN = "unknown"


class ParseStatus(str, Enum):
    PENDING = "pending"
    PARSED = "parsed"
    FAILED = "failed"
    IGNORED = "ignored"


class TransactionStatus(str, Enum):
    PENDING_CLASSIFICATION = "pending_classification"
    CLASSIFIED = "classified"
    ARCHIVED = "archived"
    DUPLICATE = "duplicate"


class DebtKind(str, Enum):
    REVOLVING_FACILITY = "revolving_facility"
    LOAN = "loan"
    OWED_TO_PERSON = "owed_to_person"  # user is the debtor
    OWED_BY_PERSON = "owed_by_person"  # user is the creditor


class DebtStatus(str, Enum):
    ACTIVE = "active"
    PARTIALLY_PAID = "partially_paid"
    PAID = "paid"
    OVERDUE = "overdue"
    WRITTEN_OFF = "written_off"


# Statuses a debt can still receive draws and repayments in
OPEN_DEBT_STATUSES = (DebtStatus.ACTIVE, DebtStatus.PARTIALLY_PAID, DebtStatus.OVERDUE)

# Statuses the overdue sweep may promote
SWEEPABLE_DEBT_STATUSES = (DebtStatus.ACTIVE, DebtStatus.PARTIALLY_PAID)

DEBT_REPAYMENT_KINDS = frozenset({DialectKind.FULIZA_REPAYMENT, DialectKind.FULIZA_AUTO_REPAYMENT})


@dataclass(frozen=True)
class DebtFigures:
    """Facility figures reported by draw and auto-repayment messages"""

    principal_cents: int | None = None
    total_outstanding_cents: int | None = None
    due_date: datetime | None = None
    available_limit_cents: int | None = None
    payment_type: str | None = None  # "partially" | "fully"


@dataclass(frozen=True)
class ParsedRecord:
    """
    Typed record extracted from one message.

    Tagged by `kind`; every kind carries the same core fields, and
    facility messages add `debt` figures. Never persisted directly.
    """

    kind: DialectKind
    transaction_type: TransactionType
    source: SourceChannel
    ref_code: str
    amount_cents: int
    currency: str
    counterparty: str
    transaction_date: datetime
    counterparty_phone: Optional[str] = None
    counterparty_account: Optional[str] = None
    secondary_ref_code: Optional[str] = None
    fee_cents: Optional[int] = None
    balance_cents: Optional[int] = None
    debt: Optional[DebtFigures] = None

    @property
    def is_person_to_person(self) -> bool:
        """A counterparty phone number means a person, not a business"""
        return bool(self.counterparty_phone)

    @property
    def is_debt_draw(self) -> bool:
        return self.kind == DialectKind.FULIZA

    @property
    def is_debt_repayment(self) -> bool:
        return self.kind in DEBT_REPAYMENT_KINDS


@dataclass(frozen=True)
class NoMatch:
    """Expected terminal state for messages outside the known dialects"""

    reason: str = "No matching pattern found"


@dataclass
class MergedFields:
    """Fields re-derived from every message in a linked group"""

    ref_code: str = ""
    amount_cents: int = 0
    counterparty: str = ""
    transaction_date: Optional[datetime] = None
    account: Optional[str] = None
    fee_cents: Optional[int] = None
    source_message_ids: list[int] = field(default_factory=list)
