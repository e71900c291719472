"""SQLAlchemy ORM models for the message ledger"""

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class RawMessage(Base):
    """Every ingested message, kept for audit and re-linking"""

    __tablename__ = "raw_message"

    id = Column(Integer, primary_key=True, autoincrement=True)
    sender = Column(Text, nullable=False)
    body = Column(Text, nullable=False)
    received_at = Column(DateTime, nullable=False, index=True)
    parsed_at = Column(DateTime, nullable=True)
    parse_status = Column(Text, nullable=False, default="pending")
    parse_error = Column(Text, nullable=True)
    linked_ref_code = Column(Text, nullable=True, index=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())


class Category(Base):
    """Spending category; system categories are seeded at init"""

    __tablename__ = "category"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False, unique=True)
    is_system = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, server_default=func.now())


class LedgerTransaction(Base):
    """Canonical ledger entry, one per real-world event"""

    __tablename__ = "ledger_transaction"

    id = Column(Integer, primary_key=True, autoincrement=True)
    primary_ref_code = Column(Text, nullable=False, unique=True, index=True)
    secondary_ref_code = Column(Text, nullable=True)
    type = Column(Text, nullable=False)
    source = Column(Text, nullable=False)
    amount_cents = Column(BigInteger, nullable=False)
    currency = Column(Text, nullable=False, default="KES")
    fee_cents = Column(BigInteger, nullable=False, default=0)
    counterparty = Column(Text, nullable=True)
    counterparty_phone = Column(Text, nullable=True)
    counterparty_account = Column(Text, nullable=True)
    category_id = Column(Integer, ForeignKey("category.id"), nullable=True)
    is_auto_classified = Column(Boolean, nullable=False, default=False)
    confidence = Column(Float, nullable=True)
    balance_after_cents = Column(BigInteger, nullable=True)
    transaction_date = Column(DateTime, nullable=False)
    raw_message_id = Column(Integer, ForeignKey("raw_message.id"), nullable=True)
    status = Column(Text, nullable=False, default="pending_classification")
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    category = relationship("Category")
    raw_message = relationship("RawMessage")


class RelatedMessage(Base):
    """Edge between two raw messages sharing a reference code"""

    __tablename__ = "related_message"
    __table_args__ = (
        UniqueConstraint("primary_message_id", "secondary_message_id", "ref_code", name="uq_related_message_pair"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    primary_message_id = Column(Integer, ForeignKey("raw_message.id"), nullable=False)
    secondary_message_id = Column(Integer, ForeignKey("raw_message.id"), nullable=False)
    ref_code = Column(Text, nullable=False, index=True)
    transaction_id = Column(Integer, ForeignKey("ledger_transaction.id"), nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())


class Debt(Base):
    """Running-balance debt: overdraft facility, loan or peer debt"""

    __tablename__ = "debt"

    id = Column(Integer, primary_key=True, autoincrement=True)
    kind = Column(Text, nullable=False, index=True)
    source = Column(Text, nullable=True)
    principal_cents = Column(BigInteger, nullable=False)
    fees_charged_cents = Column(BigInteger, nullable=False, default=0)
    total_outstanding_cents = Column(BigInteger, nullable=False)
    last_draw_cents = Column(BigInteger, nullable=True)
    created_date = Column(DateTime, nullable=False)
    due_date = Column(DateTime, nullable=True)
    counterparty = Column(Text, nullable=True)
    counterparty_phone = Column(Text, nullable=True)
    status = Column(Text, nullable=False, default="active", index=True)
    original_transaction_id = Column(Integer, ForeignKey("ledger_transaction.id"), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    payments = relationship(
        "DebtPayment",
        back_populates="debt",
        cascade="all, delete-orphan",
        order_by="DebtPayment.id",
    )


class DebtPayment(Base):
    """Append-only log of amounts applied against a debt"""

    __tablename__ = "debt_payment"

    id = Column(Integer, primary_key=True, autoincrement=True)
    debt_id = Column(Integer, ForeignKey("debt.id", ondelete="CASCADE"), nullable=False, index=True)
    transaction_id = Column(Integer, ForeignKey("ledger_transaction.id"), nullable=True)
    amount_cents = Column(BigInteger, nullable=False)
    payment_date = Column(DateTime, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    debt = relationship("Debt", back_populates="payments")


class UserSetting(Base):
    """Key-value settings store (poll watermark lives here)"""

    __tablename__ = "user_setting"

    id = Column(Integer, primary_key=True, autoincrement=True)
    key = Column(Text, nullable=False, unique=True)
    value = Column(Text, nullable=True)
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())
