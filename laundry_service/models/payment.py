"""
SQLAlchemy Payment aggregate: payment and its status history
"""
from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
    text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from laundry_service.database import Base
from laundry_service.models.enums import PaymentMethod, PaymentStatus, sql_in
from laundry_service.models.order import new_id

# Statuses that block a second payment for the same order
ACTIVE_PAYMENT_STATUSES = (
    PaymentStatus.PENDING,
    PaymentStatus.PROCESSING,
    PaymentStatus.COMPLETED,
)
_ACTIVE_CLAUSE = text(f"status IN ({', '.join(repr(s.value) for s in ACTIVE_PAYMENT_STATUSES)})")


class Payment(Base):
    """Payment database model"""

    __tablename__ = "payments"

    id = Column(String(32), primary_key=True, default=new_id)
    order_id = Column(String(32), ForeignKey("orders.id"), nullable=False, index=True)
    customer_id = Column(String(64), nullable=False, index=True)
    service_provider_id = Column(String(64), nullable=True, index=True)
    amount = Column(Float, nullable=False)
    payment_method = Column(String(32), nullable=False)
    status = Column(String(32), nullable=False, default=PaymentStatus.PENDING.value, index=True)

    # Gateway fields
    reference = Column(String(100), nullable=True, unique=True)
    access_code = Column(String(100), nullable=True)
    authorization_url = Column(String(500), nullable=True)
    transaction_id = Column(String(100), nullable=True, unique=True)
    gateway_channel = Column(String(50), nullable=True)
    gateway_response = Column(String(255), nullable=True)
    gateway_payload = Column(JSON, nullable=True)
    payment_details = Column(JSON, nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    verified_at = Column(DateTime(timezone=True), nullable=True)

    processed_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    failed_at = Column(DateTime(timezone=True), nullable=True)
    failure_reason = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)

    refund_amount = Column(Float, nullable=False, default=0.0)
    refunded_at = Column(DateTime(timezone=True), nullable=True)
    refund_reason = Column(String(200), nullable=True)

    version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    status_history = relationship(
        "PaymentStatusHistory",
        order_by="PaymentStatusHistory.id",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint(f"status IN ({sql_in(PaymentStatus)})", name="check_payment_status_valid"),
        CheckConstraint(f"payment_method IN ({sql_in(PaymentMethod)})", name="check_payment_method_valid"),
        CheckConstraint("amount >= 0", name="check_amount_non_negative"),
        CheckConstraint("refund_amount >= 0 AND refund_amount <= amount", name="check_refund_within_amount"),
        Index(
            "uq_active_payment_per_order",
            "order_id",
            unique=True,
            postgresql_where=_ACTIVE_CLAUSE,
            sqlite_where=_ACTIVE_CLAUSE,
        ),
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        return f"<Payment(id={self.id}, order_id={self.order_id}, amount={self.amount}, status='{self.status}')>"


class PaymentStatusHistory(Base):
    """Append-only payment status log"""

    __tablename__ = "payment_status_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    payment_id = Column(String(32), ForeignKey("payments.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(32), nullable=False)
    changed_by = Column(String(64), nullable=False)
    changed_at = Column(DateTime(timezone=True), nullable=False)
    notes = Column(String(500), nullable=True)
