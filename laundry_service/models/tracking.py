"""
SQLAlchemy tracking models: display location per order and its step log
"""
from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from laundry_service.database import Base
from laundry_service.models.enums import TrackingLocation, sql_in


class OrderTracking(Base):
    """Derived, display-only location of an order"""

    __tablename__ = "order_tracking"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(String(32), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, unique=True)
    current_location = Column(String(32), nullable=False, default=TrackingLocation.PENDING.value)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    steps = relationship(
        "TrackingStep",
        order_by="TrackingStep.id",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint(f"current_location IN ({sql_in(TrackingLocation)})", name="check_tracking_location_valid"),
    )

    def __repr__(self):
        return f"<OrderTracking(order_id={self.order_id}, current_location='{self.current_location}')>"


class TrackingStep(Base):
    """One projected tracking step"""

    __tablename__ = "tracking_steps"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tracking_id = Column(Integer, ForeignKey("order_tracking.id", ondelete="CASCADE"), nullable=False, index=True)
    location = Column(String(32), nullable=False)
    order_status = Column(String(32), nullable=False)
    notes = Column(String(500), nullable=True)
    updated_by = Column(String(64), nullable=True)
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
