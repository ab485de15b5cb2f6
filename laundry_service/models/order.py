"""
SQLAlchemy Order aggregate: order, line items, clothing items, status history
"""
import uuid

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from laundry_service.database import Base
from laundry_service.models.enums import AssignmentMode, OrderStatus, sql_in


def new_id() -> str:
    return uuid.uuid4().hex


class Order(Base):
    """Order database model"""

    __tablename__ = "orders"

    id = Column(String(32), primary_key=True, default=new_id)
    customer_id = Column(String(64), nullable=False, index=True)
    service_provider_id = Column(String(64), ForeignKey("service_providers.id"), nullable=True, index=True)
    status = Column(String(32), nullable=False, default=OrderStatus.PENDING.value, index=True)

    # Money - total_amount is a cache of ledger.compute_totals
    subtotal = Column(Float, nullable=False, default=0.0)
    tax = Column(Float, nullable=False, default=0.0)
    delivery_fee = Column(Float, nullable=False, default=0.0)
    discount = Column(Float, nullable=False, default=0.0)
    total_amount = Column(Float, nullable=False, default=0.0)
    tax_overridden = Column(Boolean, nullable=False, default=False)
    delivery_fee_overridden = Column(Boolean, nullable=False, default=False)
    is_urgent = Column(Boolean, nullable=False, default=False)

    pickup_address = Column(JSON, nullable=False)
    delivery_address = Column(JSON, nullable=False)
    pickup_date = Column(DateTime(timezone=True), nullable=False)
    delivery_date = Column(DateTime(timezone=True), nullable=False)

    payment_id = Column(String(32), nullable=True)

    customer_notes = Column(Text, nullable=True)
    provider_notes = Column(Text, nullable=True)
    admin_notes = Column(Text, nullable=True)
    cancellation_reason = Column(String(200), nullable=True)

    version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    items = relationship(
        "OrderItem",
        back_populates="order",
        order_by="OrderItem.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    status_history = relationship(
        "OrderStatusHistory",
        order_by="OrderStatusHistory.id",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    assignments = relationship(
        "OrderAssignment",
        order_by="OrderAssignment.id",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint(f"status IN ({sql_in(OrderStatus)})", name="check_order_status_valid"),
        CheckConstraint("subtotal >= 0", name="check_subtotal_non_negative"),
        CheckConstraint("tax >= 0", name="check_tax_non_negative"),
        CheckConstraint("delivery_fee >= 0", name="check_delivery_fee_non_negative"),
        CheckConstraint("discount >= 0", name="check_discount_non_negative"),
        CheckConstraint("total_amount >= 0", name="check_total_non_negative"),
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def order_number(self) -> str:
        return f"ORD-{self.id[-8:].upper()}"

    @property
    def clothing_items(self) -> list:
        return [ci for item in self.items for ci in item.clothing_items]

    def __repr__(self):
        return f"<Order(id={self.id}, customer_id={self.customer_id}, status='{self.status}', total={self.total_amount})>"


class OrderItem(Base):
    """A service line in an order"""

    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(String(32), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    service_id = Column(String(100), nullable=False)
    service_name = Column(String(255), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Float, nullable=False)
    line_total = Column(Float, nullable=False)
    special_instructions = Column(String(200), nullable=True)

    order = relationship("Order", back_populates="items")
    clothing_items = relationship(
        "ClothingItem",
        order_by="ClothingItem.id",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint("quantity >= 1", name="check_quantity_positive"),
        CheckConstraint("unit_price >= 0", name="check_unit_price_non_negative"),
        CheckConstraint("line_total >= 0", name="check_line_total_non_negative"),
    )


class ClothingItem(Base):
    """An individually tracked garment inside an order line"""

    __tablename__ = "clothing_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(String(32), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    order_item_id = Column(Integer, ForeignKey("order_items.id", ondelete="CASCADE"), nullable=False)
    item_id = Column(String(32), nullable=False)
    description = Column(String(100), nullable=False)
    service_id = Column(String(100), nullable=False)
    unit_price = Column(Float, nullable=False)
    is_confirmed = Column(Boolean, nullable=False, default=False)
    special_instructions = Column(String(200), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("order_id", "item_id", name="uq_clothing_item_per_order"),
        CheckConstraint("unit_price >= 0", name="check_clothing_price_non_negative"),
    )


class OrderStatusHistory(Base):
    """Append-only order status log"""

    __tablename__ = "order_status_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(String(32), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(32), nullable=False)
    changed_by = Column(String(64), nullable=False)
    changed_at = Column(DateTime(timezone=True), nullable=False)
    notes = Column(String(500), nullable=True)


class OrderAssignment(Base):
    """Audit row for every provider binding, including admin overrides"""

    __tablename__ = "order_assignments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(String(32), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    service_provider_id = Column(String(64), nullable=False)
    previous_provider_id = Column(String(64), nullable=True)
    mode = Column(String(16), nullable=False)
    assigned_by = Column(String(64), nullable=False)
    assigned_at = Column(DateTime(timezone=True), nullable=False)
    notes = Column(String(500), nullable=True)

    __table_args__ = (
        CheckConstraint(f"mode IN ({sql_in(AssignmentMode)})", name="check_assignment_mode_valid"),
    )
