"""
Payment Repository - Data Access Layer
"""
from typing import List, Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session

from laundry_service.models.enums import PaymentStatus
from laundry_service.models.payment import ACTIVE_PAYMENT_STATUSES, Payment


class PaymentRepository:
    """Repository for Payment persistence"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, payment_id: str) -> Optional[Payment]:
        """Get payment by ID"""
        return self.db.query(Payment).filter(Payment.id == payment_id).first()

    def get_for_update(self, payment_id: str) -> Optional[Payment]:
        """Load a payment row-locked and refreshed from the database"""
        return (
            self.db.query(Payment)
            .filter(Payment.id == payment_id)
            .populate_existing()
            .with_for_update()
            .first()
        )

    def get_by_reference(self, reference: str, for_update: bool = False) -> Optional[Payment]:
        """Get payment by gateway reference"""
        query = self.db.query(Payment).filter(Payment.reference == reference)
        if for_update:
            query = query.populate_existing().with_for_update()
        return query.first()

    def get_active_for_order(self, order_id: str, for_update: bool = False) -> Optional[Payment]:
        """The pending, processing or completed payment of an order, if any"""
        query = self.db.query(Payment).filter(
            Payment.order_id == order_id,
            Payment.status.in_([s.value for s in ACTIVE_PAYMENT_STATUSES]),
        )
        if for_update:
            query = query.populate_existing().with_for_update()
        return query.first()

    def get_latest_failed_for_order(self, order_id: str) -> Optional[Payment]:
        return (
            self.db.query(Payment)
            .filter(Payment.order_id == order_id, Payment.status == PaymentStatus.FAILED.value)
            .order_by(desc(Payment.created_at), desc(Payment.id))
            .populate_existing()
            .with_for_update()
            .first()
        )

    def list_for_order(self, order_id: str) -> List[Payment]:
        """All payments of an order, oldest first"""
        return (
            self.db.query(Payment)
            .filter(Payment.order_id == order_id)
            .order_by(Payment.created_at, Payment.id)
            .all()
        )

    def add(self, payment: Payment) -> Payment:
        """Stage a new payment in the current transaction"""
        self.db.add(payment)
        return payment
