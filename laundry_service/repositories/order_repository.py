"""
Order Repository - Data Access Layer
"""
from typing import List, Optional

from sqlalchemy import and_, desc, or_
from sqlalchemy.orm import Session

from laundry_service.models.enums import OrderStatus
from laundry_service.models.order import Order


class OrderRepository:
    """Repository for Order persistence"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, order_id: str) -> Optional[Order]:
        """Get order by ID"""
        return self.db.query(Order).filter(Order.id == order_id).first()

    def get_for_update(self, order_id: str) -> Optional[Order]:
        """Load an order row-locked and refreshed from the database"""
        return (
            self.db.query(Order)
            .filter(Order.id == order_id)
            .populate_existing()
            .with_for_update()
            .first()
        )

    def _filtered(
        self,
        status: Optional[str] = None,
        customer_id: Optional[str] = None,
        service_provider_id: Optional[str] = None,
        available_to: Optional[str] = None,
    ):
        query = self.db.query(Order)
        if status:
            query = query.filter(Order.status == status)
        if customer_id:
            query = query.filter(Order.customer_id == customer_id)
        if service_provider_id:
            query = query.filter(Order.service_provider_id == service_provider_id)
        if available_to:
            # Bound to this provider, or still open for self-assignment
            query = query.filter(
                or_(
                    Order.service_provider_id == available_to,
                    and_(
                        Order.service_provider_id.is_(None),
                        Order.status.in_([OrderStatus.PENDING.value, OrderStatus.CONFIRMED.value]),
                    ),
                )
            )
        return query

    def list(self, skip: int = 0, limit: int = 100, **filters) -> List[Order]:
        """Get orders matching the filters, newest first"""
        return (
            self._filtered(**filters)
            .order_by(desc(Order.created_at), desc(Order.id))
            .offset(skip)
            .limit(limit)
            .all()
        )

    def count(self, **filters) -> int:
        """Get count of orders matching the filters"""
        return self._filtered(**filters).count()

    def add(self, order: Order) -> Order:
        """Stage a new order in the current transaction"""
        self.db.add(order)
        return order
