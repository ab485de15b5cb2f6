"""
Tracking Repository - Data Access Layer
"""
from typing import Optional

from sqlalchemy.orm import Session

from laundry_service.models.tracking import OrderTracking


class TrackingRepository:
    """Repository for order tracking rows"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_order_id(self, order_id: str) -> Optional[OrderTracking]:
        """Get the tracking row of an order"""
        return self.db.query(OrderTracking).filter(OrderTracking.order_id == order_id).first()

    def get_or_create(self, order_id: str) -> OrderTracking:
        tracking = self.get_by_order_id(order_id)
        if tracking is None:
            tracking = OrderTracking(order_id=order_id)
            self.db.add(tracking)
        return tracking
