"""
Tracking projector: derived display location for an order
"""
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from laundry_service.models.enums import OrderStatus, TrackingLocation
from laundry_service.models.tracking import OrderTracking, TrackingStep
from laundry_service.repositories.tracking_repository import TrackingRepository

STATUS_LOCATIONS: dict[OrderStatus, TrackingLocation] = {
    OrderStatus.PENDING: TrackingLocation.PENDING,
    OrderStatus.CONFIRMED: TrackingLocation.PICKUP_SCHEDULED,
    OrderStatus.ASSIGNED: TrackingLocation.IN_TRANSIT_TO_FACILITY,
    OrderStatus.IN_PROGRESS: TrackingLocation.CLEANING,
    OrderStatus.READY_FOR_PICKUP: TrackingLocation.AT_FACILITY,
    OrderStatus.PICKED_UP: TrackingLocation.PICKED_UP,
    OrderStatus.READY_FOR_DELIVERY: TrackingLocation.READY_FOR_DELIVERY,
    OrderStatus.COMPLETED: TrackingLocation.DELIVERED,
    OrderStatus.CANCELLED: TrackingLocation.PENDING,
}


def project_location(status) -> TrackingLocation:
    return STATUS_LOCATIONS.get(OrderStatus(status), TrackingLocation.PENDING)


class TrackingService:
    """Writes tracking steps after an order status change has committed"""

    def __init__(self, db: Session):
        self.db = db
        self.repository = TrackingRepository(db)

    def record(
        self,
        order_id: str,
        status,
        notes: str = "",
        actor_id: Optional[str] = None,
    ) -> OrderTracking:
        """
        Project ``status`` onto the order's tracking row and append a step

        Commits on its own; on failure the session is rolled back and the error re-raised.
        """
        location = project_location(status)
        try:
            tracking = self.repository.get_or_create(order_id)
            tracking.current_location = location.value
            tracking.updated_at = datetime.now(timezone.utc)
            tracking.steps.append(
                TrackingStep(
                    location=location.value,
                    order_status=OrderStatus(status).value,
                    notes=notes or None,
                    updated_by=actor_id,
                    timestamp=datetime.now(timezone.utc),
                )
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return tracking

    def get(self, order_id: str) -> Optional[OrderTracking]:
        return self.repository.get_by_order_id(order_id)
