"""
Post-commit side effects.

Every hook runs after the owning transaction committed and is isolated: a
failing hook is logged and swallowed so it can never undo or block the state
change that triggered it.
"""
from typing import Callable

from sqlalchemy.orm import Session

from laundry_service.logger import logger
from laundry_service.models.enums import OrderStatus
from laundry_service.models.order import Order
from laundry_service.models.payment import Payment
from laundry_service.publishers.event_publisher import EventPublisher
from laundry_service.services.tracking import TrackingService


class SideEffects:
    """Explicit list of hooks fired after order and payment commits"""

    def __init__(self, db: Session, publisher: EventPublisher):
        self.tracking = TrackingService(db)
        self.publisher = publisher

    def _run(self, name: str, hook: Callable[[], object]) -> bool:
        try:
            hook()
            return True
        except Exception:
            logger.exception(f"Side effect '{name}' failed; state change is kept")
            return False

    def order_created(self, order: Order, actor_id: str) -> None:
        self._run(
            "tracking",
            lambda: self.tracking.record(order.id, order.status, "Order placed", actor_id),
        )

    def order_transitioned(self, order: Order, old_status: str, actor_id: str, notes: str = "") -> None:
        """Project tracking and notify the order's parties"""
        self._run(
            "tracking",
            lambda: self.tracking.record(order.id, order.status, notes, actor_id),
        )
        self._run(
            "status notification",
            lambda: self.publisher.publish_order_status_changed({
                "order_id": order.id,
                "order_number": order.order_number,
                "customer_id": order.customer_id,
                "service_provider_id": order.service_provider_id,
                "old_status": OrderStatus(old_status).value,
                "new_status": order.status,
                "changed_by": actor_id,
                "notes": notes,
            }),
        )

    def loyalty_award(self, order: Order) -> None:
        self._run(
            "loyalty award",
            lambda: self.publisher.publish_loyalty_award_requested({
                "order_id": order.id,
                "order_number": order.order_number,
                "customer_id": order.customer_id,
                "total_amount": order.total_amount,
            }),
        )

    def payment_completed(self, payment: Payment) -> None:
        self._run(
            "payment notification",
            lambda: self.publisher.publish_payment_completed({
                "payment_id": payment.id,
                "order_id": payment.order_id,
                "customer_id": payment.customer_id,
                "amount": payment.amount,
                "payment_method": payment.payment_method,
                "transaction_id": payment.transaction_id,
                "reference": payment.reference,
            }),
        )
