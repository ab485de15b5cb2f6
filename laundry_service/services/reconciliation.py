"""
Gateway reconciliation.

Folds verified gateway events, from webhooks or synchronous verification,
into at most one payment transition per logical event, then confirms the
owning order in a separate guarded step. Replays, reordering and concurrent
deliveries of the same event all collapse into no-ops against the payment's
current status.
"""
from datetime import datetime, timezone
from typing import Optional

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from laundry_service.database import commit_or_conflict
from laundry_service.exceptions import ConflictError, LaundryServiceError, NotFoundError, UnverifiedEventError
from laundry_service.logger import logger
from laundry_service.models.enums import PaymentStatus
from laundry_service.models.payment import Payment
from laundry_service.publishers.event_publisher import EventPublisher
from laundry_service.repositories.payment_repository import PaymentRepository
from laundry_service.schemas.actor import SYSTEM_ACTOR
from laundry_service.schemas.gateway import GatewayEvent, GatewaySuccessEvent
from laundry_service.schemas.payment import ReconciliationResponse
from laundry_service.services import payment_state_machine
from laundry_service.services.gateway_client import PaystackClient
from laundry_service.services.order_service import OrderService
from laundry_service.services.side_effects import SideEffects


def _result(outcome: str, payment: Optional[Payment] = None, reference: Optional[str] = None,
            order_confirmed: bool = False) -> ReconciliationResponse:
    return ReconciliationResponse(
        outcome=outcome,
        reference=reference or (payment.reference if payment else None),
        payment_id=payment.id if payment else None,
        payment_status=payment.status if payment else None,
        order_confirmed=order_confirmed,
    )


class PaymentReconciler:
    """Applies gateway outcomes to local payments and orders"""

    def __init__(
        self,
        db: Session,
        gateway: Optional[PaystackClient] = None,
        publisher: Optional[EventPublisher] = None,
    ):
        self.db = db
        self.payments = PaymentRepository(db)
        self.gateway = gateway or PaystackClient()
        publisher = publisher or EventPublisher()
        self.order_service = OrderService(db, publisher)
        self.side_effects = SideEffects(db, publisher)

    def handle_gateway_event(self, signature: Optional[str], raw_payload: bytes) -> ReconciliationResponse:
        """
        Entry point for gateway webhooks

        Args:
            signature: Signature header sent by the gateway
            raw_payload: Raw request body, exactly as received

        Returns:
            The reconciliation outcome; every verified delivery is acknowledged

        Raises:
            UnverifiedEventError: If the signature does not match
        """
        if not self.gateway.verify_signature(raw_payload, signature):
            logger.warning("Rejected gateway webhook with an invalid signature")
            raise UnverifiedEventError()

        event = self.gateway.parse_event(raw_payload)
        if event is None:
            return _result("unhandled_event")
        return self.apply_event(event)

    async def verify_payment(self, reference: str) -> ReconciliationResponse:
        """
        Ask the gateway for a transaction's outcome and apply it

        Settled payments are returned as they are without calling the gateway.
        Database work runs in the threadpool; no row is locked while the
        gateway is being called.

        Raises:
            NotFoundError: If no payment carries the reference
            TransientGatewayError: If the gateway could not be reached; nothing changes
        """
        payment = await run_in_threadpool(self.payments.get_by_reference, reference)
        if not payment:
            raise NotFoundError("Payment", reference)
        if payment.status == PaymentStatus.COMPLETED.value:
            return _result("duplicate", payment)
        if payment.status == PaymentStatus.CANCELLED.value:
            return _result("ignored", payment)

        event = await self.gateway.verify_transaction(reference)
        if event is None:
            return _result("inconclusive", payment)
        return await run_in_threadpool(self.apply_event, event)

    def apply_event(self, event: GatewayEvent) -> ReconciliationResponse:
        """Apply one verified event, re-running once if a concurrent delivery won the row"""
        try:
            return self._apply(event)
        except ConflictError:
            logger.info(f"Concurrent reconciliation of {event.reference}; re-evaluating")
            return self._apply(event)

    def _apply(self, event: GatewayEvent) -> ReconciliationResponse:
        payment = self.payments.get_by_reference(event.reference, for_update=True)
        if payment is None:
            logger.warning(f"Gateway event for unknown reference {event.reference} acknowledged")
            return _result("unknown_reference", reference=event.reference)

        status = PaymentStatus(payment.status)
        succeeded = isinstance(event, GatewaySuccessEvent)

        if status == PaymentStatus.CANCELLED:
            logger.warning(f"Gateway {event.outcome} for cancelled payment {payment.id} ignored")
            self.db.rollback()
            return _result("ignored", payment)

        if status == PaymentStatus.COMPLETED:
            self.db.rollback()
            if not succeeded:
                logger.warning(f"Gateway failure for completed payment {payment.id} ignored")
                return _result("ignored", payment)
            logger.info(f"Duplicate success for payment {payment.id}")
            return _result("duplicate", payment, order_confirmed=self._confirm_order(payment))

        if status == PaymentStatus.FAILED and not succeeded:
            logger.info(f"Duplicate failure for payment {payment.id}")
            self.db.rollback()
            return _result("duplicate", payment)

        target = PaymentStatus.COMPLETED if succeeded else PaymentStatus.FAILED
        note = f"Gateway {event.outcome}: {event.gateway_response or 'no response text'}"
        for step in payment_state_machine.path_between(status, target):
            payment_state_machine.apply_transition(
                payment,
                step,
                SYSTEM_ACTOR.id,
                note,
                transaction_id=event.transaction_id if succeeded and step == target else None,
            )

        now = datetime.now(timezone.utc)
        payment.gateway_channel = event.channel
        payment.gateway_response = (event.gateway_response or "")[:255] or None
        payment.gateway_payload = event.raw
        payment.verified_at = now
        if succeeded:
            payment.paid_at = event.gateway_timestamp or now
        else:
            payment.failure_reason = (event.gateway_response or "Declined by payment gateway")[:255]

        commit_or_conflict(self.db, "Payment")
        logger.info(f"Payment {payment.id} {status.value} -> {payment.status} from gateway event")

        if not succeeded:
            return _result("applied", payment)

        self.side_effects.payment_completed(payment)
        return _result("applied", payment, order_confirmed=self._confirm_order(payment))

    def _confirm_order(self, payment: Payment) -> bool:
        """
        Confirm the owning order if it is still pending

        Runs after the payment committed; a failure here leaves the payment
        completed and is healed by the next delivery of the same event.
        """
        try:
            return self.order_service.confirm_paid_order(payment.order_id)
        except LaundryServiceError:
            logger.exception(f"Order confirmation for payment {payment.id} failed; payment stays completed")
            return False
