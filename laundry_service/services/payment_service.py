"""
Payment Service - Business Logic Layer
"""
import re
from datetime import datetime, timezone
from typing import Optional

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from laundry_service.database import commit_or_conflict
from laundry_service.exceptions import ConflictError, ForbiddenError, LaundryServiceError, NotFoundError, ValidationError
from laundry_service.logger import logger
from laundry_service.models.enums import ActorRole, OrderStatus, PaymentMethod, PaymentStatus
from laundry_service.models.order import Order, new_id
from laundry_service.models.payment import Payment
from laundry_service.publishers.event_publisher import EventPublisher
from laundry_service.repositories.order_repository import OrderRepository
from laundry_service.repositories.payment_repository import PaymentRepository
from laundry_service.schemas.actor import Actor
from laundry_service.schemas.gateway import GatewayInitialization
from laundry_service.schemas.payment import PaymentInitialize, PaymentStatusUpdate, RefundRequest
from laundry_service.services import payment_state_machine
from laundry_service.services.gateway_client import PaystackClient
from laundry_service.services.side_effects import SideEffects

GHANA_COUNTRY_CODE = "233"

_GATEWAY_CHANNELS = {
    PaymentMethod.MOBILE_MONEY: ["mobile_money"],
    PaymentMethod.CARD: ["card"],
    PaymentMethod.BANK_TRANSFER: ["bank_transfer"],
}


def normalize_momo_phone(phone: str) -> str:
    """Ghana mobile number in international form without '+': 0241234567 -> 233241234567"""
    digits = re.sub(r"\D", "", phone or "")
    if not digits:
        raise ValidationError("A mobile money phone number is required")
    if digits.startswith(GHANA_COUNTRY_CODE):
        return digits
    if digits.startswith("0"):
        digits = digits[1:]
    return f"{GHANA_COUNTRY_CODE}{digits}"


class PaymentService:
    """Service layer for payment business logic"""

    def __init__(
        self,
        db: Session,
        publisher: Optional[EventPublisher] = None,
        gateway: Optional[PaystackClient] = None,
    ):
        self.db = db
        self.repository = PaymentRepository(db)
        self.orders = OrderRepository(db)
        self.gateway = gateway or PaystackClient()
        self.side_effects = SideEffects(db, publisher or EventPublisher())

    def _load_for_update(self, payment_id: str) -> Payment:
        payment = self.repository.get_for_update(payment_id)
        if not payment:
            raise NotFoundError("Payment", payment_id)
        return payment

    def get_payment(self, payment_id: str, actor: Actor) -> Payment:
        """Get payment by ID, visible to its customer, its provider and admins"""
        payment = self.repository.get_by_id(payment_id)
        if not payment:
            raise NotFoundError("Payment", payment_id)
        if actor.role == ActorRole.CUSTOMER and payment.customer_id != actor.id:
            raise ForbiddenError("Access denied")
        if actor.role == ActorRole.SERVICE_PROVIDER and payment.service_provider_id != actor.id:
            raise ForbiddenError("Access denied")
        return payment

    def get_payment_by_reference(self, reference: str) -> Payment:
        payment = self.repository.get_by_reference(reference)
        if not payment:
            raise NotFoundError("Payment", reference)
        return payment

    def set_payment_status(self, payment_id: str, update: PaymentStatusUpdate, actor: Actor) -> Payment:
        """
        Move a payment through its state machine by hand (cash collection, admin fixes)

        The owning order is never changed here.

        Args:
            payment_id: Payment ID
            update: Target status, notes and optional transaction id
            actor: Admin, system, or the provider bound to the payment

        Returns:
            Updated payment

        Raises:
            ForbiddenError: If the actor may not change this payment
            InvalidPaymentTransitionError: If the move is not in the transition table
            ConflictError: If a concurrent update won the race
        """
        payment = self._load_for_update(payment_id)
        if not actor.is_privileged:
            if actor.role != ActorRole.SERVICE_PROVIDER or payment.service_provider_id != actor.id:
                raise ForbiddenError("Only admins or the assigned service provider can update payment status")

        old_status = payment_state_machine.apply_transition(
            payment,
            update.status,
            actor.id,
            update.notes,
            transaction_id=update.transaction_id,
        )
        if update.status == PaymentStatus.FAILED:
            payment.failure_reason = (update.notes or "Marked as failed")[:255]
        if update.notes:
            payment.notes = update.notes

        commit_or_conflict(self.db, "Payment")
        logger.info(f"Payment {payment.id}: {old_status.value} -> {payment.status} by {actor.id}")

        if payment.status == PaymentStatus.COMPLETED.value:
            self.side_effects.payment_completed(payment)
        return payment

    def refund_payment(self, payment_id: str, refund: RefundRequest, actor: Actor) -> Payment:
        """Annotate a refund on a payment; admins only, status untouched"""
        if not actor.is_privileged:
            raise ForbiddenError("Only admins can refund payments")
        payment = self._load_for_update(payment_id)
        payment_state_machine.apply_refund(payment, refund.amount, refund.reason)

        commit_or_conflict(self.db, "Payment")
        logger.info(f"Refund of {payment.refund_amount} recorded on payment {payment.id} by {actor.id}")
        return payment

    def _payment_to_initialize(self, order, actor: Actor, method: PaymentMethod) -> Payment:
        """Reuse a pending payment, reopen a failed one or start a fresh one"""
        active = self.repository.get_active_for_order(order.id, for_update=True)
        if active is not None:
            if active.status in (PaymentStatus.COMPLETED.value, PaymentStatus.PROCESSING.value):
                raise ConflictError(f"Order {order.order_number} already has a {active.status} payment")
            return active

        failed = self.repository.get_latest_failed_for_order(order.id)
        if failed is not None:
            payment_state_machine.apply_transition(failed, PaymentStatus.PENDING, actor.id, "Payment retried")
            return failed

        payment = Payment(
            id=new_id(),
            order_id=order.id,
            customer_id=order.customer_id,
            service_provider_id=order.service_provider_id,
            amount=order.total_amount,
            payment_method=method.value,
            status=PaymentStatus.PENDING.value,
        )
        payment_state_machine.record_status(payment, PaymentStatus.PENDING, actor.id, "Payment created")
        self.repository.add(payment)
        return payment

    def _prepare_initialization(self, order_id: str, actor: Actor, method: PaymentMethod) -> tuple[Order, Payment]:
        """Pick the payment to initialize and commit it before the gateway is contacted"""
        order = self.orders.get_for_update(order_id)
        try:
            if not order:
                raise NotFoundError("Order", order_id)
            if not actor.is_admin and (actor.role != ActorRole.CUSTOMER or order.customer_id != actor.id):
                raise ForbiddenError("Access denied")
            if order.status == OrderStatus.CANCELLED.value:
                raise ConflictError(f"Order {order.order_number} is cancelled")
            payment = self._payment_to_initialize(order, actor, method)
        except LaundryServiceError:
            self.db.rollback()
            raise

        if not payment.refund_amount:
            payment.amount = order.total_amount
        payment.payment_method = method.value
        payment.updated_at = datetime.now(timezone.utc)
        order.payment_id = payment.id
        order.updated_at = datetime.now(timezone.utc)
        commit_or_conflict(self.db, "Payment")
        return order, payment

    def _record_initialization(self, payment_id: str, init: GatewayInitialization, details: dict) -> Payment:
        payment = self._load_for_update(payment_id)
        if payment.status != PaymentStatus.PENDING.value:
            self.db.rollback()
            raise ConflictError(f"Payment {payment_id} became {payment.status} while the gateway was contacted")

        payment.reference = init.reference
        payment.access_code = init.access_code
        payment.authorization_url = init.authorization_url
        payment.payment_details = details or None
        payment.updated_at = datetime.now(timezone.utc)
        commit_or_conflict(self.db, "Payment")
        return payment

    async def initialize_payment(self, order_id: str, request: PaymentInitialize, actor: Actor) -> tuple[Payment, GatewayInitialization]:
        """
        Start a hosted gateway payment for an order

        Database work runs in the threadpool and no transaction is open while
        the gateway is being called.

        Args:
            order_id: Order ID
            request: Method, customer email and mobile money details
            actor: The order's customer or an admin

        Returns:
            The pending payment and the gateway's authorization data

        Raises:
            ValidationError: For cash payments or a missing mobile money number
            ConflictError: If the order is cancelled or already paid / being paid
            TransientGatewayError: If the gateway could not be reached
            PaymentGatewayError: If the gateway rejected the request
        """
        if request.payment_method == PaymentMethod.CASH:
            raise ValidationError("Cash payments are settled on delivery and do not use the gateway")

        details = {}
        if request.payment_method == PaymentMethod.MOBILE_MONEY:
            details = {
                "momo_phone": normalize_momo_phone(request.momo_phone),
                "momo_provider": request.momo_provider,
            }

        order, payment = await run_in_threadpool(
            self._prepare_initialization, order_id, actor, request.payment_method
        )
        init = await self.gateway.initialize_transaction(
            email=request.email,
            amount=payment.amount,
            reference=self.gateway.generate_reference(order.order_number),
            channels=_GATEWAY_CHANNELS.get(request.payment_method),
            metadata={"order_id": order.id, "payment_id": payment.id, "order_number": order.order_number, **details},
        )

        payment = await run_in_threadpool(self._record_initialization, payment.id, init, details)
        logger.info(f"Gateway payment {payment.reference} initialized for order {order.order_number}")
        return payment, init
