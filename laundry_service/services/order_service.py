"""
Order Service - Business Logic Layer
"""
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from laundry_service.database import commit_or_conflict
from laundry_service.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from laundry_service.logger import logger
from laundry_service.models.enums import ActorRole, OrderStatus, PaymentStatus
from laundry_service.models.order import ClothingItem, Order, OrderItem, new_id
from laundry_service.models.payment import Payment
from laundry_service.models.tracking import OrderTracking
from laundry_service.publishers.event_publisher import EventPublisher
from laundry_service.repositories.order_repository import OrderRepository
from laundry_service.repositories.payment_repository import PaymentRepository
from laundry_service.repositories.processed_event_repository import ProcessedEventRepository
from laundry_service.schemas.actor import SYSTEM_ACTOR, Actor
from laundry_service.schemas.order import ChargesUpdate, OrderCreate
from laundry_service.services import ledger, order_state_machine, payment_state_machine
from laundry_service.services.side_effects import SideEffects
from laundry_service.services.tracking import TrackingService

LOYALTY_AWARD_EVENT = "loyalty-award"


def loyalty_event_id(order_id: str) -> str:
    return f"{LOYALTY_AWARD_EVENT}:{order_id}"


class OrderService:
    """Service layer for order business logic"""

    def __init__(self, db: Session, publisher: Optional[EventPublisher] = None):
        self.db = db
        self.repository = OrderRepository(db)
        self.payments = PaymentRepository(db)
        self.processed_events = ProcessedEventRepository(db)
        self.tracking = TrackingService(db)
        self.side_effects = SideEffects(db, publisher or EventPublisher())

    # Loading and visibility

    def _load_for_update(self, order_id: str) -> Order:
        order = self.repository.get_for_update(order_id)
        if not order:
            raise NotFoundError("Order", order_id)
        return order

    @staticmethod
    def _check_visible(order: Order, actor: Actor) -> None:
        if actor.role == ActorRole.CUSTOMER and order.customer_id != actor.id:
            raise ForbiddenError("Access denied")
        if actor.role == ActorRole.SERVICE_PROVIDER:
            open_for_assignment = order.service_provider_id is None and order.status in (
                OrderStatus.PENDING.value,
                OrderStatus.CONFIRMED.value,
            )
            if order.service_provider_id != actor.id and not open_for_assignment:
                raise ForbiddenError("Access denied")

    @staticmethod
    def _require_mutable(order: Order) -> None:
        if order_state_machine.is_terminal(order):
            raise ConflictError(f"Order {order.order_number} is {order.status} and can no longer be modified")

    def _refresh_totals(self, order: Order) -> None:
        """Recompute totals and keep a still-pending, unrefunded payment in step with them"""
        totals = ledger.apply_totals(order)
        order.updated_at = datetime.now(timezone.utc)
        payment = self.payments.get_active_for_order(order.id, for_update=True)
        if payment and payment.status == PaymentStatus.PENDING.value and not payment.refund_amount:
            payment.amount = totals.total_amount

    # Queries

    def get_order(self, order_id: str, actor: Actor) -> Order:
        """Get order by ID, visible to its customer, its provider and admins"""
        order = self.repository.get_by_id(order_id)
        if not order:
            raise NotFoundError("Order", order_id)
        self._check_visible(order, actor)
        return order

    def list_orders(
        self,
        actor: Actor,
        status: Optional[OrderStatus] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> tuple[List[Order], int]:
        """
        List the orders an actor may see

        Customers see their own orders, providers the orders bound to them plus
        unassigned pending/confirmed ones, admins everything.
        """
        filters = {"status": status.value if status else None}
        if actor.role == ActorRole.CUSTOMER:
            filters["customer_id"] = actor.id
        elif actor.role == ActorRole.SERVICE_PROVIDER:
            filters["available_to"] = actor.id
        orders = self.repository.list(skip=skip, limit=limit, **filters)
        return orders, self.repository.count(**filters)

    def list_clothing_items(self, order_id: str, actor: Actor) -> List[ClothingItem]:
        return self.get_order(order_id, actor).clothing_items

    def get_tracking(self, order_id: str, actor: Actor) -> OrderTracking:
        order = self.get_order(order_id, actor)
        tracking = self.tracking.get(order.id)
        if tracking is None:
            raise NotFoundError("Tracking", order_id)
        return tracking

    # Commands

    def create_order(self, order_data: OrderCreate, actor: Actor) -> Order:
        """
        Create a new order with its pending payment

        Steps:
        1. Compute totals from the requested lines and charges
        2. Build lines and clothing items with per-order item ids
        3. Seed the status history with ``pending``
        4. Create the order's pending payment
        5. Commit, then project tracking

        Args:
            order_data: Order creation data
            actor: The ordering customer

        Returns:
            Created order

        Raises:
            ForbiddenError: If the actor is not a customer
            ValidationError: If the charges produce an invalid total
        """
        if actor.role != ActorRole.CUSTOMER:
            raise ForbiddenError("Only customers can place orders")

        totals = ledger.compute_totals(
            order_data.items,
            tax=order_data.tax,
            delivery_fee=order_data.delivery_fee,
            discount=order_data.discount,
            is_urgent=order_data.is_urgent,
        )

        order = Order(
            id=new_id(),
            customer_id=actor.id,
            status=OrderStatus.PENDING.value,
            subtotal=totals.subtotal,
            tax=totals.tax,
            delivery_fee=totals.delivery_fee,
            discount=totals.discount,
            total_amount=totals.total_amount,
            tax_overridden=order_data.tax is not None,
            delivery_fee_overridden=order_data.delivery_fee is not None,
            is_urgent=order_data.is_urgent,
            pickup_address=order_data.pickup_address.model_dump(),
            delivery_address=order_data.delivery_address.model_dump(),
            pickup_date=order_data.pickup_date,
            delivery_date=order_data.delivery_date,
            customer_notes=order_data.special_instructions or None,
        )

        for position, line in enumerate(order_data.items):
            item = OrderItem(
                position=position,
                service_id=line.service_id,
                service_name=line.service_name,
                quantity=line.quantity,
                unit_price=line.unit_price,
                line_total=ledger.line_total(line),
                special_instructions=line.special_instructions or None,
            )
            order.items.append(item)
            for garment in line.clothing_items:
                item.clothing_items.append(
                    ClothingItem(
                        order_id=order.id,
                        item_id=ledger.generate_item_id(order),
                        description=garment.description,
                        service_id=line.service_id,
                        unit_price=garment.unit_price,
                        special_instructions=garment.special_instructions or None,
                    )
                )

        order_state_machine.record_status(order, OrderStatus.PENDING, actor.id, "Order created")

        payment = Payment(
            id=new_id(),
            order_id=order.id,
            customer_id=actor.id,
            amount=order.total_amount,
            payment_method=order_data.payment_method.value,
            status=PaymentStatus.PENDING.value,
        )
        payment_state_machine.record_status(payment, PaymentStatus.PENDING, actor.id, "Payment created")
        order.payment_id = payment.id

        self.repository.add(order)
        self.db.flush()
        self.payments.add(payment)
        commit_or_conflict(self.db, "Order")
        logger.info(f"Order {order.order_number} created for customer {actor.id} (total {order.total_amount})")

        self.side_effects.order_created(order, actor.id)
        return order

    def transition_order(self, order_id: str, target: OrderStatus, actor: Actor, notes: str = "") -> Order:
        """
        Move an order to a new status

        Args:
            order_id: Order ID
            target: Requested status
            actor: Acting user
            notes: Free text stored in the history (and as cancellation reason)

        Returns:
            Updated order

        Raises:
            NotFoundError: If the order does not exist
            ForbiddenError: If the actor may not perform this move
            InvalidTransitionError: If the move is not in the transition table
            ConflictError: If a concurrent update won the race
        """
        order = self._load_for_update(order_id)
        order_state_machine.check_transition(order, target)
        order_state_machine.authorize_transition(order, actor, target)
        old_status = order_state_machine.apply_transition(order, target, actor, notes)

        award_loyalty = False
        if OrderStatus(target) == OrderStatus.COMPLETED:
            award_loyalty = self.processed_events.claim(loyalty_event_id(order.id), LOYALTY_AWARD_EVENT)

        commit_or_conflict(self.db, "Order")
        logger.info(f"Order {order.order_number}: {old_status.value} -> {order.status} by {actor.id}")

        self.side_effects.order_transitioned(order, old_status, actor.id, notes)
        if award_loyalty:
            self.side_effects.loyalty_award(order)
        return order

    def confirm_paid_order(self, order_id: str) -> bool:
        """
        Confirm a still-pending order after its payment completed

        Returns:
            True if this call confirmed the order, False if it had already left ``pending``
        """
        order = self._load_for_update(order_id)
        if order.status != OrderStatus.PENDING.value:
            logger.info(f"Order {order.order_number} is already {order.status}; payment confirmation skipped")
            self.db.rollback()
            return False

        notes = "Payment confirmed"
        old_status = order_state_machine.apply_transition(order, OrderStatus.CONFIRMED, SYSTEM_ACTOR, notes)
        commit_or_conflict(self.db, "Order")
        logger.info(f"Order {order.order_number} confirmed after payment")

        self.side_effects.order_transitioned(order, old_status, SYSTEM_ACTOR.id, notes)
        return True

    def add_clothing_item(
        self,
        order_id: str,
        line_index: int,
        description: str,
        actor: Actor,
        special_instructions: str = "",
    ) -> ClothingItem:
        """
        Add a garment to an order line; its price is the line's unit price

        Raises:
            ForbiddenError: If the actor is neither the customer, the bound provider nor an admin
            ValidationError: If the line index is out of range
            ConflictError: If the order is terminal
        """
        order = self._load_for_update(order_id)
        if actor.role == ActorRole.SERVICE_PROVIDER:
            if order.service_provider_id != actor.id:
                raise ForbiddenError("You can only update orders assigned to you")
        elif not actor.is_privileged:
            self._check_visible(order, actor)
        self._require_mutable(order)
        if line_index < 0 or line_index >= len(order.items):
            raise ValidationError(f"Invalid item index {line_index}")

        line = order.items[line_index]
        garment = ClothingItem(
            order_id=order.id,
            item_id=ledger.generate_item_id(order),
            description=description,
            service_id=line.service_id,
            unit_price=line.unit_price,
            special_instructions=special_instructions or None,
        )
        line.clothing_items.append(garment)
        self._refresh_totals(order)

        commit_or_conflict(self.db, "Order")
        logger.info(f"Clothing item {garment.item_id} added to order {order.order_number}")
        return garment

    def confirm_clothing_item(self, order_id: str, item_id: str, actor: Actor, confirmed: bool = True) -> ClothingItem:
        """Bound provider marks a garment as received"""
        order = self._load_for_update(order_id)
        if actor.role != ActorRole.SERVICE_PROVIDER or order.service_provider_id != actor.id:
            raise ForbiddenError("Only the assigned service provider can confirm clothing items")
        self._require_mutable(order)

        garment = next((ci for ci in order.clothing_items if ci.item_id == item_id), None)
        if garment is None:
            raise NotFoundError("Clothing item", item_id)

        garment.is_confirmed = confirmed
        order.updated_at = datetime.now(timezone.utc)
        commit_or_conflict(self.db, "Order")
        return garment

    def adjust_charges(self, order_id: str, charges: ChargesUpdate, actor: Actor) -> Order:
        """Admin override of tax, delivery fee or discount; totals are recomputed"""
        if not actor.is_admin:
            raise ForbiddenError("Only admins can adjust order charges")
        order = self._load_for_update(order_id)
        self._require_mutable(order)

        if charges.tax is not None:
            order.tax = charges.tax
            order.tax_overridden = True
        if charges.delivery_fee is not None:
            order.delivery_fee = charges.delivery_fee
            order.delivery_fee_overridden = True
        if charges.discount is not None:
            order.discount = charges.discount
        self._refresh_totals(order)

        commit_or_conflict(self.db, "Order")
        logger.info(f"Charges of order {order.order_number} adjusted by {actor.id}: total {order.total_amount}")
        return order

    def update_notes(self, order_id: str, notes: str, actor: Actor) -> Order:
        """Each party edits its own note field; allowed on terminal orders too"""
        order = self._load_for_update(order_id)
        if actor.role == ActorRole.CUSTOMER:
            if order.customer_id != actor.id:
                raise ForbiddenError("Access denied")
            order.customer_notes = notes
        elif actor.role == ActorRole.SERVICE_PROVIDER:
            if order.service_provider_id != actor.id:
                raise ForbiddenError("You can only update orders assigned to you")
            order.provider_notes = notes
        elif actor.is_admin:
            order.admin_notes = notes
        else:
            raise ForbiddenError("Notes cannot be edited by this actor")

        order.updated_at = datetime.now(timezone.utc)
        commit_or_conflict(self.db, "Order")
        return order
