"""
Assignment & fulfillment coordinator: binds service providers to orders
"""
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from laundry_service.database import commit_or_conflict
from laundry_service.exceptions import ConflictError, ForbiddenError, InvalidTransitionError, NotFoundError
from laundry_service.logger import logger
from laundry_service.models.enums import ActorRole, AssignmentMode, OrderStatus
from laundry_service.models.order import Order, OrderAssignment
from laundry_service.models.provider import ServiceProvider
from laundry_service.publishers.event_publisher import EventPublisher
from laundry_service.repositories.order_repository import OrderRepository
from laundry_service.repositories.payment_repository import PaymentRepository
from laundry_service.repositories.provider_repository import ProviderRepository
from laundry_service.schemas.actor import Actor
from laundry_service.services import order_state_machine
from laundry_service.services.side_effects import SideEffects

SELF_ASSIGN_NOTE = "Self-assigned by service provider"
ADMIN_ASSIGN_NOTE = "Assigned by admin"

# Statuses from which an assignment also advances the order to ``assigned``
_ASSIGNABLE_STATUSES = (OrderStatus.PENDING, OrderStatus.CONFIRMED)


class AssignmentService:
    """Self-assignment and admin-directed assignment of providers"""

    def __init__(self, db: Session, publisher: Optional[EventPublisher] = None):
        self.db = db
        self.orders = OrderRepository(db)
        self.payments = PaymentRepository(db)
        self.providers = ProviderRepository(db)
        self.side_effects = SideEffects(db, publisher or EventPublisher())

    def _active_provider(self, provider_id: str) -> ServiceProvider:
        provider = self.providers.get_by_id(provider_id)
        if not provider:
            raise NotFoundError("Service provider", provider_id)
        if not provider.is_active:
            raise ForbiddenError(f"Service provider {provider_id} is not active")
        return provider

    def _load_for_update(self, order_id: str) -> Order:
        order = self.orders.get_for_update(order_id)
        if not order:
            raise NotFoundError("Order", order_id)
        return order

    def _bind(self, order: Order, provider_id: str, actor: Actor, mode: AssignmentMode, notes: str) -> None:
        """Bind the provider, audit the binding and cascade it to the order's payments"""
        order.assignments.append(
            OrderAssignment(
                service_provider_id=provider_id,
                previous_provider_id=order.service_provider_id,
                mode=mode.value,
                assigned_by=actor.id,
                assigned_at=datetime.now(timezone.utc),
                notes=notes or None,
            )
        )
        order.service_provider_id = provider_id
        order.updated_at = datetime.now(timezone.utc)
        for payment in self.payments.list_for_order(order.id):
            payment.service_provider_id = provider_id

    @staticmethod
    def _advance_to_assigned(order: Order, actor: Actor, notes: str) -> None:
        """pending walks through confirmed so every history step stays legal"""
        if OrderStatus(order.status) == OrderStatus.PENDING:
            order_state_machine.apply_transition(order, OrderStatus.CONFIRMED, actor, notes)
        order_state_machine.apply_transition(order, OrderStatus.ASSIGNED, actor, notes)

    def self_assign(self, order_id: str, actor: Actor) -> Order:
        """
        A service provider claims an unassigned order

        Args:
            order_id: Order ID
            actor: The claiming provider

        Returns:
            The order, now ``assigned`` and bound to the provider

        Raises:
            ForbiddenError: If the actor is not an active service provider
            NotFoundError: If the order or the provider record does not exist
            InvalidTransitionError: If the order is not pending or confirmed
            ConflictError: If the order is already bound, or a concurrent claim won
        """
        if actor.role != ActorRole.SERVICE_PROVIDER:
            raise ForbiddenError("Only service providers can self-assign orders")
        self._active_provider(actor.id)

        order = self._load_for_update(order_id)
        if order.service_provider_id:
            raise ConflictError("Order is already assigned to a service provider")
        current = OrderStatus(order.status)
        if current not in _ASSIGNABLE_STATUSES:
            raise InvalidTransitionError(
                current.value,
                OrderStatus.ASSIGNED.value,
                f"Order cannot be self-assigned while {current.value}",
            )

        self._bind(order, actor.id, actor, AssignmentMode.SELF, SELF_ASSIGN_NOTE)
        self._advance_to_assigned(order, actor, SELF_ASSIGN_NOTE)

        commit_or_conflict(self.db, "Order")
        logger.info(f"Order {order.order_number} self-assigned by provider {actor.id}")

        self.side_effects.order_transitioned(order, current, actor.id, SELF_ASSIGN_NOTE)
        return order

    def admin_assign(self, order_id: str, provider_id: str, actor: Actor, notes: str = "") -> Order:
        """
        An admin binds (or re-binds) a provider to any non-terminal order

        Raises:
            ForbiddenError: If the actor is not an admin, or the provider is inactive
            NotFoundError: If the order or provider does not exist
            ConflictError: If the order is terminal, or a concurrent update won
        """
        if not actor.is_admin:
            raise ForbiddenError("Only admins can assign orders")
        self._active_provider(provider_id)

        order = self._load_for_update(order_id)
        if order_state_machine.is_terminal(order):
            raise ConflictError(f"Order {order.order_number} is {order.status} and cannot be assigned")

        previous_provider = order.service_provider_id
        current = OrderStatus(order.status)
        note = notes or ADMIN_ASSIGN_NOTE
        self._bind(order, provider_id, actor, AssignmentMode.ADMIN, note)
        if current in _ASSIGNABLE_STATUSES:
            self._advance_to_assigned(order, actor, note)

        commit_or_conflict(self.db, "Order")
        if previous_provider and previous_provider != provider_id:
            logger.info(f"Order {order.order_number} reassigned from {previous_provider} to {provider_id} by {actor.id}")
        else:
            logger.info(f"Order {order.order_number} assigned to {provider_id} by {actor.id}")

        if OrderStatus(order.status) != current:
            self.side_effects.order_transitioned(order, current, actor.id, note)
        return order
