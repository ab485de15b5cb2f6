"""
Shared FastAPI dependencies: acting user and service factories
"""
from fastapi import Depends, Header
from sqlalchemy.orm import Session

from laundry_service.database import get_db
from laundry_service.models.enums import ActorRole
from laundry_service.publishers.event_publisher import EventPublisher
from laundry_service.schemas.actor import Actor
from laundry_service.services.assignment import AssignmentService
from laundry_service.services.gateway_client import PaystackClient
from laundry_service.services.order_service import OrderService
from laundry_service.services.payment_service import PaymentService
from laundry_service.services.reconciliation import PaymentReconciler


def get_actor(
    x_actor_id: str = Header(..., description="Authenticated user id, set by the API gateway"),
    x_actor_role: ActorRole = Header(..., description="Authenticated user role, set by the API gateway"),
) -> Actor:
    """Identity of the caller as asserted by the upstream authentication layer"""
    return Actor(id=x_actor_id, role=x_actor_role)


def get_publisher() -> EventPublisher:
    return EventPublisher()


def get_gateway() -> PaystackClient:
    return PaystackClient()


def get_order_service(
    db: Session = Depends(get_db),
    publisher: EventPublisher = Depends(get_publisher),
) -> OrderService:
    """Dependency to get OrderService instance"""
    return OrderService(db, publisher)


def get_assignment_service(
    db: Session = Depends(get_db),
    publisher: EventPublisher = Depends(get_publisher),
) -> AssignmentService:
    return AssignmentService(db, publisher)


def get_payment_service(
    db: Session = Depends(get_db),
    publisher: EventPublisher = Depends(get_publisher),
    gateway: PaystackClient = Depends(get_gateway),
) -> PaymentService:
    return PaymentService(db, publisher, gateway)


def get_reconciler(
    db: Session = Depends(get_db),
    publisher: EventPublisher = Depends(get_publisher),
    gateway: PaystackClient = Depends(get_gateway),
) -> PaymentReconciler:
    return PaymentReconciler(db, gateway, publisher)
