"""
Models package
"""
from laundry_service.models.enums import (
    ActorRole,
    AssignmentMode,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    TrackingLocation,
)
from laundry_service.models.provider import ProcessedEvent, ServiceProvider
from laundry_service.models.order import (
    ClothingItem,
    Order,
    OrderAssignment,
    OrderItem,
    OrderStatusHistory,
)
from laundry_service.models.payment import Payment, PaymentStatusHistory
from laundry_service.models.tracking import OrderTracking, TrackingStep

__all__ = [
    "ActorRole",
    "AssignmentMode",
    "OrderStatus",
    "PaymentMethod",
    "PaymentStatus",
    "TrackingLocation",
    "ProcessedEvent",
    "ServiceProvider",
    "ClothingItem",
    "Order",
    "OrderAssignment",
    "OrderItem",
    "OrderStatusHistory",
    "Payment",
    "PaymentStatusHistory",
    "OrderTracking",
    "TrackingStep",
]
