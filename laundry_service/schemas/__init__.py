"""
Schemas package
"""
from laundry_service.schemas.actor import Actor, SYSTEM_ACTOR
from laundry_service.schemas.gateway import (
    GatewayEvent,
    GatewayFailureEvent,
    GatewayInitialization,
    GatewaySuccessEvent,
)
from laundry_service.schemas.order import (
    Address,
    AssignRequest,
    ChargesUpdate,
    ClothingItemAdd,
    ClothingItemConfirm,
    ClothingItemCreate,
    ClothingItemResponse,
    NotesUpdate,
    OrderCreate,
    OrderItemCreate,
    OrderListResponse,
    OrderResponse,
    OrderStatusUpdate,
    TrackingResponse,
)
from laundry_service.schemas.payment import (
    PaymentInitialize,
    PaymentInitializeResponse,
    PaymentResponse,
    PaymentStatusUpdate,
    ReconciliationResponse,
    RefundRequest,
)

__all__ = [
    "Actor",
    "SYSTEM_ACTOR",
    "GatewayEvent",
    "GatewayFailureEvent",
    "GatewayInitialization",
    "GatewaySuccessEvent",
    "Address",
    "AssignRequest",
    "ChargesUpdate",
    "ClothingItemAdd",
    "ClothingItemConfirm",
    "ClothingItemCreate",
    "ClothingItemResponse",
    "NotesUpdate",
    "OrderCreate",
    "OrderItemCreate",
    "OrderListResponse",
    "OrderResponse",
    "OrderStatusUpdate",
    "TrackingResponse",
    "PaymentInitialize",
    "PaymentInitializeResponse",
    "PaymentResponse",
    "PaymentStatusUpdate",
    "ReconciliationResponse",
    "RefundRequest",
]
