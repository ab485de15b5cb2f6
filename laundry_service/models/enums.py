"""
Status and method enumerations shared by models, schemas and services
"""
from enum import Enum


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    READY_FOR_PICKUP = "ready_for_pickup"
    PICKED_UP = "picked_up"
    READY_FOR_DELIVERY = "ready_for_delivery"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    CASH = "cash"
    MOBILE_MONEY = "mobile_money"
    CARD = "card"
    BANK_TRANSFER = "bank_transfer"
    DIGITAL_WALLET = "digital_wallet"


class TrackingLocation(str, Enum):
    PENDING = "pending"
    PICKUP_SCHEDULED = "pickup_scheduled"
    PICKED_UP = "picked_up"
    IN_TRANSIT_TO_FACILITY = "in_transit_to_facility"
    AT_FACILITY = "at_facility"
    CLEANING = "cleaning"
    READY_FOR_DELIVERY = "ready_for_delivery"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"


class ActorRole(str, Enum):
    CUSTOMER = "customer"
    SERVICE_PROVIDER = "service_provider"
    ADMIN = "admin"
    SYSTEM = "system"


class AssignmentMode(str, Enum):
    SELF = "self"
    ADMIN = "admin"


def sql_in(enum_cls) -> str:
    """Render enum values for a CHECK ... IN (...) constraint"""
    return ", ".join(f"'{member.value}'" for member in enum_cls)
