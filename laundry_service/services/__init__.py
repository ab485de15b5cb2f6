"""
Services package
"""
from laundry_service.services.assignment import AssignmentService
from laundry_service.services.gateway_client import PaystackClient
from laundry_service.services.order_service import OrderService
from laundry_service.services.payment_service import PaymentService
from laundry_service.services.reconciliation import PaymentReconciler
from laundry_service.services.tracking import TrackingService

__all__ = [
    "AssignmentService",
    "OrderService",
    "PaymentReconciler",
    "PaymentService",
    "PaystackClient",
    "TrackingService",
]
