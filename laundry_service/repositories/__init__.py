"""
Repositories package
"""
from laundry_service.repositories.order_repository import OrderRepository
from laundry_service.repositories.payment_repository import PaymentRepository
from laundry_service.repositories.processed_event_repository import ProcessedEventRepository
from laundry_service.repositories.provider_repository import ProviderRepository
from laundry_service.repositories.tracking_repository import TrackingRepository

__all__ = [
    "OrderRepository",
    "PaymentRepository",
    "ProcessedEventRepository",
    "ProviderRepository",
    "TrackingRepository",
]
