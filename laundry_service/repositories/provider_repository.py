"""
Service Provider Repository - Data Access Layer
"""
from typing import Optional

from sqlalchemy.orm import Session

from laundry_service.models.provider import ServiceProvider


class ProviderRepository:
    """Repository for the service provider registry"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, provider_id: str) -> Optional[ServiceProvider]:
        """Get provider by ID"""
        return self.db.query(ServiceProvider).filter(ServiceProvider.id == provider_id).first()

    def create(self, provider_id: str, name: str, is_active: bool = True) -> ServiceProvider:
        """Register a provider"""
        provider = ServiceProvider(id=provider_id, name=name, is_active=is_active)
        self.db.add(provider)
        self.db.commit()
        self.db.refresh(provider)
        return provider
