"""
SQLAlchemy models for service providers and processed side-effect events
"""
from sqlalchemy import Boolean, Column, DateTime, String
from sqlalchemy.sql import func

from laundry_service.database import Base


class ServiceProvider(Base):
    """Laundry service provider that can be bound to orders"""

    __tablename__ = "service_providers"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<ServiceProvider(id='{self.id}', name='{self.name}', active={self.is_active})>"


class ProcessedEvent(Base):
    """Table to track one-shot side effects (idempotency)"""

    __tablename__ = "processed_events"

    event_id = Column(String(100), primary_key=True, unique=True, nullable=False)
    event_type = Column(String(100), nullable=False)
    processed_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<ProcessedEvent(event_id='{self.event_id}', event_type='{self.event_type}')>"
