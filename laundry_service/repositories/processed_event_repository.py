"""
Processed Event Repository - idempotency ledger for one-shot side effects
"""
from sqlalchemy.orm import Session

from laundry_service.models.provider import ProcessedEvent


class ProcessedEventRepository:
    """Repository for tracking processed events (idempotency)"""

    def __init__(self, db: Session):
        self.db = db

    def is_processed(self, event_id: str) -> bool:
        """Check if event was already processed"""
        return self.db.query(ProcessedEvent).filter(
            ProcessedEvent.event_id == event_id
        ).first() is not None

    def claim(self, event_id: str, event_type: str) -> bool:
        """
        Stage the event as processed in the caller's transaction

        A concurrent claim of the same id fails on commit with IntegrityError.

        Returns:
            True if this call staged the claim, False if it was already taken
        """
        if self.is_processed(event_id):
            return False
        self.db.add(ProcessedEvent(event_id=event_id, event_type=event_type))
        return True
