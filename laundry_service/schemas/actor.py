"""
Acting user passed into every mutating operation
"""
from pydantic import BaseModel, ConfigDict, Field

from laundry_service.models.enums import ActorRole


class Actor(BaseModel):
    """Identity and role of whoever triggers a mutation"""
    id: str = Field(..., min_length=1, max_length=64)
    role: ActorRole

    model_config = ConfigDict(frozen=True)

    @property
    def is_admin(self) -> bool:
        return self.role == ActorRole.ADMIN

    @property
    def is_privileged(self) -> bool:
        return self.role in (ActorRole.ADMIN, ActorRole.SYSTEM)


SYSTEM_ACTOR = Actor(id="system", role=ActorRole.SYSTEM)
