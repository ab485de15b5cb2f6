"""
Verified gateway events and gateway call results.

Provider-specific payloads are translated into these shapes by the gateway
client; reconciliation never inspects raw provider JSON.
"""
from datetime import datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class _GatewayEventBase(BaseModel):
    reference: str = Field(..., min_length=1)
    channel: Optional[str] = None
    gateway_response: Optional[str] = None
    gateway_timestamp: Optional[datetime] = None
    raw: dict = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)


class GatewaySuccessEvent(_GatewayEventBase):
    outcome: Literal["success"] = "success"
    transaction_id: Optional[str] = None


class GatewayFailureEvent(_GatewayEventBase):
    outcome: Literal["failure"] = "failure"


GatewayEvent = Annotated[
    Union[GatewaySuccessEvent, GatewayFailureEvent],
    Field(discriminator="outcome"),
]


class GatewayInitialization(BaseModel):
    """Result of starting a hosted payment with the gateway"""
    reference: str
    authorization_url: str
    access_code: Optional[str] = None
