"""
Pydantic schemas for payment request/response validation
"""
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from laundry_service.models.enums import PaymentMethod, PaymentStatus


class PaymentStatusUpdate(BaseModel):
    """Schema for updating payment status"""
    status: PaymentStatus
    notes: str = Field("", max_length=500)
    transaction_id: Optional[str] = Field(None, max_length=100)


class RefundRequest(BaseModel):
    amount: float = Field(..., ge=0)
    reason: str = Field("", max_length=200)


class PaymentInitialize(BaseModel):
    """Start a gateway payment flow for an order"""
    payment_method: PaymentMethod
    email: EmailStr = Field(..., description="Customer email required by the gateway")
    momo_phone: Optional[str] = Field(None, max_length=20)
    momo_provider: Literal["mtn", "vodafone", "airteltigo"] = "mtn"


class PaymentHistoryResponse(BaseModel):
    status: str
    changed_by: str
    changed_at: datetime
    notes: Optional[str]

    model_config = ConfigDict(from_attributes=True)


class PaymentResponse(BaseModel):
    """Schema for payment response"""
    id: str
    order_id: str
    customer_id: str
    service_provider_id: Optional[str]
    amount: float
    payment_method: str
    status: str
    reference: Optional[str]
    transaction_id: Optional[str]
    gateway_channel: Optional[str]
    gateway_response: Optional[str]
    paid_at: Optional[datetime]
    completed_at: Optional[datetime]
    failed_at: Optional[datetime]
    refund_amount: float
    refunded_at: Optional[datetime]
    refund_reason: Optional[str]
    status_history: list[PaymentHistoryResponse]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PaymentInitializeResponse(BaseModel):
    payment: PaymentResponse
    reference: str
    authorization_url: str
    access_code: Optional[str]


class ReconciliationResponse(BaseModel):
    """Outcome of folding one gateway event into local state"""
    outcome: Literal["applied", "duplicate", "ignored", "inconclusive", "unknown_reference", "unhandled_event"]
    reference: Optional[str] = None
    payment_id: Optional[str] = None
    payment_status: Optional[str] = None
    order_confirmed: bool = False
