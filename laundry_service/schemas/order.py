"""
Pydantic schemas for order request/response validation
"""
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from laundry_service.models.enums import OrderStatus, PaymentMethod


class Address(BaseModel):
    """Typed postal record for pickup and delivery"""
    type: Literal["home", "work", "other"] = "home"
    street: str = Field(..., min_length=1, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    zip_code: Optional[str] = Field(None, max_length=20)
    instructions: str = Field("", max_length=200)


class ClothingItemCreate(BaseModel):
    """Garment declared by the customer when composing the order"""
    description: str = Field(..., min_length=1, max_length=100)
    unit_price: float = Field(..., ge=0)
    special_instructions: str = Field("", max_length=200)


class OrderItemCreate(BaseModel):
    """Service line of a new order"""
    service_id: str = Field(..., min_length=1, max_length=100, description="Service reference")
    service_name: str = Field(..., min_length=1, max_length=255)
    quantity: int = Field(1, ge=1, description="Quantity of the service")
    unit_price: float = Field(..., ge=0, description="Price per unit")
    special_instructions: str = Field("", max_length=200)
    clothing_items: list[ClothingItemCreate] = Field(default_factory=list)


class OrderCreate(BaseModel):
    """Schema for creating a new order"""
    items: list[OrderItemCreate] = Field(..., min_length=1, description="At least one item required")
    pickup_address: Address
    delivery_address: Address
    pickup_date: datetime
    delivery_date: datetime
    payment_method: PaymentMethod = PaymentMethod.CASH
    tax: Optional[float] = Field(None, ge=0, description="Defaults to the configured rate of the subtotal")
    delivery_fee: Optional[float] = Field(None, ge=0, description="Defaults to the base fee, more when urgent")
    discount: float = Field(0.0, ge=0)
    is_urgent: bool = False
    special_instructions: str = Field("", max_length=500)

    @model_validator(mode="after")
    def check_dates(self):
        if self.delivery_date < self.pickup_date:
            raise ValueError("delivery_date cannot be earlier than pickup_date")
        return self


class OrderStatusUpdate(BaseModel):
    """Schema for updating order status"""
    status: OrderStatus = Field(..., description="Target order status")
    notes: str = Field("", max_length=500)


class AssignRequest(BaseModel):
    """Admin assignment of a provider"""
    service_provider_id: str = Field(..., min_length=1, max_length=64)
    notes: str = Field("", max_length=500)


class ClothingItemAdd(BaseModel):
    description: str = Field(..., min_length=1, max_length=100)
    special_instructions: str = Field("", max_length=200)


class ClothingItemConfirm(BaseModel):
    confirmed: bool = True


class ChargesUpdate(BaseModel):
    """Admin adjustment of order charges; omitted fields stay as they are"""
    tax: Optional[float] = Field(None, ge=0)
    delivery_fee: Optional[float] = Field(None, ge=0)
    discount: Optional[float] = Field(None, ge=0)


class NotesUpdate(BaseModel):
    notes: str = Field(..., max_length=500)


class ClothingItemResponse(BaseModel):
    item_id: str
    description: str
    service_id: str
    unit_price: float
    is_confirmed: bool
    special_instructions: Optional[str]

    model_config = ConfigDict(from_attributes=True)


class OrderItemResponse(BaseModel):
    service_id: str
    service_name: str
    quantity: int
    unit_price: float
    line_total: float
    special_instructions: Optional[str]
    clothing_items: list[ClothingItemResponse]

    model_config = ConfigDict(from_attributes=True)


class StatusHistoryResponse(BaseModel):
    status: str
    changed_by: str
    changed_at: datetime
    notes: Optional[str]

    model_config = ConfigDict(from_attributes=True)


class OrderResponse(BaseModel):
    """Schema for order response"""
    id: str
    order_number: str
    customer_id: str
    service_provider_id: Optional[str]
    status: str
    items: list[OrderItemResponse]
    subtotal: float
    tax: float
    delivery_fee: float
    discount: float
    total_amount: float
    is_urgent: bool
    pickup_address: Address
    delivery_address: Address
    pickup_date: datetime
    delivery_date: datetime
    payment_id: Optional[str]
    customer_notes: Optional[str]
    provider_notes: Optional[str]
    admin_notes: Optional[str]
    cancellation_reason: Optional[str]
    status_history: list[StatusHistoryResponse]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class OrderListResponse(BaseModel):
    """Schema for list of orders response"""
    orders: list[OrderResponse]
    total: int


class TrackingStepResponse(BaseModel):
    location: str
    order_status: str
    notes: Optional[str]
    updated_by: Optional[str]
    timestamp: datetime

    model_config = ConfigDict(from_attributes=True)


class TrackingResponse(BaseModel):
    """Display-only location of an order and how it got there"""
    order_id: str
    current_location: str
    steps: list[TrackingStepResponse]

    model_config = ConfigDict(from_attributes=True)
