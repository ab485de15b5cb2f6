"""
Order API endpoints
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from laundry_service.api.deps import get_actor, get_assignment_service, get_order_service
from laundry_service.models.enums import OrderStatus
from laundry_service.schemas.actor import Actor
from laundry_service.schemas.order import (
    AssignRequest,
    ChargesUpdate,
    ClothingItemAdd,
    ClothingItemConfirm,
    ClothingItemResponse,
    NotesUpdate,
    OrderCreate,
    OrderListResponse,
    OrderResponse,
    OrderStatusUpdate,
    TrackingResponse,
)
from laundry_service.services.assignment import AssignmentService
from laundry_service.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED, summary="Create order")
def create_order(
    order_data: OrderCreate,
    actor: Actor = Depends(get_actor),
    service: OrderService = Depends(get_order_service),
):
    """
    Place a new order

    Totals are computed server-side; a pending payment is created with the order.
    """
    return OrderResponse.model_validate(service.create_order(order_data, actor))


@router.get("", response_model=OrderListResponse, summary="List orders")
def list_orders(
    status_filter: Optional[OrderStatus] = Query(None, alias="status", description="Only orders in this status"),
    skip: int = Query(0, ge=0, description="Number of orders to skip"),
    limit: int = Query(100, ge=1, le=1000, description="Maximum number of orders to return"),
    actor: Actor = Depends(get_actor),
    service: OrderService = Depends(get_order_service),
):
    """
    Retrieve the orders visible to the caller with pagination

    - customers: their own orders
    - service providers: orders assigned to them and unassigned pending/confirmed orders
    - admins: all orders
    """
    orders, total = service.list_orders(actor, status=status_filter, skip=skip, limit=limit)
    return OrderListResponse(orders=[OrderResponse.model_validate(o) for o in orders], total=total)


@router.get("/{order_id}", response_model=OrderResponse, summary="Get order by ID")
def get_order(
    order_id: str,
    actor: Actor = Depends(get_actor),
    service: OrderService = Depends(get_order_service),
):
    return OrderResponse.model_validate(service.get_order(order_id, actor))


@router.post("/{order_id}/status", response_model=OrderResponse, summary="Update order status")
def update_order_status(
    order_id: str,
    status_data: OrderStatusUpdate,
    actor: Actor = Depends(get_actor),
    service: OrderService = Depends(get_order_service),
):
    """
    Move an order to a new status

    - **status**: target status; must be reachable from the current one
    - **notes**: stored in the status history (and as cancellation reason)
    """
    order = service.transition_order(order_id, status_data.status, actor, status_data.notes)
    return OrderResponse.model_validate(order)


@router.post("/{order_id}/assign-self", response_model=OrderResponse, summary="Self-assign order")
def self_assign_order(
    order_id: str,
    actor: Actor = Depends(get_actor),
    service: AssignmentService = Depends(get_assignment_service),
):
    return OrderResponse.model_validate(service.self_assign(order_id, actor))


@router.post("/{order_id}/assign", response_model=OrderResponse, summary="Assign order to a provider")
def assign_order(
    order_id: str,
    request: AssignRequest,
    actor: Actor = Depends(get_actor),
    service: AssignmentService = Depends(get_assignment_service),
):
    """Admin assignment; overrides any existing binding"""
    order = service.admin_assign(order_id, request.service_provider_id, actor, request.notes)
    return OrderResponse.model_validate(order)


@router.post(
    "/{order_id}/items/{line_index}/clothing-items",
    response_model=ClothingItemResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add clothing item",
)
def add_clothing_item(
    order_id: str,
    line_index: int,
    item: ClothingItemAdd,
    actor: Actor = Depends(get_actor),
    service: OrderService = Depends(get_order_service),
):
    garment = service.add_clothing_item(
        order_id, line_index, item.description, actor, special_instructions=item.special_instructions
    )
    return ClothingItemResponse.model_validate(garment)


@router.get("/{order_id}/clothing-items", response_model=List[ClothingItemResponse], summary="List clothing items")
def list_clothing_items(
    order_id: str,
    actor: Actor = Depends(get_actor),
    service: OrderService = Depends(get_order_service),
):
    return [ClothingItemResponse.model_validate(ci) for ci in service.list_clothing_items(order_id, actor)]


@router.patch(
    "/{order_id}/clothing-items/{item_id}/confirm",
    response_model=ClothingItemResponse,
    summary="Confirm clothing item",
)
def confirm_clothing_item(
    order_id: str,
    item_id: str,
    body: ClothingItemConfirm,
    actor: Actor = Depends(get_actor),
    service: OrderService = Depends(get_order_service),
):
    garment = service.confirm_clothing_item(order_id, item_id, actor, confirmed=body.confirmed)
    return ClothingItemResponse.model_validate(garment)


@router.patch("/{order_id}/charges", response_model=OrderResponse, summary="Adjust order charges")
def adjust_charges(
    order_id: str,
    charges: ChargesUpdate,
    actor: Actor = Depends(get_actor),
    service: OrderService = Depends(get_order_service),
):
    return OrderResponse.model_validate(service.adjust_charges(order_id, charges, actor))


@router.patch("/{order_id}/notes", response_model=OrderResponse, summary="Update notes")
def update_notes(
    order_id: str,
    body: NotesUpdate,
    actor: Actor = Depends(get_actor),
    service: OrderService = Depends(get_order_service),
):
    return OrderResponse.model_validate(service.update_notes(order_id, body.notes, actor))


@router.get("/{order_id}/tracking", response_model=TrackingResponse, summary="Get order tracking")
def get_tracking(
    order_id: str,
    actor: Actor = Depends(get_actor),
    service: OrderService = Depends(get_order_service),
):
    return TrackingResponse.model_validate(service.get_tracking(order_id, actor))
