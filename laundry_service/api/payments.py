"""
Payment API endpoints
"""
from fastapi import APIRouter, Depends

from laundry_service.api.deps import get_actor, get_payment_service, get_reconciler
from laundry_service.schemas.actor import Actor
from laundry_service.schemas.payment import (
    PaymentInitialize,
    PaymentInitializeResponse,
    PaymentResponse,
    PaymentStatusUpdate,
    ReconciliationResponse,
    RefundRequest,
)
from laundry_service.services.payment_service import PaymentService
from laundry_service.services.reconciliation import PaymentReconciler

router = APIRouter(prefix="/payments", tags=["payments"])


@router.get("/reference/{reference}", response_model=PaymentResponse, summary="Get payment by reference")
def get_payment_by_reference(
    reference: str,
    actor: Actor = Depends(get_actor),
    service: PaymentService = Depends(get_payment_service),
):
    payment = service.get_payment_by_reference(reference)
    return PaymentResponse.model_validate(service.get_payment(payment.id, actor))


@router.get("/{payment_id}", response_model=PaymentResponse, summary="Get payment by ID")
def get_payment(
    payment_id: str,
    actor: Actor = Depends(get_actor),
    service: PaymentService = Depends(get_payment_service),
):
    return PaymentResponse.model_validate(service.get_payment(payment_id, actor))


@router.post("/{payment_id}/status", response_model=PaymentResponse, summary="Update payment status")
def update_payment_status(
    payment_id: str,
    update: PaymentStatusUpdate,
    actor: Actor = Depends(get_actor),
    service: PaymentService = Depends(get_payment_service),
):
    """
    Move a payment through its state machine

    Does not change the owning order.
    """
    return PaymentResponse.model_validate(service.set_payment_status(payment_id, update, actor))


@router.post("/{payment_id}/refund", response_model=PaymentResponse, summary="Record a refund")
def refund_payment(
    payment_id: str,
    refund: RefundRequest,
    actor: Actor = Depends(get_actor),
    service: PaymentService = Depends(get_payment_service),
):
    return PaymentResponse.model_validate(service.refund_payment(payment_id, refund, actor))


@router.post("/initialize/{order_id}", response_model=PaymentInitializeResponse, summary="Start a gateway payment")
async def initialize_payment(
    order_id: str,
    request: PaymentInitialize,
    actor: Actor = Depends(get_actor),
    service: PaymentService = Depends(get_payment_service),
):
    """
    Start a hosted gateway payment for an order

    Returns the authorization URL the customer is redirected to.
    """
    payment, init = await service.initialize_payment(order_id, request, actor)
    return PaymentInitializeResponse(
        payment=PaymentResponse.model_validate(payment),
        reference=init.reference,
        authorization_url=init.authorization_url,
        access_code=init.access_code,
    )


@router.post("/verify/{reference}", response_model=ReconciliationResponse, summary="Verify a gateway payment")
async def verify_payment(
    reference: str,
    actor: Actor = Depends(get_actor),
    reconciler: PaymentReconciler = Depends(get_reconciler),
):
    """
    Ask the gateway for the outcome of a payment and reconcile it

    Safe to call repeatedly; settled payments are returned unchanged.
    """
    return await reconciler.verify_payment(reference)
