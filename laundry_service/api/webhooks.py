"""
Payment gateway webhook endpoint
"""
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from fastapi.concurrency import run_in_threadpool

from laundry_service.api.deps import get_reconciler
from laundry_service.schemas.payment import ReconciliationResponse
from laundry_service.services.reconciliation import PaymentReconciler

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post("/paystack", response_model=ReconciliationResponse, summary="Paystack webhook")
async def paystack_webhook(
    request: Request,
    x_paystack_signature: Optional[str] = Header(None),
    reconciler: PaymentReconciler = Depends(get_reconciler),
):
    """
    Receive a gateway event

    The body is verified against the signature header before anything is
    processed. Verified deliveries are always acknowledged with 200, including
    replays and events for unknown references.
    """
    raw_payload = await request.body()
    return await run_in_threadpool(reconciler.handle_gateway_event, x_paystack_signature, raw_payload)
