"""
HTTP client for the Paystack payment gateway with retry logic
"""
import hashlib
import hmac
import json
import secrets
from typing import Dict, List, Optional

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from laundry_service.config import settings
from laundry_service.exceptions import PaymentGatewayError, TransientGatewayError, ValidationError
from laundry_service.logger import logger
from laundry_service.schemas.gateway import (
    GatewayEvent,
    GatewayFailureEvent,
    GatewayInitialization,
    GatewaySuccessEvent,
)

SUCCESS_EVENT = "charge.success"
FAILURE_EVENT = "charge.failed"

# Verify answers that settle a transaction; anything else (ongoing, abandoned, pending...) is inconclusive
_SUCCESS_STATES = {"success"}
_FAILURE_STATES = {"failed", "reversed"}


def _to_event(data: Dict, succeeded: bool) -> GatewayEvent:
    common = {
        "reference": data["reference"],
        "channel": data.get("channel"),
        "gateway_response": data.get("gateway_response"),
        "gateway_timestamp": data.get("paid_at") or data.get("transaction_date"),
        "raw": data,
    }
    if succeeded:
        transaction_id = data.get("id")
        return GatewaySuccessEvent(
            transaction_id=str(transaction_id) if transaction_id is not None else None,
            **common,
        )
    return GatewayFailureEvent(**common)


class PaystackClient:
    """Client for communicating with the Paystack API"""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = settings.PAYSTACK_BASE_URL.rstrip("/")
        self.secret_key = settings.PAYSTACK_SECRET_KEY
        self.webhook_secret = settings.PAYSTACK_WEBHOOK_SECRET or settings.PAYSTACK_SECRET_KEY
        self.timeout = settings.GATEWAY_TIMEOUT
        self.transport = transport

    # Webhooks

    def verify_signature(self, raw_payload: bytes, signature: Optional[str]) -> bool:
        """HMAC-SHA512 of the raw body with the webhook secret, compared in constant time"""
        if not signature or not self.webhook_secret:
            return False
        expected = hmac.new(self.webhook_secret.encode(), raw_payload, hashlib.sha512).hexdigest()
        # compare_digest only accepts ASCII str, so compare the raw bytes
        return hmac.compare_digest(expected.encode(), signature.encode("utf-8", "surrogateescape"))

    def parse_event(self, raw_payload: bytes) -> Optional[GatewayEvent]:
        """
        Translate a verified webhook body into a gateway event

        Returns:
            A success or failure event, or None for event types we do not handle

        Raises:
            ValidationError: If the body is not a well-formed gateway event
        """
        try:
            body = json.loads(raw_payload)
            event_type = body.get("event")
            data = body.get("data") or {}
        except (ValueError, AttributeError) as e:
            raise ValidationError(f"Malformed webhook payload: {e}")
        if not isinstance(data, dict):
            raise ValidationError("Malformed webhook payload: data is not an object")

        if event_type not in (SUCCESS_EVENT, FAILURE_EVENT):
            logger.info(f"Ignoring unhandled gateway event type: {event_type}")
            return None
        if not data.get("reference"):
            raise ValidationError("Webhook payload has no transaction reference")

        return _to_event(data, succeeded=event_type == SUCCESS_EVENT)

    # API calls

    @staticmethod
    def generate_reference(order_number: str) -> str:
        return f"{order_number}-{secrets.token_hex(6).upper()}"

    @retry(
        stop=stop_after_attempt(settings.MAX_RETRIES),
        wait=wait_exponential(multiplier=settings.RETRY_DELAY, max=10),
        retry=retry_if_exception_type(TransientGatewayError),
        reraise=True,
    )
    async def _request(self, method: str, path: str, payload: Optional[Dict] = None) -> Dict:
        """
        Call the gateway and return the ``data`` member of its answer

        Raises:
            TransientGatewayError: On network errors, timeouts and 5xx answers
            PaymentGatewayError: When the gateway rejects the request
        """
        headers = {
            "Authorization": f"Bearer {self.secret_key}",
            "Content-Type": "application/json",
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.request(method, f"{self.base_url}{path}", json=payload, headers=headers)
        except (httpx.TimeoutException, httpx.TransportError) as e:
            logger.warning(f"Payment gateway unreachable ({method} {path}): {e}")
            raise TransientGatewayError(f"Payment gateway unavailable: {e}")

        if response.status_code >= 500:
            logger.warning(f"Payment gateway error {response.status_code} on {method} {path}")
            raise TransientGatewayError(
                f"Payment gateway returned {response.status_code}", status_code=response.status_code
            )

        try:
            body = response.json()
        except ValueError:
            raise PaymentGatewayError("Payment gateway returned a non-JSON answer", status_code=response.status_code)

        if response.status_code >= 400 or not body.get("status"):
            raise PaymentGatewayError(
                body.get("message") or f"Payment gateway rejected the request ({response.status_code})",
                status_code=response.status_code,
            )
        return body.get("data") or {}

    async def initialize_transaction(
        self,
        email: str,
        amount: float,
        reference: str,
        channels: Optional[List[str]] = None,
        metadata: Optional[Dict] = None,
    ) -> GatewayInitialization:
        """
        Start a hosted payment

        Args:
            email: Customer email
            amount: Amount in major currency units
            reference: Our unique transaction reference
            channels: Restrict the payment channels offered
            metadata: Free-form data echoed back in webhooks

        Returns:
            GatewayInitialization with the authorization URL
        """
        payload = {
            "email": email,
            "amount": int(round(amount * 100)),
            "currency": settings.PAYMENT_CURRENCY,
            "reference": reference,
            "callback_url": settings.PAYMENT_CALLBACK_URL,
            "metadata": metadata or {},
        }
        if channels:
            payload["channels"] = channels

        data = await self._request("POST", "/transaction/initialize", payload)
        logger.info(f"Gateway transaction initialized: {reference}")
        return GatewayInitialization(
            reference=data.get("reference", reference),
            authorization_url=data["authorization_url"],
            access_code=data.get("access_code"),
        )

    async def verify_transaction(self, reference: str) -> Optional[GatewayEvent]:
        """
        Ask the gateway for the state of a transaction

        Returns:
            A success or failure event, or None while the outcome is inconclusive
        """
        data = await self._request("GET", f"/transaction/verify/{reference}")
        state = (data.get("status") or "").lower()
        data.setdefault("reference", reference)
        if state in _SUCCESS_STATES:
            return _to_event(data, succeeded=True)
        if state in _FAILURE_STATES:
            return _to_event(data, succeeded=False)
        logger.info(f"Gateway transaction {reference} is inconclusive ({state or 'unknown'})")
        return None
