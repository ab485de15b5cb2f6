"""Tests for the payment application service."""

import asyncio
import json

import httpx
import pytest

from laundry_service.database import commit_or_conflict
from laundry_service.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidPaymentTransitionError,
    PaymentGatewayError,
    ValidationError,
)
from laundry_service.models.enums import OrderStatus, PaymentMethod, PaymentStatus
from laundry_service.models.payment import Payment
from laundry_service.schemas.order import ChargesUpdate
from laundry_service.schemas.payment import PaymentInitialize, PaymentStatusUpdate, RefundRequest
from laundry_service.services.assignment import AssignmentService
from laundry_service.services.gateway_client import PaystackClient
from laundry_service.services.payment_service import PaymentService, normalize_momo_phone


class GatewayRecorder:
    """httpx transport handler standing in for the gateway's initialize endpoint."""

    def __init__(self, status_code=200):
        self.status_code = status_code
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        self.requests.append(payload)
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"status": False, "message": "Invalid key"})
        return httpx.Response(
            200,
            json={
                "status": True,
                "message": "Authorization URL created",
                "data": {
                    "authorization_url": f"https://checkout.test/{payload['reference']}",
                    "access_code": "acc_123",
                    "reference": payload["reference"],
                },
            },
        )


@pytest.fixture
def recorder():
    return GatewayRecorder()


@pytest.fixture
def payment_service(db, publisher, recorder):
    return PaymentService(db, publisher, PaystackClient(transport=httpx.MockTransport(recorder)))


def momo_request(**overrides):
    data = {"payment_method": PaymentMethod.MOBILE_MONEY, "email": "ama@example.com", "momo_phone": "024 123 4567"}
    data.update(overrides)
    return PaymentInitialize(**data)


def test_admin_completes_cash_payment(payment_service, order, admin, publisher, order_service):
    """Payment status changes never touch the order."""
    payment_service.set_payment_status(order.payment_id, PaymentStatusUpdate(status=PaymentStatus.PROCESSING), admin)
    payment = payment_service.set_payment_status(
        order.payment_id, PaymentStatusUpdate(status=PaymentStatus.COMPLETED, notes="Cash received"), admin
    )

    assert payment.status == "completed"
    assert payment.transaction_id.startswith("TXN_")
    assert [h.status for h in payment.status_history] == ["pending", "processing", "completed"]
    publisher.publish_payment_completed.assert_called_once()
    assert order_service.get_order(order.id, admin).status == "pending"


def test_illegal_payment_status_change(payment_service, order, admin):
    with pytest.raises(InvalidPaymentTransitionError):
        payment_service.set_payment_status(order.payment_id, PaymentStatusUpdate(status=PaymentStatus.COMPLETED), admin)


def test_payment_status_authorization(payment_service, db, publisher, providers, order, customer, provider, other_provider):
    with pytest.raises(ForbiddenError):
        payment_service.set_payment_status(order.payment_id, PaymentStatusUpdate(status=PaymentStatus.PROCESSING), customer)

    AssignmentService(db, publisher).self_assign(order.id, provider)
    with pytest.raises(ForbiddenError):
        payment_service.set_payment_status(
            order.payment_id, PaymentStatusUpdate(status=PaymentStatus.PROCESSING), other_provider
        )
    updated = payment_service.set_payment_status(
        order.payment_id, PaymentStatusUpdate(status=PaymentStatus.PROCESSING), provider
    )
    assert updated.status == "processing"


def test_failed_payment_records_reason(payment_service, order, admin):
    payment_service.set_payment_status(order.payment_id, PaymentStatusUpdate(status=PaymentStatus.PROCESSING), admin)
    failed = payment_service.set_payment_status(
        order.payment_id, PaymentStatusUpdate(status=PaymentStatus.FAILED, notes="Card declined"), admin
    )
    assert failed.failure_reason == "Card declined"
    assert failed.failed_at is not None


def test_refund(payment_service, order, admin, customer):
    refunded = payment_service.refund_payment(order.payment_id, RefundRequest(amount=38.0, reason="Lost item"), admin)
    assert refunded.refund_amount == 38.0
    assert refunded.status == "pending"

    with pytest.raises(ValidationError):
        payment_service.refund_payment(order.payment_id, RefundRequest(amount=38.5), admin)
    with pytest.raises(ForbiddenError):
        payment_service.refund_payment(order.payment_id, RefundRequest(amount=1.0), customer)


def test_refund_on_pending_payment_freezes_its_amount(payment_service, order_service, order, admin, customer, db):
    payment_service.refund_payment(order.payment_id, RefundRequest(amount=38.0, reason="Goodwill"), admin)

    order_service.add_clothing_item(order.id, 0, "Coat", customer)
    updated = order_service.adjust_charges(order.id, ChargesUpdate(discount=2.0), admin)

    assert updated.total_amount < 38.0
    payment = db.get(Payment, order.payment_id)
    assert payment.amount == 38.0
    assert payment.refund_amount == 38.0


def test_check_constraint_violation_is_a_validation_error(db, order):
    payment = db.get(Payment, order.payment_id)
    payment.refund_amount = payment.amount + 1

    with pytest.raises(ValidationError, match="constraint"):
        commit_or_conflict(db, "Payment")

    assert db.get(Payment, order.payment_id).refund_amount == 0.0


@pytest.mark.parametrize(
    "raw, expected",
    [("0241234567", "233241234567"), ("+233 24 123 4567", "233241234567"), ("241234567", "233241234567")],
)
def test_normalize_momo_phone(raw, expected):
    assert normalize_momo_phone(raw) == expected


def test_initialize_reuses_pending_payment(payment_service, order, customer, recorder):
    payment, init = asyncio.run(payment_service.initialize_payment(order.id, momo_request(), customer))

    assert payment.id == order.payment_id
    assert payment.reference == init.reference
    assert payment.authorization_url == f"https://checkout.test/{init.reference}"
    assert payment.payment_details == {"momo_phone": "233241234567", "momo_provider": "mtn"}

    sent = recorder.requests[0]
    assert sent["amount"] == 3800
    assert sent["channels"] == ["mobile_money"]
    assert sent["metadata"]["order_id"] == order.id


def test_initialize_reopens_failed_payment(payment_service, order, customer, admin):
    payment_service.set_payment_status(order.payment_id, PaymentStatusUpdate(status=PaymentStatus.PROCESSING), admin)
    payment_service.set_payment_status(order.payment_id, PaymentStatusUpdate(status=PaymentStatus.FAILED), admin)

    payment, _ = asyncio.run(
        payment_service.initialize_payment(order.id, momo_request(payment_method=PaymentMethod.CARD), customer)
    )

    assert payment.id == order.payment_id
    assert payment.status == "pending"
    assert payment.payment_method == "card"
    assert [h.status for h in payment.status_history] == ["pending", "processing", "failed", "pending"]


def test_initialize_replaces_cancelled_payment(payment_service, order, customer, admin, db):
    original_id = order.payment_id
    payment_service.set_payment_status(original_id, PaymentStatusUpdate(status=PaymentStatus.CANCELLED), admin)

    payment, _ = asyncio.run(payment_service.initialize_payment(order.id, momo_request(), customer))

    assert payment.id != original_id
    assert db.get(Payment, original_id).status == "cancelled"
    assert order.payment_id == payment.id
    active = [p for p in payment_service.repository.list_for_order(order.id) if p.status != "cancelled"]
    assert [p.id for p in active] == [payment.id]


def test_initialize_conflicts_with_settled_payment(payment_service, order, customer, admin):
    payment_service.set_payment_status(order.payment_id, PaymentStatusUpdate(status=PaymentStatus.PROCESSING), admin)
    with pytest.raises(ConflictError):
        asyncio.run(payment_service.initialize_payment(order.id, momo_request(), customer))


def test_initialize_rules(payment_service, order_service, order, customer, other_customer):
    with pytest.raises(ValidationError):
        asyncio.run(payment_service.initialize_payment(order.id, momo_request(payment_method=PaymentMethod.CASH), customer))
    with pytest.raises(ForbiddenError):
        asyncio.run(payment_service.initialize_payment(order.id, momo_request(), other_customer))

    order_service.transition_order(order.id, OrderStatus.CANCELLED, customer)
    with pytest.raises(ConflictError):
        asyncio.run(payment_service.initialize_payment(order.id, momo_request(), customer))


def test_initialize_gateway_rejection_changes_nothing(db, publisher, order, customer):
    service = PaymentService(db, publisher, PaystackClient(transport=httpx.MockTransport(GatewayRecorder(401))))

    with pytest.raises(PaymentGatewayError):
        asyncio.run(service.initialize_payment(order.id, momo_request(), customer))

    assert db.get(Payment, order.payment_id).reference is None


def test_initialize_holds_no_transaction_while_calling_gateway(db, publisher, order, customer, recorder):
    seen = {}

    def handler(request):
        seen["in_transaction"] = db.in_transaction()
        return recorder(request)

    service = PaymentService(db, publisher, PaystackClient(transport=httpx.MockTransport(handler)))
    payment, _ = asyncio.run(service.initialize_payment(order.id, momo_request(), customer))

    assert seen["in_transaction"] is False
    assert payment.reference is not None


def test_initialize_conflicts_when_payment_settles_during_gateway_call(
    db, session_factory, publisher, order, customer, recorder
):
    payment_id = order.payment_id

    def settle_elsewhere(request):
        with session_factory() as other:
            other.get(Payment, payment_id).status = PaymentStatus.CANCELLED.value
            other.commit()
        return recorder(request)

    service = PaymentService(db, publisher, PaystackClient(transport=httpx.MockTransport(settle_elsewhere)))
    with pytest.raises(ConflictError):
        asyncio.run(service.initialize_payment(order.id, momo_request(), customer))

    payment = db.get(Payment, payment_id)
    assert payment.status == "cancelled"
    assert payment.reference is None
