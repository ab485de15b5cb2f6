"""HTTP-level tests for the order, payment and webhook endpoints."""

import httpx
import pytest
from fastapi.testclient import TestClient

from laundry_service.api.deps import get_gateway, get_publisher
from laundry_service.database import get_db
from laundry_service.main import app
from laundry_service.services.gateway_client import PaystackClient

from tests.conftest import sign, webhook_body

CUSTOMER = {"X-Actor-Id": "cust-1", "X-Actor-Role": "customer"}
PROVIDER = {"X-Actor-Id": "prov-1", "X-Actor-Role": "service_provider"}
OTHER_PROVIDER = {"X-Actor-Id": "prov-2", "X-Actor-Role": "service_provider"}
ADMIN = {"X-Actor-Id": "admin-1", "X-Actor-Role": "admin"}

ORDER_PAYLOAD = {
    "items": [{"service_id": "wash-fold", "service_name": "Wash & Fold", "quantity": 2, "unit_price": 15.0}],
    "pickup_address": {"street": "12 Ring Road", "city": "Accra"},
    "delivery_address": {"type": "work", "street": "3 Liberation Ave", "city": "Accra"},
    "pickup_date": "2026-11-02T09:00:00Z",
    "delivery_date": "2026-11-04T09:00:00Z",
    "payment_method": "mobile_money",
}


def gateway_handler(request: httpx.Request) -> httpx.Response:
    if request.url.path.endswith("/transaction/initialize"):
        return httpx.Response(200, json={
            "status": True,
            "data": {"authorization_url": "https://checkout.test/pay", "access_code": "acc"},
        })
    return httpx.Response(200, json={"status": True, "data": {"id": 7, "status": "success"}})


@pytest.fixture
def client(session_factory, publisher, providers):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_publisher] = lambda: publisher
    app.dependency_overrides[get_gateway] = lambda: PaystackClient(transport=httpx.MockTransport(gateway_handler))
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def created(client):
    response = client.post("/orders", json=ORDER_PAYLOAD, headers=CUSTOMER)
    assert response.status_code == 201
    return response.json()


def test_create_order(created):
    assert created["status"] == "pending"
    assert created["order_number"].startswith("ORD-")
    assert (created["subtotal"], created["tax"], created["delivery_fee"], created["total_amount"]) == (30.0, 3.0, 5.0, 38.0)
    assert created["payment_id"]


def test_create_order_validates_dates(client):
    payload = dict(ORDER_PAYLOAD, delivery_date="2026-11-01T09:00:00Z")
    assert client.post("/orders", json=payload, headers=CUSTOMER).status_code == 422


def test_actor_headers_are_required(client):
    assert client.get("/orders").status_code == 422


def test_customer_illegal_move_reports_statuses(client, created):
    response = client.post(f"/orders/{created['id']}/status", json={"status": "in_progress"}, headers=CUSTOMER)

    assert response.status_code == 400
    body = response.json()
    assert body["error_type"] == "InvalidTransitionError"
    assert (body["current_status"], body["target_status"]) == ("pending", "in_progress")


def test_error_mapping(client, created):
    order_id = created["id"]
    assert client.get("/orders/missing", headers=ADMIN).status_code == 404
    assert client.get(f"/orders/{order_id}", headers={"X-Actor-Id": "cust-9", "X-Actor-Role": "customer"}).status_code == 403
    assert client.patch(f"/orders/{order_id}/charges", json={"discount": 500.0}, headers=ADMIN).status_code == 422


def test_self_assign_race_over_http(client, created):
    order_id = created["id"]
    assert client.post(f"/orders/{order_id}/status", json={"status": "confirmed"}, headers=ADMIN).status_code == 200

    first = client.post(f"/orders/{order_id}/assign-self", headers=PROVIDER)
    second = client.post(f"/orders/{order_id}/assign-self", headers=OTHER_PROVIDER)

    assert first.status_code == 200
    assert first.json()["status"] == "assigned"
    assert first.json()["service_provider_id"] == "prov-1"
    assert second.status_code == 409


def test_clothing_items_flow(client, created):
    order_id = created["id"]
    added = client.post(f"/orders/{order_id}/items/0/clothing-items", json={"description": "Linen shirt"}, headers=CUSTOMER)
    assert added.status_code == 201
    item_id = added.json()["item_id"]
    assert item_id == f"{created['order_number']}-001"

    client.post(f"/orders/{order_id}/assign", json={"service_provider_id": "prov-1"}, headers=ADMIN)
    confirmed = client.patch(f"/orders/{order_id}/clothing-items/{item_id}/confirm", json={"confirmed": True}, headers=PROVIDER)
    assert confirmed.json()["is_confirmed"] is True

    listed = client.get(f"/orders/{order_id}/clothing-items", headers=CUSTOMER).json()
    assert [ci["item_id"] for ci in listed] == [item_id]


def test_tracking_endpoint(client, created):
    client.post(f"/orders/{created['id']}/status", json={"status": "confirmed"}, headers=ADMIN)
    tracking = client.get(f"/orders/{created['id']}/tracking", headers=CUSTOMER).json()
    assert tracking["current_location"] == "pickup_scheduled"
    assert [s["order_status"] for s in tracking["steps"]] == ["pending", "confirmed"]


def test_payment_status_and_refund(client, created):
    payment_id = created["payment_id"]
    assert client.post(f"/payments/{payment_id}/status", json={"status": "completed"}, headers=ADMIN).status_code == 400
    client.post(f"/payments/{payment_id}/status", json={"status": "processing"}, headers=ADMIN)
    completed = client.post(f"/payments/{payment_id}/status", json={"status": "completed"}, headers=ADMIN)
    assert completed.json()["status"] == "completed"

    assert client.post(f"/payments/{payment_id}/refund", json={"amount": 40.0}, headers=ADMIN).status_code == 422
    refunded = client.post(f"/payments/{payment_id}/refund", json={"amount": 38.0, "reason": "Lost"}, headers=ADMIN)
    assert refunded.json()["refund_amount"] == 38.0
    assert refunded.json()["status"] == "completed"


def test_gateway_payment_round_trip(client, created, publisher):
    """Initialize, receive the webhook twice, then verify: one completion, order confirmed."""
    init = client.post(
        f"/payments/initialize/{created['id']}",
        json={"payment_method": "mobile_money", "email": "ama@example.com", "momo_phone": "0241234567"},
        headers=CUSTOMER,
    )
    assert init.status_code == 200
    reference = init.json()["reference"]
    assert init.json()["authorization_url"] == "https://checkout.test/pay"

    body = webhook_body("charge.success", reference, id=555, channel="mobile_money")
    first = client.post("/webhooks/paystack", content=body, headers={"x-paystack-signature": sign(body)})
    replay = client.post("/webhooks/paystack", content=body, headers={"x-paystack-signature": sign(body)})

    assert first.json()["outcome"] == "applied"
    assert first.json()["order_confirmed"] is True
    assert replay.status_code == 200
    assert replay.json()["outcome"] == "duplicate"

    verified = client.post(f"/payments/verify/{reference}", headers=CUSTOMER)
    assert verified.json()["outcome"] == "duplicate"

    order = client.get(f"/orders/{created['id']}", headers=CUSTOMER).json()
    assert order["status"] == "confirmed"
    payment = client.get(f"/payments/reference/{reference}", headers=CUSTOMER).json()
    assert [h["status"] for h in payment["status_history"]].count("completed") == 1
    publisher.publish_payment_completed.assert_called_once()


def test_webhook_rejects_bad_signature(client, created):
    body = webhook_body("charge.success", "REF-X", id=1)
    response = client.post("/webhooks/paystack", content=body, headers={"x-paystack-signature": "bogus"})
    assert response.status_code == 400
    assert response.json()["error_type"] == "UnverifiedEventError"


def test_webhook_unknown_reference_is_acknowledged(client):
    body = webhook_body("charge.success", "NOT-OURS", id=1)
    response = client.post("/webhooks/paystack", content=body, headers={"x-paystack-signature": sign(body)})
    assert response.status_code == 200
    assert response.json()["outcome"] == "unknown_reference"


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["database"] == "healthy"
