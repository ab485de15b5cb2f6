"""Test fixtures for the laundry order service tests."""

import hashlib
import hmac
import json
import os
import tempfile
from datetime import datetime, timedelta, timezone

# Settings are read at import time; point them at throwaway resources first
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(tempfile.gettempdir(), 'laundry_service_import.db')}"
os.environ["PAYSTACK_SECRET_KEY"] = "sk_test_secret"
os.environ["PAYSTACK_WEBHOOK_SECRET"] = "whsec_test"
os.environ["PAYSTACK_BASE_URL"] = "https://gateway.test"
os.environ["MAX_RETRIES"] = "2"
os.environ["RETRY_DELAY"] = "0"

import pytest  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from laundry_service.database import build_engine, init_db  # noqa: E402
from laundry_service.models.enums import ActorRole, PaymentMethod  # noqa: E402
from laundry_service.publishers.event_publisher import EventPublisher  # noqa: E402
from laundry_service.repositories.provider_repository import ProviderRepository  # noqa: E402
from laundry_service.schemas.actor import Actor  # noqa: E402
from laundry_service.schemas.order import Address, OrderCreate, OrderItemCreate  # noqa: E402
from laundry_service.services.order_service import OrderService  # noqa: E402

WEBHOOK_SECRET = "whsec_test"


def sign(raw: bytes) -> str:
    """Signature the gateway would send for ``raw``."""
    return hmac.new(WEBHOOK_SECRET.encode(), raw, hashlib.sha512).hexdigest()


def webhook_body(event: str, reference: str, **data) -> bytes:
    payload = {"event": event, "data": {"reference": reference, **data}}
    return json.dumps(payload).encode()


@pytest.fixture
def engine(tmp_path):
    """Fresh file-backed SQLite database per test."""
    engine = build_engine(f"sqlite:///{tmp_path / 'laundry.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def publisher(mocker):
    """Publisher double; nothing reaches RabbitMQ."""
    return mocker.MagicMock(spec=EventPublisher)


@pytest.fixture
def customer():
    return Actor(id="cust-1", role=ActorRole.CUSTOMER)


@pytest.fixture
def other_customer():
    return Actor(id="cust-2", role=ActorRole.CUSTOMER)


@pytest.fixture
def provider():
    return Actor(id="prov-1", role=ActorRole.SERVICE_PROVIDER)


@pytest.fixture
def other_provider():
    return Actor(id="prov-2", role=ActorRole.SERVICE_PROVIDER)


@pytest.fixture
def admin():
    return Actor(id="admin-1", role=ActorRole.ADMIN)


@pytest.fixture
def providers(db):
    """Provider registry: two active providers and one deactivated."""
    repo = ProviderRepository(db)
    return [
        repo.create("prov-1", "Fresh Fold Laundry"),
        repo.create("prov-2", "Sparkle Cleaners"),
        repo.create("prov-off", "Closed Laundry", is_active=False),
    ]


@pytest.fixture
def address():
    return Address(type="home", street="12 Ring Road", city="Accra", state="Greater Accra")


@pytest.fixture
def order_data(address):
    """One wash & fold line of 3 x 10.0: subtotal 30, tax 3, delivery 5, total 38."""
    pickup = datetime(2026, 11, 2, 9, 0, tzinfo=timezone.utc)
    return OrderCreate(
        items=[
            OrderItemCreate(service_id="wash-fold", service_name="Wash & Fold", quantity=3, unit_price=10.0),
        ],
        pickup_address=address,
        delivery_address=address,
        pickup_date=pickup,
        delivery_date=pickup + timedelta(days=2),
        payment_method=PaymentMethod.MOBILE_MONEY,
    )


@pytest.fixture
def order_service(db, publisher):
    return OrderService(db, publisher)


@pytest.fixture
def order(order_service, order_data, customer):
    """A freshly placed pending order."""
    return order_service.create_order(order_data, customer)
