import itertools
import os
import tempfile
from datetime import datetime

# Settings are read at import time, so the environment goes first
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("RAZORPAY_KEY_ID", "rzp_test_key")
os.environ.setdefault("RAZORPAY_KEY_SECRET", "rzp_test_secret")
os.environ.setdefault("REDIS_URL", "")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="rideongo-logs-"))

import pytest
from fastapi.testclient import TestClient
from loguru import logger
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import RAZORPAY_KEY_SECRET
from app.core.jwt import create_access_token
from app.db.session import Base, get_db
from app.main import app
from app.models.booking import Booking  # noqa: F401
from app.models.payment_order import PaymentOrder  # noqa: F401
from app.models.payment_ledger import PaymentLedgerEntry  # noqa: F401
from app.models.audit_log import AuditLog  # noqa: F401
from app.services import booking_service
from app.utils.pricing import RentalOffer
from app.utils.razorpay_client import RazorpayGateway, get_gateway

CUSTOMER_ID = "cust-1"
ADMIN_ID = "admin-1"
PICKUP = datetime(2026, 11, 2, 9, 0)


class FakeGateway(RazorpayGateway):
    """Razorpay gateway that issues order ids and answers payment lookups locally.

    Signature checks stay real. ``payments`` stands in for the payments
    Razorpay knows about, keyed by payment id.
    """

    def __init__(self, key_id="rzp_test_key", key_secret=RAZORPAY_KEY_SECRET):
        super().__init__(key_id, key_secret)
        self._ids = itertools.count(1)
        self.created = []
        self.payments = {}
        self.lookups = []

    def create_order(self, amount, currency, receipt):
        order_id = f"order_test{next(self._ids):04d}"
        self.created.append({"id": order_id, "amount": amount, "currency": currency, "receipt": receipt})
        return order_id

    def fetch_payment(self, payment_ref):
        self.lookups.append(payment_ref)
        return self.payments.get(payment_ref)

    def add_payment(self, payment_ref, order_ref, status):
        self.payments[payment_ref] = {"id": payment_ref, "order_id": order_ref, "status": status}


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False, autocommit=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def other_db(engine):
    """A second session on the same database, for interleaving concurrent requests."""
    session = sessionmaker(bind=engine, autoflush=False, autocommit=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def make_booking(db):
    def _make(daily_rate=500, tier="1-day", weekly_rate=None, customer_id=CUSTOMER_ID):
        return booking_service.create_booking(
            db,
            customer_id=customer_id,
            offer=RentalOffer(bike_id="bike-7", daily_rate=daily_rate, duration_tier=tier, weekly_rate=weekly_rate),
            pickup_ts=PICKUP,
            pickup_type="STATION",
            pickup_location_id=3,
        )
    return _make


@pytest.fixture
def client(engine, gateway):
    testing_session = sessionmaker(bind=engine, autoflush=False, autocommit=False)

    def override_get_db():
        session = testing_session()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_gateway] = lambda: gateway
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def user_token():
    return create_access_token({"sub": CUSTOMER_ID, "role": "user"})


@pytest.fixture
def other_user_token():
    return create_access_token({"sub": "cust-2", "role": "user"})


@pytest.fixture
def admin_token():
    return create_access_token({"sub": ADMIN_ID, "role": "admin"})



@pytest.fixture
def log_records():
    """loguru records emitted during the test, across all channels."""
    records = []
    sink_id = logger.add(lambda message: records.append(message.record), level="DEBUG")
    yield records
    logger.remove(sink_id)
