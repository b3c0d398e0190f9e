"""
Shared fixtures.

The environment is configured before anything under ``app`` is imported so
settings, the engine and the session factory all point at a throwaway
SQLite file and the in-memory cache/queue backends.
"""
import os
import tempfile

_TMP = tempfile.mkdtemp(prefix="logistics-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP}/test.db"
os.environ["REPORTS_DIR"] = os.path.join(_TMP, "reports")
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["RUN_WORKER_IN_PROCESS"] = "false"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ.pop("REDIS_URL", None)

from decimal import Decimal
from typing import Any, Dict, List, Tuple

import httpx
import pytest

from app.database import async_session_factory, drop_db, init_db
from app.main import create_app, init_app_state
from app.models.fare import Fare
from app.models.vendor import Vendor
from app.models.warehouse import Warehouse
from app.services.cache_service import CacheService, InMemoryCache
from app.services.email_service import EmailService

API = "/api/v1"


class RecordingEmailService(EmailService):
    """Records every dispatch attempt instead of talking to SMTP."""

    def __init__(self, fail: bool = False):
        super().__init__()
        self.fail = fail
        self.calls: List[Tuple[str, Dict[str, Any]]] = []

    def _record(self, kind: str, **data: Any) -> bool:
        self.calls.append((kind, data))
        if self.fail:
            raise RuntimeError("SMTP unavailable")
        return True

    def send_welcome_email(self, user):
        return self._record("welcome", user=user)

    def send_order_confirmation(self, order, user):
        return self._record("order_confirmation", order=order, user=user)

    def send_shipment_notification(self, shipment, user):
        return self._record("shipment_notification", shipment=shipment, user=user)

    def send_report_ready(self, to_email, report_type, result):
        return self._record("report_ready", to=to_email, report_type=report_type, result=result)

    def of_kind(self, kind: str) -> List[Dict[str, Any]]:
        return [data for k, data in self.calls if k == kind]


@pytest.fixture(autouse=True)
async def database():
    await drop_db()
    await init_db()
    yield


@pytest.fixture
def email_service():
    return RecordingEmailService()


@pytest.fixture
async def application(email_service):
    application = create_app()
    init_app_state(
        application,
        email_service=email_service,
        cache=CacheService(InMemoryCache(), namespace="test"),
        start_background=False,
    )
    yield application
    await application.state.event_bus.drain()


@pytest.fixture
async def client(application):
    transport = httpx.ASGITransport(app=application)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


async def register(client: httpx.AsyncClient, email: str, role: str = "USER", **extra) -> Dict[str, Any]:
    response = await client.post(
        f"{API}/auth/register",
        json={"email": email, "password": "secret123", "name": email.split("@")[0], "role": role, **extra},
    )
    assert response.status_code == 201, response.text
    return response.json()


def bearer(tokens: Dict[str, Any]) -> Dict[str, str]:
    return {"Authorization": f"Bearer {tokens['accessToken']}"}


@pytest.fixture
async def admin(client):
    return await register(client, "admin@example.com", "ADMIN")


@pytest.fixture
async def admin_headers(admin):
    return bearer(admin)


@pytest.fixture
async def customer(client):
    return await register(client, "customer@example.com", "USER")


@pytest.fixture
async def customer_headers(customer):
    return bearer(customer)


@pytest.fixture
async def seed():
    """A vendor, a warehouse and a Pokhara -> Kathmandu fare."""
    async with async_session_factory() as session:
        vendor = Vendor(name="Himal Traders", email="vendor@example.com", phone="9800000000", city="Pokhara")
        warehouse = Warehouse(name="Pokhara Hub", address="Lakeside", city="Pokhara", capacity=1000)
        fare = Fare(
            from_city="Pokhara",
            to_city="Kathmandu",
            branch_delivery=Decimal("150"),
            cod_branch=Decimal("200"),
            door_delivery=Decimal("300"),
        )
        session.add_all([vendor, warehouse, fare])
        await session.commit()
        return {"vendor": vendor, "warehouse": warehouse, "fare": fare}


def order_body(vendor_id, **overrides) -> Dict[str, Any]:
    body = {
        "vendorId": str(vendor_id),
        "name": "Sita Sharma",
        "deliveryCity": "Kathmandu",
        "deliveryAddress": "Baneshwor, Ward 10",
        "contactNumber": "9811111111",
        "deliveryType": "DOOR_DELIVERY",
        "amountToBeCollected": 5000,
    }
    body.update(overrides)
    return body
