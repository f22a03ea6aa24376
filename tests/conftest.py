"""Shared test fixtures for the booking API tests.

Uses an in-memory SQLite async engine so tests run without PostgreSQL, and
in-process fakes for Redis, Blob Storage and SendGrid.
"""

import fnmatch
import logging
import uuid
from datetime import datetime, timedelta

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.pool import StaticPool

from app.core.config import Settings
from app.core.context import AppContext
from app.core.database import Database
from app.main import create_app
from app.models.availability_slot import AvailabilitySlot
from app.models.quote import Quote, QuoteState
from app.models.type_of_service import TypeOfService
from app.models.user import User, UserRole
from app.services.appointments import AppointmentService, CachedAppointmentService
from app.services.auth import create_access_token
from app.services.availability import AvailabilitySlotService, CachedAvailabilitySlotService
from app.services.email_service import EmailDeliveryError, EmailService
from app.services.payment_proofs import CachedPaymentProofService, PaymentProofService
from app.services.quotes import CachedQuoteService, QuoteService

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_JWT_SECRET = "test-secret"


class InMemoryCache:
    """Dict-backed stand-in for Redis with switchable failures."""

    def __init__(self):
        self.data: dict[str, bytes] = {}
        self.fail_reads = False
        self.fail_deletes = False
        self.writes = 0

    async def get(self, key):
        if self.fail_reads:
            raise ConnectionError("cache unavailable")
        return self.data.get(key)

    async def set(self, key, value, ttl=0):
        self.writes += 1
        self.data[key] = value

    async def delete(self, key):
        if self.fail_deletes:
            raise ConnectionError("cache unavailable")
        self.data.pop(key, None)

    async def delete_by_prefix(self, pattern):
        if self.fail_deletes:
            raise ConnectionError("cache unavailable")
        keys = [key for key in self.data if fnmatch.fnmatchcase(key, pattern)]
        for key in keys:
            del self.data[key]
        return len(keys)


class InMemoryFileStore:
    def __init__(self):
        self.files: dict[str, bytes] = {}
        self.fail_save = False
        self.fail_delete = False

    async def save(self, data, name):
        if self.fail_save:
            raise OSError("storage unavailable")
        path = f"{uuid.uuid4().hex}-{name}"
        self.files[path] = data
        return path

    async def get(self, path):
        return self.files[path]

    async def delete(self, path):
        if self.fail_delete:
            raise OSError("storage unavailable")
        self.files.pop(path, None)


class RecordingEmailService(EmailService):
    """EmailService that records messages instead of calling SendGrid."""

    def __init__(self):
        super().__init__(api_key="", from_email="noreply@test.mx", from_name="Test")
        self.sent: list[dict] = []
        self.fail = False

    async def send_email(self, to, subject, text_body, html_body=""):
        if self.fail:
            raise EmailDeliveryError("provider rejected the message")
        self.sent.append({"to": list(to), "subject": subject, "text": text_body})


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores REFERENCES clauses unless asked per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest_asyncio.fixture
async def context():
    """Fresh database and fakes for every test."""
    settings = Settings(DATABASE_URL=TEST_DATABASE_URL, JWT_SECRET_KEY=TEST_JWT_SECRET)
    database = Database(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    event.listen(database.engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    await database.create_all()
    ctx = AppContext(
        settings=settings,
        logger=logging.getLogger("app"),
        database=database,
        cache=InMemoryCache(),
        file_store=InMemoryFileStore(),
        notifier=RecordingEmailService(),
    )
    yield ctx
    await database.dispose()


@pytest_asyncio.fixture
async def db(context):
    """Direct DB session for test setup/assertions."""
    async with context.database.session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(context):
    """Async HTTP test client."""
    app = create_app(context)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def cache(context):
    return context.cache


@pytest.fixture
def file_store(context):
    return context.file_store


@pytest.fixture
def notifier(context):
    return context.notifier


@pytest.fixture
def quote_service(context, db):
    return CachedQuoteService(QuoteService(db, context.file_store, context.notifier), context.service_cache())


@pytest.fixture
def slot_service(context, db):
    return CachedAvailabilitySlotService(AvailabilitySlotService(db), context.service_cache())


@pytest.fixture
def appointment_service(context, db):
    return CachedAppointmentService(AppointmentService(db), context.service_cache())


@pytest.fixture
def proof_service(context, db):
    return CachedPaymentProofService(PaymentProofService(db, context.file_store), context.service_cache())


# ---------------------------------------------------------------------------
# Seed data
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def admin(db):
    user = User(id=uuid.uuid4(), name="Ana", last_name="Admin", email="admin@harajuku.mx", role=UserRole.ADMIN)
    db.add(user)
    await db.commit()
    return user


@pytest_asyncio.fixture
async def customer(db):
    user = User(
        id=uuid.uuid4(),
        name="Carla",
        last_name="Cliente",
        second_last_name="Ruiz",
        email="carla@example.com",
        role=UserRole.CLIENT,
    )
    db.add(user)
    await db.commit()
    return user


@pytest_asyncio.fixture
async def service_type(db):
    service = TypeOfService(id=uuid.uuid4(), name="Balayage", price=1500.0)
    db.add(service)
    await db.commit()
    return service


@pytest_asyncio.fixture
async def make_quote(db, customer, service_type):
    """Insert a quote directly in the given state."""

    async def _make(state=QuoteState.APPROVED, client=None):
        quote = Quote(
            id=uuid.uuid4(),
            type_of_service_id=service_type.id,
            client_id=(client or customer).id,
            time=datetime(2025, 6, 1, 12, 0),
            description="Mechas rubias",
            state=state,
            price=service_type.price,
            test_required=state == QuoteState.REQUIRES_PROOF,
        )
        db.add(quote)
        await db.commit()
        return quote

    return _make


@pytest_asyncio.fixture
async def make_slot(db, admin):
    """Insert a slot starting at the given time (one hour long)."""

    async def _make(start=datetime(2025, 6, 10, 9, 0), is_booked=False):
        slot = AvailabilitySlot(
            id=uuid.uuid4(),
            admin_id=admin.id,
            start_time=start,
            end_time=start + timedelta(hours=1),
            is_booked=is_booked,
        )
        db.add(slot)
        await db.commit()
        return slot

    return _make


def auth_headers(user) -> dict:
    token = create_access_token({"sub": str(user.id)}, TEST_JWT_SECRET)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture
def customer_headers(customer):
    return auth_headers(customer)
