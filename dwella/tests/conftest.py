"""Shared test fixtures for the Dwella test suite.

Uses an in-memory SQLite database with StaticPool so all sessions share the
same connection (committed data is visible across sessions).
"""

import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from dwella.database import Base, get_db
from dwella.main import app
from dwella.models import *  # noqa: ensure all models are loaded for create_all
from dwella.services.postcard_service import PostcardDeliveryError, get_postcard_sender


# ---------------------------------------------------------------------------
# In-memory SQLite test engine (shared via StaticPool)
# ---------------------------------------------------------------------------

test_engine = create_async_engine(
    "sqlite+aiosqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
    echo=False,
)
TestSession = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@event.listens_for(test_engine.sync_engine, "connect")
def _set_sqlite_pragma(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA busy_timeout=5000")
    cursor.close()


class FakePostcardSender:
    """Records mailed codes instead of calling Lob. Set ``fail`` to simulate an outage."""

    def __init__(self):
        self.sent: list[dict] = []
        self.fail = False

    async def send(self, to, home_id: str, code: str) -> str:
        if self.fail:
            raise PostcardDeliveryError("simulated outage")
        self.sent.append({"to": to, "home_id": home_id, "code": code})
        return f"psc_test_{len(self.sent)}"

    @property
    def last_code(self) -> str:
        return self.sent[-1]["code"]


# ---------------------------------------------------------------------------
# Auto-use: create/drop tables for every test
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
async def _setup_db(monkeypatch):
    """Create all tables before each test, drop after. Notifications go to the test DB."""
    from dwella.core.async_tasks import drain_background_tasks
    from dwella.services import notification_service

    monkeypatch.setattr(notification_service, "async_session", TestSession)

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await drain_background_tasks()
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


# ---------------------------------------------------------------------------
# Core fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
async def db():
    """Yield a fresh AsyncSession for direct service-layer tests."""
    async with TestSession() as session:
        yield session


@pytest.fixture
def postcard_sender() -> FakePostcardSender:
    return FakePostcardSender()


@pytest.fixture
async def client(postcard_sender):
    """httpx AsyncClient wired to the FastAPI app with test DB and fake postcard sender."""
    import httpx

    async def _override_get_db():
        async with TestSession() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_postcard_sender] = lambda: postcard_sender

    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Seeding helpers
# ---------------------------------------------------------------------------

def _new_id() -> str:
    return str(uuid.uuid4())


@pytest.fixture
def auth_header():
    """Return a callable that builds an Authorization header for a user."""
    from dwella.core.auth import create_user_token

    def _build(user) -> dict:
        token = create_user_token(user.id, user.role, email=user.email, name=user.name)
        return {"Authorization": f"Bearer {token}"}
    return _build


@pytest.fixture
def make_user(db: AsyncSession):
    """Factory fixture: create a User."""
    from dwella.models.user import User

    async def _make(role: str = "HOMEOWNER", name: str = "Test User", **kwargs):
        user = User(
            id=_new_id(),
            email=kwargs.get("email", f"user-{_new_id()[:8]}@test.com"),
            name=name,
            role=role,
            business_name=kwargs.get("business_name"),
        )
        db.add(user)
        await db.commit()
        await db.refresh(user)
        return user

    return _make


@pytest.fixture
def make_home(db: AsyncSession):
    """Factory fixture: create a Home owned by ``owner_id`` (None for unclaimed)."""
    from dwella.models.home import Home

    async def _make(owner_id: str | None, **kwargs):
        home = Home(
            id=_new_id(),
            owner_id=owner_id,
            address=kwargs.get("address", "12 Elm Street"),
            city=kwargs.get("city", "Springfield"),
            state=kwargs.get("state", "IL"),
            zip=kwargs.get("zip", "62704"),
        )
        db.add(home)
        await db.commit()
        await db.refresh(home)
        return home

    return _make


@pytest.fixture
def make_postcard_verification(db: AsyncSession):
    """Factory fixture: create a POSTCARD HomeVerification whose code is ``code``."""
    from dwella.models.verification import HomeVerification
    from dwella.services.verification_service import get_code_hasher

    async def _make(home_id: str, user_id: str, code: str = "123456", **kwargs):
        now = datetime.now(timezone.utc)
        verification = HomeVerification(
            id=_new_id(),
            home_id=home_id,
            method="POSTCARD",
            status=kwargs.get("status", "PENDING"),
            code_hash=get_code_hasher().hash(code),
            attempts=kwargs.get("attempts", 0),
            max_attempts=kwargs.get("max_attempts", 5),
            created_by_user_id=user_id,
            created_at=kwargs.get("created_at", now),
            expires_at=kwargs.get("expires_at", now + timedelta(days=30)),
        )
        db.add(verification)
        await db.commit()
        await db.refresh(verification)
        return verification

    return _make


@pytest.fixture
def make_service_record(db: AsyncSession):
    """Factory fixture: create a contractor ServiceRecord pending review."""
    from dwella.models.service_record import ServiceRecord

    async def _make(home_id: str, contractor_id: str, cost: float | None = 250.0, **kwargs):
        record = ServiceRecord(
            id=_new_id(),
            home_id=home_id,
            contractor_id=contractor_id,
            service_type=kwargs.get("service_type", "HVAC tune-up"),
            description=kwargs.get("description", "Replaced filter and cleaned coils"),
            service_date=kwargs.get("service_date", datetime(2026, 9, 1, tzinfo=timezone.utc)),
            cost=Decimal(str(cost)) if cost is not None else None,
            status=kwargs.get("status", "DOCUMENTED_UNVERIFIED"),
            is_verified=kwargs.get("is_verified", False),
        )
        db.add(record)
        await db.commit()
        await db.refresh(record)
        return record

    return _make


@pytest.fixture
def make_attachment(db: AsyncSession):
    """Factory fixture: create an Attachment owned by a service record."""
    from dwella.models.attachment import Attachment

    async def _make(service_record, name: str = "invoice.pdf", **kwargs):
        attachment = Attachment(
            id=_new_id(),
            home_id=service_record.home_id,
            parent_type=kwargs.get("parent_type", "SERVICE_RECORD"),
            parent_id=kwargs.get("parent_id", service_record.id),
            file_name=name,
            mime_type=kwargs.get("mime_type", "application/pdf"),
            size=kwargs.get("size", 2048),
            category=kwargs.get("category", "invoice"),
            storage_key=f"homes/{service_record.home_id}/service-records/{service_record.id}/{name}",
            uploaded_by=service_record.contractor_id,
        )
        db.add(attachment)
        await db.commit()
        await db.refresh(attachment)
        return attachment

    return _make


@pytest.fixture
def make_connection(db: AsyncSession):
    """Factory fixture: create a Connection between a homeowner and contractor."""
    from dwella.models.connection import Connection

    async def _make(home_id: str, homeowner_id: str, contractor_id: str, **kwargs):
        connection = Connection(
            id=_new_id(),
            home_id=home_id,
            homeowner_id=homeowner_id,
            contractor_id=contractor_id,
            status=kwargs.get("status", "ACTIVE"),
            established_via=kwargs.get("established_via", "INVITATION"),
            verified_service_count=kwargs.get("verified_service_count", 0),
            total_spent=Decimal(str(kwargs.get("total_spent", 0))),
        )
        db.add(connection)
        await db.commit()
        await db.refresh(connection)
        return connection

    return _make
