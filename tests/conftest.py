import os

# Settings are read at import time; configure them before the app is imported.
os.environ.setdefault("SECRET_KEY", "bikedesk-test-secret-key-0123456789abcdef")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./bikedesk-unused.db")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

from types import SimpleNamespace  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import event  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool  # noqa: E402

from bikedesk.core.config import settings  # noqa: E402
from bikedesk.core.maintenance import maintenance_flag  # noqa: E402
from bikedesk.core.rate_limit import limiter  # noqa: E402
from bikedesk.core.security import create_access_token, hash_password  # noqa: E402
from bikedesk.db.session import get_db  # noqa: E402
from bikedesk.models import Base, Company, User, UserRole  # noqa: E402
from main import app  # noqa: E402

PASSWORD = "secret123"

DEFAULT_BIKE = {
    "name": "CBR600",
    "reg_no": "abc-1",
    "aadhaar_number": "111122223333",
    "bought_price": 8500,
}

DEFAULT_CUSTOMER = {
    "name": "Ravi Kumar",
    "phone": "9876543210",
    "aadhaar_number": "123456789012",
    "address": "12 MG Road, Bengaluru",
}


@pytest.fixture(autouse=True)
def reset_process_state(monkeypatch):
    """Maintenance flag, suspension policy and rate-limit counters are process-wide."""
    maintenance_flag.set(False)
    limiter.reset()
    monkeypatch.setattr(settings, "ENFORCE_COMPANY_SUSPENSION", True)
    yield
    maintenance_flag.set(False)


@pytest_asyncio.fixture
async def engine(tmp_path):
    """A fresh file database per test."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'bikedesk.db'}",
        poolclass=NullPool,
    )

    # Let SQLAlchemy emit BEGIN itself so SAVEPOINT nests inside the transaction
    @event.listens_for(engine.sync_engine, "connect")
    def disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory):
    """Test client with get_db bound to the per-test database."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def world(db):
    """
    Acme Bikes Ltd and SpeedWheel Inc (active), Thunder Motors (suspended),
    a superadmin, and staff for each company.
    """
    acme = Company(name="Acme Bikes Ltd", is_active=True)
    speedwheel = Company(name="SpeedWheel Inc", is_active=True)
    thunder = Company(name="Thunder Motors", is_active=False)
    db.add_all([acme, speedwheel, thunder])
    await db.flush()

    hashed = hash_password(PASSWORD)

    def user(email, role, company):
        return User(
            email=email,
            hashed_password=hashed,
            role=role.value,
            company_id=company.id if company else None,
        )

    people = SimpleNamespace(
        superadmin=user("root@bikedesk.io", UserRole.superadmin, None),
        acme_admin=user("admin@acme-bikes.com", UserRole.admin, acme),
        acme_worker=user("worker@acme-bikes.com", UserRole.worker, acme),
        speed_admin=user("admin@speedwheel.com", UserRole.admin, speedwheel),
        speed_worker=user("worker@speedwheel.com", UserRole.worker, speedwheel),
        thunder_admin=user("admin@thundermotors.com", UserRole.admin, thunder),
    )
    db.add_all(vars(people).values())
    await db.commit()

    return SimpleNamespace(acme=acme, speedwheel=speedwheel, thunder=thunder, **vars(people))


@pytest.fixture
def auth_headers():
    """Bearer headers for a user; company_id overrides the token scope."""
    missing = object()

    def build(user, company_id=missing):
        scope = user.company_id if company_id is missing else company_id
        token = create_access_token(subject=user.id, role=user.role, company_id=scope)
        return {"Authorization": f"Bearer {token}"}

    return build


@pytest.fixture
def add_bike(client):
    async def create(headers, **overrides):
        response = await client.post(
            "/api/tenant/bikes", json={**DEFAULT_BIKE, **overrides}, headers=headers
        )
        assert response.status_code == 201, response.text
        return response.json()

    return create


@pytest.fixture
def sell_bike(client):
    async def sell(headers, bike_id, sold_price=9000, **customer):
        return await client.patch(
            f"/api/tenant/bikes/{bike_id}/mark-sold",
            json={"sold_price": sold_price, "customer": {**DEFAULT_CUSTOMER, **customer}},
            headers=headers,
        )

    return sell
