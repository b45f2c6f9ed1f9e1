# tests/conftest.py
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

import os
import uuid
from decimal import Decimal
from typing import Generator

import httpx
import pytest
import pytest_asyncio
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session, sessionmaker

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("ASYNC_DATABASE_URL", "sqlite+aiosqlite:///./test.db")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from storefront.main import app
from storefront.api.deps import get_payment_gateway
from storefront.core.security import get_password_hash
from storefront.db.base import Base
from storefront.db.session_async import AsyncSessionLocal
from storefront.domain.enums import UserRole
from storefront.models.product import Product
from storefront.models.user import User
from storefront.services.payment_providers import (
    ChargeOutcome,
    PaymentProviderConfigurationError,
    PaymentProviderTimeout,
    PaymentProviderUnavailable,
)

SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"

sync_engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(
    autocommit=False, autoflush=False, expire_on_commit=False, bind=sync_engine
)

ADMIN_PASSWORD = "Admin1234"
BUYER_PASSWORD = "Buyer1234"


class FakeGateway:
    """Scriptable stand-in for the Braintree adapter.

    ``mode`` picks what the next charge does: ``approve``, ``decline``,
    ``timeout``, ``unavailable`` or ``auth``.
    """

    def __init__(self) -> None:
        self.mode = "approve"
        self.calls: list[dict] = []
        self.token_calls = 0
        self._counter = 0

    async def get_client_token(self) -> str:
        self.token_calls += 1
        if self.mode == "auth":
            raise PaymentProviderConfigurationError("bad credentials")
        if self.mode == "unavailable":
            raise PaymentProviderUnavailable("connection refused")
        return "fake-client-token"

    async def charge(self, nonce: str, amount: Decimal, *, order_id: str | None = None) -> ChargeOutcome:
        self.calls.append({"nonce": nonce, "amount": Decimal(amount), "order_id": order_id})
        if self.mode == "timeout":
            raise PaymentProviderTimeout("read timed out")
        if self.mode == "unavailable":
            raise PaymentProviderUnavailable("connection refused")
        if self.mode == "auth":
            raise PaymentProviderConfigurationError("bad credentials")
        if self.mode == "decline":
            return ChargeOutcome(
                success=False,
                status="PROCESSOR_DECLINED",
                message="Do Not Honor",
                amount=Decimal(amount),
            )
        self._counter += 1
        return ChargeOutcome(
            success=True,
            transaction_id=f"txn-{self._counter}",
            status="SUBMITTED_FOR_SETTLEMENT",
            amount=Decimal(amount),
        )


# ---------- Fixtures ----------
@pytest.fixture(scope="session", autouse=True)
def setup_database():
    """Create the SQLite schema once per test session."""
    import storefront.models.cart  # noqa: F401
    import storefront.models.order  # noqa: F401

    Base.metadata.create_all(bind=sync_engine)
    yield
    Base.metadata.drop_all(bind=sync_engine)


@pytest.fixture(autouse=True)
def clean_tables():
    yield
    with sync_engine.begin() as connection:
        for table in reversed(Base.metadata.sorted_tables):
            connection.execute(table.delete())


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest_asyncio.fixture(scope="function")
async def client():
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def async_db_session() -> AsyncSession:
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.rollback()


@pytest.fixture(scope="function")
def gateway() -> FakeGateway:
    fake = FakeGateway()
    app.dependency_overrides[get_payment_gateway] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_payment_gateway, None)


# --- Users ---

def _make_user(session: Session, *, name: str, password: str, role: UserRole) -> User:
    user = User(
        email=f"{name.lower().replace(' ', '-')}-{uuid.uuid4()}@example.com",
        name=name,
        hashed_password=get_password_hash(password),
        role=role,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture(scope="function")
def admin_user(db_session: Session) -> User:
    return _make_user(db_session, name="Test Admin", password=ADMIN_PASSWORD, role=UserRole.admin)


@pytest.fixture(scope="function")
def buyer_user(db_session: Session) -> User:
    return _make_user(db_session, name="Test Buyer", password=BUYER_PASSWORD, role=UserRole.user)


async def _login(client: httpx.AsyncClient, email: str, password: str) -> str:
    resp = await client.post(
        "/api/v1/auth/login",
        data={"username": email, "password": password},
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )
    assert resp.status_code == 200, resp.text
    return resp.json()["access_token"]


@pytest_asyncio.fixture(scope="function")
async def admin_token(client: httpx.AsyncClient, admin_user: User) -> str:
    return await _login(client, admin_user.email, ADMIN_PASSWORD)


@pytest_asyncio.fixture(scope="function")
async def buyer_token(client: httpx.AsyncClient, buyer_user: User) -> str:
    return await _login(client, buyer_user.email, BUYER_PASSWORD)


@pytest.fixture(scope="function")
def auth_headers():
    def _headers(token: str) -> dict:
        return {"Authorization": f"Bearer {token}"}

    return _headers


# --- Catalog ---

@pytest.fixture(scope="function")
def make_product(db_session: Session):
    """Insert a product and return it (detached, attributes loaded)."""

    def _make(name: str = "Product", price: str = "10.00", description: str | None = None) -> Product:
        product = Product(
            name=name,
            slug=f"{name.lower().replace(' ', '-')}-{uuid.uuid4().hex[:8]}",
            description=description,
            price=Decimal(price),
        )
        db_session.add(product)
        db_session.commit()
        return product

    return _make
