import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from typing import AsyncGenerator

from odontolegal.main import app
from odontolegal.database import get_db, Base
from odontolegal.auth.models import User, UserRole
from odontolegal.auth.schemas import Actor
from odontolegal.auth.security import create_access_token, get_password_hash
from odontolegal.history.reconciliation import pending_appends

# Models register themselves on Base.metadata when imported by the app routers above.
# Tests run against an in-memory SQLite database so they need no running Postgres.
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_PASSWORD = "password123"


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database (and session) for each test."""
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    TestingSessionLocal = sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )

    async with TestingSessionLocal() as session:
        yield session

    await test_engine.dispose()
    pending_appends.drain()


@pytest_asyncio.fixture(scope="function")
async def async_client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Client for testing API endpoints."""
    # Override the get_db dependency to use our test session
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


async def _make_user(db: AsyncSession, email: str, full_name: str, role: UserRole) -> User:
    user = User(
        email=email,
        hashed_password=get_password_hash(TEST_PASSWORD),
        full_name=full_name,
        role=role,
        is_active=True,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "admin@example.com", "Ana Admin", UserRole.ADMIN)


@pytest_asyncio.fixture
async def expert_user(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "expert@example.com", "Eduardo Expert", UserRole.EXPERT)


@pytest_asyncio.fixture
async def standard_user(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "standard@example.com", "Sofia Standard", UserRole.STANDARD)


@pytest_asyncio.fixture
async def other_standard_user(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "other@example.com", "Otto Other", UserRole.STANDARD)


def actor_for(user: User) -> Actor:
    return Actor(id=user.id, name=user.full_name, role=user.role)


def auth_headers(user: User) -> dict:
    token = create_access_token(data={"sub": user.email, "role": user.role.value})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_actor():
    return actor_for


@pytest.fixture
def make_headers():
    return auth_headers


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    return auth_headers(admin_user)


@pytest.fixture
def expert_headers(expert_user: User) -> dict:
    return auth_headers(expert_user)


@pytest.fixture
def standard_headers(standard_user: User) -> dict:
    return auth_headers(standard_user)
