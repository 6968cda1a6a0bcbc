import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

from repairdesk.main import app
from repairdesk.database import Base, get_db
from repairdesk.api.deps import get_password_hash, get_notifier
from repairdesk.models.customer import Customer
from repairdesk.models.user import User, UserRole
from repairdesk.services.email_service import MockEmailService
from repairdesk.services.notifier import Notifier

# Test database URL (SQLite for testing)
TEST_DATABASE_URL = "sqlite+aiosqlite:///./test.db"

ADMIN_PASSWORD = "adminpassword123"
TECH_PASSWORD = "techpassword123"


@pytest_asyncio.fixture
async def test_engine():
    """Create test database and tables."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=NullPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def test_db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def email_service():
    """Mock email backend shared by the app and the test."""
    return MockEmailService()


@pytest.fixture
def notifier(email_service, session_factory):
    return Notifier(email_service, session_factory)


@pytest_asyncio.fixture
async def admin_user(test_db: AsyncSession):
    """Create an admin user."""
    user = User(
        email="admin@example.com",
        name="Shop Admin",
        hashed_password=get_password_hash(ADMIN_PASSWORD),
        role=UserRole.ADMIN.value,
        is_active=True,
    )
    test_db.add(user)
    await test_db.commit()
    await test_db.refresh(user)
    return user


@pytest_asyncio.fixture
async def technician_user(test_db: AsyncSession):
    """Create a technician user."""
    user = User(
        email="tech@example.com",
        name="Bench Technician",
        hashed_password=get_password_hash(TECH_PASSWORD),
        role=UserRole.TECHNICIAN.value,
        is_active=True,
    )
    test_db.add(user)
    await test_db.commit()
    await test_db.refresh(user)
    return user


@pytest_asyncio.fixture
async def customer(test_db: AsyncSession):
    """A customer with an email address, so notifications are sent."""
    customer = Customer(
        name="Jane Doe",
        email="jane.doe@example.com",
        phone="+1 555 0100",
        address="12 High Street",
    )
    test_db.add(customer)
    await test_db.commit()
    await test_db.refresh(customer)
    return customer


@pytest_asyncio.fixture
async def client(test_db: AsyncSession, notifier: Notifier):
    """Create test client with overridden database and notifier."""

    async def override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def _login(client: AsyncClient, email: str, password: str) -> str:
    response = await client.post(
        "/api/v2/auth/login",
        json={"email": email, "password": password},
    )
    return response.json()["accessToken"]


@pytest_asyncio.fixture
async def authenticated_client(client: AsyncClient, admin_user: User):
    """Client logged in as an admin."""
    token = await _login(client, admin_user.email, ADMIN_PASSWORD)
    client.headers["Authorization"] = f"Bearer {token}"
    return client


@pytest_asyncio.fixture
async def technician_client(client: AsyncClient, technician_user: User):
    """Client logged in as a technician."""
    token = await _login(client, technician_user.email, TECH_PASSWORD)
    client.headers["Authorization"] = f"Bearer {token}"
    return client
