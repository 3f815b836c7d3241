"""Pytest configuration and fixtures."""

import os

# The app must not try to reach DynamoDB while tests import it
os.environ.setdefault("CACHE_BOOTSTRAP_ON_STARTUP", "false")

from datetime import UTC, datetime  # noqa: E402

import boto3  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from moto import mock_aws  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from src import models  # noqa: E402, F401
from src.api.dependencies import get_cache  # noqa: E402
from src.database import Base, get_db  # noqa: E402
from src.main import app  # noqa: E402
from src.models.user import User  # noqa: E402
from src.services.cache import KEY_ATTRIBUTE, DynamoDBCacheService  # noqa: E402

CACHE_TABLE = "DebtCache"


class AuthHeaders(dict):
    """Dict subclass that also stores user_id and email."""

    def __init__(self, *args, user_id: int | None = None, email: str | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.user_id = user_id
        self.email = email


class InlineExecutor:
    """Runs submitted work immediately so background deletes are observable."""

    def submit(self, fn, *args, **kwargs):
        fn(*args, **kwargs)


class Clock:
    """Settable clock for TTL tests."""

    def __init__(self, now: datetime | None = None):
        self.now = now or datetime(2026, 1, 15, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now


# Use test database - PostgreSQL in Docker, SQLite locally
if os.getenv("DATABASE_URL"):
    # Running in Docker - use PostgreSQL test database
    SQLALCHEMY_DATABASE_URL = os.getenv("DATABASE_URL").replace(
        "/debt_tracker", "/debt_tracker_test"
    )
else:
    # Running locally - use SQLite
    SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"

connect_args = {"check_same_thread": False} if "sqlite" in SQLALCHEMY_DATABASE_URL else {}
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args=connect_args)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """Create test database schema once at the start of the test session."""
    if "postgresql" in SQLALCHEMY_DATABASE_URL:
        # For PostgreSQL, create the test database
        from sqlalchemy_utils import create_database, database_exists

        # Create test database if it doesn't exist
        if not database_exists(SQLALCHEMY_DATABASE_URL):
            create_database(SQLALCHEMY_DATABASE_URL)

    Base.metadata.create_all(bind=engine)
    yield
    # Don't drop database - just leave it for next run (each test cleans up after itself)


@pytest.fixture(scope="function", autouse=True)
def db():
    """Create a fresh database session for each test with cleanup."""
    session = TestingSessionLocal()

    yield session

    # Clean up all data after test
    session.rollback()
    for table in reversed(Base.metadata.sorted_tables):
        session.execute(table.delete())
    session.commit()
    session.close()


@pytest.fixture
def aws_credentials(monkeypatch):
    """Fake credentials so boto3 can never reach a real account."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")


@pytest.fixture
def dynamodb(aws_credentials):
    """Low-level DynamoDB client against moto, with an empty cache table."""
    with mock_aws():
        client = boto3.client("dynamodb", region_name="us-east-1")
        client.create_table(
            TableName=CACHE_TABLE,
            KeySchema=[{"AttributeName": KEY_ATTRIBUTE, "KeyType": "HASH"}],
            AttributeDefinitions=[{"AttributeName": KEY_ATTRIBUTE, "AttributeType": "S"}],
            BillingMode="PAY_PER_REQUEST",
        )
        yield client


@pytest.fixture
def cache_items(dynamodb):
    """Read the raw cache table as ``{key: {attribute: value}}``."""

    def _items() -> dict[str, dict[str, str]]:
        items = dynamodb.scan(TableName=CACHE_TABLE)["Items"]
        return {
            item[KEY_ATTRIBUTE]["S"]: {name: value["S"] for name, value in item.items()}
            for item in items
        }

    return _items


@pytest.fixture
def break_cache(dynamodb):
    """Drop the cache table so every cache call fails."""

    def _break() -> None:
        dynamodb.delete_table(TableName=CACHE_TABLE)

    return _break


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def cache(dynamodb):
    """Cache client backed by the mocked table."""
    return DynamoDBCacheService(table_name=CACHE_TABLE, client=dynamodb, executor=InlineExecutor())


@pytest.fixture
def make_cache(dynamodb):
    """Build a cache client with a custom clock or settings."""

    def _make(**kwargs) -> DynamoDBCacheService:
        kwargs.setdefault("table_name", CACHE_TABLE)
        kwargs.setdefault("client", dynamodb)
        kwargs.setdefault("executor", InlineExecutor())
        return DynamoDBCacheService(**kwargs)

    return _make


@pytest.fixture(scope="function")
def client(db, cache):
    """Create a test client with database and cache overrides."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache] = lambda: cache
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def register_user(client):
    """Register a user through the API and return their auth headers."""

    def _register(email: str, first_name: str = "Test", last_name: str = "User") -> AuthHeaders:
        response = client.post(
            "/api/v1/auth/register",
            json={
                "email": email,
                "password": "testpass123",
                "first_name": first_name,
                "last_name": last_name,
            },
        )
        assert response.status_code == 201
        data = response.json()
        token = data["access_token"]
        return AuthHeaders(
            {"Authorization": f"Bearer {token}"}, user_id=data["user"]["id"], email=email
        )

    return _register


@pytest.fixture
def auth_headers(register_user):
    """Create a user and return auth headers with user info."""
    return register_user("test@example.com")


@pytest.fixture
def other_auth_headers(register_user):
    """A second registered user, usable as a counterparty."""
    return register_user("friend@example.com", first_name="Ana", last_name="Gomez")


@pytest.fixture
def users(db):
    """Two users created directly in the database: (owner, counterparty)."""
    owner = User(
        email="owner@example.com", password_hash="not-a-hash", first_name="Olga", last_name="Owner"
    )
    counterparty = User(
        email="borrower@example.com",
        password_hash="not-a-hash",
        first_name="Bruno",
        last_name="Borrower",
    )
    db.add_all([owner, counterparty])
    db.commit()
    db.refresh(owner)
    db.refresh(counterparty)
    return owner, counterparty
