import socket
import uuid
from collections.abc import AsyncGenerator, Iterator
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import bcrypt
import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from account_service.core.auth import AuthConfig
from account_service.core.config import settings
from account_service.models.base import Base
from account_service.notifiers import MockNotifier, NotifierConfig, factory
from account_service.services.auth_service import AuthService
from account_service.services.user_service import UserService
from tests.fakes import FakeUser, InMemoryUserRepository

# Use separate test database
TEST_DATABASE_URL = settings.database_url.replace(
    settings.database_name, f"{settings.database_name}_test"
)

# Security: This is a test-only secret. Production uses a real secret from env.
TEST_AUTH_SECRET = "test-secret-key-that-is-at-least-32-characters-long"  # nosec B105  # gitleaks:allow
TEST_ISSUER = "account-service"
TEST_AUDIENCE = "account-service"

TEST_PASSWORD = "ValidPass1"  # nosec B105  # gitleaks:allow
TEST_BCRYPT_ROUNDS = 4  # Low cost factor for fast tests


def create_test_jwt(
    user_id: uuid.UUID,
    *,
    username: str = "alice",
    email: str = "alice@example.com",
    display_name: str | None = "Alice Liddell",
    secret: str = TEST_AUTH_SECRET,
    expires_delta: timedelta | None = None,
    iat: datetime | None = None,
) -> str:
    """Create a signed session token for test authentication.

    Args:
        user_id: Account UUID to encode in the sub claim.
        username: username claim.
        email: email claim.
        display_name: display_name claim.
        secret: Signing secret (must match the test AuthConfig).
        expires_delta: Time until expiration. Defaults to 1 hour.
        iat: Issued-at time. Defaults to now.

    Returns:
        Encoded JWT string.
    """
    now = datetime.now(UTC)
    payload = {
        "sub": str(user_id),
        "username": username,
        "display_name": display_name,
        "email": email,
        "aud": TEST_AUDIENCE,
        "iss": TEST_ISSUER,
        "exp": now + (expires_delta or timedelta(hours=1)),
        "iat": iat or now,
    }
    return jwt.encode(payload, secret, algorithm="HS256")


def hash_password(password: str = TEST_PASSWORD) -> str:
    """bcrypt hash at test cost."""
    return bcrypt.hashpw(
        password.encode(), bcrypt.gensalt(rounds=TEST_BCRYPT_ROUNDS)
    ).decode()


def _is_postgres_available() -> bool:
    """Check if PostgreSQL is accepting connections.

    Returns:
        True if PostgreSQL is reachable on the configured port, False otherwise.
    """
    try:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.settimeout(1)
        result = sock.connect_ex((settings.database_host, settings.database_port))
        sock.close()
        return result == 0
    except OSError:
        return False


# Check once at module load time
_POSTGRES_AVAILABLE = _is_postgres_available()


def skip_if_no_postgres() -> None:
    """Skip test if PostgreSQL is not available.

    Called by fixtures that require database connection.
    """
    if not _POSTGRES_AVAILABLE:
        pytest.skip(
            f"PostgreSQL not available on port {settings.database_port}. "
            "Start a database to run repository tests."
        )


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create test database engine.

    Skips test if PostgreSQL is not available.
    """
    skip_if_no_postgres()

    engine = create_async_engine(TEST_DATABASE_URL, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest.fixture
def mock_db() -> AsyncMock:
    """Mocked AsyncSession for service tests (repository is faked)."""
    db = AsyncMock()
    db.add = MagicMock()  # add() is synchronous in SQLAlchemy
    return db


# =============================================================================
# Service Fixtures
# =============================================================================


@pytest.fixture
def auth_config() -> AuthConfig:
    """Auth settings with a test secret and low bcrypt cost."""
    return AuthConfig(
        secret=TEST_AUTH_SECRET,
        issuer=TEST_ISSUER,
        audience=TEST_AUDIENCE,
        session_ttl=timedelta(hours=1),
        reset_token_ttl=timedelta(hours=1),
        verification_token_ttl=timedelta(days=1),
        bcrypt_rounds=TEST_BCRYPT_ROUNDS,
    )


@pytest.fixture
def mock_notifier(auth_config: AuthConfig) -> Iterator[MockNotifier]:
    """MockNotifier injected into the factory singleton, reset after test."""
    notifier = MockNotifier(
        NotifierConfig(
            frontend_url="http://localhost:8080",
            reset_token_ttl=auth_config.reset_token_ttl,
            verification_token_ttl=auth_config.verification_token_ttl,
        )
    )
    factory._notifier = notifier

    yield notifier

    factory.reset_notifier()


@pytest.fixture
def user_repo() -> InMemoryUserRepository:
    """Empty in-memory account store."""
    return InMemoryUserRepository()


@pytest.fixture
def auth_service(
    mock_db: AsyncMock,
    mock_notifier: MockNotifier,
    auth_config: AuthConfig,
    user_repo: InMemoryUserRepository,
) -> AuthService:
    return AuthService(mock_db, mock_notifier, auth_config, repository=user_repo)


@pytest.fixture
def user_service(
    mock_db: AsyncMock,
    mock_notifier: MockNotifier,
    auth_config: AuthConfig,
    user_repo: InMemoryUserRepository,
) -> UserService:
    return UserService(mock_db, mock_notifier, auth_config, repository=user_repo)


@pytest.fixture
def alice(user_repo: InMemoryUserRepository) -> FakeUser:
    """Verified account with TEST_PASSWORD."""
    return user_repo.add(
        FakeUser(
            username="alice",
            display_name="Alice Liddell",
            email="alice@example.com",
            password_hash=hash_password(),
            email_verified=True,
        )
    )


# =============================================================================
# API Test Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def client(
    mock_db: AsyncMock,
    mock_notifier: MockNotifier,
    auth_config: AuthConfig,
    user_repo: InMemoryUserRepository,
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to the in-memory store.

    Sets up:
    - get_db yields a mocked session
    - repository, notifier and auth config overridden with test doubles
    - rate limiting disabled
    """
    from account_service.api.deps import (
        get_auth_config,
        get_notifier_dependency,
        get_user_repository,
    )
    from account_service.core.database import get_db
    from account_service.core.rate_limiting import limiter
    from account_service.main import app

    async def override_get_db() -> AsyncGenerator[AsyncMock, None]:
        yield mock_db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_user_repository] = lambda: user_repo
    app.dependency_overrides[get_notifier_dependency] = lambda: mock_notifier
    app.dependency_overrides[get_auth_config] = lambda: auth_config

    original_enabled = limiter.enabled
    limiter.enabled = False

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    limiter.enabled = original_enabled
    app.dependency_overrides.clear()


def bearer_headers(user: FakeUser, **overrides) -> dict[str, str]:
    """Authorization header carrying a valid session token for ``user``."""
    token = create_test_jwt(
        user.id,
        username=user.username,
        email=user.email,
        display_name=user.display_name,
        **overrides,
    )
    return {"Authorization": f"Bearer {token}"}
