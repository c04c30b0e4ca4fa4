"""
Shared test fixtures for the SignBox backend test suite.

Sets up an async SQLite in-memory database, swaps MinIO for an in-memory
object store, captures queued Celery invitations, and provides
pre-authenticated HTTP clients for a document creator and two signers.
"""

import io
import os
import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

# ---- Environment overrides MUST come before any signbox imports ----
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["SECRET_KEY"] = "test-secret-key-for-unit-tests"
os.environ["REDIS_URL"] = "redis://localhost:6379/15"
os.environ["RESEND_API_KEY"] = "re_test_key"
os.environ["PUBLIC_APP_URL"] = "http://sign.test"
os.environ["ENVIRONMENT"] = "test"

from signbox.auth.models import User  # noqa: E402
from signbox.auth.service import create_access_token  # noqa: E402
from signbox.common import storage  # noqa: E402
from signbox.database import Base, build_engine, get_db  # noqa: E402
from signbox.main import app  # noqa: E402
from signbox.notifications import celery_tasks  # noqa: E402
from tests.factories import BoxFactory, UserFactory, upload_document  # noqa: E402

TEST_DATABASE_URL = "sqlite+aiosqlite://"

_session_factory: dict[str, async_sessionmaker] = {}


# ---------------------------------------------------------------------------
# Database lifecycle
# ---------------------------------------------------------------------------
@pytest_asyncio.fixture(autouse=True)
async def setup_database():
    """Fresh in-memory database per test."""
    engine = build_engine(TEST_DATABASE_URL, poolclass=StaticPool, connect_args={"check_same_thread": False})

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    _session_factory["default"] = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    yield
    _session_factory.clear()
    await engine.dispose()


def TestSession() -> AsyncSession:
    return _session_factory["default"]()


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    """Session for direct service-layer tests."""
    async with TestSession() as session:
        yield session


async def _override_get_db():
    async with TestSession() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


app.dependency_overrides[get_db] = _override_get_db


# ---------------------------------------------------------------------------
# Object store and task queue doubles
# ---------------------------------------------------------------------------
class _StoredObject:
    def __init__(self, data: bytes):
        self._buf = io.BytesIO(data)

    def read(self) -> bytes:
        return self._buf.read()

    def close(self) -> None:
        pass

    def release_conn(self) -> None:
        pass


class InMemoryObjectStore:
    """Implements the subset of the MinIO client API the app uses."""

    def __init__(self):
        self.objects: dict[tuple[str, str], bytes] = {}

    def bucket_exists(self, bucket: str) -> bool:
        return True

    def put_object(self, bucket, key, data, length, content_type=None):
        self.objects[(bucket, key)] = data.read(length)

    def get_object(self, bucket, key):
        return _StoredObject(self.objects[(bucket, key)])

    def remove_object(self, bucket, key):
        self.objects.pop((bucket, key), None)

    def presigned_get_object(self, bucket, key, expires=None):
        return f"http://minio.test/{bucket}/{key}?ttl={int(expires.total_seconds()) if expires else 0}"


@pytest.fixture(autouse=True)
def object_store(monkeypatch) -> InMemoryObjectStore:
    store = InMemoryObjectStore()
    monkeypatch.setattr(storage, "_minio_client", store)
    return store


class RecordingTask:
    """Stands in for a Celery task; records the arguments of each .delay() call."""

    def __init__(self):
        self.calls: list[tuple] = []

    def delay(self, *args, **kwargs):
        self.calls.append(args)


@pytest.fixture(autouse=True)
def queued_invitations(monkeypatch) -> list[tuple]:
    task = RecordingTask()
    monkeypatch.setattr(celery_tasks, "send_signing_invitation", task)
    return task.calls


# ---------------------------------------------------------------------------
# Users and authenticated clients
# ---------------------------------------------------------------------------
async def _create_test_user(email: str, name: str | None = None) -> User:
    data = UserFactory(email=email, name=name)
    user = User(**data)
    async with TestSession() as session:
        session.add(user)
        await session.commit()
        await session.refresh(user)
    return user


def auth_header(user: User) -> dict[str, str]:
    token = create_access_token(str(user.id), user.email, user.name)
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def client() -> AsyncClient:
    """Unauthenticated httpx async client wired to the FastAPI app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def _client_for(user: User):
    transport = ASGITransport(app=app)
    ac = AsyncClient(transport=transport, base_url="http://test")
    ac.headers.update(auth_header(user))
    return ac


@pytest_asyncio.fixture
async def creator_user() -> User:
    return await _create_test_user("creator@signbox-test.com", "Casey Creator")


@pytest_asyncio.fixture
async def alice_user() -> User:
    return await _create_test_user("alice@signbox-test.com", "Alice Signer")


@pytest_asyncio.fixture
async def bob_user() -> User:
    return await _create_test_user("bob@signbox-test.com", None)


@pytest_asyncio.fixture
async def outsider_user() -> User:
    return await _create_test_user("mallory@signbox-test.com", "Mallory")


@pytest_asyncio.fixture
async def creator_client(creator_user: User) -> AsyncClient:
    ac = await _client_for(creator_user)
    async with ac:
        yield ac


@pytest_asyncio.fixture
async def alice_client(alice_user: User) -> AsyncClient:
    ac = await _client_for(alice_user)
    async with ac:
        yield ac


@pytest_asyncio.fixture
async def bob_client(bob_user: User) -> AsyncClient:
    ac = await _client_for(bob_user)
    async with ac:
        yield ac


@pytest_asyncio.fixture
async def outsider_client(outsider_user: User) -> AsyncClient:
    ac = await _client_for(outsider_user)
    async with ac:
        yield ac


# ---------------------------------------------------------------------------
# A two-signer document created through the API
# ---------------------------------------------------------------------------
@pytest_asyncio.fixture
async def sample_document(creator_client: AsyncClient, alice_user: User, bob_user: User) -> dict:
    boxes = [
        BoxFactory(signer_email=alice_user.email, page=1, x=30, y=80),
        BoxFactory(signer_email=bob_user.email, page=1, x=70, y=80),
        BoxFactory(signer_email=alice_user.email, page=2, x=50, y=90, width=20),
    ]
    resp = await upload_document(creator_client, boxes)
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest.fixture
def random_id() -> str:
    return str(uuid.uuid4())
