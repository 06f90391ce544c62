"""
Voice Memo Backend — Test Configuration (conftest.py)
=======================================================

What:  Shared pytest fixtures for the whole suite.
How:   Environment is pinned before any voicememo import so settings, the
       module-level engine and the app factory all see test values.

Fixture Hierarchy (all function-scoped):
    ├── mock_db_session: AsyncMock session for error-path unit tests
    ├── db_engine / db_session: in-memory aiosqlite with the full schema
    ├── user / other_user: persisted accounts
    ├── cipher / token_codec: security objects with test secrets
    ├── fake_generation: LLMService stand-in that records its calls
    └── test_client: httpx AsyncClient on the app, sessions from db_engine
"""

import os

# Must run before voicememo.config is imported anywhere
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET"] = "test-jwt-secret-0123456789"
os.environ["ENCRYPTION_KEY"] = "dGVzdC1lbmNyeXB0aW9uLWtleS0zMi1ieXRlcyEhISE="
os.environ["LOG_LEVEL"] = "WARNING"

from datetime import timedelta
from typing import AsyncGenerator, List, Tuple
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from voicememo.config import settings
from voicememo.database import Base, get_db_session
from voicememo.models.credential import CredentialRecord  # noqa: F401
from voicememo.models.memo import Memo  # noqa: F401
from voicememo.models.user import User
from voicememo.security.cipher import CredentialCipher
from voicememo.security.passwords import hash_password
from voicememo.security.tokens import TokenCodec
from voicememo.services.llm_base import LLMService

TEST_PASSWORD = "password1"


@pytest.fixture
def mock_db_session():
    """
    AsyncMock standing in for AsyncSession.

    Usage:
        mock_db_session.execute.side_effect = OperationalError("SELECT", {}, Exception())
        with pytest.raises(DatabaseError): ...
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.get = AsyncMock(return_value=None)
    session.add = MagicMock()
    return session


@pytest_asyncio.fixture
async def db_engine():
    """In-memory SQLite shared across connections via StaticPool, foreign keys enforced."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # SQLite ignores ON DELETE CASCADE unless enabled per connection
    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session


async def _make_user(session: AsyncSession, username: str, email: str) -> User:
    user = User(username=username, email=email, password_hash=hash_password(TEST_PASSWORD))
    session.add(user)
    await session.flush()
    return user


@pytest_asyncio.fixture
async def user(db_session) -> User:
    return await _make_user(db_session, "alice", "alice@x.com")


@pytest_asyncio.fixture
async def other_user(db_session) -> User:
    return await _make_user(db_session, "bob", "bob@x.com")


@pytest.fixture
def cipher() -> CredentialCipher:
    return CredentialCipher(settings.encryption_key_bytes)


@pytest.fixture
def token_codec() -> TokenCodec:
    return TokenCodec(settings.jwt_secret, default_ttl=timedelta(hours=24))


@pytest.fixture
def sample_wav_bytes() -> bytes:
    """A RIFF/WAVE header with no samples; enough for transport tests."""
    return b"RIFF$\x00\x00\x00WAVEfmt \x10\x00\x00\x00\x01\x00\x01\x00D\xac\x00\x00"


class FakeGenerationService(LLMService):
    """Returns canned text and records (operation, args, api_key) tuples."""

    def __init__(self):
        self.calls: List[Tuple[str, tuple, str]] = []

    async def transcribe(self, audio_bytes: bytes, api_key: str) -> str:
        self.calls.append(("transcribe", (audio_bytes,), api_key))
        return "hello from the recording"

    async def translate(self, text: str, target_lang: str, api_key: str) -> str:
        self.calls.append(("translate", (text, target_lang), api_key))
        return f"[{target_lang}] {text}"

    async def summarize(self, text: str, api_key: str) -> str:
        self.calls.append(("summarize", (text,), api_key))
        return "short summary"

    async def generate_title(self, transcript: str, api_key: str) -> str:
        self.calls.append(("generate_title", (transcript,), api_key))
        return "Morning Idea"


@pytest.fixture
def fake_generation() -> FakeGenerationService:
    return FakeGenerationService()


@pytest_asyncio.fixture
async def test_client(db_engine, fake_generation) -> AsyncGenerator[AsyncClient, None]:
    """
    HTTPX AsyncClient wired to the FastAPI app through ASGITransport.

    get_db_session is overridden to commit against the per-test SQLite engine;
    the generation service on app.state is swapped for the fake. ASGITransport
    does not run the lifespan, so no startup connection check hits the real engine.
    """
    from voicememo.main import app

    factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)

    async def override_session() -> AsyncGenerator[AsyncSession, None]:
        async with factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    original_generation = app.state.generation_service
    app.dependency_overrides[get_db_session] = override_session
    app.state.generation_service = fake_generation

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
    app.state.generation_service = original_generation
