"""Pytest configuration and fixtures."""

import os
import tempfile

# Settings are read at import time; point them at throwaway locations first
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-not-for-production")
os.environ["SQLITE_PATH"] = os.path.join(tempfile.mkdtemp(prefix="peerstudy_db_"), "unused.db")
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="peerstudy_uploads_")
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["LOG_LEVEL"] = "WARNING"

from collections.abc import AsyncGenerator  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from fakes import InMemoryUnitOfWork  # noqa: E402
from peerstudy.db.base import Base  # noqa: E402
from peerstudy.db import models  # noqa: E402,F401
from peerstudy.db.session import build_engine, build_session_factory, get_db, get_session_factory  # noqa: E402
from peerstudy.main import app  # noqa: E402
from peerstudy.realtime.broadcaster import Broadcaster, get_broadcaster  # noqa: E402
from peerstudy.services.storage import FileStorage, get_storage  # noqa: E402


class RecordingTransport:
    """Stands in for a WebSocket: keeps every frame it is asked to send."""

    def __init__(self, fail: bool = False):
        self.frames: list[dict] = []
        self.fail = fail

    async def send_json(self, data) -> None:
        if self.fail:
            raise ConnectionResetError("socket closed")
        self.frames.append(data)

    @property
    def events(self) -> list[str]:
        return [frame["event"] for frame in self.frames]


@pytest.fixture
def uow() -> InMemoryUnitOfWork:
    return InMemoryUnitOfWork()


@pytest.fixture
def hub() -> Broadcaster:
    return Broadcaster()


@pytest.fixture
def storage(tmp_path) -> FileStorage:
    files = FileStorage(tmp_path / "uploads", url_prefix="/uploads", max_size=1024 * 1024)
    files.ensure_directories()
    return files


@pytest.fixture
def session_factory(tmp_path):
    """Session factory over a fresh SQLite file with every table created."""
    path = tmp_path / "peerstudy_test.db"
    sync_engine = create_engine(f"sqlite:///{path}")
    Base.metadata.create_all(sync_engine)
    sync_engine.dispose()

    engine = build_engine(f"sqlite+aiosqlite:///{path}", poolclass=NullPool)
    yield build_session_factory(engine)
    engine.sync_engine.dispose()


@pytest.fixture
def api_app(session_factory, storage, hub):
    """The FastAPI app wired to the temporary database, storage and broadcaster."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_broadcaster] = lambda: hub
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def client(api_app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing FastAPI endpoints."""
    async with AsyncClient(
        transport=ASGITransport(app=api_app),
        base_url="http://test",
    ) as ac:
        yield ac
