from pathlib import Path
from typing import Dict, List
import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from config import Settings
from database import Base
from main import create_app
from routers import rate_limit
from routers.deps import get_media_store
from services.media_store import MediaStore, MediaStoreError, StoredMedia


class InMemoryMediaStore(MediaStore):
    """Records uploads and deletes; ``fail_kinds`` makes uploads of those kinds fail."""

    def __init__(self):
        self.objects: Dict[str, bytes] = {}
        self.deleted: List[str] = []
        self.fail_kinds: set = set()

    async def upload(self, local_path: Path, kind: str) -> StoredMedia:
        if kind in self.fail_kinds:
            raise MediaStoreError(f"simulated {kind} upload failure")
        public_id = f"{kind}/{uuid.uuid4().hex}{local_path.suffix.lower()}"
        self.objects[public_id] = local_path.read_bytes()
        duration = 12.5 if kind == "video" else None
        return StoredMedia(url=f"https://media.test/{public_id}", public_id=public_id, duration=duration)

    async def delete(self, public_id: str, kind: str) -> None:
        self.deleted.append(public_id)
        self.objects.pop(public_id, None)


@pytest.fixture(autouse=True)
def reset_local_rate_limit_counters():
    """Keep in-memory rate-limit state isolated between tests."""
    rate_limit._local_counters.clear()
    yield
    rate_limit._local_counters.clear()


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'vidtube.db'}",
        ACCESS_TOKEN_SECRET="access-secret-for-tests-0123456789",
        REFRESH_TOKEN_SECRET="refresh-secret-for-tests-9876543210",
        COOKIE_SECURE=False,
        BCRYPT_ROUNDS=4,
        MEDIA_ROOT=str(tmp_path / "media"),
        UPLOAD_TMP_DIR=str(tmp_path / "uploads"),
        MAX_UPLOAD_BYTES=64 * 1024,
        STORE_TIMEOUT_SECONDS=10,
        VIEW_DEDUP_WINDOW_MINUTES=0,
    )


@pytest.fixture
def media_store() -> InMemoryMediaStore:
    return InMemoryMediaStore()


@pytest_asyncio.fixture
async def app_context(test_settings, media_store):
    app = create_app(test_settings)
    app.state.disable_rate_limits = True

    async with app.state.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    app.dependency_overrides[get_media_store] = lambda: media_store

    yield app, app.state.session_maker

    app.dependency_overrides.clear()
    await app.state.engine.dispose()


@pytest_asyncio.fixture
async def client(app_context):
    app, _ = app_context
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http_client:
        yield http_client


@pytest.fixture
def session_maker(app_context):
    return app_context[1]
