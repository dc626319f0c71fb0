import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select

import database
from database import Base
from helpers import register_user
from main import create_app
from models.user import User
from routers.deps import get_media_store


@pytest.mark.asyncio
async def test_each_app_owns_the_store_named_by_its_settings(app_context, test_settings, media_store, tmp_path):
    default_app, default_sessions = app_context
    other_settings = test_settings.model_copy(
        update={
            "DATABASE_URL": f"sqlite+aiosqlite:///{tmp_path / 'other.db'}",
            "BCRYPT_ROUNDS": 5,
        }
    )
    other_app = create_app(other_settings)
    other_app.state.disable_rate_limits = True
    other_app.dependency_overrides[get_media_store] = lambda: media_store

    assert not hasattr(database, "engine")
    assert other_app.state.engine is not default_app.state.engine
    assert other_app.state.engine.url.database.endswith("other.db")
    assert other_app.state.session_maker.kw["bind"] is other_app.state.engine

    async with other_app.state.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    try:
        async with AsyncClient(transport=ASGITransport(app=other_app), base_url="http://test") as other_client:
            ready = await other_client.get("/health/ready")
            assert ready.status_code == 200
            registered = await register_user(other_client, "carol")
            assert registered.status_code == 201

        async with other_app.state.session_maker() as session:
            stored = (await session.execute(select(User).where(User.username == "carol"))).scalar_one()
        assert stored.password_hash.startswith("$2b$05$")

        async with default_sessions() as session:
            count = await session.scalar(select(func.count()).select_from(User))
        assert count == 0
    finally:
        await other_app.state.engine.dispose()
