import pytest

UNREACHABLE_REDIS = "redis://127.0.0.1:1/0"


@pytest.mark.asyncio
async def test_health_endpoints(client, test_settings):
    test_settings.REDIS_URL = UNREACHABLE_REDIS

    live = await client.get("/health/live")
    assert live.json() == {"alive": True}

    ready = await client.get("/health/ready")
    assert ready.status_code == 200
    assert ready.json() == {"ready": True}

    health = (await client.get("/health")).json()
    assert health["database"] == "up"
    assert health["redis"].startswith("down")
    assert health["status"] == "degraded"


@pytest.mark.asyncio
async def test_login_is_rate_limited_per_client_without_redis(app_context, client, test_settings):
    app, _ = app_context
    app.state.disable_rate_limits = False
    test_settings.REDIS_URL = UNREACHABLE_REDIS

    for _ in range(20):
        attempt = await client.post("/api/v1/users/login", json={"username": "ghost", "password": "pw"})
        assert attempt.status_code == 401

    blocked = await client.post("/api/v1/users/login", json={"username": "ghost", "password": "pw"})
    assert blocked.status_code == 429
    assert blocked.json()["success"] is False
