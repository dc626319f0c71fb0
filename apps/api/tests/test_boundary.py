import pytest
from fastapi import APIRouter, FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import IntegrityError

from routers.boundary import BoundaryRoute, register_error_handlers
from routers.responses import ApiResponse, respond
from services.errors import ApiError


def _failing_app() -> FastAPI:
    app = FastAPI()
    router = APIRouter(route_class=BoundaryRoute)

    @router.get("/boom")
    async def boom():
        raise RuntimeError("database password is hunter2")

    @router.get("/conflict")
    async def conflict():
        raise ApiError(409, "Already there", [{"field": "name"}])

    @router.get("/integrity")
    async def integrity():
        raise IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))

    @router.get("/ok")
    async def ok():
        return respond(200, {"value": 1}, "fine")

    app.include_router(router)
    register_error_handlers(app)
    return app


def test_envelope_success_is_derived_from_status_code():
    assert ApiResponse.build(200, {"a": 1}).to_content() == {
        "statusCode": 200,
        "data": {"a": 1},
        "message": "Success",
        "success": True,
    }
    assert ApiResponse.build(399).success is True
    assert ApiResponse.build(400).success is False

    error = ApiResponse.build(404, None, "Video not found").to_content()
    assert error == {
        "statusCode": 404,
        "data": None,
        "message": "Video not found",
        "success": False,
        "errors": [],
    }


def test_api_error_defaults():
    error = ApiError()
    assert error.status_code == 500
    assert error.message == "Something went wrong"
    assert error.errors == []


@pytest.mark.asyncio
async def test_unexpected_failure_becomes_generic_500_and_server_keeps_serving():
    app = _failing_app()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        failed = await client.get("/boom")
        assert failed.status_code == 500
        body = failed.json()
        assert body["success"] is False
        assert body["message"] == "Internal server error"
        assert "hunter2" not in failed.text

        after = await client.get("/ok")
        assert after.status_code == 200
        assert after.json() == {"statusCode": 200, "data": {"value": 1}, "message": "fine", "success": True}


@pytest.mark.asyncio
async def test_structured_and_store_errors_are_translated():
    app = _failing_app()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        conflict = await client.get("/conflict")
        assert conflict.status_code == 409
        assert conflict.json()["message"] == "Already there"
        assert conflict.json()["errors"] == [{"field": "name"}]

        integrity = await client.get("/integrity")
        assert integrity.status_code == 409
        assert integrity.json()["success"] is False


@pytest.mark.asyncio
async def test_healthcheck_and_unknown_route_use_envelope(client):
    health = await client.get("/api/v1/healthcheck")
    assert health.status_code == 200
    assert health.json() == {"statusCode": 200, "data": {"status": "OK"}, "message": "OK", "success": True}

    missing = await client.get("/api/v1/nothing-here")
    assert missing.status_code == 404
    assert missing.json()["success"] is False
    assert missing.json()["statusCode"] == 404


@pytest.mark.asyncio
async def test_validation_failure_is_400_with_details(client):
    response = await client.post("/api/v1/users/login", json=["not", "an", "object"])
    assert response.status_code == 400
    body = response.json()
    assert body["message"] == "Validation failed"
    assert body["errors"]


@pytest.mark.asyncio
async def test_protected_route_without_credentials_is_401(client):
    response = await client.get("/api/v1/users/current-user")
    assert response.status_code == 401
    assert response.json()["message"] == "Unauthorized request"

    forged = await client.get("/api/v1/users/current-user", headers={"Authorization": "Bearer not-a-token"})
    assert forged.status_code == 401
    assert forged.json()["message"] == "Invalid access token"
