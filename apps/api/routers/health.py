"""
Health check endpoints.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
import redis.asyncio as redis

from database import get_db
from routers.boundary import BoundaryRoute
from routers.responses import respond

router = APIRouter()
api_router = APIRouter(route_class=BoundaryRoute)


@api_router.get("/healthcheck")
async def healthcheck():
    """Liveness in the envelope used by every API response."""
    return respond(200, {"status": "OK"}, "OK")


@router.get("/health")
async def health_check(request: Request, db: AsyncSession = Depends(get_db)):
    """
    Health check endpoint.
    Reports API, database and Redis status; degraded when a backend is down.
    """
    health_status = {
        "status": "healthy",
        "api": "up",
        "database": "unknown",
        "redis": "unknown",
        "media_store": request.app.state.settings.MEDIA_STORE,
    }

    try:
        await db.execute(text("SELECT 1"))
        health_status["database"] = "up"
    except Exception as e:
        health_status["database"] = f"down: {str(e)}"
        health_status["status"] = "degraded"

    try:
        r = redis.from_url(request.app.state.settings.REDIS_URL)
        try:
            await r.ping()
        finally:
            await r.aclose()
        health_status["redis"] = "up"
    except Exception as e:
        health_status["redis"] = f"down: {str(e)}"
        health_status["status"] = "degraded"

    return health_status


@router.get("/health/ready")
async def readiness_check(db: AsyncSession = Depends(get_db)):
    """Kubernetes-style readiness check."""
    try:
        await db.execute(text("SELECT 1"))
    except Exception as exc:
        return JSONResponse(status_code=503, content={"ready": False, "database": str(exc)})
    return {"ready": True}


@router.get("/health/live")
async def liveness_check():
    """Kubernetes-style liveness check."""
    return {"alive": True}
