"""
Async SQLAlchemy engine, session factory and the request-scoped session dependency.
"""

import asyncio
from datetime import datetime, timezone
import logging
from typing import Any, AsyncIterator, Optional

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from config import Settings
from services.errors import ApiError

logger = logging.getLogger(__name__)

Base = declarative_base()


class BoundedAsyncSession(AsyncSession):
    """AsyncSession whose store round-trips are cut off after ``info["store_timeout"]`` seconds."""

    async def _bounded(self, label: str, awaitable: Any) -> Any:
        timeout = self.info.get("store_timeout")
        if not timeout:
            return await awaitable
        try:
            return await asyncio.wait_for(awaitable, timeout=timeout)
        except asyncio.TimeoutError as exc:
            logger.error("store_timeout op=%s timeout=%ss", label, timeout)
            raise ApiError(503, "Database operation timed out") from exc

    async def execute(self, *args: Any, **kwargs: Any) -> Any:
        return await self._bounded("execute", super().execute(*args, **kwargs))

    async def scalar(self, *args: Any, **kwargs: Any) -> Any:
        return await self._bounded("scalar", super().scalar(*args, **kwargs))

    async def scalars(self, *args: Any, **kwargs: Any) -> Any:
        return await self._bounded("scalars", super().scalars(*args, **kwargs))

    async def get(self, *args: Any, **kwargs: Any) -> Any:
        return await self._bounded("get", super().get(*args, **kwargs))

    async def flush(self, *args: Any, **kwargs: Any) -> None:
        await self._bounded("flush", super().flush(*args, **kwargs))

    async def commit(self) -> None:
        await self._bounded("commit", super().commit())

    async def refresh(self, *args: Any, **kwargs: Any) -> None:
        await self._bounded("refresh", super().refresh(*args, **kwargs))


def build_session_maker(
    bind: AsyncEngine,
    store_timeout: Optional[float] = None,
) -> async_sessionmaker:
    """Session factory producing bounded sessions that keep attributes after commit."""
    return async_sessionmaker(
        bind,
        class_=BoundedAsyncSession,
        expire_on_commit=False,
        info={"store_timeout": store_timeout},
    )


def build_engine(settings: Settings) -> AsyncEngine:
    return create_async_engine(settings.DATABASE_URL, pool_pre_ping=True)


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """Yield one session per request from the app's session factory; uncommitted work is rolled back on close."""
    async with request.app.state.session_maker() as session:
        yield session


def utcnow() -> datetime:
    """Timestamp default with sub-second resolution so creation order is stable."""
    return datetime.now(timezone.utc)
