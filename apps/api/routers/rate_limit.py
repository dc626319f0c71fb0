"""Redis-backed fixed-window rate limiting for the credential endpoints."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Dict, Tuple

from fastapi import Request
import redis.asyncio as redis

from services.errors import ApiError

logger = logging.getLogger(__name__)

_local_counters: Dict[str, Tuple[int, float]] = {}
_local_lock = asyncio.Lock()


def _client_identifier(request: Request) -> str:
    if request.client and request.client.host:
        return request.client.host
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return "unknown"


async def _consume_local_quota(key: str, limit: int, window_seconds: int) -> bool:
    now = time.time()
    async with _local_lock:
        count, reset_at = _local_counters.get(key, (0, now + window_seconds))
        if now >= reset_at:
            count = 0
            reset_at = now + window_seconds
        count += 1
        _local_counters[key] = (count, reset_at)
        return count <= limit


def rate_limit(prefix: str, limit: int, window_seconds: int) -> Callable[[Request], None]:
    """Dependency allowing ``limit`` calls per client per ``window_seconds``."""

    async def _dependency(request: Request):
        if getattr(request.app.state, "disable_rate_limits", False):
            return

        key = f"vidtube:rate:{prefix}:{_client_identifier(request)}"
        redis_url = request.app.state.settings.REDIS_URL
        try:
            redis_client = redis.from_url(redis_url, decode_responses=True)
            try:
                current = await redis_client.incr(key)
                if current == 1:
                    await redis_client.expire(key, window_seconds)
            finally:
                await redis_client.aclose()
            allowed = current <= limit
        except Exception as exc:
            logger.debug("rate_limit_local_fallback key=%s error=%s", key, exc)
            allowed = await _consume_local_quota(key, limit, window_seconds)

        if not allowed:
            raise ApiError(429, f"Rate limit exceeded for {prefix}. Try again later.")

    return _dependency
