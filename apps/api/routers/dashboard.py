"""
Channel dashboard router.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from routers.auth_scope import Actor, get_current_actor
from routers.boundary import BoundaryRoute
from routers.deps import get_page_request
from routers.responses import respond
from services.aggregation import PageRequest
from services.dashboard import channel_stats_service, channel_videos_service

router = APIRouter(route_class=BoundaryRoute)


@router.get("/stats")
async def get_channel_stats(
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    stats = await channel_stats_service(actor_id=actor.user_id, db=db)
    return respond(200, stats, "Channel stats fetched successfully")


@router.get("/videos")
async def get_channel_videos(
    page_request: PageRequest = Depends(get_page_request),
    query: Optional[str] = Query(None),
    sortBy: Optional[str] = Query(None),
    sortType: Optional[str] = Query(None),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    videos = await channel_videos_service(
        actor_id=actor.user_id,
        page_request=page_request,
        query=query,
        sort_by=sortBy,
        sort_type=sortType,
        db=db,
    )
    return respond(200, videos, "Channel videos fetched successfully")
