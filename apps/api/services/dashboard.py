"""Channel dashboard figures for the signed-in account."""

from __future__ import annotations

from typing import Any, Dict, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from models.like import Like
from models.subscription import Subscription
from models.video import Video
from services.aggregation import PageRequest
from services.videos import published_video_listing


async def channel_stats_service(*, actor_id: str, db: AsyncSession) -> Dict[str, Any]:
    published = (Video.owner_id == actor_id, Video.is_published.is_(True))

    total_subscribers = await db.scalar(
        select(func.count(Subscription.id)).where(Subscription.channel_id == actor_id)
    )
    video_totals = (
        await db.execute(select(func.count(Video.id), func.coalesce(func.sum(Video.views), 0)).where(*published))
    ).one()
    total_likes = await db.scalar(
        select(func.count(Like.id)).select_from(Like).join(Video, Video.id == Like.video_id).where(*published)
    )

    return {
        "totalSubscribers": int(total_subscribers or 0),
        "totalVideos": int(video_totals[0] or 0),
        "totalVideoViews": int(video_totals[1] or 0),
        "totalLikes": int(total_likes or 0),
    }


async def channel_videos_service(
    *,
    actor_id: str,
    page_request: PageRequest,
    query: Optional[str],
    sort_by: Optional[str],
    sort_type: Optional[str],
    db: AsyncSession,
) -> Dict[str, Any]:
    listing = published_video_listing(query=query, sort_by=sort_by, sort_type=sort_type, owner_id=actor_id)
    page = await listing.paginate(db, page_request)
    return page.to_payload("videos")
