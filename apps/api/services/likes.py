"""Likes on videos, comments and tweets."""

from __future__ import annotations

import logging
from typing import Any, Dict

from sqlalchemy import and_
from sqlalchemy.ext.asyncio import AsyncSession

from models.comment import Comment
from models.like import Like, LikeTarget
from models.tweet import Tweet
from models.user import User
from models.video import Video
from services.accounts import owner_fields
from services.aggregation import Aggregation, PageRequest
from services.errors import ApiError
from services.toggle import toggle_membership
from services.videos import video_fields

logger = logging.getLogger(__name__)

TARGET_MODELS = {
    "video": (Video, "Video not found"),
    "comment": (Comment, "Comment not found"),
    "tweet": (Tweet, "Tweet not found"),
}


async def toggle_like_service(*, target: LikeTarget, actor_id: str, db: AsyncSession) -> Dict[str, Any]:
    """Like ``target`` if the actor has not yet, otherwise remove the like."""
    model, missing_message = TARGET_MODELS[target.kind]
    if await db.get(model, target.id) is None:
        raise ApiError(404, missing_message)

    liked = await toggle_membership(db, Like, Like.key_for(target, actor_id))
    logger.info("like_toggled user=%s kind=%s target=%s liked=%s", actor_id, target.kind, target.id, liked)
    return {"isLiked": liked}


async def list_liked_videos_service(
    *,
    actor_id: str,
    page_request: PageRequest,
    db: AsyncSession,
) -> Dict[str, Any]:
    page = await (
        Aggregation(Video, video_fields())
        .lookup(
            Like,
            and_(Like.video_id == Video.id, Like.liked_by == actor_id),
            "like",
            {"likedAt": Like.created_at},
        )
        .lookup(User, User.id == Video.owner_id, "owner", owner_fields())
        .match(Video.is_published.is_(True))
        .sort(Like.created_at, "desc")
        .paginate(db, page_request)
    )
    for doc in page.items:
        doc["likedAt"] = doc.pop("like")["likedAt"]
    return page.to_payload("likedVideos")
