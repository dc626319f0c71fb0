"""Comments on videos."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from models.comment import Comment
from models.like import Like
from models.user import User
from models.video import Video
from services.accounts import owner_fields, owner_summary
from services.aggregation import Aggregation, PageRequest
from services.errors import ApiError
from services.ownership import delete_owned, update_owned

logger = logging.getLogger(__name__)

NOT_OWNED_MESSAGE = "Comment not found or you are not the owner"


def _content(value: Optional[str]) -> str:
    content = (value or "").strip()
    if not content:
        raise ApiError(400, "Comment content is required")
    return content


def serialize_comment(comment: Comment) -> Dict[str, Any]:
    return {
        "id": comment.id,
        "content": comment.content,
        "video": comment.video_id,
        "owner": comment.owner_id,
        "createdAt": comment.created_at,
        "updatedAt": comment.updated_at,
    }


async def _require_video(db: AsyncSession, video_id: str) -> Video:
    video = await db.get(Video, video_id)
    if video is None:
        raise ApiError(404, "Video not found")
    return video


async def list_video_comments_service(
    *,
    video_id: str,
    page_request: PageRequest,
    db: AsyncSession,
) -> Dict[str, Any]:
    await _require_video(db, video_id)

    likes_count = select(func.count(Like.id)).where(Like.comment_id == Comment.id).scalar_subquery()
    page = await (
        Aggregation(
            Comment,
            {
                "id": Comment.id,
                "content": Comment.content,
                "likesCount": likes_count,
                "createdAt": Comment.created_at,
                "updatedAt": Comment.updated_at,
            },
        )
        .lookup(User, User.id == Comment.owner_id, "owner", owner_fields())
        .match(Comment.video_id == video_id)
        .sort(Comment.created_at, "desc")
        .paginate(db, page_request)
    )
    return page.to_payload("comments")


async def add_comment_service(
    *,
    video_id: str,
    actor_id: str,
    content: Optional[str],
    db: AsyncSession,
) -> Dict[str, Any]:
    content = _content(content)
    await _require_video(db, video_id)

    comment = Comment(video_id=video_id, owner_id=actor_id, content=content)
    db.add(comment)
    await db.commit()

    owner = await db.get(User, actor_id)
    payload = serialize_comment(comment)
    payload["owner"] = owner_summary(owner)
    logger.info("comment_added user=%s video=%s comment=%s", actor_id, video_id, comment.id)
    return payload


async def update_comment_service(
    *,
    comment_id: str,
    actor_id: str,
    content: Optional[str],
    db: AsyncSession,
) -> Dict[str, Any]:
    content = _content(content)
    comment = await update_owned(db, Comment, comment_id, actor_id, {"content": content}, message=NOT_OWNED_MESSAGE)
    return serialize_comment(comment)


async def delete_comment_service(*, comment_id: str, actor_id: str, db: AsyncSession) -> None:
    await delete_owned(
        db,
        Comment,
        comment_id,
        actor_id,
        message=NOT_OWNED_MESSAGE,
        cascade=[delete(Like).where(Like.comment_id == comment_id).execution_options(synchronize_session=False)],
    )
    logger.info("comment_deleted user=%s comment=%s", actor_id, comment_id)
