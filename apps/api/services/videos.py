"""Video catalogue: listing, publishing, viewing and owner maintenance."""

from __future__ import annotations

from datetime import timedelta
import logging
from typing import Any, Dict, Optional

from fastapi import UploadFile
from sqlalchemy import delete, exists, false, func, not_, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from config import Settings
from database import utcnow
from models.comment import Comment
from models.like import Like
from models.playlist import PlaylistVideo
from models.subscription import Subscription
from models.user import User
from models.video import Video
from models.video_view import VideoView
from services.accounts import owner_fields
from services.aggregation import Aggregation, PageRequest
from services.errors import ApiError
from services.media_store import MediaStore, discard_media, store_upload
from services.ownership import delete_owned, fetch_owned, update_owned

logger = logging.getLogger(__name__)

NOT_OWNED_MESSAGE = "Video not found or you are not the owner"
SORTABLE_FIELDS = {
    "createdAt": Video.created_at,
    "views": Video.views,
    "duration": Video.duration,
    "title": Video.title,
}


def video_fields() -> Dict[str, Any]:
    return {
        "id": Video.id,
        "videoFile": Video.video_file,
        "thumbnail": Video.thumbnail,
        "title": Video.title,
        "description": Video.description,
        "duration": Video.duration,
        "views": Video.views,
        "isPublished": Video.is_published,
        "createdAt": Video.created_at,
        "updatedAt": Video.updated_at,
    }


def serialize_video(video: Video) -> Dict[str, Any]:
    return {
        "id": video.id,
        "owner": video.owner_id,
        "videoFile": video.video_file,
        "thumbnail": video.thumbnail,
        "title": video.title,
        "description": video.description,
        "duration": video.duration,
        "views": video.views,
        "isPublished": video.is_published,
        "createdAt": video.created_at,
        "updatedAt": video.updated_at,
    }


def published_video_listing(
    *,
    query: Optional[str] = None,
    sort_by: Optional[str] = None,
    sort_type: Optional[str] = None,
    owner_id: Optional[str] = None,
) -> Aggregation:
    """Published videos with their owner embedded, filtered and sorted the way listings accept."""
    listing = (
        Aggregation(Video, video_fields())
        .lookup(User, User.id == Video.owner_id, "owner", owner_fields())
        .match(Video.is_published.is_(True))
    )
    if owner_id:
        listing.match(Video.owner_id == owner_id)
    text = (query or "").strip()
    if text:
        pattern = f"%{text}%"
        listing.match(or_(Video.title.ilike(pattern), Video.description.ilike(pattern)))

    if sort_by in SORTABLE_FIELDS:
        listing.sort(SORTABLE_FIELDS[sort_by], "desc" if sort_type == "desc" else "asc")
    else:
        listing.sort(Video.created_at, "desc")
    return listing


async def list_videos_service(
    *,
    page_request: PageRequest,
    query: Optional[str],
    sort_by: Optional[str],
    sort_type: Optional[str],
    user_id: Optional[str],
    db: AsyncSession,
) -> Dict[str, Any]:
    if user_id:
        channel = await db.get(User, user_id)
        if channel is None:
            raise ApiError(404, "User (channel) not found")

    listing = published_video_listing(query=query, sort_by=sort_by, sort_type=sort_type, owner_id=user_id)
    page = await listing.paginate(db, page_request)
    return page.to_payload("videos")


async def publish_video_service(
    *,
    owner_id: str,
    title: Optional[str],
    description: Optional[str],
    video_file: Optional[UploadFile],
    thumbnail: Optional[UploadFile],
    db: AsyncSession,
    store: MediaStore,
    settings: Settings,
) -> Dict[str, Any]:
    title = (title or "").strip()
    description = (description or "").strip()
    if not title or not description:
        raise ApiError(400, "Title and description are required")
    if video_file is None or not video_file.filename:
        raise ApiError(400, "Video file is required")
    if thumbnail is None or not thumbnail.filename:
        raise ApiError(400, "Thumbnail is required")

    uploaded_video = await store_upload(store, video_file, kind="video", label="video file", settings=settings)
    try:
        uploaded_thumbnail = await store_upload(store, thumbnail, kind="image", label="thumbnail", settings=settings)
    except Exception:
        await discard_media(store, uploaded_video.public_id, "video")
        raise

    video = Video(
        owner_id=owner_id,
        video_file=uploaded_video.url,
        video_public_id=uploaded_video.public_id,
        thumbnail=uploaded_thumbnail.url,
        thumbnail_public_id=uploaded_thumbnail.public_id,
        title=title,
        description=description,
        duration=uploaded_video.duration or 0,
        is_published=True,
    )
    try:
        db.add(video)
        await db.commit()
    except Exception:
        await db.rollback()
        logger.exception("video_publish_failed user=%s", owner_id)
        await discard_media(store, uploaded_video.public_id, "video")
        await discard_media(store, uploaded_thumbnail.public_id, "image")
        raise

    logger.info("video_published user=%s video=%s", owner_id, video.id)
    return serialize_video(video)


async def _count_view(
    db: AsyncSession,
    video_id: str,
    viewer_key: str,
    dedup_window_minutes: int,
) -> None:
    if dedup_window_minutes > 0:
        cutoff = utcnow() - timedelta(minutes=dedup_window_minutes)
        recent = await db.execute(
            select(VideoView.id)
            .where(
                VideoView.video_id == video_id,
                VideoView.viewer_key == viewer_key,
                VideoView.viewed_at >= cutoff,
            )
            .limit(1)
        )
        if recent.scalar_one_or_none() is not None:
            return
        db.add(VideoView(video_id=video_id, viewer_key=viewer_key))

    await db.execute(
        update(Video)
        .where(Video.id == video_id)
        .values(views=Video.views + 1)
        .execution_options(synchronize_session=False)
    )
    await db.commit()


async def get_video_by_id_service(
    *,
    video_id: str,
    actor_id: Optional[str],
    viewer_key: str,
    db: AsyncSession,
    settings: Settings,
) -> Dict[str, Any]:
    """Single video with owner, like and subscription context.

    Unpublished videos are only visible to their owner; every other fetch
    counts as a view.
    """
    video = await db.get(Video, video_id)
    if video is None or (not video.is_published and video.owner_id != actor_id):
        raise ApiError(404, "Video not found")

    if video.owner_id != actor_id:
        await _count_view(db, video.id, viewer_key, int(settings.VIEW_DEDUP_WINDOW_MINUTES))

    likes_count = select(func.count(Like.id)).where(Like.video_id == Video.id).scalar_subquery()
    subscribers_count = (
        select(func.count(Subscription.id)).where(Subscription.channel_id == User.id).scalar_subquery()
    )
    if actor_id:
        is_liked = exists().where(Like.video_id == Video.id, Like.liked_by == actor_id)
        is_subscribed = exists().where(Subscription.channel_id == User.id, Subscription.subscriber_id == actor_id)
    else:
        is_liked = is_subscribed = false()

    detail = await (
        Aggregation(Video, {**video_fields(), "likesCount": likes_count, "isLiked": is_liked})
        .lookup(
            User,
            User.id == Video.owner_id,
            "owner",
            {**owner_fields(), "subscribersCount": subscribers_count, "isSubscribed": is_subscribed},
        )
        .match(Video.id == video.id)
        .first(db)
    )
    if detail is None:
        raise ApiError(404, "Video not found")

    detail["isLiked"] = bool(detail["isLiked"])
    detail["owner"]["isSubscribed"] = bool(detail["owner"]["isSubscribed"])
    detail["isSubscribed"] = detail["owner"]["isSubscribed"]
    return detail


async def update_video_service(
    *,
    video_id: str,
    actor_id: str,
    title: Optional[str],
    description: Optional[str],
    thumbnail: Optional[UploadFile],
    db: AsyncSession,
    store: MediaStore,
    settings: Settings,
) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    if (title or "").strip():
        values["title"] = title.strip()
    if (description or "").strip():
        values["description"] = description.strip()
    has_thumbnail = thumbnail is not None and bool(thumbnail.filename)
    if not values and not has_thumbnail:
        raise ApiError(400, "Provide title, description, or thumbnail to update")

    current = await fetch_owned(db, Video, video_id, actor_id, message=NOT_OWNED_MESSAGE)
    previous_thumbnail_id = current.thumbnail_public_id

    uploaded = None
    if has_thumbnail:
        uploaded = await store_upload(store, thumbnail, kind="image", label="thumbnail", settings=settings)
        values["thumbnail"] = uploaded.url
        values["thumbnail_public_id"] = uploaded.public_id

    try:
        video = await update_owned(db, Video, video_id, actor_id, values, message=NOT_OWNED_MESSAGE)
    except Exception:
        if uploaded is not None:
            await discard_media(store, uploaded.public_id, "image")
        raise

    if uploaded is not None:
        await discard_media(store, previous_thumbnail_id, "image")
    logger.info("video_updated user=%s video=%s", actor_id, video.id)
    return serialize_video(video)


def video_cascade(video_id: str) -> list:
    """Statements removing everything that references a video, children first."""
    comment_ids = select(Comment.id).where(Comment.video_id == video_id)
    statements = [
        delete(Like).where(Like.video_id == video_id),
        delete(Like).where(Like.comment_id.in_(comment_ids)),
        delete(Comment).where(Comment.video_id == video_id),
        delete(PlaylistVideo).where(PlaylistVideo.video_id == video_id),
        delete(VideoView).where(VideoView.video_id == video_id),
    ]
    return [stmt.execution_options(synchronize_session=False) for stmt in statements]


async def delete_video_service(
    *,
    video_id: str,
    actor_id: str,
    db: AsyncSession,
    store: MediaStore,
) -> None:
    video = await delete_owned(
        db,
        Video,
        video_id,
        actor_id,
        message=NOT_OWNED_MESSAGE,
        cascade=video_cascade(video_id),
    )
    await discard_media(store, video.video_public_id, "video")
    await discard_media(store, video.thumbnail_public_id, "image")
    logger.info("video_deleted user=%s video=%s", actor_id, video_id)


async def toggle_publish_status_service(*, video_id: str, actor_id: str, db: AsyncSession) -> Dict[str, Any]:
    video = await update_owned(
        db,
        Video,
        video_id,
        actor_id,
        {"is_published": not_(Video.is_published)},
        message=NOT_OWNED_MESSAGE,
    )
    logger.info("video_publish_toggled user=%s video=%s published=%s", actor_id, video.id, video.is_published)
    return {"isPublished": bool(video.is_published)}
