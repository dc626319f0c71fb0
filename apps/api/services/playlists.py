"""User playlists and their ordered video membership."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from models.playlist import Playlist, PlaylistVideo
from models.user import User
from models.video import Video
from services.accounts import owner_fields
from services.aggregation import Aggregation, Collect, PageRequest
from services.errors import ApiError
from services.ownership import delete_owned, fetch_owned, update_owned

logger = logging.getLogger(__name__)

NOT_OWNED_MESSAGE = "Playlist not found or you are not the owner"


def _playlist_fields() -> Dict[str, Any]:
    return {
        "id": Playlist.id,
        "name": Playlist.name,
        "description": Playlist.description,
        "createdAt": Playlist.created_at,
        "updatedAt": Playlist.updated_at,
    }


def _member_videos(*, published_only: bool) -> Collect:
    return Collect(
        source=PlaylistVideo,
        parent_key=PlaylistVideo.playlist_id,
        field="videos",
        project={
            "id": Video.id,
            "videoFile": Video.video_file,
            "thumbnail": Video.thumbnail,
            "title": Video.title,
            "description": Video.description,
            "duration": Video.duration,
            "views": Video.views,
            "isPublished": Video.is_published,
        },
        joins=[(Video, Video.id == PlaylistVideo.video_id)],
        where=[Video.is_published.is_(True)] if published_only else [],
        order_by=[PlaylistVideo.position.asc(), PlaylistVideo.created_at.asc()],
    )


def serialize_playlist(playlist: Playlist) -> Dict[str, Any]:
    return {
        "id": playlist.id,
        "name": playlist.name,
        "description": playlist.description,
        "owner": playlist.owner_id,
        "createdAt": playlist.created_at,
        "updatedAt": playlist.updated_at,
    }


async def create_playlist_service(
    *,
    actor_id: str,
    name: Optional[str],
    description: Optional[str],
    db: AsyncSession,
) -> Dict[str, Any]:
    name = (name or "").strip()
    description = (description or "").strip()
    if not name or not description:
        raise ApiError(400, "Playlist name and description are required")

    playlist = Playlist(owner_id=actor_id, name=name, description=description)
    db.add(playlist)
    await db.commit()
    logger.info("playlist_created user=%s playlist=%s", actor_id, playlist.id)
    return {**serialize_playlist(playlist), "videos": [], "totalVideos": 0}


async def list_user_playlists_service(
    *,
    user_id: str,
    page_request: PageRequest,
    db: AsyncSession,
) -> Dict[str, Any]:
    if await db.get(User, user_id) is None:
        raise ApiError(404, "User not found")

    page = await (
        Aggregation(Playlist, _playlist_fields())
        .lookup(User, User.id == Playlist.owner_id, "owner", owner_fields())
        .collect(_member_videos(published_only=False))
        .match(Playlist.owner_id == user_id)
        .sort(Playlist.created_at, "desc")
        .paginate(db, page_request)
    )
    for doc in page.items:
        doc["totalVideos"] = len(doc["videos"])
    return page.to_payload("playlists")


async def get_playlist_service(*, playlist_id: str, db: AsyncSession) -> Dict[str, Any]:
    """Playlist with its owner and published videos in playlist order."""
    playlist = await (
        Aggregation(Playlist, _playlist_fields())
        .lookup(User, User.id == Playlist.owner_id, "owner", owner_fields())
        .collect(_member_videos(published_only=True))
        .match(Playlist.id == playlist_id)
        .first(db)
    )
    if playlist is None:
        raise ApiError(404, "Playlist not found")

    playlist["totalVideos"] = len(playlist["videos"])
    playlist["totalViews"] = sum(int(video["views"] or 0) for video in playlist["videos"])
    return playlist


async def update_playlist_service(
    *,
    playlist_id: str,
    actor_id: str,
    name: Optional[str],
    description: Optional[str],
    db: AsyncSession,
) -> Dict[str, Any]:
    values = {}
    if (name or "").strip():
        values["name"] = name.strip()
    if (description or "").strip():
        values["description"] = description.strip()
    if not values:
        raise ApiError(400, "Name or description is required for update")

    playlist = await update_owned(db, Playlist, playlist_id, actor_id, values, message=NOT_OWNED_MESSAGE)
    return serialize_playlist(playlist)


async def delete_playlist_service(*, playlist_id: str, actor_id: str, db: AsyncSession) -> None:
    await delete_owned(
        db,
        Playlist,
        playlist_id,
        actor_id,
        message=NOT_OWNED_MESSAGE,
        cascade=[
            delete(PlaylistVideo)
            .where(PlaylistVideo.playlist_id == playlist_id)
            .execution_options(synchronize_session=False)
        ],
    )
    logger.info("playlist_deleted user=%s playlist=%s", actor_id, playlist_id)


async def add_video_to_playlist_service(
    *,
    playlist_id: str,
    video_id: str,
    actor_id: str,
    db: AsyncSession,
) -> Dict[str, Any]:
    if await db.get(Video, video_id) is None:
        raise ApiError(404, "Video not found")
    await fetch_owned(db, Playlist, playlist_id, actor_id, message=NOT_OWNED_MESSAGE, for_update=True)

    present = await db.execute(
        select(PlaylistVideo.id).where(
            PlaylistVideo.playlist_id == playlist_id,
            PlaylistVideo.video_id == video_id,
        )
    )
    if present.scalar_one_or_none() is not None:
        await db.rollback()
        raise ApiError(409, "Video already exists in the playlist")

    last_position = await db.scalar(
        select(func.max(PlaylistVideo.position)).where(PlaylistVideo.playlist_id == playlist_id)
    )
    db.add(PlaylistVideo(playlist_id=playlist_id, video_id=video_id, position=(last_position or 0) + 1))
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise ApiError(409, "Video already exists in the playlist") from exc

    logger.info("playlist_video_added user=%s playlist=%s video=%s", actor_id, playlist_id, video_id)
    return await get_playlist_service(playlist_id=playlist_id, db=db)


async def remove_video_from_playlist_service(
    *,
    playlist_id: str,
    video_id: str,
    actor_id: str,
    db: AsyncSession,
) -> Dict[str, Any]:
    await fetch_owned(db, Playlist, playlist_id, actor_id, message=NOT_OWNED_MESSAGE, for_update=True)

    result = await db.execute(
        delete(PlaylistVideo)
        .where(PlaylistVideo.playlist_id == playlist_id, PlaylistVideo.video_id == video_id)
        .execution_options(synchronize_session=False)
    )
    if not result.rowcount:
        await db.rollback()
        raise ApiError(404, "Video not found in the playlist")
    await db.commit()

    logger.info("playlist_video_removed user=%s playlist=%s video=%s", actor_id, playlist_id, video_id)
    return await get_playlist_service(playlist_id=playlist_id, db=db)
