"""
Playlist router.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from routers.auth_scope import Actor, get_current_actor
from routers.boundary import BoundaryRoute
from routers.deps import get_page_request, parse_id
from routers.responses import respond
from services.aggregation import PageRequest
from services.playlists import (
    add_video_to_playlist_service,
    create_playlist_service,
    delete_playlist_service,
    get_playlist_service,
    list_user_playlists_service,
    remove_video_from_playlist_service,
    update_playlist_service,
)

router = APIRouter(route_class=BoundaryRoute)


class PlaylistRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None


@router.post("")
async def create_playlist(
    request: PlaylistRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    playlist = await create_playlist_service(
        actor_id=actor.user_id,
        name=request.name,
        description=request.description,
        db=db,
    )
    return respond(201, playlist, "Playlist created successfully")


@router.get("/user/{userId}")
async def get_user_playlists(
    userId: str,
    page_request: PageRequest = Depends(get_page_request),
    db: AsyncSession = Depends(get_db),
):
    playlists = await list_user_playlists_service(
        user_id=parse_id(userId, "user"),
        page_request=page_request,
        db=db,
    )
    return respond(200, playlists, "User playlists fetched successfully")


@router.get("/{playlistId}")
async def get_playlist_by_id(
    playlistId: str,
    db: AsyncSession = Depends(get_db),
):
    playlist = await get_playlist_service(playlist_id=parse_id(playlistId, "playlist"), db=db)
    return respond(200, playlist, "Playlist fetched successfully")


@router.patch("/add/{videoId}/{playlistId}")
async def add_video_to_playlist(
    videoId: str,
    playlistId: str,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    playlist = await add_video_to_playlist_service(
        playlist_id=parse_id(playlistId, "playlist"),
        video_id=parse_id(videoId, "video"),
        actor_id=actor.user_id,
        db=db,
    )
    return respond(200, playlist, "Video added to playlist successfully")


@router.patch("/remove/{videoId}/{playlistId}")
async def remove_video_from_playlist(
    videoId: str,
    playlistId: str,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    playlist = await remove_video_from_playlist_service(
        playlist_id=parse_id(playlistId, "playlist"),
        video_id=parse_id(videoId, "video"),
        actor_id=actor.user_id,
        db=db,
    )
    return respond(200, playlist, "Video removed from playlist successfully")


@router.patch("/{playlistId}")
async def update_playlist(
    playlistId: str,
    request: PlaylistRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    playlist = await update_playlist_service(
        playlist_id=parse_id(playlistId, "playlist"),
        actor_id=actor.user_id,
        name=request.name,
        description=request.description,
        db=db,
    )
    return respond(200, playlist, "Playlist updated successfully")


@router.delete("/{playlistId}")
async def delete_playlist(
    playlistId: str,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    await delete_playlist_service(playlist_id=parse_id(playlistId, "playlist"), actor_id=actor.user_id, db=db)
    return respond(200, {}, "Playlist deleted successfully")
