"""
Video router for listing, publishing and managing uploads.
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from config import Settings
from database import get_db
from routers.auth_scope import Actor, get_current_actor, get_optional_actor
from routers.boundary import BoundaryRoute
from routers.deps import client_viewer_key, get_media_store, get_page_request, get_settings_dependency, parse_id
from routers.responses import respond
from services.aggregation import PageRequest
from services.media_store import MediaStore
from services.videos import (
    delete_video_service,
    get_video_by_id_service,
    list_videos_service,
    publish_video_service,
    toggle_publish_status_service,
    update_video_service,
)

router = APIRouter(route_class=BoundaryRoute)


@router.get("")
async def get_all_videos(
    page_request: PageRequest = Depends(get_page_request),
    query: Optional[str] = Query(None),
    sortBy: Optional[str] = Query(None),
    sortType: Optional[str] = Query(None),
    userId: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    user_id = None
    if userId:
        user_id = parse_id(userId, "user")
    videos = await list_videos_service(
        page_request=page_request,
        query=query,
        sort_by=sortBy,
        sort_type=sortType,
        user_id=user_id,
        db=db,
    )
    return respond(200, videos, "Videos fetched successfully")


@router.post("")
async def publish_a_video(
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    videoFile: Optional[UploadFile] = File(None),
    thumbnail: Optional[UploadFile] = File(None),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    store: MediaStore = Depends(get_media_store),
    settings: Settings = Depends(get_settings_dependency),
):
    video = await publish_video_service(
        owner_id=actor.user_id,
        title=title,
        description=description,
        video_file=videoFile,
        thumbnail=thumbnail,
        db=db,
        store=store,
        settings=settings,
    )
    return respond(201, video, "Video published successfully")


@router.get("/{videoId}")
async def get_video_by_id(
    videoId: str,
    request: Request,
    actor: Optional[Actor] = Depends(get_optional_actor),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings_dependency),
):
    video_id = parse_id(videoId, "video")
    video = await get_video_by_id_service(
        video_id=video_id,
        actor_id=actor.user_id if actor else None,
        viewer_key=actor.user_id if actor else client_viewer_key(request),
        db=db,
        settings=settings,
    )
    return respond(200, video, "Video fetched successfully")


@router.patch("/{videoId}")
async def update_video(
    videoId: str,
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    thumbnail: Optional[UploadFile] = File(None),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    store: MediaStore = Depends(get_media_store),
    settings: Settings = Depends(get_settings_dependency),
):
    video = await update_video_service(
        video_id=parse_id(videoId, "video"),
        actor_id=actor.user_id,
        title=title,
        description=description,
        thumbnail=thumbnail,
        db=db,
        store=store,
        settings=settings,
    )
    return respond(200, video, "Video updated successfully")


@router.delete("/{videoId}")
async def delete_video(
    videoId: str,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    store: MediaStore = Depends(get_media_store),
):
    await delete_video_service(video_id=parse_id(videoId, "video"), actor_id=actor.user_id, db=db, store=store)
    return respond(200, {}, "Video deleted successfully")


@router.patch("/toggle/publish/{videoId}")
async def toggle_publish_status(
    videoId: str,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    status = await toggle_publish_status_service(video_id=parse_id(videoId, "video"), actor_id=actor.user_id, db=db)
    return respond(200, status, "Video publish status toggled successfully")
