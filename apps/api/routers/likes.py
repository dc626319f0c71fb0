"""
Like router: toggles for videos, comments and tweets plus the liked-videos listing.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from models.like import LikeTarget
from routers.auth_scope import Actor, get_current_actor
from routers.boundary import BoundaryRoute
from routers.deps import get_page_request, parse_id
from routers.responses import respond
from services.aggregation import PageRequest
from services.likes import list_liked_videos_service, toggle_like_service

router = APIRouter(route_class=BoundaryRoute)


async def _toggle(kind: str, raw_id: str, actor: Actor, db: AsyncSession):
    target = LikeTarget(kind=kind, id=parse_id(raw_id, kind))
    state = await toggle_like_service(target=target, actor_id=actor.user_id, db=db)
    message = f"{kind.capitalize()} liked successfully" if state["isLiked"] else f"{kind.capitalize()} unliked successfully"
    return respond(200, state, message)


@router.post("/toggle/v/{videoId}")
async def toggle_video_like(
    videoId: str,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await _toggle("video", videoId, actor, db)


@router.post("/toggle/c/{commentId}")
async def toggle_comment_like(
    commentId: str,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await _toggle("comment", commentId, actor, db)


@router.post("/toggle/t/{tweetId}")
async def toggle_tweet_like(
    tweetId: str,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await _toggle("tweet", tweetId, actor, db)


@router.get("/videos")
async def get_liked_videos(
    page_request: PageRequest = Depends(get_page_request),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    liked = await list_liked_videos_service(actor_id=actor.user_id, page_request=page_request, db=db)
    return respond(200, liked, "Liked videos fetched successfully")
