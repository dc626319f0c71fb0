"""
Comment router.
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
from services.comments import (
    add_comment_service,
    delete_comment_service,
    list_video_comments_service,
    update_comment_service,
)

router = APIRouter(route_class=BoundaryRoute)


class CommentRequest(BaseModel):
    content: Optional[str] = None


@router.get("/{videoId}")
async def get_video_comments(
    videoId: str,
    page_request: PageRequest = Depends(get_page_request),
    db: AsyncSession = Depends(get_db),
):
    comments = await list_video_comments_service(
        video_id=parse_id(videoId, "video"),
        page_request=page_request,
        db=db,
    )
    return respond(200, comments, "Comments fetched successfully")


@router.post("/{videoId}")
async def add_comment(
    videoId: str,
    request: CommentRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    comment = await add_comment_service(
        video_id=parse_id(videoId, "video"),
        actor_id=actor.user_id,
        content=request.content,
        db=db,
    )
    return respond(201, comment, "Comment added successfully")


@router.patch("/c/{commentId}")
async def update_comment(
    commentId: str,
    request: CommentRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    comment = await update_comment_service(
        comment_id=parse_id(commentId, "comment"),
        actor_id=actor.user_id,
        content=request.content,
        db=db,
    )
    return respond(200, comment, "Comment updated successfully")


@router.delete("/c/{commentId}")
async def delete_comment(
    commentId: str,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    await delete_comment_service(comment_id=parse_id(commentId, "comment"), actor_id=actor.user_id, db=db)
    return respond(200, {}, "Comment deleted successfully")
