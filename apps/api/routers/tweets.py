"""
Tweet router.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from routers.auth_scope import Actor, get_current_actor
from routers.boundary import BoundaryRoute
from routers.deps import get_page_request, parse_id
from routers.responses import respond
from services.aggregation import PageRequest
from services.tweets import (
    create_tweet_service,
    delete_tweet_service,
    list_user_tweets_service,
    update_tweet_service,
)

router = APIRouter(route_class=BoundaryRoute)


class TweetRequest(BaseModel):
    content: Optional[str] = None


@router.post("")
async def create_tweet(
    request: TweetRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    tweet = await create_tweet_service(actor_id=actor.user_id, content=request.content, db=db)
    return respond(201, tweet, "Tweet created successfully")


@router.get("/user/{userId}")
async def get_user_tweets(
    userId: str,
    page_request: PageRequest = Depends(get_page_request),
    sortBy: Optional[str] = Query(None),
    sortType: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    tweets = await list_user_tweets_service(
        user_id=parse_id(userId, "user"),
        page_request=page_request,
        sort_by=sortBy,
        sort_type=sortType,
        db=db,
    )
    return respond(200, tweets, "User tweets fetched successfully")


@router.patch("/{tweetId}")
async def update_tweet(
    tweetId: str,
    request: TweetRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    tweet = await update_tweet_service(
        tweet_id=parse_id(tweetId, "tweet"),
        actor_id=actor.user_id,
        content=request.content,
        db=db,
    )
    return respond(200, tweet, "Tweet updated successfully")


@router.delete("/{tweetId}")
async def delete_tweet(
    tweetId: str,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    await delete_tweet_service(tweet_id=parse_id(tweetId, "tweet"), actor_id=actor.user_id, db=db)
    return respond(200, {}, "Tweet deleted successfully")
