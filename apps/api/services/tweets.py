"""Short text posts."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from models.like import Like
from models.tweet import Tweet
from models.user import User
from services.accounts import owner_fields, owner_summary
from services.aggregation import Aggregation, PageRequest
from services.errors import ApiError
from services.ownership import delete_owned, update_owned

logger = logging.getLogger(__name__)

NOT_OWNED_MESSAGE = "Tweet not found or you are not the owner"
SORTABLE_FIELDS = {
    "createdAt": Tweet.created_at,
    "updatedAt": Tweet.updated_at,
}


def _content(value: Optional[str]) -> str:
    content = (value or "").strip()
    if not content:
        raise ApiError(400, "Tweet content is required")
    return content


def serialize_tweet(tweet: Tweet) -> Dict[str, Any]:
    return {
        "id": tweet.id,
        "content": tweet.content,
        "owner": tweet.owner_id,
        "createdAt": tweet.created_at,
        "updatedAt": tweet.updated_at,
    }


async def create_tweet_service(*, actor_id: str, content: Optional[str], db: AsyncSession) -> Dict[str, Any]:
    tweet = Tweet(owner_id=actor_id, content=_content(content))
    db.add(tweet)
    await db.commit()

    payload = serialize_tweet(tweet)
    payload["owner"] = owner_summary(await db.get(User, actor_id))
    logger.info("tweet_created user=%s tweet=%s", actor_id, tweet.id)
    return payload


async def list_user_tweets_service(
    *,
    user_id: str,
    page_request: PageRequest,
    sort_by: Optional[str],
    sort_type: Optional[str],
    db: AsyncSession,
) -> Dict[str, Any]:
    if await db.get(User, user_id) is None:
        raise ApiError(404, "User not found")

    likes_count = select(func.count(Like.id)).where(Like.tweet_id == Tweet.id).scalar_subquery()
    listing = (
        Aggregation(
            Tweet,
            {
                "id": Tweet.id,
                "content": Tweet.content,
                "likesCount": likes_count,
                "createdAt": Tweet.created_at,
                "updatedAt": Tweet.updated_at,
            },
        )
        .lookup(User, User.id == Tweet.owner_id, "owner", owner_fields())
        .match(Tweet.owner_id == user_id)
    )
    column = SORTABLE_FIELDS.get(sort_by or "", Tweet.created_at)
    listing.sort(column, "asc" if sort_type == "asc" else "desc")

    page = await listing.paginate(db, page_request)
    return page.to_payload("tweets")


async def update_tweet_service(
    *,
    tweet_id: str,
    actor_id: str,
    content: Optional[str],
    db: AsyncSession,
) -> Dict[str, Any]:
    content = _content(content)
    tweet = await update_owned(db, Tweet, tweet_id, actor_id, {"content": content}, message=NOT_OWNED_MESSAGE)
    return serialize_tweet(tweet)


async def delete_tweet_service(*, tweet_id: str, actor_id: str, db: AsyncSession) -> None:
    await delete_owned(
        db,
        Tweet,
        tweet_id,
        actor_id,
        message=NOT_OWNED_MESSAGE,
        cascade=[delete(Like).where(Like.tweet_id == tweet_id).execution_options(synchronize_session=False)],
    )
    logger.info("tweet_deleted user=%s tweet=%s", actor_id, tweet_id)
