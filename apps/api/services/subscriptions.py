"""Channel subscriptions."""

from __future__ import annotations

import logging
from typing import Any, Dict

from sqlalchemy.ext.asyncio import AsyncSession

from models.subscription import Subscription
from models.user import User
from services.aggregation import Aggregation, PageRequest
from services.errors import ApiError
from services.toggle import toggle_membership

logger = logging.getLogger(__name__)


def _account_fields() -> Dict[str, Any]:
    return {
        "id": User.id,
        "username": User.username,
        "fullName": User.full_name,
        "avatar": User.avatar,
        "email": User.email,
        "subscribedAt": Subscription.created_at,
    }


async def toggle_subscription_service(*, channel_id: str, actor_id: str, db: AsyncSession) -> Dict[str, Any]:
    if channel_id == actor_id:
        raise ApiError(400, "You cannot subscribe to your own channel")
    if await db.get(User, channel_id) is None:
        raise ApiError(404, "Channel not found")

    subscribed = await toggle_membership(
        db,
        Subscription,
        {"subscriber_id": actor_id, "channel_id": channel_id},
    )
    logger.info("subscription_toggled user=%s channel=%s subscribed=%s", actor_id, channel_id, subscribed)
    return {"subscribed": subscribed}


async def list_channel_subscribers_service(
    *,
    channel_id: str,
    page_request: PageRequest,
    db: AsyncSession,
) -> Dict[str, Any]:
    if await db.get(User, channel_id) is None:
        raise ApiError(404, "Channel not found")

    page = await (
        Aggregation(Subscription, _account_fields())
        .lookup(User, User.id == Subscription.subscriber_id, "subscriber", {})
        .match(Subscription.channel_id == channel_id)
        .paginate(db, page_request)
    )
    return page.to_payload("subscribers")


async def list_subscribed_channels_service(
    *,
    subscriber_id: str,
    page_request: PageRequest,
    db: AsyncSession,
) -> Dict[str, Any]:
    if await db.get(User, subscriber_id) is None:
        raise ApiError(404, "Subscriber not found")

    page = await (
        Aggregation(Subscription, _account_fields())
        .lookup(User, User.id == Subscription.channel_id, "channel", {})
        .match(Subscription.subscriber_id == subscriber_id)
        .paginate(db, page_request)
    )
    return page.to_payload("channels")
