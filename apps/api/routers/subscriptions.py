"""
Subscription router.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from routers.auth_scope import Actor, get_current_actor
from routers.boundary import BoundaryRoute
from routers.deps import get_page_request, parse_id
from routers.responses import respond
from services.aggregation import PageRequest
from services.subscriptions import (
    list_channel_subscribers_service,
    list_subscribed_channels_service,
    toggle_subscription_service,
)

router = APIRouter(route_class=BoundaryRoute)


@router.post("/c/{channelId}")
async def toggle_subscription(
    channelId: str,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    state = await toggle_subscription_service(
        channel_id=parse_id(channelId, "channel"),
        actor_id=actor.user_id,
        db=db,
    )
    message = "Subscribed successfully" if state["subscribed"] else "Unsubscribed successfully"
    return respond(200, state, message)


@router.get("/c/{channelId}")
async def get_user_channel_subscribers(
    channelId: str,
    page_request: PageRequest = Depends(get_page_request),
    db: AsyncSession = Depends(get_db),
):
    subscribers = await list_channel_subscribers_service(
        channel_id=parse_id(channelId, "channel"),
        page_request=page_request,
        db=db,
    )
    return respond(200, subscribers, "Channel subscribers fetched successfully")


@router.get("/u/{subscriberId}")
async def get_subscribed_channels(
    subscriberId: str,
    page_request: PageRequest = Depends(get_page_request),
    db: AsyncSession = Depends(get_db),
):
    channels = await list_subscribed_channels_service(
        subscriber_id=parse_id(subscriberId, "subscriber"),
        page_request=page_request,
        db=db,
    )
    return respond(200, channels, "Subscribed channels fetched successfully")
