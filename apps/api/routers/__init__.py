"""Routers package."""

from . import (
    health,
    users,
    videos,
    comments,
    tweets,
    likes,
    subscriptions,
    playlists,
    dashboard,
)
