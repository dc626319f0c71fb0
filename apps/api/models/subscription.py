"""Subscription model joining a subscriber account to a channel account."""

import uuid

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, String, UniqueConstraint

from database import Base, utcnow


class Subscription(Base):
    """Subscriber follows channel. Self-subscription is rejected by the store."""

    __tablename__ = "subscriptions"
    __table_args__ = (
        UniqueConstraint("subscriber_id", "channel_id", name="uq_subscriptions_subscriber_channel"),
        CheckConstraint("subscriber_id <> channel_id", name="ck_subscriptions_not_self"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    subscriber_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    channel_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
