"""VideoView model used to deduplicate view counting."""

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Index, String

from database import Base, utcnow


class VideoView(Base):
    """One counted view of a video by a viewer key (account id or anonymous client)."""

    __tablename__ = "video_views"
    __table_args__ = (Index("ix_video_views_video_viewer", "video_id", "viewer_key", "viewed_at"),)

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    video_id = Column(String, ForeignKey("videos.id"), nullable=False)
    viewer_key = Column(String, nullable=False)
    viewed_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
