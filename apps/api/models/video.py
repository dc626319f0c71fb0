"""Video model for published media."""

from sqlalchemy import Boolean, Column, String, DateTime, Float, ForeignKey, Integer, Text
import uuid

from database import Base, utcnow


class Video(Base):
    """Uploaded video owned by a channel."""

    __tablename__ = "videos"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    owner_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    video_file = Column(String, nullable=False)
    video_public_id = Column(String, nullable=True)
    thumbnail = Column(String, nullable=False)
    thumbnail_public_id = Column(String, nullable=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    duration = Column(Float, nullable=False, default=0)
    views = Column(Integer, nullable=False, default=0)
    is_published = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
