"""Playlist and ordered playlist membership models."""

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint

from database import Base, utcnow


class Playlist(Base):
    """User-owned, ordered collection of videos."""

    __tablename__ = "playlists"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    owner_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class PlaylistVideo(Base):
    """Membership of a video in a playlist; a video appears at most once."""

    __tablename__ = "playlist_videos"
    __table_args__ = (UniqueConstraint("playlist_id", "video_id", name="uq_playlist_videos_playlist_video"),)

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    playlist_id = Column(String, ForeignKey("playlists.id"), nullable=False, index=True)
    video_id = Column(String, ForeignKey("videos.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=utcnow)
