"""User model for registered accounts (also acting as channels)."""

from sqlalchemy import Column, String, DateTime, Text
import uuid

from database import Base, utcnow


class User(Base):
    """Registered account. Username and email are stored lower-cased."""

    __tablename__ = "users"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    username = Column(String, unique=True, nullable=False, index=True)
    email = Column(String, unique=True, nullable=False, index=True)
    full_name = Column(String, nullable=False)
    password_hash = Column(String, nullable=False)
    avatar = Column(String, nullable=False)
    avatar_public_id = Column(String, nullable=True)
    cover_image = Column(String, nullable=True)
    cover_image_public_id = Column(String, nullable=True)
    refresh_token = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
