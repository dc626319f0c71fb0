"""Like model with a single polymorphic target (video, comment or tweet)."""

from dataclasses import dataclass
import uuid

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, String, UniqueConstraint

from database import Base, utcnow


LIKE_TARGET_KINDS = ("video", "comment", "tweet")


@dataclass(frozen=True)
class LikeTarget:
    """Tagged reference to the thing being liked."""

    kind: str
    id: str

    def __post_init__(self):
        if self.kind not in LIKE_TARGET_KINDS:
            raise ValueError(f"Unsupported like target: {self.kind}")

    @property
    def column_name(self) -> str:
        return f"{self.kind}_id"


class Like(Base):
    """An account's like on exactly one target."""

    __tablename__ = "likes"
    __table_args__ = (
        UniqueConstraint("liked_by", "video_id", name="uq_likes_actor_video"),
        UniqueConstraint("liked_by", "comment_id", name="uq_likes_actor_comment"),
        UniqueConstraint("liked_by", "tweet_id", name="uq_likes_actor_tweet"),
        CheckConstraint(
            "(CASE WHEN video_id IS NULL THEN 0 ELSE 1 END)"
            " + (CASE WHEN comment_id IS NULL THEN 0 ELSE 1 END)"
            " + (CASE WHEN tweet_id IS NULL THEN 0 ELSE 1 END) = 1",
            name="ck_likes_single_target",
        ),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    liked_by = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    video_id = Column(String, ForeignKey("videos.id"), nullable=True, index=True)
    comment_id = Column(String, ForeignKey("comments.id"), nullable=True, index=True)
    tweet_id = Column(String, ForeignKey("tweets.id"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)

    @classmethod
    def key_for(cls, target: LikeTarget, actor_id: str) -> dict:
        """Uniqueness key identifying the (actor, target) like row."""
        return {"liked_by": actor_id, target.column_name: target.id}
