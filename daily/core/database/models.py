import enum
from typing import Any, Optional

from sqlalchemy import (
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    Text,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, declarative_base, mapped_column, relationship

from daily.core.clock import to_utc, utc_now
from daily.core.database.defaults import gen_ulid

Base: Any = declarative_base()


class UTCDateTime(TypeDecorator):
    """Timezone-aware datetime that is always written and read back in UTC (SQLite drops the offset otherwise)."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return to_utc(value) if value is not None else None

    def process_result_value(self, value, dialect):
        return to_utc(value) if value is not None else None


# region Users
class UserRow(Base):
    __tablename__ = "user"

    id = mapped_column(Uuid, primary_key=True, default=gen_ulid)
    username = mapped_column(Text, unique=True, nullable=False)
    email = mapped_column(Text, nullable=False)
    bio = mapped_column(Text, nullable=False, default="")
    avatar = mapped_column(Text, nullable=False, default="")  # Opaque blob reference
    password_hash = mapped_column(Text, nullable=True)
    created_at = mapped_column(UTCDateTime, nullable=False, default=utc_now)
    updated_at = mapped_column(UTCDateTime, nullable=False, default=utc_now, onupdate=utc_now)

    # Denormalized stats, kept in sync by the post and friend stores
    total_posts = mapped_column(Integer, nullable=False, default=0)
    streak = mapped_column(Integer, nullable=False, default=0)
    friends_count = mapped_column(Integer, nullable=False, default=0)
    # Local calendar day of the user's latest post, compare-and-set by the daily post gate
    last_post_day = mapped_column(Date, nullable=True)


class SessionRow(Base):
    __tablename__ = "session"

    token_hash = mapped_column(Text, primary_key=True)
    user_id = mapped_column(Uuid, ForeignKey("user.id", ondelete="CASCADE"), nullable=False)
    created_at = mapped_column(UTCDateTime, nullable=False, default=utc_now)

    __table_args__ = (Index("session_user_id_idx", user_id),)


# endregion Users

# region Friends
class FriendStatus(enum.Enum):
    pending = "pending"
    accepted = "accepted"
    # Reserved, never produced
    blocked = "blocked"


class FriendRow(Base):
    __tablename__ = "friend"

    id = mapped_column(Uuid, primary_key=True, default=gen_ulid)
    requester_id = mapped_column(Uuid, ForeignKey("user.id", ondelete="CASCADE"), nullable=False)
    recipient_id = mapped_column(Uuid, ForeignKey("user.id", ondelete="CASCADE"), nullable=False)
    # The unordered {requester, recipient} pair, so one constraint covers both directions
    pair_low_id = mapped_column(Uuid, nullable=False)
    pair_high_id = mapped_column(Uuid, nullable=False)
    status = mapped_column(Enum(FriendStatus), nullable=False, default=FriendStatus.pending)
    created_at = mapped_column(UTCDateTime, nullable=False, default=utc_now)

    pair_uc = "_friend_pair_uc"
    __table_args__ = (
        UniqueConstraint("pair_low_id", "pair_high_id", name=pair_uc),
        Index("friend_recipient_id_status_idx", recipient_id, status),
        Index("friend_requester_id_status_idx", requester_id, status),
    )


# endregion Friends

# region Posts
class PostVisibility(enum.Enum):
    public = "public"
    friends = "friends"
    private = "private"


class PostRow(Base):
    __tablename__ = "post"

    id = mapped_column(Uuid, primary_key=True, default=gen_ulid)
    author_id = mapped_column(Uuid, ForeignKey("user.id", ondelete="CASCADE"), nullable=False)
    front_image = mapped_column(Text, nullable=False)  # Opaque blob reference
    back_image = mapped_column(Text, nullable=False)  # Opaque blob reference
    caption = mapped_column(Text, nullable=False, default="")
    visibility = mapped_column(Enum(PostVisibility), nullable=False, default=PostVisibility.public)

    latitude = mapped_column(Float, nullable=True)
    longitude = mapped_column(Float, nullable=True)
    city = mapped_column(Text, nullable=True)
    country = mapped_column(Text, nullable=True)

    created_at = mapped_column(UTCDateTime, nullable=False, default=utc_now)
    expires_at = mapped_column(UTCDateTime, nullable=False)
    # Local calendar day of created_at
    post_day = mapped_column(Date, nullable=False)

    likes: Mapped[list["PostLikeRow"]] = relationship("PostLikeRow", order_by="PostLikeRow.created_at")
    shares: Mapped[list["PostShareRow"]] = relationship("PostShareRow", order_by="PostShareRow.created_at")
    comments: Mapped[list["CommentRow"]] = relationship(
        "CommentRow", order_by=lambda: [CommentRow.created_at, CommentRow.id]
    )

    # Only one post per author per calendar day
    author_day_uc = "_post_author_day_uc"
    __table_args__ = (
        UniqueConstraint("author_id", "post_day", name=author_day_uc),
        Index("post_author_id_created_at_idx", author_id, created_at),
        Index("post_created_at_idx", created_at),
    )

    @property
    def location(self) -> Optional[dict]:
        if self.latitude is None or self.longitude is None:
            return None
        return dict(latitude=self.latitude, longitude=self.longitude, city=self.city, country=self.country)

    @property
    def like_user_ids(self) -> list:
        return [like.user_id for like in self.likes]

    @property
    def share_user_ids(self) -> list:
        return [share.user_id for share in self.shares]


class PostLikeRow(Base):
    __tablename__ = "post_like"

    id = mapped_column(Uuid, primary_key=True, default=gen_ulid)
    user_id = mapped_column(Uuid, ForeignKey("user.id", ondelete="CASCADE"), nullable=False)
    post_id = mapped_column(Uuid, ForeignKey("post.id", ondelete="CASCADE"), nullable=False)
    created_at = mapped_column(UTCDateTime, nullable=False, default=utc_now)

    # Only want one row per (user, post) pair
    __table_args__ = (
        UniqueConstraint("user_id", "post_id", name="_post_like_user_post_uc"),
        Index("post_like_post_id_idx", post_id),
    )


class PostShareRow(Base):
    __tablename__ = "post_share"

    id = mapped_column(Uuid, primary_key=True, default=gen_ulid)
    user_id = mapped_column(Uuid, ForeignKey("user.id", ondelete="CASCADE"), nullable=False)
    post_id = mapped_column(Uuid, ForeignKey("post.id", ondelete="CASCADE"), nullable=False)
    created_at = mapped_column(UTCDateTime, nullable=False, default=utc_now)

    # Only want one row per (user, post) pair
    __table_args__ = (
        UniqueConstraint("user_id", "post_id", name="_post_share_user_post_uc"),
        Index("post_share_post_id_idx", post_id),
    )


class CommentRow(Base):
    __tablename__ = "post_comment"

    id = mapped_column(Uuid, primary_key=True, default=gen_ulid)
    post_id = mapped_column(Uuid, ForeignKey("post.id", ondelete="CASCADE"), nullable=False)
    user_id = mapped_column(Uuid, ForeignKey("user.id", ondelete="CASCADE"), nullable=False)
    # Snapshot of the commenter's username at the time of commenting
    username = mapped_column(Text, nullable=False)
    text = mapped_column(Text, nullable=False)
    created_at = mapped_column(UTCDateTime, nullable=False, default=utc_now)

    __table_args__ = (Index("comment_post_id_idx", post_id),)


# endregion Posts
