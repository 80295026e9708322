from datetime import date, datetime
from typing import Optional

from pydantic import Field, field_validator

from daily.core.database.models import PostVisibility
from daily.core.types import Base, CommentId, InternalBase, PostId, UserId
from daily.features.users.entities import PublicUser


class Location(Base):
    latitude: float
    longitude: float
    city: Optional[str] = None
    country: Optional[str] = None

    @field_validator("latitude")
    @classmethod
    def validate_latitude(cls, latitude: float) -> float:
        if latitude < -90 or latitude > 90:
            raise ValueError("Latitude must be between -90 and 90")
        return latitude

    @field_validator("longitude")
    @classmethod
    def validate_longitude(cls, longitude: float) -> float:
        if longitude < -180 or longitude > 180:
            raise ValueError("Longitude must be between -180 and 180")
        return longitude


class PostComment(Base):
    id: CommentId = Field(alias="commentId")
    user_id: UserId
    username: str
    text: str
    created_at: datetime


class InternalPost(InternalBase):
    id: PostId
    author_id: UserId
    front_image: str
    back_image: str
    caption: str
    visibility: PostVisibility
    location: Optional[Location]
    likes: set[UserId] = Field(validation_alias="like_user_ids")
    shares: set[UserId] = Field(validation_alias="share_user_ids")
    comments: list[PostComment]
    created_at: datetime
    expires_at: datetime
    post_day: date

    def is_expired(self, now: datetime) -> bool:
        """Expiry is informational only, expired posts stay in the author's memories."""
        return now > self.expires_at


class Post(Base):
    id: PostId = Field(alias="postId")
    author: PublicUser
    front_image: str
    back_image: str
    caption: str
    visibility: PostVisibility
    location: Optional[Location] = None
    likes: list[UserId]
    like_count: int
    liked: bool
    shares: list[UserId]
    share_count: int
    shared: bool
    comments: list[PostComment]
    created_at: datetime
    expires_at: datetime
    is_expired: bool


class CaptureStatus(Base):
    """What the capture screen needs: whether today's post is used up and when the next one unlocks."""

    has_posted_today: bool
    seconds_until_reset: int
    next_reset_at: datetime
