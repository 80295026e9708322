from datetime import date, datetime
from typing import Optional

from pydantic import Field

from daily.core.types import Base, InternalBase, UserId
from daily.features.users.primitive_types import ValidatedBio, ValidatedEmail, ValidatedUsername


class UserStats(Base):
    total_posts: int
    streak: int
    friends_count: int


class PublicUser(Base):
    id: UserId = Field(alias="userId")
    username: str
    bio: str
    avatar: str
    created_at: datetime
    stats: UserStats


class PrivateUser(PublicUser):
    """The caller's own profile."""

    email: str


class UserUpdate(Base):
    """
    Optional-field profile update. Fields that are omitted (or null) are left untouched, unknown fields are rejected.
    """

    model_config = {"extra": "forbid"}

    username: Optional[ValidatedUsername] = None
    email: Optional[ValidatedEmail] = None
    bio: Optional[ValidatedBio] = None
    avatar: Optional[str] = None


class InternalUser(InternalBase):
    id: UserId
    username: str
    email: str
    bio: str
    avatar: str
    created_at: datetime
    updated_at: datetime
    total_posts: int
    streak: int
    friends_count: int
    last_post_day: Optional[date]

    @property
    def stats(self) -> UserStats:
        return UserStats(total_posts=self.total_posts, streak=self.streak, friends_count=self.friends_count)

    def to_public(self) -> PublicUser:
        return PublicUser(
            id=self.id,
            username=self.username,
            bio=self.bio,
            avatar=self.avatar,
            created_at=self.created_at,
            stats=self.stats,
        )

    def to_private(self) -> PrivateUser:
        return PrivateUser(**self.to_public().model_dump(), email=self.email)
