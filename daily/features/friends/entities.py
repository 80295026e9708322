from datetime import datetime

from pydantic import Field

from daily.core.database.models import FriendStatus
from daily.core.types import Base, FriendId, InternalBase, UserId
from daily.features.users.entities import PublicUser


class InternalFriend(InternalBase):
    id: FriendId
    requester_id: UserId
    recipient_id: UserId
    status: FriendStatus
    created_at: datetime

    def other_party(self, user_id: UserId) -> UserId:
        """Return the id on this edge that isn't `user_id`."""
        if user_id == self.requester_id:
            return self.recipient_id
        if user_id == self.recipient_id:
            return self.requester_id
        raise ValueError("User is not part of this friendship")

    def involves(self, user_id: UserId) -> bool:
        return user_id in (self.requester_id, self.recipient_id)


class Friend(Base):
    id: FriendId = Field(alias="friendId")
    requester_id: UserId
    recipient_id: UserId
    status: FriendStatus
    created_at: datetime


class FriendItem(Base):
    """A friendship edge resolved to the other party's profile."""

    id: FriendId = Field(alias="friendId")
    user: PublicUser
    status: FriendStatus
    created_at: datetime
