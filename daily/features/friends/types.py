from daily.core.types import Base
from daily.features.friends.entities import Friend, FriendItem


class SendFriendRequest(Base):
    username: str


class FriendRequestResponse(Base):
    request: Friend


class FriendListResponse(Base):
    friends: list[FriendItem]


class FriendRequestsResponse(Base):
    requests: list[FriendItem]
