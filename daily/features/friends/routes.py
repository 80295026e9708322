from fastapi import APIRouter, Depends, HTTPException

from daily.core.errors import NotFound
from daily.core.types import FriendId, SimpleResponse, UserId
from daily.features.friends.entities import Friend, FriendItem, InternalFriend
from daily.features.friends.friend_store import FriendStore
from daily.features.friends.types import (
    FriendListResponse,
    FriendRequestResponse,
    FriendRequestsResponse,
    SendFriendRequest,
)
from daily.features.stores import get_friend_store, get_user_store
from daily.features.users.dependencies import get_caller_user
from daily.features.users.entities import InternalUser
from daily.features.users.user_store import UserStore
from daily.utils import get_logger

router = APIRouter(tags=["friends"])
log = get_logger(__name__)


async def _to_items(caller_id: UserId, edges: list[InternalFriend], user_store: UserStore) -> list[FriendItem]:
    """Resolve each edge to the profile of the user on the other end."""
    other_ids = [FriendStore.resolve_other_party(edge, caller_id) for edge in edges]
    users = await user_store.get_users(other_ids)
    items = []
    for edge, other_id in zip(edges, other_ids):
        user = users.get(other_id)
        if user is None:
            log.error("Expected user %s on friend edge %s to exist", other_id, edge.id)
            continue
        items.append(FriendItem(id=edge.id, user=user.to_public(), status=edge.status, created_at=edge.created_at))
    return items


async def _get_edge_for_party(friend_store: FriendStore, edge_id: FriendId, caller_id: UserId) -> InternalFriend:
    """Users who aren't on the edge get a 404, they shouldn't know it exists."""
    edge = await friend_store.get_request(edge_id)
    if not edge.involves(caller_id):
        raise NotFound("Friend request not found", {"request_id": str(edge_id)})
    return edge


@router.get("", response_model=FriendListResponse)
async def get_friends(
    friend_store: FriendStore = Depends(get_friend_store),
    user_store: UserStore = Depends(get_user_store),
    user: InternalUser = Depends(get_caller_user),
):
    """Get the current user's friends, most recent first."""
    edges = await friend_store.list_accepted(user.id)
    return FriendListResponse(friends=await _to_items(user.id, edges, user_store))


@router.get("/requests", response_model=FriendRequestsResponse)
async def get_incoming_requests(
    friend_store: FriendStore = Depends(get_friend_store),
    user_store: UserStore = Depends(get_user_store),
    user: InternalUser = Depends(get_caller_user),
):
    """Get the pending friend requests sent to the current user."""
    edges = await friend_store.list_pending_incoming(user.id)
    return FriendRequestsResponse(requests=await _to_items(user.id, edges, user_store))


@router.get("/requests/sent", response_model=FriendRequestsResponse)
async def get_outgoing_requests(
    friend_store: FriendStore = Depends(get_friend_store),
    user_store: UserStore = Depends(get_user_store),
    user: InternalUser = Depends(get_caller_user),
):
    edges = await friend_store.list_pending_outgoing(user.id)
    return FriendRequestsResponse(requests=await _to_items(user.id, edges, user_store))


@router.post("/requests", response_model=FriendRequestResponse)
async def send_friend_request(
    req: SendFriendRequest,
    friend_store: FriendStore = Depends(get_friend_store),
    user_store: UserStore = Depends(get_user_store),
    user: InternalUser = Depends(get_caller_user),
):
    """Send a friend request to the user with the given username."""
    recipient = await user_store.find_by_username(req.username)
    edge = await friend_store.send_request(user.id, recipient.id)
    return FriendRequestResponse(request=Friend.model_validate(edge))


@router.post("/requests/{request_id}/accept", response_model=FriendRequestResponse)
async def accept_friend_request(
    request_id: FriendId,
    friend_store: FriendStore = Depends(get_friend_store),
    user: InternalUser = Depends(get_caller_user),
):
    """Accept a pending friend request. Only the recipient can accept."""
    edge = await _get_edge_for_party(friend_store, request_id, user.id)
    if edge.recipient_id != user.id:
        raise HTTPException(403, detail="Only the recipient can accept a friend request")
    accepted = await friend_store.accept_request(request_id)
    return FriendRequestResponse(request=Friend.model_validate(accepted))


@router.post("/requests/{request_id}/reject", response_model=SimpleResponse)
async def reject_friend_request(
    request_id: FriendId,
    friend_store: FriendStore = Depends(get_friend_store),
    user: InternalUser = Depends(get_caller_user),
):
    """Reject an incoming request or cancel an outgoing one."""
    await _get_edge_for_party(friend_store, request_id, user.id)
    await friend_store.reject_request(request_id)
    return SimpleResponse(success=True)


@router.delete("/{friend_id}", response_model=SimpleResponse)
async def remove_friend(
    friend_id: FriendId,
    friend_store: FriendStore = Depends(get_friend_store),
    user: InternalUser = Depends(get_caller_user),
):
    """Unfriend. Either party can remove the friendship."""
    await _get_edge_for_party(friend_store, friend_id, user.id)
    await friend_store.remove_friend(friend_id)
    return SimpleResponse(success=True)
