from fastapi import APIRouter, Depends

from daily.core import clock
from daily.core.errors import NotFound
from daily.features.friends.friend_store import FriendStore
from daily.features.posts import post_utils
from daily.features.posts.feed_store import FeedStore
from daily.features.posts.types import PostList
from daily.features.stores import get_feed_store, get_friend_store, get_user_store
from daily.features.users.dependencies import get_caller_user
from daily.features.users.entities import InternalUser, PublicUser
from daily.features.users.user_store import UserStore

router = APIRouter(tags=["users"])


async def get_requested_user(
    username: str,
    user_store: UserStore = Depends(get_user_store),
    _caller_user: InternalUser = Depends(get_caller_user),
) -> InternalUser:
    return await user_store.find_by_username(username)


@router.get("/{username}", response_model=PublicUser)
async def get_user(
    requested_user: InternalUser = Depends(get_requested_user),
):
    """Get the given user's profile."""
    return requested_user.to_public()


@router.get("/{username}/posts", response_model=PostList)
async def get_posts(
    requested_user: InternalUser = Depends(get_requested_user),
    friend_store: FriendStore = Depends(get_friend_store),
    feed_store: FeedStore = Depends(get_feed_store),
    user_store: UserStore = Depends(get_user_store),
    caller_user: InternalUser = Depends(get_caller_user),
):
    """
    Get the given user's posts.

    The user gets all of their memories back. Friends only get the posts made during the current calendar day, minus
    private ones.
    """
    if not await post_utils.can_view_posts_of(friend_store, caller_user.id, requested_user.id):
        raise NotFound("User not found", {"username": requested_user.username})
    now = clock.utc_now()
    internal_posts = await feed_store.get_memories(requested_user.id)
    internal_posts = [post for post in internal_posts if feed_store.is_shared_with(post, caller_user.id, now)]
    posts = await post_utils.to_posts(caller_user.id, internal_posts, user_store, now)
    return PostList(posts=posts)
