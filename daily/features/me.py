from fastapi import APIRouter, Depends

from daily.features.posts import post_utils
from daily.features.posts.entities import CaptureStatus
from daily.features.posts.feed_store import FeedStore
from daily.features.posts.types import PostList
from daily.features.stores import get_feed_store, get_user_store
from daily.features.users.dependencies import get_caller_user
from daily.features.users.entities import InternalUser, PrivateUser, UserUpdate
from daily.features.users.user_store import UserStore

router = APIRouter()


@router.get("", response_model=PrivateUser)
async def get_me(user: InternalUser = Depends(get_caller_user)):
    """Get the current user based on the auth details."""
    return user.to_private()


@router.post("", response_model=PrivateUser)
async def update_me(
    request: UserUpdate,
    user_store: UserStore = Depends(get_user_store),
    user: InternalUser = Depends(get_caller_user),
):
    """Update the current user's profile. Omitted fields are left unchanged."""
    updated_user = await user_store.update_user(user.id, request)
    return updated_user.to_private()


@router.get("/feed", response_model=PostList)
async def get_feed(
    feed_store: FeedStore = Depends(get_feed_store),
    user_store: UserStore = Depends(get_user_store),
    user: InternalUser = Depends(get_caller_user),
):
    """Get today's posts from the current user and their friends."""
    internal_posts = await feed_store.get_friends_feed(user.id)
    return PostList(posts=await post_utils.to_posts(user.id, internal_posts, user_store))


@router.get("/memories", response_model=PostList)
async def get_memories(
    feed_store: FeedStore = Depends(get_feed_store),
    user_store: UserStore = Depends(get_user_store),
    user: InternalUser = Depends(get_caller_user),
):
    """Get every post the current user has made, including expired ones."""
    internal_posts = await feed_store.get_memories(user.id)
    return PostList(posts=await post_utils.to_posts(user.id, internal_posts, user_store))


@router.get("/capture", response_model=CaptureStatus)
async def get_capture_status(
    feed_store: FeedStore = Depends(get_feed_store),
    user: InternalUser = Depends(get_caller_user),
):
    """Whether the current user can post right now, and how long until they can post again."""
    return await feed_store.get_capture_status(user.id)
