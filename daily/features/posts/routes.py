from fastapi import APIRouter, Depends

from daily.core import clock
from daily.core.types import PostId
from daily.features.friends.friend_store import FriendStore
from daily.features.posts import post_utils
from daily.features.posts.entities import InternalPost, Post, PostComment
from daily.features.posts.post_store import PostStore
from daily.features.posts.types import CreateCommentRequest, CreatePostRequest, LikePostResponse, SharePostResponse
from daily.features.stores import get_friend_store, get_post_store, get_user_store
from daily.features.users.dependencies import get_caller_user
from daily.features.users.entities import InternalUser
from daily.features.users.user_store import UserStore

router = APIRouter(tags=["posts"])


@router.post("", response_model=Post)
async def create_post(
    req: CreatePostRequest,
    post_store: PostStore = Depends(get_post_store),
    user: InternalUser = Depends(get_caller_user),
):
    """Create today's post. Each user gets one per calendar day."""
    post: InternalPost = await post_store.create_post(
        user.id,
        front_image=req.front_image,
        back_image=req.back_image,
        caption=req.caption,
        visibility=req.visibility,
        location=req.location,
    )
    return post_utils.to_post(post, user, user.id, clock.utc_now())


@router.get("/{post_id}", response_model=Post)
async def get_post(
    post_id: PostId,
    post_store: PostStore = Depends(get_post_store),
    friend_store: FriendStore = Depends(get_friend_store),
    user_store: UserStore = Depends(get_user_store),
    user: InternalUser = Depends(get_caller_user),
):
    """Get the given post."""
    post = await post_utils.get_post_and_validate_or_raise(post_store, friend_store, user.id, post_id)
    author = user if post.author_id == user.id else await user_store.get_user(post.author_id)
    return post_utils.to_post(post, author, user.id, clock.utc_now())


@router.post("/{post_id}/likes", response_model=LikePostResponse)
async def like_post(
    post_id: PostId,
    post_store: PostStore = Depends(get_post_store),
    friend_store: FriendStore = Depends(get_friend_store),
    user: InternalUser = Depends(get_caller_user),
):
    """Like the given post. Liking a post twice has no effect."""
    await post_utils.get_post_and_validate_or_raise(post_store, friend_store, user.id, post_id)
    await post_store.like_post(post_id, user.id)
    post = await post_store.get_post(post_id)
    return LikePostResponse(likes=len(post.likes), liked=user.id in post.likes)


@router.delete("/{post_id}/likes", response_model=LikePostResponse)
async def unlike_post(
    post_id: PostId,
    post_store: PostStore = Depends(get_post_store),
    friend_store: FriendStore = Depends(get_friend_store),
    user: InternalUser = Depends(get_caller_user),
):
    await post_utils.get_post_and_validate_or_raise(post_store, friend_store, user.id, post_id)
    await post_store.unlike_post(post_id, user.id)
    post = await post_store.get_post(post_id)
    return LikePostResponse(likes=len(post.likes), liked=user.id in post.likes)


@router.post("/{post_id}/shares", response_model=SharePostResponse)
async def share_post(
    post_id: PostId,
    post_store: PostStore = Depends(get_post_store),
    friend_store: FriendStore = Depends(get_friend_store),
    user: InternalUser = Depends(get_caller_user),
):
    await post_utils.get_post_and_validate_or_raise(post_store, friend_store, user.id, post_id)
    await post_store.share_post(post_id, user.id)
    post = await post_store.get_post(post_id)
    return SharePostResponse(shares=len(post.shares), shared=user.id in post.shares)


@router.delete("/{post_id}/shares", response_model=SharePostResponse)
async def unshare_post(
    post_id: PostId,
    post_store: PostStore = Depends(get_post_store),
    friend_store: FriendStore = Depends(get_friend_store),
    user: InternalUser = Depends(get_caller_user),
):
    await post_utils.get_post_and_validate_or_raise(post_store, friend_store, user.id, post_id)
    await post_store.unshare_post(post_id, user.id)
    post = await post_store.get_post(post_id)
    return SharePostResponse(shares=len(post.shares), shared=user.id in post.shares)


@router.post("/{post_id}/comments", response_model=PostComment)
async def add_comment(
    post_id: PostId,
    req: CreateCommentRequest,
    post_store: PostStore = Depends(get_post_store),
    friend_store: FriendStore = Depends(get_friend_store),
    user: InternalUser = Depends(get_caller_user),
):
    """Comment on the given post."""
    await post_utils.get_post_and_validate_or_raise(post_store, friend_store, user.id, post_id)
    return await post_store.add_comment(post_id, user.id, req.text)
