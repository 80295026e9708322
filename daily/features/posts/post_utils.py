from datetime import datetime
from typing import Optional

from daily.core import clock
from daily.core.database.models import PostVisibility
from daily.core.errors import NotFound
from daily.core.types import PostId, UserId
from daily.features.friends.friend_store import FriendStore
from daily.features.posts.entities import InternalPost, Post
from daily.features.posts.post_store import PostStore
from daily.features.users.entities import InternalUser
from daily.features.users.user_store import UserStore
from daily.utils import get_logger

log = get_logger(__name__)


def to_post(post: InternalPost, author: InternalUser, viewer_id: UserId, now: datetime) -> Post:
    return Post(
        id=post.id,
        author=author.to_public(),
        front_image=post.front_image,
        back_image=post.back_image,
        caption=post.caption,
        visibility=post.visibility,
        location=post.location,
        likes=sorted(post.likes),
        like_count=len(post.likes),
        liked=viewer_id in post.likes,
        shares=sorted(post.shares),
        share_count=len(post.shares),
        shared=viewer_id in post.shares,
        comments=post.comments,
        created_at=post.created_at,
        expires_at=post.expires_at,
        is_expired=post.is_expired(now),
    )


async def to_posts(
    viewer_id: UserId,
    internal_posts: list[InternalPost],
    user_store: UserStore,
    now: Optional[datetime] = None,
) -> list[Post]:
    """Attach each post's author and the viewer's like/share status, keeping the given order."""
    now = now or clock.utc_now()
    author_ids = list({post.author_id for post in internal_posts})
    authors: dict[UserId, InternalUser] = await user_store.get_users(author_ids)
    posts = []
    for post in internal_posts:
        author = authors.get(post.author_id)
        if author is None:
            log.error("Expected author %s of post %s to exist", post.author_id, post.id)
            continue
        posts.append(to_post(post, author, viewer_id, now))
    return posts


async def get_post_and_validate_or_raise(
    post_store: PostStore,
    friend_store: FriendStore,
    caller_user_id: UserId,
    post_id: PostId,
    now: Optional[datetime] = None,
) -> InternalPost:
    """
    Check that the post exists and the given user is allowed to view it.

    The author can always see their post. Friends can only see it during the calendar day it was made in, and never
    when it's private. If the caller isn't allowed, a 404 is raised because they shouldn't even know that the post
    exists.
    """
    post = await post_store.get_post(post_id)
    if post.author_id == caller_user_id:
        return post
    now = now or clock.utc_now()
    if post.visibility == PostVisibility.private or post.post_day != clock.calendar_day(now, post_store.tz):
        raise NotFound("Post not found", {"post_id": str(post_id)})
    if not await friend_store.are_friends(caller_user_id, post.author_id):
        raise NotFound("Post not found", {"post_id": str(post_id)})
    return post


async def can_view_posts_of(friend_store: FriendStore, viewer_id: UserId, author_id: UserId) -> bool:
    return viewer_id == author_id or await friend_store.are_friends(viewer_id, author_id)
