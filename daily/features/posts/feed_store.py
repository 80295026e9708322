from datetime import datetime, tzinfo
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from daily.core import clock, config
from daily.core.database.models import PostVisibility
from daily.core.types import UserId
from daily.features.friends.friend_store import FriendStore
from daily.features.posts.entities import CaptureStatus, InternalPost
from daily.features.posts.post_store import PostStore


class FeedStore:
    """
    Read-only queries composed from the friend and post stores.

    The friends feed is a calendar-day window, not the 24h `expires_at`: a post made at 23:50 leaves the feed at
    local midnight even though it "expires" almost a day later. `has_posted_today` and the reset countdown use the
    same calendar day, so the capture gate, the feed and the countdown always agree.
    """

    def __init__(
        self,
        db: AsyncSession,
        tz: Optional[tzinfo] = None,
        friend_store: Optional[FriendStore] = None,
        post_store: Optional[PostStore] = None,
    ):
        self.tz = tz or config.TIMEZONE
        self.friend_store = friend_store or FriendStore(db)
        self.post_store = post_store or PostStore(db, tz=self.tz)

    async def get_friends_feed(self, user_id: UserId, now: Optional[datetime] = None) -> list[InternalPost]:
        """Posts by the user and their accepted friends created during the current calendar day, newest first."""
        now = now or clock.utc_now()
        friend_ids = await self.friend_store.list_friend_ids(user_id)
        visible_authors = [user_id, *(friend_id for friend_id in friend_ids if friend_id != user_id)]
        day_start, day_end = clock.day_bounds(now, self.tz)
        posts = await self.post_store.get_posts_by_authors_between(visible_authors, day_start, day_end)
        return [post for post in posts if self.is_visible_to(post, user_id)]

    async def get_memories(self, user_id: UserId) -> list[InternalPost]:
        """Every post the user has made, newest first. Ignores expires_at entirely."""
        return await self.post_store.get_posts_by_author(user_id)

    async def has_posted_today(self, user_id: UserId, now: Optional[datetime] = None) -> bool:
        now = now or clock.utc_now()
        return await self.post_store.has_post_on_day(user_id, clock.calendar_day(now, self.tz))

    def seconds_until_reset(self, now: Optional[datetime] = None) -> int:
        return clock.seconds_until_reset(now or clock.utc_now(), self.tz)

    async def get_capture_status(self, user_id: UserId, now: Optional[datetime] = None) -> CaptureStatus:
        now = now or clock.utc_now()
        return CaptureStatus(
            has_posted_today=await self.has_posted_today(user_id, now),
            seconds_until_reset=self.seconds_until_reset(now),
            next_reset_at=clock.next_midnight(now, self.tz),
        )

    @staticmethod
    def is_visible_to(post: InternalPost, viewer_id: UserId) -> bool:
        """Authors always see their own posts; friends see everything except private posts."""
        return post.author_id == viewer_id or post.visibility != PostVisibility.private

    def is_shared_with(self, post: InternalPost, viewer_id: UserId, now: Optional[datetime] = None) -> bool:
        """Friends only see a post during the calendar day it was made in. The author keeps it forever."""
        if post.author_id == viewer_id:
            return True
        now = now or clock.utc_now()
        return self.is_visible_to(post, viewer_id) and post.post_day == clock.calendar_day(now, self.tz)
