from datetime import date, datetime, timedelta, tzinfo
from typing import Optional, Union

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from daily.core import clock, config
from daily.core.database.defaults import gen_ulid
from daily.core.database.helpers import eager_load_post_options, is_unique_constraint_error, storage_errors
from daily.core.database.models import CommentRow, PostLikeRow, PostRow, PostShareRow, PostVisibility, UserRow
from daily.core.errors import DailyLimitExceeded, NotFound, ValidationError
from daily.core.locks import author_locks, post_locks
from daily.core.types import PostId, UserId
from daily.features.posts.entities import InternalPost, Location, PostComment
from daily.utils import get_logger

log = get_logger(__name__)

ReactionRow = Union[type[PostLikeRow], type[PostShareRow]]


class PostStore:
    def __init__(self, db: AsyncSession, tz: Optional[tzinfo] = None):
        self.db = db
        self.tz = tz or config.TIMEZONE

    # Queries

    async def post_exists(self, post_id: PostId) -> bool:
        query = sa.select(PostRow.id).where(PostRow.id == post_id)
        async with storage_errors(self.db, "look up post"):
            result = await self.db.execute(query.exists().select())
        exists: bool = result.scalar()  # type: ignore
        return exists

    async def get_post(self, post_id: PostId) -> InternalPost:
        """Return the post with the given id, raising NotFound if there is no such post."""
        query = sa.select(PostRow).where(PostRow.id == post_id)
        posts = await self._get_posts(query)
        if not posts:
            raise NotFound("Post not found", {"post_id": str(post_id)})
        return posts[0]

    async def get_posts_by_author(self, author_id: UserId) -> list[InternalPost]:
        """All posts by the author, any age, newest first."""
        query = sa.select(PostRow).where(PostRow.author_id == author_id)
        return await self._get_posts(query)

    async def get_all_posts(self) -> list[InternalPost]:
        return await self._get_posts(sa.select(PostRow))

    async def get_posts_by_authors_between(
        self, author_ids: list[UserId], start: datetime, end: datetime
    ) -> list[InternalPost]:
        """Posts by any of the given authors created in [start, end), newest first."""
        if not author_ids:
            return []
        query = sa.select(PostRow).where(
            PostRow.author_id.in_(author_ids),
            PostRow.created_at >= start,
            PostRow.created_at < end,
        )
        return await self._get_posts(query)

    async def has_post_on_day(self, author_id: UserId, day: date) -> bool:
        query = sa.select(PostRow.id).where(PostRow.author_id == author_id, PostRow.post_day == day)
        async with storage_errors(self.db, "look up posts"):
            result = await self.db.execute(query.exists().select())
        exists: bool = result.scalar()  # type: ignore
        return exists

    # Operations

    async def create_post(
        self,
        author_id: UserId,
        front_image: str,
        back_image: str,
        caption: str = "",
        visibility: PostVisibility = PostVisibility.public,
        location: Optional[Location] = None,
        now: Optional[datetime] = None,
    ) -> InternalPost:
        """
        Create the author's post for the current calendar day, raising DailyLimitExceeded if they already posted.

        The gate is a compare-and-set on the author's last_post_day that also bumps total_posts and the streak. It
        runs in the same transaction as the insert, so either both the post and the counters are written or neither
        is. The unique (author_id, post_day) constraint catches anything the compare-and-set lets through (a post
        dated before the author's latest one).
        """
        if not front_image or not back_image:
            raise ValidationError("image", "Both images are required")
        caption = caption.strip()
        if len(caption) > config.MAX_CAPTION_LENGTH:
            raise ValidationError("caption", f"Caption too long (max length {config.MAX_CAPTION_LENGTH} chars)")
        now = clock.to_utc(now or clock.utc_now())
        today = clock.calendar_day(now, self.tz)
        yesterday = today - timedelta(days=1)

        async with author_locks.hold(author_id):
            async with storage_errors(self.db, "create post"):
                gate = (
                    sa.update(UserRow)
                    .where(
                        UserRow.id == author_id,
                        sa.or_(UserRow.last_post_day.is_(None), UserRow.last_post_day != today),
                    )
                    .values(
                        total_posts=UserRow.total_posts + 1,
                        streak=sa.case(
                            (UserRow.last_post_day == yesterday, UserRow.streak + 1),
                            (UserRow.last_post_day > today, UserRow.streak),
                            else_=1,
                        ),
                        last_post_day=sa.case((UserRow.last_post_day > today, UserRow.last_post_day), else_=today),
                    )
                    .execution_options(synchronize_session=False)
                )
                result = await self.db.execute(gate)
                if result.rowcount == 0:  # type: ignore
                    await self.db.rollback()
                    if not await self._user_exists(author_id):
                        raise NotFound("User not found", {"user_id": str(author_id)})
                    raise self._daily_limit_exceeded(author_id, now)

                post_id = gen_ulid()
                post = PostRow(
                    id=post_id,
                    author_id=author_id,
                    front_image=front_image,
                    back_image=back_image,
                    caption=caption,
                    visibility=visibility,
                    latitude=location.latitude if location else None,
                    longitude=location.longitude if location else None,
                    city=location.city if location else None,
                    country=location.country if location else None,
                    created_at=now,
                    expires_at=clock.expires_at(now),
                    post_day=today,
                )
                self.db.add(post)
                try:
                    await self.db.commit()
                except IntegrityError as e:
                    await self.db.rollback()
                    if is_unique_constraint_error(e, PostRow.author_day_uc, PostRow.author_id, PostRow.post_day):
                        raise self._daily_limit_exceeded(author_id, now)
                    raise
                log.info("User %s posted %s for %s", author_id, post_id, today)
                return await self.get_post(post_id)

    async def like_post(self, post_id: PostId, user_id: UserId) -> None:
        """Like the given post. Liking twice is a no-op."""
        await self._add_reaction(PostLikeRow, post_id, user_id, "like post")

    async def unlike_post(self, post_id: PostId, user_id: UserId) -> None:
        """Unlike the given post. Unliking a post that isn't liked is a no-op."""
        await self._remove_reaction(PostLikeRow, post_id, user_id, "unlike post")

    async def share_post(self, post_id: PostId, user_id: UserId) -> None:
        await self._add_reaction(PostShareRow, post_id, user_id, "share post")

    async def unshare_post(self, post_id: PostId, user_id: UserId) -> None:
        await self._remove_reaction(PostShareRow, post_id, user_id, "unshare post")

    async def add_comment(self, post_id: PostId, user_id: UserId, text: str) -> PostComment:
        """Append a comment to the post, keeping a snapshot of the commenter's username."""
        text = text.strip()
        if len(text) == 0:
            raise ValidationError("text", "Comment cannot be empty")
        if len(text) > config.MAX_COMMENT_LENGTH:
            raise ValidationError("text", f"Comment too long (max length {config.MAX_COMMENT_LENGTH} chars)")
        async with storage_errors(self.db, "add comment"):
            if not await self.post_exists(post_id):
                raise NotFound("Post not found", {"post_id": str(post_id)})
            result = await self.db.execute(sa.select(UserRow.username).where(UserRow.id == user_id))
            username: Optional[str] = result.scalar()
            if username is None:
                raise NotFound("User not found", {"user_id": str(user_id)})
            comment = CommentRow(id=gen_ulid(), post_id=post_id, user_id=user_id, username=username, text=text)
            self.db.add(comment)
            await self.db.commit()
            await self.db.refresh(comment)
            return PostComment.model_validate(comment)

    # Helpers

    async def _get_posts(self, query: sa.sql.Select) -> list[InternalPost]:
        query = (
            query.options(*eager_load_post_options())
            .order_by(PostRow.created_at.desc(), PostRow.id.desc())
            .execution_options(populate_existing=True)
        )
        async with storage_errors(self.db, "load posts"):
            result = await self.db.execute(query)
            posts = result.scalars().all()
        return [InternalPost.model_validate(post) for post in posts]

    async def _user_exists(self, user_id: UserId) -> bool:
        async with storage_errors(self.db, "look up user"):
            result = await self.db.execute(sa.select(UserRow.id).where(UserRow.id == user_id).exists().select())
        exists: bool = result.scalar()  # type: ignore
        return exists

    async def _add_reaction(self, row_type: ReactionRow, post_id: PostId, user_id: UserId, operation: str) -> None:
        async with post_locks.hold(post_id):
            async with storage_errors(self.db, operation):
                if not await self.post_exists(post_id):
                    raise NotFound("Post not found", {"post_id": str(post_id)})
                if not await self._user_exists(user_id):
                    raise NotFound("User not found", {"user_id": str(user_id)})
                query = sa.select(row_type.id).where(row_type.post_id == post_id, row_type.user_id == user_id)
                if (await self.db.execute(query.exists().select())).scalar():
                    return
                self.db.add(row_type(user_id=user_id, post_id=post_id))
                try:
                    await self.db.commit()
                except IntegrityError:
                    # Already added by another process
                    await self.db.rollback()

    async def _remove_reaction(self, row_type: ReactionRow, post_id: PostId, user_id: UserId, operation: str) -> None:
        async with post_locks.hold(post_id):
            async with storage_errors(self.db, operation):
                if not await self.post_exists(post_id):
                    raise NotFound("Post not found", {"post_id": str(post_id)})
                query = (
                    sa.delete(row_type)
                    .where(row_type.post_id == post_id, row_type.user_id == user_id)
                    .execution_options(synchronize_session=False)
                )
                await self.db.execute(query)
                await self.db.commit()

    def _daily_limit_exceeded(self, author_id: UserId, now: datetime) -> DailyLimitExceeded:
        reset_at = clock.next_midnight(now, self.tz)
        log.info("User %s already posted today, next post allowed at %s", author_id, reset_at)
        return DailyLimitExceeded("You can only post once per day", {"reset_at": reset_at.isoformat()})
