from typing import Optional

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from daily.core.database.helpers import is_unique_constraint_error, storage_errors
from daily.core.database.models import FriendRow, FriendStatus, UserRow
from daily.core.errors import Conflict, InvalidState, NotFound, SelfReferenceError
from daily.core.locks import KeyedLocks, pair_locks
from daily.core.types import FriendId, UserId
from daily.features.friends.entities import InternalFriend
from daily.utils import get_logger

log = get_logger(__name__)


def pair_key(user_a: UserId, user_b: UserId) -> tuple[UserId, UserId]:
    """Return the unordered {user_a, user_b} pair as (lower id, higher id)."""
    return (user_a, user_b) if user_a < user_b else (user_b, user_a)


class FriendStore:
    """
    Friend requests and friendships.

    A record is created pending, moves once to accepted, or is deleted (reject/unfriend). There is at most one record
    per unordered pair of users, whichever direction the request was sent in.
    """

    def __init__(self, db: AsyncSession, locks: Optional[KeyedLocks] = None):
        self.db = db
        self.locks = locks or pair_locks

    # Queries

    async def get_request(self, request_id: FriendId) -> InternalFriend:
        row = await self._get_row(request_id)
        if row is None:
            raise NotFound("Friend request not found", {"request_id": str(request_id)})
        return InternalFriend.model_validate(row)

    async def get_relation(self, user_a: UserId, user_b: UserId) -> Optional[InternalFriend]:
        """Return the record between the two users, in either direction, if there is one."""
        low, high = pair_key(user_a, user_b)
        query = sa.select(FriendRow).where(FriendRow.pair_low_id == low, FriendRow.pair_high_id == high)
        async with storage_errors(self.db, "look up friend"):
            result = await self.db.execute(query.execution_options(populate_existing=True))
            row: Optional[FriendRow] = result.scalars().first()
        return InternalFriend.model_validate(row) if row else None

    async def are_friends(self, user_a: UserId, user_b: UserId) -> bool:
        relation = await self.get_relation(user_a, user_b)
        return relation is not None and relation.status == FriendStatus.accepted

    async def list_accepted(self, user_id: UserId) -> list[InternalFriend]:
        """All accepted edges where the user is either the requester or the recipient."""
        query = sa.select(FriendRow).where(
            FriendRow.status == FriendStatus.accepted,
            (FriendRow.requester_id == user_id) | (FriendRow.recipient_id == user_id),
        )
        return await self._list(query)

    async def list_pending_incoming(self, user_id: UserId) -> list[InternalFriend]:
        """Pending requests sent to the user."""
        query = sa.select(FriendRow).where(FriendRow.status == FriendStatus.pending, FriendRow.recipient_id == user_id)
        return await self._list(query)

    async def list_pending_outgoing(self, user_id: UserId) -> list[InternalFriend]:
        """Pending requests the user has sent."""
        query = sa.select(FriendRow).where(FriendRow.status == FriendStatus.pending, FriendRow.requester_id == user_id)
        return await self._list(query)

    async def list_friend_ids(self, user_id: UserId) -> list[UserId]:
        edges = await self.list_accepted(user_id)
        return [self.resolve_other_party(edge, user_id) for edge in edges]

    @staticmethod
    def resolve_other_party(edge: InternalFriend, user_id: UserId) -> UserId:
        return edge.other_party(user_id)

    # Operations

    async def send_request(self, requester_id: UserId, recipient_id: UserId) -> InternalFriend:
        """Create a pending request, raising Conflict if the two users already have a record in either direction."""
        if requester_id == recipient_id:
            raise SelfReferenceError("Cannot send a friend request to yourself")
        low, high = pair_key(requester_id, recipient_id)
        async with self.locks.hold((low, high)):
            async with storage_errors(self.db, "send friend request"):
                await self._check_users_exist(requester_id, recipient_id)
                existing = await self.get_relation(requester_id, recipient_id)
                if existing is not None:
                    raise self._conflict_for(existing)
                row = FriendRow(
                    requester_id=requester_id,
                    recipient_id=recipient_id,
                    pair_low_id=low,
                    pair_high_id=high,
                    status=FriendStatus.pending,
                )
                self.db.add(row)
                try:
                    await self.db.commit()
                except IntegrityError as e:
                    await self.db.rollback()
                    # Another process inserted a record for this pair between querying and inserting
                    if is_unique_constraint_error(e, FriendRow.pair_uc, FriendRow.pair_low_id, FriendRow.pair_high_id):
                        raise Conflict("Friend request already sent")
                    raise
                await self.db.refresh(row)
                log.info("Friend request %s sent from %s to %s", row.id, requester_id, recipient_id)
                return InternalFriend.model_validate(row)

    async def accept_request(self, request_id: FriendId) -> InternalFriend:
        """Accept the pending request and bump both users' friend counts in the same transaction."""
        async with storage_errors(self.db, "accept friend request"):
            row = await self._get_row(request_id)
            if row is None:
                raise NotFound("Friend request not found", {"request_id": str(request_id)})
            if row.status != FriendStatus.pending:
                raise InvalidState("Friend request is not pending")
            requester_id, recipient_id = row.requester_id, row.recipient_id
            # Compare-and-set so two concurrent accepts can't both count
            update = (
                sa.update(FriendRow)
                .where(FriendRow.id == request_id, FriendRow.status == FriendStatus.pending)
                .values(status=FriendStatus.accepted)
                .execution_options(synchronize_session=False)
            )
            result = await self.db.execute(update)
            if result.rowcount == 0:  # type: ignore
                await self.db.rollback()
                raise InvalidState("Friend request is not pending")
            await self._add_to_friends_count([requester_id, recipient_id], 1)
            await self.db.commit()
            log.info("Friend request %s accepted", request_id)
            return await self.get_request(request_id)

    async def reject_request(self, request_id: FriendId) -> None:
        """
        Delete the record whatever its status. The requester may send a new one afterwards.

        Rejecting an accepted record ends the friendship, so both users' friend counts go down in the same transaction.
        """
        async with storage_errors(self.db, "reject friend request"):
            row = await self._get_row(request_id)
            if row is None:
                raise NotFound("Friend request not found", {"request_id": str(request_id)})
            requester_id, recipient_id = row.requester_id, row.recipient_id
            # A pending record can only move to accepted, so a concurrent accept is caught by the second delete
            for status in (FriendStatus.pending, FriendStatus.accepted):
                if await self._delete_with_status(request_id, status):
                    break
            else:
                await self.db.rollback()
                raise NotFound("Friend request not found", {"request_id": str(request_id)})
            if status == FriendStatus.accepted:
                await self._add_to_friends_count([requester_id, recipient_id], -1)
            await self.db.commit()
            log.info("Friend request %s rejected (was %s)", request_id, status.value)

    async def remove_friend(self, friend_id: FriendId) -> None:
        """Delete the accepted edge and decrement both users' friend counts."""
        async with storage_errors(self.db, "remove friend"):
            row = await self._get_row(friend_id)
            if row is None:
                raise NotFound("Friend not found", {"friend_id": str(friend_id)})
            if row.status != FriendStatus.accepted:
                raise InvalidState("Not friends yet, reject the request instead")
            requester_id, recipient_id = row.requester_id, row.recipient_id
            deleted = await self._delete_with_status(friend_id, FriendStatus.accepted)
            if not deleted:
                await self.db.rollback()
                raise NotFound("Friend not found", {"friend_id": str(friend_id)})
            await self._add_to_friends_count([requester_id, recipient_id], -1)
            await self.db.commit()
            log.info("Friendship %s removed", friend_id)

    # Helpers

    async def _get_row(self, friend_id: FriendId) -> Optional[FriendRow]:
        query = sa.select(FriendRow).where(FriendRow.id == friend_id).execution_options(populate_existing=True)
        async with storage_errors(self.db, "look up friend"):
            result = await self.db.execute(query)
            return result.scalars().first()

    async def _list(self, query: sa.sql.Select) -> list[InternalFriend]:
        query = query.order_by(FriendRow.created_at.desc(), FriendRow.id.desc())
        async with storage_errors(self.db, "list friends"):
            result = await self.db.execute(query.execution_options(populate_existing=True))
            rows = result.scalars().all()
        return [InternalFriend.model_validate(row) for row in rows]

    async def _check_users_exist(self, *user_ids: UserId) -> None:
        query = sa.select(sa.func.count()).select_from(UserRow).where(UserRow.id.in_(user_ids))
        async with storage_errors(self.db, "look up users"):
            result = await self.db.execute(query)
        if result.scalar() != len(set(user_ids)):
            raise NotFound("User not found")

    async def _delete_with_status(self, friend_id: FriendId, status: FriendStatus) -> bool:
        query = (
            sa.delete(FriendRow)
            .where(FriendRow.id == friend_id, FriendRow.status == status)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(query)
        did_delete: bool = result.rowcount > 0  # type: ignore
        return did_delete

    async def _add_to_friends_count(self, user_ids: list[UserId], delta: int) -> None:
        """Increment in SQL so concurrent profile updates of the same users aren't lost."""
        new_count = sa.case((UserRow.friends_count + delta < 0, 0), else_=UserRow.friends_count + delta)
        query = (
            sa.update(UserRow)
            .where(UserRow.id.in_(user_ids))
            .values(friends_count=new_count)
            .execution_options(synchronize_session=False)
        )
        await self.db.execute(query)

    @staticmethod
    def _conflict_for(existing: InternalFriend) -> Conflict:
        if existing.status == FriendStatus.accepted:
            return Conflict("Already friends")
        if existing.status == FriendStatus.pending:
            return Conflict("Friend request already sent")
        return Conflict("Cannot send a friend request to this user")
