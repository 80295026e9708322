import asyncio
from typing import Callable, Optional

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from daily.core import security
from daily.core.database.helpers import storage_errors
from daily.core.database.models import UserRow
from daily.core.errors import Conflict, NotFound, ValidationError
from daily.core.types import UserId
from daily.features.users import validators
from daily.features.users.entities import InternalUser, UserUpdate
from daily.utils import get_logger

log = get_logger(__name__)


def _validate(field: str, validator: Callable[[str], str], value: str) -> str:
    try:
        return validator(value)
    except ValueError as e:
        raise ValidationError(field, str(e))


async def _run_blocking(fn, *args):
    """bcrypt is deliberately slow, keep it off the event loop."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, fn, *args)


class UserStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def user_exists(self, username: Optional[str] = None, user_id: Optional[UserId] = None) -> bool:
        """Return whether or not a user with the given attributes exists. Usernames are case-sensitive."""
        query = sa.select(UserRow.id)
        if username is not None:
            query = query.where(UserRow.username == username)
        if user_id is not None:
            query = query.where(UserRow.id == user_id)
        async with storage_errors(self.db, "look up user"):
            result = await self.db.execute(query.exists().select())
        user_exists: bool = result.scalar()  # type: ignore
        return user_exists

    async def get_user(self, user_id: UserId) -> InternalUser:
        """Return the user with the given id, raising NotFound if there is no such user."""
        user = await self._get_user_row(UserRow.id == user_id)
        if user is None:
            raise NotFound("User not found", {"user_id": str(user_id)})
        return InternalUser.model_validate(user)

    async def find_by_username(self, username: str) -> InternalUser:
        """Return the user with exactly the given username, raising NotFound if there is no such user."""
        user = await self._get_user_row(UserRow.username == username)
        if user is None:
            raise NotFound("User not found", {"username": username})
        return InternalUser.model_validate(user)

    async def get_users(self, user_ids: list[UserId]) -> dict[UserId, InternalUser]:
        if not user_ids:
            return {}
        query = sa.select(UserRow).where(UserRow.id.in_(user_ids)).execution_options(populate_existing=True)
        async with storage_errors(self.db, "load users"):
            result = await self.db.execute(query)
            users = result.scalars().all()
        return {user.id: InternalUser.model_validate(user) for user in users}

    # Operations
    async def create_user(
        self,
        username: str,
        email: str,
        bio: str = "",
        avatar: str = "",
        password: Optional[str] = None,
    ) -> InternalUser:
        """Create a new user with zeroed stats, raising Conflict if the username is taken."""
        username = _validate("username", validators.validate_username, username)
        email = _validate("email", validators.validate_email, email)
        bio = _validate("bio", validators.validate_bio, bio)
        password_hash = None
        if password is not None:
            password = _validate("password", validators.validate_password, password)
            password_hash = await _run_blocking(security.hash_password, password)
        async with storage_errors(self.db, "create user"):
            if await self.user_exists(username=username):
                raise Conflict("Username taken.", {"username": username})
            new_user = UserRow(
                username=username,
                email=email,
                bio=bio,
                avatar=avatar,
                password_hash=password_hash,
                total_posts=0,
                streak=0,
                friends_count=0,
            )
            self.db.add(new_user)
            try:
                await self.db.commit()
            except IntegrityError:
                await self.db.rollback()
                # Most likely someone registered the same username between the check and the insert
                if await self.user_exists(username=username):
                    raise Conflict("Username taken.", {"username": username})
                raise
            await self.db.refresh(new_user, ["id"])
            log.info("Created user %s (%s)", new_user.id, username)
            return await self.get_user(new_user.id)

    async def update_user(self, user_id: UserId, update: UserUpdate) -> InternalUser:
        """Merge the supplied fields of `update` into the stored user. Unspecified fields are untouched."""
        changes = update.model_dump(exclude_unset=True, exclude_none=True)
        async with storage_errors(self.db, "update user"):
            user = await self._get_user_row(UserRow.id == user_id, for_update=True)
            if user is None:
                raise NotFound("User not found", {"user_id": str(user_id)})
            new_username = changes.get("username")
            if new_username is not None and new_username != user.username:
                if await self.user_exists(username=new_username):
                    await self.db.rollback()
                    raise Conflict("Username taken.", {"username": new_username})
            for field, value in changes.items():
                setattr(user, field, value)
            try:
                await self.db.commit()
            except IntegrityError:
                await self.db.rollback()
                if new_username is not None and await self.user_exists(username=new_username):
                    raise Conflict("Username taken.", {"username": new_username})
                raise
            return await self.get_user(user_id)

    async def verify_credentials(self, username: str, password: str) -> InternalUser:
        """
        Return the user if the password matches the stored salted hash.

        Raises NotFound both when the user doesn't exist and when the password is wrong, so callers can't tell the
        two apart.
        """
        query = sa.select(UserRow).where(UserRow.username == username).execution_options(populate_existing=True)
        async with storage_errors(self.db, "verify credentials"):
            result = await self.db.execute(query)
            user: Optional[UserRow] = result.scalars().first()
        if user is None or user.password_hash is None:
            raise NotFound("Invalid username or password")
        if not await _run_blocking(security.verify_password, password, user.password_hash):
            raise NotFound("Invalid username or password")
        return InternalUser.model_validate(user)

    async def _get_user_row(self, condition, for_update: bool = False) -> Optional[UserRow]:
        query = sa.select(UserRow).where(condition).execution_options(populate_existing=True)
        if for_update:
            query = query.with_for_update()
        async with storage_errors(self.db, "load user"):
            result = await self.db.execute(query)
            return result.scalars().first()
