from typing import Optional

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from daily.core import security
from daily.core.database.helpers import storage_errors
from daily.core.database.models import SessionRow
from daily.core.types import UserId
from daily.utils import get_logger

log = get_logger(__name__)


class SessionStore:
    """
    Login sessions. A session only points at a user id, the user itself is loaded fresh on every request.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def open_session(self, user_id: UserId) -> str:
        token = security.new_session_token()
        async with storage_errors(self.db, "open session"):
            self.db.add(SessionRow(token_hash=security.hash_session_token(token), user_id=user_id))
            await self.db.commit()
        log.info("Opened session for user %s", user_id)
        return token

    async def get_user_id(self, token: str) -> Optional[UserId]:
        query = sa.select(SessionRow.user_id).where(SessionRow.token_hash == security.hash_session_token(token))
        async with storage_errors(self.db, "resolve session"):
            result = await self.db.execute(query)
            return result.scalar()

    async def close_session(self, token: str) -> None:
        """Delete the session. Closing an unknown token is a no-op."""
        async with storage_errors(self.db, "close session"):
            query = (
                sa.delete(SessionRow)
                .where(SessionRow.token_hash == security.hash_session_token(token))
                .execution_options(synchronize_session=False)
            )
            await self.db.execute(query)
            await self.db.commit()
