from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from daily.core.database.models import PostRow
from daily.core.errors import StorageError
from daily.utils import get_logger

log = get_logger(__name__)


def eager_load_post_options():
    """Return the options to eagerly load a post's likes, shares and comments."""
    return (
        selectinload(PostRow.likes),
        selectinload(PostRow.shares),
        selectinload(PostRow.comments),
    )


def is_unique_constraint_error(e: IntegrityError, constraint_name: str, *columns) -> bool:
    """
    Return whether the error is a unique constraint violation for the given constraint.

    Unfortunately there isn't a cleaner way than parsing the error message. PostgreSQL names the constraint, SQLite
    lists the offending table.column pairs instead.
    """
    message = str(e.orig)
    if f'unique constraint "{constraint_name}"' in message:
        return True
    if "UNIQUE constraint failed" in message and columns:
        return all(f"{column.class_.__tablename__}.{column.key}" in message for column in columns)
    return False


@asynccontextmanager
async def storage_errors(db: AsyncSession, operation: str) -> AsyncIterator[None]:
    """Roll back and re-raise any database failure in the block as a StorageError."""
    try:
        yield
    except SQLAlchemyError as e:
        await db.rollback()
        log.exception("Database failure while trying to %s", operation)
        raise StorageError(f"Could not {operation}.") from e
