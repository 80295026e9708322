from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from daily.core.database.engine import get_db
from daily.features.auth.session_store import SessionStore
from daily.features.friends.friend_store import FriendStore
from daily.features.posts.feed_store import FeedStore
from daily.features.posts.post_store import PostStore
from daily.features.users.user_store import UserStore


def get_feed_store(db: AsyncSession = Depends(get_db)):
    return FeedStore(db=db)


def get_friend_store(db: AsyncSession = Depends(get_db)):
    return FriendStore(db=db)


def get_post_store(db: AsyncSession = Depends(get_db)):
    return PostStore(db=db)


def get_session_store(db: AsyncSession = Depends(get_db)):
    return SessionStore(db=db)


def get_user_store(db: AsyncSession = Depends(get_db)):
    return UserStore(db=db)
