from typing import Optional

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from slowapi import Limiter

from daily.core import config
from daily.core.errors import NotFound
from daily.core.types import UserId
from daily.features.auth.session_store import SessionStore
from daily.features.stores import get_session_store, get_user_store
from daily.features.users.entities import InternalUser
from daily.features.users.user_store import UserStore

bearer_scheme = HTTPBearer(auto_error=False)


def get_authorization_header(request: Request) -> str:
    """Used for rate limiting."""
    authorization = request.headers.get("authorization")
    if authorization is None or not authorization.startswith("Bearer "):
        return request.client.host if request.client else "default"
    return authorization[7:]


limiter = Limiter(key_func=get_authorization_header, enabled=config.ENABLE_RATE_LIMIT)


async def get_session_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    if credentials is None or not credentials.credentials:
        raise HTTPException(401, detail="Not authenticated", headers={"WWW-Authenticate": "Bearer"})
    return credentials.credentials


async def get_caller_user(
    token: str = Depends(get_session_token),
    session_store: SessionStore = Depends(get_session_store),
    user_store: UserStore = Depends(get_user_store),
) -> InternalUser:
    """Resolve the session token to the current user, reloaded from the database on every request."""
    user_id: Optional[UserId] = await session_store.get_user_id(token)
    if user_id is None:
        raise HTTPException(401, detail="Invalid session", headers={"WWW-Authenticate": "Bearer"})
    try:
        return await user_store.get_user(user_id)
    except NotFound:
        raise HTTPException(401, detail="Invalid session", headers={"WWW-Authenticate": "Bearer"})
