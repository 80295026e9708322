from fastapi import APIRouter, Depends, HTTPException
from starlette.requests import Request

from daily.core import config
from daily.core.errors import NotFound
from daily.core.types import SimpleResponse
from daily.features.auth.session_store import SessionStore
from daily.features.auth.types import AuthResponse, LoginRequest, RegisterRequest
from daily.features.stores import get_session_store, get_user_store
from daily.features.users.dependencies import get_session_token, limiter
from daily.features.users.user_store import UserStore
from daily.utils import get_logger

router = APIRouter(tags=["auth"])
log = get_logger(__name__)


@router.post("/register", response_model=AuthResponse)
async def register(
    req: RegisterRequest,
    user_store: UserStore = Depends(get_user_store),
    session_store: SessionStore = Depends(get_session_store),
):
    """Create a new account and log in as it."""
    user = await user_store.create_user(
        username=req.username,
        email=req.email,
        bio=req.bio or "",
        avatar=req.avatar or "",
        password=req.password,
    )
    token = await session_store.open_session(user.id)
    return AuthResponse(token=token, user=user.to_private())


@router.post("/login", response_model=AuthResponse)
@limiter.limit(config.LOGIN_RATE_LIMIT)
async def login(
    request: Request,  # This needs to be here for limiter
    req: LoginRequest,
    user_store: UserStore = Depends(get_user_store),
    session_store: SessionStore = Depends(get_session_store),
):
    try:
        user = await user_store.verify_credentials(req.username, req.password)
    except NotFound:
        log.info("Failed login attempt for %s", req.username)
        raise HTTPException(401, detail="Invalid username or password")
    token = await session_store.open_session(user.id)
    return AuthResponse(token=token, user=user.to_private())


@router.post("/logout", response_model=SimpleResponse)
async def logout(
    token: str = Depends(get_session_token),
    session_store: SessionStore = Depends(get_session_store),
):
    """Invalidate the current session token."""
    await session_store.close_session(token)
    return SimpleResponse(success=True)
