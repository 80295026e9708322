from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from slowapi.errors import RateLimitExceeded
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from timing_asgi import TimingMiddleware, TimingClient  # type: ignore
from timing_asgi.integrations import StarletteScopeToName  # type: ignore

from daily.core import config
from daily.core.errors import DailyError, StorageError
from daily.features.auth.routes import router as auth_router
from daily.features.friends.routes import router as friend_router
from daily.features.me import router as me_router
from daily.features.posts.routes import router as post_router
from daily.features.users.dependencies import limiter
from daily.features.users.routes import router as user_router
from daily.utils import get_logger

log = get_logger(__name__)


class LogTimings(TimingClient):
    """Log how long each route took, slow ones as warnings."""

    def timing(self, metric_name, timing, tags):
        route = metric_name.removeprefix("main.daily.features.")
        elapsed_ms = round(timing * 1000)
        if elapsed_ms >= config.SLOW_REQUEST_MS:
            log.warning("Slow request %s took %dms %s", route, elapsed_ms, tags)
        else:
            log.debug("%s took %dms", route, elapsed_ms)


def validation_error_response(_request: Request, exc: RequestValidationError) -> Response:
    """Flatten pydantic errors into {field: message}."""
    errors = {}
    for error in exc.errors():
        if "loc" not in error or "msg" not in error:
            continue
        key = error["loc"][-1]
        errors["root" if key == "__root__" else key] = error["msg"]
    log.info("Request validation error %s", errors)
    return JSONResponse(status_code=400, content=jsonable_encoder(errors))


def rate_limit_response(request: Request, _exc: RateLimitExceeded) -> Response:
    log.info("Rate limited %s %s", request.method, request.url.path)
    return JSONResponse({"error": "You are going too fast"}, status_code=429)


def daily_error_response(request: Request, exc: DailyError) -> Response:
    if isinstance(exc, StorageError):
        log.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        log.info("%s %s: %s (%s)", request.method, request.url.path, exc.kind, exc.message)
    content = {"error": exc.kind, "detail": exc.message}
    if exc.details:
        content["details"] = exc.details
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(content))


def create_app() -> FastAPI:
    log.info("Initializing server (calendar day in %s)", config.TIMEZONE.key)
    if config.ENABLE_DOCS:
        log.warning("Docs enabled")
    new_app = FastAPI(title="Daily", openapi_url="/openapi.json" if config.ENABLE_DOCS else None)
    new_app.state.limiter = limiter

    new_app.add_middleware(
        TimingMiddleware, client=LogTimings(), metric_namer=StarletteScopeToName("main", new_app)
    )
    if config.ALLOW_ORIGIN:
        log.warning("Setting allow origin to %s", config.ALLOW_ORIGIN)
        new_app.add_middleware(
            CORSMiddleware,
            allow_origins=[config.ALLOW_ORIGIN],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    new_app.add_exception_handler(RequestValidationError, validation_error_response)  # type: ignore
    new_app.add_exception_handler(RateLimitExceeded, rate_limit_response)  # type: ignore
    new_app.add_exception_handler(DailyError, daily_error_response)  # type: ignore

    new_app.include_router(auth_router, prefix="/auth")
    new_app.include_router(me_router, prefix="/me")
    new_app.include_router(user_router, prefix="/users")
    new_app.include_router(friend_router, prefix="/friends")
    new_app.include_router(post_router, prefix="/posts")
    return new_app


app = create_app()


@app.get("/")
async def index():
    return {"name": app.title}
