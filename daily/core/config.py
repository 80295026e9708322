import os
from typing import Optional
from zoneinfo import ZoneInfo

# Database connection URL (async)
# Example: "postgresql+asyncpg://user@localhost/daily_db" or "sqlite+aiosqlite:///./daily.db"
SQLALCHEMY_DATABASE_URL: str = os.environ["DATABASE_URL"]

# Time zone that defines the calendar day (daily post gate, feed window, reset countdown)
# Example: "America/Los_Angeles"
TIMEZONE: ZoneInfo = ZoneInfo(os.environ.get("TIMEZONE", "UTC"))

# Log level for every daily.* logger
LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "DEBUG").upper()

# Allow requests from this origin
ALLOW_ORIGIN: Optional[str] = os.environ.get("ALLOW_ORIGIN")

# If true, enable docs and openapi.json endpoints
ENABLE_DOCS: bool = os.environ.get("ENABLE_DOCS") == "1"

# Rate limiting for the login endpoint
ENABLE_RATE_LIMIT: bool = os.environ.get("ENABLE_RATE_LIMIT", "1") == "1"
LOGIN_RATE_LIMIT: str = os.environ.get("LOGIN_RATE_LIMIT", "10/minute")

# App-related configuration
MAX_CAPTION_LENGTH: int = 500
_max_caption_length: Optional[str] = os.environ.get("MAX_CAPTION_LENGTH")
if _max_caption_length:
    try:
        MAX_CAPTION_LENGTH = int(_max_caption_length)
    except ValueError:
        print(f"Could not convert MAX_CAPTION_LENGTH to int, defaulting to {MAX_CAPTION_LENGTH}")

MAX_COMMENT_LENGTH: int = 1000
_max_comment_length: Optional[str] = os.environ.get("MAX_COMMENT_LENGTH")
if _max_comment_length:
    try:
        MAX_COMMENT_LENGTH = int(_max_comment_length)
    except ValueError:
        print(f"Could not convert MAX_COMMENT_LENGTH to int, defaulting to {MAX_COMMENT_LENGTH}")

# Database connection pool (ignored for SQLite)
DB_POOL_SIZE: int = 16
_db_pool_size: Optional[str] = os.environ.get("DB_POOL_SIZE")
if _db_pool_size:
    try:
        DB_POOL_SIZE = int(_db_pool_size)
    except ValueError:
        print(f"Could not convert DB_POOL_SIZE to int, defaulting to {DB_POOL_SIZE}")

# Requests slower than this are logged as warnings
SLOW_REQUEST_MS: int = 500
_slow_request_ms: Optional[str] = os.environ.get("SLOW_REQUEST_MS")
if _slow_request_ms:
    try:
        SLOW_REQUEST_MS = int(_slow_request_ms)
    except ValueError:
        print(f"Could not convert SLOW_REQUEST_MS to int, defaulting to {SLOW_REQUEST_MS}")
