import hashlib
import secrets

import bcrypt


def hash_password(password: str) -> str:
    """Hash the password with a fresh salt using bcrypt."""
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt())
    return hashed.decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed hash
        return False


def new_session_token() -> str:
    return secrets.token_urlsafe(32)


def hash_session_token(token: str) -> str:
    """Session tokens are stored as their SHA-256 digest, never as issued."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
