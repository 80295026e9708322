from typing import Optional

from daily.core.types import Base
from daily.features.users.entities import PrivateUser
from daily.features.users.primitive_types import ValidatedBio, ValidatedEmail, ValidatedPassword, ValidatedUsername


class RegisterRequest(Base):
    username: ValidatedUsername
    email: ValidatedEmail
    password: ValidatedPassword
    bio: Optional[ValidatedBio] = None
    avatar: Optional[str] = None


class LoginRequest(Base):
    username: str
    password: str


class AuthResponse(Base):
    token: str
    user: PrivateUser
