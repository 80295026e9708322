import string

USERNAME_MAX_LENGTH = 30
BIO_MAX_LENGTH = 150
PASSWORD_MIN_LENGTH = 8
# bcrypt only looks at the first 72 bytes
PASSWORD_MAX_BYTES = 72


def validate_username(username: str) -> str:
    if not username or not username.strip():
        raise ValueError("Username cannot be empty")
    if len(username) > USERNAME_MAX_LENGTH:
        raise ValueError(f"Username too long (max length {USERNAME_MAX_LENGTH} chars)")
    if any(c in username for c in string.whitespace):
        raise ValueError("Username cannot contain spaces")
    if not username.replace("_", "").replace(".", "").isalnum():
        raise ValueError("Username can only contain letters, numbers, underscores and periods")
    return username


def validate_email(email: str) -> str:
    email = email.strip()
    if len(email) < 3 or "@" not in email:
        raise ValueError("Invalid email")
    if "." not in email.split("@")[1]:
        raise ValueError("Invalid email")
    if any(c in email for c in string.whitespace):
        raise ValueError("Invalid email")
    return email


def validate_bio(bio: str) -> str:
    bio = bio.strip()
    if len(bio) > BIO_MAX_LENGTH:
        raise ValueError(f"Bio too long (max length {BIO_MAX_LENGTH} chars)")
    return bio


def validate_password(password: str) -> str:
    if len(password) < PASSWORD_MIN_LENGTH:
        raise ValueError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")
    if len(password.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise ValueError("Password too long")
    return password
