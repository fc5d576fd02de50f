import bcrypt

from backend.core.config import settings

MIN_PASSWORD_LENGTH = 6
# bcrypt only looks at the first 72 bytes of its input.
MAX_PASSWORD_BYTES = 72


def hash_password(plain_password: str, rounds: int | None = None) -> str:
    """Hash a password using bcrypt with a freshly generated salt."""
    salt = bcrypt.gensalt(rounds=rounds or settings.bcrypt_rounds)
    return bcrypt.hashpw(plain_password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a password against a stored bcrypt hash."""
    if not plain_password or not hashed_password:
        return False
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash, or the password exceeds bcrypt's input limit.
        return False


def password_problem(plain_password: str) -> str | None:
    """Return a user-facing message if the password cannot be accepted, else None."""
    if len(plain_password) < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
    if len(plain_password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        return f"Password must be at most {MAX_PASSWORD_BYTES} bytes"
    return None
