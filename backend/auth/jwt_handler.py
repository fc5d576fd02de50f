from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt

from backend.core.config import settings


class TokenError(Exception):
    """Base class for every reason a bearer token is not accepted."""


class TokenMissingError(TokenError):
    """No bearer credential was presented."""


class TokenExpiredError(TokenError):
    """The signature is valid but the token is past its expiry."""


class TokenMalformedError(TokenError):
    """Bad signature, corrupt structure or unusable claims."""


@dataclass(frozen=True)
class Identity:
    id: int
    email: str


def create_access_token(
    identity: Identity,
    expires_minutes: int | None = None,
    secret_key: str | None = None,
) -> str:
    if expires_minutes is None:
        expires_minutes = settings.jwt_expires_minutes
    now = datetime.now(timezone.utc)
    payload = {
        "id": identity.id,
        "email": identity.email,
        "iat": now,
        "exp": now + timedelta(minutes=expires_minutes),
    }
    return jwt.encode(payload, secret_key or settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str, secret_key: str | None = None) -> Identity:
    try:
        payload = jwt.decode(
            token,
            secret_key or settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["exp", "id", "email"]},
        )
    except jwt.ExpiredSignatureError as exc:
        raise TokenExpiredError("Token has expired") from exc
    except jwt.InvalidTokenError as exc:
        raise TokenMalformedError(str(exc)) from exc

    user_id = payload["id"]
    email = payload["email"]
    # bool is an int subclass; a token carrying "id": true is not an identity.
    if not isinstance(user_id, int) or isinstance(user_id, bool) or not isinstance(email, str):
        raise TokenMalformedError("Token claims have unexpected types")
    return Identity(id=user_id, email=email)
