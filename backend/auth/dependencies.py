import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from backend.auth import jwt_handler
from backend.auth.jwt_handler import (
    Identity,
    TokenExpiredError,
    TokenMalformedError,
    TokenMissingError,
)

logger = logging.getLogger(__name__)

# auto_error=False so a missing header is reported as 401 with our own message.
security = HTTPBearer(auto_error=False)

MISSING_TOKEN_DETAIL = "No token provided. Please login first."
INVALID_TOKEN_DETAIL = "Invalid or expired token. Please login again."


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def resolve_identity(credentials: HTTPAuthorizationCredentials | None) -> Identity:
    if credentials is None or not credentials.credentials:
        raise TokenMissingError("Authorization header missing or not a Bearer credential")
    return jwt_handler.decode_access_token(credentials.credentials)


def get_current_identity(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> Identity:
    try:
        return resolve_identity(credentials)
    except TokenMissingError as exc:
        logger.info("Rejected request without bearer token")
        raise _unauthorized(MISSING_TOKEN_DETAIL) from exc
    except TokenExpiredError as exc:
        logger.warning("Rejected expired token")
        raise _unauthorized(INVALID_TOKEN_DETAIL) from exc
    except TokenMalformedError as exc:
        logger.warning("Rejected malformed token: %s", exc)
        raise _unauthorized(INVALID_TOKEN_DETAIL) from exc
