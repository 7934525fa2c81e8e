"""JWT token creation and verification.

Learn: The login token carries the user's profile claims (userId,
username, admin, eventIds) so guards never need a database round trip.
Tokens are signed with HS256 and verified (signature and expiry) on
every request; a token that merely decodes is not trusted.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt

from pinewood.config import settings


class TokenError(Exception):
    """Raised when token creation/verification fails."""


def create_access_token(
    claims: dict[str, Any],
    expires_minutes: Optional[int] = None,
) -> str:
    """Sign `claims` into a JWT with iat/exp added."""
    now = datetime.now(timezone.utc)
    expires = now + timedelta(
        minutes=expires_minutes or settings.access_token_expire_minutes
    )
    payload = {**claims, "iat": now, "exp": expires}
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> dict:
    """Verify and decode a JWT token.

    Returns the payload dict on success.
    Raises TokenError on failure.
    """
    try:
        payload = jwt.decode(
            token, settings.jwt_secret, algorithms=[settings.jwt_algorithm]
        )
        return payload
    except jwt.ExpiredSignatureError:
        raise TokenError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise TokenError(f"Invalid token: {e}")
