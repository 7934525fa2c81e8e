"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers (or on a whole
router) to gate access. A failed check raises AccessDenied, which the app
renders as {"error": "Access denied"} and the handler body never runs.

Two guards:
1. require_user  — any valid bearer token
2. require_admin — valid bearer token whose `admin` claim is truthy

The scorekeeping station endpoints predate tokens and use a shared
secret instead (check_secret).
"""

import re
import secrets
from typing import Any, Optional

import structlog
from fastapi import Depends, Header

from pinewood.auth.jwt import TokenError, verify_token
from pinewood.config import settings
from pinewood.errors import AccessDenied, SecretMismatchError

logger = structlog.get_logger()

_BEARER = re.compile(r"Bearer (.+)")


class CurrentIdentity:
    """The authenticated caller, built from verified token claims."""

    def __init__(self, claims: dict[str, Any]):
        self.claims = claims
        self.user_id = claims.get("userId")
        self.username = claims.get("username")
        self.admin = bool(claims.get("admin"))
        self.event_ids = claims.get("eventIds")


def extract_bearer(authorization: Optional[str]) -> Optional[str]:
    """Token from an `Authorization: Bearer <token>` header, or None."""
    if not authorization:
        return None
    match = _BEARER.match(authorization.strip())
    return match.group(1).strip() if match else None


async def get_current_user_optional(
    authorization: Optional[str] = Header(None),
) -> Optional[CurrentIdentity]:
    """Identity from the bearer token, or None when absent/invalid."""
    token = extract_bearer(authorization)
    if token is None:
        return None
    try:
        return CurrentIdentity(verify_token(token))
    except TokenError as e:
        logger.info("auth.token_rejected", error=str(e))
        return None


async def require_user(
    identity: Optional[CurrentIdentity] = Depends(get_current_user_optional),
) -> CurrentIdentity:
    if identity is None:
        raise AccessDenied("missing or invalid token")
    return identity


async def require_admin(
    identity: CurrentIdentity = Depends(require_user),
) -> CurrentIdentity:
    if not identity.admin:
        raise AccessDenied("admin required")
    return identity


def check_secret(secret: Optional[str], status_code: Optional[int] = None) -> None:
    """Compare a shared secret in constant time; raise on mismatch."""
    if not secret or not secrets.compare_digest(
        secret.encode("utf-8"), settings.legacy_secret.encode("utf-8")
    ):
        raise SecretMismatchError(status_code=status_code)
