"""Domain exception hierarchy.

Learn: Every error a handler can produce is a PinewoodError carrying a
user-facing message. One exception handler (registered in main.py) turns
them into `{"error": message}` payloads. The API reports domain errors in
the body with HTTP 200; only transport-level failures use status codes.

    PinewoodError
    ├── ValidationError       missing or malformed field
    ├── AccessDenied          missing/invalid token, not an admin
    ├── NotFoundError         update/delete matched zero rows
    ├── StoreError            database failure (logged)
    ├── SecretMismatchError   shared-secret endpoints
    └── SessionNotFound       subscribe for an unknown connection
"""

from typing import Any, Optional


class PinewoodError(Exception):
    """Base class for all application errors."""

    status_code: int = 200

    def __init__(
        self,
        message: str = "An unexpected error occurred.",
        context: Optional[dict[str, Any]] = None,
        status_code: Optional[int] = None,
    ):
        self.message = message
        self.context = context or {}
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class ValidationError(PinewoodError):
    """A required field is missing or has the wrong shape."""

    def __init__(self, field: str, problem: str = "is required"):
        self.field = field
        super().__init__(f"{field} {problem}", context={"field": field})


class AccessDenied(PinewoodError):
    def __init__(self, reason: str = ""):
        super().__init__("Access denied", context={"reason": reason})


class NotFoundError(PinewoodError):
    """An update or delete matched no rows."""

    def __init__(self, entity: str, entity_id: Any = None):
        self.entity = entity
        super().__init__(
            f"{entity} not found", context={"entity": entity, "id": entity_id}
        )


class StoreError(PinewoodError):
    """Wraps a failed database statement."""


class SecretMismatchError(PinewoodError):
    def __init__(self, status_code: Optional[int] = None):
        super().__init__("Incorrect secret", status_code=status_code)


class SessionNotFound(PinewoodError):
    """No live connection is registered under the given id."""

    def __init__(self, connection_id: str):
        self.connection_id = connection_id
        super().__init__(
            "Session not found", context={"connection_id": connection_id}
        )
