"""Query-string helpers shared by the read endpoints."""

import re
from typing import Optional

from pinewood.errors import ValidationError

_DIGITS = re.compile(r"[0-9]+")


def parse_id(value: Optional[str], field: str) -> int:
    """An all-digits id from the query string."""
    if value is None or value == "":
        raise ValidationError(field)
    if not _DIGITS.fullmatch(value):
        raise ValidationError(field, "is invalid")
    return int(value)


def parse_flag(value: Optional[str]) -> bool:
    """Truthy query flag: present and not "0"/"false"."""
    return bool(value) and value.lower() not in ("0", "false")
