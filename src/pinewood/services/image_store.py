"""Image storage — car photos and check-in photos on local disk.

Learn: Photos arrive as `data:image/jpeg;base64,...` data URLs from a
browser canvas. Filenames are built only from validated ids (digits for
cars, a UUID for check-ins), never from client-supplied names, so no path
traversal is possible.
"""

import base64
import binascii
import re
from pathlib import Path
from typing import Optional

import aiofiles
import aiofiles.os
import structlog

from pinewood.config import settings
from pinewood.errors import ValidationError

logger = structlog.get_logger()

JPEG_DATA_URL_PREFIX = "data:image/jpeg;base64,"

CAR_ID_PATTERN = re.compile(r"[0-9]{1,9}")
CHECKIN_ID_PATTERN = re.compile(r"[0-9a-f\-]{36}")


def decode_data_url(data_url: str, field: str = "photo") -> bytes:
    """Decode a base64 JPEG data URL (the prefix is optional)."""
    if data_url.startswith(JPEG_DATA_URL_PREFIX):
        data_url = data_url[len(JPEG_DATA_URL_PREFIX):]
    try:
        return base64.b64decode(data_url, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError(field, "is not valid base64 image data")


class ImageStore:
    """Reads and writes `<root>/<id>.jpg` files."""

    def __init__(self, root: str, pattern: re.Pattern):
        self.root = Path(root)
        self.pattern = pattern

    def path_for(self, image_id: str) -> Optional[Path]:
        """File path for a valid id, or None when the id is malformed."""
        if not self.pattern.fullmatch(image_id):
            return None
        return self.root / f"{image_id}.jpg"

    async def write(self, image_id: str, data: bytes) -> Path:
        path = self.path_for(image_id)
        if path is None:
            raise ValidationError("Id", "is invalid")
        await aiofiles.os.makedirs(self.root, exist_ok=True)
        async with aiofiles.open(path, "wb") as f:
            await f.write(data)
        logger.info("pinewood.image_written", path=str(path), size=len(data))
        return path

    async def remove(self, image_id: str) -> None:
        path = self.path_for(image_id)
        if path is not None and await aiofiles.os.path.isfile(path):
            await aiofiles.os.remove(path)

    async def exists(self, image_id: str) -> bool:
        path = self.path_for(image_id)
        return path is not None and await aiofiles.os.path.isfile(path)


def car_images() -> ImageStore:
    return ImageStore(settings.car_image_dir, CAR_ID_PATTERN)


def checkin_images() -> ImageStore:
    return ImageStore(settings.checkin_image_dir, CHECKIN_ID_PATTERN)
