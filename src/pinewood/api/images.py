"""Car and check-in photo routes.

Learn: The scorekeeping station uploads car photos with the shared
secret. A wrong secret is answered with 403, the one domain error that
uses a status code. A new photo bumps the car's imageVersion, which is
pushed to "car" subscribers so scoreboards reload the picture.
"""

import structlog
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from pinewood.auth.dependencies import check_secret
from pinewood.db.engine import get_db
from pinewood.errors import PinewoodError
from pinewood.realtime.notifier import MutationNotifier, get_notifier
from pinewood.schemas.checkin import CarImageRequest
from pinewood.services.car_service import CarService
from pinewood.services.image_store import (
    ImageStore,
    car_images,
    checkin_images,
    decode_data_url,
)

logger = structlog.get_logger()
router = APIRouter()


def _svc(db: AsyncSession = Depends(get_db)) -> CarService:
    return CarService(db)


@router.post("/carImage")
async def car_image(
    body: CarImageRequest,
    svc: CarService = Depends(_svc),
    notifier: MutationNotifier = Depends(get_notifier),
):
    check_secret(body.secret, status_code=403)

    images = car_images()
    if body.id is None or images.path_for(body.id) is None:
        raise PinewoodError("Invalid Id")

    if not body.image_data:
        exists = await images.exists(body.id)
        return {"result": "Image exists" if exists else "Image does not exist"}

    data = decode_data_url(body.image_data, field="imageData")
    try:
        await images.write(body.id, data)
    except OSError as e:
        logger.error("pinewood.image_write_failed", car_id=body.id, error=str(e))
        raise PinewoodError("Could not save image")

    descriptor = await svc.bump_image_version(int(body.id))
    if descriptor is not None:
        notifier.notify([descriptor])
    return {"result": "Image received"}


def _serve(images: ImageStore, image_id: str) -> FileResponse:
    path = images.path_for(image_id)
    if path is None or not path.is_file():
        raise HTTPException(status_code=404, detail="Not found")
    return FileResponse(path, media_type="image/jpeg")


@router.get("/cars/{image_id}.jpg")
async def car_photo(image_id: str):
    return _serve(car_images(), image_id)


@router.get("/checkin/{image_id}.jpg")
async def checkin_photo(image_id: str):
    return _serve(checkin_images(), image_id)
