"""
FastAPI dependencies for the animal endpoints.
"""

from __future__ import annotations

from fastapi import File, Request, UploadFile

from core import settings

from . import uploads
from .service import AnimalService, PhotoUpload


def get_animal_service(request: Request) -> AnimalService:
    service = getattr(request.app.state, "animals", None)
    if service is None:
        raise RuntimeError("Animal service is not initialized. Build it on startup.")
    return service


async def get_photo_upload(photo: UploadFile | None = File(default=None)) -> PhotoUpload | None:
    return await uploads.read_photo(
        photo,
        allowed_types=settings.allowed_image_types(),
        max_bytes=settings.max_upload_bytes(),
    )


def request_base_url(request: Request) -> str:
    """
    `<scheme>://<host>` of the current request, used to build photo URLs.
    """
    return str(request.base_url).rstrip("/")
