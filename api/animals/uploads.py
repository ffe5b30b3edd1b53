"""
Photo upload intake.

Runs before the coordinator sees anything:
- checks the declared MIME type against the allowlist
- reads the upload with a size limit
"""

from __future__ import annotations

from collections.abc import Collection

from fastapi import UploadFile

from core import errors

from .service import PhotoUpload

READ_CHUNK_BYTES = 1024 * 1024  # 1 MiB


def validate_media_type(file: UploadFile, allowed_types: Collection[str]) -> str:
    """
    Return the normalized MIME type if this upload is acceptable.
    """
    media_type = (file.content_type or "").split(";", 1)[0].strip().lower()
    if media_type not in allowed_types:
        raise errors.UnsupportedMediaType(
            f"Unsupported image type '{media_type or 'unknown'}'. Allowed: {sorted(allowed_types)}"
        )
    return media_type


async def read_upload_bytes(file: UploadFile, max_bytes: int) -> bytes:
    """
    Read the upload into memory, enforcing a maximum size.
    """
    buf = bytearray()

    while True:
        chunk = await file.read(READ_CHUNK_BYTES)
        if not chunk:
            break
        buf.extend(chunk)
        if len(buf) > max_bytes:
            raise errors.PayloadTooLarge(f"File too large. Max is {max_bytes} bytes.")

    return bytes(buf)


async def read_photo(
    file: UploadFile | None,
    *,
    allowed_types: Collection[str],
    max_bytes: int,
) -> PhotoUpload | None:
    """
    Validate and buffer an optional photo upload. An absent or empty file part
    means "no photo".
    """
    if file is None or not file.filename:
        return None

    media_type = validate_media_type(file, allowed_types)
    data = await read_upload_bytes(file, max_bytes=max_bytes)
    if not data:
        return None
    return PhotoUpload(data=data, media_type=media_type)
