"""
Turn a stored photo reference into what the client receives.

Three interchangeable delivery modes; one is active per deployment
(`PHOTO_DELIVERY_MODE`):
- inline:   `data:<media type>;base64,<payload>` read from disk on every call
- redirect: URL under the static `/uploads` mount, optionally cache-busted
- streamed: URL of `GET /api/animals/imagem/{name}`

The mode only changes reads. Writes never go through here.
"""

from __future__ import annotations

import base64
import enum
import logging
import time
from collections.abc import Callable
from pathlib import PurePath
from urllib.parse import quote

from fastapi.concurrency import run_in_threadpool

from core import errors

from .blobs import BlobStore

logger = logging.getLogger(__name__)

DEFAULT_MEDIA_TYPE = "application/octet-stream"

MEDIA_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
}

# Storage extension for each accepted upload type.
EXTENSIONS = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/gif": ".gif",
}

STATIC_PREFIX = "/uploads"
STREAM_PREFIX = "/api/animals/imagem"


class DeliveryMode(str, enum.Enum):
    INLINE = "inline"
    REDIRECT = "redirect"
    STREAMED = "streamed"


def media_type_for(name: str) -> str:
    return MEDIA_TYPES.get(PurePath(name).suffix.lower(), DEFAULT_MEDIA_TYPE)


def extension_for(media_type: str) -> str:
    return EXTENSIONS.get((media_type or "").lower(), "")


def data_uri(media_type: str, data: bytes) -> str:
    payload = base64.b64encode(data).decode("ascii")
    return f"data:{media_type};base64,{payload}"


class PhotoCodec:
    def __init__(
        self,
        blobs: BlobStore,
        *,
        mode: DeliveryMode | str = DeliveryMode.INLINE,
        cache_bust: bool = False,
        static_prefix: str = STATIC_PREFIX,
        stream_prefix: str = STREAM_PREFIX,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._blobs = blobs
        self.mode = DeliveryMode(mode)
        self._cache_bust = cache_bust
        self._static_prefix = static_prefix.rstrip("/")
        self._stream_prefix = stream_prefix.rstrip("/")
        self._clock = clock

    async def materialize(self, photo_ref: str | None, *, base_url: str = "") -> str | None:
        """
        Return the client-facing photo for `photo_ref`, or None when there is
        no photo or it cannot be read. A broken photo never fails the read.
        """
        if not photo_ref:
            return None

        try:
            if self.mode is DeliveryMode.INLINE:
                data = await run_in_threadpool(self._blobs.read, photo_ref)
                return data_uri(media_type_for(photo_ref), data)

            if not await run_in_threadpool(self._blobs.exists, photo_ref):
                raise errors.BlobNotFound(f"Photo '{photo_ref}' not found.")
        except (errors.NotFound, errors.StorageIO) as exc:
            logger.warning("photo_unavailable name=%s mode=%s error=%s", photo_ref, self.mode.value, exc)
            return None

        return self.url_for(photo_ref, base_url=base_url)

    def url_for(self, photo_ref: str, *, base_url: str = "") -> str:
        base_url = (base_url or "").rstrip("/")
        if self.mode is DeliveryMode.STREAMED:
            return f"{base_url}{self._stream_prefix}/{quote(photo_ref)}"

        url = f"{base_url}{self._static_prefix}/{quote(photo_ref)}"
        if self._cache_bust:
            url += f"?v={int(self._clock() * 1000)}"
        return url
