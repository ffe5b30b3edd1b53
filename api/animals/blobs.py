"""
Filesystem blob store for animal photos.

Blobs are write-once files under a single root directory. Names are generated
here, never taken from the client: `<epoch-ms>-<random><ext>`. An update never
rewrites an existing name; it saves a new blob and retires the old one.

All methods are blocking; async callers go through `run_in_threadpool`.
"""

from __future__ import annotations

import logging
import os
import re
import secrets
import time
from collections.abc import Iterator
from pathlib import Path
from typing import BinaryIO

from core import errors

logger = logging.getLogger(__name__)

STREAM_CHUNK_BYTES = 64 * 1024
_MAX_NAME_ATTEMPTS = 5

_EXT_RE = re.compile(r"^\.[a-z0-9]{1,8}$")
_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


def normalize_ext(suggested_ext: str) -> str:
    """
    Lowercase the extension and drop anything that is not a short `.alnum`
    suffix. Returns "" when nothing usable is left.
    """
    ext = (suggested_ext or "").strip().lower()
    if ext and not ext.startswith("."):
        ext = "." + ext
    return ext if _EXT_RE.match(ext) else ""


def generate_name(ext: str = "") -> str:
    return f"{int(time.time() * 1000)}-{secrets.randbelow(10**9)}{ext}"


class BlobStore:
    """
    Photo files under `root`. Thread-safe as far as the filesystem is:
    every save claims a fresh name with an exclusive create.
    """

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)
        self._root.mkdir(parents=True, exist_ok=True)

    @property
    def root(self) -> Path:
        return self._root

    def _resolve(self, name: str) -> Path | None:
        """
        Map a blob name to its path, or None when the name could escape the
        root (separators, dot-files, `..`).
        """
        if not name or not _NAME_RE.match(name):
            return None
        root = self._root.resolve()
        candidate = (root / name).resolve()
        try:
            candidate.relative_to(root)
        except ValueError:
            return None
        return candidate

    def _require_path(self, name: str) -> Path:
        path = self._resolve(name)
        if path is None:
            raise errors.BlobNotFound(f"Photo '{name}' not found.")
        return path

    def save(self, data: bytes, suggested_ext: str = "") -> str:
        """
        Persist `data` under a new name and return that name.
        """
        ext = normalize_ext(suggested_ext)
        for _ in range(_MAX_NAME_ATTEMPTS):
            name = generate_name(ext)
            path = self._root / name
            try:
                fh = open(path, "xb")
            except FileExistsError:
                continue
            except OSError as exc:
                raise errors.StorageIO("Could not store photo.") from exc

            try:
                with fh:
                    fh.write(data)
                    fh.flush()
                    os.fsync(fh.fileno())
            except OSError as exc:
                self._remove_partial(path)
                raise errors.StorageIO("Could not store photo.") from exc

            logger.debug("blob_saved name=%s size=%s", name, len(data))
            return name

        raise errors.StorageIO("Could not allocate a unique photo name.")

    def _remove_partial(self, path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("blob_partial_cleanup_failed path=%s error=%s", path, exc)

    def read(self, name: str) -> bytes:
        path = self._require_path(name)
        try:
            return path.read_bytes()
        except (FileNotFoundError, IsADirectoryError) as exc:
            raise errors.BlobNotFound(f"Photo '{name}' not found.") from exc
        except OSError as exc:
            raise errors.StorageIO(f"Could not read photo '{name}'.") from exc

    def exists(self, name: str) -> bool:
        path = self._resolve(name)
        if path is None:
            return False
        try:
            return path.is_file()
        except OSError as exc:
            raise errors.StorageIO(f"Could not check photo '{name}'.") from exc

    def delete(self, name: str) -> bool:
        """
        Remove a blob. Returns False when it was already gone; that is not an
        error. Other I/O failures raise `StorageIO`.
        """
        path = self._resolve(name)
        if path is None:
            return False
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise errors.StorageIO(f"Could not delete photo '{name}'.") from exc
        logger.debug("blob_deleted name=%s", name)
        return True

    def open_stream(self, name: str, chunk_size: int = STREAM_CHUNK_BYTES) -> Iterator[bytes]:
        """
        Open the blob now (so a missing name fails before any response is
        started) and return an iterator over its bytes.
        """
        path = self._require_path(name)
        try:
            fh = open(path, "rb")
        except (FileNotFoundError, IsADirectoryError) as exc:
            raise errors.BlobNotFound(f"Photo '{name}' not found.") from exc
        except OSError as exc:
            raise errors.StorageIO(f"Could not read photo '{name}'.") from exc
        return _iter_file(fh, chunk_size)


def _iter_file(fh: BinaryIO, chunk_size: int) -> Iterator[bytes]:
    with fh:
        while True:
            chunk = fh.read(chunk_size)
            if not chunk:
                break
            yield chunk
