"""
Error taxonomy shared by every feature package.

Each error carries the HTTP status it maps to; `api/main.py` registers one
handler that renders them as `{"error": "..."}`.
"""

from __future__ import annotations


class AppError(RuntimeError):
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(AppError):
    """Missing or malformed input."""

    status_code = 400


class NotFound(AppError):
    """Unknown animal id or blob name."""

    status_code = 404


class BlobNotFound(NotFound):
    pass


class UnsupportedMediaType(AppError):
    status_code = 415


class PayloadTooLarge(AppError):
    status_code = 413


class StorageIO(AppError):
    """Blob read/write failure (disk full, permission denied, ...)."""

    status_code = 500


class PersistenceError(AppError):
    """Record store failure."""

    status_code = 500
