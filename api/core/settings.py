"""
Environment-driven settings.

Each setting is a small function so it is read at call time; tests can
monkeypatch the environment without reloading modules.
"""

from __future__ import annotations

import logging
import os

DEFAULT_UPLOAD_DIR = "uploads"
DEFAULT_MAX_UPLOAD_BYTES = 5 * 1024 * 1024  # 5 MiB
DEFAULT_ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/png", "image/gif")
DEFAULT_CORS_ORIGINS = (
    "http://localhost:5500",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
)
DELIVERY_MODES = ("inline", "redirect", "streamed")


def _env_str(name: str, default: str) -> str:
    return os.environ.get(name, default).strip() or default


def _env_list(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    return tuple(item.strip() for item in raw.split(",") if item.strip())


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name, "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "on"}


def app_env() -> str:
    return _env_str("APP_ENV", "production").lower()


def is_development() -> bool:
    """
    Development mode exposes internal error details in 5xx responses and
    enables the password reset endpoint.
    """
    return app_env() == "development"


def upload_dir() -> str:
    return _env_str("UPLOAD_DIR", DEFAULT_UPLOAD_DIR)


def max_upload_bytes() -> int:
    raw = os.environ.get("MAX_UPLOAD_BYTES", "").strip()
    if not raw:
        return DEFAULT_MAX_UPLOAD_BYTES

    try:
        value = int(raw)
    except ValueError:
        raise RuntimeError("Invalid MAX_UPLOAD_BYTES. It must be an integer.")

    if value <= 0:
        raise RuntimeError("Invalid MAX_UPLOAD_BYTES. It must be > 0.")

    return value


def allowed_image_types() -> frozenset[str]:
    return frozenset(t.lower() for t in _env_list("ALLOWED_IMAGE_TYPES", DEFAULT_ALLOWED_IMAGE_TYPES))


def photo_delivery_mode() -> str:
    mode = _env_str("PHOTO_DELIVERY_MODE", "inline").lower()
    if mode not in DELIVERY_MODES:
        raise RuntimeError(f"Invalid PHOTO_DELIVERY_MODE '{mode}'. Allowed: {list(DELIVERY_MODES)}")
    return mode


def photo_cache_bust() -> bool:
    return _env_bool("PHOTO_CACHE_BUST", False)


def cors_origins() -> list[str]:
    return list(_env_list("CORS_ORIGINS", DEFAULT_CORS_ORIGINS))


def log_level() -> str:
    level = _env_str("LOG_LEVEL", "INFO").upper()
    if not isinstance(logging.getLevelName(level), int):
        raise RuntimeError(f"Invalid LOG_LEVEL '{level}'.")
    return level


DEFAULT_JWT_SECRET = "dev-change-this-secret"
DEFAULT_ACCESS_TOKEN_EXPIRE_MIN = 8 * 60
JWT_ALGORITHMS = ("HS256", "HS384", "HS512")


def jwt_secret() -> str:
    # Set JWT_SECRET in every non-local deployment.
    return _env_str("JWT_SECRET", DEFAULT_JWT_SECRET)


def jwt_algorithm() -> str:
    alg = _env_str("JWT_ALG", "HS256").upper()
    if alg not in JWT_ALGORITHMS:
        raise RuntimeError(f"Invalid JWT_ALG '{alg}'. Allowed: {list(JWT_ALGORITHMS)}")
    return alg


def access_token_expire_minutes() -> int:
    raw = os.environ.get("ACCESS_TOKEN_EXPIRE_MIN", "").strip()
    if not raw:
        return DEFAULT_ACCESS_TOKEN_EXPIRE_MIN

    try:
        value = int(raw)
    except ValueError:
        raise RuntimeError("Invalid ACCESS_TOKEN_EXPIRE_MIN. It must be an integer.")

    if value <= 0:
        raise RuntimeError("Invalid ACCESS_TOKEN_EXPIRE_MIN. It must be > 0.")

    return value


def validate() -> None:
    """
    Read every checked setting once so a bad value stops startup instead of
    failing the first request that needs it.
    """
    max_upload_bytes()
    photo_delivery_mode()
    log_level()
    jwt_algorithm()
    access_token_expire_minutes()
