import logging

import pytest

from core import log, settings


def test_defaults(monkeypatch):
    for name in ("MAX_UPLOAD_BYTES", "ALLOWED_IMAGE_TYPES", "PHOTO_DELIVERY_MODE", "APP_ENV"):
        monkeypatch.delenv(name, raising=False)

    assert settings.max_upload_bytes() == 5 * 1024 * 1024
    assert settings.allowed_image_types() == {"image/jpeg", "image/png", "image/gif"}
    assert settings.photo_delivery_mode() == "inline"
    assert settings.is_development() is False


@pytest.mark.parametrize("raw", ["abc", "0", "-5"])
def test_invalid_max_upload_bytes(monkeypatch, raw):
    monkeypatch.setenv("MAX_UPLOAD_BYTES", raw)
    with pytest.raises(RuntimeError):
        settings.max_upload_bytes()


def test_invalid_delivery_mode(monkeypatch):
    monkeypatch.setenv("PHOTO_DELIVERY_MODE", "fax")
    with pytest.raises(RuntimeError):
        settings.photo_delivery_mode()


def test_lists_and_flags(monkeypatch):
    monkeypatch.setenv("ALLOWED_IMAGE_TYPES", "image/PNG, image/webp")
    monkeypatch.setenv("CORS_ORIGINS", "https://a.example,https://b.example")
    monkeypatch.setenv("PHOTO_CACHE_BUST", "yes")

    assert settings.allowed_image_types() == {"image/png", "image/webp"}
    assert settings.cors_origins() == ["https://a.example", "https://b.example"]
    assert settings.photo_cache_bust() is True


def test_configure_logging_sets_level(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "warning")
    log.configure_logging()
    assert logging.getLogger().level == logging.WARNING


def test_invalid_log_level(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "chatty")
    with pytest.raises(RuntimeError):
        settings.log_level()


@pytest.mark.parametrize("raw", ["abc", "0", "-1"])
def test_invalid_access_token_ttl(monkeypatch, raw):
    monkeypatch.setenv("ACCESS_TOKEN_EXPIRE_MIN", raw)
    with pytest.raises(RuntimeError):
        settings.access_token_expire_minutes()


def test_token_settings(monkeypatch):
    monkeypatch.delenv("ACCESS_TOKEN_EXPIRE_MIN", raising=False)
    monkeypatch.setenv("JWT_ALG", "hs512")

    assert settings.access_token_expire_minutes() == 480
    assert settings.jwt_algorithm() == "HS512"

    monkeypatch.setenv("JWT_ALG", "none")
    with pytest.raises(RuntimeError):
        settings.jwt_algorithm()


def test_validate_reports_bad_token_ttl_at_startup(monkeypatch):
    monkeypatch.setenv("ACCESS_TOKEN_EXPIRE_MIN", "soon")
    with pytest.raises(RuntimeError, match="ACCESS_TOKEN_EXPIRE_MIN"):
        settings.validate()
