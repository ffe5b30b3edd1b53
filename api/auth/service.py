"""
Auth business logic.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, status

from core import settings

from . import schemas, security
from .repository import UserRepository

logger = logging.getLogger(__name__)

DEFAULT_ROLE = "standard"


def _to_user_response(user_row: dict) -> schemas.UserResponse:
    return schemas.UserResponse(
        id=int(user_row["id"]),
        name=str(user_row["name"]),
        email=str(user_row["email"]),
        role=str(user_row.get("role") or DEFAULT_ROLE),
    )


def _issue_token(user_row: dict) -> str:
    return security.issue_access_token(user_id=int(user_row["id"]), email=str(user_row["email"]))


async def register(users: UserRepository, payload: schemas.RegisterRequest) -> schemas.RegisterResponse:
    existing = await users.get_user_by_email(payload.email)
    if existing is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email is already registered.",
        )

    password_hash = security.hash_password(payload.password)
    user_row = await users.create_user(
        name=payload.name.strip(),
        email=payload.email,
        password_hash=password_hash,
        role=(payload.role or "").strip() or DEFAULT_ROLE,
    )
    logger.info("user_registered id=%s", user_row["id"])

    return schemas.RegisterResponse(
        message="User created.",
        token=_issue_token(user_row),
        user=_to_user_response(user_row),
    )


async def login(users: UserRepository, payload: schemas.LoginRequest) -> schemas.LoginResponse:
    user_row = await users.get_user_by_email(payload.email)
    if user_row is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password.",
        )

    is_valid = security.verify_password(payload.password.strip(), str(user_row.get("password_hash") or ""))
    if not is_valid:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password.",
        )

    return schemas.LoginResponse(token=_issue_token(user_row), user=_to_user_response(user_row))


async def reset_password(users: UserRepository, payload: schemas.ResetPasswordRequest) -> dict[str, bool]:
    """
    Development-only escape hatch for locked-out local accounts.
    """
    if not settings.is_development():
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied.")

    updated = await users.update_password(payload.email, security.hash_password(payload.new_password))
    if not updated:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")
    return {"ok": True}


async def get_user_from_access_token(users: UserRepository, access_token: str) -> dict:
    try:
        payload = security.decode_access_token(access_token)
    except security.AuthSecurityError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc

    subject = str(payload.get("sub") or "").strip()
    if not subject.isdigit():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid access token subject.",
        )

    user_row = await users.get_user_by_id(int(subject))
    if user_row is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found.",
        )
    return user_row
