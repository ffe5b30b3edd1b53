"""
Auth API endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from . import schemas, service
from .dependencies import get_user_repository
from .repository import UserRepository

router = APIRouter(prefix="/api/auth")


@router.post("/register", status_code=201, response_model=schemas.RegisterResponse)
async def register(
    payload: schemas.RegisterRequest,
    users: UserRepository = Depends(get_user_repository),
) -> schemas.RegisterResponse:
    return await service.register(users, payload)


@router.post("/login", response_model=schemas.LoginResponse)
async def login(
    payload: schemas.LoginRequest,
    users: UserRepository = Depends(get_user_repository),
) -> schemas.LoginResponse:
    return await service.login(users, payload)


@router.post("/reset-password")
async def reset_password(
    payload: schemas.ResetPasswordRequest,
    users: UserRepository = Depends(get_user_repository),
) -> dict:
    return await service.reset_password(users, payload)
