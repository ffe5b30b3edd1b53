"""
User persistence.
"""

from __future__ import annotations

from typing import Any

from core import db

_USER_COLUMNS = "id, name, email, password_hash, role, created_at"


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


class UserRepository:
    def __init__(self, executor: db.Executor) -> None:
        self._executor = executor

    async def create_user(self, *, name: str, email: str, password_hash: str, role: str = "standard") -> dict[str, Any]:
        row = await db.fetch_one(
            self._executor,
            f"""
            INSERT INTO users (name, email, password_hash, role)
            VALUES ($1, $2, $3, $4)
            RETURNING {_USER_COLUMNS}
            """,
            name,
            normalize_email(email),
            password_hash,
            role,
        )
        if row is None:
            raise RuntimeError("Failed to create user.")
        return row

    async def get_user_by_email(self, email: str) -> dict[str, Any] | None:
        return await db.fetch_one(
            self._executor,
            f"""
            SELECT {_USER_COLUMNS}
            FROM users
            WHERE lower(email) = lower($1)
            """,
            normalize_email(email),
        )

    async def get_user_by_id(self, user_id: int) -> dict[str, Any] | None:
        return await db.fetch_one(
            self._executor,
            f"""
            SELECT {_USER_COLUMNS}
            FROM users
            WHERE id = $1
            """,
            user_id,
        )

    async def update_password(self, email: str, password_hash: str) -> bool:
        row = await db.fetch_one(
            self._executor,
            """
            UPDATE users
            SET password_hash = $2
            WHERE lower(email) = lower($1)
            RETURNING id
            """,
            normalize_email(email),
            password_hash,
        )
        return row is not None
