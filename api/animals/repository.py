"""
Animal persistence.
This module is where animal-related SQL lives.

Dates come back from Postgres as `datetime.date`; every read normalizes them
to `YYYY-MM-DD` text so callers never see the storage representation.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

import asyncpg

from core import db, errors

# Columns a caller may write. `id` is store-assigned and immutable.
WRITABLE_COLUMNS = (
    "name",
    "species",
    "birth_date",
    "rescue_date",
    "description",
    "adopted",
    "photo",
)

_SELECT_COLUMNS = "id, name, species, birth_date, rescue_date, description, adopted, photo"

_DB_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)


@dataclass(frozen=True)
class Animal:
    id: int
    name: str
    species: str
    birth_date: str | None
    rescue_date: str | None
    description: str
    adopted: bool
    photo: str | None


def date_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    text = str(value).strip()
    return text[:10] if text else None


def row_to_animal(row: dict[str, Any]) -> Animal:
    return Animal(
        id=int(row["id"]),
        name=str(row["name"]),
        species=str(row["species"]),
        birth_date=date_text(row.get("birth_date")),
        rescue_date=date_text(row.get("rescue_date")),
        description=str(row.get("description") or ""),
        adopted=bool(row.get("adopted", False)),
        photo=row.get("photo") or None,
    )


def _checked_columns(fields: dict[str, Any]) -> list[str]:
    unknown = set(fields) - set(WRITABLE_COLUMNS)
    if unknown:
        raise ValueError(f"Unknown animal columns: {sorted(unknown)}")
    # Keep a stable column order so statements are cacheable.
    return [c for c in WRITABLE_COLUMNS if c in fields]


def build_insert(fields: dict[str, Any]) -> tuple[str, list[Any]]:
    columns = _checked_columns(fields)
    if not columns:
        raise ValueError("build_insert called with no columns.")
    placeholders = ", ".join(f"${i}" for i in range(1, len(columns) + 1))
    sql = (
        f"INSERT INTO animals ({', '.join(columns)}) "
        f"VALUES ({placeholders}) "
        f"RETURNING {_SELECT_COLUMNS}"
    )
    return sql, [fields[c] for c in columns]


def build_update(animal_id: int, patch: dict[str, Any]) -> tuple[str, list[Any]]:
    """
    Build a partial UPDATE: only the columns present in `patch` are touched,
    everything else keeps its stored value.
    """
    columns = _checked_columns(patch)
    if not columns:
        raise ValueError("build_update called with an empty patch.")
    assignments = ", ".join(f"{c} = ${i}" for i, c in enumerate(columns, start=2))
    sql = (
        f"UPDATE animals SET {assignments}, updated_at = now() "
        f"WHERE id = $1 "
        f"RETURNING {_SELECT_COLUMNS}"
    )
    return sql, [animal_id, *(patch[c] for c in columns)]


class AnimalRepository:
    """
    Record store for animals. Any driver failure surfaces as
    `PersistenceError`; a missing row is None, never an exception,
    except in `find_photo_ref` where None already means "no photo".
    """

    def __init__(self, executor: db.Executor) -> None:
        self._executor = executor

    async def _fetch_one(self, sql: str, *args: Any) -> dict[str, Any] | None:
        try:
            return await db.fetch_one(self._executor, sql, *args)
        except _DB_ERRORS as exc:
            raise errors.PersistenceError("Database operation failed.") from exc

    async def _fetch_all(self, sql: str, *args: Any) -> list[dict[str, Any]]:
        try:
            return await db.fetch_all(self._executor, sql, *args)
        except _DB_ERRORS as exc:
            raise errors.PersistenceError("Database operation failed.") from exc

    async def create(self, fields: dict[str, Any]) -> Animal:
        sql, args = build_insert(fields)
        row = await self._fetch_one(sql, *args)
        if row is None:
            raise errors.PersistenceError("Failed to insert animal.")
        return row_to_animal(row)

    async def find_by_id(self, animal_id: int) -> Animal | None:
        row = await self._fetch_one(
            f"SELECT {_SELECT_COLUMNS} FROM animals WHERE id = $1",
            animal_id,
        )
        return row_to_animal(row) if row is not None else None

    async def find_all(self) -> list[Animal]:
        rows = await self._fetch_all(f"SELECT {_SELECT_COLUMNS} FROM animals ORDER BY id")
        return [row_to_animal(r) for r in rows]

    async def find_photo_ref(self, animal_id: int) -> str | None:
        """
        Current photo name of an animal (None when it has no photo).
        Raises `NotFound` for an unknown id.
        """
        row = await self._fetch_one("SELECT photo FROM animals WHERE id = $1", animal_id)
        if row is None:
            raise errors.NotFound("Animal not found.")
        return row.get("photo") or None

    async def update(self, animal_id: int, patch: dict[str, Any]) -> Animal | None:
        if not patch:
            return await self.find_by_id(animal_id)
        sql, args = build_update(animal_id, patch)
        row = await self._fetch_one(sql, *args)
        return row_to_animal(row) if row is not None else None

    async def delete(self, animal_id: int) -> Animal | None:
        """
        Remove the row and return it as it was at deletion time, so the caller
        retires the photo the row really pointed at.
        """
        row = await self._fetch_one(
            f"DELETE FROM animals WHERE id = $1 RETURNING {_SELECT_COLUMNS}",
            animal_id,
        )
        return row_to_animal(row) if row is not None else None
