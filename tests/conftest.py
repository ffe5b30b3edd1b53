from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any

import pytest
from fastapi.testclient import TestClient

from animals import repository
from animals.blobs import BlobStore
from animals.codec import PhotoCodec
from animals.service import AnimalService
from auth.repository import normalize_email
from core import errors
from main import create_app

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"rex-photo"
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"rex-new-photo"
TODAY = date(2026, 3, 14)


class InMemoryAnimalRepository:
    """
    Stands in for Postgres. `fail_with[op] = exc` makes that operation raise.
    """

    def __init__(self) -> None:
        self.rows: dict[int, dict[str, Any]] = {}
        self.fail_with: dict[str, Exception] = {}
        self._next_id = 1

    def _maybe_fail(self, op: str) -> None:
        exc = self.fail_with.get(op)
        if exc is not None:
            raise exc

    def seed(self, **fields: Any) -> repository.Animal:
        row = {
            "id": self._next_id,
            "name": "Seed",
            "species": "cat",
            "birth_date": None,
            "rescue_date": TODAY,
            "description": "",
            "adopted": False,
            "photo": None,
        }
        row.update(fields)
        self.rows[self._next_id] = row
        self._next_id += 1
        return repository.row_to_animal(row)

    async def create(self, fields: dict[str, Any]) -> repository.Animal:
        self._maybe_fail("create")
        repository.build_insert(fields)
        return self.seed(**fields)

    async def find_by_id(self, animal_id: int) -> repository.Animal | None:
        self._maybe_fail("find_by_id")
        row = self.rows.get(animal_id)
        return repository.row_to_animal(row) if row is not None else None

    async def find_all(self) -> list[repository.Animal]:
        self._maybe_fail("find_all")
        return [repository.row_to_animal(self.rows[k]) for k in sorted(self.rows)]

    async def find_photo_ref(self, animal_id: int) -> str | None:
        self._maybe_fail("find_photo_ref")
        row = self.rows.get(animal_id)
        if row is None:
            raise errors.NotFound("Animal not found.")
        return row["photo"]

    async def update(self, animal_id: int, patch: dict[str, Any]) -> repository.Animal | None:
        self._maybe_fail("update")
        row = self.rows.get(animal_id)
        if row is None:
            return None
        if patch:
            repository.build_update(animal_id, patch)
        row.update(patch)
        return repository.row_to_animal(row)

    async def delete(self, animal_id: int) -> repository.Animal | None:
        self._maybe_fail("delete")
        row = self.rows.pop(animal_id, None)
        return repository.row_to_animal(row) if row is not None else None


class InMemoryUserRepository:
    def __init__(self) -> None:
        self.rows: dict[int, dict[str, Any]] = {}

    async def create_user(self, *, name: str, email: str, password_hash: str, role: str = "standard") -> dict:
        user_id = len(self.rows) + 1
        row = {
            "id": user_id,
            "name": name,
            "email": normalize_email(email),
            "password_hash": password_hash,
            "role": role,
            "created_at": datetime.now(timezone.utc),
        }
        self.rows[user_id] = row
        return row

    async def get_user_by_email(self, email: str) -> dict | None:
        wanted = normalize_email(email)
        return next((r for r in self.rows.values() if r["email"] == wanted), None)

    async def get_user_by_id(self, user_id: int) -> dict | None:
        return self.rows.get(user_id)

    async def update_password(self, email: str, password_hash: str) -> bool:
        row = await self.get_user_by_email(email)
        if row is None:
            return False
        row["password_hash"] = password_hash
        return True


def blob_names(blobs: BlobStore) -> list[str]:
    return sorted(p.name for p in blobs.root.iterdir())


@pytest.fixture
def blobs(tmp_path) -> BlobStore:
    return BlobStore(tmp_path / "uploads")


@pytest.fixture
def records() -> InMemoryAnimalRepository:
    return InMemoryAnimalRepository()


@pytest.fixture
def users() -> InMemoryUserRepository:
    return InMemoryUserRepository()


@pytest.fixture
def service(records, blobs) -> AnimalService:
    return AnimalService(records, blobs, PhotoCodec(blobs), today=lambda: TODAY)


@pytest.fixture
def client(service, users, blobs):
    app = create_app(animals=service, users=users, upload_dir=blobs.root)
    with TestClient(app) as test_client:
        yield test_client
