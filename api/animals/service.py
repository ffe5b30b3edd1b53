"""
Animal lifecycle coordinator.

Keeps the animal row and its photo file consistent:
- create: validate -> save blob -> insert row (blob removed if the insert fails)
- update: load -> validate -> save new blob? -> update row -> retire old blob
- delete: load -> delete row -> delete blob
- reads materialize each photo through the `PhotoCodec`

A row is never committed pointing at a blob that does not exist. Cleanup
deletions are best-effort: they are logged and never change the outcome of
the request that triggered them.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterator
from contextlib import AsyncExitStack
from dataclasses import dataclass
from datetime import date
from typing import Any, TypeVar

from fastapi.concurrency import run_in_threadpool

from core import errors

from . import codec
from .blobs import BlobStore
from .codec import PhotoCodec
from .repository import Animal, AnimalRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")

_TRUE_VALUES = {"true", "1", "yes", "on"}
_FALSE_VALUES = {"false", "0", "no", "off"}


@dataclass(frozen=True)
class PhotoUpload:
    data: bytes
    media_type: str

    @property
    def ext(self) -> str:
        return codec.extension_for(self.media_type)


@dataclass(frozen=True)
class AnimalForm:
    """
    Raw client input. None means "not provided"; anything else, including
    an empty string, was sent explicitly.
    """

    name: str | None = None
    species: str | None = None
    birth_date: str | None = None
    rescue_date: str | None = None
    description: str | None = None
    adopted: str | bool | None = None


@dataclass(frozen=True)
class AnimalView:
    animal: Animal
    photo: str | None


def _required_text(value: str, field: str) -> str:
    text = value.strip()
    if not text:
        raise errors.ValidationError(f"'{field}' must not be empty.")
    return text


def _parse_date(value: str, field: str) -> date:
    try:
        return date.fromisoformat(value.strip())
    except ValueError as exc:
        raise errors.ValidationError(f"'{field}' must be a date in YYYY-MM-DD format.") from exc


def parse_bool(value: str | bool, field: str = "adopted") -> bool:
    if isinstance(value, bool):
        return value
    text = value.strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise errors.ValidationError(f"'{field}' must be true or false.")


def parse_patch(form: AnimalForm) -> dict[str, Any]:
    """
    Turn the provided form fields into a column patch. Absent fields are left
    out so the stored value survives; `adopted=false` is a real value.
    """
    patch: dict[str, Any] = {}
    if form.name is not None:
        patch["name"] = _required_text(form.name, "name")
    if form.species is not None:
        patch["species"] = _required_text(form.species, "species")
    if form.birth_date is not None:
        # Blank means "unknown".
        patch["birth_date"] = _parse_date(form.birth_date, "birth_date") if form.birth_date.strip() else None
    if form.rescue_date is not None and form.rescue_date.strip():
        patch["rescue_date"] = _parse_date(form.rescue_date, "rescue_date")
    if form.description is not None:
        patch["description"] = form.description
    if form.adopted is not None:
        patch["adopted"] = parse_bool(form.adopted)
    return patch


def parse_new_animal(form: AnimalForm, *, today: date) -> dict[str, Any]:
    if form.name is None or form.species is None or not form.name.strip() or not form.species.strip():
        raise errors.ValidationError("'name' and 'species' are required.")

    fields = parse_patch(form)
    fields.setdefault("birth_date", None)
    fields.setdefault("rescue_date", today)
    fields.setdefault("description", "")
    # New animals always start unadopted.
    fields["adopted"] = False
    return fields


class AnimalService:
    def __init__(
        self,
        records: AnimalRepository,
        blobs: BlobStore,
        photos: PhotoCodec,
        *,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._records = records
        self._blobs = blobs
        self._photos = photos
        self._today = today

    # --- reads ---------------------------------------------------------------

    async def list_animals(self, *, base_url: str = "") -> list[AnimalView]:
        animals = await self._persist(self._records.find_all())
        return list(await asyncio.gather(*(self._view(a, base_url) for a in animals)))

    async def get_animal(self, animal_id: int, *, base_url: str = "") -> AnimalView:
        animal = await self._load(animal_id)
        return await self._view(animal, base_url)

    async def open_photo_stream(self, name: str) -> Iterator[bytes]:
        return await run_in_threadpool(self._blobs.open_stream, name)

    # --- writes --------------------------------------------------------------

    async def create_animal(
        self,
        form: AnimalForm,
        photo: PhotoUpload | None,
        *,
        base_url: str = "",
    ) -> AnimalView:
        if photo is None or not photo.data:
            raise errors.ValidationError("A photo is required.")
        fields = parse_new_animal(form, today=self._today())

        async with AsyncExitStack() as rollback:
            staged = await self._stage(photo)
            rollback.push_async_callback(self._discard_blob, staged, "create_failed")

            fields["photo"] = staged
            animal = await self._persist(self._records.create(fields))
            rollback.pop_all()

        logger.info("animal_created id=%s photo=%s", animal.id, staged)
        return await self._view(animal, base_url)

    async def update_animal(
        self,
        animal_id: int,
        form: AnimalForm,
        photo: PhotoUpload | None = None,
        *,
        base_url: str = "",
    ) -> AnimalView:
        current = await self._load(animal_id)
        patch = parse_patch(form)
        staged: str | None = None

        async with AsyncExitStack() as rollback:
            if photo is not None and photo.data:
                staged = await self._stage(photo)
                rollback.push_async_callback(self._discard_blob, staged, "update_failed")
                patch["photo"] = staged

            updated = await self._persist(self._records.update(animal_id, patch))
            if updated is None:
                raise errors.NotFound("Animal not found.")
            rollback.pop_all()

        if staged is not None and current.photo and current.photo != staged:
            await self._discard_blob(current.photo, "superseded")

        logger.info("animal_updated id=%s fields=%s", animal_id, sorted(patch))
        return await self._view(updated, base_url)

    async def adopt_animal(self, animal_id: int) -> Animal:
        await self._load(animal_id)
        updated = await self._persist(self._records.update(animal_id, {"adopted": True}))
        if updated is None:
            raise errors.NotFound("Animal not found.")
        logger.info("animal_adopted id=%s", animal_id)
        return updated

    async def delete_animal(self, animal_id: int) -> None:
        # Unknown ids abort here.
        await self._persist(self._records.find_photo_ref(animal_id))

        removed = await self._persist(self._records.delete(animal_id))
        if removed is None:
            raise errors.NotFound("Animal not found.")

        # The deleted row, not the earlier read, says which photo to retire.
        photo_ref = removed.photo
        if photo_ref:
            await self._discard_blob(photo_ref, "animal_deleted")
        logger.info("animal_deleted id=%s photo=%s", animal_id, photo_ref)

    # --- helpers -------------------------------------------------------------

    async def _load(self, animal_id: int) -> Animal:
        animal = await self._persist(self._records.find_by_id(animal_id))
        if animal is None:
            raise errors.NotFound("Animal not found.")
        return animal

    async def _persist(self, op: Awaitable[T]) -> T:
        """
        Await a record store call; anything that is not already part of the
        error taxonomy becomes `PersistenceError`.
        """
        try:
            return await op
        except errors.AppError:
            raise
        except Exception as exc:
            raise errors.PersistenceError("Database operation failed.") from exc

    async def _stage(self, photo: PhotoUpload) -> str:
        return await run_in_threadpool(self._blobs.save, photo.data, photo.ext)

    async def _discard_blob(self, name: str, reason: str) -> None:
        try:
            await run_in_threadpool(self._blobs.delete, name)
        except (errors.StorageIO, OSError) as exc:
            logger.warning("blob_cleanup_failed name=%s reason=%s error=%s", name, reason, exc)

    async def _view(self, animal: Animal, base_url: str) -> AnimalView:
        photo = await self._photos.materialize(animal.photo, base_url=base_url)
        return AnimalView(animal=animal, photo=photo)
