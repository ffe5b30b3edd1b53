"""
Pydantic schemas for animal endpoints.
"""

from __future__ import annotations

from pydantic import BaseModel

from .service import AnimalView


class AnimalResponse(BaseModel):
    id: int
    name: str
    species: str
    birth_date: str | None = None
    rescue_date: str | None = None
    description: str = ""
    adopted: bool = False
    # Materialized photo: data URI or URL depending on the delivery mode.
    photo: str | None = None
    photo_name: str | None = None

    @classmethod
    def from_view(cls, view: AnimalView) -> "AnimalResponse":
        animal = view.animal
        return cls(
            id=animal.id,
            name=animal.name,
            species=animal.species,
            birth_date=animal.birth_date,
            rescue_date=animal.rescue_date,
            description=animal.description,
            adopted=animal.adopted,
            photo=view.photo,
            photo_name=animal.photo,
        )


class AdoptResponse(BaseModel):
    message: str
    id: int
    adopted: bool


class DeleteResponse(BaseModel):
    message: str
    id: int
