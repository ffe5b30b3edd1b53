"""
FastAPI router for animal endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Form
from fastapi.responses import StreamingResponse

from auth import dependencies as auth_dependencies

from . import codec, schemas
from .dependencies import get_animal_service, get_photo_upload, request_base_url
from .service import AnimalForm, AnimalService, PhotoUpload

router = APIRouter(prefix="/api/animals")

# Lets pages on other origins draw the streamed photos.
CROSS_ORIGIN_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Cross-Origin-Resource-Policy": "cross-origin",
}


@router.get("/imagem/{name}")
async def stream_photo(
    name: str,
    service: AnimalService = Depends(get_animal_service),
) -> StreamingResponse:
    """
    Stream raw photo bytes; 404 when the name does not resolve.
    """
    chunks = await service.open_photo_stream(name)
    return StreamingResponse(
        chunks,
        media_type=codec.media_type_for(name),
        headers=CROSS_ORIGIN_HEADERS,
    )


@router.get("", response_model=list[schemas.AnimalResponse])
async def list_animals(
    base_url: str = Depends(request_base_url),
    service: AnimalService = Depends(get_animal_service),
) -> list[schemas.AnimalResponse]:
    views = await service.list_animals(base_url=base_url)
    return [schemas.AnimalResponse.from_view(v) for v in views]


@router.post("", status_code=201, response_model=schemas.AnimalResponse)
async def create_animal(
    name: str | None = Form(default=None),
    species: str | None = Form(default=None),
    birth_date: str | None = Form(default=None),
    rescue_date: str | None = Form(default=None),
    description: str | None = Form(default=None),
    photo: PhotoUpload | None = Depends(get_photo_upload),
    base_url: str = Depends(request_base_url),
    service: AnimalService = Depends(get_animal_service),
) -> schemas.AnimalResponse:
    """
    Register an animal. A photo is mandatory.
    """
    form = AnimalForm(
        name=name,
        species=species,
        birth_date=birth_date,
        rescue_date=rescue_date,
        description=description,
    )
    view = await service.create_animal(form, photo, base_url=base_url)
    return schemas.AnimalResponse.from_view(view)


@router.get("/{animal_id}", response_model=schemas.AnimalResponse)
async def get_animal(
    animal_id: int,
    base_url: str = Depends(request_base_url),
    service: AnimalService = Depends(get_animal_service),
) -> schemas.AnimalResponse:
    view = await service.get_animal(animal_id, base_url=base_url)
    return schemas.AnimalResponse.from_view(view)


@router.put("/{animal_id}", response_model=schemas.AnimalResponse)
async def update_animal(
    animal_id: int,
    name: str | None = Form(default=None),
    species: str | None = Form(default=None),
    birth_date: str | None = Form(default=None),
    rescue_date: str | None = Form(default=None),
    description: str | None = Form(default=None),
    adopted: str | None = Form(default=None),
    photo: PhotoUpload | None = Depends(get_photo_upload),
    base_url: str = Depends(request_base_url),
    service: AnimalService = Depends(get_animal_service),
) -> schemas.AnimalResponse:
    """
    Partial update: only the fields sent are changed. A new photo replaces
    the old one.
    """
    form = AnimalForm(
        name=name,
        species=species,
        birth_date=birth_date,
        rescue_date=rescue_date,
        description=description,
        adopted=adopted,
    )
    view = await service.update_animal(animal_id, form, photo, base_url=base_url)
    return schemas.AnimalResponse.from_view(view)


@router.patch("/{animal_id}/adopt", response_model=schemas.AdoptResponse)
async def adopt_animal(
    animal_id: int,
    _: dict = Depends(auth_dependencies.get_current_user),
    service: AnimalService = Depends(get_animal_service),
) -> schemas.AdoptResponse:
    animal = await service.adopt_animal(animal_id)
    return schemas.AdoptResponse(
        message="Animal marked as adopted.",
        id=animal.id,
        adopted=animal.adopted,
    )


@router.delete("/{animal_id}", response_model=schemas.DeleteResponse)
async def delete_animal(
    animal_id: int,
    service: AnimalService = Depends(get_animal_service),
) -> schemas.DeleteResponse:
    await service.delete_animal(animal_id)
    return schemas.DeleteResponse(message="Animal deleted.", id=animal_id)
