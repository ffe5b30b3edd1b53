from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from animals import router as animals_router
from animals.blobs import BlobStore
from animals.codec import PhotoCodec
from animals.repository import AnimalRepository
from animals.service import AnimalService
from auth import router as auth_router
from auth.repository import UserRepository
from core import db, errors, log, settings

logger = logging.getLogger(__name__)


def build_animal_service(executor: db.Executor, upload_dir: str | Path) -> AnimalService:
    blobs = BlobStore(upload_dir)
    photos = PhotoCodec(
        blobs,
        mode=settings.photo_delivery_mode(),
        cache_bust=settings.photo_cache_bust(),
    )
    return AnimalService(AnimalRepository(executor), blobs, photos)


def _error_body(message: str, exc: BaseException, *, internal: bool) -> dict:
    body: dict = {"error": message}
    # Internal error text only leaves the process in development.
    if internal and settings.is_development():
        body["details"] = str(exc.__cause__ or exc)
    return body


async def app_error_handler(_: Request, exc: errors.AppError) -> JSONResponse:
    internal = exc.status_code >= 500
    if internal:
        logger.error("request_failed status=%s error=%s cause=%r", exc.status_code, exc, exc.__cause__)
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc.message, exc, internal=internal))


def _validation_message(exc: RequestValidationError) -> str:
    problems = []
    for err in exc.errors():
        # Drop the "body"/"path"/"query" prefix; clients only know field names.
        loc = [str(part) for part in err.get("loc", ())[1:]]
        field = ".".join(loc) or "request"
        problems.append(f"{field}: {err.get('msg', 'invalid value')}")
    if not problems:
        return "Invalid request."
    return "Invalid request. " + "; ".join(problems)


async def request_validation_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content=_error_body(_validation_message(exc), exc, internal=False))


async def http_error_handler(_: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(str(exc.detail), exc, internal=exc.status_code >= 500),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(_: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error")
    return JSONResponse(status_code=500, content=_error_body("Internal server error", exc, internal=True))


def create_app(
    *,
    animals: AnimalService | None = None,
    users: UserRepository | None = None,
    upload_dir: str | Path | None = None,
) -> FastAPI:
    """
    Build the API. Prebuilt `animals`/`users` skip the database pool entirely.
    """
    upload_root = Path(upload_dir or settings.upload_dir())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        settings.validate()
        log.configure_logging()
        upload_root.mkdir(parents=True, exist_ok=True)

        pool = None
        if animals is None or users is None:
            # One pool per process, shared by every repository.
            pool = await db.create_pool()
        app.state.animals = animals or build_animal_service(pool, upload_root)
        app.state.users = users or UserRepository(pool)
        logger.info(
            "startup env=%s upload_dir=%s photo_mode=%s",
            settings.app_env(),
            upload_root,
            settings.photo_delivery_mode(),
        )
        try:
            yield
        finally:
            if pool is not None:
                await pool.close()

    app = FastAPI(lifespan=lifespan)

    # Allow the known frontends to call this API from the browser.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH"],
        allow_headers=["Content-Type", "Authorization", "Accept"],
    )

    app.add_exception_handler(errors.AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # Target of the "redirect" photo delivery mode.
    app.mount("/uploads", StaticFiles(directory=upload_root, check_dir=False), name="uploads")

    app.include_router(animals_router.router, tags=["animals"])
    app.include_router(auth_router.router, tags=["auth"])

    @app.get("/health")
    def health() -> dict:
        return {"status": "online", "timestamp": datetime.now(timezone.utc).isoformat()}

    return app


app = create_app()
