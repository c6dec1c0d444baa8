from __future__ import annotations

import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pdf_to_image import __version__
from pdf_to_image.config import AppConfig
from pdf_to_image.core import ConversionService
from pdf_to_image.errors import ConversionError
from pdf_to_image.settings import Settings, get_settings
from pdf_to_image.storage import StorageJanitor, StorageProvider, create_storage_provider

from .errors import error_response
from .routers import convert, files, health


def create_app(
    config: AppConfig | None = None,
    *,
    settings: Settings | None = None,
    service: ConversionService | None = None,
    storage: StorageProvider | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    config = config or settings.load_app_config()
    if not config.runtime.enable_api:
        raise RuntimeError("HTTP API is disabled. Enable it via configuration or environment.")

    app = FastAPI(title="PDF to Image Converter", version=__version__)
    app.state.config = config
    app.state.service = service or ConversionService(config)
    app.state.storage = storage or create_storage_provider(config.storage, settings)
    app.state.janitor = StorageJanitor(
        app.state.storage,
        (config.storage.output_prefix,),
        config.storage.cleanup_max_age_minutes,
        config.storage.cleanup_interval_s,
    )
    app.state.started_at = time.monotonic()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.api.cors_origins),
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    app.include_router(health.router)
    app.include_router(convert.router)
    app.include_router(files.router)

    @app.exception_handler(ConversionError)
    async def _conversion_error(request: Request, exc: ConversionError) -> JSONResponse:
        return error_response(exc)

    @app.on_event("startup")
    async def _startup() -> None:  # pragma: no cover - FastAPI lifecycle
        app.state.janitor.start()

    @app.on_event("shutdown")
    async def _shutdown() -> None:  # pragma: no cover - FastAPI lifecycle
        janitor: StorageJanitor = app.state.janitor
        janitor.stop()

    return app


__all__ = ["create_app"]
