from __future__ import annotations

import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse

from api.dependencies import get_config
from pdf_to_image import __version__
from pdf_to_image.config import AppConfig

router = APIRouter(tags=["health"])


@router.get("/health", summary="Health check")
def health(request: Request, config: AppConfig = Depends(get_config)) -> dict[str, object]:
    started_at = getattr(request.app.state, "started_at", time.monotonic())
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "uptime": round(time.monotonic() - started_at),
        "version": __version__,
        "engine": config.runtime.engine,
        "storage": config.storage.backend,
    }


@router.get("/health/health", include_in_schema=False)
def malformed_health() -> RedirectResponse:
    return RedirectResponse("/health", status_code=301)


@router.post("/health/api/convert", include_in_schema=False)
def malformed_convert() -> RedirectResponse:
    return RedirectResponse("/api/convert", status_code=307)


@router.get("/", summary="Service description")
def index() -> dict[str, object]:
    return {
        "name": "PDF to Image Converter API",
        "version": __version__,
        "description": "Convert PDF files to JPG or PNG page images via REST API",
        "endpoints": {
            "health": "GET /health",
            "convert": "POST /api/convert",
            "images": "GET /files/{key}",
        },
        "usage": {
            "convert": {
                "method": "POST",
                "url": "/api/convert",
                "contentType": "multipart/form-data",
                "fields": {
                    "pdf": "PDF file (required)",
                    "dpi": "DPI resolution (optional, default: 300)",
                    "quality": "JPG quality 1-100 (optional, default: 90)",
                    "pages": "Page range such as 'all', '1-5' or '1,3,5' (optional, default: 'all')",
                    "format": "jpg or png (optional, default: jpg)",
                },
                "example": "curl -X POST -F 'pdf=@document.pdf' -F 'dpi=300' -F 'quality=90' /api/convert",
            },
        },
    }


__all__ = ["router"]
