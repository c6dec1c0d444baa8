from __future__ import annotations

import asyncio
import logging
import tempfile
import time
from pathlib import Path
from threading import Event

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import JSONResponse

from api.dependencies import get_config, get_service, get_storage
from api.errors import error_response
from api.utils import run_sync
from pdf_to_image.config import AppConfig
from pdf_to_image.core import ConversionService
from pdf_to_image.errors import ConversionError, InvalidOption, InvalidSource, SourceTooLarge
from pdf_to_image.models import ConversionOptions, ImageFormat
from pdf_to_image.storage import StorageProvider, publish_result
from pdf_to_image.utils import generate_run_id, slugify

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["conversion"])

PDF_CONTENT_TYPES = frozenset({"application/pdf", "application/x-pdf"})


@router.post("/convert", summary="Convert a PDF into page images")
async def convert_pdf(
    pdf: UploadFile | None = File(None),
    dpi: str | None = Form(None),
    quality: str | None = Form(None),
    pages: str | None = Form(None),
    image_format: str | None = Form(None, alias="format"),
    service: ConversionService = Depends(get_service),
    storage: StorageProvider = Depends(get_storage),
    config: AppConfig = Depends(get_config),
) -> JSONResponse:
    started = time.perf_counter()
    run_id = generate_run_id("conversion")
    cancellation = Event()
    try:
        if pdf is None:
            raise InvalidSource("No PDF file uploaded", code="NO_FILE")
        _check_pdf_upload(pdf)
        options = _build_options(service, dpi, quality, pages, image_format)
        content = await pdf.read()
        _enforce_size_limit(content, config)
        with tempfile.TemporaryDirectory(prefix="pdf2img-") as tmp:
            workdir = Path(tmp)
            source = workdir / f"{slugify(Path(pdf.filename or 'document').stem)}.pdf"
            source.write_bytes(content)
            result = await run_sync(
                service.convert_file,
                source,
                workdir / "output",
                options=options,
                run_id=run_id,
                cancellation=cancellation,
            )
            stored = await run_sync(
                publish_result,
                storage,
                result,
                run_id,
                prefix=config.storage.output_prefix,
                expires_seconds=config.storage.signed_url_ttl_s,
            )
    except asyncio.CancelledError:
        cancellation.set()
        raise
    except ConversionError as exc:
        processing_ms = (time.perf_counter() - started) * 1000
        logger.warning("conversion failed", extra={"run_id": run_id, "code": exc.code, "error": str(exc)})
        return error_response(exc, processing_ms)

    processing_ms = (time.perf_counter() - started) * 1000
    logger.info(
        "conversion completed",
        extra={"run_id": run_id, "image_count": result.image_count, "processing_ms": round(processing_ms)},
    )
    return JSONResponse(
        {
            "success": True,
            "message": "PDF converted successfully",
            "processingTime": f"{round(processing_ms)}ms",
            "data": {
                "outputDir": f"{config.storage.output_prefix}{run_id}",
                "imageCount": result.image_count,
                "pagesConverted": list(result.pages_converted),
                "format": result.image_format.extension,
                "images": [
                    {"filename": name, "url": item.url}
                    for name, item in zip(result.files, stored)
                ],
            },
        }
    )


def _check_pdf_upload(upload: UploadFile) -> None:
    filename = upload.filename or ""
    if upload.content_type in PDF_CONTENT_TYPES or filename.lower().endswith(".pdf"):
        return
    raise InvalidSource(f"Only PDF files are allowed. Got: {filename or upload.content_type}")


def _parse_int(value: str | None, field: str, default: int) -> int:
    if value is None or not value.strip():
        return default
    try:
        return int(value.strip())
    except ValueError as exc:
        raise InvalidOption(f"{field} must be an integer. Got: {value!r}") from exc


def _build_options(
    service: ConversionService,
    dpi: str | None,
    quality: str | None,
    pages: str | None,
    image_format: str | None,
) -> ConversionOptions:
    defaults = service.default_options()
    return ConversionOptions(
        dpi=_parse_int(dpi, "dpi", defaults.dpi),
        quality=_parse_int(quality, "quality", defaults.quality),
        pages=pages if pages is not None and pages.strip() else defaults.pages,
        image_format=ImageFormat.parse(image_format) if image_format else defaults.image_format,
    )


def _enforce_size_limit(payload: bytes, config: AppConfig) -> None:
    max_bytes = config.runtime.max_file_size_mb * 1024 * 1024
    if len(payload) > max_bytes:
        raise SourceTooLarge(f"File too large. Maximum size is {config.runtime.max_file_size_mb}MB.")


__all__ = ["router"]
