"""Maps conversion failures onto HTTP responses."""

from __future__ import annotations

from fastapi.responses import JSONResponse

from pdf_to_image.errors import ConversionError

_CLIENT_ERRORS = frozenset(
    {
        "INVALID_RANGE",
        "EMPTY_SELECTION",
        "INVALID_OPTION",
        "INVALID_PDF",
        "NOT_FOUND",
        "NO_FILE",
    }
)


def status_for(exc: ConversionError) -> int:
    if exc.code in _CLIENT_ERRORS:
        return 400
    if exc.code == "SIZE_LIMIT":
        return 413
    if exc.code == "TIMEOUT":
        return 504
    if exc.code == "CANCELED":
        return 499
    return 500


def error_response(exc: ConversionError, processing_ms: float | None = None) -> JSONResponse:
    payload: dict[str, object] = {"success": False, "error": str(exc), "code": exc.code}
    if processing_ms is not None:
        payload["processingTime"] = f"{round(processing_ms)}ms"
    return JSONResponse(status_code=status_for(exc), content=payload)


__all__ = ["error_response", "status_for"]
