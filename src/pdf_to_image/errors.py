from __future__ import annotations

from typing import Sequence


class ConversionError(RuntimeError):
    code = "CONVERSION_ERROR"

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        if code is not None:
            self.code = code


class InvalidRangeFormat(ConversionError):
    code = "INVALID_RANGE"


class EmptySelection(ConversionError):
    code = "EMPTY_SELECTION"


class InvalidOption(ConversionError):
    code = "INVALID_OPTION"


class SourceNotFound(ConversionError):
    code = "NOT_FOUND"


class InvalidSource(ConversionError):
    code = "INVALID_PDF"


class SourceTooLarge(ConversionError):
    code = "SIZE_LIMIT"


class OutputDirectoryUnavailable(ConversionError):
    code = "OUTPUT_DIR_UNAVAILABLE"


class RasterizationFailed(ConversionError):
    """Raised when the rasterization engine cannot render a page range."""

    code = "RASTERIZATION_FAILED"

    def __init__(
        self,
        message: str,
        *,
        returncode: int | None = None,
        stderr: str = "",
        command: Sequence[str] = (),
    ) -> None:
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr
        self.command = tuple(command)


class NormalizationMismatch(ConversionError):
    code = "NORMALIZATION_MISMATCH"


class ConversionCanceled(ConversionError):
    code = "CANCELED"


class ConversionTimeout(ConversionError):
    code = "TIMEOUT"


class UnknownEngine(ConversionError):
    code = "UNKNOWN_ENGINE"


class StorageError(ConversionError):
    code = "STORAGE_ERROR"


__all__ = [
    "ConversionError",
    "InvalidRangeFormat",
    "EmptySelection",
    "InvalidOption",
    "SourceNotFound",
    "InvalidSource",
    "SourceTooLarge",
    "OutputDirectoryUnavailable",
    "RasterizationFailed",
    "NormalizationMismatch",
    "ConversionCanceled",
    "ConversionTimeout",
    "UnknownEngine",
    "StorageError",
]
