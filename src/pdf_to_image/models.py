"""Domain models for PDF rasterization."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from .errors import InvalidOption


class ImageFormat(str, Enum):
    JPEG = "jpeg"
    PNG = "png"

    @property
    def extension(self) -> str:
        return "jpg" if self is ImageFormat.JPEG else "png"

    @property
    def mime_type(self) -> str:
        return f"image/{self.value}"

    @property
    def is_lossy(self) -> bool:
        return self is ImageFormat.JPEG

    @classmethod
    def parse(cls, value: "str | ImageFormat") -> "ImageFormat":
        if isinstance(value, ImageFormat):
            return value
        normalized = value.strip().lower().lstrip(".")
        if normalized in {"jpg", "jpeg"}:
            return cls.JPEG
        if normalized == "png":
            return cls.PNG
        raise InvalidOption(f"Unsupported image format: {value!r}")


@dataclass(frozen=True, slots=True)
class RenderSettings:
    """Engine-facing rendering parameters."""

    dpi: int
    quality: int
    image_format: ImageFormat

    @property
    def jpeg_quality(self) -> int | None:
        return self.quality if self.image_format.is_lossy else None


@dataclass(frozen=True, slots=True)
class ConversionOptions:
    """Configuration for a single conversion run."""

    dpi: int = 300
    quality: int = 90
    pages: str = "all"
    image_format: ImageFormat = ImageFormat.JPEG
    max_concurrency: int | None = None
    timeout_s: int | None = None

    def validate(self, max_dpi: int | None = None) -> None:
        if self.dpi < 1:
            raise InvalidOption(f"DPI must be a positive integer, got {self.dpi}")
        if max_dpi is not None and self.dpi > max_dpi:
            raise InvalidOption(f"DPI {self.dpi} exceeds the configured maximum of {max_dpi}")
        if not 1 <= self.quality <= 100:
            raise InvalidOption(f"Quality must be between 1 and 100, got {self.quality}")
        if self.max_concurrency is not None and self.max_concurrency < 1:
            raise InvalidOption("max_concurrency must be at least 1")

    def render_settings(self) -> RenderSettings:
        return RenderSettings(dpi=self.dpi, quality=self.quality, image_format=self.image_format)


@dataclass(frozen=True, slots=True)
class ConversionRequest:
    source_path: Path
    output_dir: Path
    options: ConversionOptions = field(default_factory=ConversionOptions)

    @property
    def base_name(self) -> str:
        return self.source_path.stem


@dataclass(frozen=True, slots=True)
class ConversionResult:
    """Result metadata for an individual conversion."""

    output_dir: Path
    pages_converted: tuple[int, ...]
    files: tuple[str, ...]
    image_format: ImageFormat

    @property
    def image_count(self) -> int:
        return len(self.pages_converted)

    @property
    def paths(self) -> list[Path]:
        return [self.output_dir / name for name in self.files]


__all__ = [
    "ImageFormat",
    "RenderSettings",
    "ConversionOptions",
    "ConversionRequest",
    "ConversionResult",
]
