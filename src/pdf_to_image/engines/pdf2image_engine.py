from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Iterable

from pdf2image import convert_from_path, pdfinfo_from_path
from pdf2image import exceptions as pdf2image_errors

from ..errors import ConversionTimeout, RasterizationFailed
from ..models import RenderSettings
from ..pages import ContiguousRange
from .base import RenderControl, describe_range

_LIBRARY_ERRORS = (
    pdf2image_errors.PDFInfoNotInstalledError,
    pdf2image_errors.PDFPageCountError,
    pdf2image_errors.PDFSyntaxError,
)


class Pdf2ImageEngine:
    """Renders through the pdf2image library, which drives poppler itself.

    Files come out as ``<prefix><NNNN>-<page>.<ext>``. The library blocks
    until poppler exits, so cancellation is only observed between calls.
    It also ignores pdftoppm's exit status, so every page of the range is
    checked against the returned paths after the call.
    """

    name = "pdf2image"
    # four digit batch counter between prefix and page
    file_pattern = r"\d{4}"

    def __init__(self, poppler_path: str | Path | None = None) -> None:
        self._poppler_path = str(poppler_path) if poppler_path else None

    def build_arguments(
        self,
        prefix: Path,
        settings: RenderSettings,
        page_range: ContiguousRange | None,
        control: RenderControl,
    ) -> dict[str, Any]:
        arguments: dict[str, Any] = {
            "dpi": settings.dpi,
            "output_folder": str(prefix.parent),
            "output_file": prefix.name,
            "fmt": settings.image_format.value,
            "paths_only": True,
            "strict": True,
            "thread_count": 1,
            "poppler_path": self._poppler_path,
        }
        if settings.jpeg_quality is not None:
            arguments["jpegopt"] = {"quality": settings.jpeg_quality}
        if page_range is not None:
            arguments["first_page"] = page_range.start
            arguments["last_page"] = page_range.end
        remaining = control.remaining()
        if remaining is not None:
            arguments["timeout"] = max(int(remaining), 1)
        return arguments

    def render(
        self,
        source: Path,
        prefix: Path,
        settings: RenderSettings,
        page_range: ContiguousRange | None,
        control: RenderControl,
    ) -> None:
        control.check()
        arguments = self.build_arguments(prefix, settings, page_range, control)
        try:
            info = pdfinfo_from_path(
                str(source),
                poppler_path=self._poppler_path,
                timeout=arguments.get("timeout"),
            )
            paths = convert_from_path(str(source), **arguments)
        except pdf2image_errors.PDFPopplerTimeoutError as exc:
            raise ConversionTimeout(
                f"{self.name} timed out on {describe_range(page_range)}"
            ) from exc
        except _LIBRARY_ERRORS as exc:
            raise RasterizationFailed(
                f"{self.name} failed on {describe_range(page_range)}: {exc}",
                stderr=str(exc),
            ) from exc
        except FileNotFoundError as exc:
            raise RasterizationFailed(f"{self.name} could not start poppler: {exc}") from exc
        control.check()

        expected = self.expected_pages(page_range, int(info["Pages"]))
        missing = sorted(set(expected) - self.rendered_pages(paths, prefix.name, settings))
        if missing:
            raise RasterizationFailed(
                f"{self.name} failed on {describe_range(page_range)}: "
                f"poppler wrote no image for page {', '.join(map(str, missing))}"
            )

    @staticmethod
    def expected_pages(page_range: ContiguousRange | None, page_count: int) -> range:
        """Pages of ``page_range`` that exist in a document of ``page_count`` pages."""

        if page_range is None:
            return range(1, page_count + 1)
        return range(page_range.start, min(page_range.end, page_count) + 1)

    def rendered_pages(self, paths: Iterable[str], stem: str, settings: RenderSettings) -> set[int]:
        pattern = re.compile(
            rf"^{re.escape(stem)}{self.file_pattern}-(?P<page>\d+)\.{settings.image_format.extension}$"
        )
        pages = set()
        for path in paths:
            match = pattern.match(Path(path).name)
            if match:
                pages.add(int(match.group("page")))
        return pages
