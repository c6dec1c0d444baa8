from __future__ import annotations

import time
from dataclasses import dataclass, field
from pathlib import Path
from threading import Event
from typing import Protocol

from ..errors import ConversionCanceled, ConversionError, ConversionTimeout
from ..models import RenderSettings
from ..pages import ContiguousRange


class RangeAborted(ConversionCanceled):
    """A page range stopped because a sibling range failed first."""


@dataclass(slots=True)
class RenderControl:
    """Stop signals shared by every engine call of one conversion.

    ``cancellation`` belongs to the caller, ``abort`` is set by the invoker
    when a sibling range fails, ``deadline`` is a ``time.perf_counter`` value.
    """

    cancellation: Event | None = None
    deadline: float | None = None
    abort: Event = field(default_factory=Event)
    poll_interval: float = 0.1

    def interruption(self) -> ConversionError | None:
        if self.cancellation is not None and self.cancellation.is_set():
            return ConversionCanceled("Conversion canceled by caller")
        if self.abort.is_set():
            return RangeAborted("Conversion aborted after another page range failed")
        if self.deadline is not None and time.perf_counter() > self.deadline:
            return ConversionTimeout("Conversion exceeded allotted time")
        return None

    def check(self) -> None:
        error = self.interruption()
        if error is not None:
            raise error

    def remaining(self) -> float | None:
        if self.deadline is None:
            return None
        return max(self.deadline - time.perf_counter(), 0.0)


class RasterEngine(Protocol):
    name: str
    # regex matched between the file prefix and "-<page>"
    file_pattern: str

    def render(
        self,
        source: Path,
        prefix: Path,
        settings: RenderSettings,
        page_range: ContiguousRange | None,
        control: RenderControl,
    ) -> None:  # pragma: no cover - interface
        """Write one raster file per page as ``<prefix>...-<page>.<ext>``.

        ``page_range`` of ``None`` renders every page of the document.
        """
        ...


def describe_range(page_range: ContiguousRange | None) -> str:
    if page_range is None:
        return "all pages"
    if page_range.start == page_range.end:
        return f"page {page_range.start}"
    return f"pages {page_range.start}-{page_range.end}"
