"""Runs the rasterization engine over a page plan."""

from __future__ import annotations

import concurrent.futures
from pathlib import Path
from threading import Event
from typing import Sequence

from .engines import RangeAborted, RasterEngine, RenderControl
from .errors import ConversionError
from .models import RenderSettings
from .pages import ContiguousRange


def rasterize(
    engine: RasterEngine,
    source: Path,
    prefix: Path,
    settings: RenderSettings,
    ranges: Sequence[ContiguousRange] | None,
    *,
    max_concurrency: int = 1,
    cancellation: Event | None = None,
    deadline: float | None = None,
) -> None:
    """Render ``ranges`` (or every page when ``None``) into files under ``prefix``.

    Returns only once every started engine call has finished. The first
    failure is raised after the remaining calls were told to stop.
    """

    control = RenderControl(cancellation=cancellation, deadline=deadline)
    if ranges is None:
        engine.render(source, prefix, settings, None, control)
        return
    if not ranges:
        return
    workers = max(1, min(max_concurrency, len(ranges)))
    if workers == 1:
        for page_range in ranges:
            engine.render(source, prefix, settings, page_range, control)
        return
    _run_parallel(engine, source, prefix, settings, ranges, control, workers)


def _run_parallel(
    engine: RasterEngine,
    source: Path,
    prefix: Path,
    settings: RenderSettings,
    ranges: Sequence[ContiguousRange],
    control: RenderControl,
    workers: int,
) -> None:
    first_error: ConversionError | None = None
    with concurrent.futures.ThreadPoolExecutor(
        max_workers=workers, thread_name_prefix="rasterize"
    ) as executor:
        futures = [
            executor.submit(engine.render, source, prefix, settings, page_range, control)
            for page_range in ranges
        ]
        for future in concurrent.futures.as_completed(futures):
            try:
                future.result()
            except (concurrent.futures.CancelledError, RangeAborted):
                continue
            except ConversionError as exc:
                if first_error is None:
                    first_error = exc
                _stop_pending(futures, control)
            except Exception:
                _stop_pending(futures, control)
                raise
    if first_error is not None:
        raise first_error


def _stop_pending(futures: list[concurrent.futures.Future[None]], control: RenderControl) -> None:
    control.abort.set()
    for future in futures:
        future.cancel()


__all__ = ["rasterize"]
