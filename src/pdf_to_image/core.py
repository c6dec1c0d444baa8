from __future__ import annotations

import os
import time
from pathlib import Path
from threading import Event

from .config import AppConfig
from .engines import RasterEngine, get_engine
from .errors import (
    ConversionError,
    InvalidSource,
    NormalizationMismatch,
    OutputDirectoryUnavailable,
    SourceNotFound,
    SourceTooLarge,
)
from .invoker import rasterize
from .logging import RunLogEntry, RunLogger, StageTimings
from .models import ConversionOptions, ConversionRequest, ConversionResult, ImageFormat
from .normalize import normalize_outputs
from .pages import PageSelection, coalesce, parse_page_selector
from .utils import generate_run_id, has_pdf_magic, size_within_limit


def convert(
    request: ConversionRequest,
    *,
    engine: RasterEngine,
    max_concurrency: int = 4,
    cancellation: Event | None = None,
    deadline: float | None = None,
    max_page: int | None = None,
) -> ConversionResult:
    """Rasterize the selected pages of ``request.source_path``.

    The selector is parsed before anything touches the filesystem and pages
    above ``max_page`` are rejected without expanding the range. On failure
    the output directory is left as it is; every engine process started for
    this call has exited by the time an error propagates.
    """

    options = request.options
    options.validate()
    selection = parse_page_selector(options.pages, max_page)
    _ensure_output_dir(request.output_dir)

    ranges = None if selection.is_all else coalesce(selection.pages)
    prefix = request.output_dir / request.base_name
    rasterize(
        engine,
        request.source_path,
        prefix,
        options.render_settings(),
        ranges,
        max_concurrency=options.max_concurrency or max_concurrency,
        cancellation=cancellation,
        deadline=deadline,
    )

    outputs = normalize_outputs(
        request.output_dir,
        request.base_name,
        options.image_format,
        prefix=prefix.name,
        file_pattern=engine.file_pattern,
    )
    _verify_outputs(selection, outputs)
    return ConversionResult(
        output_dir=request.output_dir,
        pages_converted=tuple(page for page, _ in outputs),
        files=tuple(name for _, name in outputs),
        image_format=options.image_format,
    )


def _ensure_output_dir(output_dir: Path) -> None:
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise OutputDirectoryUnavailable(f"Cannot create output directory {output_dir}: {exc}") from exc
    if not os.access(output_dir, os.W_OK | os.X_OK):
        raise OutputDirectoryUnavailable(f"Output directory is not writable: {output_dir}")


def _verify_outputs(selection: PageSelection, outputs: list[tuple[int, str]]) -> None:
    produced = [page for page, _ in outputs]
    if selection.is_all:
        if not produced:
            raise NormalizationMismatch("Rasterization finished but produced no page images")
        return
    missing = sorted(set(selection.pages) - set(produced))
    unexpected = sorted(set(produced) - set(selection.pages))
    if missing:
        raise NormalizationMismatch(
            f"No output for requested pages {', '.join(map(str, missing))}; "
            "they may be beyond the end of the document"
        )
    if unexpected:
        raise NormalizationMismatch(
            f"Unrequested pages found in output directory: {', '.join(map(str, unexpected))}"
        )


class ConversionService:
    def __init__(self, config: AppConfig, engine: RasterEngine | None = None) -> None:
        self._config = config
        self._engine = engine

    @property
    def config(self) -> AppConfig:
        return self._config

    @property
    def engine(self) -> RasterEngine:
        if self._engine is None:
            runtime = self._config.runtime
            self._engine = get_engine(runtime.engine, runtime.engine_path)
        return self._engine

    def default_options(self) -> ConversionOptions:
        defaults = self._config.runtime.defaults
        return ConversionOptions(
            dpi=defaults.dpi,
            quality=defaults.quality,
            pages=defaults.pages,
            image_format=ImageFormat.parse(defaults.image_format),
        )

    def convert_file(
        self,
        path: Path,
        output_dir: Path | None = None,
        *,
        options: ConversionOptions | None = None,
        run_id: str | None = None,
        cancellation: Event | None = None,
    ) -> ConversionResult:
        opts = options or self.default_options()
        run_id = run_id or generate_run_id()
        output_dir = output_dir or self._config.runtime.output_dir
        timings = StageTimings()
        start = time.perf_counter()
        size_bytes = 0
        try:
            size_bytes = self._validate_source(path)
            opts.validate(self._config.runtime.max_dpi)
            timings.validate_ms = (time.perf_counter() - start) * 1000
            convert_start = time.perf_counter()
            result = convert(
                ConversionRequest(source_path=path, output_dir=output_dir, options=opts),
                engine=self.engine,
                max_concurrency=self._config.runtime.max_concurrency,
                cancellation=cancellation,
                deadline=self._compute_deadline(start, opts),
                max_page=self._config.runtime.max_pages,
            )
            timings.convert_ms = (time.perf_counter() - convert_start) * 1000
        except ConversionError as exc:
            self._append_log(run_id, path, output_dir, opts, timings, size_bytes, error=exc)
            raise
        self._append_log(run_id, path, output_dir, opts, timings, size_bytes, result=result)
        return result

    def _validate_source(self, path: Path) -> int:
        if not path.exists():
            raise SourceNotFound(f"Source file does not exist: {path}")
        if not path.is_file():
            raise InvalidSource(f"Source path is not a file: {path}")
        if path.suffix.lower() != ".pdf":
            raise InvalidSource(f"File must be a PDF. Got: {path.suffix or '<none>'}")
        if not size_within_limit(path, self._config.runtime.max_file_size_mb):
            raise SourceTooLarge(f"File exceeds configured limit: {path.name}")
        if not has_pdf_magic(path):
            raise InvalidSource(f"File does not look like a PDF: {path.name}")
        return path.stat().st_size

    def _compute_deadline(self, start: float, options: ConversionOptions) -> float | None:
        candidates = [
            float(value)
            for value in (self._config.runtime.convert_timeout_s, options.timeout_s)
            if value is not None and value > 0
        ]
        if not candidates:
            return None
        return start + min(candidates)

    def _append_log(
        self,
        run_id: str,
        path: Path,
        output_dir: Path,
        options: ConversionOptions,
        timings: StageTimings,
        size_bytes: int,
        *,
        result: ConversionResult | None = None,
        error: ConversionError | None = None,
    ) -> None:
        runtime = self._config.runtime
        if not runtime.write_run_log:
            return
        logger = RunLogger(runtime.log_dir / runtime.log_file)
        logger.append(
            RunLogEntry(
                run_id=run_id,
                source=str(path),
                status="failure" if error is not None else "success",
                output_dir=str(output_dir),
                options={
                    "dpi": options.dpi,
                    "quality": options.quality,
                    "pages": options.pages,
                    "format": options.image_format.value,
                },
                pages_converted=list(result.pages_converted) if result else [],
                error_code=error.code if error is not None else None,
                error_message=str(error) if error is not None else None,
                timings=timings,
                size_bytes=size_bytes,
            )
        )


__all__ = ["ConversionService", "convert"]
