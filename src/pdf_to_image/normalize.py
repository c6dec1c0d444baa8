"""Renames engine output files to ``<base>_page_<NNN>.<ext>``."""

from __future__ import annotations

import re
from pathlib import Path

from .errors import NormalizationMismatch
from .models import ImageFormat

PAGE_PADDING = 3


def canonical_filename(base_name: str, page: int, image_format: ImageFormat) -> str:
    return f"{base_name}_page_{page:0{PAGE_PADDING}d}.{image_format.extension}"


def _canonical_pattern(base_name: str, image_format: ImageFormat) -> re.Pattern[str]:
    return re.compile(
        rf"^{re.escape(base_name)}_page_(?P<page>\d{{{PAGE_PADDING},}})\.{image_format.extension}$"
    )


def _engine_pattern(image_format: ImageFormat, prefix: str | None, file_pattern: str) -> re.Pattern[str]:
    stem = re.escape(prefix) + file_pattern if prefix is not None else r".+"
    return re.compile(rf"^{stem}-(?P<page>\d+)\.{image_format.extension}$")


def normalize_outputs(
    directory: Path,
    base_name: str,
    image_format: ImageFormat,
    prefix: str | None = None,
    file_pattern: str = "",
) -> list[tuple[int, str]]:
    """Rename engine files in ``directory`` and return ``(page, filename)`` pairs.

    Files already in canonical form are kept as they are, so running this
    twice is a no-op. Engine files are ``<prefix><file_pattern>-<page>.<ext>``
    and anything else is ignored. A rename onto an existing file raises
    :class:`NormalizationMismatch`.
    """

    canonical = _canonical_pattern(base_name, image_format)
    engine = _engine_pattern(image_format, prefix, file_pattern)
    present: dict[int, str] = {}
    pending: list[tuple[int, str]] = []

    for entry in sorted(directory.iterdir()):
        if not entry.is_file():
            continue
        match = canonical.match(entry.name)
        if match:
            page = int(match.group("page"))
            if entry.name == canonical_filename(base_name, page, image_format):
                present[page] = entry.name
            continue
        match = engine.match(entry.name)
        if match:
            pending.append((int(match.group("page")), entry.name))

    for page, name in pending:
        target = canonical_filename(base_name, page, image_format)
        if page in present or (directory / target).exists():
            raise NormalizationMismatch(
                f"Cannot rename {name} to {target}: page {page} already has an output file"
            )
        try:
            (directory / name).rename(directory / target)
        except OSError as exc:
            raise NormalizationMismatch(f"Cannot rename {name} to {target}: {exc}") from exc
        present[page] = target

    return sorted(present.items())


__all__ = ["PAGE_PADDING", "canonical_filename", "normalize_outputs"]
