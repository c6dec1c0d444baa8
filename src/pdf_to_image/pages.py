"""Page selector parsing and range coalescing."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Sequence

from .errors import EmptySelection, InvalidRangeFormat

ALL_KEYWORD = "all"

_INTEGER_RE = re.compile(r"[0-9]+")


@dataclass(frozen=True, slots=True)
class PageSelection:
    """Ascending, duplicate-free page numbers, or every page of the document."""

    pages: tuple[int, ...] = ()
    all_pages: bool = False

    @property
    def is_all(self) -> bool:
        return self.all_pages


ALL_PAGES = PageSelection(all_pages=True)


@dataclass(frozen=True, slots=True)
class ContiguousRange:
    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError(f"Range start {self.start} is after end {self.end}")

    def __len__(self) -> int:
        return self.end - self.start + 1

    def pages(self) -> range:
        return range(self.start, self.end + 1)


def _parse_page_number(token: str, term: str) -> int:
    token = token.strip()
    if not _INTEGER_RE.fullmatch(token):
        raise InvalidRangeFormat(f"Invalid page number: {token!r} in {term!r}")
    value = int(token)
    if value < 1:
        raise InvalidRangeFormat(f"Page numbers start at 1, got {token!r}")
    return value


def _check_limit(page: int, term: str, max_page: int | None) -> None:
    if max_page is not None and page > max_page:
        raise InvalidRangeFormat(f"Page {page} in {term!r} exceeds the limit of {max_page} pages")


def _expand_term(term: str, max_page: int | None = None) -> Iterable[int]:
    if "-" not in term:
        page = _parse_page_number(term, term)
        _check_limit(page, term, max_page)
        return (page,)
    parts = term.split("-")
    if len(parts) != 2:
        raise InvalidRangeFormat(f"Invalid page range format: {term!r}")
    start = _parse_page_number(parts[0], term)
    end = _parse_page_number(parts[1], term)
    if start > end:
        raise InvalidRangeFormat(f"Invalid page range {term!r}: start is after end")
    _check_limit(end, term, max_page)
    return range(start, end + 1)


def parse_page_selector(expression: str, max_page: int | None = None) -> PageSelection:
    """Parse ``"all"`` or a list such as ``"1-3, 7, 10-12"``.

    Raises :class:`InvalidRangeFormat` for malformed terms or pages above
    ``max_page`` (checked before a range is expanded) and
    :class:`EmptySelection` when nothing is selected.
    """

    stripped = expression.strip()
    if stripped == ALL_KEYWORD:
        return ALL_PAGES
    terms = [term.strip() for term in stripped.split(",")]
    if not any(terms):
        raise EmptySelection(f"Page selector {expression!r} selects no pages")
    pages: set[int] = set()
    for term in terms:
        if not term:
            raise InvalidRangeFormat(f"Empty term in page selector {expression!r}")
        pages.update(_expand_term(term, max_page))
    return PageSelection(pages=tuple(sorted(pages)))


def coalesce(pages: Sequence[int]) -> tuple[ContiguousRange, ...]:
    if not pages:
        return ()
    ranges: list[ContiguousRange] = []
    start = previous = pages[0]
    for page in pages[1:]:
        if page != previous + 1:
            ranges.append(ContiguousRange(start, previous))
            start = page
        previous = page
    ranges.append(ContiguousRange(start, previous))
    return tuple(ranges)


def flatten(ranges: Iterable[ContiguousRange]) -> list[int]:
    return [page for item in ranges for page in item.pages()]


__all__ = [
    "ALL_KEYWORD",
    "ALL_PAGES",
    "ContiguousRange",
    "PageSelection",
    "coalesce",
    "flatten",
    "parse_page_selector",
]
