from __future__ import annotations

from functools import lru_cache
from typing import Dict, Type

from ..errors import UnknownEngine
from .base import RangeAborted, RasterEngine, RenderControl, describe_range
from .pdf2image_engine import Pdf2ImageEngine
from .poppler import PdftoppmEngine

_ENGINE_CLASSES: Dict[str, Type[RasterEngine]] = {
    PdftoppmEngine.name: PdftoppmEngine,
    Pdf2ImageEngine.name: Pdf2ImageEngine,
}

DEFAULT_ENGINE = PdftoppmEngine.name


def available_engines() -> tuple[str, ...]:
    return tuple(sorted(_ENGINE_CLASSES))


@lru_cache(maxsize=8)
def get_engine(name: str = DEFAULT_ENGINE, path: str | None = None) -> RasterEngine:
    engine_cls = _ENGINE_CLASSES.get(name.strip().lower())
    if not engine_cls:
        raise UnknownEngine(
            f"No rasterization engine named {name!r}; choose one of {', '.join(available_engines())}"
        )
    return engine_cls(path) if path else engine_cls()  # type: ignore[call-arg]


__all__ = [
    "DEFAULT_ENGINE",
    "Pdf2ImageEngine",
    "PdftoppmEngine",
    "RangeAborted",
    "RasterEngine",
    "RenderControl",
    "available_engines",
    "describe_range",
    "get_engine",
]
