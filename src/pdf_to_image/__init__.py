"""PDF to page image conversion toolkit."""

from .config import AppConfig, load_config
from .core import ConversionService, convert
from .errors import ConversionError
from .models import ConversionOptions, ConversionRequest, ConversionResult, ImageFormat
from .pages import coalesce, parse_page_selector

__version__ = "1.0.0"

__all__ = [
    "AppConfig",
    "load_config",
    "ConversionError",
    "ConversionOptions",
    "ConversionRequest",
    "ConversionResult",
    "ConversionService",
    "ImageFormat",
    "coalesce",
    "convert",
    "parse_page_selector",
]
