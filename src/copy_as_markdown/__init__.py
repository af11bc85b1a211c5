"""Profile-driven conversion of web pages to Markdown."""

__version__ = "0.1.0"

from .config import AppConfig, load_config
from .core import ConversionError, ConversionService
from .matching import ProfileMatcher
from .models import ConversionProfile, MarkdownDocument, PageContext, PageMetadata
from .packaging import BatchExporter
from .profiles import ProfileCollection, default_profile

__all__ = [
    "AppConfig",
    "BatchExporter",
    "ConversionError",
    "ConversionProfile",
    "ConversionService",
    "MarkdownDocument",
    "PageContext",
    "PageMetadata",
    "ProfileCollection",
    "ProfileMatcher",
    "__version__",
    "default_profile",
    "load_config",
]
