"""Settings and source catalogs."""

from .settings import Settings, settings
from .sources import SourceCatalog, DatabaseSourceCatalog, JsonSourceCatalog

__all__ = ["Settings", "settings", "SourceCatalog", "DatabaseSourceCatalog", "JsonSourceCatalog"]
