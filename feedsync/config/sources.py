"""Source catalog loaders."""

import json
from pathlib import Path
from typing import List, Union

import structlog

from ..ingestion.interfaces import Source
from ..exceptions import CatalogReadError

logger = structlog.get_logger()


class SourceCatalog:
    """Read-only list of feed sources."""

    def load(self) -> List[Source]:
        """Load all sources.

        Raises:
            CatalogReadError: the catalog could not be read.
        """
        raise NotImplementedError


class JsonSourceCatalog(SourceCatalog):
    """Sources from a JSON file: {"sources": [{"name", "url", ...}]}."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> List[Source]:
        try:
            with open(self.path) as f:
                data = json.load(f)

            sources = []
            for i, item in enumerate(data.get("sources", [])):
                sources.append(Source(
                    id=item.get("id", i + 1),
                    name=item["name"],
                    url=item["url"],
                    bias_label=item.get("bias_label"),
                    country=item.get("country"),
                    enabled=item.get("enabled", True),
                ))
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            raise CatalogReadError(f"Cannot read sources from {self.path}: {e}") from e

        logger.info("sources_loaded", catalog=str(self.path), count=len(sources))
        return sources


class DatabaseSourceCatalog(SourceCatalog):
    """Sources from the store's sources table."""

    def __init__(self, store):
        self.store = store

    def load(self) -> List[Source]:
        try:
            sources = self.store.list_sources()
        except Exception as e:
            raise CatalogReadError(f"Cannot read sources table: {e}") from e

        logger.info("sources_loaded", catalog="database", count=len(sources))
        return sources
