"""Unit tests for source catalogs."""

import json

import pytest
from unittest.mock import MagicMock

from feedsync.config.sources import DatabaseSourceCatalog, JsonSourceCatalog
from feedsync.exceptions import CatalogReadError


class TestJsonSourceCatalog:
    """Tests for JsonSourceCatalog."""

    def test_load_sources(self, tmp_path):
        path = tmp_path / "sources.json"
        path.write_text(json.dumps({"sources": [
            {"id": 7, "name": "Planet", "url": "https://planet.example.com/rss",
             "bias_label": "center", "country": "US"},
            {"name": "Gazette", "url": "https://gazette.example.com/feed", "enabled": False},
        ]}))

        sources = JsonSourceCatalog(path).load()

        assert len(sources) == 2
        assert sources[0].id == 7
        assert sources[0].bias_label == "center"
        assert sources[0].country == "US"
        assert sources[0].enabled is True
        assert sources[1].id == 2
        assert sources[1].bias_label is None
        assert sources[1].enabled is False

    def test_missing_file(self, tmp_path):
        with pytest.raises(CatalogReadError):
            JsonSourceCatalog(tmp_path / "absent.json").load()

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "sources.json"
        path.write_text("{not json")
        with pytest.raises(CatalogReadError):
            JsonSourceCatalog(path).load()

    def test_source_without_url(self, tmp_path):
        path = tmp_path / "sources.json"
        path.write_text(json.dumps({"sources": [{"name": "No URL"}]}))
        with pytest.raises(CatalogReadError):
            JsonSourceCatalog(path).load()


class TestDatabaseSourceCatalog:
    """Tests for DatabaseSourceCatalog."""

    def test_reads_sources_table(self, storage):
        storage.add_source("Planet", "https://planet.example.com/rss", "left")

        sources = DatabaseSourceCatalog(storage).load()

        assert [(s.name, s.bias_label) for s in sources] == [("Planet", "left")]

    def test_store_failure_is_catalog_error(self):
        store = MagicMock()
        store.list_sources.side_effect = RuntimeError("connection refused")

        with pytest.raises(CatalogReadError):
            DatabaseSourceCatalog(store).load()
