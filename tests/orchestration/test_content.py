"""Tests for the document content stores."""

import pytest

from docspine.core.errors import StorageError
from docspine.core.settings import EngineSettings
from docspine.orchestration.content import (
    ContentStore,
    FileContentStore,
    InMemoryContentStore,
    content_store_from_settings,
)


class TestInMemoryContentStore:
    def test_missing_reads_empty(self):
        assert InMemoryContentStore().read("ADR-1") == ""

    def test_write_then_read(self):
        store = InMemoryContentStore()
        assert store.write("ADR-1", "body").unwrap() == "ADR-1"
        assert store.read("ADR-1") == "body"
        assert "ADR-1" in store

    def test_satisfies_protocol(self):
        assert isinstance(InMemoryContentStore(), ContentStore)


class TestFileContentStore:
    def test_one_markdown_file_per_document(self, tmp_path):
        store = FileContentStore(tmp_path / "adrs")
        assert store.write("ADR-1", "# ADR-1\n").is_ok()
        assert (tmp_path / "adrs" / "ADR-1.md").read_text(encoding="utf-8") == "# ADR-1\n"
        assert store.read("ADR-1") == "# ADR-1\n"

    def test_missing_reads_empty(self, tmp_path):
        assert FileContentStore(tmp_path).read("ADR-404") == ""

    def test_write_failure_is_err(self, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("x")
        result = FileContentStore(blocker).write("ADR-1", "body")
        assert result.is_err()
        assert isinstance(result.error, StorageError)
        assert result.error.context.document_id == "ADR-1"
        with pytest.raises(StorageError):
            result.unwrap()

    def test_satisfies_protocol(self, tmp_path):
        assert isinstance(FileContentStore(tmp_path), ContentStore)


class TestFromSettings:
    def test_file_store_when_content_dir_set(self, tmp_path):
        store = content_store_from_settings(EngineSettings(content_dir=tmp_path))
        assert isinstance(store, FileContentStore)
        assert store.root == tmp_path

    def test_in_memory_otherwise(self):
        assert isinstance(content_store_from_settings(EngineSettings()), InMemoryContentStore)
