"""
Document content stores.

Document bodies are opaque to the engine: it reads them to locate a card's
``before_text`` and writes them back with ``after_text`` substituted. The
relationship and revision metadata live in the GraphStore, not here.

Implementations:
    InMemoryContentStore   dict-backed, for tests and embedding
    FileContentStore       one ``<document_id>.md`` file per document
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from docspine.core.errors import StorageError
from docspine.core.logging import get_logger
from docspine.core.result import Err, Ok, Result
from docspine.core.settings import EngineSettings

logger = get_logger(__name__)


@runtime_checkable
class ContentStore(Protocol):
    """Read and write document bodies."""

    def read(self, document_id: str) -> str:
        """Body of ``document_id``; empty string when nothing is stored.

        Raises:
            StorageError: The stored body exists but cannot be read
        """
        ...

    def write(self, document_id: str, text: str) -> Result[str]:
        """Store ``text`` as the body of ``document_id``."""
        ...


class InMemoryContentStore:
    """Dict-backed content store."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._bodies: dict[str, str] = dict(initial or {})

    def read(self, document_id: str) -> str:
        return self._bodies.get(document_id, "")

    def write(self, document_id: str, text: str) -> Result[str]:
        self._bodies[document_id] = text
        return Ok(document_id)

    def __contains__(self, document_id: str) -> bool:
        return document_id in self._bodies


class FileContentStore:
    """Markdown files under ``root``, named ``<document_id>.md``."""

    def __init__(self, root: Path | str, *, suffix: str = ".md", encoding: str = "utf-8") -> None:
        self.root = Path(root)
        self.suffix = suffix
        self.encoding = encoding

    def path_for(self, document_id: str) -> Path:
        return self.root / f"{document_id}{self.suffix}"

    def read(self, document_id: str) -> str:
        """Body of ``document_id``; unreadable or undecodable files raise StorageError."""
        path = self.path_for(document_id)
        if not path.exists():
            return ""
        try:
            return path.read_text(encoding=self.encoding)
        except (OSError, UnicodeDecodeError) as e:
            logger.error("content_read_failed", document_id=document_id, path=str(path), error=str(e))
            raise StorageError(f"Failed to read {path}", cause=e).with_context(
                document_id=document_id
            ) from e

    def write(self, document_id: str, text: str) -> Result[str]:
        path = self.path_for(document_id)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding=self.encoding)
        except OSError as e:
            logger.error("content_write_failed", document_id=document_id, path=str(path), error=str(e))
            return Err(
                StorageError(f"Failed to write {path}", cause=e).with_context(document_id=document_id)
            )
        return Ok(document_id)


def content_store_from_settings(settings: EngineSettings) -> ContentStore:
    """File store under ``content_dir`` when configured, otherwise in-memory."""
    if settings.content_dir is not None:
        return FileContentStore(settings.content_dir)
    return InMemoryContentStore()


__all__ = ["ContentStore", "InMemoryContentStore", "FileContentStore", "content_store_from_settings"]
