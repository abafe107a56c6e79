"""Abstract hierarchical document store used by the engine.

Paths are tuples of alternating collection / document segments:
``("clients", "c1", "campaigns", "cmp1")`` addresses a document and
``("clients", "c1", "campaigns")`` a collection.
"""

from abc import ABC, abstractmethod
from typing import Optional

DocPath = tuple[str, ...]


def doc_path(*segments: str) -> DocPath:
    if len(segments) % 2 != 0:
        raise ValueError(f"Document path needs an even number of segments: {segments}")
    return tuple(str(s) for s in segments)


def collection_path(*segments: str) -> DocPath:
    if len(segments) % 2 != 1:
        raise ValueError(f"Collection path needs an odd number of segments: {segments}")
    return tuple(str(s) for s in segments)


def path_str(path: DocPath) -> str:
    return "/".join(path)


class WriteBatch(ABC):
    """Collects field updates and applies them all-or-nothing on commit."""

    def __init__(self):
        self._updates: list[tuple[DocPath, dict]] = []

    def update(self, path: DocPath, fields: dict) -> None:
        self._updates.append((tuple(path), dict(fields)))

    def __len__(self) -> int:
        return len(self._updates)

    @property
    def updates(self) -> list[tuple[DocPath, dict]]:
        return list(self._updates)

    @abstractmethod
    async def commit(self) -> None:
        ...


class DocumentStore(ABC):

    @abstractmethod
    async def get_document(self, path: DocPath) -> Optional[dict]:
        """Return the document's fields, or None if it does not exist."""

    @abstractmethod
    async def list_documents(self, path: DocPath) -> list[tuple[str, dict]]:
        """Return ``(id, fields)`` for every document in a collection, by id."""

    @abstractmethod
    async def query_documents(self, path: DocPath, field: str, value) -> list[tuple[str, dict]]:
        """Return documents of a collection whose ``field`` equals ``value``."""

    @abstractmethod
    def batch(self) -> WriteBatch:
        ...

    async def close(self) -> None:
        return None
