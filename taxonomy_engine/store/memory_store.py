"""In-process document store, for tests and dry runs."""

import copy
from typing import Optional

from .base import DocumentStore, WriteBatch, DocPath, path_str
from ..core.errors import StoreError
from ..core.utils import read_json


class MemoryWriteBatch(WriteBatch):
    def __init__(self, store: 'MemoryDocumentStore'):
        super().__init__()
        self._store = store

    async def commit(self) -> None:
        missing = [p for p, _ in self._updates if p not in self._store.documents]
        if missing:
            raise StoreError(f"No document to update: {path_str(missing[0])}",
                             status_code=404, retryable=False)
        for path, fields in self._updates:
            self._store.documents[path].update(copy.deepcopy(fields))
        self._store.commits.append(self.updates)


class MemoryDocumentStore(DocumentStore):
    def __init__(self, documents: Optional[dict] = None):
        self.documents: dict[DocPath, dict] = {}
        self.commits: list[list[tuple[DocPath, dict]]] = []
        for path, data in (documents or {}).items():
            self.set_document(path, data)

    def set_document(self, path, data: dict) -> None:
        path = tuple(path)
        if len(path) % 2 != 0:
            raise ValueError(f"Not a document path: {path_str(path)}")
        self.documents[path] = copy.deepcopy(data)

    async def get_document(self, path: DocPath) -> Optional[dict]:
        data = self.documents.get(tuple(path))
        return copy.deepcopy(data) if data is not None else None

    async def list_documents(self, path: DocPath) -> list[tuple[str, dict]]:
        path = tuple(path)
        depth = len(path) + 1
        found = [
            (p[-1], copy.deepcopy(d)) for p, d in self.documents.items()
            if len(p) == depth and p[:-1] == path
        ]
        return sorted(found, key=lambda item: item[0])

    async def query_documents(self, path: DocPath, field: str, value) -> list[tuple[str, dict]]:
        return [(doc_id, d) for doc_id, d in await self.list_documents(path)
                if d.get(field) == value]

    def batch(self) -> MemoryWriteBatch:
        return MemoryWriteBatch(self)

    @classmethod
    def from_json(cls, path: str) -> 'MemoryDocumentStore':
        """Seed from a JSON object mapping "clients/c1/campaigns/cmp1" style paths to fields."""
        data = read_json(path)
        return cls({tuple(key.strip("/").split("/")): fields for key, fields in data.items()})
