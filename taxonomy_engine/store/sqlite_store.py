"""SQLite-backed hierarchical document store."""

import asyncio
import json
import sqlite3
from pathlib import Path
from typing import Optional

from .base import DocumentStore, WriteBatch, DocPath, path_str
from ..core.errors import StoreError


class SQLiteWriteBatch(WriteBatch):
    def __init__(self, store: 'SQLiteDocumentStore'):
        super().__init__()
        self._store = store

    async def commit(self) -> None:
        await asyncio.to_thread(self._store._apply_updates, self.updates)


class SQLiteDocumentStore(DocumentStore):
    """Stores every document as one JSON row keyed by its full path.

    The parent collection path is stored alongside so a collection listing
    is a single indexed lookup.
    """

    def __init__(self, db_path: str):
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self.db_path = db_path
        self._init_db()

    def _init_db(self):
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""CREATE TABLE IF NOT EXISTS documents (
                path TEXT PRIMARY KEY, parent TEXT NOT NULL,
                doc_id TEXT NOT NULL, data TEXT NOT NULL)""")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_parent ON documents(parent)")

    # ── Sync helpers (run in a worker thread) ──

    def set_document(self, path: DocPath, data: dict) -> None:
        path = tuple(path)
        if len(path) % 2 != 0:
            raise ValueError(f"Not a document path: {path_str(path)}")
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                "INSERT OR REPLACE INTO documents (path, parent, doc_id, data) VALUES (?, ?, ?, ?)",
                (path_str(path), path_str(path[:-1]), path[-1],
                 json.dumps(data, ensure_ascii=False)))

    def _get(self, path: DocPath) -> Optional[dict]:
        with sqlite3.connect(self.db_path) as conn:
            row = conn.execute("SELECT data FROM documents WHERE path = ?",
                               (path_str(path),)).fetchone()
        return json.loads(row[0]) if row else None

    def _list(self, path: DocPath) -> list[tuple[str, dict]]:
        with sqlite3.connect(self.db_path) as conn:
            rows = conn.execute(
                "SELECT doc_id, data FROM documents WHERE parent = ? ORDER BY doc_id",
                (path_str(path),)).fetchall()
        return [(r[0], json.loads(r[1])) for r in rows]

    def _apply_updates(self, updates: list[tuple[DocPath, dict]]) -> None:
        conn = sqlite3.connect(self.db_path)
        try:
            with conn:
                for path, fields in updates:
                    row = conn.execute("SELECT data FROM documents WHERE path = ?",
                                       (path_str(path),)).fetchone()
                    if row is None:
                        # Raising inside the context manager rolls back the whole batch
                        raise StoreError(f"No document to update: {path_str(path)}",
                                         status_code=404, retryable=False)
                    data = json.loads(row[0])
                    data.update(fields)
                    conn.execute("UPDATE documents SET data = ? WHERE path = ?",
                                 (json.dumps(data, ensure_ascii=False), path_str(path)))
        except sqlite3.Error as e:
            raise StoreError(f"SQLite commit failed: {e}")
        finally:
            conn.close()

    # ── DocumentStore ──

    async def get_document(self, path: DocPath) -> Optional[dict]:
        try:
            return await asyncio.to_thread(self._get, tuple(path))
        except sqlite3.Error as e:
            raise StoreError(f"SQLite read failed for {path_str(path)}: {e}")

    async def list_documents(self, path: DocPath) -> list[tuple[str, dict]]:
        try:
            return await asyncio.to_thread(self._list, tuple(path))
        except sqlite3.Error as e:
            raise StoreError(f"SQLite listing failed for {path_str(path)}: {e}")

    async def query_documents(self, path: DocPath, field: str, value) -> list[tuple[str, dict]]:
        return [(doc_id, d) for doc_id, d in await self.list_documents(path)
                if d.get(field) == value]

    def batch(self) -> SQLiteWriteBatch:
        return SQLiteWriteBatch(self)
