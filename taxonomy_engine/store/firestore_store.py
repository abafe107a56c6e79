"""Firestore REST document store with retry.

Talks to the Firestore v1 REST API with an async httpx client. Reads are
retried on 429/5xx and transport errors; the batch commit goes through
``documents:commit``, which Firestore applies atomically.
"""

import re
from typing import Optional

import httpx
from tenacity import AsyncRetrying, stop_after_attempt, wait_exponential, retry_if_exception

from .base import DocumentStore, WriteBatch, DocPath, path_str
from ..core.errors import StoreError
from ..core.logger import EngineLogger

API_ROOT = "https://firestore.googleapis.com/v1"
PAGE_SIZE = 300
RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})
_SIMPLE_FIELD = re.compile(r"^[A-Za-z_][A-Za-z_0-9]*$")


# ── Value codec ──


def encode_value(value) -> dict:
    if value is None:
        return {"nullValue": None}
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, dict):
        return {"mapValue": {"fields": encode_fields(value)}}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(v) for v in value]}}
    return {"stringValue": str(value)}


def encode_fields(data: dict) -> dict:
    return {str(k): encode_value(v) for k, v in data.items()}


def decode_value(value: dict):
    if "nullValue" in value:
        return None
    if "booleanValue" in value:
        return bool(value["booleanValue"])
    if "integerValue" in value:
        return int(value["integerValue"])
    if "doubleValue" in value:
        return float(value["doubleValue"])
    if "mapValue" in value:
        return decode_fields(value["mapValue"].get("fields", {}))
    if "arrayValue" in value:
        return [decode_value(v) for v in value["arrayValue"].get("values", [])]
    for key in ("stringValue", "timestampValue", "referenceValue", "bytesValue"):
        if key in value:
            return value[key]
    if "geoPointValue" in value:
        return dict(value["geoPointValue"])
    return None


def decode_fields(fields: dict) -> dict:
    return {k: decode_value(v) for k, v in (fields or {}).items()}


def field_path(name: str) -> str:
    if _SIMPLE_FIELD.match(name):
        return name
    return "`" + name.replace("\\", "\\\\").replace("`", "\\`") + "`"


def _is_retryable(error: BaseException) -> bool:
    return isinstance(error, StoreError) and error.retryable


# ── Store ──


class FirestoreWriteBatch(WriteBatch):
    def __init__(self, store: 'FirestoreDocumentStore'):
        super().__init__()
        self._store = store

    async def commit(self) -> None:
        writes = [{
            "update": {"name": self._store.document_name(path), "fields": encode_fields(fields)},
            "updateMask": {"fieldPaths": [field_path(k) for k in fields]},
            "currentDocument": {"exists": True},
        } for path, fields in self._updates]
        # Not retried: a commit whose response was lost may already be applied
        await self._store._request("POST", f"{self._store.base_url}:commit",
                                   json={"writes": writes})


class FirestoreDocumentStore(DocumentStore):
    def __init__(self, project_id: str, database: str = "(default)", token: str = "",
                 max_retries: int = 3, timeout: float = 30.0, retry_wait: float = 0.5,
                 logger: Optional[EngineLogger] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.project_id = project_id
        self.database = database
        self.max_retries = max_retries
        self.retry_wait = retry_wait
        self.logger = logger or EngineLogger()
        self.root = f"projects/{project_id}/databases/{database}/documents"
        self.base_url = f"{API_ROOT}/{self.root}"
        headers = {"User-Agent": "TaxonomyEngine/1.0"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(timeout=timeout, headers=headers, transport=transport)

    def document_name(self, path: DocPath) -> str:
        return f"{self.root}/{path_str(path)}"

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            r = await self._client.request(method, url, **kwargs)
            r.raise_for_status()
            return r
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise StoreError(f"HTTP {status}: {method} {url}", status_code=status,
                             retryable=status in RETRYABLE_STATUS)
        except httpx.RequestError as e:
            raise StoreError(f"Request failed: {method} {url}: {e}")

    @staticmethod
    def _json(r: httpx.Response):
        try:
            return r.json()
        except ValueError as e:
            raise StoreError(f"Invalid JSON body from {r.request.method} {r.request.url}: {e}",
                             status_code=r.status_code, retryable=False)

    async def _read(self, method: str, url: str, **kwargs) -> httpx.Response:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=self.retry_wait, max=8),
            retry=retry_if_exception(_is_retryable),
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    self.logger.warn(f"Retrying {method} {url} "
                                     f"(attempt {attempt.retry_state.attempt_number})")
                return await self._request(method, url, **kwargs)

    async def get_document(self, path: DocPath) -> Optional[dict]:
        try:
            r = await self._read("GET", f"{self.base_url}/{path_str(path)}")
        except StoreError as e:
            if e.status_code == 404:
                return None
            raise
        return decode_fields(self._json(r).get("fields", {}))

    async def list_documents(self, path: DocPath) -> list[tuple[str, dict]]:
        results = []
        page_token = None
        while True:
            params = {"pageSize": PAGE_SIZE}
            if page_token:
                params["pageToken"] = page_token
            r = await self._read("GET", f"{self.base_url}/{path_str(path)}", params=params)
            body = self._json(r)
            for doc in body.get("documents", []):
                results.append((doc["name"].rsplit("/", 1)[-1], decode_fields(doc.get("fields", {}))))
            page_token = body.get("nextPageToken")
            if not page_token:
                break
        return sorted(results, key=lambda item: item[0])

    async def query_documents(self, path: DocPath, field: str, value) -> list[tuple[str, dict]]:
        parent, collection_id = path[:-1], path[-1]
        url = f"{self.base_url}/{path_str(parent)}:runQuery" if parent else f"{self.base_url}:runQuery"
        body = {"structuredQuery": {
            "from": [{"collectionId": collection_id}],
            "where": {"fieldFilter": {
                "field": {"fieldPath": field_path(field)},
                "op": "EQUAL",
                "value": encode_value(value),
            }},
        }}
        r = await self._read("POST", url, json=body)
        return [
            (row["document"]["name"].rsplit("/", 1)[-1],
             decode_fields(row["document"].get("fields", {})))
            for row in self._json(r) if "document" in row
        ]

    def batch(self) -> FirestoreWriteBatch:
        return FirestoreWriteBatch(self)

    async def close(self) -> None:
        await self._client.aclose()
