"""Cache-backed reads of shortcodes, client custom codes and taxonomy templates."""

from typing import Optional

from .cache import LookupCache
from ..core.types import Shortcode, Taxonomy
from ..core.logger import EngineLogger
from ..core.errors import StoreError
from ..store.base import DocumentStore, doc_path, collection_path

SHORTCODES_COLLECTION = "shortcodes"
CUSTOM_CODES_COLLECTION = "customCodes"
TAXONOMIES_COLLECTION = "taxonomies"


class ShortcodeResolver:
    """Lookups never raise: a miss or a store failure both resolve to None.

    Store failures are logged and memoized as "not found" so the run
    carries on with raw values.
    """

    def __init__(self, store: DocumentStore, cache: LookupCache,
                 logger: Optional[EngineLogger] = None):
        self.store = store
        self.cache = cache
        self.logger = logger or EngineLogger()

    async def get_shortcode(self, shortcode_id: str) -> Optional[Shortcode]:
        # Free text such as "50/50" can never be a document id
        if not shortcode_id or "/" in shortcode_id:
            return None

        async def fetch():
            try:
                data = await self.store.get_document(doc_path(SHORTCODES_COLLECTION, shortcode_id))
            except StoreError as e:
                self.logger.warn(f"Shortcode lookup failed for {shortcode_id}: {e}")
                return None
            return Shortcode.from_document(shortcode_id, data) if data is not None else None

        return await self.cache.shortcodes.get_or_fetch(shortcode_id, fetch)

    async def is_existing_shortcode(self, value: str) -> bool:
        return await self.get_shortcode(value) is not None

    async def get_custom_code(self, client_id: str, shortcode_id: str) -> Optional[str]:
        if not client_id or not shortcode_id:
            return None

        async def fetch():
            try:
                rows = await self.store.query_documents(
                    collection_path("clients", client_id, CUSTOM_CODES_COLLECTION),
                    "shortcodeId", shortcode_id,
                )
            except StoreError as e:
                self.logger.warn(f"Custom code lookup failed for {client_id}/{shortcode_id}: {e}")
                return None
            if not rows:
                return None
            return rows[0][1].get("customCode") or None

        key = LookupCache.custom_code_key(client_id, shortcode_id)
        return await self.cache.custom_codes.get_or_fetch(key, fetch)

    async def get_taxonomy(self, client_id: str, taxonomy_id: str) -> Optional[Taxonomy]:
        if not client_id or not taxonomy_id:
            return None

        async def fetch():
            try:
                data = await self.store.get_document(
                    doc_path("clients", client_id, TAXONOMIES_COLLECTION, taxonomy_id))
            except StoreError as e:
                self.logger.warn(f"Taxonomy {taxonomy_id} could not be loaded: {e}")
                return None
            if data is None:
                self.logger.debug(f"Taxonomy {taxonomy_id} not found for client {client_id}")
                return None
            return Taxonomy.from_document(taxonomy_id, data)

        key = LookupCache.template_key(client_id, taxonomy_id)
        return await self.cache.templates.get_or_fetch(key, fetch)
