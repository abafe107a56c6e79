"""Campaign hierarchy walk and the predicates that scope a propagation."""

from typing import AsyncIterator, Callable, Optional

from ..core.types import ParentType
from ..store.base import DocumentStore, DocPath

# Structural containers between a campaign and its tactics, outermost first
TACTIC_COLLECTIONS = ("versions", "onglets", "sections", "tactiques")
PLACEMENTS_COLLECTION = "placements"
CREATIVES_COLLECTION = "creatifs"

VisitPredicate = Callable[[str, str], bool]


async def walk_documents(store: DocumentStore, parent: DocPath, collections: tuple[str, ...],
                         should_visit: Optional[VisitPredicate] = None,
                         ) -> AsyncIterator[tuple[DocPath, dict]]:
    """Yield ``(path, data)`` for every document at the innermost collection.

    Each listing is awaited before descending. ``should_visit(collection, doc_id)``
    returning False prunes that document and everything below it.
    """
    if not collections:
        return
    collection, rest = collections[0], collections[1:]
    for doc_id, data in await store.list_documents(parent + (collection,)):
        if should_visit is not None and not should_visit(collection, doc_id):
            continue
        path = parent + (collection, doc_id)
        if not rest:
            yield path, data
            continue
        async for item in walk_documents(store, path, rest, should_visit):
            yield item


def _is_affected(parent_type: ParentType, parent_id: str, tactic_id: str, placement_id: str) -> bool:
    if parent_type == ParentType.CAMPAIGN:
        return True
    if parent_type == ParentType.TACTIC:
        return tactic_id == parent_id
    if parent_type == ParentType.PLACEMENT:
        return placement_id == parent_id
    return False


def should_update_placement(parent_type: ParentType, parent_id: str,
                            tactic_id: str, placement_id: str) -> bool:
    return _is_affected(parent_type, parent_id, tactic_id, placement_id)


def should_update_creative(parent_type: ParentType, parent_id: str,
                           tactic_id: str, placement_id: str) -> bool:
    """A creative follows its owning placement and tactic ids, not its own."""
    return _is_affected(parent_type, parent_id, tactic_id, placement_id)


def should_visit_tactic(parent_type: ParentType, parent_id: str, tactic_id: str) -> bool:
    """Only a tactic change can rule out whole tactics before listing placements."""
    if parent_type == ParentType.TACTIC:
        return tactic_id == parent_id
    return True


def tactic_visitor(parent_type: ParentType, parent_id: str) -> VisitPredicate:
    def visit(collection: str, doc_id: str) -> bool:
        if collection != "tactiques":
            return True
        return should_visit_tactic(parent_type, parent_id, doc_id)
    return visit
