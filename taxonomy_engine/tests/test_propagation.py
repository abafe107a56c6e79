"""Tests for the propagation orchestrator and its traversal predicates."""

import asyncio

import pytest

from conftest import (
    CLIENT_ID, CAMPAIGN_ID, FIXED_NOW, fixed_clock, seed_documents,
    CountingStore, FailingStore,
    CAMPAIGN_PATH, T2_PATH, P1_PATH, P2_PATH, P3_PATH, CR1_PATH, CR2_PATH,
)

from taxonomy_engine.core.errors import CommitError, PreconditionError, PropagationError, StoreError
from taxonomy_engine.core.types import ParentType, ParentData
from taxonomy_engine.orchestrator.propagation import TaxonomyPropagator, update_taxonomies
from taxonomy_engine.orchestrator.tree import (
    TACTIC_COLLECTIONS, walk_documents, should_update_placement, should_update_creative,
    should_visit_tactic,
)
from taxonomy_engine.store.memory_store import MemoryDocumentStore


def _run(store, parent_type, parent, logger, **kwargs):
    propagator = TaxonomyPropagator(store, logger, clock=fixed_clock)
    return asyncio.run(propagator.update_taxonomies(parent_type, parent, **kwargs))


def _campaign_parent():
    return {"id": CAMPAIGN_ID, "clientId": CLIENT_ID}


class TestPredicates:

    def test_campaign_change_affects_everything(self):
        assert should_update_placement(ParentType.CAMPAIGN, "CMP1", "T1", "P1")
        assert should_update_creative(ParentType.CAMPAIGN, "CMP1", "T9", "P9")

    def test_tactic_change_matches_tactic_id(self):
        assert should_update_placement(ParentType.TACTIC, "T1", "T1", "P1")
        assert not should_update_placement(ParentType.TACTIC, "T1", "T2", "P3")
        assert should_update_creative(ParentType.TACTIC, "T1", "T1", "P2")
        assert not should_update_creative(ParentType.TACTIC, "T1", "T2", "P3")

    def test_placement_change_matches_placement_id(self):
        assert should_update_placement(ParentType.PLACEMENT, "P1", "T1", "P1")
        assert not should_update_placement(ParentType.PLACEMENT, "P1", "T1", "P2")
        assert should_update_creative(ParentType.PLACEMENT, "P1", "T1", "P1")
        assert not should_update_creative(ParentType.PLACEMENT, "P1", "T1", "P2")

    def test_placement_id_equal_to_tactic_id_does_not_leak(self):
        assert not should_update_placement(ParentType.TACTIC, "X", "T1", "X")
        assert not should_update_placement(ParentType.PLACEMENT, "X", "X", "P1")

    def test_tactic_visit_predicate(self):
        assert should_visit_tactic(ParentType.CAMPAIGN, "CMP1", "T2")
        assert should_visit_tactic(ParentType.PLACEMENT, "P1", "T2")
        assert should_visit_tactic(ParentType.TACTIC, "T1", "T1")
        assert not should_visit_tactic(ParentType.TACTIC, "T1", "T2")


class TestWalkDocuments:

    def test_yields_every_tactic(self, store):
        async def collect():
            return [path async for path, _ in walk_documents(
                store, ("clients", CLIENT_ID, "campaigns", CAMPAIGN_ID), TACTIC_COLLECTIONS)]

        paths = asyncio.run(collect())
        assert [p[-1] for p in paths] == ["T1", "T2"]
        assert paths[0][-2] == "tactiques"

    def test_predicate_prunes_subtrees(self, store):
        async def collect():
            return [path async for path, _ in walk_documents(
                store, ("clients", CLIENT_ID, "campaigns", CAMPAIGN_ID), TACTIC_COLLECTIONS,
                should_visit=lambda collection, doc_id: collection != "versions")]

        assert asyncio.run(collect()) == []


class TestUpdateTaxonomies:

    def test_campaign_updates_every_entity(self, store, logger):
        result = _run(store, "campaign", _campaign_parent(), logger)

        assert result.status == "done"
        assert result.campaign_id == CAMPAIGN_ID
        assert result.updated == [list(P1_PATH), list(CR1_PATH), list(P2_PATH),
                                  list(P3_PATH), list(CR2_PATH)]
        assert result.skipped == 0
        assert result.errors == []
        assert len(store.commits) == 1

        assert store.documents[P1_PATH]["PL_Tag_1"] == "Summer-P1"
        assert store.documents[P2_PATH]["PL_Generated_Taxonomies"]["tags"] == "Summer-|meta"
        assert store.documents[P3_PATH]["PL_Tag_1"] == "Summer-P1_manual"
        assert store.documents[P3_PATH]["PL_Tag_2"] == "Custom Pub"
        assert store.documents[CR1_PATH]["CR_Tag_5"] == "v1_P1"
        assert store.documents[CR2_PATH]["CR_Generated_Taxonomies"]["tags"] == "v2_P1"
        assert store.documents[CR2_PATH]["updatedAt"] == FIXED_NOW

    def test_existing_fields_preserved(self, store, logger):
        _run(store, "campaign", _campaign_parent(), logger)
        assert store.documents[P1_PATH]["PL_Label"] == "P One"
        assert store.documents[CR1_PATH]["CR_Version"] == "v1"

    def test_tactic_scope(self, store, logger):
        parent = {"id": "T1", "clientId": CLIENT_ID, "campaignId": CAMPAIGN_ID}
        result = _run(store, ParentType.TACTIC, parent, logger)

        assert result.updated == [list(P1_PATH), list(CR1_PATH), list(P2_PATH)]
        assert "PL_Tag_1" not in store.documents[P3_PATH]
        assert "CR_Tag_5" not in store.documents[CR2_PATH]

    def test_placement_scope_includes_its_creatives(self, store, logger):
        parent = ParentData(id="P1", client_id=CLIENT_ID, campaign_id=CAMPAIGN_ID)
        result = _run(store, "placement", parent, logger)

        assert result.updated == [list(P1_PATH), list(CR1_PATH)]
        # P2, P3 and CR2 were visited but unaffected
        assert result.skipped == 3
        assert "PL_Tag_1" not in store.documents[P2_PATH]

    def test_unknown_placement_is_nothing_to_do(self, store, logger):
        parent = ParentData(id="P404", client_id=CLIENT_ID, campaign_id=CAMPAIGN_ID)
        result = _run(store, "placement", parent, logger)

        assert result.status == "nothing_to_do"
        assert result.updated == []
        assert store.commits == []

    def test_empty_campaign_is_nothing_to_do(self, logger):
        store = MemoryDocumentStore({("clients", CLIENT_ID, "campaigns", CAMPAIGN_ID): {"CA_Name": "Empty"}})
        result = _run(store, "campaign", _campaign_parent(), logger)
        assert result.status == "nothing_to_do"
        assert store.commits == []

    def test_idempotent(self, store, logger):
        _run(store, "campaign", _campaign_parent(), logger)
        first = {path: dict(data) for path, data in store.documents.items()}
        _run(store, "campaign", _campaign_parent(), logger)
        assert store.documents == first
        assert store.commits[0] == store.commits[1]

    def test_force_regeneration_ignores_manual_values(self, store, logger):
        _run(store, "campaign", _campaign_parent(), logger, force_regeneration=True)
        assert store.documents[P3_PATH]["PL_Tag_1"] == "Summer-P1_SOC"

    def test_lookups_cached_across_entities(self, logger):
        store = CountingStore(seed_documents())
        _run(store, "campaign", _campaign_parent(), logger)
        assert store.read_count(("shortcodes", "PRD1")) == 1
        assert store.read_count(("clients", CLIENT_ID, "taxonomies", "TX1")) == 1
        assert store.read_count(("clients", CLIENT_ID, "taxonomies", "TX_MISSING")) == 1

    def test_module_level_helper(self, store, logger):
        result = asyncio.run(update_taxonomies(store, "campaign", _campaign_parent(), logger=logger))
        assert result.updated_count == 5


class TestFailureHandling:

    def test_entity_failure_is_isolated(self, logger):
        store = FailingStore(seed_documents(),
                             fail_paths=[("clients", CLIENT_ID, "taxonomies", "TX2")])
        result = _run(store, "campaign", _campaign_parent(), logger)

        assert result.status == "done"
        assert result.updated == [list(P2_PATH), list(P3_PATH), list(CR2_PATH)]
        assert [(e.kind, e.entity_id) for e in result.errors] == [("placement", "P1"),
                                                                  ("creative", "CR1")]
        assert result.errors[0].path == list(P1_PATH)
        assert "boom" in result.errors[0].message
        assert "PL_Tag_1" not in store.documents[P1_PATH]
        assert store.documents[P2_PATH]["PL_Tag_2"] == "meta"

    def test_commit_failure_raises(self, logger):
        store = FailingStore(seed_documents(), fail_commit=True)
        with pytest.raises(CommitError, match="Taxonomy update failed") as exc:
            _run(store, "campaign", _campaign_parent(), logger)
        assert isinstance(exc.value.__cause__, StoreError)
        assert "PL_Tag_1" not in store.documents[P1_PATH]

    def test_campaign_read_failure_raises(self, logger):
        store = FailingStore(seed_documents(), fail_paths=[CAMPAIGN_PATH],
                             error=StoreError("unavailable", status_code=503))
        with pytest.raises(PropagationError, match="Taxonomy update failed") as exc:
            _run(store, "campaign", _campaign_parent(), logger)
        assert isinstance(exc.value.__cause__, StoreError)

    def test_tree_listing_failure_commits_nothing(self, logger):
        store = FailingStore(seed_documents(), fail_paths=[T2_PATH + ("placements",)],
                             error=StoreError("unavailable", status_code=503))
        with pytest.raises(PropagationError) as exc:
            _run(store, "campaign", _campaign_parent(), logger)
        assert not isinstance(exc.value, CommitError)
        assert isinstance(exc.value.__cause__, StoreError)
        assert "PL_Tag_1" not in store.documents[P1_PATH]

    def test_commit_is_atomic(self, logger):
        store = MemoryDocumentStore(seed_documents())
        batch = store.batch()
        batch.update(P1_PATH, {"PL_Tag_1": "x"})
        batch.update(P1_PATH[:-1] + ("GONE",), {"PL_Tag_1": "y"})
        with pytest.raises(StoreError):
            asyncio.run(batch.commit())
        assert "PL_Tag_1" not in store.documents[P1_PATH]


class TestPreconditions:

    def test_missing_client_id(self, store, logger):
        result = _run(store, "campaign", {"id": CAMPAIGN_ID}, logger)
        assert result.status == "precondition_failed"
        assert isinstance(result.precondition, PreconditionError)
        assert result.precondition.reason == "missing_client_id"
        assert store.commits == []

    def test_missing_campaign_id_for_tactic(self, store, logger):
        result = _run(store, "tactic", {"id": "T1", "clientId": CLIENT_ID}, logger)
        assert result.status == "precondition_failed"
        assert result.precondition.reason == "missing_campaign_id"

    def test_campaign_not_found(self, store, logger):
        result = _run(store, "campaign", {"id": "NOPE", "clientId": CLIENT_ID}, logger)
        assert result.status == "precondition_failed"
        assert result.precondition.reason == "campaign_not_found"
        assert result.to_dict()["precondition"] == "Campaign NOPE not found"

    def test_strict_raises(self, store, logger):
        with pytest.raises(PreconditionError):
            _run(store, "campaign", {"id": CAMPAIGN_ID}, logger, strict=True)

    def test_invalid_parent_type(self, store, logger):
        with pytest.raises(ValueError):
            _run(store, "section", _campaign_parent(), logger)
