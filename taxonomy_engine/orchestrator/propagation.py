"""Propagate taxonomy regeneration through a campaign tree after an ancestor changes."""

from typing import Awaitable, Optional, Union

from .tree import (
    TACTIC_COLLECTIONS, PLACEMENTS_COLLECTION, CREATIVES_COLLECTION,
    walk_documents, tactic_visitor, should_update_placement, should_update_creative,
)
from ..core.errors import (
    StoreError, PreconditionError, RegenerationError, PropagationError, CommitError,
)
from ..core.logger import EngineLogger
from ..core.types import (
    ParentType, ParentData, RunStatus, PropagationResult, EntityFailure,
    Campaign, Tactic, Placement, Creative,
)
from ..engine.regenerator import Clock, utc_now, regenerate_placement, regenerate_creative
from ..engine.variables import ResolutionContext
from ..lookup.cache import LookupCache
from ..lookup.resolver import ShortcodeResolver
from ..store.base import DocumentStore, WriteBatch, DocPath, doc_path


class TaxonomyPropagator:
    """Regenerates every placement and creative affected by a change and commits them at once."""

    def __init__(self, store: DocumentStore, logger: Optional[EngineLogger] = None,
                 clock: Clock = utc_now, force_regeneration: bool = False):
        self.store = store
        self.logger = logger or EngineLogger()
        self.clock = clock
        self.force_regeneration = force_regeneration

    async def update_taxonomies(self, parent_type: Union[ParentType, str],
                                parent_data: Union[ParentData, dict],
                                force_regeneration: bool = False,
                                strict: bool = False) -> PropagationResult:
        """Regenerate and commit the taxonomies under ``parent_data``.

        Returns a result with status ``done`` (a batch was committed),
        ``nothing_to_do`` (no entity was affected) or ``precondition_failed``
        (missing ids or campaign, error in ``result.precondition``; raised
        instead when ``strict``). Raises PropagationError when the tree cannot
        be read, and its CommitError subclass when the batch write fails.
        """
        parent_type = ParentType(parent_type)
        if isinstance(parent_data, dict):
            parent_data = ParentData.from_dict(parent_data)
        force = force_regeneration or self.force_regeneration

        result = PropagationResult(status=RunStatus.NOTHING_TO_DO.value,
                                   parent_type=parent_type.value, parent_id=parent_data.id)
        self.logger.run_start(parent_type.value, parent_data.id)

        try:
            campaign = await self._load_campaign(parent_type, parent_data)
        except StoreError as e:
            self.logger.error(f"Campaign read failed: {e}", entity=parent_data.id)
            raise PropagationError("Taxonomy update failed") from e
        except PreconditionError as e:
            self.logger.error(f"Propagation aborted: {e}", entity=parent_data.id)
            result.status = RunStatus.PRECONDITION_FAILED.value
            result.precondition = e
            self.logger.run_complete(result)
            if strict:
                raise
            return result

        result.campaign_id = campaign.id
        self.logger.info(f"Campaign found: {campaign.name or 'unnamed'}", entity=campaign.id)

        resolver = ShortcodeResolver(self.store, LookupCache(), self.logger)
        batch = self.store.batch()
        campaign_path = doc_path("clients", campaign.client_id, "campaigns", campaign.id)

        try:
            async for tactic_path, tactic_data in walk_documents(
                    self.store, campaign_path, TACTIC_COLLECTIONS,
                    tactic_visitor(parent_type, parent_data.id)):
                tactic = Tactic(tactic_path[-1], tactic_data)
                await self._process_tactic(parent_type, parent_data.id, campaign, tactic,
                                           tactic_path, resolver, batch, result, force)
        except StoreError as e:
            self.logger.error(f"Campaign tree read failed: {e}", entity=campaign.id)
            raise PropagationError("Taxonomy update failed") from e

        if len(batch) == 0:
            self.logger.info("No taxonomy to update")
            self.logger.run_complete(result)
            return result

        try:
            await batch.commit()
        except Exception as e:
            self.logger.error(f"Batch commit of {len(batch)} updates failed: {e}")
            raise CommitError("Taxonomy update failed") from e

        self.logger.report_commit(len(batch))
        result.status = RunStatus.DONE.value
        self.logger.run_complete(result)
        return result

    async def _load_campaign(self, parent_type: ParentType, parent: ParentData) -> Campaign:
        if not parent.client_id:
            raise PreconditionError("missing_client_id", "Client id is missing")

        campaign_id = parent.id if parent_type == ParentType.CAMPAIGN else parent.campaign_id
        if not campaign_id:
            raise PreconditionError("missing_campaign_id", "Campaign id is missing")

        data = await self.store.get_document(
            doc_path("clients", parent.client_id, "campaigns", campaign_id))
        if data is None:
            raise PreconditionError("campaign_not_found", f"Campaign {campaign_id} not found")
        return Campaign(campaign_id, parent.client_id, data)

    async def _process_tactic(self, parent_type: ParentType, parent_id: str, campaign: Campaign,
                              tactic: Tactic, tactic_path: DocPath, resolver: ShortcodeResolver,
                              batch: WriteBatch, result: PropagationResult, force: bool) -> None:
        placements = await self.store.list_documents(tactic_path + (PLACEMENTS_COLLECTION,))
        for placement_id, placement_data in placements:
            placement = Placement.from_document(placement_id, placement_data)
            placement_path = tactic_path + (PLACEMENTS_COLLECTION, placement_id)

            if should_update_placement(parent_type, parent_id, tactic.id, placement.id):
                context = ResolutionContext(
                    client_id=campaign.client_id, resolver=resolver, campaign=campaign,
                    tactic=tactic, placement=placement, force_regeneration=force,
                )
                await self._stage(batch, result, "placement", placement.id, placement_path,
                                  regenerate_placement(context, self.clock))
            else:
                result.skipped += 1

            # Creatives are checked whatever happened to their placement
            creatives = await self.store.list_documents(placement_path + (CREATIVES_COLLECTION,))
            for creative_id, creative_data in creatives:
                if not should_update_creative(parent_type, parent_id, tactic.id, placement.id):
                    result.skipped += 1
                    continue
                creative = Creative.from_document(creative_id, placement.id, creative_data)
                context = ResolutionContext(
                    client_id=campaign.client_id, resolver=resolver, campaign=campaign,
                    tactic=tactic, placement=placement, creative=creative,
                    force_regeneration=force,
                )
                await self._stage(batch, result, "creative", creative.id,
                                  placement_path + (CREATIVES_COLLECTION, creative_id),
                                  regenerate_creative(context, self.clock))

    async def _stage(self, batch: WriteBatch, result: PropagationResult, kind: str,
                     entity_id: str, path: DocPath, regeneration: Awaitable[dict]) -> None:
        try:
            updates = await regeneration
        except Exception as e:
            error = RegenerationError(kind, entity_id, str(e))
            self.logger.entity_failed(kind, entity_id, str(error))
            result.errors.append(EntityFailure(kind, entity_id, list(path), str(e)))
            return
        batch.update(path, updates)
        result.updated.append(list(path))
        self.logger.entity_updated(kind, entity_id)


async def update_taxonomies(store: DocumentStore, parent_type: Union[ParentType, str],
                            parent_data: Union[ParentData, dict], force_regeneration: bool = False,
                            strict: bool = False, logger: Optional[EngineLogger] = None,
                            ) -> PropagationResult:
    return await TaxonomyPropagator(store, logger).update_taxonomies(
        parent_type, parent_data, force_regeneration=force_regeneration, strict=strict)
