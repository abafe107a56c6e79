"""Regenerate every taxonomy chain of one placement or creative."""

import asyncio
from datetime import datetime, timezone
from typing import Callable, Optional

from .parser import generate_levels
from .variables import ResolutionContext, resolve_variable
from ..core.fields import (
    PLACEMENT_LEVELS, CREATIVE_LEVELS,
    PLACEMENT_SUMMARY_FIELD, CREATIVE_SUMMARY_FIELD, chain_field,
)
from ..core.types import TaxonomyType

Clock = Callable[[], str]

SUMMARY_SEPARATOR = "|"


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


async def _generate_chain(context: ResolutionContext, template_id: Optional[str],
                          levels: tuple[int, ...], is_creative: bool) -> list[str]:
    """Level strings of one taxonomy type; blanks when the template is unset or missing."""
    if not template_id:
        return [""] * len(levels)
    taxonomy = await context.resolver.get_taxonomy(context.client_id, template_id)
    if taxonomy is None:
        return [""] * len(levels)

    async def resolve(name: str, fmt: str) -> str:
        return await resolve_variable(name, fmt, context, is_creative)

    return await generate_levels([taxonomy.level(n) for n in levels], resolve)


async def _regenerate(context: ResolutionContext, template_ids: dict, prefix: str,
                      levels: tuple[int, ...], summary_field: str, is_creative: bool,
                      clock: Clock) -> dict:
    types = list(TaxonomyType)
    chains = await asyncio.gather(*(
        _generate_chain(context, template_ids.get(t), levels, is_creative) for t in types
    ))

    updates = {}
    summary = {}
    for taxonomy_type, chain in zip(types, chains):
        for level, value in zip(levels, chain):
            updates[chain_field(prefix, taxonomy_type, level)] = value
        summary[taxonomy_type.value] = SUMMARY_SEPARATOR.join(v for v in chain if v)
    updates[summary_field] = summary
    updates["updatedAt"] = clock()
    return updates


async def regenerate_placement(context: ResolutionContext, clock: Clock = utc_now) -> dict:
    """Field updates for ``context.placement`` over levels 1-4."""
    return await _regenerate(context, context.placement.template_ids, "PL", PLACEMENT_LEVELS,
                             PLACEMENT_SUMMARY_FIELD, False, clock)


async def regenerate_creative(context: ResolutionContext, clock: Clock = utc_now) -> dict:
    """Field updates for ``context.creative`` over levels 5-6.

    ``context.placement`` is the owning placement, read for placement-level
    variables the creative does not override.
    """
    return await _regenerate(context, context.creative.template_ids, "CR", CREATIVE_LEVELS,
                             CREATIVE_SUMMARY_FIELD, True, clock)
