"""Resolve one template variable against the campaign hierarchy."""

from dataclasses import dataclass
from typing import Optional, Any

from ..core.types import (
    Campaign, Tactic, Placement, Creative, FieldSource,
    OpenValue, ShortcodeRef, PlainValue, ManualValue,
)
from ..core.fields import get_field_source, format_requires_shortcode
from ..core.utils import sprint_dates
from ..lookup.resolver import ShortcodeResolver
from .formatter import format_shortcode_value


@dataclass
class ResolutionContext:
    """Everything one entity's regeneration reads from.

    ``creative`` is set only when regenerating a creative; ``placement`` is
    then the owning placement.
    """
    client_id: str
    resolver: ShortcodeResolver
    campaign: Optional[Campaign] = None
    tactic: Optional[Tactic] = None
    placement: Optional[Placement] = None
    creative: Optional[Creative] = None
    force_regeneration: bool = False


def _is_empty(value: Any) -> bool:
    return value is None or value == ""


async def _format_shortcode(shortcode_id: str, fmt: str, context: ResolutionContext) -> Optional[str]:
    """Formatted value, or None when ``shortcode_id`` is not a known shortcode."""
    resolver = context.resolver
    shortcode = await resolver.get_shortcode(shortcode_id)
    if shortcode is None:
        return None
    custom_code = await resolver.get_custom_code(context.client_id, shortcode_id)
    return format_shortcode_value(shortcode, custom_code, fmt)


async def _resolve_manual(entry: ManualValue, fmt: str, context: ResolutionContext) -> str:
    if isinstance(entry, OpenValue):
        return entry.text
    if isinstance(entry, ShortcodeRef):
        if format_requires_shortcode(fmt):
            formatted = await _format_shortcode(entry.shortcode_id, fmt, context)
            if formatted is not None:
                return formatted
        return entry.value
    if isinstance(entry, PlainValue) and not _is_empty(entry.value):
        return str(entry.value)
    return ""


def _creative_field(creative: Creative, variable_name: str) -> Any:
    value = creative.fields.get(variable_name)
    if _is_empty(value) and variable_name == "CR_Sprint_Dates":
        return sprint_dates(creative.fields.get("CR_Start_Date") or "",
                            creative.fields.get("CR_End_Date") or "")
    return value


def _hierarchy_value(variable_name: str, context: ResolutionContext, is_creative: bool) -> Any:
    source = get_field_source(variable_name)
    if source == FieldSource.CAMPAIGN and context.campaign:
        return context.campaign.fields.get(variable_name)
    if source == FieldSource.TACTIC and context.tactic:
        return context.tactic.fields.get(variable_name)
    if source == FieldSource.PLACEMENT and context.placement:
        # Creatives read placement variables from the owning placement, manual map first
        if is_creative and not context.force_regeneration:
            entry = context.placement.manual_values.get(variable_name)
            if entry is not None:
                return entry
        return context.placement.fields.get(variable_name)
    if source == FieldSource.CREATIVE and context.creative:
        return _creative_field(context.creative, variable_name)
    return None


async def resolve_variable(variable_name: str, fmt: str, context: ResolutionContext,
                           is_creative: bool = False) -> str:
    """Resolve ``[variable_name:fmt]`` to text. Never raises on missing data.

    Order, first match wins:
    1. the entity's own manual taxonomy value (creative or placement),
       skipped when forcing regeneration;
    2. the field on the hierarchy level that owns the variable;
    3. a string value that names a known shortcode is rendered in ``fmt``;
    4. anything else is returned as text.
    """
    if not context.force_regeneration:
        entity = context.creative if is_creative else context.placement
        if entity is not None and variable_name in entity.manual_values:
            return await _resolve_manual(entity.manual_values[variable_name], fmt, context)

    raw_value = _hierarchy_value(variable_name, context, is_creative)
    if isinstance(raw_value, (OpenValue, ShortcodeRef, PlainValue)):
        return await _resolve_manual(raw_value, fmt, context)

    if _is_empty(raw_value):
        return ""

    if isinstance(raw_value, str) and format_requires_shortcode(fmt):
        formatted = await _format_shortcode(raw_value, fmt, context)
        if formatted is not None:
            return formatted

    return str(raw_value)
