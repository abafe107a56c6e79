"""Taxonomy template parsing, level string generation and structure validation.

Template grammar:
    literal text
    [Variable:format]          single variable
    <[A:fmt]delim[B:fmt]>      delimiter group, empty members dropped,
                               whole group omitted when every member is empty
"""

import asyncio
import re
from dataclasses import dataclass, field, asdict
from typing import Awaitable, Callable, Optional

from ..core.errors import TemplateSyntaxError
from ..core.fields import get_field_source, is_known_variable, parse_format
from ..core.types import TaxonomyFormat

MASTER_PATTERN = re.compile(r"(<[^>]*>|\[[^\]]+\])")
VARIABLE_PATTERN = re.compile(r"\[([^:\]]+):([^\]]+)\]")
DELIMITER_PATTERN = re.compile(r"\](.*?)\s*\[")

Resolve = Callable[[str, str], Awaitable[str]]


# ── Segments ──


@dataclass
class Segment:
    kind: str  # "literal" | "variable" | "group"
    text: str
    variables: list[tuple[str, str]] = field(default_factory=list)
    delimiter: str = ""


def split_segments(template: str) -> list[Segment]:
    """Split a level template into ordered literal / variable / group segments."""
    if not template:
        return []

    segments = []
    for piece in MASTER_PATTERN.split(template):
        if not piece:
            continue
        if piece.startswith("<") and piece.endswith(">"):
            content = piece[1:-1]
            variables = VARIABLE_PATTERN.findall(content)
            if not variables:
                # A group without variables is plain text
                segments.append(Segment("literal", content))
                continue
            match = DELIMITER_PATTERN.search(content)
            segments.append(Segment("group", piece, variables=variables,
                                    delimiter=match.group(1) if match else ""))
        elif piece.startswith("[") and piece.endswith("]"):
            match = VARIABLE_PATTERN.fullmatch(piece)
            if match:
                segments.append(Segment("variable", piece, variables=[match.groups()]))
            else:
                segments.append(Segment("literal", piece))
        else:
            segments.append(Segment("literal", piece))
    return segments


async def generate_level_string(template: str, resolve: Resolve) -> str:
    """Build one level's final string. ``resolve(name, fmt)`` supplies values."""
    parts = []
    for segment in split_segments(template):
        if segment.kind == "literal":
            parts.append(segment.text)
        elif segment.kind == "variable":
            name, fmt = segment.variables[0]
            parts.append(await resolve(name, fmt))
        else:
            values = []
            for name, fmt in segment.variables:
                value = await resolve(name, fmt)
                # Unresolved placeholders never join a group
                if value and not value.startswith("["):
                    values.append(value)
            if values:
                parts.append(segment.delimiter.join(values))
    return "".join(parts)


async def generate_levels(templates: list[str], resolve: Resolve) -> list[str]:
    return list(await asyncio.gather(*(generate_level_string(t, resolve) for t in templates)))


# ── Structure validation ──


@dataclass
class ParsedVariable:
    variable: str
    formats: list[str]
    source: str
    level: int
    is_valid: bool = True
    error_message: Optional[str] = None


@dataclass
class ParsedStructure:
    variables: list[ParsedVariable] = field(default_factory=list)
    is_valid: bool = True
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


def _validate_variable(name: str, fmt: str) -> Optional[str]:
    if not is_known_variable(name):
        return f"Unknown variable: {name}"
    if parse_format(fmt) is None:
        allowed = ", ".join(f.value for f in TaxonomyFormat)
        return f"Format {fmt} is not supported. Allowed formats: {allowed}"
    return None


def parse_structure(template: str, level: int = 1) -> ParsedStructure:
    """List the variables a template uses and flag unknown names or formats.

    A variable used with several formats is reported once with all of them.
    An empty template is itself invalid.
    """
    result = ParsedStructure()
    if not template or not isinstance(template, str):
        result.is_valid = False
        result.errors.append("Taxonomy structure is empty or invalid")
        return result

    by_name: dict[str, ParsedVariable] = {}
    for name, fmt in VARIABLE_PATTERN.findall(template):
        existing = by_name.get(name)
        if existing is not None:
            if fmt in existing.formats:
                continue
            existing.formats.append(fmt)
        else:
            source = get_field_source(name)
            existing = ParsedVariable(
                variable=name,
                formats=[fmt],
                source=source.value if source else "manual",
                level=level,
            )
            by_name[name] = existing
            result.variables.append(existing)

        error = _validate_variable(name, fmt)
        if error:
            existing.is_valid = False
            existing.error_message = error
            result.is_valid = False
            result.errors.append(f"{name}: {error}")

    return result


def parse_all_taxonomies(tags: Optional[str] = None, platform: Optional[str] = None,
                         mediaocean: Optional[str] = None) -> dict[str, ParsedStructure]:
    results = {}
    if tags:
        results["tags"] = parse_structure(tags, 1)
    if platform:
        results["platform"] = parse_structure(platform, 2)
    if mediaocean:
        results["mediaocean"] = parse_structure(mediaocean, 3)
    return results


def extract_unique_variables(structures: dict[str, ParsedStructure]) -> list[ParsedVariable]:
    """Merge parsed structures into one variable list, consolidating formats."""
    unique: dict[str, ParsedVariable] = {}
    for structure in structures.values():
        for variable in structure.variables:
            existing = unique.get(variable.variable)
            if existing is None:
                unique[variable.variable] = ParsedVariable(**{**asdict(variable),
                                                              "formats": list(variable.formats)})
                continue
            for fmt in variable.formats:
                if fmt not in existing.formats:
                    existing.formats.append(fmt)
    return list(unique.values())


def validate_template(template: str, strict: bool = True, level: int = 1) -> ParsedStructure:
    structure = parse_structure(template, level)
    if strict and not structure.is_valid:
        raise TemplateSyntaxError(structure.errors[0], errors=structure.errors)
    return structure
