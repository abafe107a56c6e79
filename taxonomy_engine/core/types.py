"""All shared data types for the taxonomy engine."""

from dataclasses import dataclass, field, asdict
from typing import Optional, Any, Union
from enum import Enum


class ParentType(str, Enum):
    CAMPAIGN = "campaign"
    TACTIC = "tactic"
    PLACEMENT = "placement"


class TaxonomyType(str, Enum):
    TAGS = "tags"
    PLATFORM = "platform"
    MEDIAOCEAN = "mediaocean"


class FieldSource(str, Enum):
    CAMPAIGN = "campaign"
    TACTIC = "tactic"
    PLACEMENT = "placement"
    CREATIVE = "creative"


class TaxonomyFormat(str, Enum):
    CODE = "code"
    DISPLAY_FR = "display_fr"
    DISPLAY_EN = "display_en"
    UTM = "utm"
    CUSTOM_UTM = "custom_utm"
    CUSTOM_CODE = "custom_code"
    OPEN = "open"


class RunStatus(str, Enum):
    DONE = "done"
    NOTHING_TO_DO = "nothing_to_do"
    PRECONDITION_FAILED = "precondition_failed"


# ── Manual taxonomy values ──


@dataclass(frozen=True)
class OpenValue:
    text: str


@dataclass(frozen=True)
class ShortcodeRef:
    shortcode_id: str
    value: str = ""


@dataclass(frozen=True)
class PlainValue:
    value: Any


ManualValue = Union[OpenValue, ShortcodeRef, PlainValue]


def parse_manual_value(entry: Any) -> Optional[ManualValue]:
    """Decode one stored manual taxonomy entry; None when it carries nothing."""
    if not isinstance(entry, dict):
        return PlainValue(entry) if entry not in (None, "") else None
    if entry.get("open") or entry.get("format") == TaxonomyFormat.OPEN.value:
        return OpenValue(str(entry.get("openValue") or ""))
    if entry.get("shortcodeId"):
        return ShortcodeRef(str(entry["shortcodeId"]), str(entry.get("value") or ""))
    return PlainValue(entry.get("value"))


def parse_manual_values(raw: Any) -> dict[str, ManualValue]:
    if not isinstance(raw, dict):
        return {}
    values = {}
    for name, entry in raw.items():
        parsed = parse_manual_value(entry)
        if parsed is not None:
            values[name] = parsed
    return values


# ── Entities ──


@dataclass
class Campaign:
    id: str
    client_id: str
    fields: dict = field(default_factory=dict)

    @property
    def name(self) -> str:
        return str(self.fields.get("CA_Name") or "")


@dataclass
class Tactic:
    id: str
    fields: dict = field(default_factory=dict)


@dataclass
class Placement:
    id: str
    fields: dict = field(default_factory=dict)
    template_ids: dict = field(default_factory=dict)  # TaxonomyType -> taxonomy id
    manual_values: dict = field(default_factory=dict)  # variable -> ManualValue

    @classmethod
    def from_document(cls, doc_id: str, data: dict) -> 'Placement':
        from .fields import PLACEMENT_TEMPLATE_FIELDS, PLACEMENT_VALUES_FIELD
        return cls(
            id=doc_id,
            fields=dict(data),
            template_ids={t: data.get(f) or None for t, f in PLACEMENT_TEMPLATE_FIELDS.items()},
            manual_values=parse_manual_values(data.get(PLACEMENT_VALUES_FIELD)),
        )


@dataclass
class Creative:
    id: str
    placement_id: str
    fields: dict = field(default_factory=dict)
    template_ids: dict = field(default_factory=dict)
    manual_values: dict = field(default_factory=dict)

    @classmethod
    def from_document(cls, doc_id: str, placement_id: str, data: dict) -> 'Creative':
        from .fields import CREATIVE_TEMPLATE_FIELDS, CREATIVE_VALUES_FIELD
        return cls(
            id=doc_id,
            placement_id=placement_id,
            fields=dict(data),
            template_ids={t: data.get(f) or None for t, f in CREATIVE_TEMPLATE_FIELDS.items()},
            manual_values=parse_manual_values(data.get(CREATIVE_VALUES_FIELD)),
        )


@dataclass
class Taxonomy:
    id: str
    levels: dict = field(default_factory=dict)  # level number -> template string
    display_name: str = ""

    def level(self, number: int) -> str:
        return self.levels.get(number) or ""

    @classmethod
    def from_document(cls, doc_id: str, data: dict) -> 'Taxonomy':
        from .fields import level_field
        return cls(
            id=doc_id,
            levels={n: str(data.get(level_field(n)) or "") for n in range(1, 7)},
            display_name=str(data.get("NA_Display_Name") or ""),
        )


@dataclass
class Shortcode:
    id: str
    code: str = ""
    display_name_fr: str = ""
    display_name_en: str = ""
    default_utm: str = ""

    @classmethod
    def from_document(cls, doc_id: str, data: dict) -> 'Shortcode':
        return cls(
            id=doc_id,
            code=str(data.get("SH_Code") or ""),
            display_name_fr=str(data.get("SH_Display_Name_FR") or ""),
            display_name_en=str(data.get("SH_Display_Name_EN") or ""),
            default_utm=str(data.get("SH_Default_UTM") or ""),
        )


# ── Propagation input / output ──


@dataclass
class ParentData:
    id: str
    client_id: str = ""
    campaign_id: Optional[str] = None
    name: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> 'ParentData':
        return cls(
            id=str(data.get("id") or ""),
            client_id=str(data.get("clientId") or data.get("client_id") or ""),
            campaign_id=data.get("campaignId") or data.get("campaign_id"),
            name=str(data.get("name") or ""),
        )


@dataclass
class EntityFailure:
    kind: str  # "placement" | "creative"
    entity_id: str
    path: list[str]
    message: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class PropagationResult:
    status: str
    parent_type: str
    parent_id: str
    campaign_id: Optional[str] = None
    updated: list[list[str]] = field(default_factory=list)
    skipped: int = 0
    errors: list[EntityFailure] = field(default_factory=list)
    precondition: Optional[Exception] = None

    @property
    def updated_count(self) -> int:
        return len(self.updated)

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "parent_type": self.parent_type,
            "parent_id": self.parent_id,
            "campaign_id": self.campaign_id,
            "updated_count": self.updated_count,
            "updated": self.updated,
            "skipped": self.skipped,
            "errors": [e.to_dict() for e in self.errors],
            "precondition": str(self.precondition) if self.precondition else None,
        }


@dataclass
class EngineConfig:
    store_backend: str = "memory"
    store_path: str = ""
    firestore_project_id: str = ""
    firestore_database: str = "(default)"
    firestore_token: str = ""
    max_retries: int = 3
    timeout_seconds: float = 30.0
    force_regeneration: bool = False
