"""Variable source registry, taxonomy formats and stored field names."""

from .types import FieldSource, TaxonomyFormat, TaxonomyType


CAMPAIGN_VARIABLES = [
    "CA_Name",
    "CA_Campaign_Identifier",
    "CA_Division",
    "CA_Quarter",
    "CA_Year",
    "CA_Custom_Dim_1",
    "CA_Custom_Dim_2",
    "CA_Custom_Dim_3",
    "CA_Billing_ID",
    "CA_PO",
    "CA_Budget",
    "CA_Currency",
    "CA_Start_Date",
    "CA_End_Date",
]

TACTIC_VARIABLES = [
    "TC_Publisher",
    "TC_Objective",
    "TC_LOB",
    "TC_Media_Type",
    "TC_Buying_Method",
    "TC_Custom_Dim_1",
    "TC_Custom_Dim_2",
    "TC_Custom_Dim_3",
    "TC_Inventory",
    "TC_Market",
    "TC_Language",
    "TC_Media_Objective",
    "TC_Kpi",
    "TC_Unit_Type",
    "TC_Budget",
    "TC_Currency",
    "TC_Billing_ID",
    "TC_PO",
    "TC_Start_Date",
    "TC_End_Date",
    "TC_Format",
    "TC_Placement",
]

PLACEMENT_VARIABLES = [
    "PL_Audience_Behaviour",
    "PL_Audience_Demographics",
    "PL_Audience_Engagement",
    "PL_Audience_Interest",
    "PL_Audience_Other",
    "PL_Creative_Grouping",
    "PL_Device",
    "PL_Channel",
    "PL_Format",
    "PL_Language",
    "PL_Market_Details",
    "PL_Product",
    "PL_Segment_Open",
    "PL_Tactic_Category",
    "PL_Targeting",
    "PL_Placement_Location",
    "PL_Custom_Dim_1",
    "PL_Custom_Dim_2",
    "PL_Custom_Dim_3",
    "PL_Label",
]

CREATIVE_VARIABLES = [
    "CR_Custom_Dim_1",
    "CR_Custom_Dim_2",
    "CR_Custom_Dim_3",
    "CR_CTA",
    "CR_Format_Details",
    "CR_Offer",
    "CR_Plateform_Name",
    "CR_Primary_Product",
    "CR_URL",
    "CR_Version",
    "CR_Label",
    "CR_Start_Date",
    "CR_End_Date",
    "CR_Sprint_Dates",
]

FIELD_SOURCES: dict[FieldSource, list[str]] = {
    FieldSource.CAMPAIGN: CAMPAIGN_VARIABLES,
    FieldSource.TACTIC: TACTIC_VARIABLES,
    FieldSource.PLACEMENT: PLACEMENT_VARIABLES,
    FieldSource.CREATIVE: CREATIVE_VARIABLES,
}

_PREFIX_SOURCES = {
    "CA_": FieldSource.CAMPAIGN,
    "TC_": FieldSource.TACTIC,
    "PL_": FieldSource.PLACEMENT,
    "CR_": FieldSource.CREATIVE,
}

_VARIABLE_INDEX = {
    name: source
    for source, names in FIELD_SOURCES.items()
    for name in names
}

# ── Stored field names ──

PLACEMENT_LEVELS = (1, 2, 3, 4)
CREATIVE_LEVELS = (5, 6)

PLACEMENT_TEMPLATE_FIELDS = {
    TaxonomyType.TAGS: "PL_Taxonomy_Tags",
    TaxonomyType.PLATFORM: "PL_Taxonomy_Platform",
    TaxonomyType.MEDIAOCEAN: "PL_Taxonomy_MediaOcean",
}

CREATIVE_TEMPLATE_FIELDS = {
    TaxonomyType.TAGS: "CR_Taxonomy_Tags",
    TaxonomyType.PLATFORM: "CR_Taxonomy_Platform",
    TaxonomyType.MEDIAOCEAN: "CR_Taxonomy_MediaOcean",
}

PLACEMENT_VALUES_FIELD = "PL_Taxonomy_Values"
CREATIVE_VALUES_FIELD = "CR_Taxonomy_Values"

PLACEMENT_SUMMARY_FIELD = "PL_Generated_Taxonomies"
CREATIVE_SUMMARY_FIELD = "CR_Generated_Taxonomies"

# Output field stem per taxonomy type, e.g. PL_Tag_1, CR_MO_6
CHAIN_STEMS = {
    TaxonomyType.TAGS: "Tag",
    TaxonomyType.PLATFORM: "Plateforme",
    TaxonomyType.MEDIAOCEAN: "MO",
}


def level_field(level: int) -> str:
    return f"NA_Name_Level_{level}"


def chain_field(prefix: str, taxonomy_type: TaxonomyType, level: int) -> str:
    return f"{prefix}_{CHAIN_STEMS[taxonomy_type]}_{level}"


def get_field_source(variable_name: str) -> FieldSource | None:
    """Return the hierarchy level that owns a variable, or None if unknown."""
    source = _VARIABLE_INDEX.get(variable_name)
    if source is not None:
        return source
    for prefix, prefix_source in _PREFIX_SOURCES.items():
        if variable_name.startswith(prefix):
            return prefix_source
    return None


def is_known_variable(variable_name: str) -> bool:
    return variable_name in _VARIABLE_INDEX


def parse_format(value: str) -> TaxonomyFormat | None:
    try:
        return TaxonomyFormat(value)
    except ValueError:
        return None


def format_requires_shortcode(fmt: str) -> bool:
    """Every format except free text is rendered from a shortcode record."""
    return fmt != TaxonomyFormat.OPEN
