"""Render a shortcode record in one of the taxonomy formats."""

from typing import Optional

from ..core.types import Shortcode, TaxonomyFormat


def format_shortcode_value(shortcode: Optional[Shortcode], custom_code: Optional[str],
                           mode: str) -> str:
    """Return the textual representation of ``shortcode`` for ``mode``.

    Fallback chains:
    - display_en  → English name, else French name
    - utm         → default UTM, else code
    - custom_utm  → client custom code, else default UTM, else code
    - custom_code → client custom code, else code
    - unknown     → French name
    """
    if shortcode is None:
        return ""

    if mode == TaxonomyFormat.CODE:
        return shortcode.code
    if mode == TaxonomyFormat.DISPLAY_FR:
        return shortcode.display_name_fr
    if mode == TaxonomyFormat.DISPLAY_EN:
        return shortcode.display_name_en or shortcode.display_name_fr
    if mode == TaxonomyFormat.UTM:
        return shortcode.default_utm or shortcode.code
    if mode == TaxonomyFormat.CUSTOM_UTM:
        return custom_code or shortcode.default_utm or shortcode.code
    if mode == TaxonomyFormat.CUSTOM_CODE:
        return custom_code or shortcode.code
    return shortcode.display_name_fr
