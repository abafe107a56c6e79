"""Tests for shortcode value formatting."""

import pytest

from taxonomy_engine.core.types import Shortcode
from taxonomy_engine.engine.formatter import format_shortcode_value


FULL = Shortcode(id="PRD1", code="P1", display_name_fr="Produit Un",
                 display_name_en="Product One", default_utm="prod1")
BARE = Shortcode(id="CHN1", code="SOC", display_name_fr="Social")


class TestFormatShortcodeValue:

    @pytest.mark.parametrize("mode,expected", [
        ("code", "P1"),
        ("display_fr", "Produit Un"),
        ("display_en", "Product One"),
        ("utm", "prod1"),
        ("custom_utm", "prod1"),
        ("custom_code", "P1"),
    ])
    def test_modes_without_custom_code(self, mode, expected):
        assert format_shortcode_value(FULL, None, mode) == expected

    def test_custom_code_wins_for_custom_modes(self):
        assert format_shortcode_value(FULL, "PRODUCT-ONE", "custom_code") == "PRODUCT-ONE"
        assert format_shortcode_value(FULL, "PRODUCT-ONE", "custom_utm") == "PRODUCT-ONE"

    def test_custom_code_ignored_for_plain_modes(self):
        assert format_shortcode_value(FULL, "PRODUCT-ONE", "code") == "P1"
        assert format_shortcode_value(FULL, "PRODUCT-ONE", "utm") == "prod1"

    def test_fallbacks_when_fields_missing(self):
        assert format_shortcode_value(BARE, None, "display_en") == "Social"
        assert format_shortcode_value(BARE, None, "utm") == "SOC"
        assert format_shortcode_value(BARE, None, "custom_utm") == "SOC"

    def test_unknown_mode_uses_french_name(self):
        assert format_shortcode_value(FULL, None, "whatever") == "Produit Un"

    def test_none_shortcode_is_empty(self):
        for mode in ["code", "display_fr", "custom_code", "bogus"]:
            assert format_shortcode_value(None, "X", mode) == ""
