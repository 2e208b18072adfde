"""
Tests for the entities module.
"""

import pytest

from src.mailbody.entities import (
    ZERO_WIDTH_CHARS,
    decode_entities,
    normalize_text,
    strip_invisible,
)

ZWSP = chr(0x200B)
ZWNJ = chr(0x200C)
BOM = chr(0xFEFF)
NBSP = chr(0xA0)


class TestDecodeEntities:
    """Tests for decode_entities function."""

    def test_numeric_reference(self):
        """Test decimal references."""
        assert decode_entities("It&#39;s ready") == "It's ready"

    def test_hex_reference(self):
        """Test hexadecimal references in either case."""
        assert decode_entities("&#x27;a&#X27;") == "'a'"

    def test_named_references(self):
        """Test common and less common named references."""
        assert decode_entities("Tom &amp; Jerry &mdash; caf&eacute;") == (
            "Tom & Jerry " + chr(0x2014) + " caf" + chr(0xE9)
        )

    def test_double_encoded_input_decodes_fully(self):
        """Test that references are decoded until nothing is left."""
        assert decode_entities("&amp;lt;b&amp;gt;") == "<b>"
        assert decode_entities("&amp;amp;#39;") == "'"

    @pytest.mark.parametrize(
        "text",
        [
            "&copy 2026",
            "&notarealentity;",
            "AT&T",
            "&#0;",
            "&#xD800;",
            "&#1114112;",
            "&;",
        ],
    )
    def test_malformed_references_stay_literal(self, text):
        """Test that malformed references are left as-is."""
        assert decode_entities(text) == text

    def test_zero_padded_reference_decodes(self):
        """Test that leading zeros of any length are ignored."""
        assert decode_entities("a &#" + "0" * 5000 + "39; b") == "a ' b"
        assert decode_entities("&#x" + "0" * 5000 + "27;") == "'"

    def test_oversized_references_stay_literal(self):
        """Test that very long digit runs are left as-is instead of failing."""
        decimal = "&#" + "9" * 5000 + ";"
        hexadecimal = "&#x" + "f" * 5000 + ";"
        assert decode_entities(decimal) == decimal
        assert decode_entities(hexadecimal) == hexadecimal
        assert normalize_text("&#12345678;") == "&#12345678;"

    def test_empty_string(self):
        """Test with empty input."""
        assert decode_entities("") == ""


class TestStripInvisible:
    """Tests for strip_invisible function."""

    def test_removes_zero_width_characters(self):
        """Test that every zero-width character is removed."""
        assert strip_invisible("a" + ZERO_WIDTH_CHARS + "b") == "ab"

    def test_non_breaking_space_becomes_space(self):
        """Test NBSP normalization."""
        assert strip_invisible("250" + NBSP + "g") == "250 g"

    def test_plain_text_unchanged(self):
        """Test that regular text passes through."""
        assert strip_invisible("> quoted\n-- \nsig") == "> quoted\n-- \nsig"


class TestNormalizeText:
    """Tests for normalize_text function."""

    def test_none_and_empty(self):
        """Test that None and empty input yield an empty string."""
        assert normalize_text(None) == ""
        assert normalize_text("") == ""

    def test_decodes_and_strips(self):
        """Test combined decoding and invisible-character removal."""
        text = "Big" + ZWSP + "Sale&nbsp;today" + BOM
        assert normalize_text(text) == "BigSale today"

    def test_encoded_zero_width_is_removed(self):
        """Test that zero-width characters written as references are removed."""
        assert normalize_text("Hi&#8203;&zwnj;&#xFEFF; there") == "Hi there"

    def test_zero_width_inside_reference(self):
        """Test a reference split by a zero-width character."""
        assert normalize_text("&am" + ZWSP + "p;") == "&"

    @pytest.mark.parametrize(
        "text",
        [
            "It&#39;s ready &amp; waiting",
            "&amp;amp;#39;" + ZWNJ,
            "&am&#8203;p;lt;",
            "plain text > with arrows",
            "&copy 2026 &unknown;",
        ],
    )
    def test_idempotent(self, text):
        """Test that normalizing twice equals normalizing once."""
        once = normalize_text(text)
        assert normalize_text(once) == once
