"""
Tests for the converter module.
"""

import logging
import re
from pathlib import Path

import pytest
from bs4 import ParserRejectedMarkup

from src.mailbody import converter
from src.mailbody.converter import html_to_markdown, tidy_markdown

FIXTURES = Path(__file__).parent / "fixtures"

RESIDUAL_ENTITY = re.compile(r"&#\d+;|&#x[0-9a-f]+;|&(nbsp|amp|quot|lt|gt);", re.IGNORECASE)
ZERO_WIDTH = re.compile("[" + chr(0x200B) + chr(0x200C) + chr(0x200D) + chr(0xFEFF) + "]")


def _fixture(name: str) -> str:
    return (FIXTURES / name).read_text(encoding="utf-8")


class TestHtmlToMarkdown:
    """Tests for html_to_markdown function."""

    def test_empty_input(self):
        """Test with empty and None input."""
        assert html_to_markdown("") == ""
        assert html_to_markdown(None) == ""

    def test_entities_are_decoded(self):
        """Test numeric and named references in text."""
        assert html_to_markdown("<p>It&#39;s ready &amp; waiting</p>") == "It's ready & waiting"

    def test_double_encoded_entities(self):
        """Test references that were escaped twice by the sender."""
        assert html_to_markdown("<p>&amp;#39;quoted&amp;#39;</p>") == "'quoted'"

    def test_non_breaking_and_zero_width(self):
        """Test NBSP and zero-width characters in text."""
        html = "<p>5&nbsp;&gt;&nbsp;3 Hi&#8203;&zwnj; there" + chr(0x200B) + "</p>"
        assert html_to_markdown(html) == "5 > 3 Hi there"

    def test_layout_table_is_unwrapped(self):
        """Test a fixed-width layout table around a heading and paragraph."""
        html = (
            '<table width="600"><tr><td><h1>Welcome</h1>'
            "<p>This is inside a layout table.</p></td></tr></table>"
        )
        assert html_to_markdown(html) == "# Welcome\n\nThis is inside a layout table."

    def test_presentation_table_cells_become_paragraphs(self):
        """Test that adjacent layout cells stay separate blocks."""
        html = (
            '<table role="presentation"><tr><td>Left column</td>'
            "<td>Right column</td></tr></table>"
        )
        assert html_to_markdown(html) == "Left column\n\nRight column"

    def test_nested_layout_tables(self):
        """Test layout tables nested several levels deep."""
        html = (
            '<table width="100%"><tr><td align="center">'
            '<table width="600" cellpadding="0"><tr><td>'
            '<table cellspacing="0"><tr><td><p>Deep content</p></td></tr></table>'
            "</td></tr></table></td></tr></table>"
        )
        assert html_to_markdown(html) == "Deep content"

    def test_tracking_pixel_is_removed(self):
        """Test that a 1x1 image leaves nothing behind."""
        html = (
            '<img src="https://t.example.com/open.gif?id=1" width="1" height="1" alt="pixel">'
            "<p>Hello</p>"
            '<p>Mid<img src="https://t.example.com/o.gif" width="1" height="1">dle</p>'
        )
        result = html_to_markdown(html)
        assert result == "Hello\n\nMiddle"

    def test_image_alt_placeholder(self):
        """Test that content images render as alt-text placeholders."""
        html = '<p><img src="https://cdn.example.com/logo.png" alt="Acme   Logo"> Welcome</p>'
        assert html_to_markdown(html) == "[image: Acme Logo] Welcome"

    def test_image_with_tracking_word_in_path_keeps_placeholder(self):
        """Test that an alt-texted image on a tracking-like path is rendered."""
        html = (
            "<p>Shipped!</p>"
            '<img src="https://shop.example.com/img/track-order.png" alt="Track your order">'
        )
        assert html_to_markdown(html) == "Shipped!\n\n[image: Track your order]"

    def test_image_without_alt_is_dropped(self):
        """Test that images without alt text render as nothing."""
        assert html_to_markdown('<p>Hi<img src="https://cdn.example.com/a.png"></p>') == "Hi"

    def test_hidden_and_preheader_removed(self):
        """Test hidden elements and preheader text."""
        html = (
            '<span class="preheader">Preview text</span>'
            '<div style="display:none">Secret</div>'
            "<p>Visible</p>"
        )
        assert html_to_markdown(html) == "Visible"

    def test_mso_conditional_removed(self):
        """Test Outlook-only conditional blocks."""
        html = "<p>Before</p><!--[if mso]><p>Outlook only</p><![endif]--><p>After</p>"
        assert html_to_markdown(html) == "Before\n\nAfter"

    def test_scripts_styles_and_comments_removed(self):
        """Test that non-content markup is dropped."""
        html = (
            "<!DOCTYPE html><html><head><style>p{color:red}</style></head><body>"
            "<p>A<!-- note -->B</p><script>alert('xss')</script></body></html>"
        )
        assert html_to_markdown(html) == "AB"

    def test_links(self):
        """Test inline links, including links whose text is the URL."""
        assert html_to_markdown('<p>Visit <a href="https://example.com">our site</a></p>') == (
            "Visit [our site](https://example.com)"
        )
        assert html_to_markdown('<a href="https://example.com">https://example.com</a>') == (
            "[https://example.com](https://example.com)"
        )

    def test_lists(self):
        """Test unordered and ordered lists."""
        assert html_to_markdown("<ul><li>One</li><li>Two</li></ul>") == "* One\n* Two"
        assert html_to_markdown("<ol><li>One</li><li>Two</li></ol>") == "1. One\n2. Two"

    def test_headings_and_emphasis(self):
        """Test headings and inline emphasis."""
        html = "<h2>Title</h2><p>Some <strong>bold</strong> and <em>italic</em> text</p>"
        assert html_to_markdown(html) == "## Title\n\nSome **bold** and *italic* text"

    def test_line_breaks(self):
        """Test that <br> becomes a plain newline."""
        assert html_to_markdown("<p>Line one<br>Line two</p>") == "Line one\nLine two"

    def test_horizontal_rule(self):
        """Test <hr>."""
        assert html_to_markdown("<p>Above</p><hr><p>Below</p>") == "Above\n\n---\n\nBelow"

    def test_nested_blockquotes(self):
        """Test quoted history nested two levels deep."""
        html = "<blockquote><p>Outer</p><blockquote><p>Inner</p></blockquote></blockquote>"
        assert html_to_markdown(html) == "> Outer\n>\n> > Inner"

    def test_plain_punctuation_is_not_escaped(self):
        """Test that prose keeps its asterisks and underscores."""
        html = "<p>2 * 3 = 6, see snake_case and 1. item</p>"
        assert html_to_markdown(html) == "2 * 3 = 6, see snake_case and 1. item"

    def test_collapses_blank_lines(self):
        """Test that empty blocks do not produce blank-line runs."""
        html = "<p>A</p><p>&nbsp;</p><div><br></div><p></p><p>B</p>"
        assert html_to_markdown(html) == "A\n\nB"

    def test_settings_extend_tracker_patterns(self):
        """Test that configured tracker patterns reach the sanitizer."""
        from src.mailbody.config import Settings

        html = '<p>Hi</p><img src="https://mailstat.example.net/o/1.gif" alt="stat">'
        settings = Settings(_env_file=None, tracker_url_patterns="mailstat.example.net")

        assert html_to_markdown(html) == "Hi\n\n[image: stat]"
        assert html_to_markdown(html, settings) == "Hi"

    def test_rejected_markup_falls_back_to_text(self, monkeypatch, caplog):
        """Test that parser failures degrade to literal text."""

        def _reject(*args, **kwargs):
            raise ParserRejectedMarkup("bad markup")

        monkeypatch.setattr(converter, "BeautifulSoup", _reject)

        with caplog.at_level(logging.WARNING, logger="src.mailbody.converter"):
            result = html_to_markdown("<p>a &amp; b</p>")

        assert result == "<p>a & b</p>"
        assert "rejected" in caplog.text

    def test_deeply_nested_markup_falls_back_to_text(self, caplog):
        """Test that nesting too deep for the converter still renders its text."""
        html = "<div>" * 3000 + "deep <b>text</b>" + "</div>" * 3000

        with caplog.at_level(logging.WARNING, logger="src.mailbody.converter"):
            result = html_to_markdown(html)

        assert "deep" in result
        assert "text" in result
        assert "nests too deeply" in caplog.text


class TestTidyMarkdown:
    """Tests for tidy_markdown function."""

    def test_trims_and_collapses(self):
        """Test trailing spaces, CRLF and blank-line runs."""
        assert tidy_markdown("\n\nA  \r\n\n\n\nB\t\n\n") == "A\n\nB"

    def test_empty(self):
        """Test with empty input."""
        assert tidy_markdown("") == ""


class TestRealWorldFixtures:
    """Rendering tests over saved real-world email bodies."""

    @pytest.mark.parametrize(
        "name",
        ["newsletter.html", "receipt.html", "gmail_reply.html", "outlook_reply.html"],
    )
    def test_no_residual_entities_or_zero_width(self, name):
        """Test that fixtures render without entities or invisible characters."""
        result = html_to_markdown(_fixture(name))

        assert result
        assert not RESIDUAL_ENTITY.search(result)
        assert not ZERO_WIDTH.search(result)
        assert "<table" not in result
        assert "<td" not in result

    def test_newsletter(self):
        """Test a marketing newsletter with layout tables and trackers."""
        result = html_to_markdown(_fixture("newsletter.html"))

        assert "# This week" + chr(0x2019) + "s roast: Ethiopia Guji" in result
        assert "jasmine & dark chocolate." in result
        assert "Sale ends Sunday " + chr(0x2014) + " use code **BREW20** at checkout." in result
        assert "* Whole bean, 250 g" in result
        assert (
            "[Shop the roast](https://brew.example.com/shop/guji"
            "?utm_source=newsletter&utm_medium=email)"
        ) in result
        assert "Brew guide: the 4:6 method\n\nPodcast: growing at altitude" in result
        assert "You're receiving this" in result

        assert "Fresh beans" not in result
        assert "Outlook desktop wrapper" not in result
        assert "OfficeDocumentSettings" not in result
        assert "margin: 0" not in result
        assert "wf/open" not in result
        assert "track/open" not in result

    def test_receipt(self):
        """Test a transactional receipt with a data table."""
        result = html_to_markdown(_fixture("receipt.html"))

        assert "Receipt from Acme Cloud, Inc." in result
        assert "Receipt #1234" + chr(0x2013) + "5678" in result
        assert "AMOUNT PAID\n\n$25.00" in result
        assert "Feb 10, 2026" in result
        assert "Starter plan" in result
        assert "Description" in result
        assert "billing@acme.example" in result

        assert "Paid February 10, 2026" not in result
        assert "pixel.acme.example" not in result

    def test_gmail_reply_keeps_quoted_history(self):
        """Test that rendering keeps the quoted message."""
        result = html_to_markdown(_fixture("gmail_reply.html"))

        assert result.startswith("Sounds good, see you then!\n\nBob\n\nOn Mon, Feb 10, 2026")
        assert "wrote:\n\n> Can we meet at 3pm?\n>\n> John" in result

    def test_outlook_reply(self):
        """Test a Word-generated Outlook reply."""
        result = html_to_markdown(_fixture("outlook_reply.html"))

        assert result.startswith("Hi Alice,\n\nI" + chr(0x2019) + "ve reviewed the plan.")
        assert "Budget needs sign-off" in result
        assert "Regards,\nBob" in result
        assert "**From:** Alice Smith <alice@example.com>\n**Sent:** Monday" in result
        assert "Please review the attached project plan by Friday." in result
        assert "MsoNormal" not in result
        assert "shapedefaults" not in result
