"""HTML email body to Markdown conversion.

Objective:
    Turn a raw HTML email body into readable Markdown that keeps every piece
    of human-authored text, including quoted history.

Responsibilities:
    - Parse the HTML with BeautifulSoup and run the structural sanitizer.
    - Map the cleaned tree to Markdown with a ``markdownify`` converter tuned
      for email (ATX headings, ``*`` bullets, image alt placeholders, no
      Markdown escaping of plain text).
    - Tidy the result (trailing spaces, blank-line runs) and normalize
      character references and invisible characters.

High-level call tree:
    - :func:`html_to_markdown`
        - :func:`src.mailbody.sanitizer.strip_conditional_comments`
        - :func:`src.mailbody.sanitizer.sanitize_tree`
        - :class:`EmailMarkdownConverter`
        - :func:`src.mailbody.entities.normalize_text`
        - :func:`tidy_markdown`

Operational notes:
    Markup the HTML parser rejects is rendered as literal text, and a tree
    nested too deeply for the converter falls back to its plain text; callers
    always get a string back.
"""

import logging
import re
from typing import Optional

from bs4 import BeautifulSoup, ParserRejectedMarkup
from markdownify import ATX, MarkdownConverter

from .config import Settings
from .entities import normalize_text
from .sanitizer import sanitize_tree, strip_conditional_comments

logger = logging.getLogger(__name__)

_TRAILING_WHITESPACE = re.compile(r"[ \t]+$", re.MULTILINE)
_BLANK_LINE_RUNS = re.compile(r"\n{3,}")
_ALT_WHITESPACE = re.compile(r"\s+")


class EmailMarkdownConverter(MarkdownConverter):
    """``markdownify`` converter with email-specific tag mappings.

    Differences from the stock converter:
        - ``img`` renders as ``[image: <alt>]``, or nothing without alt text.
        - Text is not escaped, so ``*`` and ``_`` in prose stay readable.
        - Headings are ATX (``#``) and unordered lists always use ``*``.
        - Links are always ``[text](href)``, even when the text is the URL.
    """

    class Options(MarkdownConverter.DefaultOptions):
        heading_style = ATX
        bullets = "*"
        escape_asterisks = False
        escape_underscores = False
        escape_misc = False
        autolinks = False

    def convert_img(self, el, text, parent_tags):
        alt = _ALT_WHITESPACE.sub(" ", el.attrs.get("alt") or "").strip()
        if not alt:
            return ""
        return "[image: %s]" % alt


def tidy_markdown(markdown: str) -> str:
    """Collapse blank-line runs and trim whitespace.

    Args:
        markdown: Converter output.

    Returns:
        str: Markdown with no trailing spaces, at most one blank line between
        blocks, and no leading/trailing whitespace.
    """
    if not markdown:
        return ""
    text = markdown.replace("\r\n", "\n")
    text = _TRAILING_WHITESPACE.sub("", text)
    text = _BLANK_LINE_RUNS.sub("\n\n", text)
    return text.strip()


def html_to_markdown(html_content: Optional[str], settings: Optional[Settings] = None) -> str:
    """Convert an HTML email body to de-noised Markdown.

    Steps:
        1. Strip MSO conditional blocks from the raw markup.
        2. Parse with BeautifulSoup (``html.parser``).
        3. Sanitize the tree (:func:`src.mailbody.sanitizer.sanitize_tree`).
        4. Convert with :class:`EmailMarkdownConverter`.
        5. Normalize references/invisible characters and tidy whitespace.

    Args:
        html_content: Raw HTML string (None is treated as empty).
        settings: Optional settings passed to the sanitizer.

    Returns:
        str: Markdown text.
    """
    if not html_content:
        return ""

    html_content = strip_conditional_comments(html_content)

    try:
        soup = BeautifulSoup(html_content, "html.parser")
    except ParserRejectedMarkup:
        logger.warning(
            "HTML parser rejected email body (%d chars); rendering as literal text",
            len(html_content),
        )
        return tidy_markdown(normalize_text(html_content))

    sanitize_tree(soup, settings)
    try:
        markdown = EmailMarkdownConverter().convert_soup(soup)
    except RecursionError:
        logger.warning(
            "Email body nests too deeply to convert (%d chars); rendering text only",
            len(html_content),
        )
        return tidy_markdown(normalize_text(soup.get_text("\n\n")))

    return tidy_markdown(normalize_text(markdown))
