"""Structural cleanup of parsed HTML email bodies.

Objective:
    Remove everything from a parsed email body that is markup noise rather
    than content, before the tree is converted to Markdown.

Responsibilities:
    - Strip Outlook/MSO conditional-comment blocks from the raw markup.
    - Drop ``script``/``style``/``head`` subtrees, comments and declarations.
    - Drop hidden elements (``display:none``, ``mso-hide:all``) and preheader
      preview text.
    - Drop tracking pixels (tiny images and known beacon URLs).
    - Unwrap layout tables so their cells flow as ordinary blocks.

High-level call tree:
    - :func:`strip_conditional_comments` (raw HTML, before parsing)
    - :func:`sanitize_tree` (parsed tree, in place)
        - :func:`is_hidden`
        - :func:`is_preheader`
        - :func:`is_tracking_pixel`
        - :func:`is_layout_table` / :func:`unwrap_layout_table`

Security notes:
    Only removal and unwrapping happen here. Text nodes are never edited, so
    human-authored text that survives the noise rules reaches the converter
    untouched.
"""

import logging
import re
from collections import Counter
from typing import Optional

from bs4 import BeautifulSoup
from bs4.element import Comment, Declaration, Doctype, ProcessingInstruction, Tag

from .config import Settings

logger = logging.getLogger(__name__)

NOISE_TAGS = ["script", "style", "head", "title", "meta", "link"]

# Outlook conditional comments. "Revealed" markers wrap content every
# non-Outlook client shows, so only the markers go.
_REVEALED_OPEN = re.compile(r"<!--\[if\s+![^\]]*\]>\s*<!-->", re.IGNORECASE)
_REVEALED_CLOSE = re.compile(r"<!--\s*<!\[endif\]\s*-->", re.IGNORECASE)
_HIDDEN_BLOCK = re.compile(
    r"<!--\[if[^\]]*\]>.*?<!\[endif\]\s*-->", re.IGNORECASE | re.DOTALL
)
_BARE_REVEALED_BLOCK = re.compile(
    r"<!\[if\s+![^\]]*\]>(.*?)<!\[endif\]>", re.IGNORECASE | re.DOTALL
)
_BARE_BLOCK = re.compile(r"<!\[if[^\]]*\]>.*?<!\[endif\]>", re.IGNORECASE | re.DOTALL)
_STRAY_MARKER = re.compile(r"<!\[(?:if[^\]]*|endif)\]>", re.IGNORECASE)

_HIDDEN_STYLE = re.compile(r"display\s*:\s*none|mso-hide\s*:\s*all", re.IGNORECASE)

PREHEADER_MARKERS = ("preheader", "preview-text")

# Host or path segments used by open-tracking beacons.
TRACKER_URL_PATTERN = re.compile(
    r"(?:^|[/.?&=_-])(?:beacons?|pixels?|track(?:ing|er)?|analytics|openrate)"
    r"(?:[/.?&=_-]|$)",
    re.IGNORECASE,
)
TRACKER_URL_FRAGMENTS = ("/wf/open", "list-manage.com/track", "/e/o/")

_DIMENSION = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(?:px)?\s*$", re.IGNORECASE)
_STYLE_DIMENSION = re.compile(
    r"(?:^|;)\s*(?:width|height)\s*:\s*(\d+(?:\.\d+)?)\s*px", re.IGNORECASE
)

TABLE_CELL_TAGS = ["td", "th", "caption"]
TABLE_STRUCTURE_TAGS = ["tr", "tbody", "thead", "tfoot", "colgroup", "col"]


def strip_conditional_comments(html_content: str) -> str:
    """Remove Outlook/MSO conditional blocks from raw HTML.

    Handles both the comment form ``<!--[if mso]>...<![endif]-->`` and the
    bare form ``<![if mso]>...<![endif]>``. Negated conditions
    (``<!--[if !mso]><!-->``) keep their content and lose only the markers.

    Args:
        html_content: Raw HTML string.

    Returns:
        str: HTML without MSO-only blocks or leftover conditional markers.
    """
    if not html_content or "[if" not in html_content.lower():
        return html_content or ""

    text = _REVEALED_OPEN.sub("", html_content)
    text = _REVEALED_CLOSE.sub("", text)
    text = _HIDDEN_BLOCK.sub("", text)
    text = _BARE_REVEALED_BLOCK.sub(r"\1", text)
    text = _BARE_BLOCK.sub("", text)
    return _STRAY_MARKER.sub("", text)


def _attr_text(tag: Tag, name: str) -> str:
    """Return an attribute as a lowercased string (multi-valued ones joined)."""
    value = tag.get(name)
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        value = " ".join(value)
    return str(value).strip().lower()


def is_hidden(tag: Tag) -> bool:
    """Check whether an element is hidden by its inline style.

    Args:
        tag: Parsed element.

    Returns:
        bool: True for ``display:none`` or ``mso-hide:all``.
    """
    style = _attr_text(tag, "style")
    return bool(style) and _HIDDEN_STYLE.search(style) is not None


def is_preheader(tag: Tag, settings: Optional[Settings] = None) -> bool:
    """Check whether an element holds inbox-preview-only text.

    Args:
        tag: Parsed element.
        settings: Optional settings with extra markers.

    Returns:
        bool: True if the class or id carries a preheader marker.
    """
    markers = list(PREHEADER_MARKERS)
    if settings is not None:
        markers.extend(settings.preheader_marker_list)

    identity = _attr_text(tag, "class") + " " + _attr_text(tag, "id")
    return any(marker in identity for marker in markers)


def _is_tiny(value: str) -> bool:
    match = _DIMENSION.match(value)
    return match is not None and float(match.group(1)) <= 1


def is_tracking_pixel(tag: Tag, settings: Optional[Settings] = None) -> bool:
    """Check whether an ``img`` is an open-tracking beacon.

    An image counts as a tracker when its ``width`` or ``height`` is at most
    one pixel, or its ``src`` hits a known beacon endpoint or a configured
    pattern. A ``src`` that merely has a ``track``/``pixel``-like segment only
    counts when the image has no alt text.

    Args:
        tag: Parsed ``img`` element.
        settings: Optional settings with extra tracker URL patterns.

    Returns:
        bool: True if the image should be dropped.
    """
    for dimension in ("width", "height"):
        if tag.has_attr(dimension) and _is_tiny(_attr_text(tag, dimension)):
            return True

    for match in _STYLE_DIMENSION.finditer(_attr_text(tag, "style")):
        if float(match.group(1)) <= 1:
            return True

    src = _attr_text(tag, "src")
    if not src:
        return False
    if not _attr_text(tag, "alt").strip() and TRACKER_URL_PATTERN.search(src):
        return True

    fragments = list(TRACKER_URL_FRAGMENTS)
    if settings is not None:
        fragments.extend(settings.tracker_url_pattern_list)
    return any(fragment in src for fragment in fragments)


def is_layout_table(tag: Tag) -> bool:
    """Check whether a ``table`` is used for layout rather than data.

    Args:
        tag: Parsed ``table`` element.

    Returns:
        bool: True for tables with ``width``, ``cellpadding``, ``cellspacing``,
        ``align="center"`` or ``role="presentation"``.
    """
    if tag.has_attr("width") or tag.has_attr("cellpadding") or tag.has_attr("cellspacing"):
        return True
    if _attr_text(tag, "align") == "center":
        return True
    return _attr_text(tag, "role") == "presentation"


def _own_parts(table: Tag, names: list[str]) -> list[Tag]:
    """Return descendants named ``names`` whose nearest table is ``table``."""
    return [el for el in table.find_all(names) if el.find_parent("table") is table]


def unwrap_layout_table(table: Tag) -> None:
    """Flatten a layout table into the surrounding flow.

    Each cell becomes a plain ``div`` block (so adjacent cells stay separate
    paragraphs) and the row/section/table tags are discarded. Nested tables
    are left for their own pass.

    Args:
        table: Parsed ``table`` element, modified in place.
    """
    for cell in _own_parts(table, TABLE_CELL_TAGS):
        cell.name = "div"
        cell.attrs = {}

    for part in _own_parts(table, TABLE_STRUCTURE_TAGS):
        if part.name in ("colgroup", "col"):
            part.decompose()
        else:
            part.unwrap()

    table.unwrap()


def _drop(tags: list[Tag]) -> int:
    count = 0
    for tag in tags:
        if tag.decomposed:
            continue
        tag.decompose()
        count += 1
    return count


def sanitize_tree(soup: BeautifulSoup, settings: Optional[Settings] = None) -> Counter:
    """Remove noise nodes from a parsed email body, in place.

    Order matters: hidden and preheader checks read inline attributes that
    layout-table unwrapping discards, so tables are flattened last.

    Args:
        soup: Parsed HTML tree.
        settings: Optional settings with extra tracker/preheader markers.

    Returns:
        Counter: Number of nodes removed or unwrapped per rule.
    """
    removed: Counter = Counter()

    removed["noise"] = _drop(soup.find_all(NOISE_TAGS))

    markup_only = (Comment, Declaration, Doctype, ProcessingInstruction)
    for node in [n for n in soup.descendants if isinstance(n, markup_only)]:
        node.extract()
        removed["markup"] += 1

    removed["hidden"] = _drop([tag for tag in soup.find_all(True) if is_hidden(tag)])
    removed["preheader"] = _drop(
        [tag for tag in soup.find_all(True) if is_preheader(tag, settings)]
    )
    removed["pixel"] = _drop(
        [tag for tag in soup.find_all("img") if is_tracking_pixel(tag, settings)]
    )

    while True:
        tables = [tag for tag in soup.find_all("table") if is_layout_table(tag)]
        if not tables:
            break
        for table in tables:
            unwrap_layout_table(table)
        removed["layout_table"] += len(tables)

    logger.debug("Sanitized email HTML: %s", dict(+removed))
    return removed
