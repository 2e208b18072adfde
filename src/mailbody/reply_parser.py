"""Reply boundary detection for compact thread display.

Objective:
    Given a rendered (or raw plain-text) email body, keep only the new
    content the sender wrote and drop quoted history, forwarded bodies and
    signatures, so a thread view does not repeat text that an earlier message
    already shows.

Core strategy:
    The body is scanned top-down, line by line, and cut at the first
    confirmed boundary:

    1. Attribution header ("On <date>, <name> wrote:" and its localized
       forms), or an Outlook reply header block / "Original Message" line.
    2. Quoted block: two or more ``>``-prefixed lines after the new content.
    3. Forwarded-message delimiter; its header fields are kept.
    4. Signature separator (``--`` / ``-- ``).
    5. Mobile client signature ("Sent from my iPhone") as the last paragraph.

    A ``>`` in the middle of a line, or a single quoted line between lines of
    prose, never counts: inline replies and pasted one-liners stay.

High-level call tree:
    - :func:`parse_reply`
        - :func:`find_boundary`
            - :func:`match_attribution` (ordered :data:`ATTRIBUTION_MATCHERS`)
            - :func:`_reply_header_at`
            - :func:`_quoted_run_end`
            - :func:`_forward_header_end`

Operational notes:
    This operation is lossy on purpose and is only for display. The forward
    path renders bodies with :func:`src.mailbody.renderer.render_body` and
    never calls into this module.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

_LINE_SPLIT = re.compile(r"\r?\n")


@dataclass(frozen=True)
class AttributionMatcher:
    """A named pattern recognising one locale's quote introduction line."""

    name: str
    pattern: re.Pattern

    def matches(self, line: str) -> bool:
        return self.pattern.match(line.strip()) is not None


# Tried in this order; the first match wins.
ATTRIBUTION_MATCHERS: tuple[AttributionMatcher, ...] = (
    AttributionMatcher("en", re.compile(r"^On\s.+\swrote\s*:$")),
    AttributionMatcher(
        "de",
        re.compile(r"^Am\s.+\s(?:schrieb\s.+|hat\s.+\sgeschrieben)\s*:$"),
    ),
    AttributionMatcher("fr", re.compile(r"^Le\s.+\sa\s+écrit\s*:$")),
    AttributionMatcher("zh", re.compile(r"^在.+写道\s*[：:]$")),
    AttributionMatcher("ja", re.compile(r"^.*\d.*、.+のメッセージ\s*[：:]$")),
    AttributionMatcher("ko", re.compile(r"^.*\d.*\s.+작성\s*[：:]$")),
    AttributionMatcher("es", re.compile(r"^El\s.+\sescribió\s*:$")),
    AttributionMatcher("pt", re.compile(r"^Em\s.+\sescreveu\s*:$")),
    AttributionMatcher("it", re.compile(r"^Il\s.+\sha\s+scritto\s*:$")),
    AttributionMatcher("nl", re.compile(r"^Op\s.+\sschreef\s.+:$")),
    AttributionMatcher(
        "outlook",
        re.compile(r"^[\\\s]*-{2,}\s*Original Message\s*-{2,}$", re.IGNORECASE),
    ),
)

_QUOTED_LINE = re.compile(r"^\s*>")
# The phrase must stand alone on its line, apart from rule characters.
_FORWARD_DELIMITER = re.compile(
    r"^[\s\\*_=-]*(?:Begin\s+)?forwarded message\s*:?[\s*_=-]*$", re.IGNORECASE
)
_HEADER_FIELD = re.compile(
    r"^\s*(?:\*\*)?(From|Date|Sent|Subject|To|Cc|Bcc|Reply-To)\s*:(?:\*\*)?(?:\s|$)",
    re.IGNORECASE,
)
_RULE_LINE = re.compile(r"^\s*(?:[-*_]\s*){3,}$")
_SENTENCE_END = re.compile(r"[.!?]$")
_SIGNATURE_SEPARATORS = ("--", "-- ")
_MOBILE_SIGNATURE = re.compile(
    r"^(?:Sent from my \S.*"
    r"|Sent from (?:Mail for Windows|Yahoo Mail|Outlook for|Proton Mail)\b.*"
    r"|Get Outlook for (?:iOS|Android)\b.*"
    r"|Envoyé de mon \S.*"
    r"|Von meinem \S.*gesendet)$",
    re.IGNORECASE,
)

# Wrapped attribution lines are joined only up to this length.
MAX_ATTRIBUTION_LENGTH = 300


@dataclass(frozen=True)
class Boundary:
    """Where and why a body was cut.

    Attributes:
        kind: Rule that fired (``attribution``, ``reply_header``, ``quote``,
            ``forward``, ``signature``, ``mobile_signature``).
        line: Index of the line that introduced the boundary.
        cut: Index of the first discarded line.
        locale: Matcher name for ``attribution`` boundaries.
    """

    kind: str
    line: int
    cut: int
    locale: Optional[str] = None


def split_lines(text: str) -> list[str]:
    """Split text on ``\\n`` or ``\\r\\n``."""
    return _LINE_SPLIT.split(text)


def _is_blank(line: str) -> bool:
    return not line.strip()


def _is_quoted(line: str) -> bool:
    return _QUOTED_LINE.match(line) is not None


def match_attribution(line: str) -> Optional[str]:
    """Return the name of the first locale matcher accepting ``line``.

    Args:
        line: A single (possibly joined) line.

    Returns:
        Optional[str]: Locale name, or None when no matcher accepts it.
    """
    for matcher in ATTRIBUTION_MATCHERS:
        if matcher.matches(line):
            return matcher.name
    return None


def _attribution_at(lines: list[str], index: int) -> Optional[str]:
    """Match an attribution on one line, or wrapped over two lines."""
    line = lines[index]
    locale = match_attribution(line)
    if locale is not None:
        return locale

    # Mail clients wrap long attributions; accept the two-line form only when
    # it is followed by quoted text, a blank line or the end of the body.
    if index + 1 >= len(lines) or _SENTENCE_END.search(line.strip()):
        return None
    following = lines[index + 1]
    if _is_blank(following) or _is_quoted(following):
        return None
    joined = line.strip() + " " + following.strip()
    if len(joined) > MAX_ATTRIBUTION_LENGTH:
        return None
    after = lines[index + 2] if index + 2 < len(lines) else ""
    if not (_is_blank(after) or _is_quoted(after)):
        return None
    return match_attribution(joined)


def _header_name(line: str) -> Optional[str]:
    match = _HEADER_FIELD.match(line)
    return match.group(1).lower() if match else None


def _reply_header_at(lines: list[str], index: int) -> bool:
    """Detect an Outlook-style ``From:`` / ``Sent:`` reply header block."""
    if _header_name(lines[index]) != "from":
        return False
    names = set()
    for line in lines[index + 1:index + 5]:
        name = _header_name(line)
        if name is None:
            break
        names.add(name)
    return bool(names & {"sent", "date"}) and bool(names & {"to", "subject"})


def _quoted_run_end(lines: list[str], index: int) -> int:
    end = index
    while end < len(lines) and _is_quoted(lines[end]):
        end += 1
    return end


def _forward_header_end(lines: list[str], index: int) -> int:
    """Return the index just past the header fields after a forward delimiter."""
    position = index + 1
    while position < len(lines) and _is_blank(lines[position]):
        position += 1
    if position >= len(lines) or _header_name(lines[position]) is None:
        return index + 1

    while position < len(lines):
        line = lines[position]
        if _header_name(line) is not None:
            position += 1
        elif line[:1] in (" ", "\t") and not _is_blank(line):
            # folded continuation of the previous field (long To:/Cc: lists)
            position += 1
        else:
            break
    return position


def _is_final_paragraph(lines: list[str], index: int) -> bool:
    seen_blank = False
    for line in lines[index + 1:]:
        if _is_blank(line):
            seen_blank = True
        elif seen_blank:
            return False
    return True


def find_boundary(text: Optional[str]) -> Optional[Boundary]:
    """Locate the first reply boundary in a body.

    Args:
        text: Rendered Markdown or plain-text body.

    Returns:
        Optional[Boundary]: The first confirmed boundary, or None.
    """
    if not text:
        return None

    lines = split_lines(text)
    has_prior = False
    index = 0

    while index < len(lines):
        line = lines[index]

        if _is_blank(line):
            index += 1
            continue

        if _is_quoted(line):
            end = _quoted_run_end(lines, index)
            if has_prior and end - index >= 2:
                return Boundary("quote", index, index)
            if not has_prior and all(_is_blank(rest) for rest in lines[end:]):
                return Boundary("quote", index, index)
            has_prior = True
            index = end
            continue

        locale = _attribution_at(lines, index)
        if locale is not None:
            return Boundary("attribution", index, index, locale)

        if _reply_header_at(lines, index):
            return Boundary("reply_header", index, index)

        if _FORWARD_DELIMITER.match(line):
            return Boundary("forward", index, _forward_header_end(lines, index))

        if has_prior and line in _SIGNATURE_SEPARATORS:
            return Boundary("signature", index, index)

        if (
            has_prior
            and _MOBILE_SIGNATURE.match(line.strip())
            and _is_final_paragraph(lines, index)
        ):
            return Boundary("mobile_signature", index, index)

        has_prior = True
        index += 1

    return None


def parse_reply(text: Optional[str]) -> str:
    """Return the visible reply: the content before the first boundary.

    Trailing blank lines before the boundary collapse to a single empty line,
    so ``"Thanks!\\n\\nOn ... wrote:\\n> ..."`` becomes ``"Thanks!\\n"``.
    Bodies without a boundary are returned unchanged, and a body that is
    entirely quoted yields an empty string.

    Args:
        text: Rendered Markdown or plain-text body (None is treated as empty).

    Returns:
        str: Visible reply text.
    """
    if not text:
        return ""

    boundary = find_boundary(text)
    if boundary is None:
        return text

    logger.debug(
        "Reply boundary found: kind=%s line=%d locale=%s",
        boundary.kind,
        boundary.line,
        boundary.locale,
    )

    kept = split_lines(text)[:boundary.cut]
    trailing_blank = False
    # A rule drawn above the quoted header belongs to the boundary.
    while kept and (_is_blank(kept[-1]) or _RULE_LINE.match(kept[-1])):
        trailing_blank = trailing_blank or _is_blank(kept[-1])
        kept.pop()
    if not kept:
        return ""
    if trailing_blank:
        kept.append("")
    return "\n".join(kept)
