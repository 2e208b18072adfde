"""Character reference decoding and invisible-character cleanup.

Objective:
    Make rendered text free of raw HTML character references and of the
    zero-width characters some senders inject to defeat preview matching.

Responsibilities:
    - Decode numeric (``&#39;``), hexadecimal (``&#x27;``) and named
      (``&amp;``, ``&mdash;``, ...) references, repeatedly, until nothing is
      left to decode.
    - Leave malformed references (no ``;``, unknown name, invalid code point)
      as literal text.
    - Strip zero-width/formatting characters and turn non-breaking spaces into
      plain spaces.

High-level call tree:
    - :func:`normalize_text`
        - :func:`decode_entities`
        - :func:`strip_invisible`

Operational notes:
    - :func:`normalize_text` is idempotent. Each decoding pass shortens the
      string, so the fixed-point loop always terminates.
"""

import re
from html.entities import html5
from typing import Optional

# Only semicolon-terminated references are decoded.
ENTITY_PATTERN = re.compile(r"&(#[0-9]+|#[xX][0-9a-fA-F]+|[A-Za-z][A-Za-z0-9]*);")

ZERO_WIDTH_CHARS = "\u200b\u200c\u200d\ufeff\u034f"
_INVISIBLE_TABLE = {ord(ch): None for ch in ZERO_WIDTH_CHARS}
_INVISIBLE_TABLE[0xA0] = " "

_MAX_CODE_POINT = 0x10FFFF
_MAX_DECIMAL_DIGITS = 7
_MAX_HEX_DIGITS = 6


def _decode_numeric(ref: str) -> Optional[str]:
    """Decode a ``#NNN`` / ``#xHH`` reference body, or None if invalid."""
    # Digit runs longer than U+10FFFF needs stay literal.
    if ref[1] in "xX":
        digits = ref[2:].lstrip("0")
        if len(digits) > _MAX_HEX_DIGITS:
            return None
        code_point = int(digits or "0", 16)
    else:
        digits = ref[1:].lstrip("0")
        if len(digits) > _MAX_DECIMAL_DIGITS:
            return None
        code_point = int(digits or "0")

    if code_point <= 0 or code_point > _MAX_CODE_POINT:
        return None
    if 0xD800 <= code_point <= 0xDFFF:
        return None
    return chr(code_point)


def _replace_reference(match: re.Match) -> str:
    ref = match.group(1)
    if ref.startswith("#"):
        decoded = _decode_numeric(ref)
    else:
        decoded = html5.get(ref + ";")
    return match.group(0) if decoded is None else decoded


def decode_entities(text: str) -> str:
    """Decode HTML character references until a fixed point is reached.

    Double-encoded input such as ``&amp;lt;`` decodes all the way to ``<``.

    Args:
        text: Text that may contain character references.

    Returns:
        str: Text with every well-formed reference decoded.
    """
    if not text or "&" not in text:
        return text or ""

    previous = None
    while previous != text:
        previous = text
        text = ENTITY_PATTERN.sub(_replace_reference, text)
    return text


def strip_invisible(text: str) -> str:
    """Remove zero-width characters and normalize non-breaking spaces.

    Args:
        text: Raw text.

    Returns:
        str: Text without U+200B/U+200C/U+200D/U+FEFF/U+034F, with U+00A0
        replaced by a regular space.
    """
    if not text:
        return ""
    return text.translate(_INVISIBLE_TABLE)


def normalize_text(text: Optional[str]) -> str:
    """Decode references and strip invisible characters.

    This is the last step of every rendering path.

    Args:
        text: Text to normalize (None is treated as empty).

    Returns:
        str: Normalized text.
    """
    if not text:
        return ""

    # A decoded &#8203; can sit inside a reference, so strip and decode
    # together until nothing changes.
    previous = None
    while previous != text:
        previous = text
        text = strip_invisible(decode_entities(strip_invisible(text)))
    return text
