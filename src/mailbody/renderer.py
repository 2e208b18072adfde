"""Email body rendering entrypoint.

Objective:
    Route a raw email body to the right rendering path based on its MIME
    type and return normalized, information-preserving text.

Behavior:
    - ``text/html`` (or ``html``): full HTML path via
      :func:`src.mailbody.converter.html_to_markdown`.
    - ``text/plain`` and anything else: character references and invisible
      characters are normalized, everything else is returned verbatim
      (quoted history and signatures included).

High-level call tree:
    - :func:`render_email_body`
        - :func:`render_body`
            - :func:`mime_subtype`
            - :func:`src.mailbody.converter.html_to_markdown` (HTML input)
            - :func:`src.mailbody.entities.normalize_text` (plain input)

Operational notes:
    This is the render-only path used when forwarding. It must never call
    :func:`src.mailbody.reply_parser.parse_reply`.
"""

import logging
from typing import Optional

from .config import Settings
from .converter import html_to_markdown
from .entities import normalize_text
from .models import EmailBody

logger = logging.getLogger(__name__)


def mime_subtype(mime_type: Optional[str]) -> str:
    """Reduce a MIME type tag to its lowercased subtype.

    ``"text/html; charset=UTF-8"`` -> ``"html"``, ``"plain"`` -> ``"plain"``.

    Args:
        mime_type: MIME type or short content type (None is treated as empty).

    Returns:
        str: Subtype, or an empty string.
    """
    if not mime_type:
        return ""
    essence = mime_type.split(";", 1)[0].strip().lower()
    return essence.rsplit("/", 1)[-1].strip()


def render_body(
    content: Optional[str],
    mime_type: Optional[str] = "text/plain",
    settings: Optional[Settings] = None,
) -> str:
    """Render an email body to normalized Markdown/plain text.

    Args:
        content: Raw body content.
        mime_type: ``text/plain``, ``text/html`` or a short ``plain``/``html``
            tag. Unknown types fall back to the plain-text path.
        settings: Optional settings for the HTML sanitizer.

    Returns:
        str: Rendered body.
    """
    if not content:
        return ""

    subtype = mime_subtype(mime_type)
    logger.debug("Rendering %s body (%d chars)", subtype or "untyped", len(content))

    if subtype == "html":
        return html_to_markdown(content, settings)

    return normalize_text(content)


def render_email_body(body: EmailBody, settings: Optional[Settings] = None) -> str:
    """Render an :class:`src.mailbody.models.EmailBody`.

    Args:
        body: Body model from the mail API.
        settings: Optional settings for the HTML sanitizer.

    Returns:
        str: Rendered body.
    """
    return render_body(body.content, body.content_type, settings)
