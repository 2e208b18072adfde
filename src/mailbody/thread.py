"""Thread display and forward body composition.

Objective:
    Wire the renderer and the reply parser together for the two consumers of
    rendered bodies:

    - Thread display renders each message and keeps only its visible reply,
      so quoted history already shown by an earlier message is not repeated.
    - Forwarding renders only; quoted history must survive.

Responsibilities:
    - Produce :class:`src.mailbody.models.RenderedMessage` objects for a
      :class:`src.mailbody.models.Thread`.
    - Format the small pieces of header text a thread view shows (sender,
      participants, attachment sizes).
    - Build a plain-text transcript and the raw-HTML dump of a thread.

High-level call tree:
    - :func:`format_thread`
        - :func:`thread_participants`
        - :func:`render_thread`
            - :func:`render_message`
                - :func:`src.mailbody.renderer.render_email_body`
                - :func:`src.mailbody.reply_parser.parse_reply`
    - :func:`render_forward_body`
    - :func:`join_raw_html`
"""

import logging
from datetime import datetime
from typing import Optional

from .config import Settings
from .models import Attachment, EmailAddress, RenderedMessage, Thread, ThreadMessage
from .renderer import render_email_body
from .reply_parser import parse_reply

logger = logging.getLogger(__name__)

MESSAGE_SEPARATOR = "<!-- MESSAGE_SEPARATOR -->"
DEFAULT_RULE_WIDTH = 72


def format_sender(address: EmailAddress) -> str:
    """Format an address as ``Name <email>``, or just the email.

    Args:
        address: Address model.

    Returns:
        str: Display string.
    """
    if address.name and address.address and address.name != address.address:
        return f"{address.name} <{address.address}>"
    return address.address or address.name


def format_date(value: Optional[datetime]) -> str:
    """Format a message date for the thread header."""
    if value is None:
        return ""
    return value.strftime("%a, %b %d, %Y %H:%M")


def format_attachment_size(size: int) -> str:
    """Format a byte count as ``B``, ``KB`` or ``MB`` with one decimal.

    Args:
        size: Size in bytes.

    Returns:
        str: Human-readable size.
    """
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.1f} MB"


def format_attachment(attachment: Attachment) -> str:
    return f"{attachment.filename} ({format_attachment_size(attachment.size)})"


def thread_participants(thread: Thread) -> list[str]:
    """List unique participants in first-appearance order.

    Senders and ``to`` recipients are considered, keyed by address; the
    display name is taken from the first time an address appears.

    Args:
        thread: Thread to inspect.

    Returns:
        list[str]: Display names.
    """
    participants: dict[str, str] = {}
    for message in thread.messages:
        for address in [message.sender, *message.to]:
            key = (address.address or address.name).lower()
            if key and key not in participants:
                participants[key] = address.display_name
    return list(participants.values())


def render_message(message: ThreadMessage, settings: Optional[Settings] = None) -> RenderedMessage:
    """Render one message for thread display.

    Args:
        message: Thread message.
        settings: Optional settings for the HTML sanitizer.

    Returns:
        RenderedMessage: Header fields, full rendered body and visible reply.
    """
    rendered = render_email_body(message.body, settings)

    flags = []
    if message.unread:
        flags.append("unread")
    if message.starred:
        flags.append("starred")

    return RenderedMessage(
        message_id=message.id,
        sender=format_sender(message.sender),
        to=[recipient.address for recipient in message.to],
        cc=[recipient.address for recipient in message.cc],
        date=message.date,
        flags=flags,
        attachments=[format_attachment(a) for a in message.attachments],
        rendered=rendered,
        visible=parse_reply(rendered),
    )


def render_thread(thread: Thread, settings: Optional[Settings] = None) -> list[RenderedMessage]:
    """Render every message of a thread for display.

    Args:
        thread: Thread in message order.
        settings: Optional settings for the HTML sanitizer.

    Returns:
        list[RenderedMessage]: One entry per message.
    """
    logger.debug("Rendering thread %s (%d messages)", thread.id, thread.message_count)
    return [render_message(message, settings) for message in thread.messages]


def render_forward_body(message: ThreadMessage, settings: Optional[Settings] = None) -> str:
    """Render a message body for forwarding.

    Quoted history, signatures and forwarded blocks are all kept; reply
    boundary detection is never applied on this path.

    Args:
        message: Message being forwarded.
        settings: Optional settings for the HTML sanitizer.

    Returns:
        str: Full rendered body.
    """
    return render_email_body(message.body, settings)


def join_raw_html(thread: Thread) -> str:
    """Join raw message bodies with a separator comment.

    Args:
        thread: Thread to dump.

    Returns:
        str: Bodies in message order, untouched.
    """
    return f"\n{MESSAGE_SEPARATOR}\n".join(m.body.content for m in thread.messages)


def format_thread(
    thread: Thread,
    settings: Optional[Settings] = None,
    width: int = DEFAULT_RULE_WIDTH,
) -> str:
    """Build a plain-text transcript of a thread for terminal display.

    Output format:
        - Subject, message count with participants, thread ID, rule.
        - Per message: ``From``/``To``/``Cc``/``Date`` lines, attachments, the
          visible reply, and a rule.

    Args:
        thread: Thread to format.
        settings: Optional settings for the HTML sanitizer.
        width: Width of the horizontal rules.

    Returns:
        str: Transcript text.
    """
    if not thread.messages:
        return "No messages in thread"

    rule = "─" * width
    out = [
        thread.subject,
        f"{thread.message_count} message(s) · {', '.join(thread_participants(thread))}",
        f"ID: {thread.id}",
        rule,
        "",
    ]

    for message in render_thread(thread, settings):
        flag_suffix = "".join(f" [{flag}]" for flag in message.flags)
        out.append(f"From: {message.sender}{flag_suffix}")
        out.append(f"  To: {', '.join(message.to)}")
        if message.cc:
            out.append(f"  Cc: {', '.join(message.cc)}")
        out.append(f"Date: {format_date(message.date)}")
        if message.attachments:
            out.append(f"Attachments: {', '.join(message.attachments)}")
        out.append("")
        out.append(message.visible.rstrip("\n"))
        out.append("")
        out.append(rule)
        out.append("")

    return "\n".join(out).rstrip("\n")
