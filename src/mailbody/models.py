"""Pydantic data models used across the package.

Objective:
    Centralize the strongly-typed structures the renderer consumes and
    produces:
    - Email bodies as returned by a remote mail API
    - Thread messages with their header fields and attachments
    - Rendered messages produced for thread display

Design notes:
    - These models use Pydantic aliases to match mail API field names
      (e.g. ``contentType`` / ``mimeType`` -> :attr:`EmailBody.content_type`).
    - ``model_config = ConfigDict(populate_by_name=True)`` is used to allow
      constructing models with either alias names or pythonic field names.
    - Bodies are frozen: the caller owns them and rendering never mutates
      them.

High-level structure:
    - Mail primitives:
        - :class:`EmailAddress`
        - :class:`EmailBody`
        - :class:`Attachment`
        - :class:`ThreadMessage`
        - :class:`Thread`
    - Rendering output:
        - :class:`RenderedMessage`

Call tree usage:
    - :func:`src.mailbody.renderer.render_email_body` reads :class:`EmailBody`
    - :func:`src.mailbody.thread.render_thread` returns :class:`RenderedMessage`
"""

from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class EmailAddress(BaseModel):
    """Email address with display name.

    Accepts both ``{"name": ..., "address": ...}`` (Graph) and
    ``{"name": ..., "email": ...}`` (Gmail-style) payloads.
    """

    name: str = ""
    address: str = Field(
        default="", validation_alias=AliasChoices("address", "email")
    )

    model_config = ConfigDict(populate_by_name=True)

    @property
    def display_name(self) -> str:
        """Return the display name, falling back to the address."""
        return self.name or self.address


class EmailBody(BaseModel):
    """Email body content.

    The body is provided by the mail API with both a content type (usually
    ``text/html`` or ``text/plain``) and the raw content string.
    """

    content_type: str = Field(
        default="text/plain",
        validation_alias=AliasChoices("content_type", "contentType", "mimeType"),
    )
    content: str = ""

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class Attachment(BaseModel):
    """Attachment metadata shown in the thread header."""

    filename: str = ""
    size: int = 0
    mime_type: str = Field(default="", alias="mimeType")

    model_config = ConfigDict(populate_by_name=True)


class ThreadMessage(BaseModel):
    """
    A single message inside a thread.

    Attributes:
        id: Unique message ID.
        sender: From address.
        to: Direct recipients.
        cc: Carbon-copy recipients.
        date: When the message was sent.
        unread: Whether the message is unread.
        starred: Whether the message is starred/flagged.
        attachments: Attachment metadata.
        body: Raw body and its MIME type.
    """

    id: str
    sender: EmailAddress = Field(default_factory=EmailAddress, alias="from")
    to: list[EmailAddress] = Field(default_factory=list)
    cc: list[EmailAddress] = Field(default_factory=list)
    date: Optional[datetime] = None
    unread: bool = False
    starred: bool = False
    attachments: list[Attachment] = Field(default_factory=list)
    body: EmailBody = Field(default_factory=EmailBody)

    model_config = ConfigDict(populate_by_name=True)


class Thread(BaseModel):
    """
    A conversation thread in message order (oldest first).

    Attributes:
        id: Unique thread ID.
        subject: Thread subject line.
        messages: Messages in the thread.
    """

    id: str
    subject: str = ""
    messages: list[ThreadMessage] = Field(default_factory=list)

    @property
    def message_count(self) -> int:
        """Number of messages in the thread."""
        return len(self.messages)


class RenderedMessage(BaseModel):
    """
    A thread message after rendering for display.

    ``rendered`` is the full, information-preserving Markdown body.
    ``visible`` is the part shown in compact thread display, with quoted
    history, signatures and forwarded bodies removed.

    Attributes:
        message_id: Original message ID.
        sender: Formatted sender.
        to: Recipient addresses.
        cc: Carbon-copy addresses.
        date: When the message was sent.
        flags: Display flags such as ``unread`` or ``starred``.
        attachments: Formatted attachment labels (name and size).
        rendered: Full rendered body.
        visible: Visible reply.
    """

    message_id: str
    sender: str = ""
    to: list[str] = Field(default_factory=list)
    cc: list[str] = Field(default_factory=list)
    date: Optional[datetime] = None
    flags: list[str] = Field(default_factory=list)
    attachments: list[str] = Field(default_factory=list)
    rendered: str = ""
    visible: str = ""
