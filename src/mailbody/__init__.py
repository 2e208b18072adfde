"""Email body rendering package.

Objective:
    Turn raw email bodies (HTML or plain text) into readable Markdown for a
    terminal mail client, and separate a reply's new text from the quoted
    history, forwarded content and signatures that follow it.

Key modules:
    - :mod:`src.mailbody.entities`:
        Character reference decoding and invisible-character cleanup.
    - :mod:`src.mailbody.sanitizer`:
        Structural noise removal on the parsed HTML tree.
    - :mod:`src.mailbody.converter`:
        HTML to Markdown conversion.
    - :mod:`src.mailbody.renderer`:
        MIME-type routing for a single body (render-only, forward path).
    - :mod:`src.mailbody.reply_parser`:
        Reply boundary detection (thread display path).
    - :mod:`src.mailbody.thread`:
        Thread display and forward body composition.
    - :mod:`src.mailbody.cli`:
        Developer entrypoint.
"""

__version__ = "0.1.0"
