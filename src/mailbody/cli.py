"""Command-line interface (CLI) entrypoint.

Objective:
    Provide a small developer CLI around the rendering pipeline, for checking
    how a saved email body (or a whole thread) is displayed.

Responsibilities:
    - Parse arguments (input path, MIME type, display mode, verbosity).
    - Configure logging (including suppressing noisy BeautifulSoup warnings).
    - Render a single body, or a thread JSON document, and print the result.

High-level call tree:
    - :func:`main`
        - :func:`setup_logging`
            - installs :class:`_BeautifulSoupWarningFilter`
        - :func:`read_input`
        - :func:`render_single` (body input)
            - :func:`src.mailbody.renderer.render_body`
            - :func:`src.mailbody.reply_parser.parse_reply` (``--visible``)
        - :func:`src.mailbody.thread.format_thread` (``--thread``)

Operational notes:
    - This module supports being run both as a package module
      (``python -m src.mailbody.cli``) and as a script
      (``python src/mailbody/cli.py``). The import fallback handles the
      script case.
    - Rendered output goes to stdout; logs go to stderr so output can be
      piped.
"""

import argparse
import logging
import re
import sys
from pathlib import Path
from typing import Optional

try:
    from .config import Settings, get_settings
    from .models import Thread
    from .renderer import render_body
    from .reply_parser import parse_reply
    from .thread import format_thread, join_raw_html
except ImportError:  # pragma: no cover
    src_root = Path(__file__).resolve().parents[1]
    if str(src_root) not in sys.path:
        sys.path.insert(0, str(src_root))

    from mailbody.config import Settings, get_settings
    from mailbody.models import Thread
    from mailbody.renderer import render_body
    from mailbody.reply_parser import parse_reply
    from mailbody.thread import format_thread, join_raw_html


_LOOKS_LIKE_HTML = re.compile(
    r"<\s*(?:!doctype|html|head|body|div|p|table|span|br|a|img|blockquote)\b",
    re.IGNORECASE,
)


class _BeautifulSoupWarningFilter(logging.Filter):
    """Filter to suppress BeautifulSoup's "resembles a locator" warnings.

    Short plain bodies such as a bare URL make BeautifulSoup warn that the
    markup looks like a file name or URL. With ``logging.captureWarnings``
    enabled those warnings arrive on the ``py.warnings`` logger; this filter
    hides them unless the root logger is in DEBUG mode.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        """Determine whether a log record should be emitted.

        Args:
            record: Log record emitted by the logging framework.

        Returns:
            bool: True to allow emission, False to suppress.
        """
        msg = record.getMessage()
        if record.name == "py.warnings" and "MarkupResemblesLocatorWarning" in msg:
            return logging.getLogger().isEnabledFor(logging.DEBUG)
        return True


def setup_logging(level: str = "INFO") -> None:
    """
    Configure logging for the application.

    This sets the root logger level, routes :mod:`warnings` through logging
    and installs the :class:`_BeautifulSoupWarningFilter` on all root handlers.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR).
    """
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stderr),
        ],
    )
    logging.captureWarnings(True)

    root_logger = logging.getLogger()
    warning_filter = _BeautifulSoupWarningFilter()
    for handler in root_logger.handlers:
        handler.addFilter(warning_filter)


def read_input(path: str) -> str:
    """Read the input document from a file, or from stdin for ``-``.

    Args:
        path: File path or ``-``.

    Returns:
        str: Document text.
    """
    if path == "-":
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8")


def guess_mime_type(content: str) -> str:
    """Return ``text/html`` when the content looks like markup, else ``text/plain``."""
    return "text/html" if _LOOKS_LIKE_HTML.search(content) else "text/plain"


def render_single(
    content: str,
    mime_type: Optional[str] = None,
    visible: bool = False,
    settings: Optional[Settings] = None,
) -> str:
    """
    Render one body the way the mail client would.

    Args:
        content: Raw body.
        mime_type: MIME type; guessed from the content when None.
        visible: If True, keep only the visible reply (thread display).
        settings: Optional settings for the HTML sanitizer.

    Returns:
        str: Rendered text.
    """
    rendered = render_body(content, mime_type or guess_mime_type(content), settings)
    return parse_reply(rendered) if visible else rendered


def main(args: Optional[list[str]] = None) -> int:
    """
    Main CLI entry point.

    This function is structured to be testable: pass an explicit ``args`` list
    instead of relying on ``sys.argv``.

    Args:
        args: Command line arguments (uses sys.argv if None).

    Returns:
        int: Exit code (0 for success, 1 for error).
    """
    parser = argparse.ArgumentParser(
        description="mailbody - render email bodies as readable Markdown",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s message.html              Render an HTML body (forward view)
  %(prog)s --visible reply.txt       Show only the new reply text
  %(prog)s --thread thread.json      Print a thread transcript
  cat body.html | %(prog)s -m html   Read from stdin
        """,
    )

    parser.add_argument(
        "path",
        nargs="?",
        default="-",
        help="Body file, thread JSON file with --thread, or '-' for stdin",
    )

    parser.add_argument(
        "--mime-type",
        "-m",
        type=str,
        default=None,
        help="Body MIME type (text/html, text/plain); guessed when omitted",
    )

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--visible",
        "-V",
        action="store_true",
        help="Strip quoted history and signatures, as in thread display",
    )
    mode.add_argument(
        "--raw-html",
        action="store_true",
        help="Print the body (or joined thread bodies) without rendering",
    )

    parser.add_argument(
        "--thread",
        "-t",
        action="store_true",
        help="Treat the input as a thread JSON document",
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose output",
    )

    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (defaults to LOG_LEVEL from the environment)",
    )

    parsed_args = parser.parse_args(args)

    logger = logging.getLogger(__name__)

    try:
        settings = get_settings()

        # Setup logging
        if parsed_args.verbose:
            log_level = "DEBUG"
        else:
            log_level = parsed_args.log_level or settings.log_level
        setup_logging(log_level)

        content = read_input(parsed_args.path)

        if parsed_args.thread:
            thread = Thread.model_validate_json(content)
            if parsed_args.raw_html:
                output = join_raw_html(thread)
            else:
                output = format_thread(thread, settings)
        elif parsed_args.raw_html:
            output = content
        else:
            output = render_single(
                content,
                mime_type=parsed_args.mime_type,
                visible=parsed_args.visible,
                settings=settings,
            )

        print(output)
        return 0

    except Exception as e:
        logger.exception("Fatal error")
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
