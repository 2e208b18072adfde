"""Application configuration and settings.

Objective:
    Provide a single source of truth for the few runtime knobs the rendering
    pipeline exposes (extra tracker URL shapes, extra preheader markers, and
    the logging level used by the CLI).

Responsibilities:
    - Load environment-driven settings via :class:`Settings` (Pydantic
      BaseSettings).
    - Provide small convenience helpers for derived settings (parsing
      comma-separated marker lists).

High-level call tree:
    - :func:`get_settings` -> returns :class:`Settings`
    - :class:`Settings`
        - :attr:`Settings.tracker_url_pattern_list`
        - :attr:`Settings.preheader_marker_list`

Operational notes:
    - ``Settings`` loads from ``.env`` by default via ``pydantic-settings``.
    - Every rendering function accepts a ``Settings`` object explicitly and
      falls back to built-in defaults when none is given, so the core never
      reads the environment on its own.
"""

import logging

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


def _split_csv(raw: str) -> list[str]:
    """Split a comma-separated setting into lowercased, non-empty items."""
    if not raw:
        return []
    return [item.strip().lower() for item in raw.split(",") if item.strip()]


class Settings(BaseSettings):
    """
    Rendering settings loaded from environment variables.

    The settings model is intentionally flat and human-editable via `.env`.

    Function tree:
        - :meth:`tracker_url_pattern_list` derives a normalized list from the
          raw comma-separated env var.
        - :meth:`preheader_marker_list` does the same for preheader markers.

    Attributes:
        log_level: Logging level used by the CLI.
        tracker_url_patterns: Extra substrings marking an image URL as a tracker.
        preheader_markers: Extra class/id substrings marking preheader text.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    log_level: str = Field(default="INFO", description="Logging level")

    tracker_url_patterns: str = Field(
        default="",
        description=(
            "Comma-separated substrings that mark an <img> src as a tracking "
            "beacon, in addition to the built-in patterns."
        ),
    )

    preheader_markers: str = Field(
        default="",
        description=(
            "Comma-separated class/id substrings that mark hidden preview "
            "text, in addition to 'preheader' and 'preview-text'."
        ),
    )

    @property
    def tracker_url_pattern_list(self) -> list[str]:
        """
        Parse extra tracker URL patterns from comma-separated string.

        This is used by :func:`src.mailbody.sanitizer.is_tracking_pixel`.

        Returns:
            list[str]: Lowercased URL substrings.
        """
        return _split_csv(self.tracker_url_patterns)

    @property
    def preheader_marker_list(self) -> list[str]:
        """Parse extra preheader markers from comma-separated string.

        Returns:
            list[str]: Lowercased class/id substrings.
        """
        return _split_csv(self.preheader_markers)


def get_settings() -> Settings:
    """
    Load and return application settings.

    This helper is a convenience for the CLI. For tests, you typically
    construct a :class:`Settings` instance directly.

    Returns:
        Settings: Application settings instance.
    """
    return Settings()
