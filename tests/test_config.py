"""
Tests for the config module.
"""

from src.mailbody.config import Settings, get_settings


def test_defaults(monkeypatch) -> None:
    """Ensure settings fall back to built-in defaults."""

    for name in ("LOG_LEVEL", "TRACKER_URL_PATTERNS", "PREHEADER_MARKERS"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings(_env_file=None)

    assert settings.log_level == "INFO"
    assert settings.tracker_url_pattern_list == []
    assert settings.preheader_marker_list == []


def test_comma_separated_lists_from_environment(monkeypatch) -> None:
    """Ensure comma-separated env vars are split, trimmed and lowercased."""

    monkeypatch.setenv("TRACKER_URL_PATTERNS", " Mailstat.example.net , ,/o/open ")
    monkeypatch.setenv("PREHEADER_MARKERS", "hidden-preview,Inbox-Teaser")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")

    settings = Settings(_env_file=None)

    assert settings.tracker_url_pattern_list == ["mailstat.example.net", "/o/open"]
    assert settings.preheader_marker_list == ["hidden-preview", "inbox-teaser"]
    assert settings.log_level == "DEBUG"


def test_env_file_is_read(tmp_path, monkeypatch) -> None:
    """Ensure settings are loaded from a .env file."""

    monkeypatch.delenv("PREHEADER_MARKERS", raising=False)
    env_file = tmp_path / ".env"
    env_file.write_text("PREHEADER_MARKERS=teaser\nUNRELATED_KEY=ignored\n", encoding="utf-8")

    settings = Settings(_env_file=env_file)

    assert settings.preheader_marker_list == ["teaser"]


def test_get_settings_returns_settings(monkeypatch, tmp_path) -> None:
    """Ensure get_settings builds a Settings instance."""

    monkeypatch.chdir(tmp_path)

    assert isinstance(get_settings(), Settings)
