"""Unit tests for settings loading and saving."""

import logging
import tomllib
from pathlib import Path
from unittest.mock import patch

import pytest
from mole.artifacts.scanner import DEFAULT_ARTIFACT_NAMES, DEFAULT_SCAN_ROOTS
from mole.core.errors import SettingsError
from mole.core.settings import Settings, load_settings, save_settings
from pydantic import ValidationError


@pytest.fixture
def settings_file(tmp_path: Path) -> Path:
    return tmp_path / "settings.toml"


class TestSettingsModel:
    """Tests for the Settings model."""

    def test_defaults(self) -> None:
        """Defaults match the documented values."""
        settings = Settings()

        assert settings.dry_run is False
        assert settings.recent_window_hours == 24
        assert settings.scan_max_depth == 4
        assert settings.command_timeout_seconds == 300
        assert settings.kill_grace_seconds == 2.0
        assert settings.size_workers == 8
        assert settings.scan_roots == DEFAULT_SCAN_ROOTS
        assert settings.artifact_names == DEFAULT_ARTIFACT_NAMES

    def test_rejects_unknown_fields(self) -> None:
        """Unknown fields are refused."""
        with pytest.raises(ValidationError):
            Settings(unknown=True)  # type: ignore[call-arg]

    def test_rejects_out_of_range(self) -> None:
        """Numeric bounds are enforced."""
        with pytest.raises(ValidationError):
            Settings(scan_max_depth=0)

    def test_rejects_relative_scan_root(self) -> None:
        """Scan roots must be absolute once ~ is expanded."""
        with pytest.raises(ValidationError, match="absolute"):
            Settings(scan_roots=("projects",))

    @pytest.mark.parametrize("name", ["", "a/b", ".", ".."])
    def test_rejects_bad_artifact_name(self, name: str) -> None:
        """Artifact names must be plain directory names."""
        with pytest.raises(ValidationError, match="Invalid artifact name"):
            Settings(artifact_names=("node_modules", name))

    def test_is_frozen(self) -> None:
        """Settings are read-only once built."""
        settings = Settings()

        with pytest.raises(ValidationError):
            settings.dry_run = True  # type: ignore[misc]

    def test_expanded_scan_roots(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """~ is expanded in scan roots."""
        monkeypatch.setenv("HOME", "/home/alice")

        settings = Settings(scan_roots=("~/code", "/srv/projects"))

        assert settings.expanded_scan_roots == ["/home/alice/code", "/srv/projects"]


class TestLoadSettings:
    """Tests for load_settings."""

    def test_missing_file_gives_defaults(self, settings_file: Path) -> None:
        """A missing file yields default settings."""
        assert load_settings(settings_file, env={}) == Settings()

    def test_reads_toml(self, settings_file: Path) -> None:
        """Values are read from the TOML file."""
        settings_file.write_text(
            'dry_run = true\nrecent_window_hours = 48\nscan_roots = ["/srv/code"]\n',
            encoding="utf-8",
        )

        settings = load_settings(settings_file, env={})

        assert settings.dry_run is True
        assert settings.recent_window_hours == 48
        assert settings.scan_roots == ("/srv/code",)

    def test_invalid_toml_falls_back(
        self, settings_file: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Broken TOML logs a warning and yields defaults."""
        settings_file.write_text("dry_run = [unterminated", encoding="utf-8")

        with caplog.at_level(logging.WARNING):
            settings = load_settings(settings_file, env={})

        assert settings == Settings()
        assert "Invalid TOML" in caplog.text

    def test_invalid_toml_strict(self, settings_file: Path) -> None:
        """Strict mode raises on broken TOML."""
        settings_file.write_text("dry_run = [unterminated", encoding="utf-8")

        with pytest.raises(SettingsError, match="Invalid TOML"):
            load_settings(settings_file, env={}, strict=True)

    def test_invalid_value_uses_default(
        self, settings_file: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        """One bad value falls back to its default; the others still apply."""
        settings_file.write_text("recent_window_hours = 0\nsize_workers = 2\n", encoding="utf-8")

        with caplog.at_level(logging.WARNING):
            settings = load_settings(settings_file, env={})

        assert settings.recent_window_hours == 24
        assert settings.size_workers == 2
        assert "recent_window_hours" in caplog.text

    def test_invalid_value_strict(self, settings_file: Path) -> None:
        """Strict mode raises on a bad value."""
        settings_file.write_text("recent_window_hours = 0\n", encoding="utf-8")

        with pytest.raises(SettingsError, match="recent_window_hours"):
            load_settings(settings_file, env={}, strict=True)

    def test_unknown_key_ignored(self, settings_file: Path) -> None:
        """Unknown keys are ignored outside strict mode."""
        settings_file.write_text("colour = true\n", encoding="utf-8")

        assert load_settings(settings_file, env={}) == Settings()

        with pytest.raises(SettingsError, match="Unknown setting"):
            load_settings(settings_file, env={}, strict=True)

    def test_env_override(self, settings_file: Path) -> None:
        """MOLE_<FIELD> overrides the file."""
        settings_file.write_text("recent_window_hours = 48\n", encoding="utf-8")

        settings = load_settings(settings_file, env={"MOLE_RECENT_WINDOW_HOURS": "72"})

        assert settings.recent_window_hours == 72

    @pytest.mark.parametrize(
        ("key", "raw", "field", "expected"),
        [
            ("MOLE_SIZE_WORKERS", "abc", "size_workers", 8),
            ("MOLE_SIZE_WORKERS", "-5", "size_workers", 8),
            ("MOLE_RECENT_WINDOW_HOURS", "", "recent_window_hours", 24),
            ("MOLE_SCAN_MAX_DEPTH", "1.5", "scan_max_depth", 4),
            ("MOLE_COMMAND_TIMEOUT_SECONDS", "0", "command_timeout_seconds", 300),
        ],
    )
    def test_invalid_env_uses_default(
        self, settings_file: Path, key: str, raw: str, field: str, expected: int
    ) -> None:
        """Unparseable or out-of-range overrides fall back to defaults."""
        settings = load_settings(settings_file, env={key: raw})

        assert getattr(settings, field) == expected

    def test_env_bool(self, settings_file: Path) -> None:
        """Boolean overrides accept the usual spellings."""
        assert load_settings(settings_file, env={"MOLE_DRY_RUN": "true"}).dry_run is True
        assert load_settings(settings_file, env={"MOLE_DRY_RUN": "0"}).dry_run is False

    def test_env_list(self, settings_file: Path) -> None:
        """List overrides are comma-separated."""
        settings = load_settings(
            settings_file,
            env={"MOLE_SCAN_ROOTS": "/srv/a, ~/b,", "MOLE_ARTIFACT_NAMES": "target"},
        )

        assert settings.scan_roots == ("/srv/a", "~/b")
        assert settings.artifact_names == ("target",)

    def test_default_path(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Without a path the XDG settings file is read."""
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
        (tmp_path / "mole").mkdir()
        (tmp_path / "mole" / "settings.toml").write_text("size_workers = 3\n", encoding="utf-8")

        assert load_settings(env={}).size_workers == 3


class TestSaveSettings:
    """Tests for save_settings."""

    def test_writes_only_non_defaults(self, settings_file: Path) -> None:
        """Only values that differ from the defaults are written."""
        save_settings(Settings(recent_window_hours=48, dry_run=True), settings_file)

        with open(settings_file, "rb") as f:
            data = tomllib.load(f)

        assert data == {"dry_run": True, "recent_window_hours": 48}

    def test_round_trip(self, settings_file: Path) -> None:
        """Saved settings load back unchanged."""
        original = Settings(scan_roots=("/srv/code",), kill_grace_seconds=1.5)

        save_settings(original, settings_file)

        assert load_settings(settings_file, env={}) == original

    def test_creates_parent(self, tmp_path: Path) -> None:
        """Missing parent directories are created."""
        target = tmp_path / "nested" / "settings.toml"

        assert save_settings(Settings(), target) == target
        assert target.exists()

    def test_failed_replace_cleans_up(self, settings_file: Path) -> None:
        """A failed rename raises SettingsError and leaves no temp file."""
        with (
            patch("mole.core.settings.os.replace", side_effect=OSError("disk full")),
            pytest.raises(SettingsError, match="disk full"),
        ):
            save_settings(Settings(dry_run=True), settings_file)

        assert list(settings_file.parent.glob("*.tmp")) == []
        assert not settings_file.exists()
