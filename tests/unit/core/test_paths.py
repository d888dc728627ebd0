"""Unit tests for XDG path management."""

from pathlib import Path

import pytest
from mole.core.paths import (
    get_config_dir,
    get_settings_path,
    get_whitelist_path,
)


class TestConfigPaths:
    """Tests for configuration path helpers."""

    def test_respects_xdg_config_home(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """XDG_CONFIG_HOME overrides the default location."""
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))

        assert get_config_dir() == tmp_path / "mole"

    def test_default_under_home(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Without XDG_CONFIG_HOME the directory is ~/.config/mole."""
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        monkeypatch.setenv("HOME", str(tmp_path))

        assert get_config_dir() == tmp_path / ".config" / "mole"

    def test_file_locations(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Whitelist and settings live in the config directory."""
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))

        assert get_whitelist_path() == tmp_path / "mole" / "whitelist"
        assert get_settings_path() == tmp_path / "mole" / "settings.toml"

