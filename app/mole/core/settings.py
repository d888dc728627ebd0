"""Runtime settings for the safe-deletion core.

Settings are loaded once at startup from ~/.config/mole/settings.toml
and overlaid with ``MOLE_<FIELD>`` environment overrides (for example
``MOLE_RECENT_WINDOW_HOURS=48``). Each value is validated on its own: an
invalid or unparseable value falls back to its documented default
instead of failing the whole run.
"""

import logging
import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Annotated, Any

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from mole.artifacts.scanner import DEFAULT_ARTIFACT_NAMES, DEFAULT_SCAN_ROOTS
from mole.core.errors import SettingsError
from mole.core.paths import get_settings_path

logger = logging.getLogger(__name__)

ENV_PREFIX = "MOLE_"

# Fields parsed from comma-separated environment values
_LIST_FIELDS = frozenset({"scan_roots", "artifact_names"})


class Settings(BaseModel):
    """Validated configuration shared by every component.

    Attributes:
        dry_run: Log intended deletions without performing them.
        recent_window_hours: Artifacts modified within this window are kept.
        scan_max_depth: Deepest directory level inspected below a scan root.
        command_timeout_seconds: Wall-clock bound per removal or enumeration.
        kill_grace_seconds: Time between SIGTERM and SIGKILL on timeout.
        size_workers: Maximum parallel size computations.
        scan_roots: Project roots scanned for artifacts (~ allowed).
        artifact_names: Directory names treated as artifacts.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    dry_run: Annotated[bool, Field(description="Report without deleting")] = False
    recent_window_hours: Annotated[
        int,
        Field(ge=1, le=8760, description="Freshness window in hours (1-8760)"),
    ] = 24
    scan_max_depth: Annotated[
        int,
        Field(ge=1, le=12, description="Artifact scan depth (1-12)"),
    ] = 4
    command_timeout_seconds: Annotated[
        int,
        Field(ge=1, le=3600, description="Per-command timeout in seconds (1-3600)"),
    ] = 300
    kill_grace_seconds: Annotated[
        float,
        Field(ge=0.1, le=60, description="SIGTERM to SIGKILL grace period"),
    ] = 2.0
    size_workers: Annotated[
        int,
        Field(ge=1, le=64, description="Parallel size computations (1-64)"),
    ] = 8
    scan_roots: Annotated[
        tuple[str, ...],
        Field(description="Project roots scanned for artifacts"),
    ] = DEFAULT_SCAN_ROOTS
    artifact_names: Annotated[
        tuple[str, ...],
        Field(description="Artifact directory names"),
    ] = DEFAULT_ARTIFACT_NAMES

    @field_validator("scan_roots")
    @classmethod
    def validate_scan_roots(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        """Require every scan root to be absolute once ~ is expanded."""
        for root in value:
            if not os.path.expanduser(root).startswith("/"):
                msg = f"Scan root must be absolute: {root!r}"
                raise ValueError(msg)
        return value

    @field_validator("artifact_names")
    @classmethod
    def validate_artifact_names(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        """Require plain, non-empty directory names."""
        for name in value:
            if not name or "/" in name or name in (".", ".."):
                msg = f"Invalid artifact name: {name!r}"
                raise ValueError(msg)
        return value

    @property
    def expanded_scan_roots(self) -> list[str]:
        """Scan roots with ~ expanded."""
        return [os.path.expanduser(root) for root in self.scan_roots]


def _env_overrides(env: Mapping[str, str]) -> dict[str, Any]:
    """Collect MOLE_<FIELD> overrides from an environment mapping."""
    overrides: dict[str, Any] = {}
    for name in Settings.model_fields:
        key = f"{ENV_PREFIX}{name.upper()}"
        if key not in env:
            continue
        raw = env[key].strip()
        if name in _LIST_FIELDS:
            overrides[name] = [item.strip() for item in raw.split(",") if item.strip()]
        else:
            overrides[name] = raw
    return overrides


def _validate_fieldwise(data: Mapping[str, Any], *, strict: bool) -> Settings:
    """Build Settings, substituting defaults for individually invalid values."""
    accepted: dict[str, Any] = {}

    for name, value in data.items():
        if name not in Settings.model_fields:
            if strict:
                raise SettingsError(f"Unknown setting: {name}")
            logger.warning("Ignoring unknown setting: %s", name)
            continue
        try:
            Settings.model_validate({name: value})
        except ValidationError as e:
            if strict:
                raise SettingsError(f"Invalid value for {name}: {e}") from e
            logger.warning(
                "Invalid value for %s (%r); using default %r",
                name,
                value,
                Settings.model_fields[name].default,
            )
            continue
        accepted[name] = value

    return Settings.model_validate(accepted)


def load_settings(
    path: Path | None = None,
    *,
    env: Mapping[str, str] | None = None,
    strict: bool = False,
) -> Settings:
    """Load settings from TOML and environment overrides.

    Args:
        path: Settings file. If None, uses the default settings path.
        env: Environment mapping for MOLE_* overrides. Defaults to os.environ.
        strict: Raise SettingsError instead of falling back to defaults.

    Returns:
        Validated Settings. A missing file yields defaults.

    Raises:
        SettingsError: In strict mode, if the file or any value is invalid.
    """
    config_path = path or get_settings_path()
    data: dict[str, Any] = {}

    if config_path.exists():
        try:
            with open(config_path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            if strict:
                raise SettingsError(f"Invalid TOML syntax: {e}") from e
            logger.warning("Invalid TOML in %s, using defaults: %s", config_path, e)
        except OSError as e:
            if strict:
                raise SettingsError(f"Failed to read settings: {e}") from e
            logger.warning("Cannot read %s, using defaults: %s", config_path, e)

    data.update(_env_overrides(os.environ if env is None else env))
    return _validate_fieldwise(data, strict=strict)


def save_settings(settings: Settings, path: Path | None = None) -> Path:
    """Save non-default settings to a TOML file.

    The file is written atomically by first writing to a temporary file
    and then using os.replace() for atomic rename.

    Args:
        settings: Settings to save.
        path: Destination. If None, uses the default settings path.

    Returns:
        Path where the settings were saved.

    Raises:
        SettingsError: If the file cannot be written.
    """
    from tempfile import NamedTemporaryFile

    config_path = path or get_settings_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    data = settings.model_dump(mode="json", exclude_defaults=True)

    tmp_path: Path | None = None
    try:
        with NamedTemporaryFile(
            mode="wb",
            dir=config_path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            tomli_w.dump(data, f)
        os.replace(str(tmp_path), str(config_path))
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise SettingsError(f"Failed to write settings: {e}") from e

    return config_path
