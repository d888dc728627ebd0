"""Process-wide wiring of the safe-deletion core.

``build_context`` is called once at startup. It loads settings and the
whitelist, builds the protection rule, and hands the same read-only
values to every component. Nothing is re-read from disk afterwards.
"""

from dataclasses import dataclass
from pathlib import Path

from mole.artifacts.scanner import ArtifactScanner
from mole.core.settings import Settings, load_settings
from mole.core.sizes import SizeAccountant
from mole.core.supervisor import TimeoutSupervisor
from mole.deletion.engine import DeletionEngine
from mole.safety.protected import default_protection
from mole.safety.validator import PathValidator
from mole.safety.whitelist import load_whitelist


@dataclass(frozen=True, slots=True)
class MoleContext:
    """Components shared by every recipe during one run.

    Attributes:
        settings: Validated settings.
        validator: Path validator (protection rule + whitelist).
        supervisor: Timeout supervisor.
        accountant: Size accountant.
        engine: Deletion engine.
        scanner: Artifact scanner.
    """

    settings: Settings
    validator: PathValidator
    supervisor: TimeoutSupervisor
    accountant: SizeAccountant
    engine: DeletionEngine
    scanner: ArtifactScanner


def build_context(
    settings: Settings | None = None,
    *,
    whitelist_path: Path | None = None,
) -> MoleContext:
    """Build every core component from one set of settings.

    Args:
        settings: Settings to use. If None, loads them from disk and environment.
        whitelist_path: Whitelist file. If None, uses the default whitelist path.

    Returns:
        MoleContext with all components wired together.
    """
    settings = settings if settings is not None else load_settings()

    validator = PathValidator(default_protection(), load_whitelist(whitelist_path))
    supervisor = TimeoutSupervisor(kill_grace_seconds=settings.kill_grace_seconds)
    accountant = SizeAccountant(max_workers=settings.size_workers)
    engine = DeletionEngine(
        validator,
        supervisor,
        dry_run=settings.dry_run,
        timeout_seconds=settings.command_timeout_seconds,
    )
    scanner = ArtifactScanner(
        validator,
        accountant,
        artifact_names=settings.artifact_names,
        max_depth=settings.scan_max_depth,
        recent_window_hours=settings.recent_window_hours,
    )

    return MoleContext(
        settings=settings,
        validator=validator,
        supervisor=supervisor,
        accountant=accountant,
        engine=engine,
        scanner=scanner,
    )
