"""Exception hierarchy for the safe-deletion core.

Deletion-path failures are normally reported as structured results
(see :mod:`mole.deletion.models`). These exceptions are raised only by
the explicit "raising" entry points: ``PathValidator.require``,
``TimeoutOutcome.raise_for_status`` and ``DeletionResult.raise_for_status``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from mole.safety.models import RejectionReason


class MoleError(Exception):
    """Base exception for all mole errors."""


class ValidationRejected(MoleError):
    """Raised when a path fails validation."""

    def __init__(self, reason: RejectionReason, path: str | None) -> None:
        self.reason = reason
        self.path = path
        super().__init__(f"Path rejected ({reason.value}): {path!r}")


class SymlinkRefused(MoleError):
    """Raised when an elevated operation targets a symbolic link."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Refusing elevated operation on symlink: {path}")


class TimedOut(MoleError):
    """Raised when a supervised command exceeds its wall-clock bound."""

    def __init__(self, seconds: float, command: Sequence[str]) -> None:
        self.seconds = seconds
        self.command = list(command)
        super().__init__(f"Command timed out after {seconds}s: {' '.join(self.command)}")


class SupervisorError(MoleError):
    """Raised when the supervisor could not spawn the bound or the command."""


class SettingsError(MoleError):
    """Raised when the settings file cannot be read or parsed (strict mode only)."""


class DeletionFailed(MoleError):
    """Raised when a removal command exited non-zero."""

    def __init__(self, path: str | None, error: str | None) -> None:
        self.path = path
        self.error = error
        super().__init__(f"Failed to remove {path}: {error or 'unknown error'}")
