"""Deletion request and result models.

Results are immutable and carry a structured status so that callers
can tell a rejected path, a refused symlink, a timeout and a missing
target apart without catching exceptions.
"""

from dataclasses import dataclass, field
from enum import Enum

from mole.core.errors import DeletionFailed, SymlinkRefused, ValidationRejected
from mole.core.supervisor import TimeoutOutcome
from mole.safety.models import RejectionReason


class DeletionMode(str, Enum):
    """How a deletion request is carried out.

    Attributes:
        PLAIN_REMOVE: Remove a single file or directory tree.
        FIND_DELETE: Enumerate matches under a root and remove each.
    """

    PLAIN_REMOVE = "plain-remove"
    FIND_DELETE = "find-delete"


class Privilege(str, Enum):
    """Privilege level of a deletion request."""

    USER = "user"
    ELEVATED = "elevated"


class EntryType(str, Enum):
    """Entry type filter for find-delete.

    Attributes:
        FILE: Regular files only (find -type f).
        DIRECTORY: Directories only (find -type d).
        ANY: Files or directories; symlinks never match.
    """

    FILE = "f"
    DIRECTORY = "d"
    ANY = "any"


class DeletionStatus(str, Enum):
    """Outcome of a single deletion.

    Attributes:
        REMOVED: Entry was removed (or would be, in dry-run mode).
        NOT_FOUND: Entry did not exist; treated as success.
        REJECTED: Path failed validation; nothing was executed.
        SYMLINK_REFUSED: Elevated target was a symbolic link.
        TIMED_OUT: The removal exceeded its wall-clock bound.
        FAILED: The removal command exited non-zero.
        SUPERVISOR_ERROR: The removal command could not be spawned.
    """

    REMOVED = "removed"
    NOT_FOUND = "not_found"
    REJECTED = "rejected"
    SYMLINK_REFUSED = "symlink_refused"
    TIMED_OUT = "timed_out"
    FAILED = "failed"
    SUPERVISOR_ERROR = "supervisor_error"


_SUCCESS_STATUSES = frozenset({DeletionStatus.REMOVED, DeletionStatus.NOT_FOUND})


@dataclass(frozen=True, slots=True)
class DeletionRequest:
    """A single request for the deletion engine.

    Attributes:
        path: Target path (find-delete: the root to search under).
        mode: Plain removal or find-delete.
        privilege: User or elevated.
        pattern: Name glob for find-delete.
        min_age_days: Minimum modification age in days (0 = any age).
        entry_type: Entry type filter for find-delete.
    """

    path: str
    mode: DeletionMode = DeletionMode.PLAIN_REMOVE
    privilege: Privilege = Privilege.USER
    pattern: str | None = None
    min_age_days: int = 0
    entry_type: EntryType = EntryType.ANY

    def __post_init__(self) -> None:
        """Validate request fields after initialization."""
        if self.min_age_days < 0:
            msg = f"min_age_days must be >= 0, got {self.min_age_days}"
            raise ValueError(msg)
        if self.mode == DeletionMode.FIND_DELETE and not self.pattern:
            msg = "find-delete requests require a name pattern"
            raise ValueError(msg)


@dataclass(frozen=True, slots=True)
class DeletionResult:
    """Result of a single deletion.

    Attributes:
        path: Path that was operated on.
        status: Structured outcome.
        error: Error or rejection message, None on success.
        dry_run: Whether this was a dry-run (no actual deletion).
        reason: Validator rejection reason for REJECTED results.
        outcome: Supervisor outcome for TIMED_OUT, FAILED and
            SUPERVISOR_ERROR results.
    """

    path: str | None
    status: DeletionStatus
    error: str | None = None
    dry_run: bool = False
    reason: RejectionReason | None = None
    outcome: TimeoutOutcome | None = field(default=None, repr=False)

    @property
    def success(self) -> bool:
        """Check if the deletion succeeded (removed, or nothing to remove)."""
        return self.status in _SUCCESS_STATUSES

    def raise_for_status(self) -> None:
        """Raise the matching MoleError if the deletion did not succeed.

        Raises:
            ValidationRejected: The path failed validation.
            SymlinkRefused: An elevated target was a symbolic link.
            TimedOut: The removal exceeded its wall-clock bound.
            SupervisorError: The removal command could not be spawned.
            DeletionFailed: The removal command exited non-zero.
        """
        if self.success:
            return
        if self.status == DeletionStatus.REJECTED and self.reason is not None:
            raise ValidationRejected(self.reason, self.path)
        if self.status == DeletionStatus.SYMLINK_REFUSED:
            raise SymlinkRefused(self.path or "")
        if self.outcome is not None:
            self.outcome.raise_for_status()
        raise DeletionFailed(self.path, self.error)


@dataclass(frozen=True, slots=True)
class FindDeleteResult:
    """Result of a find-delete batch.

    Attributes:
        root: Root that was searched.
        status: Outcome of the batch as a whole: REMOVED when the
            enumeration ran, NOT_FOUND when the root is missing, or the
            failure that prevented enumeration.
        removed: Number of matches removed (or that would be, in dry-run).
        results: Per-match results.
        error: Error message when the batch could not run.
        dry_run: Whether this was a dry-run.
    """

    root: str | None
    status: DeletionStatus
    removed: int = 0
    results: list[DeletionResult] = field(default_factory=list)
    error: str | None = None
    dry_run: bool = False

    @property
    def success(self) -> bool:
        return self.status in _SUCCESS_STATUSES

    @property
    def failed(self) -> list[DeletionResult]:
        """Per-match results that did not succeed."""
        return [r for r in self.results if not r.success]
