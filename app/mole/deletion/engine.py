"""Guarded deletion engine.

The engine is the only component that removes filesystem entries.
Every target passes the path validator first, every removal and
enumeration runs under the timeout supervisor, and elevated variants
refuse to act on symbolic links. Failures are returned as structured
results; nothing here raises for a single failed deletion.
"""

import logging
import os
import stat
from collections.abc import Sequence

from mole.core.supervisor import OutcomeStatus, TimeoutOutcome, TimeoutSupervisor
from mole.deletion.models import (
    DeletionMode,
    DeletionRequest,
    DeletionResult,
    DeletionStatus,
    EntryType,
    FindDeleteResult,
    Privilege,
)
from mole.safety.models import ValidationResult
from mole.safety.protected import has_control_chars, is_under
from mole.safety.validator import PathInput, PathValidator
from mole.utils.shell import elevation_prefix

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 300.0


def build_find_command(
    root: str,
    pattern: str,
    min_age_days: int,
    entry_type: EntryType,
) -> list[str]:
    """Build the find invocation used to enumerate matches.

    Args:
        root: Absolute root directory.
        pattern: Name glob (find -name).
        min_age_days: Minimum age in days; 0 disables the filter.
        entry_type: Entry type filter.

    Returns:
        Argument list printing NUL-separated matches.
    """
    args = ["find", root, "-mindepth", "1", "-name", pattern]
    if entry_type == EntryType.FILE:
        args += ["-type", "f"]
    elif entry_type == EntryType.DIRECTORY:
        args += ["-type", "d"]
    else:
        args += ["(", "-type", "f", "-o", "-type", "d", ")"]
    if min_age_days > 0:
        args += ["-mtime", f"+{min_age_days}"]
    args.append("-print0")
    return args


def _pattern_error(pattern: str | None) -> str | None:
    if not pattern:
        return "Empty name pattern"
    if "/" in pattern:
        return f"Name pattern must not contain '/': {pattern!r}"
    if has_control_chars(pattern):
        return f"Name pattern contains control characters: {pattern!r}"
    return None


class DeletionEngine:
    """Removes filesystem entries behind the validation and timeout gates.

    Args:
        validator: Path validator (protection rule + whitelist).
        supervisor: Timeout supervisor bounding every external call.
        dry_run: If True, log intended actions without mutating anything.
        timeout_seconds: Wall-clock bound per removal or enumeration.
    """

    def __init__(
        self,
        validator: PathValidator | None = None,
        supervisor: TimeoutSupervisor | None = None,
        *,
        dry_run: bool = False,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._validator = validator if validator is not None else PathValidator()
        self._supervisor = supervisor if supervisor is not None else TimeoutSupervisor()
        self._dry_run = dry_run
        self._timeout = timeout_seconds

    @property
    def dry_run(self) -> bool:
        return self._dry_run

    @property
    def validator(self) -> PathValidator:
        return self._validator

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def remove(self, path: PathInput) -> DeletionResult:
        """Remove a file or directory tree without privilege.

        A missing path is a successful no-op (NOT_FOUND).
        """
        return self._remove(path, elevated=False)

    def elevated_remove(self, path: PathInput) -> DeletionResult:
        """Remove a file or directory tree with elevated privilege.

        The target must not be a symbolic link: a symlink under
        privileged recursive deletion could redirect it outside the
        intended tree, so it is refused with SYMLINK_REFUSED.
        """
        return self._remove(path, elevated=True)

    def find_delete(
        self,
        root: PathInput,
        pattern: str,
        min_age_days: int = 0,
        entry_type: EntryType = EntryType.ANY,
    ) -> FindDeleteResult:
        """Remove every entry under ``root`` matching the filters.

        Args:
            root: Absolute directory to search.
            pattern: Name glob, e.g. "*.crash".
            min_age_days: Only entries older than this many days (0 = any age).
            entry_type: File, directory, or either.

        Returns:
            FindDeleteResult with the count of removed matches.
        """
        return self._find_delete(root, pattern, min_age_days, entry_type, elevated=False)

    def elevated_find_delete(
        self,
        root: PathInput,
        pattern: str,
        min_age_days: int = 0,
        entry_type: EntryType = EntryType.ANY,
    ) -> FindDeleteResult:
        """Privileged find-delete; the symlink failsafe applies to each match."""
        return self._find_delete(root, pattern, min_age_days, entry_type, elevated=True)

    def execute(self, request: DeletionRequest) -> DeletionResult | FindDeleteResult:
        """Dispatch a DeletionRequest to the matching operation."""
        elevated = request.privilege == Privilege.ELEVATED
        if request.mode == DeletionMode.PLAIN_REMOVE:
            return self._remove(request.path, elevated=elevated)
        return self._find_delete(
            request.path,
            request.pattern,
            request.min_age_days,
            request.entry_type,
            elevated=elevated,
        )

    def remove_all(self, paths: Sequence[PathInput]) -> list[DeletionResult]:
        """Remove several paths independently, one result per input path."""
        return [self.remove(path) for path in paths]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _remove(self, path: PathInput, *, elevated: bool) -> DeletionResult:
        check = self._validator.validate(path)
        if not check.ok:
            return self._rejected(check)
        return self._remove_validated(check.path, elevated=elevated)  # type: ignore[arg-type]

    def _remove_validated(self, target: str, *, elevated: bool) -> DeletionResult:
        mode: int | None
        try:
            mode = os.lstat(target).st_mode
        except FileNotFoundError:
            logger.debug("Nothing to remove at %s", target)
            return DeletionResult(
                path=target,
                status=DeletionStatus.NOT_FOUND,
                dry_run=self._dry_run,
            )
        except OSError as e:
            if not elevated:
                return DeletionResult(
                    path=target,
                    status=DeletionStatus.FAILED,
                    error=str(e),
                    dry_run=self._dry_run,
                )
            if not self._confirm_not_symlink_elevated(target):
                return self._symlink_refused(target, reason=f"cannot verify entry type ({e})")
            mode = None

        if elevated and mode is not None and stat.S_ISLNK(mode):
            return self._symlink_refused(target)

        if self._dry_run:
            logger.info("Dry-run: would remove %s%s", target, " (elevated)" if elevated else "")
            return DeletionResult(path=target, status=DeletionStatus.REMOVED, dry_run=True)

        command = [*self._prefix(elevated), "rm", "-rf", "--", target]
        outcome = self._supervisor.run_with_timeout(self._timeout, command)
        result = self._from_outcome(target, outcome)
        if result.success:
            logger.debug("Removed %s", target)
        return result

    def _find_delete(
        self,
        root: PathInput,
        pattern: str | None,
        min_age_days: int,
        entry_type: EntryType,
        *,
        elevated: bool,
    ) -> FindDeleteResult:
        check = self._validator.validate(root)
        if not check.ok:
            rejected = self._rejected(check)
            return FindDeleteResult(
                root=check.path,
                status=DeletionStatus.REJECTED,
                error=rejected.error,
                dry_run=self._dry_run,
            )
        root_path: str = check.path  # type: ignore[assignment]

        error = _pattern_error(pattern)
        if error is None and min_age_days < 0:
            error = f"min_age_days must be >= 0, got {min_age_days}"
        if error is not None:
            logger.warning("Rejected find-delete under %s: %s", root_path, error)
            return FindDeleteResult(
                root=root_path,
                status=DeletionStatus.REJECTED,
                error=error,
                dry_run=self._dry_run,
            )

        if not os.path.lexists(root_path):
            logger.debug("Nothing to search at %s", root_path)
            return FindDeleteResult(
                root=root_path,
                status=DeletionStatus.NOT_FOUND,
                dry_run=self._dry_run,
            )

        if elevated and os.path.islink(root_path):
            refused = self._symlink_refused(root_path)
            return FindDeleteResult(
                root=root_path,
                status=refused.status,
                error=refused.error,
                dry_run=self._dry_run,
            )

        if self._dry_run:
            logger.info(
                "Dry-run: would delete %s entries named %r under %s older than %d day(s)%s",
                entry_type.name.lower(),
                pattern,
                root_path,
                min_age_days,
                " (elevated)" if elevated else "",
            )

        find_args = build_find_command(root_path, pattern or "", min_age_days, entry_type)
        command = [*self._prefix(elevated), *find_args]
        outcome = self._supervisor.run_with_timeout(self._timeout, command)
        if not outcome.completed:
            failed = self._from_outcome(root_path, outcome)
            return FindDeleteResult(
                root=root_path,
                status=failed.status,
                error=failed.error,
                dry_run=self._dry_run,
            )

        matches = [m for m in outcome.stdout.split("\0") if m]
        if outcome.exit_code != 0:
            logger.warning(
                "find under %s exited %s: %s",
                root_path,
                outcome.exit_code,
                outcome.stderr.strip(),
            )
            if not matches:
                return FindDeleteResult(
                    root=root_path,
                    status=DeletionStatus.FAILED,
                    error=outcome.stderr.strip() or f"find exited {outcome.exit_code}",
                    dry_run=self._dry_run,
                )

        results: list[DeletionResult] = []
        counted: list[str] = []
        for match in matches:
            match_check = self._validator.validate(match)
            if not match_check.ok:
                results.append(self._rejected(match_check))
                continue
            target: str = match_check.path  # type: ignore[assignment]
            # find lists parents first; a real run finds their children already gone
            if self._dry_run and any(is_under(target, prefix) for prefix in counted):
                results.append(
                    DeletionResult(path=target, status=DeletionStatus.NOT_FOUND, dry_run=True)
                )
                continue
            result = self._remove_validated(target, elevated=elevated)
            if result.status == DeletionStatus.REMOVED:
                counted.append(target)
            results.append(result)

        removed = sum(1 for r in results if r.status == DeletionStatus.REMOVED)
        logger.info(
            "%s %d of %d match(es) for %r under %s",
            "Would remove" if self._dry_run else "Removed",
            removed,
            len(matches),
            pattern,
            root_path,
        )
        return FindDeleteResult(
            root=root_path,
            status=DeletionStatus.REMOVED,
            removed=removed,
            results=results,
            dry_run=self._dry_run,
        )

    def _confirm_not_symlink_elevated(self, target: str) -> bool:
        """Check with elevated rights that target is not a symlink.

        Used when the unprivileged lstat is denied. ``test -L`` exits 1
        for a non-link; anything else is treated as "cannot confirm".
        """
        outcome = self._supervisor.run_with_timeout(
            self._timeout,
            [*elevation_prefix(), "test", "-L", target],
        )
        return outcome.completed and outcome.exit_code == 1

    def _prefix(self, elevated: bool) -> list[str]:
        return elevation_prefix() if elevated else []

    def _rejected(self, check: ValidationResult) -> DeletionResult:
        reason = check.reason.value if check.reason else "unknown"
        logger.warning("Refusing to delete %r: %s", check.path, reason)
        return DeletionResult(
            path=check.path,
            status=DeletionStatus.REJECTED,
            error=f"Path rejected ({reason}): {check.path!r}",
            dry_run=self._dry_run,
            reason=check.reason,
        )

    def _symlink_refused(
        self,
        target: str,
        reason: str = "target is a symbolic link",
    ) -> DeletionResult:
        logger.warning("Refusing elevated deletion of %s: %s", target, reason)
        return DeletionResult(
            path=target,
            status=DeletionStatus.SYMLINK_REFUSED,
            error=f"Refusing elevated deletion of {target}: {reason}",
            dry_run=self._dry_run,
        )

    @staticmethod
    def _from_outcome(target: str, outcome: TimeoutOutcome) -> DeletionResult:
        if outcome.status == OutcomeStatus.TIMED_OUT:
            return DeletionResult(
                path=target,
                status=DeletionStatus.TIMED_OUT,
                error=f"Timed out after {outcome.seconds}s",
                outcome=outcome,
            )
        if outcome.status == OutcomeStatus.SUPERVISOR_ERROR:
            return DeletionResult(
                path=target,
                status=DeletionStatus.SUPERVISOR_ERROR,
                error=outcome.error,
                outcome=outcome,
            )
        if outcome.exit_code != 0:
            return DeletionResult(
                path=target,
                status=DeletionStatus.FAILED,
                error=outcome.stderr.strip() or f"exit code {outcome.exit_code}",
                outcome=outcome,
            )
        return DeletionResult(path=target, status=DeletionStatus.REMOVED)
