"""Measured cleanup helpers composed by cleanup recipes.

These helpers pair the size accountant with the deletion engine so a
caller can report how much space a removal freed, and can skip an
age-filtered cleanup entirely when the targets are too small to be
worth touching.
"""

import logging
import os
from collections.abc import Sequence
from dataclasses import dataclass, field

from mole.core.sizes import SizeAccountant
from mole.deletion.engine import DeletionEngine
from mole.deletion.models import DeletionResult, DeletionStatus, EntryType, FindDeleteResult
from mole.utils.formatting import format_kb

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CleanupReport:
    """Result of cleaning a single labelled path.

    Attributes:
        label: Human-readable name of the target (e.g. "Xcode DerivedData").
        path: Path that was cleaned.
        freed_kb: Kilobytes freed (or that would be, in dry-run); 0 on failure.
        result: Underlying deletion result.
    """

    label: str
    path: str
    freed_kb: int
    result: DeletionResult

    @property
    def dry_run(self) -> bool:
        return self.result.dry_run


@dataclass(frozen=True, slots=True)
class AgedCleanupReport:
    """Result of an age-filtered cleanup across several roots.

    Attributes:
        total_kb: Combined size of all roots before cleanup.
        skipped: True when total_kb was below the minimum and nothing ran.
        removed: Number of entries removed across all roots.
        results: Per-root find-delete results (empty when skipped).
    """

    total_kb: int
    skipped: bool
    removed: int = 0
    results: list[FindDeleteResult] = field(default_factory=list)


def cleanup_path(
    engine: DeletionEngine,
    accountant: SizeAccountant,
    path: str,
    label: str,
) -> CleanupReport:
    """Measure and remove a single path.

    Args:
        engine: Deletion engine to remove with.
        accountant: Size accountant to measure with.
        path: Absolute path to remove.
        label: Human-readable name for logging.

    Returns:
        CleanupReport with the freed size.
    """
    check = engine.validator.validate(path)
    size = accountant.size_kb(check.path) if check.ok else 0  # type: ignore[arg-type]
    result = engine.remove(path)

    if result.status == DeletionStatus.NOT_FOUND:
        logger.debug("%s: nothing to clean at %s", label, path)
        return CleanupReport(label=label, path=path, freed_kb=0, result=result)

    if not result.success:
        logger.warning("%s: cleanup failed: %s", label, result.error)
        return CleanupReport(label=label, path=path, freed_kb=0, result=result)

    logger.info(
        "%s: %s %s",
        label,
        "would free" if result.dry_run else "freed",
        format_kb(size),
    )
    return CleanupReport(label=label, path=path, freed_kb=size, result=result)


def cleanup_aged(
    engine: DeletionEngine,
    accountant: SizeAccountant,
    roots: Sequence[str],
    *,
    min_age_days: int,
    pattern: str = "*",
    min_total_kb: int = 0,
    entry_type: EntryType = EntryType.FILE,
) -> AgedCleanupReport:
    """Remove old entries under several roots when they are large enough.

    Root sizes are measured in parallel first; if their sum is below
    ``min_total_kb`` nothing is removed.

    Args:
        engine: Deletion engine to remove with.
        accountant: Size accountant to measure with.
        roots: Directories to clean.
        min_age_days: Only entries older than this many days are removed.
        pattern: Name glob for matching entries.
        min_total_kb: Skip the cleanup when the roots total less than this.
        entry_type: Entry type filter.

    Returns:
        AgedCleanupReport describing what happened.
    """
    total = accountant.total_kb(roots)
    if total < min_total_kb:
        logger.info(
            "Only %s detected (minimum %s), skipping cleanup",
            format_kb(total),
            format_kb(min_total_kb),
        )
        return AgedCleanupReport(total_kb=total, skipped=True)

    results: list[FindDeleteResult] = []
    for root in roots:
        if not os.path.isdir(root):
            continue
        results.append(engine.find_delete(root, pattern, min_age_days, entry_type))

    removed = sum(r.removed for r in results)
    return AgedCleanupReport(total_kb=total, skipped=False, removed=removed, results=results)
