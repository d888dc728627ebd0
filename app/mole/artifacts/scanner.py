"""Project artifact discovery.

Finds regenerable build and dependency directories (node_modules,
target, .venv, ...) under project roots and decides which are safe to
remove automatically. A scan runs as a pipeline:

    enumerate -> depth filter -> nested dedup -> age filter
              -> protection filter -> sized result set

Artifacts directly at a scan root are never eligible, nested artifacts
collapse into their topmost ancestor, and anything touched within the
freshness window is held back.
"""

import logging
import os
import posixpath
import stat
import time
from collections.abc import Callable, Iterable, Iterator, Sequence

from mole.artifacts.models import ArtifactCandidate
from mole.core.sizes import SizeAccountant
from mole.safety.protected import is_under, normalize_path
from mole.safety.validator import PathValidator

logger = logging.getLogger(__name__)

DEFAULT_ARTIFACT_NAMES: tuple[str, ...] = (
    "node_modules",
    "target",
    "build",
    "dist",
    ".venv",
    "venv",
    "__pycache__",
    ".next",
    ".nuxt",
    ".turbo",
    ".parcel-cache",
    ".gradle",
    "Pods",
    "DerivedData",
    ".dart_tool",
    ".tox",
    "coverage",
)

DEFAULT_SCAN_ROOTS: tuple[str, ...] = (
    "~/Projects",
    "~/projects",
    "~/Developer",
    "~/dev",
    "~/code",
    "~/www",
    "~/GitHub",
    "~/src",
    "~/workspace",
)

DEFAULT_RECENT_WINDOW_HOURS = 24
DEFAULT_MAX_DEPTH = 4

# Version-control metadata is never walked.
_SKIP_DIRS = frozenset({".git", ".hg", ".svn"})


def artifact_depth(
    candidate: str | os.PathLike[str],
    scan_root: str | os.PathLike[str],
) -> int | None:
    """Count the path segments between ``scan_root`` and the candidate's parent.

    Args:
        candidate: Artifact directory path.
        scan_root: Root the scan started from.

    Returns:
        Depth (0 when the candidate sits directly in the root), or None
        if either path is not absolute, contains "..", or the candidate
        does not lie strictly under the root.
    """
    cand = os.fspath(candidate)
    root = os.fspath(scan_root)
    if not cand.startswith("/") or not root.startswith("/"):
        return None
    if ".." in cand.split("/") or ".." in root.split("/"):
        return None

    cand = normalize_path(cand)
    root = normalize_path(root)
    if cand == root or not is_under(cand, root):
        return None

    parent = posixpath.dirname(cand)
    if parent == root:
        return 0
    return len(posixpath.relpath(parent, root).split("/"))


def is_safe_project_artifact(
    candidate: str | os.PathLike[str],
    scan_root: str | os.PathLike[str],
) -> bool:
    """Check that an artifact sits at least one project directory below the root.

    ``~/www/node_modules`` (depth 0) is rejected; ``~/www/app/node_modules``
    (depth 1) and deeper are allowed. Non-absolute candidates are always
    rejected so this check is safe to call on its own.
    """
    depth = artifact_depth(candidate, scan_root)
    return depth is not None and depth >= 1


def filter_nested_artifacts(paths: Iterable[str | os.PathLike[str]]) -> list[str]:
    """Keep only the topmost artifacts, dropping any nested inside another.

    Deleting a parent artifact already removes everything below it, so
    listing both would double-count size. The result is sorted and the
    function is idempotent.

    Args:
        paths: Candidate artifact paths.

    Returns:
        Sorted list of topmost paths.
    """
    unique = {normalize_path(os.fspath(p)) for p in paths}
    kept: list[str] = []
    # Shallower paths first so every ancestor is seen before its descendants
    for path in sorted(unique, key=lambda p: (p.count("/"), p)):
        if any(is_under(path, parent) for parent in kept):
            continue
        kept.append(path)
    return sorted(kept)


def newest_mtime(path: str | os.PathLike[str], newer_than: float | None = None) -> float | None:
    """Find the newest modification time of a path or anything inside it.

    Symlinks are not followed. When ``newer_than`` is given the walk
    stops at the first timestamp above it.

    Args:
        path: File or directory to inspect.
        newer_than: Optional early-exit threshold (epoch seconds).

    Returns:
        Newest observed mtime, or None if the path does not exist.
    """
    top = os.fspath(path)
    try:
        top_stat = os.lstat(top)
    except OSError:
        return None

    newest = top_stat.st_mtime
    if newer_than is not None and newest > newer_than:
        return newest
    if not stat.S_ISDIR(top_stat.st_mode):
        return newest

    pending = [top]
    while pending:
        current = pending.pop()
        try:
            with os.scandir(current) as entries:
                for entry in entries:
                    try:
                        st = entry.stat(follow_symlinks=False)
                    except OSError:
                        continue
                    if st.st_mtime > newest:
                        newest = st.st_mtime
                        if newer_than is not None and newest > newer_than:
                            return newest
                    if stat.S_ISDIR(st.st_mode):
                        pending.append(entry.path)
        except OSError as e:
            logger.debug("Cannot read directory %s: %s", current, e)

    return newest


def is_recently_modified(
    path: str | os.PathLike[str],
    window_hours: float = DEFAULT_RECENT_WINDOW_HOURS,
    now: float | None = None,
) -> bool:
    """Check if a path or anything inside it changed within the window.

    Args:
        path: Artifact directory.
        window_hours: Freshness window in hours.
        now: Reference time (epoch seconds); defaults to the current time.

    Returns:
        True if modified within the window. Missing paths are not recent.
    """
    reference = time.time() if now is None else now
    cutoff = reference - window_hours * 3600
    newest = newest_mtime(path, newer_than=cutoff)
    return newest is not None and newest > cutoff


class ArtifactScanner:
    """Discovers removable project artifacts under scan roots.

    Args:
        validator: Path validator used as the final protection gate.
        accountant: Size accountant used to size eligible candidates.
        artifact_names: Directory names treated as artifacts.
        max_depth: Deepest directory level (below the root) that is inspected.
        recent_window_hours: Freshness window; newer artifacts are held back.
        clock: Time source, injectable for tests.
    """

    def __init__(
        self,
        validator: PathValidator | None = None,
        accountant: SizeAccountant | None = None,
        *,
        artifact_names: Iterable[str] = DEFAULT_ARTIFACT_NAMES,
        max_depth: int = DEFAULT_MAX_DEPTH,
        recent_window_hours: float = DEFAULT_RECENT_WINDOW_HOURS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._validator = validator if validator is not None else PathValidator()
        self._accountant = accountant if accountant is not None else SizeAccountant()
        self._names = frozenset(artifact_names)
        self._max_depth = max_depth
        self._window_hours = recent_window_hours
        self._clock = clock

    def enumerate(
        self,
        scan_root: str | os.PathLike[str],
        *,
        include_recent: bool = False,
    ) -> list[ArtifactCandidate]:
        """Scan a single root and return eligible artifacts.

        Args:
            scan_root: Absolute project root (e.g. ~/Projects, expanded).
            include_recent: If True, recently modified artifacts are
                returned too, flagged with ``recent=True``.

        Returns:
            Candidates sorted by path, each with its computed size.
        """
        return self.enumerate_many([scan_root], include_recent=include_recent)

    def enumerate_many(
        self,
        scan_roots: Sequence[str | os.PathLike[str]],
        *,
        include_recent: bool = False,
    ) -> list[ArtifactCandidate]:
        """Scan several roots; nested dedup applies across all of them."""
        depths: dict[str, int] = {}
        for scan_root in scan_roots:
            for path, depth in self._collect(scan_root):
                depths.setdefault(path, depth)

        topmost = filter_nested_artifacts(depths)
        return self._classify([(path, depths[path]) for path in topmost], include_recent)

    def _collect(self, scan_root: str | os.PathLike[str]) -> Iterator[tuple[str, int]]:
        """Enumerate artifacts under a root and apply the depth filter."""
        raw_root = os.fspath(scan_root)
        if not raw_root.startswith("/"):
            logger.warning("Ignoring non-absolute scan root: %s", raw_root)
            return
        root = normalize_path(raw_root)
        if not os.path.isdir(root):
            logger.debug("Scan root does not exist: %s", root)
            return

        for candidate in self._walk(root):
            depth = artifact_depth(candidate, root)
            if depth is None or depth < 1:
                logger.debug("Skipping artifact at scan root: %s", candidate)
                continue
            yield candidate, depth

    def _walk(self, root: str) -> Iterator[str]:
        """Yield artifact directories without descending into them."""

        def _on_error(error: OSError) -> None:
            logger.debug("Cannot scan %s: %s", error.filename, error)

        for dirpath, dirnames, _filenames in os.walk(root, onerror=_on_error):
            level = 0 if dirpath == root else len(posixpath.relpath(dirpath, root).split("/"))

            for name in sorted(dirnames):
                if name in self._names:
                    candidate = posixpath.join(dirpath, name)
                    if os.path.islink(candidate):
                        continue
                    yield candidate

            if level >= self._max_depth:
                dirnames.clear()
            else:
                dirnames[:] = sorted(
                    d for d in dirnames if d not in self._names and d not in _SKIP_DIRS
                )

    def _classify(
        self,
        items: list[tuple[str, int]],
        include_recent: bool,
    ) -> list[ArtifactCandidate]:
        """Apply the age and protection filters, then size survivors in parallel."""
        cutoff = self._clock() - self._window_hours * 3600
        survivors: list[tuple[str, int, float, bool]] = []

        for path, depth in items:
            newest = newest_mtime(path, newer_than=cutoff)
            if newest is None:
                logger.debug("Artifact vanished during scan: %s", path)
                continue
            recent = newest > cutoff
            if recent and not include_recent:
                logger.debug("Skipping recently modified artifact: %s", path)
                continue
            if not self._validator.validate(path).ok:
                logger.debug("Skipping protected artifact: %s", path)
                continue
            survivors.append((path, depth, newest, recent))

        sizes = self._accountant.sizes_kb([path for path, _, _, _ in survivors])
        return [
            ArtifactCandidate(
                path=path,
                depth=depth,
                size_kb=size,
                newest_mtime=newest,
                recent=recent,
            )
            for (path, depth, newest, recent), size in zip(survivors, sizes, strict=True)
        ]
