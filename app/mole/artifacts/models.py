"""Artifact discovery models."""

from dataclasses import dataclass

from mole.utils.formatting import format_kb


@dataclass(frozen=True, slots=True)
class ArtifactCandidate:
    """A build or dependency artifact directory discovered during a scan.

    Candidates are created during a scan pass and consumed immediately
    by the caller; they are never persisted.

    Attributes:
        path: Absolute path of the artifact directory.
        depth: Number of path segments between the scan root and the
            artifact's parent (always >= 1 for eligible candidates).
        size_kb: On-disk size in kilobytes.
        newest_mtime: Newest modification timestamp observed inside the
            artifact (epoch seconds). The walk stops early once an entry
            inside the freshness window is found.
        recent: True if the artifact was modified within the freshness window.
    """

    path: str
    depth: int
    size_kb: int
    newest_mtime: float
    recent: bool = False

    def __post_init__(self) -> None:
        """Validate candidate data after initialization."""
        if not self.path:
            msg = "Path cannot be empty"
            raise ValueError(msg)
        if self.depth < 0:
            msg = f"Depth must be non-negative, got {self.depth}"
            raise ValueError(msg)
        if self.size_kb < 0:
            msg = f"Size must be non-negative, got {self.size_kb}"
            raise ValueError(msg)

    @property
    def name(self) -> str:
        """Artifact directory name (e.g. "node_modules")."""
        return self.path.rstrip("/").rsplit("/", 1)[-1]

    @property
    def size_human(self) -> str:
        return format_kb(self.size_kb)
