"""Project artifact discovery.

This module finds regenerable build and dependency directories under
project roots and filters them down to those safe to remove.
"""

from mole.artifacts.models import ArtifactCandidate
from mole.artifacts.scanner import (
    DEFAULT_ARTIFACT_NAMES,
    DEFAULT_MAX_DEPTH,
    DEFAULT_RECENT_WINDOW_HOURS,
    DEFAULT_SCAN_ROOTS,
    ArtifactScanner,
    artifact_depth,
    filter_nested_artifacts,
    is_recently_modified,
    is_safe_project_artifact,
    newest_mtime,
)

__all__ = [
    "DEFAULT_ARTIFACT_NAMES",
    "DEFAULT_MAX_DEPTH",
    "DEFAULT_RECENT_WINDOW_HOURS",
    "DEFAULT_SCAN_ROOTS",
    "ArtifactCandidate",
    "ArtifactScanner",
    "artifact_depth",
    "filter_nested_artifacts",
    "is_recently_modified",
    "is_safe_project_artifact",
    "newest_mtime",
]
