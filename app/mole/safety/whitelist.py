"""User whitelist of paths that must never be deleted.

The whitelist file is plain text with one absolute path (or fnmatch
glob) per line. Lines starting with ``#`` and blank lines are ignored
and ``~`` is expanded. A missing or unreadable file is not an error:
it yields an empty whitelist.
"""

import fnmatch
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from mole.core.paths import get_whitelist_path
from mole.safety.protected import has_control_chars, is_under, normalize_path

logger = logging.getLogger(__name__)

_GLOB_CHARS = frozenset("*?[")


@dataclass(frozen=True, slots=True)
class Whitelist:
    """Read-only set of user-protected paths.

    Attributes:
        paths: Normalized absolute paths; each protects itself and its subtree.
        patterns: fnmatch patterns matched against the full path.
    """

    paths: frozenset[str] = field(default_factory=frozenset)
    patterns: tuple[str, ...] = ()

    @classmethod
    def from_entries(cls, entries: list[str]) -> "Whitelist":
        """Build a whitelist from raw entries, skipping invalid ones.

        Args:
            entries: Raw lines (comments and blanks allowed).

        Returns:
            Whitelist containing every valid entry.
        """
        paths: set[str] = set()
        patterns: list[str] = []

        for raw in entries:
            entry = raw.strip()
            if not entry or entry.startswith("#"):
                continue
            if has_control_chars(entry):
                logger.warning("Ignoring whitelist entry with control characters: %r", entry)
                continue

            expanded = os.path.expanduser(entry)
            if not expanded.startswith("/"):
                logger.warning("Ignoring non-absolute whitelist entry: %s", entry)
                continue

            if _GLOB_CHARS & set(expanded):
                patterns.append(expanded)
            else:
                paths.add(normalize_path(expanded))

        return cls(paths=frozenset(paths), patterns=tuple(patterns))

    def __len__(self) -> int:
        return len(self.paths) + len(self.patterns)

    def matches(self, path: str) -> bool:
        """Check if a normalized absolute path is whitelisted.

        Args:
            path: Normalized absolute path.

        Returns:
            True if the path equals or lies under a whitelisted path,
            or matches a whitelisted pattern.
        """
        if any(is_under(path, entry) for entry in self.paths):
            return True
        return any(fnmatch.fnmatchcase(path, pattern) for pattern in self.patterns)


def load_whitelist(path: Path | None = None) -> Whitelist:
    """Load the user whitelist from disk.

    Args:
        path: Whitelist file to read. If None, uses the default whitelist path.

    Returns:
        Loaded Whitelist, or an empty one if the file is missing or unreadable.
    """
    whitelist_path = path or get_whitelist_path()

    if not whitelist_path.exists():
        logger.debug("No whitelist file at %s", whitelist_path)
        return Whitelist()

    try:
        text = whitelist_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Cannot read whitelist %s: %s", whitelist_path, e)
        return Whitelist()

    whitelist = Whitelist.from_entries(text.splitlines())
    logger.debug("Loaded %d whitelist entries from %s", len(whitelist), whitelist_path)
    return whitelist
