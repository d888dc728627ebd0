"""Protected filesystem locations that can never be a deletion target.

This module defines the hard-coded protection rule: subtree prefixes
(the entry and everything beneath it), exact entries (only the entry
itself, whose children are legitimate cleanup targets) and glob
patterns for user-sensitive files. The rule is built once per process
and shared read-only by every component.
"""

import fnmatch
import posixpath
from dataclasses import dataclass, field
from pathlib import Path

# Protected subtrees. Equal-to or under any of these is rejected.
PROTECTED_PREFIXES: tuple[str, ...] = (
    "/System",
    "/bin",
    "/sbin",
    "/usr",
    "/usr/bin",
    "/usr/sbin",
    "/etc",
    "/var",
    "/Library/Extensions",
    # Equivalents on macOS and Linux
    "/private/etc",
    "/boot",
    "/dev",
    "/proc",
    "/sys",
    "/lib",
    "/lib64",
)

# Protected only as exact matches. "/" must live here: every path is under it.
PROTECTED_EXACT: tuple[str, ...] = (
    "/",
    "/Users",
    "/home",
    "/root",
    "/Applications",
    "/Library",
    "/private",
    "/private/var",
    "/private/tmp",
    "/tmp",
    "/Volumes",
    "/opt",
)

# Glob-style patterns for user-sensitive data.
# Patterns starting with ~ are expanded to the user's home directory
# before matching. Patterns starting with / are matched as-is.
PROTECTED_PATH_PATTERNS: tuple[str, ...] = (
    # SSH and security
    "~/.ssh",
    "~/.ssh/*",
    "~/.gnupg",
    "~/.gnupg/*",
    # Keychains and keyrings
    "~/Library/Keychains",
    "~/Library/Keychains/*",
    "~/.local/share/keyrings",
    "~/.local/share/keyrings/*",
    # mole itself
    "~/.config/mole",
    "~/.config/mole/*",
)


def normalize_path(path: str) -> str:
    """Normalize an absolute path lexically, collapsing a leading "//"."""
    normalized = posixpath.normpath(path)
    if normalized.startswith("//"):
        normalized = "/" + normalized.lstrip("/")
    return normalized


def has_control_chars(value: str) -> bool:
    """Check for ASCII control characters (below 0x20, or DEL)."""
    return any(ord(ch) < 0x20 or ord(ch) == 0x7F for ch in value)


def is_under(path: str, prefix: str) -> bool:
    """Check if path equals prefix or lies beneath it (segment-aware)."""
    if path == prefix:
        return True
    return path.startswith(prefix.rstrip("/") + "/")


@dataclass(frozen=True, slots=True)
class ProtectionRule:
    """Immutable set of locations that must never be deleted.

    Attributes:
        prefixes: Protected subtrees.
        exact: Paths protected only as exact matches.
        patterns: fnmatch patterns (already home-expanded).
    """

    prefixes: frozenset[str] = field(default_factory=frozenset)
    exact: frozenset[str] = field(default_factory=frozenset)
    patterns: tuple[str, ...] = ()

    @classmethod
    def default(cls, home: str | None = None) -> "ProtectionRule":
        """Build the process-wide default rule.

        Args:
            home: Home directory to protect and to expand ~ patterns against.
                Defaults to the current user's home.

        Returns:
            ProtectionRule with the built-in prefixes, exact entries and patterns.
        """
        home_dir = normalize_path(home or str(Path.home()))
        expanded = tuple(
            home_dir + pattern[1:] if pattern.startswith("~") else pattern
            for pattern in PROTECTED_PATH_PATTERNS
        )
        return cls(
            prefixes=frozenset(PROTECTED_PREFIXES),
            exact=frozenset((*PROTECTED_EXACT, home_dir)),
            patterns=expanded,
        )

    def matches(self, path: str) -> bool:
        """Check if a normalized absolute path is protected.

        Args:
            path: Normalized absolute path.

        Returns:
            True if the path is an exact entry, lies under a prefix,
            or matches a protected pattern.
        """
        if path in self.exact:
            return True
        if any(is_under(path, prefix) for prefix in self.prefixes):
            return True
        return any(fnmatch.fnmatchcase(path, pattern) for pattern in self.patterns)


_DEFAULT_RULE: ProtectionRule | None = None


def default_protection() -> ProtectionRule:
    """Return the process-wide default ProtectionRule (built on first use)."""
    global _DEFAULT_RULE
    if _DEFAULT_RULE is None:
        _DEFAULT_RULE = ProtectionRule.default()
    return _DEFAULT_RULE


def is_protected_path(path: str) -> bool:
    """Check if an absolute path is protected by the default rule.

    Args:
        path: Absolute filesystem path to check.

    Returns:
        True if the path is protected, False otherwise.
    """
    return default_protection().matches(normalize_path(path))
