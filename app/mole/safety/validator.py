"""Path validation gate applied before any filesystem mutation.

Every path handed to the deletion engine or surfaced by the artifact
scanner passes through :class:`PathValidator`. Checks run in a fixed
order and stop at the first failure:

1. empty or unset input
2. control characters (including newline)
3. relative path, then any ``..`` segment
4. protected system location
5. user whitelist

A path that passes is "validated" but not yet safe for elevated
deletion; the symlink failsafe lives in the deletion engine.
"""

import logging
import os
import posixpath

from mole.core.errors import ValidationRejected
from mole.safety.models import RejectionReason, ValidationResult
from mole.safety.protected import (
    ProtectionRule,
    default_protection,
    has_control_chars,
    normalize_path,
)
from mole.safety.whitelist import Whitelist

logger = logging.getLogger(__name__)

PathInput = str | os.PathLike[str] | None


def _follows_final(raw: str) -> bool:
    """Check if a raw path dereferences its final component ("dir/", "dir/.")."""
    stripped = raw.rstrip("/")
    return stripped != raw or stripped.endswith("/.")


def _resolved_forms(path: str, *, follow_final: bool = False) -> tuple[str, ...]:
    """Return the lexical path plus its parent-resolved form.

    The parent directory is passed through realpath and the basename
    re-attached, so a symlinked parent pointing into a protected tree
    is caught while the final component itself is never followed.
    With ``follow_final`` the fully resolved path is checked as well.
    """
    if path == "/":
        return (path,)
    parent, name = posixpath.split(path)
    forms = [path, normalize_path(posixpath.join(os.path.realpath(parent), name))]
    if follow_final:
        forms.append(normalize_path(os.path.realpath(path)))
    return tuple(dict.fromkeys(forms))


class PathValidator:
    """Classifies paths as safe or unsafe before any mutation.

    Args:
        protection: Protection rule to enforce. Defaults to the
            process-wide default rule.
        whitelist: User whitelist layered on top of the protection rule.
    """

    def __init__(
        self,
        protection: ProtectionRule | None = None,
        whitelist: Whitelist | None = None,
    ) -> None:
        self._protection = protection if protection is not None else default_protection()
        self._whitelist = whitelist if whitelist is not None else Whitelist()

    @property
    def protection(self) -> ProtectionRule:
        return self._protection

    @property
    def whitelist(self) -> Whitelist:
        return self._whitelist

    def validate(self, path: PathInput, *, require_absolute: bool = True) -> ValidationResult:
        """Validate a path against every safety check.

        Args:
            path: Candidate path. None and empty strings are always rejected.
            require_absolute: If False, skip the relative-path check.

        Returns:
            ValidationResult; ``ok`` is True only if every check passed.
            An accepted absolute path is returned in normalized form
            (no trailing slash, no "." segments), which is the form
            callers must act on.
        """
        raw = os.fspath(path) if path is not None else None

        if raw is None or not raw.strip():
            return self._reject(raw, RejectionReason.EMPTY)

        if has_control_chars(raw):
            return self._reject(raw, RejectionReason.CONTROL_CHARACTER)

        if require_absolute and not raw.startswith("/"):
            return self._reject(raw, RejectionReason.RELATIVE)

        if ".." in raw.split("/"):
            return self._reject(raw, RejectionReason.TRAVERSAL)

        if raw.startswith("/"):
            accepted = normalize_path(raw)
            forms = _resolved_forms(accepted, follow_final=_follows_final(raw))
        else:
            accepted = raw
            forms = (raw,)

        if any(self._protection.matches(form) for form in forms):
            return self._reject(raw, RejectionReason.PROTECTED)

        if any(self._whitelist.matches(form) for form in forms):
            return self._reject(raw, RejectionReason.WHITELISTED)

        return ValidationResult(path=accepted)

    def require(self, path: PathInput, *, require_absolute: bool = True) -> str:
        """Validate a path and return it as a string, raising on rejection.

        Args:
            path: Candidate path.
            require_absolute: If False, skip the relative-path check.

        Returns:
            The normalized path as a string.

        Raises:
            ValidationRejected: If any check fails.
        """
        result = self.validate(path, require_absolute=require_absolute)
        if result.reason is not None:
            raise ValidationRejected(result.reason, result.path)
        return result.path  # type: ignore[return-value]

    def is_protected(self, path: str) -> bool:
        """Check only the protection rule and whitelist for an absolute path.

        Args:
            path: Absolute filesystem path.

        Returns:
            True if the path is protected or whitelisted.
        """
        forms = _resolved_forms(normalize_path(path), follow_final=_follows_final(path))
        return any(self._protection.matches(f) or self._whitelist.matches(f) for f in forms)

    @staticmethod
    def _reject(path: str | None, reason: RejectionReason) -> ValidationResult:
        logger.debug("Rejected path %r: %s", path, reason.value)
        return ValidationResult(path=path, reason=reason)
