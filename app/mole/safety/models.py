"""Validation result models for the path safety gate."""

from dataclasses import dataclass
from enum import Enum


class RejectionReason(str, Enum):
    """Reason a path was rejected by the validator.

    Attributes:
        EMPTY: Path was None, empty or whitespace only.
        CONTROL_CHARACTER: Path contains an ASCII control character or newline.
        RELATIVE: Path does not start at the filesystem root.
        TRAVERSAL: Path contains a ".." segment.
        PROTECTED: Path is, or lies under, a protected system location.
        WHITELISTED: Path is, or lies under, a user whitelist entry.
    """

    EMPTY = "empty"
    CONTROL_CHARACTER = "control_character"
    RELATIVE = "relative"
    TRAVERSAL = "traversal"
    PROTECTED = "protected"
    WHITELISTED = "whitelisted"


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Outcome of validating a single path.

    Attributes:
        path: The normalized path when accepted; the path as given by
            the caller when rejected (None if unset).
        reason: Rejection reason, or None when the path passed every check.
    """

    path: str | None
    reason: RejectionReason | None = None

    @property
    def ok(self) -> bool:
        """Check if the path passed validation."""
        return self.reason is None

    def __bool__(self) -> bool:
        return self.ok
