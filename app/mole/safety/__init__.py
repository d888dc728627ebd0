"""Path safety gate.

This module provides the protection rule, the user whitelist and the
validator that every deletion target must pass.
"""

from mole.safety.models import RejectionReason, ValidationResult
from mole.safety.protected import (
    PROTECTED_EXACT,
    PROTECTED_PATH_PATTERNS,
    PROTECTED_PREFIXES,
    ProtectionRule,
    default_protection,
    is_protected_path,
)
from mole.safety.validator import PathValidator
from mole.safety.whitelist import Whitelist, load_whitelist

__all__ = [
    "PROTECTED_EXACT",
    "PROTECTED_PATH_PATTERNS",
    "PROTECTED_PREFIXES",
    "PathValidator",
    "ProtectionRule",
    "RejectionReason",
    "ValidationResult",
    "Whitelist",
    "default_protection",
    "is_protected_path",
    "load_whitelist",
]
