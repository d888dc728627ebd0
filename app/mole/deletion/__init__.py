"""Guarded deletion primitives.

This module provides the deletion engine, its request and result
models, and the measured cleanup helpers built on top of it.
"""

from mole.deletion.cleanup import AgedCleanupReport, CleanupReport, cleanup_aged, cleanup_path
from mole.deletion.engine import DeletionEngine, build_find_command
from mole.deletion.models import (
    DeletionMode,
    DeletionRequest,
    DeletionResult,
    DeletionStatus,
    EntryType,
    FindDeleteResult,
    Privilege,
)

__all__ = [
    "AgedCleanupReport",
    "CleanupReport",
    "DeletionEngine",
    "DeletionMode",
    "DeletionRequest",
    "DeletionResult",
    "DeletionStatus",
    "EntryType",
    "FindDeleteResult",
    "Privilege",
    "build_find_command",
    "cleanup_aged",
    "cleanup_path",
]
