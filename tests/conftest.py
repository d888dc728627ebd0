"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

from pathlib import Path

import pytest
from mole.core.sizes import SizeAccountant
from mole.core.supervisor import TimeoutSupervisor
from mole.deletion.engine import DeletionEngine
from mole.safety.protected import ProtectionRule
from mole.safety.validator import PathValidator
from mole.safety.whitelist import Whitelist


@pytest.fixture
def protection(tmp_path: Path) -> ProtectionRule:
    """Protection rule for filesystem tests.

    Keeps the system prefixes but not /var or /tmp, which may hold the
    pytest temporary directory, and protects the tmp_path root itself.
    """
    return ProtectionRule(
        prefixes=frozenset({"/System", "/bin", "/sbin", "/usr", "/etc"}),
        exact=frozenset({"/", str(tmp_path)}),
    )


@pytest.fixture
def validator(protection: ProtectionRule) -> PathValidator:
    """Validator with the test protection rule and an empty whitelist."""
    return PathValidator(protection, Whitelist())


@pytest.fixture
def supervisor() -> TimeoutSupervisor:
    """Supervisor forced onto the watchdog fallback."""
    return TimeoutSupervisor(native=None, kill_grace_seconds=0.5)


@pytest.fixture
def engine(validator: PathValidator, supervisor: TimeoutSupervisor) -> DeletionEngine:
    """Deletion engine performing real removals."""
    return DeletionEngine(validator, supervisor, timeout_seconds=30)


@pytest.fixture
def dry_engine(validator: PathValidator, supervisor: TimeoutSupervisor) -> DeletionEngine:
    """Deletion engine in dry-run mode."""
    return DeletionEngine(validator, supervisor, dry_run=True, timeout_seconds=30)


@pytest.fixture
def accountant() -> SizeAccountant:
    return SizeAccountant(max_workers=4)
