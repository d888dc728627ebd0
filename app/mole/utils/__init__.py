"""Utility modules for mole.

This module exports commonly used utility functions.
"""

from mole.utils.formatting import format_kb, format_size
from mole.utils.shell import CommandResult, command_exists, run_command

__all__ = [
    "CommandResult",
    "command_exists",
    "format_kb",
    "format_size",
    "run_command",
]
