"""mole - safe-deletion core for cache, log and build artifact cleanup."""

__version__ = "0.3.0"
