"""Core services: settings, paths, timeout supervision and size accounting."""
