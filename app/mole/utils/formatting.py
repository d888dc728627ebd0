"""Human-readable size formatting."""

_UNITS: tuple[str, ...] = ("B", "KB", "MB", "GB", "TB")


def format_size(num_bytes: int) -> str:
    """Format a byte count as a short human-readable string.

    Uses binary multiples (1 KB = 1024 B) to match ``du -k`` accounting.

    Args:
        num_bytes: Size in bytes. Negative values are treated as 0.

    Returns:
        Formatted string such as "512 B", "1.5 MB" or "2.0 GB".
    """
    size = float(max(num_bytes, 0))
    for unit in _UNITS:
        if size < 1024 or unit == _UNITS[-1]:
            if unit == "B":
                return f"{int(size)} B"
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} {_UNITS[-1]}"  # pragma: no cover


def format_kb(size_kb: int) -> str:
    """Format a kilobyte count as a human-readable string."""
    return format_size(size_kb * 1024)
