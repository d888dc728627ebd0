"""On-disk size accounting.

Sizes are reported in kilobytes of allocated disk space (like
``du -sk``), never following symlinks and counting hard-linked
inodes once. A collection of independent paths is measured in
parallel: one task per path, all joined before the results are
folded in input order.
"""

import logging
import os
import stat
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor, wait

logger = logging.getLogger(__name__)


def _disk_bytes(st: os.stat_result) -> int:
    blocks = getattr(st, "st_blocks", None)
    if blocks is None:
        return st.st_size
    return blocks * 512


def size_kb(path: str | os.PathLike[str]) -> int:
    """Compute the on-disk size of a file or directory tree.

    Args:
        path: File or directory to measure.

    Returns:
        Size in kilobytes (rounded up). 0 for missing paths; unreadable
        entries contribute 0.
    """
    root = os.fspath(path)
    try:
        root_stat = os.lstat(root)
    except FileNotFoundError:
        return 0
    except (OSError, ValueError) as e:
        logger.debug("Cannot stat %s: %s", root, e)
        return 0

    total = _disk_bytes(root_stat)
    if not stat.S_ISDIR(root_stat.st_mode):
        return (total + 1023) // 1024

    seen: set[tuple[int, int]] = set()
    pending = [root]
    while pending:
        current = pending.pop()
        try:
            with os.scandir(current) as entries:
                for entry in entries:
                    try:
                        st = entry.stat(follow_symlinks=False)
                    except OSError:
                        continue
                    if st.st_nlink > 1 and not stat.S_ISDIR(st.st_mode):
                        key = (st.st_dev, st.st_ino)
                        if key in seen:
                            continue
                        seen.add(key)
                    total += _disk_bytes(st)
                    if stat.S_ISDIR(st.st_mode):
                        pending.append(entry.path)
        except OSError as e:
            logger.debug("Cannot read directory %s: %s", current, e)

    return (total + 1023) // 1024


class SizeAccountant:
    """Computes sizes of paths, fanning out across independent paths.

    Args:
        max_workers: Upper bound on concurrent measurement tasks.
    """

    def __init__(self, max_workers: int = 8) -> None:
        if max_workers < 1:
            msg = f"max_workers must be at least 1, got {max_workers}"
            raise ValueError(msg)
        self._max_workers = max_workers

    def size_kb(self, path: str | os.PathLike[str]) -> int:
        """Size of a single path in kilobytes (0 if missing)."""
        return size_kb(path)

    def sizes_kb(self, paths: Sequence[str | os.PathLike[str]]) -> list[int]:
        """Measure several independent paths concurrently.

        Each task writes only its own slot; slots are read after every
        task has finished. A failed task contributes 0.

        Args:
            paths: Paths to measure.

        Returns:
            Sizes in kilobytes, in the same order as ``paths``.
        """
        if not paths:
            return []

        slots = [0] * len(paths)
        workers = min(self._max_workers, len(paths))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(size_kb, p) for p in paths]
            wait(futures)

        for index, future in enumerate(futures):
            try:
                slots[index] = future.result()
            except (OSError, ValueError) as e:
                logger.warning("Size computation failed for %s: %s", paths[index], e)

        return slots

    def total_kb(self, paths: Sequence[str | os.PathLike[str]]) -> int:
        """Sum of ``sizes_kb`` over all paths."""
        return sum(self.sizes_kb(paths))
