"""Forced recursive removal of working files."""

from __future__ import annotations

import logging
import os
import shutil
import stat
import sys
from pathlib import Path

from mongodb_s3_backup.exceptions import CleanupError

logger = logging.getLogger(__name__)


def _make_writable(path: str | os.PathLike) -> None:
    """Grant the owner write access to ``path`` and its parent directory."""
    for entry in (os.path.dirname(path), path):
        if entry and not os.path.islink(entry):
            mode = os.stat(entry).st_mode
            extra = stat.S_IRWXU if stat.S_ISDIR(mode) else stat.S_IRUSR | stat.S_IWUSR
            os.chmod(entry, mode | extra)


def _retry_writable(func, path, _exc) -> None:
    # rmtree error hook: unlock the entry and try the failed call once more
    _make_writable(path)
    func(path)


def _rmtree(target: Path) -> None:
    if sys.version_info >= (3, 12):
        shutil.rmtree(target, onexc=_retry_writable)
    else:
        shutil.rmtree(target, onerror=_retry_writable)


def remove_recursive(path: str | Path) -> None:
    """Remove a file or directory tree if it exists.

    Read-only entries are made writable and retried. A missing path is a
    no-op. Raises CleanupError when the removal still fails.
    """
    target = Path(path)
    if not target.exists() and not target.is_symlink():
        return

    logger.warning(f"Removing {target}")

    try:
        if target.is_dir() and not target.is_symlink():
            _rmtree(target)
        else:
            try:
                target.unlink()
            except PermissionError:
                _make_writable(target)
                target.unlink()
    except OSError as e:
        raise CleanupError(f"Failed to remove {target}: {e}") from e
