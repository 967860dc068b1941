"""Archive naming and size formatting helpers."""

from __future__ import annotations

from datetime import datetime

ARCHIVE_EXTENSION = ".tar.gz"

_UNITS = (
    (1 << 40, "TiB"),
    (1 << 30, "GiB"),
    (1 << 20, "MiB"),
    (1 << 10, "KiB"),
)


def archive_name(database_name: str, now: datetime | None = None) -> str:
    """Return the archive name for a run, ``db_YYYY_M_D_<epoch ms>.tar.gz``.

    Month and day are not zero padded. The epoch milliseconds make names
    unique per run within one process.
    """
    if now is None:
        now = datetime.now()

    parts = [
        database_name,
        str(now.year),
        str(now.month),
        str(now.day),
        str(int(now.timestamp() * 1000)),
    ]
    return "_".join(parts) + ARCHIVE_EXTENSION


def friendly_size(num_bytes: int | None) -> str:
    """Render a byte count with binary units and one decimal place."""
    if not num_bytes:
        return "0 B"

    for threshold, unit in _UNITS:
        if num_bytes >= threshold:
            return f"{num_bytes / threshold:.1f} {unit}"

    return f"{num_bytes} B"
