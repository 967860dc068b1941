"""Run-scoped data: working directory layout and run outcome."""

from __future__ import annotations

import tempfile
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from mongodb_s3_backup.utils import archive_name

APP_NAME = "mongodb_s3_backup"


def default_work_root() -> Path:
    """Process-wide temp directory shared by every run."""
    return Path(tempfile.gettempdir()) / APP_NAME


@dataclass(frozen=True)
class WorkingLayout:
    """
    Local paths used by a single run.

    Attributes:
        root: Temp root the dump tool writes into and tar runs inside
        dump_dir: Per-database directory created by mongodump under root
        archive_name: Archive file name, relative to root
    """

    root: Path
    dump_dir: Path
    archive_name: str

    @property
    def archive_path(self) -> Path:
        return self.root / self.archive_name

    @classmethod
    def for_database(
        cls,
        database: str,
        now: datetime | None = None,
        root: str | Path | None = None,
    ) -> WorkingLayout:
        """Compute a fresh layout for a run of ``database``."""
        base = Path(root) if root else default_work_root()
        return cls(
            root=base,
            dump_dir=base / database,
            archive_name=archive_name(database, now),
        )


@dataclass
class RunOutcome:
    """
    Terminal result of one pipeline run.

    Attributes:
        database: Database that was backed up
        success: Whether every step completed
        error: Human-readable cause of the failure (None on success)
        failed_step: Name of the step that failed (None on success)
        archive_name: Archive produced (or attempted) by the run
        key: Object key the archive was uploaded to (None unless uploaded)
        archive_size: Archive size in bytes (None unless compressed)
    """

    database: str
    success: bool
    archive_name: str
    started_at: datetime
    finished_at: datetime = field(default_factory=datetime.now)
    error: str | None = None
    failed_step: str | None = None
    key: str | None = None
    archive_size: int | None = None

    @property
    def duration_ms(self) -> int:
        return int((self.finished_at - self.started_at).total_seconds() * 1000)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a dictionary for logging."""
        return {
            "database": self.database,
            "success": self.success,
            "archive_name": self.archive_name,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat(),
            "duration_ms": self.duration_ms,
            "error": self.error,
            "failed_step": self.failed_step,
            "key": self.key,
            "archive_size": self.archive_size,
        }
