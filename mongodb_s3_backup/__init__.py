"""MongoDB to S3 backup service.

Dumps a MongoDB database with ``mongodump``, packs it with ``tar`` and
uploads the archive to S3-compatible storage, either once or on a cron
schedule.

Usage:
    from mongodb_s3_backup import sync

    outcome = await sync(settings.mongodb, settings.s3)
"""

from __future__ import annotations

__version__ = "0.3.0"

from mongodb_s3_backup.models import APP_NAME, RunOutcome, WorkingLayout  # noqa: E402
from mongodb_s3_backup.pipeline import BackupPipeline, sync  # noqa: E402

__all__ = [
    "APP_NAME",
    "BackupPipeline",
    "RunOutcome",
    "WorkingLayout",
    "__version__",
    "sync",
]
