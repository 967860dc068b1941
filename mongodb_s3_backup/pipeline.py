"""Backup pipeline: clean, dump, compress, upload, clean.

Each run is an ordered list of named steps folded sequentially. The first
step that raises BackupError ends the run; later steps never execute. The
post-upload cleanup steps come last, so local artifacts are only removed
after a successful upload and a failed run leaves them on disk for
inspection. The next run for the same database clears them first.

Usage:
    pipeline = BackupPipeline(settings.mongodb, settings.s3)
    outcome = await pipeline.run()
    if not outcome.success:
        print(outcome.failed_step, outcome.error)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from mongodb_s3_backup.archive import compress
from mongodb_s3_backup.cleaner import remove_recursive
from mongodb_s3_backup.dump import dump_database
from mongodb_s3_backup.exceptions import BackupError, DumpError
from mongodb_s3_backup.models import RunOutcome, WorkingLayout
from mongodb_s3_backup.process import AsyncioProcessRunner, ProcessRunner
from mongodb_s3_backup.storage import Uploader, create_uploader

if TYPE_CHECKING:
    from mongodb_s3_backup.config import BackupSettings, MongoDBSettings, S3Settings

logger = logging.getLogger(__name__)

# Step names, in execution order
CLEAN_DUMP_DIR = "clean-dump-dir"
CLEAN_ARCHIVE = "clean-archive"
DUMP = "dump"
COMPRESS = "compress"
UPLOAD = "upload"
CLEANUP_DUMP_DIR = "cleanup-dump-dir"
CLEANUP_ARCHIVE = "cleanup-archive"


@dataclass
class Step:
    """A named unit of work in a run."""

    name: str
    action: Callable[[], Awaitable[None]]


@dataclass
class _RunState:
    archive_size: int | None = None
    key: str | None = None


class BackupPipeline:
    """Runs the backup steps for one database and destination."""

    def __init__(
        self,
        mongodb: MongoDBSettings,
        s3: S3Settings,
        *,
        runner: ProcessRunner | None = None,
        uploader: Uploader | None = None,
        work_root: str | Path | None = None,
        clock: Callable[[], datetime] = datetime.now,
        mongodump_bin: str = "mongodump",
        tar_bin: str = "tar",
    ) -> None:
        self.mongodb = mongodb
        self.s3 = s3
        self.runner = runner or AsyncioProcessRunner()
        self._uploader = uploader
        self.work_root = work_root
        self.clock = clock
        self.mongodump_bin = mongodump_bin
        self.tar_bin = tar_bin

    @classmethod
    def from_settings(cls, settings: BackupSettings, **kwargs) -> BackupPipeline:
        """Build a pipeline from loaded settings; kwargs override collaborators."""
        kwargs.setdefault("work_root", settings.work_dir)
        kwargs.setdefault("mongodump_bin", settings.mongodump_bin)
        kwargs.setdefault("tar_bin", settings.tar_bin)
        return cls(settings.mongodb, settings.s3, **kwargs)

    @property
    def database(self) -> str:
        return self.mongodb.db

    @property
    def uploader(self) -> Uploader:
        if self._uploader is None:
            self._uploader = create_uploader(self.s3)
        return self._uploader

    def layout(self, now: datetime | None = None) -> WorkingLayout:
        """Compute the working paths for a run starting at ``now``."""
        return WorkingLayout.for_database(self.database, now or self.clock(), self.work_root)

    def build_steps(self, layout: WorkingLayout, state: _RunState | None = None) -> list[Step]:
        """Return the ordered steps of a run over ``layout``."""
        state = state or _RunState()

        async def clean(path: Path) -> None:
            await asyncio.to_thread(remove_recursive, path)

        async def dump() -> None:
            try:
                layout.root.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise DumpError(f"Cannot create working directory {layout.root}: {e}") from e
            await dump_database(self.mongodb, layout.root, self.runner, self.mongodump_bin)

        async def compress_dump() -> None:
            state.archive_size = await compress(
                layout.root,
                layout.dump_dir.name,
                layout.archive_name,
                self.runner,
                self.tar_bin,
            )

        async def upload() -> None:
            state.key = await asyncio.to_thread(self.uploader.upload, layout.root, layout.archive_name)

        return [
            Step(CLEAN_DUMP_DIR, lambda: clean(layout.dump_dir)),
            Step(CLEAN_ARCHIVE, lambda: clean(layout.archive_path)),
            Step(DUMP, dump),
            Step(COMPRESS, compress_dump),
            Step(UPLOAD, upload),
            Step(CLEANUP_DUMP_DIR, lambda: clean(layout.dump_dir)),
            Step(CLEANUP_ARCHIVE, lambda: clean(layout.archive_path)),
        ]

    async def run(self) -> RunOutcome:
        """Execute one run and return its single outcome."""
        started = self.clock()
        layout = self.layout(started)
        state = _RunState()

        for step in self.build_steps(layout, state):
            logger.debug(f"[{self.database}] Step {step.name}")
            try:
                await step.action()
            except BackupError as e:
                logger.error(f"Failed during sync: {e}")
                return RunOutcome(
                    database=self.database,
                    success=False,
                    archive_name=layout.archive_name,
                    started_at=started,
                    finished_at=self.clock(),
                    error=str(e),
                    failed_step=step.name,
                    key=state.key,
                    archive_size=state.archive_size,
                )

        logger.info(f"Successfully backed up {self.database}")
        return RunOutcome(
            database=self.database,
            success=True,
            archive_name=layout.archive_name,
            started_at=started,
            finished_at=self.clock(),
            key=state.key,
            archive_size=state.archive_size,
        )


async def sync(mongodb: MongoDBSettings, s3: S3Settings, **kwargs) -> RunOutcome:
    """Dump, compress and upload ``mongodb.db`` once."""
    return await BackupPipeline(mongodb, s3, **kwargs).run()
