"""Upload backends for finished archives."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from mongodb_s3_backup.config import S3Settings


class Uploader(Protocol):
    """Protocol for archive upload backends."""

    def upload(self, local_dir: str | Path, target_name: str) -> str: ...


def create_uploader(settings: S3Settings) -> Uploader:
    """Create the uploader for the configured destination."""
    from mongodb_s3_backup.storage.s3 import S3Uploader

    return S3Uploader(settings)
