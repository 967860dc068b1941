"""Configuration for the backup service.

Usage:
    from mongodb_s3_backup.config import load_settings

    s = load_settings("backup.yaml")
    s.mongodb.db        # "app"
    s.s3.bucket         # "backups"

Values from the config file can be overridden with environment variables,
e.g. MONGODB_S3_BACKUP_S3__SECRET.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import ValidationError

from mongodb_s3_backup.config._loader import read_config_file, resolve_config_path
from mongodb_s3_backup.config._sections import CronSettings, MongoDBSettings, S3Settings
from mongodb_s3_backup.config._settings import ENV_PREFIX, BackupSettings
from mongodb_s3_backup.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

__all__ = [
    "ENV_PREFIX",
    "BackupSettings",
    "CronSettings",
    "MongoDBSettings",
    "S3Settings",
    "load_settings",
    "resolve_config_path",
]


def load_settings(path: str | Path) -> BackupSettings:
    """Load and validate settings from a config file plus the environment.

    Raises ConfigurationError when the file is missing, unreadable or invalid.
    """
    config_path = resolve_config_path(path)
    logger.info(f"Loading config file ({config_path})")

    data = read_config_file(config_path)
    try:
        return BackupSettings(**data)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigurationError(f"Invalid config file {config_path}: {problems}") from e
