"""Root BackupSettings model."""

from __future__ import annotations

from typing import Any

from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from mongodb_s3_backup.config._sections import CronSettings, MongoDBSettings, S3Settings

ENV_PREFIX = "MONGODB_S3_BACKUP_"


class BackupSettings(BaseSettings):
    model_config = {
        "env_prefix": ENV_PREFIX,
        "env_nested_delimiter": "__",
        "case_sensitive": False,
        "extra": "ignore",
    }

    mongodb: MongoDBSettings
    s3: S3Settings
    cron: CronSettings | None = None

    work_dir: str | None = None
    mongodump_bin: str = "mongodump"
    tar_bin: str = "tar"

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Environment beats the config file, which arrives as init kwargs
        return (
            env_settings,
            init_settings,
        )
