"""Configuration section models."""

from __future__ import annotations

import re
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{1,2})$")


class MongoDBSettings(BaseModel):
    """Connection details for the database being dumped."""

    host: str = "localhost"
    port: int = Field(default=27017, ge=1, le=65535)
    db: str = Field(min_length=1)
    username: str | None = None
    password: str | None = None

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    @property
    def credentials(self) -> tuple[str, str] | None:
        """(username, password) when both are set, else None."""
        if self.username and self.password:
            return self.username, self.password
        return None


class S3Settings(BaseModel):
    """Destination bucket and credentials."""

    key: str = Field(min_length=1)
    secret: str = Field(min_length=1)
    bucket: str = Field(min_length=1)
    destination: str = "/"
    region: str | None = None
    endpoint_url: str | None = None

    @field_validator("destination", mode="before")
    @classmethod
    def _empty_destination_is_root(cls, v):
        return v or "/"


class CronSettings(BaseModel):
    """Schedule override. crontab wins over time when both are set."""

    crontab: str | None = None
    time: str | None = None
    timezone: str | None = None

    @field_validator("time", mode="before")
    @classmethod
    def _coerce_time(cls, v):
        # YAML 1.1 reads an unquoted 3:30 as the base-60 integer 210
        if isinstance(v, int) and not isinstance(v, bool):
            return f"{v // 60}:{v % 60:02d}"
        return v

    @field_validator("time")
    @classmethod
    def _validate_time(cls, v: str | None) -> str | None:
        if v is None:
            return v
        match = _TIME_RE.match(v.strip())
        if not match:
            raise ValueError(f"time must be HH:MM, got {v!r}")
        hour, minute = int(match.group(1)), int(match.group(2))
        if not (0 <= hour <= 23):
            raise ValueError(f"Hour must be 0-23, got {hour}")
        if not (0 <= minute <= 59):
            raise ValueError(f"Minute must be 0-59, got {minute}")
        return f"{hour:02d}:{minute:02d}"

    @field_validator("timezone")
    @classmethod
    def _validate_timezone(cls, v: str | None) -> str | None:
        if v is None:
            return v
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone {v!r}") from e
        return v
