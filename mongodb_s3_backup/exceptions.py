"""
Backup exceptions.

Exception hierarchy:
    Exception
    └── BackupError
        ├── CleanupError
        ├── DumpError
        ├── CompressionError
        ├── UploadError
        └── ConfigurationError

Every step of a run raises a subclass of BackupError; the pipeline turns the
first one into the run's failure outcome.
"""

from __future__ import annotations

from typing import Any


class BackupError(Exception):
    """
    Base exception for backup errors.

    Attributes:
        message: Human-readable error message
        details: Additional error context
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | details={self.details}"
        return self.message


class CleanupError(BackupError):
    """Removing a working file or directory failed."""


class DumpError(BackupError):
    """mongodump could not be started or exited with a nonzero code."""

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        self.exit_code = exit_code


class CompressionError(BackupError):
    """tar could not be started or exited with a nonzero code."""

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        self.exit_code = exit_code


class UploadError(BackupError):
    """
    Upload to object storage failed.

    status_code is the HTTP status returned by the storage service, or None
    when the request failed before a response arrived.
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ConfigurationError(BackupError):
    """Invalid or missing configuration."""
