"""mongodump invocation."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from mongodb_s3_backup.exceptions import DumpError
from mongodb_s3_backup.process import AsyncioProcessRunner, ProcessRunner

if TYPE_CHECKING:
    from mongodb_s3_backup.config import MongoDBSettings

logger = logging.getLogger(__name__)


def build_dump_command(
    mongodb: MongoDBSettings, output_dir: str | Path, binary: str = "mongodump"
) -> list[str]:
    """Build the mongodump argv for a database.

    Credential flags are only added when both username and password are set.
    """
    cmd = [
        binary,
        "-h",
        mongodb.address,
        "-d",
        mongodb.db,
        "-o",
        str(output_dir),
    ]

    credentials = mongodb.credentials
    if credentials:
        username, password = credentials
        cmd.extend(["-u", username, "-p", password])

    return cmd


async def dump_database(
    mongodb: MongoDBSettings,
    output_dir: str | Path,
    runner: ProcessRunner | None = None,
    binary: str = "mongodump",
) -> None:
    """Dump ``mongodb.db`` into ``output_dir/<db>``.

    mongodump stdout is logged at INFO and stderr at ERROR as it arrives.
    Raises DumpError if mongodump cannot be started or exits nonzero.
    """
    runner = runner or AsyncioProcessRunner()
    cmd = build_dump_command(mongodb, output_dir, binary)

    logger.info(f"Starting mongodump of {mongodb.db}")

    try:
        code = await runner.run(cmd, on_stdout=logger.info, on_stderr=logger.error)
    except FileNotFoundError as e:
        raise DumpError(f"{binary} not found - install the MongoDB database tools") from e
    except (OSError, ValueError) as e:
        raise DumpError(f"Failed to run {binary}: {e}") from e

    if code != 0:
        raise DumpError(f"Mongodump exited with code {code}", exit_code=code)

    logger.info("mongodump executed successfully")
