"""tar.gz compression of a dump directory."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from mongodb_s3_backup.exceptions import CompressionError
from mongodb_s3_backup.process import AsyncioProcessRunner, ProcessRunner
from mongodb_s3_backup.utils import friendly_size

logger = logging.getLogger(__name__)


async def compress(
    working_dir: str | Path,
    input_name: str,
    output_name: str,
    runner: ProcessRunner | None = None,
    binary: str = "tar",
) -> int:
    """Create ``output_name`` from ``input_name``, both relative to working_dir.

    Returns the archive size in bytes (0 if the archive cannot be stat'ed).
    Raises CompressionError if tar cannot be started or exits nonzero.
    """
    runner = runner or AsyncioProcessRunner()
    cmd = [binary, "-zcf", output_name, input_name]

    logger.info(f"Starting compression of {input_name} into {output_name}")

    try:
        code = await runner.run(cmd, cwd=working_dir, on_stdout=logger.debug, on_stderr=logger.error)
    except FileNotFoundError as e:
        raise CompressionError(f"{binary} not found or working directory missing: {e}") from e
    except (OSError, ValueError) as e:
        raise CompressionError(f"Failed to run {binary}: {e}") from e

    if code != 0:
        raise CompressionError(f"Tar exited with code {code}", exit_code=code)

    try:
        size = os.stat(Path(working_dir) / output_name).st_size
    except OSError:
        size = 0

    logger.info(f"Successfully compressed directory ({friendly_size(size)})")
    return size
