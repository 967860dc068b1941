"""External process execution with streamed output.

The dump and archive steps only need to start a command, see its output
line by line while it runs, and get the exit code. ProcessRunner is that
capability set; tests substitute a fake runner.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Protocol

LineCallback = Callable[[str], None]


class ProcessRunner(Protocol):
    """Protocol for running an external command to completion."""

    async def run(
        self,
        argv: Sequence[str],
        *,
        cwd: str | Path | None = None,
        on_stdout: LineCallback | None = None,
        on_stderr: LineCallback | None = None,
    ) -> int:
        """Run argv, feeding output lines to the callbacks, and return the exit code.

        Raises FileNotFoundError if the executable does not exist.
        """
        ...


_CHUNK_SIZE = 64 * 1024


def _emit(raw: bytes, callback: LineCallback | None) -> None:
    line = raw.decode("utf-8", errors="replace").rstrip()
    if line and callback is not None:
        callback(line)


async def _pump(stream: asyncio.StreamReader | None, callback: LineCallback | None) -> None:
    # Read fixed-size chunks and split lines here; StreamReader.readline
    # fails on lines longer than its buffer limit
    if stream is None:
        return
    pending = b""
    while chunk := await stream.read(_CHUNK_SIZE):
        *lines, pending = (pending + chunk).split(b"\n")
        for raw in lines:
            _emit(raw, callback)
    if pending:
        _emit(pending, callback)


class AsyncioProcessRunner:
    """Run commands with asyncio subprocesses.

    stdout and stderr are drained concurrently so neither pipe can fill up
    and stall the child. If reading fails or the awaiting task is cancelled
    the child is killed and reaped before the error propagates.
    """

    async def run(
        self,
        argv: Sequence[str],
        *,
        cwd: str | Path | None = None,
        on_stdout: LineCallback | None = None,
        on_stderr: LineCallback | None = None,
    ) -> int:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(cwd) if cwd is not None else None,
        )

        try:
            await asyncio.gather(
                _pump(proc.stdout, on_stdout),
                _pump(proc.stderr, on_stderr),
            )
            return await proc.wait()
        finally:
            if proc.returncode is None:
                proc.kill()
                await proc.wait()
