"""Pytest configuration and fixtures for backup service tests."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from mongodb_s3_backup.config import MongoDBSettings, S3Settings


@dataclass
class FakeResult:
    """Scripted behaviour for one command."""

    exit_code: int = 0
    stdout: list[str] = field(default_factory=list)
    stderr: list[str] = field(default_factory=list)
    effect: Callable[[Sequence[str], Path | None], None] | None = None
    missing: bool = False
    error: Exception | None = None


@dataclass
class FakeCall:
    argv: list[str]
    cwd: Path | None


class FakeProcessRunner:
    """ProcessRunner that replays scripted results keyed by executable name."""

    def __init__(self, results: dict[str, FakeResult] | None = None):
        self.results = results or {}
        self.calls: list[FakeCall] = []

    def script(self, binary: str, **kwargs) -> FakeResult:
        self.results[binary] = FakeResult(**kwargs)
        return self.results[binary]

    @property
    def binaries(self) -> list[str]:
        return [call.argv[0] for call in self.calls]

    async def run(self, argv, *, cwd=None, on_stdout=None, on_stderr=None) -> int:
        cwd_path = Path(cwd) if cwd is not None else None
        self.calls.append(FakeCall(list(argv), cwd_path))
        result = self.results.get(argv[0], FakeResult())

        if result.missing:
            raise FileNotFoundError(2, "No such file or directory", argv[0])
        if result.error is not None:
            raise result.error
        for line in result.stdout:
            if on_stdout:
                on_stdout(line)
        for line in result.stderr:
            if on_stderr:
                on_stderr(line)
        if result.effect:
            result.effect(argv, cwd_path)
        return result.exit_code


def fake_mongodump(argv: Sequence[str], cwd: Path | None) -> None:
    """Create the directory tree mongodump would write under -o."""
    output_dir = Path(argv[argv.index("-o") + 1])
    db = argv[argv.index("-d") + 1]
    (output_dir / db).mkdir(parents=True, exist_ok=True)
    (output_dir / db / "users.bson").write_bytes(b"\x00" * 64)
    (output_dir / db / "users.metadata.json").write_text("{}")


def fake_tar(argv: Sequence[str], cwd: Path | None) -> None:
    """Write a placeholder archive where tar -zcf would."""
    assert cwd is not None
    (cwd / argv[2]).write_bytes(b"\x1f\x8b" + b"\x00" * 2046)


@pytest.fixture
def runner():
    """A fake process runner where every command succeeds and does nothing."""
    return FakeProcessRunner()


@pytest.fixture
def working_runner():
    """A fake runner whose mongodump and tar produce files on disk."""
    fake = FakeProcessRunner()
    fake.script("mongodump", stdout=["writing app.users to"], effect=fake_mongodump)
    fake.script("tar", effect=fake_tar)
    return fake


@pytest.fixture
def mongodb_settings():
    return MongoDBSettings(host="db.internal", port=27017, db="app")


@pytest.fixture
def s3_settings():
    return S3Settings(key="AKIAEXAMPLE", secret="s3cr3t", bucket="backups")


@pytest.fixture
def work_root(tmp_path):
    return tmp_path / "mongodb_s3_backup"
