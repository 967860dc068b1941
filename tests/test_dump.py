"""Tests for the mongodump invoker."""

import logging

import pytest

from mongodb_s3_backup.config import MongoDBSettings
from mongodb_s3_backup.dump import build_dump_command, dump_database
from mongodb_s3_backup.exceptions import DumpError


class TestBuildDumpCommand:
    def test_without_credentials(self, mongodb_settings):
        cmd = build_dump_command(mongodb_settings, "/tmp/work")
        assert cmd == ["mongodump", "-h", "db.internal:27017", "-d", "app", "-o", "/tmp/work"]

    def test_with_credentials(self):
        mongodb = MongoDBSettings(host="h", port=1234, db="app", username="backup", password="pw")
        cmd = build_dump_command(mongodb, "/tmp/work")
        assert cmd[-4:] == ["-u", "backup", "-p", "pw"]

    def test_username_only_is_ignored(self):
        mongodb = MongoDBSettings(db="app", username="backup")
        cmd = build_dump_command(mongodb, "/tmp/work")
        assert "-u" not in cmd
        assert "-p" not in cmd

    def test_password_only_is_ignored(self):
        mongodb = MongoDBSettings(db="app", password="pw")
        assert "-p" not in build_dump_command(mongodb, "/tmp/work")

    def test_custom_binary(self, mongodb_settings):
        assert build_dump_command(mongodb_settings, "/w", binary="/opt/mongo/bin/mongodump")[0] == (
            "/opt/mongo/bin/mongodump"
        )


class TestDumpDatabase:
    @pytest.mark.asyncio
    async def test_success_streams_output(self, runner, mongodb_settings, caplog):
        runner.script("mongodump", stdout=["writing app.users"], stderr=["deprecated option"])

        with caplog.at_level(logging.INFO):
            await dump_database(mongodb_settings, "/tmp/work", runner)

        assert runner.calls[0].argv[:2] == ["mongodump", "-h"]
        levels = {r.getMessage(): r.levelno for r in caplog.records}
        assert levels["writing app.users"] == logging.INFO
        assert levels["deprecated option"] == logging.ERROR
        assert levels["Starting mongodump of app"] == logging.INFO
        assert levels["mongodump executed successfully"] == logging.INFO

    @pytest.mark.asyncio
    async def test_nonzero_exit(self, runner, mongodb_settings, caplog):
        runner.script("mongodump", exit_code=3)

        with pytest.raises(DumpError) as exc_info:
            await dump_database(mongodb_settings, "/tmp/work", runner)

        assert exc_info.value.exit_code == 3
        assert "code 3" in str(exc_info.value)
        assert "mongodump executed successfully" not in caplog.text

    @pytest.mark.asyncio
    async def test_missing_binary(self, runner, mongodb_settings):
        runner.script("mongodump", missing=True)

        with pytest.raises(DumpError, match="not found"):
            await dump_database(mongodb_settings, "/tmp/work", runner)

    @pytest.mark.asyncio
    async def test_runner_failure_becomes_dump_error(self, runner, mongodb_settings):
        runner.script("mongodump", error=ValueError("output could not be read"))

        with pytest.raises(DumpError, match="Failed to run mongodump"):
            await dump_database(mongodb_settings, "/tmp/work", runner)

    @pytest.mark.asyncio
    async def test_partial_credentials_not_passed(self, runner):
        mongodb = MongoDBSettings(db="app", username="backup")

        await dump_database(mongodb, "/tmp/work", runner)

        assert "-u" not in runner.calls[0].argv
