"""Config file reading."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml

from mongodb_s3_backup.exceptions import ConfigurationError


def resolve_config_path(path: str | Path, cwd: str | Path | None = None) -> Path:
    """Resolve a config path against the current directory."""
    base = Path(cwd) if cwd is not None else Path.cwd()
    return (base / Path(path).expanduser()).resolve()


def read_config_file(path: Path) -> dict[str, Any]:
    """Read a YAML or JSON config file into a dict.

    JSON is a subset of YAML, so one parser covers both.
    """
    if not path.is_file():
        raise ConfigurationError(f"Config file not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to read config file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Config file {path} must contain a mapping, got {type(data).__name__}",
            details={"content": json.dumps(data, default=str)[:200]},
        )
    return data
