from __future__ import annotations

import os
from pathlib import Path

ENV_PREFIX = "FESTMAP_"


def read_env_file(env_path: Path) -> dict[str, str]:
    """Parse KEY=VALUE lines; ``export`` prefixes and surrounding quotes are dropped."""
    values: dict[str, str] = {}
    if not env_path.exists():
        return values
    for raw_line in env_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip().removeprefix("export ").strip()
        if key:
            values[key] = value.strip().strip('"').strip("'")
    return values


def load_env_file(base_dir: Path, filename: str = ".env", prefix: str = ENV_PREFIX) -> dict[str, str]:
    """Export the app's settings from a local .env file.

    Only keys starting with ``prefix`` are exported and existing environment
    variables are preserved. Returns the values that were applied.
    """
    applied: dict[str, str] = {}
    for key, value in read_env_file(base_dir / filename).items():
        if not key.startswith(prefix) or key in os.environ:
            continue
        os.environ[key] = value
        applied[key] = value
    return applied
