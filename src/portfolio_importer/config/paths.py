"""Path helpers for command-line inputs and the export artifact."""

from __future__ import annotations

import os
from pathlib import Path


DEFAULT_OUTPUT_NAME = "portfolio-import-data.json"
ENV_FILE_NAME = ".env.local"


def resolve_user_path(raw: str | Path, *, base_dir: Path | None = None) -> Path:
    text = str(raw).strip()
    if text.startswith("~"):
        text = text.replace("~", os.getenv("HOME", str(Path.home())), 1)
    path = Path(text)
    if path.is_absolute():
        return path
    return (base_dir or Path.cwd()) / path


def env_file_path(base_dir: Path | None = None) -> Path:
    return (base_dir or Path.cwd()) / ENV_FILE_NAME
