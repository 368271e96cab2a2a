from __future__ import annotations

import os
from dataclasses import dataclass

from portfolio_importer.config.paths import DEFAULT_OUTPUT_NAME


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        return default
    return value if value > 0 else default


def _env_delimiter(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None:
        return default
    if raw == "\\t":
        return "\t"
    return raw if len(raw) == 1 else default


@dataclass(frozen=True)
class Settings:
    app_env: str
    log_level: str
    default_output_path: str
    preview_rows: int
    delimiter: str


def get_settings() -> Settings:
    return Settings(
        app_env=os.getenv("APP_ENV", "development"),
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO",
        default_output_path=os.getenv("PORTFOLIO_IMPORT_OUTPUT", f"./{DEFAULT_OUTPUT_NAME}"),
        preview_rows=_env_int("PORTFOLIO_IMPORT_PREVIEW_ROWS", 10),
        delimiter=_env_delimiter("PORTFOLIO_IMPORT_DELIMITER", ","),
    )
