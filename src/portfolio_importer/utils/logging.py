from __future__ import annotations

import logging

_DEFAULT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
_CONFIGURED = False


def _resolve_level(level: str | int | None) -> int:
    if level is None:
        from portfolio_importer.config.settings import get_settings

        level = get_settings().log_level
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logging(level: str | int | None = None) -> None:
    """Configure root logging once; later calls only adjust the level.

    Entry points call this after loading ``.env.local`` so ``LOG_LEVEL`` from
    the file is honoured.
    """
    global _CONFIGURED
    if not _CONFIGURED:
        logging.basicConfig(format=_DEFAULT_FORMAT)
        _CONFIGURED = True
    logging.getLogger().setLevel(_resolve_level(level))


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
