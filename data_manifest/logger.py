# File: data_manifest/logger.py
"""Логгер проекта Data Manifest.

Все компоненты пишут в логгер ``DataManifest`` или в его потомков
(``DataManifest.cycle``, ``DataManifest.sheets`` ...), см. :func:`get_logger`.

Консольный вывод идёт в *stderr*: stdout занят JSON-результатами команд
``capture`` и ``watch``. По желанию добавляется файл с ротацией.
CLI перенастраивает логгер через :func:`init_logging` по опциям
``--log-level`` / ``--log-file`` / ``--log-format``.
"""
from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Final, Union

_DEFAULT_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOGGER_NAME: Final[str] = "DataManifest"

_LevelT = Union[int, str]

_LOG_FILE_MAX_BYTES: Final[int] = 2 * 1024 * 1024
_LOG_FILE_BACKUPS: Final[int] = 3


def _console_handler(fmt: str) -> logging.StreamHandler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(fmt))
    return handler


def _rotating_handler(file: Path | str, fmt: str) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        filename=str(file),
        maxBytes=_LOG_FILE_MAX_BYTES,
        backupCount=_LOG_FILE_BACKUPS,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter(fmt))
    return handler


def configure(
    *,
    level: _LevelT = "INFO",
    log_file: str | Path | None = None,
    log_format: str = _DEFAULT_FORMAT,
    replace_handlers: bool = True,
) -> logging.Logger:
    """Настроить логгер ``DataManifest``.

    ``level`` принимает число или имя уровня. Без ``log_file`` пишем только
    в консоль. ``replace_handlers=False`` добавляет обработчики к уже
    существующим.
    """
    lg = logging.getLogger(LOGGER_NAME)
    lg.setLevel(level)

    if replace_handlers:
        lg.handlers.clear()

    lg.addHandler(_console_handler(log_format))
    if log_file is not None:
        lg.addHandler(_rotating_handler(log_file, log_format))

    lg.propagate = False
    return lg


def init_logging(
    level: _LevelT = "INFO",
    log_file: str | Path | None = None,
    log_format: str = _DEFAULT_FORMAT,
) -> logging.Logger:
    return configure(level=level, log_file=log_file, log_format=log_format, replace_handlers=True)


def get_logger(suffix: str | None = None) -> logging.Logger:
    """``DataManifest`` or its child ``DataManifest.<suffix>``."""
    root = logging.getLogger(LOGGER_NAME)
    return root.getChild(suffix) if suffix else root


logger: logging.Logger = init_logging()

__all__ = ["logger", "configure", "init_logging", "get_logger", "LOGGER_NAME"]
