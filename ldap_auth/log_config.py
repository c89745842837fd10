"""Настройка логирования.

- Консольный handler всегда.
- Файловый handler (TimedRotatingFileHandler, ротация в полночь) — если задан log_file.
- Уровень: аргумент level, иначе LDAP_AUTH_LOG_LEVEL (по умолчанию INFO).
"""
from __future__ import annotations

import logging
import os
from logging.handlers import TimedRotatingFileHandler

from pydantic import ValidationError

_LOG_FORMAT = "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s"
_LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Отслеживаем установленные handlers, чтобы при реконфигурации удалять старые.
_file_handler: logging.Handler | None = None
_console_handler: logging.Handler | None = None


def _env_level() -> str:
    from .env_settings import get_env
    try:
        return get_env().log_level
    except ValidationError:
        return "INFO"


def _parse_level(level: str) -> tuple[str, int]:
    level_str = (level or "INFO").strip().upper()
    if level_str not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        level_str = "INFO"
    return level_str, getattr(logging, level_str, logging.INFO)


def setup_logging(
    level: str | None = None,
    log_file: str | None = None,
    retention_days: int = 30,
) -> None:
    """Настраивает корневой логгер."""
    global _file_handler, _console_handler

    if level is None:
        level = _env_level()
    level_str, log_level = _parse_level(level)
    retention_days = max(1, min(365, int(retention_days or 30)))

    root = logging.getLogger()

    # Удаляем предыдущие наши handlers (при реконфигурации)
    if _file_handler is not None:
        if _file_handler in root.handlers:
            root.removeHandler(_file_handler)
        _file_handler.close()
        _file_handler = None
    if _console_handler is not None and _console_handler in root.handlers:
        root.removeHandler(_console_handler)

    formatter = logging.Formatter(_LOG_FORMAT, datefmt=_LOG_DATE_FORMAT)

    ch = logging.StreamHandler()
    ch.setLevel(log_level)
    ch.setFormatter(formatter)
    _console_handler = ch
    root.addHandler(ch)

    if log_file:
        log_dir = os.path.dirname(os.path.abspath(log_file))
        os.makedirs(log_dir, exist_ok=True)
        fh = TimedRotatingFileHandler(
            log_file,
            when="midnight",
            interval=1,
            backupCount=retention_days,
            encoding="utf-8",
            utc=True,
        )
        fh.suffix = "%Y-%m-%d"
        fh.setLevel(log_level)
        fh.setFormatter(formatter)
        _file_handler = fh
        root.addHandler(fh)

    root.setLevel(log_level)

    # ldap3 слишком многословен на DEBUG
    logging.getLogger("ldap3").setLevel(max(log_level, logging.WARNING))

    logging.getLogger("ldap_auth").info(
        "Логирование настроено: уровень=%s, файл=%s", level_str, log_file or "-",
    )
