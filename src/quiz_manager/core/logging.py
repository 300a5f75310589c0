"""Logging setup for quiz-manager runs.

Records go to a rotating JSON-lines file in the workspace ``logs/``
directory; ``--verbose`` adds a plain stderr handler. Context passed through
``extra=`` (``peer``, ``quiz_id``, ``verb`` ...) lands at the top level of
each JSON object so a session can be followed with ``grep`` or ``jq``.
"""

from __future__ import annotations

import json
import logging
import sys
import tempfile
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

__all__ = [
    "JsonLogFormatter",
    "configure_logger",
]

_FILE_MARKER = "_quiz_manager_file"
_CONSOLE_MARKER = "_quiz_manager_console"

_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {
    "message",
    "asctime",
    "taskName",
}


class JsonLogFormatter(logging.Formatter):
    """One JSON object per record: ``ts``, ``level``, ``logger``, ``msg``."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS and key not in entry:
                entry[key] = value
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        if record.stack_info:
            entry["stack"] = self.formatStack(record.stack_info)
        return json.dumps(entry, ensure_ascii=False, default=_to_json)


def configure_logger(
    name: str,
    *,
    log_dir: Path,
    level: str = "INFO",
    verbose: bool = False,
    max_bytes: int = 5 * 1024 * 1024,
    backup_count: int = 3,
    filename: str | None = None,
) -> tuple[logging.Logger, Path]:
    """Attach the quiz-manager handlers to ``name`` and return the log path.

    Calling it again for the same logger adjusts levels on the handlers it
    already has; the file keeps its first location.
    """

    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    file_handler = _find_handler(logger, _FILE_MARKER)
    if file_handler is None:
        file_handler = _open_file_handler(
            log_dir,
            filename or f"{name.rpartition('.')[2]}.log",
            max_bytes=max_bytes,
            backup_count=backup_count,
        )
        logger.addHandler(file_handler)
    file_handler.setLevel(logging.DEBUG if verbose else _level_number(level))

    console = _find_handler(logger, _CONSOLE_MARKER)
    if verbose and console is None:
        console = logging.StreamHandler(stream=sys.stderr)
        console.setFormatter(
            logging.Formatter("%(levelname)-7s %(name)s: %(message)s")
        )
        setattr(console, _CONSOLE_MARKER, True)
        logger.addHandler(console)
    elif not verbose and console is not None:
        logger.removeHandler(console)
        console.close()

    return logger, Path(file_handler.baseFilename)  # type: ignore[attr-defined]


def _find_handler(
    logger: logging.Logger, marker: str
) -> logging.Handler | None:
    for handler in logger.handlers:
        if getattr(handler, marker, False):
            return handler
    return None


def _open_file_handler(
    log_dir: Path, filename: str, *, max_bytes: int, backup_count: int
) -> RotatingFileHandler:
    # An unwritable workspace still gets a log, in the temp directory.
    try:
        handler = _rotating_handler(log_dir, filename, max_bytes, backup_count)
    except PermissionError:
        handler = _rotating_handler(
            _fallback_log_dir(), filename, max_bytes, backup_count
        )
    handler.setFormatter(JsonLogFormatter())
    setattr(handler, _FILE_MARKER, True)
    return handler


def _rotating_handler(
    directory: Path, filename: str, max_bytes: int, backup_count: int
) -> RotatingFileHandler:
    directory.mkdir(parents=True, exist_ok=True)
    return RotatingFileHandler(
        directory / filename,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )


def _level_number(level: str) -> int:
    return logging.getLevelNamesMapping().get(level.upper(), logging.INFO)


def _to_json(value: Any) -> Any:
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    return repr(value)


def _fallback_log_dir() -> Path:
    return Path(tempfile.gettempdir()) / "quiz-manager-logs"
