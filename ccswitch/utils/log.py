"""Logging for cc-switch.

Console output goes to stderr at ``CCSWITCH_LOG_LEVEL`` (default WARNING).
``enable_file_logging`` adds a daily debug log under ``<config_dir>/logs``.
Structured context passed through ``extra=`` is appended to file lines as JSON.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional


LOG_LEVEL_ENV = "CCSWITCH_LOG_LEVEL"

_LOG_RECORD_FIELDS = set(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


class StructuredFormatter(logging.Formatter):
    """UTC ISO timestamps plus ``extra`` fields as a JSON suffix."""

    def formatTime(self, record: logging.LogRecord, datefmt: Optional[str] = None) -> str:
        timestamp = datetime.fromtimestamp(record.created, tz=timezone.utc)
        return timestamp.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        extras = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _LOG_RECORD_FIELDS and not key.startswith("_")
        }
        if not extras:
            return message
        return f"{message} | {json.dumps(extras, sort_keys=True, default=str)}"


class SwitchLogger:
    """stderr logger with an optional debug file handler."""

    def __init__(self, name: str = "ccswitch"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.DEBUG)
        self.logger.propagate = False

        level_name = os.getenv(LOG_LEVEL_ENV, "WARNING").upper()
        self._console_handler = logging.StreamHandler(sys.stderr)
        self._console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
        self._console_handler.setLevel(getattr(logging, level_name, logging.WARNING))
        self.logger.addHandler(self._console_handler)

        self._file_handler: Optional[logging.FileHandler] = None
        self._file_handler_path: Optional[Path] = None

    def set_console_level(self, level: int) -> None:
        """Change the verbosity of stderr output."""
        self._console_handler.setLevel(level)

    def attach_file_handler(self, log_file: Path) -> Path:
        """Log everything at DEBUG to ``log_file``, replacing any earlier file."""
        if self._file_handler is not None:
            if self._file_handler_path == log_file:
                return log_file
            self.logger.removeHandler(self._file_handler)
            self._file_handler.close()

        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(StructuredFormatter("%(asctime)s [%(levelname)s] %(message)s"))
        self.logger.addHandler(file_handler)
        self._file_handler = file_handler
        self._file_handler_path = log_file
        return log_file

    def debug(self, message: str, *args: Any, **kwargs: Any) -> None:
        self.logger.debug(message, *args, **kwargs)

    def info(self, message: str, *args: Any, **kwargs: Any) -> None:
        self.logger.info(message, *args, **kwargs)

    def warning(self, message: str, *args: Any, **kwargs: Any) -> None:
        self.logger.warning(message, *args, **kwargs)

    def error(self, message: str, *args: Any, **kwargs: Any) -> None:
        self.logger.error(message, *args, **kwargs)


_logger: Optional[SwitchLogger] = None


def get_logger() -> SwitchLogger:
    """Process-wide ``ccswitch`` logger."""
    global _logger
    if _logger is None:
        _logger = SwitchLogger()
    return _logger


def enable_file_logging(config_dir: Path) -> Path:
    """Write a daily log file under ``<config_dir>/logs``."""
    logger = get_logger()
    log_file = config_dir / "logs" / f"ccswitch_{datetime.now().strftime('%Y%m%d')}.log"
    logger.attach_file_handler(log_file)
    logger.debug("[logging] File logging enabled", extra={"path": str(log_file)})
    return log_file
