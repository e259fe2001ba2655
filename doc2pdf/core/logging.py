import json
import logging
import sys
from logging import Logger, LoggerAdapter
from typing import Optional

from .config import Settings, get_settings
from .rotation import DailyRotatingFileHandler

CORRELATION_FIELD = "mirthMessageID"

_LEVEL_COLORS = {
    logging.DEBUG: "\x1b[34m",
    logging.INFO: "\x1b[32m",
    logging.WARNING: "\x1b[33m",
    logging.ERROR: "\x1b[31m",
    logging.CRITICAL: "\x1b[1;31m",
}
_RESET = "\x1b[0m"


class ConsoleFormatter(logging.Formatter):
    """Human readable ``[timestamp] level: message`` lines, coloured by severity."""

    default_time_format = "%Y-%m-%d %H:%M:%S"
    default_msec_format = "%s.%03d"

    def __init__(self, colors: bool = True) -> None:
        super().__init__()
        self.colors = colors

    def _level(self, record: logging.LogRecord) -> str:
        level = record.levelname.lower()
        color = _LEVEL_COLORS.get(record.levelno) if self.colors else None
        return f"{color}{level}{_RESET}" if color else level

    def format(self, record: logging.LogRecord) -> str:
        line = f"[{self.formatTime(record)}] {self._level(record)}: {record.getMessage()}"
        message_id = getattr(record, CORRELATION_FIELD, None)
        if message_id:
            line = f"{line} (messageID={message_id})"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


class JsonFormatter(logging.Formatter):
    """One JSON object per record, tagged with the correlation id when present."""

    default_time_format = "%Y-%m-%d %H:%M:%S"
    default_msec_format = "%s.%03d"

    def format(self, record: logging.LogRecord) -> str:
        entry = {"level": record.levelname.lower(), "message": record.getMessage()}
        message_id = getattr(record, CORRELATION_FIELD, None)
        if message_id is not None:
            entry[CORRELATION_FIELD] = message_id
        if record.exc_info:
            entry["stack"] = self.formatException(record.exc_info)
        entry["timestamp"] = self.formatTime(record)
        return json.dumps(entry, ensure_ascii=False, default=str)


def configure_logging(settings: Optional[Settings] = None) -> Logger:
    """Set up the process-wide service logger (console + daily rotating file)."""
    settings = settings or get_settings()

    logger = logging.getLogger(settings.app_name)
    if logger.handlers:
        return logger

    logger.setLevel(settings.log_level.upper())

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(ConsoleFormatter(colors=settings.log_colors and console.stream.isatty()))

    file_handler = DailyRotatingFileHandler(
        settings.log_dir,
        max_bytes=settings.log_max_bytes,
        retention_days=settings.log_retention_days,
        compress=settings.log_compress,
    )
    file_handler.setFormatter(JsonFormatter())

    logger.addHandler(console)
    logger.addHandler(file_handler)
    logger.propagate = False

    return logger


def correlated(logger: Logger, message_id: Optional[str]) -> LoggerAdapter:
    """Bind a caller's messageID to every record logged through the adapter."""
    return LoggerAdapter(logger, {CORRELATION_FIELD: message_id})
