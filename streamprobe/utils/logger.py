import logging
import json
import sys
import os
from datetime import datetime, timezone


def _utc(created: float) -> datetime:
    return datetime.fromtimestamp(created, tz=timezone.utc)


class JSONFormatter(logging.Formatter):
    """JSON lines (production)"""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": _utc(record.created).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[0]:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data, ensure_ascii=False)


class ColorFormatter(logging.Formatter):
    """Colored console output (development)"""

    COLORS = {
        "DEBUG": "\033[36m",     # cyan
        "INFO": "\033[32m",      # green
        "WARNING": "\033[33m",   # yellow
        "ERROR": "\033[31m",     # red
        "CRITICAL": "\033[35m",  # magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        # millisecond resolution, arrival timelines are read off these
        timestamp = _utc(record.created).strftime("%H:%M:%S.%f")[:-3]
        msg = record.getMessage()
        formatted = f"{color}{timestamp} [{record.levelname:<7}]{self.RESET} {record.name}: {msg}"
        if record.exc_info and record.exc_info[0]:
            formatted += "\n" + self.formatException(record.exc_info)
        return formatted


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger"""
    env = os.getenv("ENVIRONMENT", "development")
    log_level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    if env == "production":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(ColorFormatter())

    root = logging.getLogger()
    root.setLevel(log_level)
    root.handlers.clear()
    root.addHandler(handler)

    # quieter third-party loggers
    for name in ("urllib3", "httpx", "httpcore", "uvicorn.access"):
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Module logger; configure once with ``setup_logging`` at start-up"""
    return logging.getLogger(name)
