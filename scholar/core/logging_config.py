"""
Logging setup for the Scholar AI backend.

Console output plus optional rotating files under ``logs/``. Every handler
carries a ``RedactingFilter`` so provider keys, SMTP credentials and one-time
codes never reach a log line.
"""

import logging
import re
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterable

LOG_DIR = Path(__file__).resolve().parents[2] / "logs"

MAX_LOG_SIZE = 10 * 1024 * 1024  # 10 MB
BACKUP_COUNT = 5

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(filename)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Requests slower than this are logged at WARNING even when they succeed
SLOW_REQUEST_MS = 5000

QUIET_LOGGERS = {
    "uvicorn": logging.INFO,
    "uvicorn.access": logging.WARNING,
    "pymongo": logging.WARNING,
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "anthropic": logging.WARNING,
}

OTP_PATTERN = re.compile(r"\b(otp|resetOtp)(['\"]?\s*[:=]\s*['\"]?)\d{6}\b", re.IGNORECASE)
MASK = "***"


class RedactingFilter(logging.Filter):
    """Masks known secret values and 6-digit OTP assignments in the final message."""

    def __init__(self, secrets: Iterable[str] = ()):
        super().__init__()
        # Longest first so a key that contains another is masked whole
        self.secrets = sorted({s for s in secrets if s and len(s) >= 8}, key=len, reverse=True)

    def redact(self, message: str) -> str:
        for secret in self.secrets:
            message = message.replace(secret, MASK)
        return OTP_PATTERN.sub(lambda m: f"{m.group(1)}{m.group(2)}{MASK}", message)

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = self.redact(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def _handler(handler: logging.Handler, level: int, redactor: RedactingFilter) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    handler.addFilter(redactor)
    return handler


def get_file_handler(filename: str, redactor: RedactingFilter, level: int = logging.DEBUG) -> RotatingFileHandler:
    LOG_DIR.mkdir(exist_ok=True)
    rotating = RotatingFileHandler(
        LOG_DIR / filename,
        maxBytes=MAX_LOG_SIZE,
        backupCount=BACKUP_COUNT,
        encoding="utf-8",
    )
    return _handler(rotating, level, redactor)


def get_console_handler(redactor: RedactingFilter, level: int = logging.INFO) -> logging.StreamHandler:
    return _handler(logging.StreamHandler(sys.stdout), level, redactor)


def resolve_level(log_level: str, environment: str) -> int:
    """Explicit level wins; otherwise WARNING in production, DEBUG elsewhere."""
    if not log_level:
        log_level = "WARNING" if environment == "production" else "DEBUG"
    return getattr(logging, log_level.upper(), logging.INFO)


def setup_logging(
    app_name: str = "scholar",
    log_level: str = "",
    environment: str = "development",
    enable_console: bool = True,
    enable_file: bool = True,
    secrets: Iterable[str] = (),
) -> logging.Logger:
    """
    Configure the root logger.

    Args:
        app_name: Prefix of the log files (``<app_name>.log``, ``<app_name>_error.log``)
        log_level: Console level name; empty picks one from ``environment``
        environment: development, production or test
        enable_console: Log to stdout
        enable_file: Log to rotating files in ``logs/``
        secrets: Values to mask wherever they appear in a message

    Returns:
        Configured root logger
    """
    redactor = RedactingFilter(secrets)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    if enable_console:
        root_logger.addHandler(get_console_handler(redactor, resolve_level(log_level, environment)))
    if enable_file:
        root_logger.addHandler(get_file_handler(f"{app_name}.log", redactor))
        root_logger.addHandler(get_file_handler(f"{app_name}_error.log", redactor, logging.ERROR))

    for name, level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(level)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class RequestLogger:
    """One line per HTTP request, with the storage backend that served it."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def log_request(
        self,
        method: str,
        path: str,
        status_code: int,
        duration_ms: float,
        client_ip: str | None = None,
        storage: str | None = None,
    ):
        parts = [f"{method} {path} -> {status_code} ({duration_ms:.2f}ms)"]
        if client_ip:
            parts.append(f"ip={client_ip}")
        if storage:
            parts.append(f"storage={storage}")
        line = " | ".join(parts)

        if status_code >= 500:
            self.logger.error(line)
        elif status_code >= 400 or duration_ms > SLOW_REQUEST_MS:
            self.logger.warning(line)
        else:
            self.logger.info(line)
