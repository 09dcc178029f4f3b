"""
Structured logging for payroll-audit

Every logger writes one line per record to stdout, either as a JSON object
(python-json-logger) or as plain text for local use. Level and format come
from LOG_LEVEL / LOG_FORMAT unless given explicitly.
"""
import logging
import os
import sys
import time

from pythonjsonlogger import jsonlogger

DEFAULT_LOGGER_NAME = "payroll-audit"
PACKAGE_PREFIX = "payroll_audit"

LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

JSON_FIELDS = "%(timestamp)s %(level)s %(logger)s %(module)s %(function)s %(message)s"
TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(module)s:%(funcName)s - %(message)s"


class AuditJsonFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter with a fixed envelope: timestamp, level, logger, call
    site, process and thread. Fields passed through ``extra`` are kept as
    top-level keys.
    """

    def add_fields(self, log_record: dict, record: logging.LogRecord, message_dict: dict) -> None:
        super().add_fields(log_record, record, message_dict)

        # Fields named in the format string arrive as None
        log_record["timestamp"] = log_record.get("timestamp") or self.formatTime(record, self.datefmt)
        log_record["level"] = str(log_record.get("level") or record.levelname).upper()
        log_record.update(
            logger=record.name,
            module=record.module,
            function=record.funcName,
            process_id=record.process,
            thread_id=record.thread,
        )


def _resolve_level(level: str | None) -> int:
    name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    return LOG_LEVELS.get(name, logging.INFO)


def _build_formatter(format_type: str | None) -> logging.Formatter:
    if (format_type or os.getenv("LOG_FORMAT", "json")) == "json":
        return AuditJsonFormatter(fmt=JSON_FIELDS, datefmt="%Y-%m-%dT%H:%M:%S")
    return logging.Formatter(fmt=TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")


def setup_logger(
    name: str = DEFAULT_LOGGER_NAME,
    level: str | None = None,
    format_type: str | None = None,
) -> logging.Logger:
    """
    Attach a single stdout handler to a logger, replacing any existing ones

    Args:
        name: Logger name
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL (case-insensitive);
            defaults to env var LOG_LEVEL, unknown names fall back to INFO
        format_type: "json" or "text", defaults to env var LOG_FORMAT

    Returns:
        The configured logger
    """
    log_level = _resolve_level(level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(_build_formatter(format_type))

    logger = logging.getLogger(name)
    logger.setLevel(log_level)
    logger.handlers = [handler]
    logger.propagate = False
    return logger


def get_logger(name: str = DEFAULT_LOGGER_NAME) -> logging.Logger:
    """Return the named logger, setting it up the first time it is requested"""
    logger = logging.getLogger(name)
    return logger if logger.handlers else setup_logger(name)


def configure_logging(
    level: str | None = None,
    format_type: str | None = None,
    prefix: str = PACKAGE_PREFIX,
) -> None:
    """
    Apply a level and format to every logger already created under a prefix

    Module loggers do not propagate, so each one is set up again.

    Args:
        level: Log level name
        format_type: "json" or "text"
        prefix: Logger name prefix, e.g. "payroll_audit"
    """
    for name in list(logging.Logger.manager.loggerDict):
        if name == prefix or name.startswith(prefix + "."):
            setup_logger(name, level=level, format_type=format_type)


_default_logger: logging.Logger | None = None


def get_default_logger() -> logging.Logger:
    global _default_logger
    if _default_logger is None:
        _default_logger = setup_logger(DEFAULT_LOGGER_NAME)
    return _default_logger


class log_operation:
    """
    Log the start and the outcome of a block, with its duration

    Usage:
        with log_operation("Installing schema", logger=logger, database="payroll"):
            ...

    Failures are logged at ERROR with the traceback and re-raised.
    """

    def __init__(self, operation_name: str, logger: logging.Logger | None = None, **extra_fields):
        self.operation_name = operation_name
        self.logger = logger or get_default_logger()
        self.fields = {"operation": operation_name, **extra_fields}
        self.started: float | None = None

    def __enter__(self):
        self.started = time.perf_counter()
        self.logger.info(f"Starting: {self.operation_name}", extra=self.fields)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        fields = {**self.fields, "duration_seconds": round(time.perf_counter() - self.started, 3)}

        if exc_type is None:
            self.logger.info(f"Completed: {self.operation_name}", extra={**fields, "status": "success"})
            return False

        fields.update(status="error", error_type=exc_type.__name__, error_message=str(exc_val))
        self.logger.error(f"Failed: {self.operation_name}", extra=fields, exc_info=True)
        return False
