import logging
from logging import FileHandler, Formatter, Logger, StreamHandler
import os
from typing import Any

from src.main.config import config

LOG_DIR = os.getenv(
    "LOG_DIR", os.path.join(os.path.dirname(__file__), "..", "logs")
)
LOG_FILE = os.path.join(LOG_DIR, "debug.log")

os.makedirs(LOG_DIR, exist_ok=True)

LOGGING_FORMAT = "%(asctime)s [%(levelname)s]|[%(process)d]| %(name)s: %(message)s"
PLAIN_LOGGING_FORMAT = "%(asctime)s [%(process)d]| %(message)s"
TIME_LOGGING_FORMAT = "%Y-%m-%d %H:%M:%S"

log_level = getattr(logging, config.app.LOG_LEVEL.upper(), logging.INFO)
file_log_level = getattr(logging, config.app.LOG_LEVEL_FILE.upper(), logging.WARNING)


def _build_handler(handler: logging.Handler, level: int, fmt: str) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(Formatter(fmt, TIME_LOGGING_FORMAT))
    return handler


def get_file_handler() -> FileHandler:
    file_handler = FileHandler(LOG_FILE, "a", "utf-8")
    _build_handler(file_handler, file_log_level, LOGGING_FORMAT)
    return file_handler


def get_stream_handler(*, plain_format: bool = False) -> StreamHandler:  # type: ignore
    stream_handler: StreamHandler = StreamHandler()  # type: ignore
    fmt = PLAIN_LOGGING_FORMAT if plain_format else LOGGING_FORMAT
    _build_handler(stream_handler, log_level, fmt)
    return stream_handler


def get_logger(name: Any, *, plain_format: bool = False) -> Logger:
    """
    Return a configured logger. Handlers are attached once per name.

    Plain-format loggers (request timing, error responses) only write to the
    stream; regular loggers also write to ``logs/debug.log``.
    """
    logger = logging.getLogger(name)

    if logger.handlers:
        return logger

    logger.setLevel(log_level)
    logger.addHandler(get_stream_handler(plain_format=plain_format))
    if not plain_format:
        logger.addHandler(get_file_handler())

    logger.propagate = False
    return logger
