"""
Logging configuration for the BLANG editor.

Services, routers and the server log through loguru. The binary parsers
use the standard logging module so they stay usable without it; their
records go to stderr and to a parser log beside the session log.
"""
import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from loguru import logger

from utils.paths import get_writable_dir

SESSION_ID = datetime.now().strftime("%Y%m%d_%H%M%S")

CONSOLE_FORMAT = "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:{line} - <level>{message}</level>"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{line} - {message}"
PARSER_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d - %(message)s"

# Standard logging packages that belong to the editor
PARSER_LOGGERS = ("parsers",)


def session_log_path(log_dir: Path) -> Path:
    return log_dir / f"blang_{SESSION_ID}.log"


def _configure_parser_logging(level: str, log_file: Optional[Path]):
    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file is not None:
        handlers.append(logging.FileHandler(log_file.with_suffix(".parsers.log"), encoding="utf-8"))

    for name in PARSER_LOGGERS:
        parser_logger = logging.getLogger(name)
        parser_logger.setLevel(getattr(logging, level, logging.INFO))
        for handler in list(parser_logger.handlers):
            parser_logger.removeHandler(handler)
            handler.close()
        for handler in handlers:
            handler.setFormatter(logging.Formatter(PARSER_FORMAT))
            parser_logger.addHandler(handler)
        parser_logger.propagate = False


def configure_logging(log_dir: Optional[Path] = None):
    """
    Configure loguru sinks and the parser loggers.

    LOG_LEVEL sets the console level (default INFO). LOG_FILTER limits the
    console to modules whose name contains it, at DEBUG. LOG_TO_FILE=false
    keeps everything on stderr.
    """
    logger.remove()

    log_filter = os.getenv("LOG_FILTER", "")
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    to_file = os.getenv("LOG_TO_FILE", "true").lower() != "false"

    if log_filter:
        logger.add(
            sys.stderr,
            level="DEBUG",
            format=CONSOLE_FORMAT,
            filter=lambda record: log_filter in record["name"]
        )
    else:
        logger.add(sys.stderr, level=log_level, format=CONSOLE_FORMAT)

    log_file = None
    if to_file:
        log_dir = log_dir or get_writable_dir("logs")
        log_file = session_log_path(log_dir)

        logger.add(
            log_file,
            rotation="5 MB",
            retention=5,
            level="DEBUG",
            format=FILE_FORMAT
        )

        logger.add(
            log_dir / "error.log",
            rotation="10 MB",
            retention="14 days",
            level="ERROR",
            format=FILE_FORMAT
        )

    _configure_parser_logging(log_level, log_file)
    return logger


configure_logging()
