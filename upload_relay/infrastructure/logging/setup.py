"""
Logging setup built on loguru.

Session-scoped records carry a ``session_id`` extra (via ``logger.bind``)
which the sink formats render next to the message.
"""

import sys
from pathlib import Path
from typing import Any, Dict

from loguru import logger

from ..config.models import LoggingConfig

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<magenta>{extra[session_id]}</magenta> <level>{message}</level>"
)

FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
    "{name}:{function}:{line} - {extra[session_id]} {message}"
)


def _session_tag(record: Dict[str, Any]) -> None:
    session_id = record["extra"].get("session_id")
    record["extra"]["session_id"] = f"[{session_id}]" if session_id else "-"


def setup_logging(config: LoggingConfig) -> None:
    """
    Setup application logging with the given configuration.

    Args:
        config: Logging configuration
    """
    logger.remove()
    logger.configure(patcher=_session_tag)

    if config.console_enabled:
        logger.add(
            sys.stderr,
            format=CONSOLE_FORMAT,
            level=config.level,
            colorize=True,
            backtrace=True,
            diagnose=False,
        )

    if config.file_enabled:
        log_dir = Path(config.log_directory)
        log_dir.mkdir(parents=True, exist_ok=True)

        logger.add(
            log_dir / "relay.log",
            format=FILE_FORMAT,
            level=config.level,
            rotation=config.rotation,
            retention=config.retention,
            compression="zip",
            enqueue=True,
        )

        logger.add(
            log_dir / "error.log",
            format=FILE_FORMAT,
            level="ERROR",
            rotation=config.rotation,
            retention=config.retention,
            compression="zip",
            enqueue=True,
        )
