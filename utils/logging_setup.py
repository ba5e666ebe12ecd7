from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

# Third-party loggers that are chatty at INFO level
NOISY_LOGGERS = ("LiteLLM", "httpx", "httpcore", "openai")


class InterceptHandler(logging.Handler):
    """Redirect stdlib logging records to Loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find the first frame outside of logging to get correct caller info
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def setup_logging(
    app_name: str = "paperlens",
    log_dir: Optional[str] = "logs",
    level: Optional[str] = None,
    development: Optional[bool] = None,
) -> None:
    """Configure Loguru and intercept stdlib logging.

    Adds a console sink and, unless `log_dir` is None, a size-rotated file
    sink with JSON serialization. LiteLLM and httpx use the stdlib logging
    API, so an InterceptHandler forwards their records to Loguru.
    """
    if level is None:
        level = os.environ.get("LOG_LEVEL", "INFO").upper()

    if development is None:
        development = os.environ.get("ENV", "production").lower() == "development"

    # Remove existing Loguru handlers to avoid duplicate output
    logger.remove()

    console_format = (
        "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
        "<cyan>{name}</cyan> - {message}"
        if development
        else "{message}"
    )
    logger.add(sys.stdout, level=level, format=console_format, enqueue=True, catch=True)

    if log_dir is not None:
        logs_path = Path(log_dir)
        logs_path.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(logs_path / f"{app_name}_{{time}}.log"),
            rotation="10 MB",
            retention="14 days",
            level=level,
            format="{message}",
            serialize=True,
            enqueue=True,
            catch=True,
        )

    intercept_handler = InterceptHandler()
    logging.root.handlers = [intercept_handler]
    logging.root.setLevel(level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


__all__ = ["setup_logging", "InterceptHandler"]
