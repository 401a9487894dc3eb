"""Logging configuration helpers for the exam runner."""

import logging
from pathlib import Path
from typing import Optional


def configure_logging(level: str = "INFO", log_file: Optional[Path] = None) -> logging.Logger:
    """Configure logging for the application and return the package logger."""
    handlers = [logging.StreamHandler()]
    if log_file is not None:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers = [logging.FileHandler(log_file, encoding='utf-8')]

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        handlers=handlers,
    )
    return logging.getLogger("proctor")
