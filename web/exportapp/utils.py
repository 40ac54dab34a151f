"""
Utility helpers: directory setup and logging config.
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from flask import Flask

# Loggers configured by init_logging: the app's own and the export core's
_LOGGER_NAMES = ("exportapp", "trace_export")
_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def ensure_dirs(*paths: Path) -> None:
    """Ensure each directory exists."""
    for p in paths:
        p.mkdir(parents=True, exist_ok=True)


def init_logging(app: Flask) -> logging.Logger:
    """Configure a console logger + rotating file handler; returns the app logger."""
    log_level = getattr(logging, app.config["LOG_LEVEL"].upper(), logging.INFO)
    log_file = Path(app.config["LOG_FILE"])
    ensure_dirs(log_file.parent)

    for name in _LOGGER_NAMES:
        logger = logging.getLogger(name)
        logger.setLevel(log_level)
        logger.propagate = False  # avoid duplicate logs if root has handlers

        # App factories may run more than once per process (tests); start clean.
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()

        # Console
        ch = logging.StreamHandler()
        ch.setLevel(log_level)
        ch.setFormatter(logging.Formatter(_FORMAT))
        logger.addHandler(ch)

        # File (rotating)
        fh = RotatingFileHandler(log_file, maxBytes=1_000_000, backupCount=5)
        fh.setLevel(log_level)
        fh.setFormatter(logging.Formatter(_FORMAT))
        logger.addHandler(fh)

    return logging.getLogger("exportapp")
