"""
Logging setup: stdout plus a daily rotating file.
"""

from __future__ import annotations

import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

LOG_DIR = Path("logs")
LOG_FILE = "shishabot.log"

STDOUT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s [%(filename)s:%(lineno)d] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class _PyNaClFilter(logging.Filter):
    """Voice support isn't needed, so the PyNaCl warning is noise."""

    def filter(self, record):
        return "PyNaCl is not installed" not in record.getMessage()


def configure_logging(level: str = "INFO", log_dir: Path = LOG_DIR) -> None:
    """
    Route `shishabot.*` to stdout at `level` and to the log file at DEBUG.

    Dependencies (discord, aiohttp) only reach stdout at INFO and above.
    """
    stdout_level = logging.getLevelName(level.upper())
    if not isinstance(stdout_level, int):
        stdout_level = logging.INFO

    logging.basicConfig(
        level=logging.INFO,
        format=STDOUT_FORMAT,
        datefmt=DATE_FORMAT,
        force=True,
    )

    app_logger = logging.getLogger("shishabot")
    app_logger.setLevel(logging.DEBUG)
    app_logger.propagate = False
    app_logger.handlers.clear()

    app_stdout = logging.StreamHandler()
    app_stdout.setLevel(stdout_level)
    app_stdout.setFormatter(logging.Formatter(STDOUT_FORMAT, DATE_FORMAT))
    app_logger.addHandler(app_stdout)

    log_dir.mkdir(parents=True, exist_ok=True)
    file_handler = TimedRotatingFileHandler(
        log_dir / LOG_FILE, when="midnight", backupCount=14, encoding="utf-8"
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT, DATE_FORMAT))
    app_logger.addHandler(file_handler)

    discord_logger = logging.getLogger("discord")
    discord_logger.handlers.clear()
    discord_logger.setLevel(logging.INFO)
    logging.getLogger("discord.client").addFilter(_PyNaClFilter())
