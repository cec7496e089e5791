"""Diagnostic log configuration.

The terminal often starts without a controlling TTY (launched from a file
manager or a desktop entry), so the log file is the primary sink.
"""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

START_BANNER = "COLOSSUS Terminal start"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <7} | {message}"


def setup_logger(log_path: Path | str | None, *, truncate: bool = True, console_level: str = "WARNING"):
    """Configure loguru with a per-run log file and a quiet stderr sink."""
    logger.remove()

    if sys.stderr is not None:
        logger.add(sys.stderr, level=console_level, format="{level}: {message}")

    if log_path:
        path = Path(log_path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            logger.add(
                str(path),
                format=FILE_FORMAT,
                mode="w" if truncate else "a",
                encoding="utf-8",
                level="DEBUG",
            )
        except OSError as exc:
            logger.warning("Log file {} unavailable: {}", path, exc)

    logger.info(START_BANNER)
    return logger
