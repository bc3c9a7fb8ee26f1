"""Loguru sink configuration."""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

from src.utils.config import LoggingConfig

LOG_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan> | <level>{message}</level>"
)


def setup_logging(config: LoggingConfig | None = None, *, verbose: bool = False) -> None:
    """Replace the default sink with stderr (and an optional rotating file)."""
    config = config or LoggingConfig()
    level = "DEBUG" if verbose else config.level.upper()

    logger.remove()
    logger.add(sys.stderr, format=LOG_FORMAT, level=level)

    if config.file:
        target = Path(config.file)
        target.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(target),
            level=level,
            rotation=f"{config.max_size_mb} MB",
            retention=config.backup_count,
        )
