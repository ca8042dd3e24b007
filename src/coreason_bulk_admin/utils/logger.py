# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_bulk_admin

import sys
from pathlib import Path
from typing import Union

from loguru import logger

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)

# Default sink until configure_logging() is called by the CLI
logger.remove()
logger.add(sys.stderr, level="INFO", format=LOG_FORMAT)


def configure_logging(level: str = "INFO", log_file: Union[str, Path, None] = None) -> None:
    """
    Re-initializes the loguru sinks.

    Args:
        level: Minimum level for the stderr sink.
        log_file: Optional path of a rotating log file.
    """
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format=LOG_FORMAT)
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(log_file),
            level="DEBUG",
            rotation="10 MB",
            retention=5,
            encoding="utf-8",
            enqueue=False,
        )


__all__ = ["logger", "configure_logging"]
