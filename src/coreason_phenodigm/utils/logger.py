# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_phenodigm

import os
import sys
from typing import Any

from loguru import logger as _logger

__all__ = ["logger", "configure_logging"]

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)


def configure_logging(level: str = "INFO") -> int:
    """
    Replaces all loguru sinks with a single stderr sink at the given level.
    Returns the id of the new handler.
    """
    _logger.remove()
    return _logger.add(sys.stderr, level=level.upper(), format=LOG_FORMAT)


# Libraries should log to stderr by default or let the app configure it.
configure_logging(os.getenv("PHENODIGM_LOG_LEVEL", "INFO"))

logger: Any = _logger
