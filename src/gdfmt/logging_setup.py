# =============================================================================
# gdfmt - GDScript Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""Logging setup and initialization for the GDScript formatter."""

from pathlib import Path
from typing import Optional

from .logging_jsonl import JsonlLogger


def setup_logger(log_path: Optional[Path]) -> Optional[JsonlLogger]:
    """
    Initialize the main event logger.

    Args:
        log_path: Path for the JSONL log file (None disables logging)

    Returns:
        The logger, with a fresh empty log file, or None
    """
    if log_path is None:
        return None

    logger = JsonlLogger(log_path)
    logger.start_fresh()
    return logger
