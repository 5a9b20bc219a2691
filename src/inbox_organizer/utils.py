"""
Shared utilities for Inbox Organizer.

This module provides common functionality used across the organizer:
- Logging setup
- Date-prefixed names for duplicate moves
- Safe resolution of archive entry paths
"""

import logging
import sys
from datetime import datetime
from pathlib import Path, PurePosixPath
from typing import Optional

from . import config

# =============================================================================
# LOGGING
# =============================================================================


def setup_logging(
    name: str = "inbox_organizer",
    verbose: bool = False,
    log_file: Optional[Path] = None,
) -> logging.Logger:
    """
    Set up logging with file and console handlers.

    Args:
        name: Logger name
        verbose: If True, set DEBUG level on the console; otherwise INFO
        log_file: Log file path (defaults to config.LOG_FILE)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)

    # Avoid duplicate handlers
    if logger.handlers:
        return logger

    formatter = logging.Formatter(config.LOG_FORMAT)

    # File handler
    log_path = log_file or config.LOG_FILE
    log_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(log_path)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)

    # Console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    console_handler.setFormatter(formatter)

    logger.addHandler(file_handler)
    logger.addHandler(console_handler)

    return logger


# =============================================================================
# FILE NAMES
# =============================================================================


def date_prefixed_name(original_name: str, now: Optional[datetime] = None) -> str:
    """
    Prefix a filename with the current local time.

    Format: YYYY-MM-DDTHH_MM_SS__OriginalName.ext

    Args:
        original_name: Original filename
        now: Time to use instead of the current local time

    Returns:
        Prefixed filename
    """
    timestamp = (now or datetime.now()).strftime(config.RENAME_DATE_FORMAT)
    return f"{timestamp}__{original_name}"


def enclosed_path(entry_name: str) -> Optional[Path]:
    """
    Resolve an archive entry name to a path that stays inside its extraction root.

    Absolute names, names with a drive or NUL byte, and names whose ".."
    segments climb above the root are rejected.

    Args:
        entry_name: Name stored in the archive (always "/" separated)

    Returns:
        Relative path to join onto the extraction root, or None if unsafe
    """
    if "\0" in entry_name:
        return None

    path = PurePosixPath(entry_name)
    if path.is_absolute():
        return None

    parts = []
    for index, part in enumerate(path.parts):
        if part == "..":
            if not parts:
                return None
            parts.pop()
        elif part != ".":
            if index == 0 and len(part) == 2 and part[1] == ":":
                # Windows drive, e.g. "C:"
                return None
            parts.append(part)

    return Path(*parts) if parts else Path(".")
