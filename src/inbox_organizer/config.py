"""
Fixed settings for Inbox Organizer.

The user's rules (base folder, watched folder, rules list) live in a YAML
file read by :mod:`inbox_organizer.loader`. This module centralizes the
settings that are not part of that file: default paths, log format and
timing.
"""

from pathlib import Path

# =============================================================================
# BASE PATHS
# =============================================================================

HOME = Path.home()

CONFIG_DIR = HOME / ".config/inbox-organizer"

# Rules file used when --config is not given
DEFAULT_CONFIG_FILE = CONFIG_DIR / "rules.yml"

# =============================================================================
# ACTION SETTINGS
# =============================================================================

# Prefix format for moves using the rename-date duplicate strategy
RENAME_DATE_FORMAT = "%Y-%m-%dT%H_%M_%S"

# =============================================================================
# WATCHER CONFIGURATION
# =============================================================================

# How often the event loop checks that the observer is still alive
EVENT_POLL_SECONDS = 1

# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================

LOG_FILE = HOME / "inbox_organizer.log"

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
