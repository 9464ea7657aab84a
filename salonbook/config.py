"""Centralized configuration for the salonbook package.

Provides paths, scheduling defaults, and storage settings
used across all modules.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Package root (salonbook/ directory)
PACKAGE_ROOT = Path(__file__).parent

# Working directory (where the user runs the CLI or server from)
WORKING_DIR = Path.cwd()

# Load environment variables from current working directory
load_dotenv(WORKING_DIR / ".env")


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes"}


# Directory paths (relative to working directory)
OUTPUTS_DIR = WORKING_DIR / "outputs"
DATABASE_PATH = Path(
    os.getenv("SALONBOOK_DATABASE_PATH", str(OUTPUTS_DIR / "salonbook.db"))
)

# Slot generation
SLOT_GRANULARITY_MINUTES = int(os.getenv("SALONBOOK_SLOT_GRANULARITY", "30"))
TRIM_OVERRUNNING_SLOTS = _env_bool("SALONBOOK_TRIM_OVERRUNNING_SLOTS")

# Fallback window used when a resource has no availability configured at all
DEFAULT_OPEN_TIME = os.getenv("SALONBOOK_DEFAULT_OPEN", "09:00")
DEFAULT_CLOSE_TIME = os.getenv("SALONBOOK_DEFAULT_CLOSE", "18:00")
_default_closed_days = "sunday"
DEFAULT_CLOSED_DAYS = tuple(
    day.strip().lower()
    for day in os.getenv("SALONBOOK_DEFAULT_CLOSED_DAYS", _default_closed_days).split(",")
    if day.strip()
)

# Store retry configuration (reads only; writes are never retried)
STORE_MAX_RETRIES = int(os.getenv("SALONBOOK_STORE_MAX_RETRIES", "3"))
STORE_RETRY_BASE_DELAY = float(os.getenv("SALONBOOK_STORE_RETRY_DELAY", "0.1"))  # seconds
STORE_RETRY_MAX_DELAY = float(os.getenv("SALONBOOK_STORE_RETRY_MAX_DELAY", "2.0"))  # seconds

# Seconds SQLite waits for a competing writer before giving up
DB_TIMEOUT = float(os.getenv("SALONBOOK_DB_TIMEOUT", "5.0"))

# Logging
LOG_LEVEL = os.getenv("SALONBOOK_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Client input constraints
MAX_CLIENT_NAME_LENGTH = int(os.getenv("SALONBOOK_MAX_CLIENT_NAME_LENGTH", "200"))
