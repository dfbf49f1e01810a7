"""Configuration module - loads settings from .env file."""

import logging
import os

from dotenv import load_dotenv

# Environment variables alone are enough; .env only fills in what is missing
load_dotenv()

logger = logging.getLogger(__name__)


def _parse_bool(value: str | None) -> bool:
    """Parse string to bool; default False for missing/invalid."""
    if not value:
        return False
    return value.strip().lower() in ("true", "1", "yes", "on")


def _get_int(key: str, default: int) -> int:
    """Read an integer env var; log a warning and fall back on garbage."""
    raw = os.getenv(key, str(default)).strip()
    try:
        return int(raw)
    except ValueError:
        logger.warning("Invalid integer for %s in .env: %r (using %d)", key, raw, default)
        return default


def _get_float(key: str, default: float) -> float:
    raw = os.getenv(key, str(default)).strip()
    try:
        return float(raw)
    except ValueError:
        logger.warning("Invalid number for %s in .env: %r (using %s)", key, raw, default)
        return default


# Deployment mode: "development" forces the simulated printer
APP_ENV: str = os.getenv("APP_ENV", "production").strip().lower()
MOCK_PRINTER: bool = _parse_bool(os.getenv("MOCK_PRINTER", "false")) or APP_ENV == "development"

# Serial destination
SERIAL_PORT: str = os.getenv("SERIAL_PORT", "/dev/ttyUSB0").strip()
BAUDRATE: int = _get_int("BAUDRATE", 9600)
SERIAL_BYTESIZE: int = _get_int("SERIAL_BYTESIZE", 8)
SERIAL_PARITY: str = os.getenv("SERIAL_PARITY", "N").strip().upper()
SERIAL_STOPBITS: int = _get_int("SERIAL_STOPBITS", 1)
SERIAL_TIMEOUT: float = _get_float("SERIAL_TIMEOUT", 1.0)
SERIAL_DSRDTR: bool = _parse_bool(os.getenv("SERIAL_DSRDTR", "false"))

# Upper bound for a single job's write + drain; an unresponsive device
# must not stall the job queue
PRINT_TIMEOUT_SECONDS: float = _get_float("PRINT_TIMEOUT_SECONDS", 5.0)

# ESC t <n> code page and the matching Python codec (3 == PC860 Portuguese on Epson-compatible devices)
CODEPAGE_ID: int = _get_int("CODEPAGE_ID", 3)
PRINTER_ENCODING: str = os.getenv("PRINTER_ENCODING", "cp860").strip()
# Characters per line in Font A on 58mm paper
LINE_WIDTH: int = _get_int("LINE_WIDTH", 32)

# Collaborators
DATABASE_PATH: str = os.getenv("DATABASE_PATH", "database.sqlite").strip()

# Scheduler
SCAN_INTERVAL_SECONDS: float = _get_float("SCAN_INTERVAL_SECONDS", 15 * 60)
REMINDER_INTERVAL_SECONDS: float = _get_float("REMINDER_INTERVAL_SECONDS", 5 * 60)
TRANSPORT_POLL_SECONDS: float = _get_float("TRANSPORT_POLL_SECONDS", 30.0)
DEDUPE_NOTIFICATIONS: bool = _parse_bool(os.getenv("DEDUPE_NOTIFICATIONS", "false"))
LIST_TITLE: str = os.getenv("LIST_TITLE", "UPCOMING TASKS").strip()

# Logging
LOG_DIR: str = os.getenv("LOG_DIR", "logs").strip()
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").strip().upper()
