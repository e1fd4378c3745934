"""
Environment-driven settings for the chat queue host.
"""
import logging
import os
from datetime import datetime
from typing import Optional, Set

from dotenv import load_dotenv

load_dotenv()

SERVICE_NAME = os.getenv("SERVICE_NAME", "chat-queue-engine")
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
OTEL_ENDPOINT = os.getenv("OTEL_ENDPOINT", "http://localhost:4318")
OTEL_ENABLED = os.getenv("OTEL_ENABLED", "false").lower() in ("1", "true", "yes")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Sweep cadence
ASSIGN_INTERVAL_SECONDS = float(os.getenv("ASSIGN_INTERVAL_SECONDS", "5"))
MONITOR_INTERVAL_SECONDS = float(os.getenv("MONITOR_INTERVAL_SECONDS", "1"))
SWEEPS_ENABLED = os.getenv("SWEEPS_ENABLED", "true").lower() in ("1", "true", "yes")

# Office hours window, local time, end exclusive
OFFICE_HOURS_START = int(os.getenv("OFFICE_HOURS_START", "9"))
OFFICE_HOURS_END = int(os.getenv("OFFICE_HOURS_END", "17"))


def _parse_days(raw: str) -> Set[int]:
    """Parse a comma separated list of ISO weekday numbers (Mon=1)."""
    return {int(part) for part in raw.split(",") if part.strip()}


OFFICE_DAYS = _parse_days(os.getenv("OFFICE_DAYS", "1,2,3,4,5"))


def is_office_hours(now: Optional[datetime] = None) -> bool:
    """Whether overflow staffing is on duty at `now` (defaults to local time)."""
    now = now or datetime.now()
    if now.isoweekday() not in OFFICE_DAYS:
        return False
    return OFFICE_HOURS_START <= now.hour < OFFICE_HOURS_END


def configure_logging(level: str = LOG_LEVEL) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
