# conteo/services/tally/clock.py
from __future__ import annotations

import logging
import os
from datetime import date, datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)


def today_local() -> date:
    """Today's calendar day in the configured local timezone.

    Uses the ``TZ`` env var when it names a valid zone, else the host's local
    clock. The tally's day partition is compared against this value.
    """
    tz_name = os.getenv("TZ")
    if tz_name:
        try:
            return datetime.now(ZoneInfo(tz_name)).date()
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("Unknown TZ %r, falling back to host local time", tz_name)
    return datetime.now().date()
