"""
Duration Parser
Converts human relative durations such as "1h 20m", "2d", "1.5 hours" into timedeltas
"""

import math
import re
from datetime import timedelta
from typing import Optional

UNIT_SECONDS = {
    "ms": 0.001, "msec": 0.001, "millisecond": 0.001, "milliseconds": 0.001,
    "s": 1, "sec": 1, "secs": 1, "second": 1, "seconds": 1,
    "m": 60, "min": 60, "mins": 60, "minute": 60, "minutes": 60,
    "h": 3600, "hr": 3600, "hrs": 3600, "hour": 3600, "hours": 3600,
    "d": 86400, "day": 86400, "days": 86400,
    "w": 604800, "wk": 604800, "week": 604800, "weeks": 604800,
}

TOKEN_PATTERN = re.compile(r"(\d+(?:\.\d+)?|\.\d+)\s*([a-z]+)", re.IGNORECASE)
SEPARATORS = re.compile(r"[\s,]|and", re.IGNORECASE)

# Largest span a timedelta can hold, in whole days
MAX_SECONDS = timedelta.max.days * 86400


def parse_duration(duration_str: str) -> Optional[timedelta]:
    """
    Parse a relative duration.

    Returns None if the text is empty, contains anything besides
    <number><unit> pairs, uses an unknown unit, adds up to zero, or is
    too large to represent.
    """
    if not duration_str or not duration_str.strip():
        return None

    total_seconds = 0.0
    position = 0
    matched = False

    for match in TOKEN_PATTERN.finditer(duration_str):
        # Only separators may sit between tokens
        if SEPARATORS.sub("", duration_str[position:match.start()]):
            return None

        unit = UNIT_SECONDS.get(match.group(2).lower())
        if unit is None:
            return None

        total_seconds += float(match.group(1)) * unit
        position = match.end()
        matched = True

    if not matched or SEPARATORS.sub("", duration_str[position:]):
        return None

    if not math.isfinite(total_seconds) or not 0 < total_seconds < MAX_SECONDS:
        return None

    return timedelta(seconds=total_seconds)
