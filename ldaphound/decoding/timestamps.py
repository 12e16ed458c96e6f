"""
Timestamp Decoding
==================

Directory timestamps come in three shapes:
- FILETIME integers (100ns ticks since 1601-01-01) for lastLogon, pwdLastSet
- Generalized time strings ("20230104101112.0Z") for whenCreated
- Negative 100ns spans for password-policy ages and PKI periods

Unparseable values decode to 0 so the record keeps decoding.
"""

import calendar
import logging
import struct
import time

logger = logging.getLogger(__name__)

# Seconds between 1601-01-01 and 1970-01-01
EPOCH_OFFSET = 11644473600
TICKS_PER_SECOND = 10_000_000

_SPAN_UNITS = [
    (31536000, "year"),
    (2592000, "month"),
    (604800, "week"),
    (86400, "day"),
    (3600, "hour"),
    (60, "minute"),
]


def filetime_to_epoch(value) -> int:
    """Convert a FILETIME value to Unix epoch seconds.

    Args:
        value: FILETIME as int or decimal string

    Returns:
        Epoch seconds, or 0 for never/unset/unparseable values
    """
    try:
        ticks = int(value)
    except (TypeError, ValueError):
        logger.debug("Invalid FILETIME value %r", value)
        return 0
    if ticks <= 0:
        return 0
    epoch = ticks // TICKS_PER_SECOND - EPOCH_OFFSET
    return epoch if epoch > 0 else 0


def generalized_time_to_epoch(value: str) -> int:
    """Convert a generalized time string to Unix epoch seconds (UTC)."""
    try:
        parsed = time.strptime(value.split(".")[0].rstrip("Z"), "%Y%m%d%H%M%S")
    except (AttributeError, ValueError):
        logger.debug("Invalid generalized time %r", value)
        return 0
    return calendar.timegm(parsed)


def binary_span(raw: bytes) -> int:
    """Read an 8-byte little-endian span (pKIExpirationPeriod and friends)."""
    if raw is None or len(raw) < 8:
        return 0
    return struct.unpack_from("<q", raw)[0]


def span_to_string(span) -> str:
    """Render a 100ns span as a human duration ("1 year", "6 weeks")."""
    try:
        seconds = abs(int(span)) // TICKS_PER_SECOND
    except (TypeError, ValueError):
        logger.debug("Invalid span value %r", span)
        return "less than a minute"

    for unit_seconds, unit in _SPAN_UNITS:
        if seconds >= unit_seconds and seconds % unit_seconds == 0:
            count = seconds // unit_seconds
            return f"1 {unit}" if count == 1 else f"{count} {unit}s"
    return "less than a minute"
