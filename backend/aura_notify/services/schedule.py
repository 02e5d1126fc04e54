"""
Time bucketing: is "now" a user's delivery moment?

The scheduler ticks every TICK_MINUTES (UTC-anchored), so it never runs at the exact minute a
user picked. Both the preferred time and the user's local "now" are snapped to the same
15-minute grid (:00, :15, :30, :45) and compared. The hour is not carried when a minute rounds
up to 60: "09:53" snaps to 09:00, and so does a local clock reading 09:53.
"""
import logging
import re
from datetime import datetime, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from aura_notify.core.constants import DEFAULT_NOTIFICATION_TIME, TICK_MINUTES

logger = logging.getLogger(__name__)

_TIME_RE = re.compile(r"^\s*(\d{1,2})(?::(\d{1,2}))?\s*$")
_DEFAULT_HOUR, _DEFAULT_MINUTE = (int(p) for p in DEFAULT_NOTIFICATION_TIME.split(":"))


def parse_preferred_time(value: str | None) -> tuple[int, int]:
    """
    Parse "HH:MM" (or "H:MM", or a bare hour) into (hour, minute).
    Hour is clamped to 0..23 and minute to 0..59. Malformed input returns the default 09:00.
    """
    if not value:
        return _DEFAULT_HOUR, _DEFAULT_MINUTE
    m = _TIME_RE.match(value)
    if not m:
        return _DEFAULT_HOUR, _DEFAULT_MINUTE
    hour = min(23, max(0, int(m.group(1))))
    minute = min(59, max(0, int(m.group(2) or 0)))
    return hour, minute


def round_minute(minute: int) -> int:
    """Nearest multiple of TICK_MINUTES (half up), modulo 60: 7 -> 0, 8 -> 15, 53 -> 0."""
    half = TICK_MINUTES // 2
    return (minute + half) // TICK_MINUTES * TICK_MINUTES % 60


def resolve_timezone(name: str | None) -> tzinfo:
    """ZoneInfo for an IANA name; UTC when absent or unknown."""
    if not name or not name.strip():
        return timezone.utc
    try:
        return ZoneInfo(name.strip())
    except (ZoneInfoNotFoundError, ValueError):
        logger.debug("Unknown timezone %r; using UTC", name)
        return timezone.utc


def is_delivery_moment(preferred_time: str | None, tz: tzinfo, now: datetime) -> bool:
    """True when now (aware), seen in tz and snapped to the grid, matches the snapped preferred time."""
    target_hour, target_minute = parse_preferred_time(preferred_time)
    local = now.astimezone(tz)
    return local.hour == target_hour and round_minute(local.minute) == round_minute(target_minute)
