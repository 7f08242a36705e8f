"""
Timezone utility functions for the ledger.

Datetimes are stored as naive UTC. Client supplied values without an offset
are read in the display timezone (LEDGER_TIMEZONE, default UTC).
"""

import os
from datetime import datetime, timezone
from typing import Optional, Union

import pytz

DATE_ONLY_FORMATS = ['%Y-%m-%d', '%d/%m/%Y', '%d-%m-%Y']
FALLBACK_FORMATS = [
    '%Y-%m-%d %H:%M:%S',
    '%Y-%m-%d %H:%M',
    '%d/%m/%Y %H:%M',
    '%d-%m-%Y %H:%M',
    '%Y/%m/%d %H:%M',
] + DATE_ONLY_FORMATS


def get_display_timezone() -> str:
    """Timezone used to interpret naive client datetimes."""
    return os.environ.get('LEDGER_TIMEZONE', 'UTC')


def utc_now() -> datetime:
    """Current time as a naive UTC datetime, the storage representation."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_storage(dt: datetime) -> datetime:
    """Convert any datetime to naive UTC for storage and comparison.

    Naive values are read in the display timezone. Wall times that are
    ambiguous or skipped at a DST change resolve to standard time.
    """
    if dt.tzinfo is None:
        display_tz = pytz.timezone(get_display_timezone())
        dt = display_tz.localize(dt, is_dst=False)
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def parse_datetime_string(value: Union[str, datetime, None]) -> Optional[datetime]:
    """
    Parse a client supplied datetime into naive UTC.

    Accepts ISO 8601 (with or without 'Z' / offset) and a handful of common
    day-first formats. Returns None for empty input. Naive datetime objects
    are taken to be naive UTC already and returned unchanged.

    Raises:
        ValueError: the string matches no known format.
    """
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        # Naive datetime objects are already in storage form
        if value.tzinfo is None:
            return value
        return to_storage(value)
    if not isinstance(value, str):
        raise ValueError(f"Unable to parse datetime value: {value!r}")

    dt_string = value.strip()
    try:
        return to_storage(datetime.fromisoformat(dt_string.replace('Z', '+00:00')))
    except ValueError:
        pass

    for fmt in FALLBACK_FORMATS:
        try:
            dt = datetime.strptime(dt_string, fmt)
        except ValueError:
            continue
        return to_storage(dt)

    raise ValueError(f"Unable to parse datetime string: {value}")


def format_datetime_for_api(stored_dt: Optional[datetime]) -> Optional[str]:
    """Format a stored (naive UTC) datetime as ISO 8601 with a 'Z' suffix."""
    if stored_dt is None:
        return None
    if stored_dt.tzinfo is None:
        stored_dt = stored_dt.replace(tzinfo=timezone.utc)
    else:
        stored_dt = stored_dt.astimezone(timezone.utc)
    return stored_dt.isoformat().replace('+00:00', 'Z')
