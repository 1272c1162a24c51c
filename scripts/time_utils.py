#!/usr/bin/env python3
"""
TIME UTILITIES
Normalizes the time notations found on flyers and typed by operators into
canonical 24-hour HH:MM strings.
"""

import re
import logging
from datetime import date, datetime
from typing import Optional

import pytz

from scripts.env_config import get_app_config

logger = logging.getLogger(__name__)

# "2p", "9a", "2:30p", "2:30 PM", "1P"
MERIDIEM_RE = re.compile(r'^(\d{1,2})(?::(\d{2}))?\s*([ap])\.?m?\.?$', re.IGNORECASE)
TWENTY_FOUR_HOUR_RE = re.compile(r'^(\d{1,2}):(\d{2})$')
BARE_HOUR_RE = re.compile(r'^(\d{1,2})$')
CANONICAL_RE = re.compile(r'^([01]\d|2[0-3]):([0-5]\d)$')


def _fmt(hours: int, minutes: int) -> str:
    return f"{hours:02d}:{minutes:02d}"


def is_canonical_time(value) -> bool:
    """True for zero-padded 24-hour HH:MM strings"""
    if not isinstance(value, str):
        return False
    return bool(CANONICAL_RE.match(value))


def _companion_hour(companion_time: Optional[str]) -> Optional[int]:
    if not companion_time or not is_canonical_time(companion_time.strip()):
        return None
    return int(companion_time.strip().split(':')[0])


def normalize_time(raw: Optional[str], is_end_time: bool = False,
                   companion_time: Optional[str] = None) -> Optional[str]:
    """
    Normalize a human time expression to HH:MM (24-hour).

    Rules are tried in order and the first match wins:

    1. Meridiem suffix ("2p", "9a", "2:30p", "2:30 PM", "1P"): AM turns 12
       into 0, PM adds 12 to hours other than 12.
    2. 24-hour "H:MM": passed through, except end times with an hour in
       1-11 which are read as PM.
    3. Bare hour 1-12 ("7"): start times stay as written. End times are
       compared against the companion (start) time: a morning start with a
       larger hour means the end is PM, a morning start with a smaller or
       equal hour keeps the end in the morning, an afternoon start forces
       PM. Without a companion a bare end hour is read as PM.

    Anything else (including out-of-range hours or minutes) is returned
    unchanged so the operator can correct it. Blank input gives None.
    """
    if raw is None:
        return None

    value = str(raw).strip()
    if not value:
        return None

    match = MERIDIEM_RE.match(value)
    if match:
        hours = int(match.group(1))
        minutes = int(match.group(2) or '0')
        if 1 <= hours <= 12 and minutes <= 59:
            is_pm = match.group(3).lower() == 'p'
            if is_pm and hours != 12:
                hours += 12
            elif not is_pm and hours == 12:
                hours = 0
            return _fmt(hours, minutes)
        return value

    match = TWENTY_FOUR_HOUR_RE.match(value)
    if match:
        hours = int(match.group(1))
        minutes = int(match.group(2))
        if hours > 23 or minutes > 59:
            return value
        if is_end_time and 1 <= hours <= 11:
            hours += 12
        return _fmt(hours, minutes)

    match = BARE_HOUR_RE.match(value)
    if match:
        hours = int(match.group(1))
        if not 1 <= hours <= 12:
            return value
        if hours == 12 or not is_end_time:
            return _fmt(hours, 0)

        start_hour = _companion_hour(companion_time)
        if start_hour is None or start_hour >= 12:
            return _fmt(hours + 12, 0)
        if hours < start_hour:
            return _fmt(hours + 12, 0)
        return _fmt(hours, 0)

    logger.debug(f"Could not normalize time expression {value!r}")
    return value


def convert_meridiem_time(time_str: str) -> str:
    """
    Direct 12/24-hour conversion used on flyer time ranges.

    "7:30 PM" -> "19:30", "12:00am" -> "00:00", "14:00" -> "14:00".
    """
    clean = time_str.strip()
    is_pm = bool(re.search(r'pm', clean, re.IGNORECASE))
    is_am = bool(re.search(r'am', clean, re.IGNORECASE))

    digits = re.sub(r'[ap]m', '', clean, flags=re.IGNORECASE).strip()
    hours_text, minutes_text = digits.split(':')
    hours, minutes = int(hours_text), int(minutes_text)

    if is_pm and hours != 12:
        hours += 12
    if is_am and hours == 12:
        hours = 0

    return _fmt(hours, minutes)


def format_time_to_ampm(time_str):
    """Convert "14:30" style times to "2:30 PM" for display"""
    if not time_str:
        return '—'

    try:
        parsed = datetime.strptime(str(time_str).strip()[:5], '%H:%M')
    except ValueError:
        return time_str

    hour = parsed.hour % 12 or 12
    period = 'PM' if parsed.hour >= 12 else 'AM'
    return f"{hour}:{parsed.minute:02d} {period}"


def today_local(tz_name: Optional[str] = None) -> date:
    """Today's date in the application timezone"""
    tz_name = tz_name or get_app_config()['timezone']
    try:
        tz = pytz.timezone(tz_name)
    except pytz.UnknownTimeZoneError:
        logger.warning(f"Unknown timezone {tz_name!r}, falling back to UTC")
        tz = pytz.utc
    return datetime.now(tz).date()
