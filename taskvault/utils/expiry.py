import re
from datetime import datetime, timedelta, timezone
from typing import Optional

from dateutil.relativedelta import relativedelta


EXPIRY_PATTERN = re.compile(r'^(\d+)([HDMY])$')


def parse_expiry(expiry: str, now: Optional[datetime] = None) -> datetime:
    """
    Parse expiry string (1H, 1D, 1M, 1Y) into an absolute datetime.

    Args:
        expiry: Expiry format string (e.g., "24H", "7D", "6M", "2Y")
        now: Reference time. Defaults to the current UTC time.

    Returns:
        datetime: Timezone-aware expiry datetime in UTC.

    Raises:
        ValueError: If expiry format is invalid.
    """
    if not expiry:
        raise ValueError("Expiry string cannot be empty")

    match = EXPIRY_PATTERN.match(expiry.strip().upper())
    if not match:
        raise ValueError("Invalid expiry format. Use: 1H, 2D, 3M, 4Y")

    amount = int(match.group(1))
    if amount <= 0:
        raise ValueError("Expiry amount must be positive")

    unit = match.group(2)
    now = now or datetime.now(timezone.utc)

    if unit == 'H':
        return now + timedelta(hours=amount)
    elif unit == 'D':
        return now + timedelta(days=amount)
    elif unit == 'M':
        return now + relativedelta(months=amount)
    else:
        return now + relativedelta(years=amount)


def expiry_to_timedelta(expiry: str, now: Optional[datetime] = None) -> timedelta:
    """
    Convert an expiry string into the duration it spans from ``now``.

    Months and years are calendar-aware, so the result depends on the
    reference time.
    """
    now = now or datetime.now(timezone.utc)
    return parse_expiry(expiry, now) - now


def validate_expiry_format(expiry: str) -> bool:
    """
    Validate expiry format without converting.

    Args:
        expiry: Expiry format string.

    Returns:
        bool: True if format is valid.
    """
    try:
        parse_expiry(expiry)
        return True
    except ValueError:
        return False


def get_expiry_description(expiry: str) -> str:
    """
    Get human-readable description of expiry.

    Args:
        expiry: Expiry format string.

    Returns:
        str: Human-readable description.

    Raises:
        ValueError: If expiry format is invalid.
    """
    match = EXPIRY_PATTERN.match(expiry.strip().upper())
    if not match:
        raise ValueError("Invalid expiry format")

    amount = int(match.group(1))
    unit = match.group(2)

    unit_names = {
        'H': 'hour' if amount == 1 else 'hours',
        'D': 'day' if amount == 1 else 'days',
        'M': 'month' if amount == 1 else 'months',
        'Y': 'year' if amount == 1 else 'years'
    }

    return f"{amount} {unit_names[unit]}"
