import re
from datetime import date, datetime, timezone
from typing import Optional

DAYS_OF_WEEK = ('mon', 'tue', 'wed', 'thu', 'fri', 'sat', 'sun')

# 15:00 이전 시작은 중식, 15:00 이후 종료는 석식
LUNCH_CUTOFF_HOUR = 15

_TIME_RANGE_RE = re.compile(r'^(\d{2}):(\d{2})~(\d{2}):(\d{2})$')


def get_day_of_week(dt: date) -> str:
    """Return the weekday tag ('mon' .. 'sun') for a date."""
    return DAYS_OF_WEEK[dt.weekday()]


def sday_to_date(sday: int) -> date:
    """
    Convert an upstream ``sday`` value (UTC midnight, seconds) to a date.
    """
    return datetime.fromtimestamp(sday, tz=timezone.utc).date()


def date_to_sday(dt: date) -> int:
    """Inverse of sday_to_date: UTC midnight of ``dt`` in epoch seconds."""
    midnight = datetime(dt.year, dt.month, dt.day, tzinfo=timezone.utc)
    return int(midnight.timestamp())


def classify_meal_time(time_range: Optional[str]) -> str:
    """
    Classify an operating-hours string as 'lunch', 'dinner' or 'both'.

    Parameters:
        time_range (str): "HH:MM~HH:MM", e.g. "10:00~14:00". May be None.

    Returns:
        str: 'both' whenever the range is missing or malformed, so items are
        assigned to every period instead of being dropped.
    """
    if not time_range:
        # e.g. 분식당 라면: no hours of its own, overlaps 솥앤누들 11:00~19:00
        return 'both'

    match = _TIME_RANGE_RE.match(time_range)
    if not match:
        # "11:30~13:50(한정판매)" and similar
        return 'both'

    start_hour = int(match.group(1))
    end_hour = int(match.group(3))

    is_lunch = start_hour < LUNCH_CUTOFF_HOUR
    is_dinner = end_hour >= LUNCH_CUTOFF_HOUR

    if is_lunch and is_dinner:
        return 'both'
    if is_lunch:
        return 'lunch'
    if is_dinner:
        return 'dinner'
    return 'both'
