"""Helper utilities for the shop order dashboard."""
from data.config import ADMIN_IDS
from datetime import datetime, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP

# Korea timezone offset (UTC+9)
KST_TIMEZONE_OFFSET = timedelta(hours=9)

def to_utc_naive(dt: datetime) -> datetime:
    """Normalize a datetime to naive UTC, the form MongoDB hands back."""
    if dt.tzinfo is not None:
        return dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt

def to_korea_time(utc_dt: datetime) -> datetime:
    """Convert UTC datetime to Korea local time (UTC+9).

    Args:
        utc_dt: datetime object in UTC timezone

    Returns:
        datetime object in Korea local time (UTC+9)
    """
    if utc_dt is None:
        return None
    return to_utc_naive(utc_dt) + KST_TIMEZONE_OFFSET

def format_korea_datetime(utc_dt: datetime) -> str:
    """Format UTC datetime as Korea local time string (YYYY.MM.DD HH:MM)."""
    if utc_dt is None:
        return "—"
    local_dt = to_korea_time(utc_dt)
    return local_dt.strftime('%Y.%m.%d %H:%M')

def format_won(amount: int) -> str:
    return f"{amount:,}원"

def to_minor_units(value):
    """Round a price to whole currency units (half-up); None stays None."""
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, (int, float, Decimal)):
        return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return value

def is_admin(user_id):
    """Check if the user_id is in the admin list."""
    return user_id in ADMIN_IDS
