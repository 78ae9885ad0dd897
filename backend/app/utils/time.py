"""Time Utilities - UTC timestamps and formatting"""
from datetime import datetime, timezone, timedelta
from dateutil import parser as date_parser


def utc_now() -> datetime:
    """Get current UTC datetime"""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """
    Normalize a datetime to an aware UTC datetime

    MongoDB hands back naive datetimes that are implicitly UTC; comparing
    them with aware values raises, so everything is normalized first.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_iso(dt: datetime) -> str:
    """
    Format datetime to ISO 8601 string

    Args:
        dt: Datetime object

    Returns:
        ISO formatted string with Z suffix for UTC
    """
    return ensure_utc(dt).isoformat().replace("+00:00", "Z")


def parse_iso(iso_string: str) -> datetime:
    """
    Parse ISO 8601 string to datetime

    Args:
        iso_string: ISO formatted datetime string

    Returns:
        Datetime object in UTC
    """
    return ensure_utc(date_parser.isoparse(iso_string))


def seconds_ago(seconds: int) -> datetime:
    """UTC datetime the given number of seconds in the past"""
    return utc_now() - timedelta(seconds=seconds)
