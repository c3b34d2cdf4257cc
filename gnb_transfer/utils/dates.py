from datetime import datetime, date, timezone
from typing import Optional, Union

from dateutil import parser as date_parser


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every datetime column is stored in"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_datetime(value: Union[str, datetime, date, None]) -> Optional[datetime]:
    """
    Parse an ISO-ish string (or date/datetime) into a naive UTC datetime.

    Raises:
        ValueError: If the value cannot be parsed
    """
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        parsed = date_parser.isoparse(str(value).strip())

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def parse_date(value: Union[str, datetime, date, None]) -> Optional[date]:
    parsed = parse_datetime(value)
    return parsed.date() if parsed else None


def isoformat(value) -> Optional[str]:
    return value.isoformat() if value else None
