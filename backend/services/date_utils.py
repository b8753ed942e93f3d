# backend/services/date_utils.py
import pytz
import logging
from datetime import datetime, date

logger = logging.getLogger(__name__)

UTC = pytz.utc


def parse_start_date(value, timezone_name='UTC'):
    """
    Parse a preferred start date coming from a request.

    Accepts a plain date (2025-05-21), an ISO datetime without offset
    (2025-05-21T10:00:00, read in timezone_name) or with one
    (2025-05-21T10:00:00Z, 2025-05-21T10:00:00+05:00).

    Args:
        value (str, date or datetime): The value to parse
        timezone_name (str): Zone used for values without an offset

    Returns:
        datetime: Naive UTC datetime, the form stored in the database
    """
    if value is None or value == '':
        return None

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            dt = datetime.fromisoformat(text)
        except ValueError as e:
            logger.debug(f"Rejected start date '{value}': {e}")
            raise ValueError(f"Invalid date format: '{value}'")
    else:
        raise ValueError(f'Invalid date value: {value!r}')

    if dt.tzinfo is None:
        dt = pytz.timezone(timezone_name).localize(dt)
    return dt.astimezone(UTC).replace(tzinfo=None)


def format_datetime(dt):
    """ISO-8601 string with an explicit UTC offset, or None."""
    if not dt:
        return None
    if dt.tzinfo is None:
        dt = UTC.localize(dt)
    return dt.isoformat()
