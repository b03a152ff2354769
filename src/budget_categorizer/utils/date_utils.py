"""Date and timestamp helpers."""

from datetime import date, datetime, timezone


def date_to_iso(d: date) -> str:
    """Convert date to ISO format string (YYYY-MM-DD).

    Args:
        d: Date to convert.

    Returns:
        ISO formatted date string.
    """
    return d.isoformat()


def parse_iso_date(raw_date: str) -> date:
    """Parse an ISO date string (YYYY-MM-DD).

    Args:
        raw_date: Date string, surrounding whitespace allowed.

    Returns:
        Parsed date.

    Raises:
        ValueError: If the string is not an ISO date.
    """
    raw_date = raw_date.strip()
    if not raw_date:
        raise ValueError("Empty date string")
    return date.fromisoformat(raw_date)


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def datetime_to_iso(dt: datetime) -> str:
    """Encode a datetime as an ISO-8601 string.

    Naive datetimes are assumed to be UTC so every stored timestamp
    carries an offset.

    Args:
        dt: Datetime to encode.

    Returns:
        ISO-8601 string with offset.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat()


def parse_iso_datetime(value: str) -> datetime:
    """Decode an ISO-8601 timestamp.

    Accepts a trailing ``Z`` UTC designator as well as explicit offsets.
    Naive values are taken as UTC.

    Args:
        value: Timestamp string.

    Returns:
        Timezone-aware datetime.

    Raises:
        ValueError: If the string is not a valid timestamp.
    """
    value = value.strip()
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt
