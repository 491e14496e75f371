"""
Timestamp utilities for the record store.

Record timestamps are kept exactly as the user entered them: a naive value
stays naive (local wall-clock time) and an aware value keeps its offset. That
matters in three places:

- Serialization: ``format_iso`` writes ``datetime.isoformat()`` so parsing the
  blob back yields an equal value.
- Blob names: ``format_timestamp_for_filename`` uses the wall-clock fields, so
  the same timestamp always produces the same name.
- Matching: ``same_calendar_day`` compares the calendar date of each value as
  written, ignoring time of day.

Usage:
    from pod_records.core.datetime_utils import parse_timestamp, normalise_timestamp

    dt = parse_timestamp("2025-01-21 23:05:42")
    normalise_timestamp("2025-01-21 23:05:42.600")  # "2025-01-21T23:05:43"
"""
from datetime import date, datetime, timedelta
from typing import Union

TimestampLike = Union[str, datetime, date]

# Accepted after ISO 8601 fails
_FALLBACK_FORMATS = [
    "%Y-%m-%d %H:%M:%S",      # 2024-01-15 10:30:00
    "%Y-%m-%d %H:%M",         # 2024-01-15 10:30
    "%Y-%m-%d",               # 2024-01-15
    "%d-%m-%Y %H:%M:%S",      # 15-01-2024 10:30:00
    "%d-%m-%Y %H:%M",         # 15-01-2024 10:30
    "%d-%m-%Y",               # 15-01-2024
    "%d/%m/%Y %H:%M:%S",      # 15/01/2024 10:30:00
    "%d/%m/%Y %H:%M",         # 15/01/2024 10:30
    "%d/%m/%Y",               # 15/01/2024
    "%d-%m-%Y %I:%M %p",      # 15-01-2024 10:30 AM
    "%d/%m/%Y %I:%M %p",      # 15/01/2024 10:30 AM
]


# =============================================================================
# PARSING
# =============================================================================

def parse_timestamp(value: TimestampLike) -> datetime:
    """
    Parse a timestamp without changing its timezone.

    Accepts:
    - datetime object (returned unchanged)
    - date object (midnight of that day)
    - ISO 8601 string, with or without offset, 'T' or space separator
    - the day-first formats in ``_FALLBACK_FORMATS``

    Raises:
        ValueError: If the value cannot be parsed.

    Examples:
        >>> parse_timestamp("2024-01-15T10:30:00")
        datetime.datetime(2024, 1, 15, 10, 30)

        >>> parse_timestamp("2024-01-15T10:30:00Z").tzinfo
        datetime.timezone.utc
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)

    if not isinstance(value, str):
        raise ValueError(f"Expected datetime or string, got {type(value).__name__}")

    text = value.strip()
    if not text:
        raise ValueError("Empty timestamp")

    iso_text = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
    try:
        return datetime.fromisoformat(iso_text)
    except ValueError:
        pass

    for fmt in _FALLBACK_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue

    raise ValueError(f"Cannot parse timestamp: '{value}'")


def parse_date(value: Union[str, date]) -> date:
    """
    Parse a calendar date. Timestamps are accepted and truncated to their date.

    Raises:
        ValueError: If the value cannot be parsed.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return parse_timestamp(value).date()


# =============================================================================
# NORMALISATION
# =============================================================================

def round_to_second(dt: datetime) -> datetime:
    """Round to the nearest whole second (half up)."""
    rounded = dt.replace(microsecond=0)
    if dt.microsecond >= 500_000:
        rounded += timedelta(seconds=1)
    return rounded


def normalise_timestamp(value: TimestampLike) -> str:
    """
    Canonical timestamp string used by CSV import and export.

    The value is rounded to the second and written with a 'T' separator,
    keeping an offset only if the input had one.

    Examples:
        >>> normalise_timestamp("2025-01-21 23:05:42")
        '2025-01-21T23:05:42'
        >>> normalise_timestamp("2025-01-21")
        '2025-01-21T00:00:00'
        >>> normalise_timestamp("2025-01-21T23:05:42Z")
        '2025-01-21T23:05:42+00:00'
    """
    return round_to_second(parse_timestamp(value)).isoformat(timespec="seconds")


# =============================================================================
# FORMATTING
# =============================================================================

def format_iso(dt: datetime) -> str:
    """
    Serialize a timestamp for a blob. Lossless: ``parse_timestamp`` reverses it.
    """
    return dt.isoformat()


def format_timestamp_for_filename(dt: datetime) -> str:
    """
    Filesystem-safe timestamp: ``YYYY-MM-DDTHH-MM-SS``.

    Example:
        >>> format_timestamp_for_filename(datetime(2023, 5, 15, 14, 30, 22))
        '2023-05-15T14-30-22'
    """
    return dt.strftime("%Y-%m-%dT%H-%M-%S")


def format_timestamp_for_filename_with_underscore(dt: datetime) -> str:
    """
    Older filename form with an underscore separator: ``YYYY-MM-DD_HH-MM-SS``.
    """
    return dt.strftime("%Y-%m-%d_%H-%M-%S")


def format_for_display(dt: datetime, include_time: bool = True) -> str:
    """
    Human-readable timestamp, e.g. '15 Jan 2024, 10:30'.
    """
    if include_time:
        return dt.strftime("%d %b %Y, %H:%M")
    return dt.strftime("%d %b %Y")


# =============================================================================
# COMPARISON
# =============================================================================

def same_calendar_day(a: datetime, b: datetime) -> bool:
    """True when both timestamps fall on the same year, month and day."""
    return a.date() == b.date()


def chronological_key(dt: datetime) -> datetime:
    """
    Ordering key that lets naive and offset timestamps be compared.

    Naive values are read as local wall-clock time.

    Example:
        >>> sorted(stamps, key=chronological_key)
    """
    if dt.utcoffset() is None:
        return dt.astimezone()
    return dt
