#!/usr/bin/env python3
"""
Date and Timestamp Helpers

The Up API filters transactions by RFC 3339 timestamps. Filters are sent in
the caller's local timezone with an explicit offset
(2024-01-01T00:00:00+10:00), never converted to a bare "Z" timestamp.
"""

from datetime import date, datetime, time, timedelta


def local_midnight(day: date) -> datetime:
    """Get an aware datetime for the start of `day` in the local timezone."""
    return datetime.combine(day, time.min).astimezone()


def to_api_timestamp(value: date | datetime) -> str:
    """
    Format a date or datetime as an ISO-8601 timestamp with local offset.

    Naive datetimes and plain dates are interpreted as local time. Aware
    datetimes are converted to the local timezone.

    Args:
        value: Date or datetime to format

    Returns:
        Timestamp string with second precision, e.g. "2024-01-01T00:00:00+10:00"
    """
    if isinstance(value, datetime):
        moment = value.astimezone()
    else:
        moment = local_midnight(value)
    return moment.isoformat(timespec="seconds")


def parse_api_timestamp(text: str) -> datetime:
    """
    Parse an RFC 3339 timestamp from the Up API into an aware datetime.

    Raises:
        ValueError: If the text is not a valid timestamp
    """
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        raise ValueError(f"Timestamp has no UTC offset: {text!r}")
    return parsed


def add_days(day: date, days: int) -> date:
    """Add whole days to a date."""
    return day + timedelta(days=days)
