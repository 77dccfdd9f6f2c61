"""Shared utilities: debug output and date handling."""

from datetime import date, datetime, timezone

DEBUG = False

# Formats the site generator accepts besides ISO 8601.
_DATE_FORMATS = (
    "%Y-%m-%d %H:%M:%S %z",
    "%Y-%m-%d %H:%M %z",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
)


def set_debug(enabled):
    """Set the module-level DEBUG flag."""
    global DEBUG
    DEBUG = enabled


def debug_print(*args):
    """Print debug messages when DEBUG mode is enabled."""
    if DEBUG:
        print("[DEBUG]", *args)


def parse_date(value):
    """Parse a front-matter date value into a datetime.

    Args:
        value: datetime, date, or a string such as "2021-03-01",
               "2021-03-01T10:00:00+01:00" or "2021-03-01 10:00:00 +0100".

    Returns:
        A datetime (timezone aware when the value carried an offset).

    Raises:
        ValueError: if the value is empty or not a valid calendar date.
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"not a date: {value!r}")

    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    raise ValueError(f"not a date: {value!r}")


def sort_timestamp(value):
    """Comparable naive-UTC form of a naive or aware datetime."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value
