from datetime import datetime
import pytz


def utcnow():
    """Naive UTC now, matching how timestamps are stored."""
    return datetime.now(pytz.utc).replace(tzinfo=None)


def parse_datetime(value):
    """Parse an ISO date or datetime string into a naive UTC datetime.

    Returns None for an unparseable value so callers can report the field.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(pytz.utc).replace(tzinfo=None)
    return parsed
