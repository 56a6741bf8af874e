from datetime import date, datetime

from utils.errors import ValidationError


def now() -> datetime:
    return datetime.now()


def parse_event_time(value: str) -> datetime:
    """
    Parses an ISO-8601 timestamp from a webhook event into a naive datetime.
    Offset-aware values keep their wall-clock time and drop the offset,
    e.g. '2025-01-01T12:00:00.000Z' -> 2025-01-01 12:00:00.
    """
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"Invalid timestamp: {value!r}")

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        try:
            parsed = datetime.strptime(value.strip(), "%Y-%m-%dT%H:%M:%S")
        except ValueError:
            raise ValidationError(f"Invalid timestamp: {value!r}")

    if parsed.tzinfo is not None:
        parsed = parsed.replace(tzinfo=None)
    return parsed


def parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid date: {value!r}, expected YYYY-MM-DD")
