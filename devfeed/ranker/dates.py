"""Publication timestamp parsing for ranking."""

from datetime import UTC, datetime

from dateutil import parser as date_parser


MS_PER_DAY = 24 * 60 * 60 * 1000


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO-8601, RFC 2822 or other common timestamp.

    ISO-8601 is tried first; anything else goes through dateutil. Naive
    values are taken as UTC.

    Args:
        value: Timestamp text.

    Returns:
        Aware datetime, or None if the text is not a timestamp.
    """
    if not value or not value.strip():
        return None

    text = value.strip()
    parsed: datetime | None
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        try:
            parsed = date_parser.parse(text)
        except (ValueError, TypeError, OverflowError):
            return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def to_epoch_ms(value: datetime) -> int:
    """Convert an aware datetime to epoch milliseconds."""
    return int(value.timestamp() * 1000)


def age_in_days(published_at: str | None, now: datetime) -> float | None:
    """Age of a timestamp relative to ``now``, in fractional days.

    Returns:
        Age in days (negative for future dates), or None if unparseable.
    """
    parsed = parse_timestamp(published_at)
    if parsed is None:
        return None
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    return (to_epoch_ms(now) - to_epoch_ms(parsed)) / MS_PER_DAY
