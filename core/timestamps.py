"""Completion timestamp normalization.

Every timestamp written by Routinely is true UTC in one representation,
``YYYY-MM-DDTHH:MM:SS.mmmZ``. Calendar dates are derived only by converting
that instant back into the user's timezone (``local_date``).
"""

from __future__ import annotations

from datetime import date, datetime, timezone, tzinfo


def format_utc(dt: datetime) -> str:
    """Render an aware datetime as UTC with millisecond precision."""
    dt = dt.astimezone(timezone.utc)
    return f"{dt.strftime('%Y-%m-%dT%H:%M:%S')}.{dt.microsecond // 1000:03d}Z"


def utc_now() -> str:
    return format_utc(datetime.now(timezone.utc))


def parse_timestamp(value: str, assume_tz: tzinfo = timezone.utc) -> datetime:
    """Parse an ISO-8601 string into an aware datetime.

    A trailing 'Z' means UTC. Strings without an offset are wall-clock
    time in *assume_tz*. Raises ValueError if unparsable.
    """
    s = value.strip()
    if s.endswith(("Z", "z")):
        s = s[:-1] + "+00:00"
    dt = datetime.fromisoformat(s)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=assume_tz)
    return dt


def normalize_timestamp(
    value: datetime | str | None = None,
    tz: tzinfo | None = None,
) -> str:
    """Convert caller input into the stored UTC representation.

    None means now. Naive datetimes and offset-less strings are local
    time in *tz* (UTC if not given).
    """
    local_tz = tz or timezone.utc
    if value is None:
        return utc_now()
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=local_tz)
        return format_utc(value)
    return format_utc(parse_timestamp(str(value), assume_tz=local_tz))


def local_date(completed_at: str, tz: tzinfo | None = None) -> date | None:
    """Calendar date of a stored UTC timestamp in *tz*; None if unparsable."""
    try:
        dt = parse_timestamp(completed_at)
    except (ValueError, TypeError, AttributeError):
        return None
    return dt.astimezone(tz or timezone.utc).date()
