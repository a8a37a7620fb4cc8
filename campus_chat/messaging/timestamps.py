"""ISO-8601 helpers shared by the gateway and the display formatters."""

from datetime import datetime, timezone, tzinfo
from typing import Optional


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    """
    Parse an ISO-8601 timestamp.

    Accepts a trailing ``Z`` and naive values (no offset).

    Raises:
        ValueError: If the value is not ISO-8601
    """
    if not value:
        raise ValueError("empty timestamp")
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


def to_local(value: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """
    Move an aware datetime into the display timezone; naive values are kept as-is.

    Args:
        value: Datetime to convert
        tz: Display timezone (default: the machine's local timezone)
    """
    if value.tzinfo is None:
        return value
    return value.astimezone(tz)
