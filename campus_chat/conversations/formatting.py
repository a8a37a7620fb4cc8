"""Date, time and role formatting for conversation lists and message threads."""

from datetime import datetime, tzinfo
from typing import Optional

from campus_chat.messaging.labels import get_label
from campus_chat.messaging.timestamps import parse_timestamp, to_local


def _reference_now(value: datetime, now: Optional[datetime], tz: Optional[tzinfo]) -> datetime:
    """Current time expressed the same way as ``value`` (aware in display tz, or naive)."""
    if now is None:
        now = datetime.now().astimezone(tz) if value.tzinfo is not None else datetime.now()
    return to_local(now, tz)


def format_relative_time(
    timestamp: str,
    now: Optional[datetime] = None,
    locale: str = "pt-BR",
    tz: Optional[tzinfo] = None,
) -> str:
    """
    Format a conversation's last-activity time relative to now

    Same calendar day gives ``HH:mm``, the previous day gives "Ontem"/"Yesterday",
    two to six days back gives the weekday abbreviation, anything else
    ``DD/MM/YYYY``.

    Args:
        timestamp: ISO-8601 timestamp
        now: Reference time (default: the current time)
        locale: Display locale
        tz: Display timezone for aware timestamps (default: local)

    Returns:
        Formatted string, or "" when the timestamp is missing or unparseable
    """
    try:
        value = parse_timestamp(timestamp)
    except (ValueError, TypeError):
        return ""

    reference = _reference_now(value, now, tz)
    value = to_local(value, tz)
    days = (reference.date() - value.date()).days

    if days == 0:
        return value.strftime("%H:%M")
    if days == 1:
        return get_label(locale, "yesterday")
    if 1 < days < 7:
        return get_label(locale, "weekdays")[value.weekday()]
    return value.strftime("%d/%m/%Y")


def format_message_time(timestamp: str, tz: Optional[tzinfo] = None) -> str:
    try:
        return to_local(parse_timestamp(timestamp), tz).strftime("%H:%M")
    except (ValueError, TypeError):
        return ""


def format_day_label(timestamp: str, locale: str = "pt-BR", tz: Optional[tzinfo] = None) -> str:
    """Day divider text, e.g. "03 de agosto, 2025" or "August 03, 2025"."""
    try:
        value = to_local(parse_timestamp(timestamp), tz)
    except (ValueError, TypeError):
        return ""
    month = get_label(locale, "months")[value.month - 1]
    return get_label(locale, "day_label", day=value.day, month=month, year=value.year)


def role_label(role: str, locale: str = "pt-BR") -> str:
    if role == "teacher":
        return get_label(locale, "role_teacher")
    return get_label(locale, "role_student")
