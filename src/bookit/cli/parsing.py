"""Parsing of durations and dates typed on the command line."""

from datetime import date, datetime, time, timedelta
from typing import Optional

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

DURATION_HELP = "use minutes, 'h::<hours>', 's::HH:MM' (since) or 't::HH:MM' (until)"


def _parse_clock(text: str) -> time:
    try:
        return datetime.strptime(text, "%H:%M").time()
    except ValueError:
        raise ValueError(f"Unable to interpret time '{text}' (use HH:MM)")


def _minutes_between(start: time, end: time, day: date) -> int:
    delta = datetime.combine(day, end) - datetime.combine(day, start)
    return int(delta.total_seconds() // 60)


def parse_duration(text: str, now: Optional[datetime] = None) -> int:
    """Interpret a duration directive as minutes.

    Accepted forms:
        "90"         90 minutes
        "h::1.5"     1.5 hours, truncated to whole minutes
        "s::08:00"   minutes since 08:00 until now
        "t::17:30"   minutes from now until 17:30

    Args:
        text: Directive as typed by the user
        now: Reference time for the clock forms. Defaults to now.

    Returns:
        Duration in minutes. May be zero or negative for clock forms; the
        domain model rejects those.

    Raises:
        ValueError: If the directive cannot be parsed
    """
    text = text.strip()
    now = now or datetime.now()

    if text.startswith("h::"):
        hours = text[3:]
        if not hours:
            raise ValueError("No hours specified (use 'h::1.5')")
        try:
            return int(60 * float(hours))
        except (ValueError, OverflowError):
            raise ValueError(f"Could not parse hours '{hours}' (use a float or integer)")

    if text.startswith(("s::", "t::")):
        clock = text[3:]
        if not clock:
            raise ValueError("No time specified after directive (use 's::08:00')")
        target = _parse_clock(clock)
        if text.startswith("s::"):
            return _minutes_between(target, now.time(), now.date())
        return _minutes_between(now.time(), target, now.date())

    if "::" in text:
        raise ValueError(f"Unable to interpret time '{text}' ({DURATION_HELP})")

    try:
        return int(text)
    except ValueError:
        raise ValueError(f"Could not parse minutes '{text}' ({DURATION_HELP})")


def parse_date(text: str, today: Optional[date] = None) -> date:
    """Interpret a date as ISO format, a relative day or a weekday.

    Weekday names resolve to the most recent such day, today included.

    Examples:
        >>> parse_date("2024-01-01")
        datetime.date(2024, 1, 1)
        >>> parse_date("monday", today=date(2024, 1, 3))
        datetime.date(2024, 1, 1)

    Raises:
        ValueError: If the date cannot be parsed
    """
    value = text.strip().lower()
    today = today or date.today()

    if value == "today":
        return today
    if value == "yesterday":
        return today - timedelta(days=1)
    if value in WEEKDAYS:
        days_back = (today.weekday() - WEEKDAYS.index(value)) % 7
        return today - timedelta(days=days_back)

    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValueError(
            f"Invalid date '{text}'. Use YYYY-MM-DD, 'today', 'yesterday' or a weekday"
        )
