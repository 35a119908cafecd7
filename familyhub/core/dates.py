"""Date and time helpers shared by the agenda and the bot.

Weeks start on Monday and dates render as dd.mm.yyyy (de-DE convention).
No I/O: this module only transforms data.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta


def parse_iso_date(value: str | date | None) -> date | None:
    """Return the calendar date of an ISO date or timestamp, or None.

    Only the date part is used ("2025-06-11T10:00:00+02:00" -> 2025-06-11);
    no time zone conversion takes place. Never raises.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    date_part = text.split("T", 1)[0].split(" ", 1)[0]
    try:
        return date.fromisoformat(date_part)
    except ValueError:
        return None


def time_of(timestamp: str | None) -> str | None:
    """Extract HH:MM from an ISO timestamp; None for date-only values."""
    if not timestamp or "T" not in timestamp:
        return None
    time_part = timestamp.split("T", 1)[1]
    return format_time(time_part[:8]) or None


def format_time(value: str | None) -> str:
    """Shorten HH:MM:SS to HH:MM; empty string for missing values."""
    if not value:
        return ""
    if ":" in value:
        parts = value.split(":")
        return f"{parts[0]}:{parts[1][:2]}"
    return value


def week_start(day: date) -> date:
    """Monday on or before `day`."""
    return day - timedelta(days=day.weekday())


def month_grid_start(anchor: date) -> date:
    """Monday on or before the 1st of the anchor's month."""
    return week_start(anchor.replace(day=1))


def iso_week(day: date) -> int:
    return day.isocalendar()[1]


def format_de_date(day: date) -> str:
    return day.strftime("%d.%m.%Y")


def format_de_short(day: date) -> str:
    return day.strftime("%d.%m.")


_WEEKDAYS_DE = ("Mo", "Di", "Mi", "Do", "Fr", "Sa", "So")


def weekday_abbr(day: date) -> str:
    return _WEEKDAYS_DE[day.weekday()]


def next_full_hour(now: datetime | None = None) -> str:
    """Next full hour as HH:MM, the default time for a new event."""
    now = now or datetime.now()
    nxt = (now + timedelta(hours=1)).replace(minute=0, second=0, microsecond=0)
    return nxt.strftime("%H:%M")
