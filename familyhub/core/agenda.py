"""
FamilyHub — Agenda Aggregator.

Merges calendar events, due todos, birthdays and deal-dated shopping items
into one chronologically ordered agenda, and projects that agenda onto a
Monday-first month grid (6 x 7 cells), a 7-day week grid, or a single day.

No I/O: every function here is a pure transformation of already-fetched
rows. Rows whose date cannot be parsed are skipped with a warning instead of
failing the whole view.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable, Sequence
from datetime import date, timedelta
from enum import Enum

from familyhub.core.dates import format_time, month_grid_start, parse_iso_date, time_of
from familyhub.data.models import (
    AgendaItem,
    AgendaItemType,
    CalendarDay,
    CalendarEvent,
    Contact,
    ShoppingItem,
    Todo,
)

logger = logging.getLogger(__name__)

GRID_DAYS = 42
WEEK_DAYS = 7


class AgendaMode(str, Enum):
    UPCOMING = "upcoming"   # drop everything dated before today
    ALL = "all"
    CALENDAR = "calendar"


def project_birthday(birthdate: date, year: int) -> date:
    """Place a birthdate's month/day into `year`.

    29 February falls on 1 March in non-leap years.
    """
    try:
        return birthdate.replace(year=year)
    except ValueError:
        return date(year, 3, 1)


# ---------------------------------------------------------------------------
# Per-kind item builders
# ---------------------------------------------------------------------------


def _event_item(event: CalendarEvent) -> AgendaItem | None:
    day = parse_iso_date(event.event_date)
    if day is None:
        logger.warning("Skipping event %s: unparsable date %r", event.id, event.event_date)
        return None
    return AgendaItem(
        kind=AgendaItemType.EVENT,
        id=event.id,
        title=event.title,
        date=day,
        time=format_time(event.event_time) or None,
        description=event.description,
        source=event,
    )


def _todo_item(todo: Todo) -> AgendaItem | None:
    if not todo.due_at:
        return None
    day = parse_iso_date(todo.due_at)
    if day is None:
        logger.warning("Skipping todo %s: unparsable due date %r", todo.id, todo.due_at)
        return None
    return AgendaItem(
        kind=AgendaItemType.TODO,
        id=todo.id,
        title=todo.task,
        date=day,
        time=time_of(todo.due_at),
        description=todo.description,
        source=todo,
    )


def _shopping_item(item: ShoppingItem) -> AgendaItem | None:
    if not item.deal_date:
        return None
    day = parse_iso_date(item.deal_date)
    if day is None:
        logger.warning("Skipping shopping item %s: unparsable deal date %r", item.id, item.deal_date)
        return None
    title = f"{item.name} ({item.store})" if item.store else item.name
    return AgendaItem(
        kind=AgendaItemType.SHOPPING,
        id=item.id,
        title=title,
        date=day,
        description=f"{item.quantity} {item.unit}",
        source=item,
    )


def _birthday_items(contact: Contact, years: Iterable[int]) -> list[AgendaItem]:
    if not contact.birthdate:
        return []
    born = parse_iso_date(contact.birthdate)
    if born is None:
        logger.warning("Skipping birthday of %s: unparsable birthdate %r", contact.id, contact.birthdate)
        return []
    items = []
    for year in years:
        age = year - born.year
        items.append(AgendaItem(
            kind=AgendaItemType.BIRTHDAY,
            id=contact.id,
            title=contact.full_name,
            date=project_birthday(born, year),
            description=f"turns {age}",
            age=age,
            source=contact,
        ))
    return items


def _collect(
    events: Sequence[CalendarEvent],
    todos: Sequence[Todo],
    birthdays: Sequence[Contact],
    shopping_items: Sequence[ShoppingItem],
    years: Iterable[int],
) -> list[AgendaItem]:
    """Resolve every source row into agenda items, in input order per kind."""
    years = sorted(set(years))
    items: list[AgendaItem] = []
    for event in events:
        item = _event_item(event)
        if item is not None:
            items.append(item)
    for todo in todos:
        item = _todo_item(todo)
        if item is not None:
            items.append(item)
    for contact in birthdays:
        items.extend(_birthday_items(contact, years))
    for shopping in shopping_items:
        item = _shopping_item(shopping)
        if item is not None:
            items.append(item)
    return items


def _by_day(items: Iterable[AgendaItem]) -> dict[date, list[AgendaItem]]:
    buckets: dict[date, list[AgendaItem]] = defaultdict(list)
    for item in items:
        buckets[item.date].append(item)
    return buckets


# ---------------------------------------------------------------------------
# Public operations
# ---------------------------------------------------------------------------


def build_agenda_list(
    events: Sequence[CalendarEvent],
    todos: Sequence[Todo],
    birthdays: Sequence[Contact],
    shopping_items: Sequence[ShoppingItem],
    mode: AgendaMode | str = AgendaMode.UPCOMING,
    today: date | None = None,
) -> list[AgendaItem]:
    """Flat agenda sorted by date.

    Birthdays are projected onto the current year only; a birthday that
    already passed this year does not roll over to next year. In upcoming
    mode everything dated before `today` is dropped. Items on the same day
    keep their input order.
    """
    mode = AgendaMode(mode)
    today = today or date.today()

    items = _collect(events, todos, birthdays, shopping_items, years=[today.year])
    if mode is AgendaMode.UPCOMING:
        items = [item for item in items if item.date >= today]

    # list.sort is stable, so same-day items keep their input order
    items.sort(key=lambda item: item.date)
    return items


def build_day_agenda(
    day: date,
    events: Sequence[CalendarEvent],
    todos: Sequence[Todo],
    birthdays: Sequence[Contact],
    shopping_items: Sequence[ShoppingItem] = (),
) -> list[AgendaItem]:
    """All agenda items whose resolved date is `day` (time of day ignored)."""
    items = _collect(events, todos, birthdays, shopping_items, years=[day.year])
    return [item for item in items if item.date == day]


def build_month_grid(
    month_anchor: date,
    events: Sequence[CalendarEvent],
    todos: Sequence[Todo],
    birthdays: Sequence[Contact],
    shopping_items: Sequence[ShoppingItem] = (),
) -> list[CalendarDay]:
    """42 day cells starting on the Monday on or before the 1st of the month.

    Grid views never filter by today's date.
    """
    start = month_grid_start(month_anchor)
    end = start + timedelta(days=GRID_DAYS - 1)
    items = _collect(
        events, todos, birthdays, shopping_items, years=[start.year, end.year],
    )
    buckets = _by_day(items)

    days: list[CalendarDay] = []
    for offset in range(GRID_DAYS):
        cell = start + timedelta(days=offset)
        days.append(CalendarDay(
            date=cell,
            is_current_month=(cell.year, cell.month) == (month_anchor.year, month_anchor.month),
            items=buckets.get(cell, []),
        ))
    return days


def build_week_grid(
    week_start: date,
    events: Sequence[CalendarEvent],
    todos: Sequence[Todo],
    birthdays: Sequence[Contact],
    shopping_items: Sequence[ShoppingItem] = (),
) -> list[CalendarDay]:
    """Seven consecutive days beginning at `week_start`.

    Callers normally pass a Monday (see `familyhub.core.dates.week_start`).
    `is_current_month` is relative to the month of `week_start`.
    """
    end = week_start + timedelta(days=WEEK_DAYS - 1)
    items = _collect(
        events, todos, birthdays, shopping_items, years=[week_start.year, end.year],
    )
    buckets = _by_day(items)

    return [
        CalendarDay(
            date=cell,
            is_current_month=(cell.year, cell.month) == (week_start.year, week_start.month),
            items=buckets.get(cell, []),
        )
        for cell in (week_start + timedelta(days=i) for i in range(WEEK_DAYS))
    ]
