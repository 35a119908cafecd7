"""Fetch everything the agenda views need for one family."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from familyhub.data.models import CalendarEvent, Contact, ShoppingItem, Todo

if TYPE_CHECKING:
    from familyhub.ports.store_port import RowSource

logger = logging.getLogger(__name__)


@dataclass
class CalendarData:
    events: list[CalendarEvent] = field(default_factory=list)
    todos: list[Todo] = field(default_factory=list)
    birthdays: list[Contact] = field(default_factory=list)
    shopping_items: list[ShoppingItem] = field(default_factory=list)


def load_calendar_data(source: RowSource, family_id: str) -> CalendarData:
    """Load events, dated todos (with comments), birthdays and deal items.

    Errors raised by the store are not caught here.
    """
    events = source.get_calendar_events(family_id)
    todos = source.get_todos_for_calendar(family_id)
    birthdays = source.get_birthdays(family_id)
    shopping_items = source.get_shopping_items_for_calendar(family_id)

    if todos:
        comments = source.get_comments_for_todos([t.id for t in todos])
        for todo in todos:
            todo.comments = comments.get(todo.id, [])

    logger.debug(
        "Calendar data for %s: %d events, %d todos, %d birthdays, %d deals",
        family_id, len(events), len(todos), len(birthdays), len(shopping_items),
    )
    return CalendarData(
        events=events, todos=todos, birthdays=birthdays, shopping_items=shopping_items,
    )
