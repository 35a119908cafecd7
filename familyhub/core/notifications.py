"""
FamilyHub — Daily digest and new-item alerts.

Builds the plain-text messages and fans them out to every subscribed
family member through a NotificationPort. A failure for one recipient is
logged and the fan-out continues.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date
from typing import TYPE_CHECKING

from familyhub.core.agenda import build_day_agenda
from familyhub.core.calendar_data import CalendarData, load_calendar_data
from familyhub.core.dates import format_de_date, format_time, parse_iso_date, time_of
from familyhub.data.models import AgendaItemType, CalendarEvent, Profile, Todo

if TYPE_CHECKING:
    from familyhub.ports.notification_port import NotificationPort
    from familyhub.ports.store_port import RowSource

logger = logging.getLogger(__name__)


def build_daily_digest(data: CalendarData, day: date) -> str | None:
    """Digest text for `day`: events, open todos and birthdays.

    Returns None when nothing is on for the day.
    """
    open_todos = [t for t in data.todos if not t.is_done]
    items = build_day_agenda(day, data.events, open_todos, data.birthdays)

    sections: list[str] = []
    events = [i for i in items if i.kind is AgendaItemType.EVENT]
    todos = [i for i in items if i.kind is AgendaItemType.TODO]
    birthdays = [i for i in items if i.kind is AgendaItemType.BIRTHDAY]

    if events:
        lines = [f"  {i.time} {i.title}" if i.time else f"  {i.title}" for i in events]
        sections.append("📅 Events:\n" + "\n".join(lines))
    if todos:
        lines = [f"  - {i.title}" for i in todos]
        sections.append("✅ Todos due:\n" + "\n".join(lines))
    if birthdays:
        lines = [f"  {i.title} ({i.description})" for i in birthdays]
        sections.append("🎂 Birthdays:\n" + "\n".join(lines))

    if not sections:
        return None
    return f"Good morning! Today, {format_de_date(day)}:\n\n" + "\n\n".join(sections)


def format_event_alert(event: CalendarEvent) -> str:
    day = parse_iso_date(event.event_date)
    when = format_de_date(day) if day else event.event_date
    time = format_time(event.event_time)
    if time:
        when = f"{when} {time}"
    return f"📅 New event: {event.title} ({when})"


def format_todo_alert(todo: Todo) -> str:
    text = f"✅ New todo: {todo.task}"
    if todo.assigned is not None:
        text += f" (for {todo.assigned.name})"
    due = parse_iso_date(todo.due_at)
    if due is not None:
        text += f", due {format_de_date(due)}"
        clock = time_of(todo.due_at)
        if clock:
            text += f" {clock}"
    return text


def _group_by_family(profiles: list[Profile]) -> dict[str, list[Profile]]:
    grouped: dict[str, list[Profile]] = defaultdict(list)
    for profile in profiles:
        grouped[profile.family_id].append(profile)
    return grouped


async def send_daily_digest(
    notifier: NotificationPort,
    store: RowSource,
    day: date | None = None,
) -> int:
    """Send today's digest to every subscriber. Returns messages delivered."""
    day = day or date.today()
    sent = 0

    for family_id, members in _group_by_family(store.list_subscribers()).items():
        try:
            digest = build_daily_digest(load_calendar_data(store, family_id), day)
        except Exception as exc:
            logger.error("Daily digest: loading family %s failed: %s", family_id, exc)
            continue
        if digest is None:
            logger.info("Daily digest: nothing on for family %s", family_id)
            continue
        for member in members:
            try:
                await notifier.send_message(member.telegram_user_id, digest)
                sent += 1
                logger.info("Daily digest sent to user %d", member.telegram_user_id)
            except Exception as exc:
                logger.error(
                    "Failed to send daily digest to %d: %s", member.telegram_user_id, exc,
                )
    return sent


async def send_new_item_alert(
    notifier: NotificationPort,
    store: RowSource,
    family_id: str,
    text: str,
    exclude_user_id: int | None = None,
) -> int:
    """Tell the family's subscribers about a new item, skipping its author."""
    sent = 0
    for member in store.list_subscribers(family_id):
        if member.telegram_user_id == exclude_user_id:
            continue
        try:
            await notifier.send_message(member.telegram_user_id, text)
            sent += 1
        except Exception as exc:
            logger.error("Failed to send alert to %d: %s", member.telegram_user_id, exc)
    return sent
