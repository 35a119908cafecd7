"""
FamilyHub — Telegram Bot.

Telegram is the family's interface to the shared calendar, todos, shopping
list, recipes, birthdays and notes. It also delivers the daily digest and
new-item alerts.

Security-first: unauthorized users are silently ignored.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime
from datetime import time as dt_time
from functools import wraps
from typing import TYPE_CHECKING, Any, Callable, Coroutine
from zoneinfo import ZoneInfo

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Update
from telegram.ext import (
    Application,
    ApplicationBuilder,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
)

from familyhub.config import settings
from familyhub.core.agenda import (
    AgendaMode,
    build_agenda_list,
    build_day_agenda,
    build_month_grid,
    build_week_grid,
)
from familyhub.core.calendar_data import load_calendar_data
from familyhub.core.dates import (
    format_de_date,
    format_de_short,
    iso_week,
    next_full_hour,
    parse_iso_date,
    week_start,
    weekday_abbr,
)
from familyhub.core.notifications import (
    format_event_alert,
    format_todo_alert,
    send_daily_digest,
    send_new_item_alert,
)
from familyhub.core.quantities import parse_quantity
from familyhub.core.recipe_service import (
    NothingSelectedError,
    add_recipe_to_shopping,
    add_shopping_item,
    cooking_summary,
)
from familyhub.core.shopping import sort_shopping_items, unique_purchased_items
from familyhub.data.db import NotFoundError
from familyhub.data.models import (
    AgendaItem,
    AgendaItemType,
    CalendarDay,
    CalendarEvent,
    Contact,
    Priority,
    Profile,
    QuantityUnit,
    Recipe,
    RecipeIngredient,
    Todo,
)

if TYPE_CHECKING:
    from familyhub.adapters.sqlite_store import SQLiteFamilyStore
    from familyhub.ports.notification_port import NotificationPort

logger = logging.getLogger(__name__)

_ICONS = {
    AgendaItemType.EVENT: "📅",
    AgendaItemType.TODO: "✅",
    AgendaItemType.BIRTHDAY: "🎂",
    AgendaItemType.SHOPPING: "🛒",
}

_UNITS = {u.value.lower(): u.value for u in QuantityUnit}
_PRIORITIES = {p.value for p in Priority if p is not Priority.NONE}


# ---------------------------------------------------------------------------
# Security: silent-ignore decorator
# ---------------------------------------------------------------------------


def authorized_only(
    func: Callable[..., Coroutine[Any, Any, None]],
) -> Callable[..., Coroutine[Any, Any, None]]:
    """Decorator that silently ignores messages from unauthorized users.

    Does NOT send any response to strangers; the bot must not reveal
    its existence to unauthorized users.
    """

    @wraps(func)
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        user = update.effective_user
        if user is None or user.id not in settings.ALLOWED_USER_IDS:
            uid = user.id if user else "unknown"
            logger.warning("Unauthorized access attempt from user_id=%s", uid)
            return  # Silent ignore
        return await func(update, context)

    return wrapper


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _store(context: ContextTypes.DEFAULT_TYPE) -> SQLiteFamilyStore:
    return context.bot_data["store"]


def _now() -> datetime:
    return datetime.now(ZoneInfo(settings.TIMEZONE))


def _today() -> date:
    """Today in the family's time zone, not the server's."""
    return _now().date()


async def _require_profile(
    update: Update, context: ContextTypes.DEFAULT_TYPE,
) -> Profile | None:
    """The caller's profile, or None after telling them to join a family."""
    profile = _store(context).families.get_by_telegram_id(update.effective_user.id)
    if profile is None:
        await update.message.reply_text(
            "You're not part of a family yet.\n"
            "Use /newfamily <name> to create one, or /join <family id> to join."
        )
    return profile


async def _alert_family(
    context: ContextTypes.DEFAULT_TYPE, profile: Profile, text: str,
) -> None:
    notifier: NotificationPort = context.bot_data["notifier"]
    try:
        await send_new_item_alert(
            notifier, _store(context), profile.family_id, text,
            exclude_user_id=profile.telegram_user_id,
        )
    except Exception as exc:
        logger.error("New-item alert failed for family %s: %s", profile.family_id, exc)


def _format_item(item: AgendaItem) -> str:
    line = f"{_ICONS[item.kind]} "
    if item.time:
        line += f"{item.time} "
    line += item.title
    if item.description and item.kind in (AgendaItemType.BIRTHDAY, AgendaItemType.SHOPPING):
        line += f" ({item.description})"
    return line


def _format_day(day: CalendarDay) -> str:
    header = f"{weekday_abbr(day.date)} {format_de_short(day.date)}"
    if not day.items:
        return header
    return header + "\n" + "\n".join(f"  {_format_item(i)}" for i in day.items)


def _split_pipe(text: str) -> tuple[str, str]:
    """Split "left | right" into stripped parts (right may be empty)."""
    left, _, right = text.partition("|")
    return left.strip(), right.strip()


def _parse_due(text: str) -> str | None:
    """Accept YYYY-MM-DD or YYYY-MM-DD HH:MM; return ISO text or raise ValueError."""
    text = text.strip()
    if not text:
        return None
    if " " in text:
        return datetime.strptime(text, "%Y-%m-%d %H:%M").isoformat(timespec="minutes")
    return date.fromisoformat(text).isoformat()


def _parse_item_args(args: list[str]) -> tuple[str, str, str, str | None]:
    """Parse /buy arguments: [quantity] [unit] name [@store].

    Returns (name, quantity, unit, store); quantity defaults to "1" and the
    unit to pieces.
    """
    words = list(args)
    store = None
    if words and words[-1].startswith("@") and len(words[-1]) > 1:
        store = words.pop()[1:]

    quantity = "1"
    if words and parse_quantity(words[0]) > 0:
        quantity = words.pop(0).replace(",", ".")

    unit = QuantityUnit.PIECE.value
    if len(words) > 1 and words[0].lower() in _UNITS:
        unit = _UNITS[words.pop(0).lower()]

    return " ".join(words).strip(), quantity, unit, store


def _parse_positions(args: list[str], count: int) -> list[int]:
    """1-based list positions from args -> 0-based indexes; ValueError if invalid."""
    positions = []
    for arg in args:
        pos = int(arg)
        if not 1 <= pos <= count:
            raise ValueError(f"position {pos} out of range")
        positions.append(pos - 1)
    return positions


# ---------------------------------------------------------------------------
# Command handlers: onboarding
# ---------------------------------------------------------------------------


@authorized_only
async def cmd_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start — welcome message."""
    await update.message.reply_text(
        "Welcome to *FamilyHub*!\n\n"
        "I keep your family organized:\n"
        "• /today, /week, /month and /upcoming show the shared calendar\n"
        "• /todos and /addtodo manage family todos\n"
        "• /contacts and /addcontact keep birthdays in the calendar\n"
        "• /shopping and /buy manage the shopping list\n"
        "• /cook puts a recipe's ingredients on the list\n\n"
        "New here? Use /newfamily <name> or /join <family id>.\n"
        "Type /help for the full command list.",
        parse_mode="Markdown",
    )


@authorized_only
async def cmd_help(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /help — list available commands."""
    await update.message.reply_text(
        "Available commands:\n"
        "/newfamily <name> — Create a family\n"
        "/join <family id> — Join an existing family\n"
        "/members — Who is in the family\n"
        "/today — Today's agenda\n"
        "/week — This week\n"
        "/month — This month\n"
        "/upcoming — Everything coming up\n"
        "/todos — Open todos\n"
        "/addtodo <task> [| YYYY-MM-DD [HH:MM]] [| @name] [| low|medium|high] — Add a todo\n"
        "/done <number> — Mark a todo as done\n"
        "/comment <number> <text> — Comment on a todo\n"
        "/deltodo <number> — Delete a todo\n"
        "/events — Upcoming events\n"
        "/addevent <YYYY-MM-DD> [HH:MM] <title> — Add an event\n"
        "/moveevent <number> <YYYY-MM-DD> [HH:MM] — Move an event\n"
        "/delevent <number> — Delete an event\n"
        "/contacts [search] — Contacts by household\n"
        "/addcontact <first> <last> [YYYY-MM-DD] [| household] — Add a contact\n"
        "/birthday <number> <YYYY-MM-DD> — Set a contact's birthday\n"
        "/delcontact <number> — Delete a contact\n"
        "/birthdays — Upcoming birthdays\n"
        "/shopping — Shopping list\n"
        "/buy [qty] [unit] <item> [@store] — Add to the shopping list\n"
        "/bought <number...> | all — Move items to purchase history\n"
        "/remove <number...> — Take items off the list\n"
        "/history — Recent purchases\n"
        "/recipes [search] — List recipes\n"
        "/addrecipe <name> | <servings> | <ingredients; ...> — Add a recipe\n"
        "/cook <number> [servings] — Add a recipe to the shopping list\n"
        "/cooked <number> — Mark a recipe as cooked\n"
        "/delrecipe <number> — Delete a recipe\n"
        "/notes — List notes\n"
        "/note <title> | <text> — Add a note\n"
        "/delnote <number> — Delete a note\n"
        "/notify on|off — Daily digest and alerts\n"
        "/help — Show this message",
    )


@authorized_only
async def cmd_newfamily(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /newfamily <name> — create a family and join it."""
    store = _store(context)
    user = update.effective_user
    name = " ".join(context.args or []).strip()
    if not name:
        await update.message.reply_text("Usage: /newfamily <family name>")
        return

    if store.families.get_by_telegram_id(user.id) is not None:
        await update.message.reply_text("You already belong to a family.")
        return

    try:
        family = store.families.create_family(name)
        store.families.add_profile(family.id, user.first_name or "Me", user.id)
    except Exception as exc:
        logger.error("/newfamily error: %s", exc)
        await update.message.reply_text("Couldn't create the family. Please try again.")
        return

    await update.message.reply_text(
        f"🏠 Family '{family.name}' created.\n"
        f"Others can join with:\n/join {family.id}"
    )


@authorized_only
async def cmd_join(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /join <family id>."""
    store = _store(context)
    user = update.effective_user
    if not context.args:
        await update.message.reply_text("Usage: /join <family id>")
        return

    if store.families.get_by_telegram_id(user.id) is not None:
        await update.message.reply_text("You already belong to a family.")
        return

    try:
        profile = store.families.add_profile(context.args[0], user.first_name or "Me", user.id)
    except NotFoundError:
        await update.message.reply_text("No family with that id.")
        return
    except Exception as exc:
        logger.error("/join error: %s", exc)
        await update.message.reply_text("Couldn't join the family. Please try again.")
        return

    family = store.families.get_family(profile.family_id)
    await update.message.reply_text(f"👋 Welcome to '{family.name}', {profile.name}!")


# ---------------------------------------------------------------------------
# Command handlers: calendar views
# ---------------------------------------------------------------------------


@authorized_only
async def cmd_today(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /today — everything on today's date."""
    profile = await _require_profile(update, context)
    if profile is None:
        return

    today = _today()
    try:
        data = load_calendar_data(_store(context), profile.family_id)
    except Exception as exc:
        logger.error("/today error: %s", exc)
        await update.message.reply_text("Couldn't load today's agenda. Please try again later.")
        return

    items = build_day_agenda(today, data.events, data.todos, data.birthdays, data.shopping_items)
    if not items:
        await update.message.reply_text(f"Nothing planned for today ({format_de_date(today)}).")
        return

    lines = [f"Today, {format_de_date(today)}:\n"]
    lines.extend(_format_item(i) for i in items)
    await update.message.reply_text("\n".join(lines))


@authorized_only
async def cmd_week(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /week — the current Monday-to-Sunday week."""
    profile = await _require_profile(update, context)
    if profile is None:
        return

    start = week_start(_today())
    try:
        data = load_calendar_data(_store(context), profile.family_id)
    except Exception as exc:
        logger.error("/week error: %s", exc)
        await update.message.reply_text("Couldn't load the week. Please try again later.")
        return

    days = build_week_grid(start, data.events, data.todos, data.birthdays, data.shopping_items)
    lines = [f"Week {iso_week(start)}:\n"]
    lines.extend(_format_day(d) for d in days)
    await update.message.reply_text("\n".join(lines))


@authorized_only
async def cmd_month(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /month — days of the current month that have entries."""
    profile = await _require_profile(update, context)
    if profile is None:
        return

    today = _today()
    try:
        data = load_calendar_data(_store(context), profile.family_id)
    except Exception as exc:
        logger.error("/month error: %s", exc)
        await update.message.reply_text("Couldn't load the month. Please try again later.")
        return

    grid = build_month_grid(today, data.events, data.todos, data.birthdays, data.shopping_items)
    busy = [d for d in grid if d.is_current_month and d.items]
    if not busy:
        await update.message.reply_text(f"Nothing planned in {today.strftime('%m/%Y')}.")
        return

    blocks = [f"{today.strftime('%m/%Y')}:"]
    blocks.extend(_format_day(d) for d in busy)
    await update.message.reply_text("\n\n".join(blocks))


@authorized_only
async def cmd_upcoming(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /upcoming — chronological list from today onwards."""
    profile = await _require_profile(update, context)
    if profile is None:
        return

    try:
        data = load_calendar_data(_store(context), profile.family_id)
    except Exception as exc:
        logger.error("/upcoming error: %s", exc)
        await update.message.reply_text("Couldn't load the agenda. Please try again later.")
        return

    items = build_agenda_list(
        data.events, data.todos, data.birthdays, data.shopping_items,
        mode=AgendaMode.UPCOMING, today=_today(),
    )
    if not items:
        await update.message.reply_text("Nothing coming up.")
        return

    lines = ["Coming up:\n"]
    for item in items[: settings.UPCOMING_LIMIT]:
        lines.append(f"{format_de_short(item.date)} {_format_item(item)}")
    if len(items) > settings.UPCOMING_LIMIT:
        lines.append(f"… and {len(items) - settings.UPCOMING_LIMIT} more")
    await update.message.reply_text("\n".join(lines))


@authorized_only
async def cmd_birthdays(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /birthdays — remaining birthdays this year."""
    profile = await _require_profile(update, context)
    if profile is None:
        return

    try:
        contacts = _store(context).get_birthdays(profile.family_id)
    except Exception as exc:
        logger.error("/birthdays error: %s", exc)
        await update.message.reply_text("Couldn't load birthdays. Please try again.")
        return

    items = build_agenda_list([], [], contacts, [], mode=AgendaMode.UPCOMING, today=_today())
    if not items:
        await update.message.reply_text("No more birthdays this year.")
        return

    lines = ["Upcoming birthdays:\n"]
    lines.extend(f"🎂 {format_de_short(i.date)} {i.title} ({i.description})" for i in items)
    await update.message.reply_text("\n".join(lines))


# ---------------------------------------------------------------------------
# Command handlers: todos & events
# ---------------------------------------------------------------------------


@authorized_only
async def cmd_todos(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /todos — numbered list of open todos."""
    profile = await _require_profile(update, context)
    if profile is None:
        return

    store = _store(context)
    try:
        todos = store.todos.get_todos(profile.family_id, status="open")
        comments = store.get_comments_for_todos([t.id for t in todos])
    except Exception as exc:
        logger.error("/todos error: %s", exc)
        await update.message.reply_text("Couldn't load todos. Please try again.")
        return

    if not todos:
        await update.message.reply_text("No open todos. 🎉")
        return

    lines = ["Open todos:\n"]
    for pos, todo in enumerate(todos, start=1):
        line = f"{pos}. {todo.task}"
        if todo.priority != Priority.NONE:
            line += f" [{todo.priority.value}]"
        if todo.assigned is not None:
            line += f" ({todo.assigned.name})"
        if todo.due_at:
            line += f", due {todo.due_at.replace('T', ' ')}"
        lines.append(line)
        # newest comment only
        for comment in comments.get(todo.id, [])[:1]:
            lines.append(f"   💬 {comment.text}")
    await update.message.reply_text("\n".join(lines))


def _parse_todo_options(
    fields: list[str],
) -> tuple[str | None, str | None, Priority]:
    """Sort the "|"-separated /addtodo options into (due, assignee, priority).

    "@Name" names the assignee, a priority word sets the priority, anything
    else is the due date. Raises ValueError for a malformed due date.
    """
    due_at = None
    assignee = None
    priority = Priority.NONE
    for field in fields:
        if not field:
            continue
        if field.startswith("@"):
            assignee = field[1:].strip()
        elif field.lower() in _PRIORITIES:
            priority = Priority(field.lower())
        else:
            due_at = _parse_due(field)
    return due_at, assignee, priority


@authorized_only
async def cmd_addtodo(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /addtodo <task> [| due] [| @name] [| low|medium|high]."""
    profile = await _require_profile(update, context)
    if profile is None:
        return

    task, *options = [p.strip() for p in " ".join(context.args or []).split("|")]
    if not task:
        await update.message.reply_text(
            "Usage: /addtodo <task> [| YYYY-MM-DD [HH:MM]] [| @name] [| low|medium|high]"
        )
        return

    try:
        due_at, assignee_name, priority = _parse_todo_options(options)
    except ValueError:
        await update.message.reply_text("Invalid due date. Use YYYY-MM-DD or YYYY-MM-DD HH:MM.")
        return

    store = _store(context)
    assigned_to_id = None
    try:
        if assignee_name:
            members = {p.name.lower(): p for p in store.families.list_profiles(profile.family_id)}
            assignee = members.get(assignee_name.lower())
            if assignee is None:
                await update.message.reply_text(
                    f"No family member called {assignee_name}. Use /members to see who's in."
                )
                return
            assigned_to_id = assignee.id

        todo = store.todos.add_todo(
            profile.family_id, task, created_by_id=profile.id,
            assigned_to_id=assigned_to_id, due_at=due_at, priority=priority,
        )
    except Exception as exc:
        logger.error("/addtodo error: %s", exc)
        await update.message.reply_text("Couldn't add the todo. Please try again.")
        return

    await update.message.reply_text(f"✅ Todo added: {todo.task}")
    await _alert_family(context, profile, format_todo_alert(todo))


async def _pick_open_todo(
    update: Update, context: ContextTypes.DEFAULT_TYPE, profile: Profile, usage: str,
) -> Todo | None:
    """The open todo at the position in the first argument, or None after replying."""
    if not context.args:
        await update.message.reply_text(usage)
        return None
    try:
        todos = _store(context).todos.get_todos(profile.family_id, status="open")
    except Exception as exc:
        logger.error("todo lookup error: %s", exc)
        await update.message.reply_text("Couldn't load todos. Please try again.")
        return None
    try:
        (index,) = _parse_positions(context.args[:1], len(todos))
    except ValueError:
        await update.message.reply_text("Invalid number. Use /todos to see the list.")
        return None
    return todos[index]


@authorized_only
async def cmd_comment(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /comment <number> <text> — comment on an open todo."""
    profile = await _require_profile(update, context)
    if profile is None:
        return

    usage = "Usage: /comment <number> <text>"
    text = " ".join((context.args or [])[1:]).strip()
    if not text:
        await update.message.reply_text(usage)
        return
    todo = await _pick_open_todo(update, context, profile, usage)
    if todo is None:
        return

    try:
        _store(context).todos.add_comment(todo.id, text, user_id=profile.id)
    except Exception as exc:
        logger.error("/comment error: %s", exc)
        await update.message.reply_text("Couldn't save the comment. Please try again.")
        return

    await update.message.reply_text(f"💬 Comment added to '{todo.task}'.")
    await _alert_family(context, profile, f"💬 {profile.name} on '{todo.task}': {text}")


@authorized_only
async def cmd_deltodo(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /deltodo <number> — remove an open todo."""
    profile = await _require_profile(update, context)
    if profile is None:
        return

    todo = await _pick_open_todo(update, context, profile, "Usage: /deltodo <number>")
    if todo is None:
        return

    try:
        _store(context).todos.delete_todo(todo.id)
    except Exception as exc:
        logger.error("/deltodo error: %s", exc)
        await update.message.reply_text("Couldn't delete the todo. Please try again.")
        return
    await update.message.reply_text(f"🗑 Deleted: {todo.task}")


@authorized_only
async def cmd_members(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /members — who is in the family."""
    profile = await _require_profile(update, context)
    if profile is None:
        return

    try:
        members = _store(context).families.list_profiles(profile.family_id)
    except Exception as exc:
        logger.error("/members error: %s", exc)
        await update.message.reply_text("Couldn't load the family. Please try again.")
        return

    lines = ["👥 Family members:\n"]
    lines.extend(f"• {m.name}" for m in members)
    lines.append(f"\nOthers can join with /join {profile.family_id}")
    await update.message.reply_text("\n".join(lines))


@authorized_only
async def cmd_done(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /done [number] — mark an open todo as done.

    Without a number, shows the open todos as buttons.
    """
    profile = await _require_profile(update, context)
    if profile is None:
        return

    store = _store(context)
    try:
        todos = store.todos.get_todos(profile.family_id, status="open")
    except Exception as exc:
        logger.error("/done error: %s", exc)
        await update.message.reply_text("Couldn't load todos. Please try again.")
        return

    if not todos:
        await update.message.reply_text("No open todos.")
        return

    if not context.args:
        keyboard = [
            [InlineKeyboardButton(t.task, callback_data=f"tododone:{t.id}")] for t in todos
        ]
        await update.message.reply_text(
            "Which todo is done?", reply_markup=InlineKeyboardMarkup(keyboard),
        )
        return

    try:
        (index,) = _parse_positions(context.args[:1], len(todos))
    except ValueError:
        await update.message.reply_text("Invalid number. Use /todos to see the list.")
        return

    try:
        todo = store.todos.set_done(todos[index].id, True, done_by_id=profile.id)
    except Exception as exc:
        logger.error("/done error: %s", exc)
        await update.message.reply_text("Couldn't update the todo. Please try again.")
        return
    await update.message.reply_text(f"✅ Done: {todo.task}")


async def _handle_todo_done_callback(
    update: Update, context: ContextTypes.DEFAULT_TYPE
) -> None:
    """Inline-button variant of /done."""
    query = update.callback_query
    await query.answer()

    user = update.effective_user
    if user is None or user.id not in settings.ALLOWED_USER_IDS:
        return

    todo_id = query.data.split(":", 1)[1]
    store = _store(context)
    profile = store.families.get_by_telegram_id(user.id)
    try:
        todo = store.todos.get_todo(todo_id)
        if todo is None or profile is None or todo.family_id != profile.family_id:
            await query.edit_message_text("That todo no longer exists.")
            return
        todo = store.todos.set_done(todo_id, True, done_by_id=profile.id)
        await query.edit_message_text(f"✅ Done: {todo.task}")
    except Exception as exc:
        logger.error("todo done callback error: %s", exc)
        await query.edit_message_text("Something went wrong. Please try again.")


@authorized_only
async def cmd_addevent(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /addevent <YYYY-MM-DD> [HH:MM] <title>."""
    profile = await _require_profile(update, context)
    if profile is None:
        return

    args = list(context.args or [])
    usage = (
        "Usage: /addevent <YYYY-MM-DD> [HH:MM] <title>\n"
        f"e.g. /addevent {_today()} {next_full_hour(_now())} Dentist"
    )
    if len(args) < 2:
        await update.message.reply_text(usage)
        return

    event_date = args.pop(0)
    event_time = None
    try:
        datetime.strptime(args[0], "%H:%M")
        event_time = args.pop(0)
    except ValueError:
        pass
    title = " ".join(args).strip()
    if not title:
        await update.message.reply_text(usage)
        return

    try:
        event = _store(context).calendar.add_event(
            profile.family_id, title, event_date, event_time=event_time,
            created_by_id=profile.id,
        )
    except ValueError:
        await update.message.reply_text("Invalid date. Use YYYY-MM-DD.")
        return
    except Exception as exc:
        logger.error("/addevent error: %s", exc)
        await update.message.reply_text("Couldn't add the event. Please try again.")
        return

    alert = format_event_alert(event)
    await update.message.reply_text(alert.replace("New event", "Event added", 1))
    await _alert_family(context, profile, alert)


def _upcoming_events(context: ContextTypes.DEFAULT_TYPE, family_id: str) -> list[CalendarEvent]:
    """Events from today on, in date order; /events numbers this list."""
    today = _today()
    events = []
    for event in _store(context).calendar.get_events(family_id):
        day = parse_iso_date(event.event_date)
        if day is not None and day >= today:
            events.append(event)
    return events


@authorized_only
async def cmd_events(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /events — numbered upcoming events."""
    profile = await _require_profile(update, context)
    if profile is None:
        return

    try:
        events = _upcoming_events(context, profile.family_id)
    except Exception as exc:
        logger.error("/events error: %s", exc)
        await update.message.reply_text("Couldn't load events. Please try again.")
        return

    if not events:
        await update.message.reply_text("No upcoming events.")
        return

    lines = ["📅 Upcoming events:\n"]
    for pos, event in enumerate(events, start=1):
        line = f"{pos}. {format_de_date(parse_iso_date(event.event_date))}"
        if event.event_time:
            line += f" {event.event_time}"
        lines.append(f"{line} {event.title}")
    lines.append("\n/moveevent <number> <YYYY-MM-DD> [HH:MM] or /delevent <number>")
    await update.message.reply_text("\n".join(lines))


async def _pick_event(
    update: Update, context: ContextTypes.DEFAULT_TYPE, profile: Profile, usage: str,
) -> CalendarEvent | None:
    if not context.args:
        await update.message.reply_text(usage)
        return None
    try:
        events = _upcoming_events(context, profile.family_id)
    except Exception as exc:
        logger.error("event lookup error: %s", exc)
        await update.message.reply_text("Couldn't load events. Please try again.")
        return None
    try:
        (index,) = _parse_positions(context.args[:1], len(events))
    except ValueError:
        await update.message.reply_text("Invalid number. Use /events to see the list.")
        return None
    return events[index]


@authorized_only
async def cmd_moveevent(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /moveevent <number> <YYYY-MM-DD> [HH:MM].

    Without a new time the event keeps its old one.
    """
    profile = await _require_profile(update, context)
    if profile is None:
        return

    usage = "Usage: /moveevent <number> <YYYY-MM-DD> [HH:MM]"
    args = context.args or []
    if len(args) < 2:
        await update.message.reply_text(usage)
        return
    event = await _pick_event(update, context, profile, usage)
    if event is None:
        return

    try:
        new_date = date.fromisoformat(args[1]).isoformat()
        new_time = event.event_time
        if len(args) > 2:
            datetime.strptime(args[2], "%H:%M")
            new_time = args[2]
    except ValueError:
        await update.message.reply_text("Invalid date or time. Use YYYY-MM-DD and HH:MM.")
        return

    try:
        _store(context).calendar.update_event(
            event.id, event.title, new_date, new_time, event.description,
        )
    except Exception as exc:
        logger.error("/moveevent error: %s", exc)
        await update.message.reply_text("Couldn't move the event. Please try again.")
        return

    alert = format_event_alert(replace(event, event_date=new_date, event_time=new_time))
    alert = alert.replace("New event", "Event moved", 1)
    await update.message.reply_text(alert)
    await _alert_family(context, profile, alert)


@authorized_only
async def cmd_delevent(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /delevent <number>."""
    profile = await _require_profile(update, context)
    if profile is None:
        return

    event = await _pick_event(update, context, profile, "Usage: /delevent <number>")
    if event is None:
        return

    try:
        _store(context).calendar.delete_event(event.id)
    except Exception as exc:
        logger.error("/delevent error: %s", exc)
        await update.message.reply_text("Couldn't delete the event. Please try again.")
        return
    await update.message.reply_text(f"🗑 Event deleted: {event.title}")


# ---------------------------------------------------------------------------
# Command handlers: contacts
# ---------------------------------------------------------------------------


def _contacts_in_order(
    context: ContextTypes.DEFAULT_TYPE, family_id: str,
) -> list[tuple[str | None, Contact]]:
    """(household name, contact) pairs in /contacts order: households first."""
    store = _store(context)
    ordered: list[tuple[str | None, Contact]] = []
    for household in store.contacts.get_contact_families(family_id):
        ordered.extend((household.family_name, c) for c in household.contacts)
    ordered.extend((None, c) for c in store.contacts.get_individual_contacts(family_id))
    return ordered


def _format_contact(pos: int, contact: Contact) -> str:
    line = f"{pos}. {contact.full_name}"
    born = parse_iso_date(contact.birthdate)
    if born is not None:
        line += f" 🎂 {format_de_date(born)}"
    return line


@authorized_only
async def cmd_contacts(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /contacts [search] — contacts grouped by household."""
    profile = await _require_profile(update, context)
    if profile is None:
        return

    query = " ".join(context.args or []).strip()
    try:
        ordered = _contacts_in_order(context, profile.family_id)
        matches = (
            {c.id for c in _store(context).contacts.search_contacts(profile.family_id, query)}
            if query else None
        )
    except Exception as exc:
        logger.error("/contacts error: %s", exc)
        await update.message.reply_text("Couldn't load contacts. Please try again.")
        return

    if not ordered:
        await update.message.reply_text(
            "No contacts yet. Add one with /addcontact <first> <last> [YYYY-MM-DD]"
        )
        return

    lines = ["👤 Contacts:"]
    current_household: str | None = None
    for pos, (household, contact) in enumerate(ordered, start=1):
        if matches is not None and contact.id not in matches:
            continue
        if household != current_household:
            lines.append(f"\n🏠 {household}" if household else "\nOthers")
            current_household = household
        lines.append(_format_contact(pos, contact))
    if len(lines) == 1:
        await update.message.reply_text("No matching contacts.")
        return
    await update.message.reply_text("\n".join(lines))


@authorized_only
async def cmd_addcontact(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /addcontact <first> [last] [YYYY-MM-DD] [| household].

    A household that does not exist yet is created.
    """
    profile = await _require_profile(update, context)
    if profile is None:
        return

    person, household_name = _split_pipe(" ".join(context.args or []))
    words = person.split()
    birthdate = None
    if len(words) > 1:
        try:
            birthdate = date.fromisoformat(words[-1]).isoformat()
            words.pop()
        except ValueError:
            pass
    if not words:
        await update.message.reply_text(
            "Usage: /addcontact <first> <last> [YYYY-MM-DD] [| household]\n"
            "e.g. /addcontact Erna Schmidt 1950-03-02 | Schmidt"
        )
        return

    contacts_db = _store(context).contacts
    try:
        household_id = None
        if household_name:
            existing = {
                h.family_name.lower(): h for h in contacts_db.get_contact_families(profile.family_id)
            }
            household = existing.get(household_name.lower())
            if household is None:
                household = contacts_db.add_contact_family(profile.family_id, household_name)
            household_id = household.id
        contact = contacts_db.add_contact(
            profile.family_id, words[0], " ".join(words[1:]),
            contact_family_id=household_id, birthdate=birthdate,
        )
    except Exception as exc:
        logger.error("/addcontact error: %s", exc)
        await update.message.reply_text("Couldn't save the contact. Please try again.")
        return

    text = f"👤 Contact saved: {contact.full_name}"
    if birthdate:
        text += f" (🎂 {format_de_date(date.fromisoformat(birthdate))})"
    await update.message.reply_text(text)


async def _pick_contact(
    update: Update, context: ContextTypes.DEFAULT_TYPE, profile: Profile, usage: str,
) -> Contact | None:
    if not context.args:
        await update.message.reply_text(usage)
        return None
    try:
        ordered = _contacts_in_order(context, profile.family_id)
    except Exception as exc:
        logger.error("contact lookup error: %s", exc)
        await update.message.reply_text("Couldn't load contacts. Please try again.")
        return None
    try:
        (index,) = _parse_positions(context.args[:1], len(ordered))
    except ValueError:
        await update.message.reply_text("Invalid number. Use /contacts to see the list.")
        return None
    return ordered[index][1]


@authorized_only
async def cmd_birthday(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /birthday <number> <YYYY-MM-DD> — set a contact's birthdate."""
    profile = await _require_profile(update, context)
    if profile is None:
        return

    usage = "Usage: /birthday <number> <YYYY-MM-DD>"
    args = context.args or []
    if len(args) < 2:
        await update.message.reply_text(usage)
        return
    contact = await _pick_contact(update, context, profile, usage)
    if contact is None:
        return

    try:
        born = date.fromisoformat(args[1])
    except ValueError:
        await update.message.reply_text("Invalid date. Use YYYY-MM-DD.")
        return

    try:
        _store(context).contacts.update_contact(contact.id, birthdate=born.isoformat())
    except Exception as exc:
        logger.error("/birthday error: %s", exc)
        await update.message.reply_text("Couldn't save the birthday. Please try again.")
        return
    await update.message.reply_text(f"🎂 {contact.full_name}: {format_de_date(born)}")


@authorized_only
async def cmd_delcontact(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /delcontact <number>."""
    profile = await _require_profile(update, context)
    if profile is None:
        return

    contact = await _pick_contact(update, context, profile, "Usage: /delcontact <number>")
    if contact is None:
        return

    try:
        _store(context).contacts.delete_contact(contact.id)
    except Exception as exc:
        logger.error("/delcontact error: %s", exc)
        await update.message.reply_text("Couldn't delete the contact. Please try again.")
        return
    await update.message.reply_text(f"🗑 Contact deleted: {contact.full_name}")


# ---------------------------------------------------------------------------
# Command handlers: shopping & recipes
# ---------------------------------------------------------------------------


def _sorted_shopping(context: ContextTypes.DEFAULT_TYPE, family_id: str):
    return sort_shopping_items(_store(context).get_shopping_items(family_id))


@authorized_only
async def cmd_shopping(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /shopping — the list, deals first."""
    profile = await _require_profile(update, context)
    if profile is None:
        return

    try:
        items = _sorted_shopping(context, profile.family_id)
    except Exception as exc:
        logger.error("/shopping error: %s", exc)
        await update.message.reply_text("Couldn't load the shopping list. Please try again.")
        return

    if not items:
        await update.message.reply_text("The shopping list is empty.")
        return

    lines = ["🛒 Shopping list:\n"]
    for pos, item in enumerate(items, start=1):
        line = f"{pos}. {item.name}: {item.quantity} {item.unit}"
        extras = [item.store] if item.store else []
        if item.deal_date:
            extras.append(f"deal {item.deal_date}")
        if extras:
            line += f" ({', '.join(extras)})"
        lines.append(line)
    await update.message.reply_text("\n".join(lines))


@authorized_only
async def cmd_buy(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /buy [qty] [unit] <item> [@store].

    Without arguments, suggests items bought before.
    """
    profile = await _require_profile(update, context)
    if profile is None:
        return

    name, quantity, unit, store_name = _parse_item_args(context.args or [])
    if not name:
        text = "Usage: /buy [qty] [unit] <item> [@store]\ne.g. /buy 2 L Milch"
        try:
            bought = unique_purchased_items(
                _store(context).shopping.get_purchased_items(profile.family_id)
            )
        except Exception as exc:
            logger.error("/buy history error: %s", exc)
            bought = []
        if bought:
            lines = [f"/buy {qty} {item_unit} {item}" for item, qty, item_unit in bought[:10]]
            text += "\n\nBought before:\n" + "\n".join(lines)
        await update.message.reply_text(text)
        return

    try:
        plan = add_shopping_item(
            _store(context), profile.family_id, name, quantity, unit, profile.id,
            store=store_name,
        )
    except Exception as exc:
        logger.error("/buy error: %s", exc)
        await update.message.reply_text("Couldn't update the shopping list. Please try again.")
        return

    if plan.updates:
        await update.message.reply_text(
            f"🛒 {name} is already on the list, now {plan.updates[0].quantity} {unit}."
        )
    else:
        added = plan.inserts[0]
        await update.message.reply_text(f"🛒 Added {added.name}: {added.quantity} {added.unit}")
        await _alert_family(context, profile, f"🛒 New on the shopping list: {name}")


@authorized_only
async def cmd_bought(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /bought <number...> | all — record a purchase."""
    profile = await _require_profile(update, context)
    if profile is None:
        return

    if not context.args:
        await update.message.reply_text("Usage: /bought <number...> or /bought all")
        return

    try:
        items = _sorted_shopping(context, profile.family_id)
    except Exception as exc:
        logger.error("/bought error: %s", exc)
        await update.message.reply_text("Couldn't load the shopping list. Please try again.")
        return

    if not items:
        await update.message.reply_text("The shopping list is empty.")
        return

    if context.args[0].lower() == "all":
        chosen = items
    else:
        try:
            chosen = [items[i] for i in sorted(set(_parse_positions(context.args, len(items))))]
        except ValueError:
            await update.message.reply_text("Invalid number. Use /shopping to see the list.")
            return

    try:
        purchase = _store(context).shopping.create_purchase(
            profile.family_id, profile.id, [i.id for i in chosen],
        )
    except Exception as exc:
        logger.error("/bought error: %s", exc)
        await update.message.reply_text("Couldn't record the purchase. Please try again.")
        return

    names = ", ".join(i.name for i in purchase.items)
    await update.message.reply_text(f"🧾 Bought {len(purchase.items)} item(s): {names}")


@authorized_only
async def cmd_remove(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /remove <number...> — drop items without recording a purchase."""
    profile = await _require_profile(update, context)
    if profile is None:
        return

    if not context.args:
        await update.message.reply_text("Usage: /remove <number...>")
        return

    try:
        items = _sorted_shopping(context, profile.family_id)
    except Exception as exc:
        logger.error("/remove error: %s", exc)
        await update.message.reply_text("Couldn't load the shopping list. Please try again.")
        return

    try:
        chosen = [items[i] for i in sorted(set(_parse_positions(context.args, len(items))))]
    except ValueError:
        await update.message.reply_text("Invalid number. Use /shopping to see the list.")
        return

    try:
        _store(context).shopping.delete_items(profile.family_id, [i.id for i in chosen])
    except Exception as exc:
        logger.error("/remove error: %s", exc)
        await update.message.reply_text("Couldn't update the shopping list. Please try again.")
        return
    await update.message.reply_text(f"🗑 Removed: {', '.join(i.name for i in chosen)}")


@authorized_only
async def cmd_history(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /history — the last few shopping trips."""
    profile = await _require_profile(update, context)
    if profile is None:
        return

    try:
        purchases = _store(context).shopping.get_purchase_history(profile.family_id, limit=5)
    except Exception as exc:
        logger.error("/history error: %s", exc)
        await update.message.reply_text("Couldn't load the purchase history. Please try again.")
        return

    if not purchases:
        await update.message.reply_text("Nothing bought yet.")
        return

    blocks = ["🧾 Recent purchases:"]
    for purchase in purchases:
        header = format_de_date(parse_iso_date(purchase.purchased_at))
        items = "\n".join(f"  {i.name}: {i.quantity} {i.unit}" for i in purchase.items)
        blocks.append(f"{header}\n{items}")
    await update.message.reply_text("\n\n".join(blocks))


@authorized_only
async def cmd_recipes(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /recipes [search] — numbered recipe list."""
    profile = await _require_profile(update, context)
    if profile is None:
        return

    recipes_db = _store(context).recipes
    try:
        recipes = recipes_db.get_recipes(profile.family_id)
        query = " ".join(context.args or []).strip()
        matches = {r.id for r in recipes_db.search_recipes(profile.family_id, query)} if query else None
        marked = {c.recipe_id for c in recipes_db.get_active_cookings(profile.family_id)}
    except Exception as exc:
        logger.error("/recipes error: %s", exc)
        await update.message.reply_text("Couldn't load recipes. Please try again.")
        return

    if not recipes:
        await update.message.reply_text("No recipes yet.")
        return

    lines = ["📖 Recipes:\n"]
    for pos, recipe in enumerate(recipes, start=1):
        if matches is not None and recipe.id not in matches:
            continue
        line = f"{pos}. {recipe.name}"
        if recipe.servings:
            line += f" ({recipe.servings} servings)"
        if recipe.id in marked:
            line += " 🍳"
        lines.append(line)
    if len(lines) == 1:
        await update.message.reply_text("No matching recipes.")
        return
    lines.append("\nUse /cook <number> [servings] to shop for one.")
    await update.message.reply_text("\n".join(lines))


@authorized_only
async def cmd_addrecipe(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /addrecipe <name> | <servings> | <ingredient>; <ingredient>; ...

    Each ingredient reads like /buy: [qty] [unit] name.
    """
    profile = await _require_profile(update, context)
    if profile is None:
        return

    parts = [p.strip() for p in " ".join(context.args or []).split("|")]
    usage = "Usage: /addrecipe <name> | <servings> | 500 g Mehl; 3 Stk Eier; Salz"
    if len(parts) != 3 or not parts[0]:
        await update.message.reply_text(usage)
        return

    name, servings_text, ingredients_text = parts
    try:
        servings = int(servings_text) if servings_text else None
    except ValueError:
        await update.message.reply_text(usage)
        return

    ingredients = []
    for chunk in ingredients_text.split(";"):
        ing_name, quantity, unit, _ = _parse_item_args(chunk.split())
        if ing_name:
            ingredients.append(RecipeIngredient(name=ing_name, quantity=quantity, unit=unit))
    if not ingredients:
        await update.message.reply_text(usage)
        return

    try:
        recipe = _store(context).recipes.add_recipe(
            profile.family_id, name, ingredients, servings=servings, created_by_id=profile.id,
        )
    except Exception as exc:
        logger.error("/addrecipe error: %s", exc)
        await update.message.reply_text("Couldn't save the recipe. Please try again.")
        return
    await update.message.reply_text(
        f"📖 Recipe saved: {recipe.name} ({len(recipe.ingredients)} ingredients)"
    )


@authorized_only
async def cmd_cook(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /cook <number> [servings] — scale and merge into the shopping list."""
    profile = await _require_profile(update, context)
    if profile is None:
        return

    args = context.args or []
    if not args:
        await update.message.reply_text("Usage: /cook <number> [servings]\nUse /recipes to see the list.")
        return

    store = _store(context)
    try:
        recipes = store.recipes.get_recipes(profile.family_id)
        (index,) = _parse_positions(args[:1], len(recipes))
        servings = int(args[1]) if len(args) > 1 else None
        if servings is not None and servings <= 0:
            raise ValueError("servings must be positive")
    except ValueError:
        await update.message.reply_text("Invalid recipe number or servings.")
        return
    except Exception as exc:
        logger.error("/cook error: %s", exc)
        await update.message.reply_text("Couldn't load recipes. Please try again.")
        return

    recipe = recipes[index]
    try:
        plan = add_recipe_to_shopping(store, recipe, profile.family_id, profile.id, servings)
    except NothingSelectedError:
        await update.message.reply_text(f"'{recipe.name}' has no ingredients marked for shopping.")
        return
    except Exception as exc:
        logger.error("/cook error: %s", exc)
        await update.message.reply_text("Couldn't update the shopping list. Please try again.")
        return

    await update.message.reply_text(f"🍳 {cooking_summary(recipe, plan)}")


async def _pick_recipe(
    update: Update, context: ContextTypes.DEFAULT_TYPE, profile: Profile, usage: str,
) -> Recipe | None:
    if not context.args:
        await update.message.reply_text(usage)
        return None
    try:
        recipes = _store(context).recipes.get_recipes(profile.family_id)
    except Exception as exc:
        logger.error("recipe lookup error: %s", exc)
        await update.message.reply_text("Couldn't load recipes. Please try again.")
        return None
    try:
        (index,) = _parse_positions(context.args[:1], len(recipes))
    except ValueError:
        await update.message.reply_text("Invalid number. Use /recipes to see the list.")
        return None
    return recipes[index]


@authorized_only
async def cmd_cooked(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /cooked <number> — close a recipe's cooking mark."""
    profile = await _require_profile(update, context)
    if profile is None:
        return

    recipe = await _pick_recipe(update, context, profile, "Usage: /cooked <number>")
    if recipe is None:
        return

    try:
        cooking = _store(context).recipes.mark_as_cooked(recipe.id, profile.family_id, profile.id)
    except Exception as exc:
        logger.error("/cooked error: %s", exc)
        await update.message.reply_text("Couldn't update the recipe. Please try again.")
        return

    if cooking is None:
        await update.message.reply_text(
            f"'{recipe.name}' isn't marked for cooking. Use /cook first."
        )
        return
    await update.message.reply_text(f"🍽 '{recipe.name}' cooked. Enjoy!")


@authorized_only
async def cmd_delrecipe(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /delrecipe <number>."""
    profile = await _require_profile(update, context)
    if profile is None:
        return

    recipe = await _pick_recipe(update, context, profile, "Usage: /delrecipe <number>")
    if recipe is None:
        return

    try:
        _store(context).recipes.delete_recipe(recipe.id)
    except Exception as exc:
        logger.error("/delrecipe error: %s", exc)
        await update.message.reply_text("Couldn't delete the recipe. Please try again.")
        return
    await update.message.reply_text(f"🗑 Recipe deleted: {recipe.name}")


# ---------------------------------------------------------------------------
# Command handlers: notes & settings
# ---------------------------------------------------------------------------


@authorized_only
async def cmd_notes(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /notes — newest notes first."""
    profile = await _require_profile(update, context)
    if profile is None:
        return

    try:
        notes = _store(context).notes.get_notes(profile.family_id)
    except Exception as exc:
        logger.error("/notes error: %s", exc)
        await update.message.reply_text("Couldn't load notes. Please try again.")
        return

    if not notes:
        await update.message.reply_text("No notes yet.")
        return

    blocks = []
    for pos, note in enumerate(notes, start=1):
        block = f"{pos}. 📝 {note.title}"
        if note.content:
            block += f"\n{note.content}"
        blocks.append(block)
    await update.message.reply_text("\n\n".join(blocks))


@authorized_only
async def cmd_delnote(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /delnote <number>."""
    profile = await _require_profile(update, context)
    if profile is None:
        return

    if not context.args:
        await update.message.reply_text("Usage: /delnote <number>")
        return

    notes_db = _store(context).notes
    try:
        notes = notes_db.get_notes(profile.family_id)
        (index,) = _parse_positions(context.args[:1], len(notes))
    except ValueError:
        await update.message.reply_text("Invalid number. Use /notes to see the list.")
        return
    except Exception as exc:
        logger.error("/delnote error: %s", exc)
        await update.message.reply_text("Couldn't load notes. Please try again.")
        return

    try:
        notes_db.delete_note(notes[index].id)
    except Exception as exc:
        logger.error("/delnote error: %s", exc)
        await update.message.reply_text("Couldn't delete the note. Please try again.")
        return
    await update.message.reply_text(f"🗑 Note deleted: {notes[index].title}")


@authorized_only
async def cmd_note(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /note <title> | <text>."""
    profile = await _require_profile(update, context)
    if profile is None:
        return

    title, content = _split_pipe(" ".join(context.args or []))
    if not title:
        await update.message.reply_text("Usage: /note <title> | <text>")
        return

    try:
        note = _store(context).notes.add_note(profile.family_id, title, content, profile.id)
    except Exception as exc:
        logger.error("/note error: %s", exc)
        await update.message.reply_text("Couldn't save the note. Please try again.")
        return
    await update.message.reply_text(f"📝 Note saved: {note.title}")


@authorized_only
async def cmd_notify(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /notify on|off."""
    profile = await _require_profile(update, context)
    if profile is None:
        return

    choice = (context.args or [""])[0].lower()
    if choice not in ("on", "off"):
        state = "on" if profile.notifications else "off"
        await update.message.reply_text(f"Notifications are {state}. Use /notify on or /notify off.")
        return

    try:
        _store(context).families.set_notifications(profile.id, choice == "on")
    except Exception as exc:
        logger.error("/notify error: %s", exc)
        await update.message.reply_text("Couldn't change notifications. Please try again.")
        return
    await update.message.reply_text(f"🔔 Notifications {choice}.")


# ---------------------------------------------------------------------------
# App builder
# ---------------------------------------------------------------------------


def build_app(
    store: SQLiteFamilyStore | None = None,
    notifier: NotificationPort | None = None,
) -> Application:
    """Build and configure the Telegram Application with all handlers.

    Args:
        store: Family data store. Defaults to SQLiteFamilyStore on
               settings.DATABASE_PATH.
        notifier: Notification port implementation. Defaults to TelegramNotifier
                  (created from the bot instance after app is built).
    """
    app = ApplicationBuilder().token(settings.TELEGRAM_BOT_TOKEN).build()

    if store is None:
        from familyhub.adapters.sqlite_store import SQLiteFamilyStore
        store = SQLiteFamilyStore()

    if notifier is None:
        from familyhub.adapters.telegram_notifier import TelegramNotifier
        notifier = TelegramNotifier(app.bot)

    # Store ports in bot_data for handler access
    app.bot_data["store"] = store
    app.bot_data["notifier"] = notifier

    commands = {
        "start": cmd_start,
        "help": cmd_help,
        "newfamily": cmd_newfamily,
        "join": cmd_join,
        "today": cmd_today,
        "week": cmd_week,
        "month": cmd_month,
        "upcoming": cmd_upcoming,
        "members": cmd_members,
        "todos": cmd_todos,
        "addtodo": cmd_addtodo,
        "done": cmd_done,
        "comment": cmd_comment,
        "deltodo": cmd_deltodo,
        "events": cmd_events,
        "addevent": cmd_addevent,
        "moveevent": cmd_moveevent,
        "delevent": cmd_delevent,
        "contacts": cmd_contacts,
        "addcontact": cmd_addcontact,
        "birthday": cmd_birthday,
        "delcontact": cmd_delcontact,
        "birthdays": cmd_birthdays,
        "shopping": cmd_shopping,
        "buy": cmd_buy,
        "bought": cmd_bought,
        "remove": cmd_remove,
        "history": cmd_history,
        "recipes": cmd_recipes,
        "addrecipe": cmd_addrecipe,
        "cook": cmd_cook,
        "cooked": cmd_cooked,
        "delrecipe": cmd_delrecipe,
        "notes": cmd_notes,
        "note": cmd_note,
        "delnote": cmd_delnote,
        "notify": cmd_notify,
    }
    for name, handler in commands.items():
        app.add_handler(CommandHandler(name, handler))
    app.add_handler(CallbackQueryHandler(_handle_todo_done_callback, pattern=r"^tododone:"))

    _setup_daily_digest(app, store, notifier)

    logger.info("Telegram bot application built with %d handlers", len(app.handlers[0]))
    return app


def _setup_daily_digest(
    app: Application,
    store: SQLiteFamilyStore,
    notifier: NotificationPort,
) -> None:
    """Register the daily digest job at DAILY_DIGEST_HOUR in TIMEZONE."""
    tz = ZoneInfo(settings.TIMEZONE)
    digest_time = dt_time(hour=settings.DAILY_DIGEST_HOUR, minute=0, tzinfo=tz)

    async def _digest_job_callback(context: ContextTypes.DEFAULT_TYPE) -> None:
        await send_daily_digest(notifier, store, day=_today())

    app.job_queue.run_daily(
        _digest_job_callback,
        time=digest_time,
        name="daily_digest",
    )

    logger.info(
        "Daily digest scheduled at %02d:00 %s",
        settings.DAILY_DIGEST_HOUR,
        settings.TIMEZONE,
    )


def main() -> None:
    """Entry point: build the app and start polling."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logger.info("Starting FamilyHub bot...")
    app = build_app()
    app.run_polling()


if __name__ == "__main__":
    main()
