"""
FamilyHub — SQLite storage.

One repository class per aggregate (families/profiles, calendar, todos,
contacts, shopping, recipes, notes). Every repository shares the same schema
and database file; each call opens a short-lived connection.
"""

from __future__ import annotations

import logging
import sqlite3
import uuid
from datetime import date, datetime
from pathlib import Path

from familyhub.data.models import (
    CalendarEvent,
    Contact,
    ContactFamily,
    Family,
    Note,
    Priority,
    Profile,
    Recipe,
    RecipeCooking,
    RecipeIngredient,
    ShoppingItem,
    ShoppingPurchase,
    ShoppingPurchaseItem,
    Todo,
    TodoComment,
)

logger = logging.getLogger(__name__)


class NotFoundError(LookupError):
    """Raised when an update targets a row that does not exist."""


_SCHEMA = """
CREATE TABLE IF NOT EXISTS families (
    id          TEXT PRIMARY KEY,
    name        TEXT NOT NULL,
    created_at  TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS profiles (
    id                TEXT PRIMARY KEY,
    family_id         TEXT NOT NULL REFERENCES families(id) ON DELETE CASCADE,
    name              TEXT NOT NULL,
    telegram_user_id  INTEGER UNIQUE,
    notifications     INTEGER NOT NULL DEFAULT 1
);

CREATE TABLE IF NOT EXISTS calendar_events (
    id             TEXT PRIMARY KEY,
    family_id      TEXT NOT NULL,
    title          TEXT NOT NULL,
    description    TEXT,
    event_date     TEXT NOT NULL,
    event_time     TEXT,
    created_by_id  TEXT,
    created_at     TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS todos (
    id              TEXT PRIMARY KEY,
    family_id       TEXT NOT NULL,
    task            TEXT NOT NULL,
    description     TEXT,
    is_done         INTEGER NOT NULL DEFAULT 0,
    due_at          TEXT,
    priority        TEXT NOT NULL DEFAULT 'none',
    assigned_to_id  TEXT,
    created_by_id   TEXT,
    done_by_id      TEXT,
    done_at         TEXT,
    created_at      TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS todo_comments (
    id          TEXT PRIMARY KEY,
    todo_id     TEXT NOT NULL REFERENCES todos(id) ON DELETE CASCADE,
    text        TEXT NOT NULL,
    user_id     TEXT,
    created_at  TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS contact_families (
    id            TEXT PRIMARY KEY,
    family_id     TEXT NOT NULL,
    family_name   TEXT NOT NULL,
    street        TEXT,
    house_number  TEXT,
    zip           TEXT,
    city          TEXT,
    country       TEXT,
    created_at    TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS contacts (
    id                 TEXT PRIMARY KEY,
    family_id          TEXT NOT NULL,
    contact_family_id  TEXT REFERENCES contact_families(id) ON DELETE CASCADE,
    first_name         TEXT NOT NULL,
    last_name          TEXT NOT NULL,
    birthdate          TEXT,
    phone              TEXT,
    phone_landline     TEXT,
    email              TEXT,
    street             TEXT,
    house_number       TEXT,
    zip                TEXT,
    city               TEXT,
    country            TEXT,
    created_at         TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS shopping_items (
    id             TEXT PRIMARY KEY,
    family_id      TEXT NOT NULL,
    name           TEXT NOT NULL,
    quantity       TEXT NOT NULL,
    unit           TEXT NOT NULL,
    created_by_id  TEXT,
    store          TEXT,
    deal_date      TEXT,
    created_at     TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS shopping_purchases (
    id               TEXT PRIMARY KEY,
    family_id        TEXT NOT NULL,
    purchased_at     TEXT NOT NULL,
    purchased_by_id  TEXT
);

CREATE TABLE IF NOT EXISTS shopping_purchase_items (
    id           TEXT PRIMARY KEY,
    purchase_id  TEXT NOT NULL REFERENCES shopping_purchases(id) ON DELETE CASCADE,
    name         TEXT NOT NULL,
    quantity     TEXT NOT NULL,
    unit         TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS recipes (
    id             TEXT PRIMARY KEY,
    family_id      TEXT NOT NULL,
    name           TEXT NOT NULL,
    instructions   TEXT,
    servings       INTEGER,
    image_url      TEXT,
    created_by_id  TEXT,
    created_at     TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS recipe_ingredients (
    id               TEXT PRIMARY KEY,
    recipe_id        TEXT NOT NULL REFERENCES recipes(id) ON DELETE CASCADE,
    name             TEXT NOT NULL,
    quantity         TEXT NOT NULL,
    unit             TEXT NOT NULL,
    add_to_shopping  INTEGER NOT NULL DEFAULT 1,
    order_index      INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS recipe_cookings (
    id            TEXT PRIMARY KEY,
    recipe_id     TEXT NOT NULL REFERENCES recipes(id) ON DELETE CASCADE,
    family_id     TEXT NOT NULL,
    marked_at     TEXT NOT NULL,
    marked_by_id  TEXT,
    cooked_at     TEXT,
    cooked_by_id  TEXT
);

CREATE TABLE IF NOT EXISTS notes (
    id             TEXT PRIMARY KEY,
    family_id      TEXT NOT NULL,
    title          TEXT NOT NULL,
    content        TEXT NOT NULL DEFAULT '',
    created_by_id  TEXT,
    created_at     TEXT NOT NULL
);
"""


def _new_id() -> str:
    return str(uuid.uuid4())


def _now() -> str:
    return datetime.now().isoformat()


def _placeholders(values: list) -> str:
    return ", ".join("?" for _ in values)


def _normalize_date(value: str) -> str:
    """Any form date.fromisoformat accepts, stored as YYYY-MM-DD."""
    return date.fromisoformat(value).isoformat()


class _SQLiteStore:
    """Shared connection and schema handling for the repositories."""

    def __init__(self, db_path: str | None = None) -> None:
        if db_path is None:
            from familyhub.config import settings
            db_path = settings.DATABASE_PATH

        self._db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.executescript(_SCHEMA)
        logger.debug("%s schema initialized at %s", type(self).__name__, self._db_path)

    def _update_fields(
        self, table: str, row_id: str, fields: dict, allowed: tuple[str, ...],
    ) -> None:
        """UPDATE the whitelisted columns of one row; NotFoundError if absent."""
        unknown = set(fields) - set(allowed)
        if unknown:
            raise ValueError(f"Unknown {table} fields: {sorted(unknown)}")
        if not fields:
            return
        assignments = ", ".join(f"{col} = ?" for col in fields)
        with self._connect() as conn:
            cursor = conn.execute(
                f"UPDATE {table} SET {assignments} WHERE id = ?",
                (*fields.values(), row_id),
            )
        if cursor.rowcount == 0:
            raise NotFoundError(f"{table} row {row_id} not found")

    def _delete(self, table: str, row_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute(f"DELETE FROM {table} WHERE id = ?", (row_id,))
        return cursor.rowcount > 0


# ---------------------------------------------------------------------------
# Families & profiles
# ---------------------------------------------------------------------------


class FamilyDB(_SQLiteStore):
    """Families (tenants) and their member profiles."""

    @staticmethod
    def _row_to_profile(row: sqlite3.Row) -> Profile:
        return Profile(
            id=row["id"],
            family_id=row["family_id"],
            name=row["name"],
            telegram_user_id=row["telegram_user_id"],
            notifications=bool(row["notifications"]),
        )

    def create_family(self, name: str) -> Family:
        family = Family(id=_new_id(), name=name.strip(), created_at=_now())
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO families (id, name, created_at) VALUES (?, ?, ?)",
                (family.id, family.name, family.created_at),
            )
        logger.info("Family created: %s '%s'", family.id, family.name)
        return family

    def get_family(self, family_id: str) -> Family | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM families WHERE id = ?", (family_id,)
            ).fetchone()
        if row is None:
            return None
        return Family(id=row["id"], name=row["name"], created_at=row["created_at"])

    def add_profile(
        self, family_id: str, name: str, telegram_user_id: int | None = None,
    ) -> Profile:
        if self.get_family(family_id) is None:
            raise NotFoundError(f"Family {family_id} not found")
        profile = Profile(
            id=_new_id(),
            family_id=family_id,
            name=name.strip(),
            telegram_user_id=telegram_user_id,
        )
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO profiles (id, family_id, name, telegram_user_id, notifications)
                VALUES (?, ?, ?, ?, 1)
                """,
                (profile.id, family_id, profile.name, telegram_user_id),
            )
        logger.info("Profile %s '%s' joined family %s", profile.id, profile.name, family_id)
        return profile

    def get_by_telegram_id(self, telegram_user_id: int) -> Profile | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM profiles WHERE telegram_user_id = ?", (telegram_user_id,)
            ).fetchone()
        return self._row_to_profile(row) if row else None

    def list_profiles(self, family_id: str) -> list[Profile]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM profiles WHERE family_id = ? ORDER BY name", (family_id,)
            ).fetchall()
        return [self._row_to_profile(r) for r in rows]

    def set_notifications(self, profile_id: str, enabled: bool) -> None:
        self._update_fields(
            "profiles", profile_id, {"notifications": int(enabled)}, ("notifications",),
        )
        logger.info("Notifications %s for profile %s", "on" if enabled else "off", profile_id)

    def list_subscribers(self, family_id: str | None = None) -> list[Profile]:
        """Profiles that receive digests and alerts (need a Telegram id)."""
        query = (
            "SELECT * FROM profiles WHERE notifications = 1 "
            "AND telegram_user_id IS NOT NULL"
        )
        params: list = []
        if family_id is not None:
            query += " AND family_id = ?"
            params.append(family_id)
        query += " ORDER BY family_id, name"
        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_profile(r) for r in rows]


# ---------------------------------------------------------------------------
# Calendar events
# ---------------------------------------------------------------------------


class CalendarDB(_SQLiteStore):
    """Family calendar events (date plus optional time of day)."""

    @staticmethod
    def _row_to_event(row: sqlite3.Row) -> CalendarEvent:
        return CalendarEvent(
            id=row["id"],
            family_id=row["family_id"],
            title=row["title"],
            description=row["description"],
            event_date=row["event_date"],
            event_time=row["event_time"],
            created_by_id=row["created_by_id"],
            created_at=row["created_at"],
        )

    def add_event(
        self,
        family_id: str,
        title: str,
        event_date: str,
        event_time: str | None = None,
        description: str | None = None,
        created_by_id: str | None = None,
    ) -> CalendarEvent:
        """Insert an event. Raises ValueError for a malformed event_date."""
        event_date = _normalize_date(event_date)
        event = CalendarEvent(
            id=_new_id(),
            family_id=family_id,
            title=title.strip(),
            event_date=event_date,
            event_time=event_time or None,
            description=description or None,
            created_by_id=created_by_id,
            created_at=_now(),
        )
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO calendar_events
                    (id, family_id, title, description, event_date, event_time,
                     created_by_id, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    event.id, family_id, event.title, event.description,
                    event.event_date, event.event_time, created_by_id, event.created_at,
                ),
            )
        logger.info("Event added: %s '%s' on %s", event.id, event.title, event_date)
        return event

    def get_events(self, family_id: str) -> list[CalendarEvent]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM calendar_events WHERE family_id = ? "
                "ORDER BY event_date, event_time",
                (family_id,),
            ).fetchall()
        return [self._row_to_event(r) for r in rows]

    def update_event(
        self,
        event_id: str,
        title: str,
        event_date: str,
        event_time: str | None = None,
        description: str | None = None,
    ) -> None:
        self._update_fields(
            "calendar_events",
            event_id,
            {
                "title": title.strip(),
                "event_date": _normalize_date(event_date),
                "event_time": event_time or None,
                "description": description or None,
            },
            ("title", "event_date", "event_time", "description"),
        )
        logger.info("Event %s updated", event_id)

    def delete_event(self, event_id: str) -> bool:
        deleted = self._delete("calendar_events", event_id)
        if deleted:
            logger.info("Event %s deleted", event_id)
        return deleted


# ---------------------------------------------------------------------------
# Todos & comments
# ---------------------------------------------------------------------------

_TODO_SELECT = """
    SELECT t.*,
           a.id AS a_id, a.family_id AS a_family_id, a.name AS a_name,
           a.telegram_user_id AS a_telegram_user_id, a.notifications AS a_notifications,
           c.id AS c_id, c.family_id AS c_family_id, c.name AS c_name,
           c.telegram_user_id AS c_telegram_user_id, c.notifications AS c_notifications,
           d.id AS d_id, d.family_id AS d_family_id, d.name AS d_name,
           d.telegram_user_id AS d_telegram_user_id, d.notifications AS d_notifications
    FROM todos t
    LEFT JOIN profiles a ON a.id = t.assigned_to_id
    LEFT JOIN profiles c ON c.id = t.created_by_id
    LEFT JOIN profiles d ON d.id = t.done_by_id
"""


class TodoDB(_SQLiteStore):
    """Family todos with assignee/creator resolved and threaded comments."""

    @staticmethod
    def _related_profile(row: sqlite3.Row, prefix: str) -> Profile | None:
        if row[f"{prefix}_id"] is None:
            return None
        return Profile(
            id=row[f"{prefix}_id"],
            family_id=row[f"{prefix}_family_id"],
            name=row[f"{prefix}_name"],
            telegram_user_id=row[f"{prefix}_telegram_user_id"],
            notifications=bool(row[f"{prefix}_notifications"]),
        )

    @classmethod
    def _row_to_todo(cls, row: sqlite3.Row) -> Todo:
        return Todo(
            id=row["id"],
            family_id=row["family_id"],
            task=row["task"],
            description=row["description"],
            is_done=bool(row["is_done"]),
            due_at=row["due_at"],
            priority=Priority(row["priority"]),
            assigned_to_id=row["assigned_to_id"],
            created_by_id=row["created_by_id"],
            done_by_id=row["done_by_id"],
            done_at=row["done_at"],
            created_at=row["created_at"],
            assigned=cls._related_profile(row, "a"),
            creator=cls._related_profile(row, "c"),
            done_by=cls._related_profile(row, "d"),
        )

    @staticmethod
    def _row_to_comment(row: sqlite3.Row) -> TodoComment:
        return TodoComment(
            id=row["id"],
            todo_id=row["todo_id"],
            text=row["text"],
            user_id=row["user_id"],
            created_at=row["created_at"],
        )

    def add_todo(
        self,
        family_id: str,
        task: str,
        created_by_id: str | None = None,
        assigned_to_id: str | None = None,
        description: str | None = None,
        due_at: str | None = None,
        priority: Priority | str = Priority.NONE,
    ) -> Todo:
        todo_id = _new_id()
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO todos
                    (id, family_id, task, description, is_done, due_at, priority,
                     assigned_to_id, created_by_id, created_at)
                VALUES (?, ?, ?, ?, 0, ?, ?, ?, ?, ?)
                """,
                (
                    todo_id, family_id, task.strip(), description or None, due_at or None,
                    Priority(priority).value, assigned_to_id, created_by_id, _now(),
                ),
            )
        logger.info("Todo added: %s '%s'", todo_id, task)
        return self.get_todo(todo_id)

    def get_todo(self, todo_id: str) -> Todo | None:
        with self._connect() as conn:
            row = conn.execute(_TODO_SELECT + " WHERE t.id = ?", (todo_id,)).fetchone()
        return self._row_to_todo(row) if row else None

    def get_todos(self, family_id: str, status: str = "all") -> list[Todo]:
        """List todos; `status` is "open", "done" or "all"."""
        query = _TODO_SELECT + " WHERE t.family_id = ?"
        if status == "open":
            query += " AND t.is_done = 0"
        elif status == "done":
            query += " AND t.is_done = 1"
        elif status != "all":
            raise ValueError(f"Unknown todo filter: {status!r}")
        query += " ORDER BY t.created_at"
        with self._connect() as conn:
            rows = conn.execute(query, (family_id,)).fetchall()
        return [self._row_to_todo(r) for r in rows]

    def get_todos_for_calendar(self, family_id: str) -> list[Todo]:
        """Todos that carry a due date, earliest first."""
        with self._connect() as conn:
            rows = conn.execute(
                _TODO_SELECT + " WHERE t.family_id = ? AND t.due_at IS NOT NULL "
                "ORDER BY t.due_at",
                (family_id,),
            ).fetchall()
        return [self._row_to_todo(r) for r in rows]

    def set_done(self, todo_id: str, is_done: bool, done_by_id: str | None = None) -> Todo:
        fields = {
            "is_done": int(is_done),
            "done_by_id": done_by_id if is_done else None,
            "done_at": _now() if is_done else None,
        }
        self._update_fields("todos", todo_id, fields, ("is_done", "done_by_id", "done_at"))
        logger.info("Todo %s marked %s", todo_id, "done" if is_done else "open")
        return self.get_todo(todo_id)

    def delete_todo(self, todo_id: str) -> bool:
        deleted = self._delete("todos", todo_id)
        if deleted:
            logger.info("Todo %s deleted", todo_id)
        return deleted

    def add_comment(self, todo_id: str, text: str, user_id: str | None = None) -> TodoComment:
        if self.get_todo(todo_id) is None:
            raise NotFoundError(f"Todo {todo_id} not found")
        comment = TodoComment(
            id=_new_id(), todo_id=todo_id, text=text.strip(), user_id=user_id, created_at=_now(),
        )
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO todo_comments (id, todo_id, text, user_id, created_at) "
                "VALUES (?, ?, ?, ?, ?)",
                (comment.id, todo_id, comment.text, user_id, comment.created_at),
            )
        logger.info("Comment added to todo %s", todo_id)
        return comment

    def get_comments(self, todo_ids: list[str]) -> dict[str, list[TodoComment]]:
        """Comments grouped by todo id, newest first."""
        if not todo_ids:
            return {}
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT * FROM todo_comments WHERE todo_id IN ({_placeholders(todo_ids)}) "
                "ORDER BY created_at DESC",
                todo_ids,
            ).fetchall()
        grouped: dict[str, list[TodoComment]] = {}
        for row in rows:
            grouped.setdefault(row["todo_id"], []).append(self._row_to_comment(row))
        return grouped


# ---------------------------------------------------------------------------
# Contacts
# ---------------------------------------------------------------------------

_CONTACT_DETAILS = (
    "phone", "phone_landline", "email",
    "street", "house_number", "zip", "city", "country",
)
_ADDRESS_FIELDS = ("street", "house_number", "zip", "city", "country")


class ContactDB(_SQLiteStore):
    """Contacts (with birthdays) and the households grouping them."""

    @staticmethod
    def _row_to_contact(row: sqlite3.Row) -> Contact:
        return Contact(
            id=row["id"],
            family_id=row["family_id"],
            contact_family_id=row["contact_family_id"],
            first_name=row["first_name"],
            last_name=row["last_name"],
            birthdate=row["birthdate"],
            created_at=row["created_at"],
            **{col: row[col] for col in _CONTACT_DETAILS},
        )

    @staticmethod
    def _row_to_contact_family(row: sqlite3.Row) -> ContactFamily:
        return ContactFamily(
            id=row["id"],
            family_id=row["family_id"],
            family_name=row["family_name"],
            created_at=row["created_at"],
            **{col: row[col] for col in _ADDRESS_FIELDS},
        )

    def add_contact(
        self,
        family_id: str,
        first_name: str,
        last_name: str,
        contact_family_id: str | None = None,
        birthdate: str | None = None,
        **details: str | None,
    ) -> Contact:
        """Insert a contact. `details` accepts phone/email/address fields."""
        unknown = set(details) - set(_CONTACT_DETAILS)
        if unknown:
            raise ValueError(f"Unknown contact fields: {sorted(unknown)}")
        contact = Contact(
            id=_new_id(),
            family_id=family_id,
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            birthdate=_normalize_date(birthdate) if birthdate else None,
            contact_family_id=contact_family_id or None,
            created_at=_now(),
            **details,
        )
        cols = ("id", "family_id", "contact_family_id", "first_name", "last_name",
                "birthdate", *_CONTACT_DETAILS, "created_at")
        values = [getattr(contact, col) for col in cols]
        with self._connect() as conn:
            conn.execute(
                f"INSERT INTO contacts ({', '.join(cols)}) VALUES ({_placeholders(values)})",
                values,
            )
        logger.info("Contact added: %s '%s'", contact.id, contact.full_name)
        return contact

    def update_contact(self, contact_id: str, **fields: str | None) -> None:
        allowed = ("first_name", "last_name", "contact_family_id", "birthdate", *_CONTACT_DETAILS)
        if fields.get("birthdate"):
            fields["birthdate"] = _normalize_date(fields["birthdate"])
        self._update_fields("contacts", contact_id, fields, allowed)
        logger.info("Contact %s updated", contact_id)

    def delete_contact(self, contact_id: str) -> bool:
        deleted = self._delete("contacts", contact_id)
        if deleted:
            logger.info("Contact %s deleted", contact_id)
        return deleted

    def get_all_contacts(self, family_id: str) -> list[Contact]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM contacts WHERE family_id = ? ORDER BY last_name, first_name",
                (family_id,),
            ).fetchall()
        return [self._row_to_contact(r) for r in rows]

    def get_individual_contacts(self, family_id: str) -> list[Contact]:
        """Contacts that do not belong to a household."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM contacts WHERE family_id = ? AND contact_family_id IS NULL "
                "ORDER BY last_name, first_name",
                (family_id,),
            ).fetchall()
        return [self._row_to_contact(r) for r in rows]

    def get_birthdays(self, family_id: str) -> list[Contact]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM contacts WHERE family_id = ? AND birthdate IS NOT NULL "
                "ORDER BY birthdate",
                (family_id,),
            ).fetchall()
        return [self._row_to_contact(r) for r in rows]

    def search_contacts(self, family_id: str, query: str) -> list[Contact]:
        """Case-insensitive substring match on first or last name."""
        needle = query.strip().lower()
        return [
            c for c in self.get_all_contacts(family_id)
            if needle in c.first_name.lower() or needle in c.last_name.lower()
        ]

    def add_contact_family(
        self, family_id: str, family_name: str, **address: str | None,
    ) -> ContactFamily:
        unknown = set(address) - set(_ADDRESS_FIELDS)
        if unknown:
            raise ValueError(f"Unknown address fields: {sorted(unknown)}")
        household = ContactFamily(
            id=_new_id(),
            family_id=family_id,
            family_name=family_name.strip(),
            created_at=_now(),
            **address,
        )
        cols = ("id", "family_id", "family_name", *_ADDRESS_FIELDS, "created_at")
        values = [getattr(household, col) for col in cols]
        with self._connect() as conn:
            conn.execute(
                f"INSERT INTO contact_families ({', '.join(cols)}) "
                f"VALUES ({_placeholders(values)})",
                values,
            )
        logger.info("Contact family added: %s '%s'", household.id, household.family_name)
        return household

    def get_contact_families(self, family_id: str) -> list[ContactFamily]:
        """Households sorted by name, each with its contacts attached."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM contact_families WHERE family_id = ? ORDER BY family_name",
                (family_id,),
            ).fetchall()
            households = [self._row_to_contact_family(r) for r in rows]
            if not households:
                return []
            ids = [h.id for h in households]
            contact_rows = conn.execute(
                f"SELECT * FROM contacts WHERE contact_family_id IN ({_placeholders(ids)}) "
                "ORDER BY last_name, first_name",
                ids,
            ).fetchall()
        by_household: dict[str, list[Contact]] = {}
        for row in contact_rows:
            by_household.setdefault(row["contact_family_id"], []).append(self._row_to_contact(row))
        for household in households:
            household.contacts = by_household.get(household.id, [])
        return households


# ---------------------------------------------------------------------------
# Shopping
# ---------------------------------------------------------------------------


class ShoppingDB(_SQLiteStore):
    """Active shopping list plus purchase history."""

    @staticmethod
    def _row_to_item(row: sqlite3.Row) -> ShoppingItem:
        return ShoppingItem(
            id=row["id"],
            family_id=row["family_id"],
            name=row["name"],
            quantity=row["quantity"],
            unit=row["unit"],
            created_by_id=row["created_by_id"],
            store=row["store"],
            deal_date=row["deal_date"],
            created_at=row["created_at"],
        )

    @staticmethod
    def _row_to_purchase_item(row: sqlite3.Row) -> ShoppingPurchaseItem:
        return ShoppingPurchaseItem(
            id=row["id"],
            purchase_id=row["purchase_id"],
            name=row["name"],
            quantity=row["quantity"],
            unit=row["unit"],
        )

    def add_shopping_item(
        self,
        family_id: str,
        name: str,
        quantity: str,
        unit: str,
        created_by_id: str | None = None,
        store: str | None = None,
        deal_date: str | None = None,
    ) -> ShoppingItem:
        item = ShoppingItem(
            id=_new_id(),
            family_id=family_id,
            name=name.strip(),
            quantity=quantity,
            unit=unit,
            created_by_id=created_by_id,
            store=store or None,
            deal_date=deal_date or None,
            created_at=_now(),
        )
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO shopping_items
                    (id, family_id, name, quantity, unit, created_by_id, store,
                     deal_date, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    item.id, family_id, item.name, quantity, unit, created_by_id,
                    item.store, item.deal_date, item.created_at,
                ),
            )
        logger.info("Shopping item added: %s '%s' %s %s", item.id, item.name, quantity, unit)
        return item

    def get_shopping_items(self, family_id: str) -> list[ShoppingItem]:
        """Active list, newest first."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM shopping_items WHERE family_id = ? ORDER BY created_at DESC",
                (family_id,),
            ).fetchall()
        return [self._row_to_item(r) for r in rows]

    def get_shopping_items_for_calendar(self, family_id: str) -> list[ShoppingItem]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM shopping_items WHERE family_id = ? AND deal_date IS NOT NULL "
                "ORDER BY deal_date",
                (family_id,),
            ).fetchall()
        return [self._row_to_item(r) for r in rows]

    def update_quantity(self, item_id: str, quantity: str) -> None:
        self._update_fields("shopping_items", item_id, {"quantity": quantity}, ("quantity",))
        logger.info("Shopping item %s quantity set to %s", item_id, quantity)

    def delete_items(self, family_id: str, item_ids: list[str]) -> int:
        if not item_ids:
            return 0
        with self._connect() as conn:
            cursor = conn.execute(
                f"DELETE FROM shopping_items WHERE family_id = ? "
                f"AND id IN ({_placeholders(item_ids)})",
                [family_id, *item_ids],
            )
        logger.info("Deleted %d shopping items", cursor.rowcount)
        return cursor.rowcount

    def create_purchase(
        self, family_id: str, purchased_by_id: str | None, item_ids: list[str],
    ) -> ShoppingPurchase:
        """Move the given items off the active list into a purchase record."""
        if not item_ids:
            raise ValueError("A purchase needs at least one item")
        purchase = ShoppingPurchase(
            id=_new_id(),
            family_id=family_id,
            purchased_at=_now(),
            purchased_by_id=purchased_by_id,
        )
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT * FROM shopping_items WHERE family_id = ? "
                f"AND id IN ({_placeholders(item_ids)})",
                [family_id, *item_ids],
            ).fetchall()
            if len(rows) != len(set(item_ids)):
                raise NotFoundError("Some shopping items are not on this family's list")
            conn.execute(
                "INSERT INTO shopping_purchases (id, family_id, purchased_at, purchased_by_id) "
                "VALUES (?, ?, ?, ?)",
                (purchase.id, family_id, purchase.purchased_at, purchased_by_id),
            )
            for row in rows:
                line = ShoppingPurchaseItem(
                    id=_new_id(),
                    purchase_id=purchase.id,
                    name=row["name"],
                    quantity=row["quantity"],
                    unit=row["unit"],
                )
                conn.execute(
                    "INSERT INTO shopping_purchase_items (id, purchase_id, name, quantity, unit) "
                    "VALUES (?, ?, ?, ?, ?)",
                    (line.id, purchase.id, line.name, line.quantity, line.unit),
                )
                purchase.items.append(line)
            conn.execute(
                f"DELETE FROM shopping_items WHERE id IN ({_placeholders(item_ids)})",
                item_ids,
            )
        logger.info("Purchase %s recorded with %d items", purchase.id, len(purchase.items))
        return purchase

    def get_purchase_history(self, family_id: str, limit: int = 10) -> list[ShoppingPurchase]:
        """Most recent purchases first, each with its items."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM shopping_purchases WHERE family_id = ? "
                "ORDER BY purchased_at DESC LIMIT ?",
                (family_id, limit),
            ).fetchall()
            purchases = [
                ShoppingPurchase(
                    id=r["id"],
                    family_id=r["family_id"],
                    purchased_at=r["purchased_at"],
                    purchased_by_id=r["purchased_by_id"],
                )
                for r in rows
            ]
            if not purchases:
                return []
            ids = [p.id for p in purchases]
            item_rows = conn.execute(
                f"SELECT * FROM shopping_purchase_items WHERE purchase_id IN ({_placeholders(ids)})",
                ids,
            ).fetchall()
        by_purchase: dict[str, list[ShoppingPurchaseItem]] = {}
        for row in item_rows:
            by_purchase.setdefault(row["purchase_id"], []).append(self._row_to_purchase_item(row))
        for purchase in purchases:
            purchase.items = by_purchase.get(purchase.id, [])
        return purchases

    def get_purchased_items(self, family_id: str) -> list[ShoppingPurchaseItem]:
        """Every line ever bought by the family, for quick-add suggestions."""
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT i.* FROM shopping_purchase_items i
                JOIN shopping_purchases p ON p.id = i.purchase_id
                WHERE p.family_id = ?
                """,
                (family_id,),
            ).fetchall()
        return [self._row_to_purchase_item(r) for r in rows]


# ---------------------------------------------------------------------------
# Recipes
# ---------------------------------------------------------------------------


class RecipeDB(_SQLiteStore):
    """Recipes with ordered ingredients and "marked for cooking" records."""

    @staticmethod
    def _row_to_ingredient(row: sqlite3.Row) -> RecipeIngredient:
        return RecipeIngredient(
            id=row["id"],
            recipe_id=row["recipe_id"],
            name=row["name"],
            quantity=row["quantity"],
            unit=row["unit"],
            add_to_shopping=bool(row["add_to_shopping"]),
            order_index=row["order_index"],
        )

    @staticmethod
    def _row_to_recipe(row: sqlite3.Row) -> Recipe:
        return Recipe(
            id=row["id"],
            family_id=row["family_id"],
            name=row["name"],
            instructions=row["instructions"],
            servings=row["servings"],
            image_url=row["image_url"],
            created_by_id=row["created_by_id"],
            created_at=row["created_at"],
        )

    @staticmethod
    def _row_to_cooking(row: sqlite3.Row) -> RecipeCooking:
        return RecipeCooking(
            id=row["id"],
            recipe_id=row["recipe_id"],
            family_id=row["family_id"],
            marked_at=row["marked_at"],
            marked_by_id=row["marked_by_id"],
            cooked_at=row["cooked_at"],
            cooked_by_id=row["cooked_by_id"],
        )

    @staticmethod
    def _insert_ingredients(
        conn: sqlite3.Connection, recipe_id: str, ingredients: list[RecipeIngredient],
    ) -> None:
        # order_index follows list position, whatever the caller passed in
        for index, ing in enumerate(ingredients):
            conn.execute(
                """
                INSERT INTO recipe_ingredients
                    (id, recipe_id, name, quantity, unit, add_to_shopping, order_index)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    _new_id(), recipe_id, ing.name.strip(), ing.quantity, ing.unit,
                    int(ing.add_to_shopping), index,
                ),
            )

    def add_recipe(
        self,
        family_id: str,
        name: str,
        ingredients: list[RecipeIngredient],
        instructions: str | None = None,
        servings: int | None = None,
        image_url: str | None = None,
        created_by_id: str | None = None,
    ) -> Recipe:
        recipe_id = _new_id()
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO recipes
                    (id, family_id, name, instructions, servings, image_url,
                     created_by_id, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    recipe_id, family_id, name.strip(), instructions or None, servings,
                    image_url, created_by_id, _now(),
                ),
            )
            self._insert_ingredients(conn, recipe_id, ingredients)
        logger.info("Recipe added: %s '%s' (%d ingredients)", recipe_id, name, len(ingredients))
        return self.get_recipe(recipe_id)

    def delete_recipe(self, recipe_id: str) -> bool:
        deleted = self._delete("recipes", recipe_id)
        if deleted:
            logger.info("Recipe %s deleted", recipe_id)
        return deleted

    def _attach_ingredients(self, conn: sqlite3.Connection, recipes: list[Recipe]) -> None:
        if not recipes:
            return
        ids = [r.id for r in recipes]
        rows = conn.execute(
            f"SELECT * FROM recipe_ingredients WHERE recipe_id IN ({_placeholders(ids)}) "
            "ORDER BY order_index",
            ids,
        ).fetchall()
        by_recipe: dict[str, list[RecipeIngredient]] = {}
        for row in rows:
            by_recipe.setdefault(row["recipe_id"], []).append(self._row_to_ingredient(row))
        for recipe in recipes:
            recipe.ingredients = by_recipe.get(recipe.id, [])

    def get_recipe(self, recipe_id: str) -> Recipe | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM recipes WHERE id = ?", (recipe_id,)).fetchone()
            if row is None:
                return None
            recipe = self._row_to_recipe(row)
            self._attach_ingredients(conn, [recipe])
        return recipe

    def get_recipes(self, family_id: str) -> list[Recipe]:
        """All recipes of a family, newest first, ingredients attached."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM recipes WHERE family_id = ? ORDER BY created_at DESC",
                (family_id,),
            ).fetchall()
            recipes = [self._row_to_recipe(r) for r in rows]
            self._attach_ingredients(conn, recipes)
        return recipes

    def search_recipes(self, family_id: str, query: str) -> list[Recipe]:
        """Recipes whose name or any ingredient name contains `query`."""
        needle = query.strip().lower()
        return [
            r for r in self.get_recipes(family_id)
            if needle in r.name.lower() or any(needle in i.name.lower() for i in r.ingredients)
        ]

    def mark_for_cooking(
        self, recipe_id: str, family_id: str, marked_by_id: str | None,
    ) -> RecipeCooking:
        cooking = RecipeCooking(
            id=_new_id(),
            recipe_id=recipe_id,
            family_id=family_id,
            marked_at=_now(),
            marked_by_id=marked_by_id,
        )
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO recipe_cookings (id, recipe_id, family_id, marked_at, marked_by_id) "
                "VALUES (?, ?, ?, ?, ?)",
                (cooking.id, recipe_id, family_id, cooking.marked_at, marked_by_id),
            )
        logger.info("Recipe %s marked for cooking", recipe_id)
        return cooking

    def mark_as_cooked(
        self, recipe_id: str, family_id: str, cooked_by_id: str | None,
    ) -> RecipeCooking | None:
        """Close the latest open cooking mark; None if the recipe was not marked."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM recipe_cookings WHERE recipe_id = ? AND family_id = ? "
                "AND cooked_at IS NULL ORDER BY marked_at DESC LIMIT 1",
                (recipe_id, family_id),
            ).fetchone()
            if row is None:
                return None
            cooked_at = _now()
            conn.execute(
                "UPDATE recipe_cookings SET cooked_at = ?, cooked_by_id = ? WHERE id = ?",
                (cooked_at, cooked_by_id, row["id"]),
            )
        cooking = self._row_to_cooking(row)
        cooking.cooked_at = cooked_at
        cooking.cooked_by_id = cooked_by_id
        logger.info("Recipe %s marked as cooked", recipe_id)
        return cooking

    def get_active_cookings(self, family_id: str) -> list[RecipeCooking]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM recipe_cookings WHERE family_id = ? AND cooked_at IS NULL "
                "ORDER BY marked_at DESC",
                (family_id,),
            ).fetchall()
        return [self._row_to_cooking(r) for r in rows]


# ---------------------------------------------------------------------------
# Notes
# ---------------------------------------------------------------------------


class NoteDB(_SQLiteStore):
    """Free-form family notes."""

    @staticmethod
    def _row_to_note(row: sqlite3.Row) -> Note:
        return Note(
            id=row["id"],
            family_id=row["family_id"],
            title=row["title"],
            content=row["content"],
            created_by_id=row["created_by_id"],
            created_at=row["created_at"],
        )

    def add_note(
        self, family_id: str, title: str, content: str = "", created_by_id: str | None = None,
    ) -> Note:
        note = Note(
            id=_new_id(),
            family_id=family_id,
            title=title.strip(),
            content=content.strip(),
            created_by_id=created_by_id,
            created_at=_now(),
        )
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO notes (id, family_id, title, content, created_by_id, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (note.id, family_id, note.title, note.content, created_by_id, note.created_at),
            )
        logger.info("Note added: %s '%s'", note.id, note.title)
        return note

    def get_notes(self, family_id: str) -> list[Note]:
        """Newest first."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM notes WHERE family_id = ? ORDER BY created_at DESC",
                (family_id,),
            ).fetchall()
        return [self._row_to_note(r) for r in rows]

    def delete_note(self, note_id: str) -> bool:
        deleted = self._delete("notes", note_id)
        if deleted:
            logger.info("Note %s deleted", note_id)
        return deleted
