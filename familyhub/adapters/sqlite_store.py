"""SQLite store adapter — implements RowSource and MutationSink.

Bundles the per-aggregate repositories behind one object so the core
services and the bot see a single family store.
"""

from __future__ import annotations

import logging

from familyhub.data.db import (
    CalendarDB,
    ContactDB,
    FamilyDB,
    NoteDB,
    RecipeDB,
    ShoppingDB,
    TodoDB,
)
from familyhub.data.models import (
    CalendarEvent,
    Contact,
    Profile,
    ShoppingItem,
    Todo,
    TodoComment,
)

logger = logging.getLogger(__name__)


class SQLiteFamilyStore:
    """SQLite implementation of RowSource and MutationSink."""

    def __init__(self, db_path: str | None = None) -> None:
        self.families = FamilyDB(db_path)
        self.calendar = CalendarDB(db_path)
        self.todos = TodoDB(db_path)
        self.contacts = ContactDB(db_path)
        self.shopping = ShoppingDB(db_path)
        self.recipes = RecipeDB(db_path)
        self.notes = NoteDB(db_path)

    # -- RowSource ---------------------------------------------------------

    def get_calendar_events(self, family_id: str) -> list[CalendarEvent]:
        return self.calendar.get_events(family_id)

    def get_todos_for_calendar(self, family_id: str) -> list[Todo]:
        return self.todos.get_todos_for_calendar(family_id)

    def get_comments_for_todos(self, todo_ids: list[str]) -> dict[str, list[TodoComment]]:
        return self.todos.get_comments(todo_ids)

    def get_birthdays(self, family_id: str) -> list[Contact]:
        return self.contacts.get_birthdays(family_id)

    def get_shopping_items_for_calendar(self, family_id: str) -> list[ShoppingItem]:
        return self.shopping.get_shopping_items_for_calendar(family_id)

    def get_shopping_items(self, family_id: str) -> list[ShoppingItem]:
        return self.shopping.get_shopping_items(family_id)

    def list_subscribers(self, family_id: str | None = None) -> list[Profile]:
        return self.families.list_subscribers(family_id)

    # -- MutationSink ------------------------------------------------------

    def update_shopping_quantity(self, item_id: str, quantity: str) -> None:
        self.shopping.update_quantity(item_id, quantity)

    def add_shopping_item(
        self,
        family_id: str,
        name: str,
        quantity: str,
        unit: str,
        created_by_id: str | None,
        store: str | None = None,
        deal_date: str | None = None,
    ) -> ShoppingItem:
        return self.shopping.add_shopping_item(
            family_id, name, quantity, unit, created_by_id, store=store, deal_date=deal_date,
        )

    def mark_recipe_for_cooking(
        self, recipe_id: str, family_id: str, marked_by_id: str | None,
    ) -> None:
        self.recipes.mark_for_cooking(recipe_id, family_id, marked_by_id)
