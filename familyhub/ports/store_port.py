"""Store ports — the data-store contracts the core services depend on.

`RowSource` hands out a family's rows, `MutationSink` persists shopping-list
changes and cooking marks. Failures surface as exceptions and are never
swallowed here.
"""

from __future__ import annotations

from typing import Protocol

from familyhub.data.models import (
    CalendarEvent,
    Contact,
    Profile,
    ShoppingItem,
    Todo,
    TodoComment,
)


class RowSource(Protocol):
    """Read side: every method is scoped to one family."""

    def get_calendar_events(self, family_id: str) -> list[CalendarEvent]: ...

    def get_todos_for_calendar(self, family_id: str) -> list[Todo]: ...

    def get_comments_for_todos(self, todo_ids: list[str]) -> dict[str, list[TodoComment]]: ...

    def get_birthdays(self, family_id: str) -> list[Contact]: ...

    def get_shopping_items_for_calendar(self, family_id: str) -> list[ShoppingItem]: ...

    def get_shopping_items(self, family_id: str) -> list[ShoppingItem]: ...

    def list_subscribers(self, family_id: str | None = None) -> list[Profile]: ...


class MutationSink(Protocol):
    """Write side for shopping-list merges."""

    def get_shopping_items(self, family_id: str) -> list[ShoppingItem]: ...

    def update_shopping_quantity(self, item_id: str, quantity: str) -> None: ...

    def add_shopping_item(
        self,
        family_id: str,
        name: str,
        quantity: str,
        unit: str,
        created_by_id: str | None,
        store: str | None = None,
        deal_date: str | None = None,
    ) -> ShoppingItem: ...

    def mark_recipe_for_cooking(
        self, recipe_id: str, family_id: str, marked_by_id: str | None,
    ) -> None: ...
