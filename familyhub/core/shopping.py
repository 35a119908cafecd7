"""Shopping list ordering and quick-add helpers — pure business logic."""

from __future__ import annotations

from collections.abc import Iterable

from familyhub.data.models import ShoppingItem, ShoppingPurchaseItem


def has_deal(item: ShoppingItem) -> bool:
    return bool(item.deal_date or item.store)


def _sort_key(item: ShoppingItem) -> tuple:
    if not has_deal(item):
        return (1, "", "", item.name.lower())
    # Dated deals first (earliest first), then store, then name
    return (
        0,
        item.deal_date or "9999-12-31",
        (item.store or "").lower(),
        item.name.lower(),
    )


def sort_shopping_items(items: Iterable[ShoppingItem]) -> list[ShoppingItem]:
    """Order the list for display.

    Items with a deal (a deal date and/or a store) come first, ordered by
    deal date, then store. Everything else follows alphabetically.
    """
    return sorted(items, key=_sort_key)


def unique_purchased_items(
    items: Iterable[ShoppingPurchaseItem],
) -> list[tuple[str, str, str]]:
    """Distinct (name, quantity, unit) combinations ever bought, sorted by name.

    Names compare case-insensitively; the first spelling seen is kept.
    """
    seen: dict[tuple[str, str, str], tuple[str, str, str]] = {}
    for item in items:
        key = (item.name.lower(), item.quantity, item.unit)
        if key not in seen:
            seen[key] = (item.name, item.quantity, item.unit)
    return sorted(seen.values(), key=lambda row: row[0].lower())
