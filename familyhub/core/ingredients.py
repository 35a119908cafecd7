"""
FamilyHub — Ingredient Scaler & Merger.

Scales a recipe's ingredient quantities to a desired number of servings, and
plans how a batch of ingredients lands on the family shopping list: rows
matching an existing item (same name ignoring case, same unit) become
quantity updates, everything else becomes an insert.

No I/O: the returned MergePlan is applied by the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from typing import Any, Protocol, TypeVar

from familyhub.core.quantities import format_quantity, format_scaled, parse_quantity

logger = logging.getLogger(__name__)


class IngredientLike(Protocol):
    name: str
    quantity: str
    unit: str


class ListedItem(Protocol):
    id: str
    name: str
    quantity: str
    unit: str


IngredientT = TypeVar("IngredientT")


def _get(row: Any, key: str) -> Any:
    """Read a field from a dataclass row or a plain dict row."""
    if isinstance(row, Mapping):
        return row.get(key)
    return getattr(row, key)


def _with_quantity(row: IngredientT, quantity: str) -> IngredientT:
    if isinstance(row, Mapping):
        return {**row, "quantity": quantity}
    return replace(row, quantity=quantity)


@dataclass
class QuantityUpdate:
    item_id: str
    quantity: str


@dataclass
class ShoppingInsert:
    name: str
    quantity: str
    unit: str


@dataclass
class MergePlan:
    """Updates to existing shopping rows plus new rows to insert."""

    updates: list[QuantityUpdate] = field(default_factory=list)
    inserts: list[ShoppingInsert] = field(default_factory=list)

    @property
    def added_count(self) -> int:
        return len(self.inserts)

    @property
    def updated_count(self) -> int:
        return len(self.updates)

    @property
    def is_empty(self) -> bool:
        return not self.updates and not self.inserts

    def summary(self) -> str:
        return f"{self.added_count} new, {self.updated_count} updated"


def scale_factor(base_servings: float | None, desired_servings: float | None) -> float:
    """desired / base; 1.0 when either side is missing or the base is zero."""
    if not base_servings or desired_servings is None:
        return 1.0
    return desired_servings / base_servings


def scale_ingredients(
    ingredients: Sequence[IngredientT],
    base_servings: float | None,
    desired_servings: float | None,
) -> list[IngredientT]:
    """Return copies of `ingredients` with quantities scaled to the servings.

    Name and unit pass through untouched and order is preserved. A missing
    or zero base means scaling does not apply and quantities stay as they are.
    """
    factor = scale_factor(base_servings, desired_servings)
    if factor == 1.0:
        return [_with_quantity(ing, _get(ing, "quantity")) for ing in ingredients]

    return [
        _with_quantity(ing, format_scaled(parse_quantity(_get(ing, "quantity")) * factor))
        for ing in ingredients
    ]


def _merge_key(name: str, unit: str) -> tuple[str, str]:
    return (name.strip().lower(), unit)


def merge_into_shopping_list(
    existing_items: Iterable[ListedItem],
    incoming: Iterable[IngredientLike],
) -> MergePlan:
    """Plan the shopping-list changes for a batch of incoming ingredients.

    Matching is case-insensitive on the name and exact on the unit, so
    "Milch"/"L" and "milch"/"L" merge while "Milch"/"ml" stays separate.
    Quantities are summed and written with two decimals. Several incoming
    rows with the same key fold into a single update or insert.
    """
    existing_by_key: dict[tuple[str, str], ListedItem] = {}
    for item in existing_items:
        existing_by_key.setdefault(_merge_key(_get(item, "name"), _get(item, "unit")), item)

    totals: dict[tuple[str, str], float] = {}
    order: list[tuple[str, str]] = []
    first_seen: dict[tuple[str, str], IngredientLike] = {}

    for ing in incoming:
        key = _merge_key(_get(ing, "name"), _get(ing, "unit"))
        if key not in totals:
            existing = existing_by_key.get(key)
            totals[key] = parse_quantity(_get(existing, "quantity")) if existing is not None else 0.0
            order.append(key)
            first_seen[key] = ing
        totals[key] += parse_quantity(_get(ing, "quantity"))

    plan = MergePlan()
    for key in order:
        quantity = format_quantity(totals[key])
        existing = existing_by_key.get(key)
        if existing is not None:
            plan.updates.append(QuantityUpdate(item_id=_get(existing, "id"), quantity=quantity))
        else:
            ing = first_seen[key]
            plan.inserts.append(ShoppingInsert(
                name=_get(ing, "name").strip(), quantity=quantity, unit=_get(ing, "unit"),
            ))

    logger.debug("Merge plan: %s", plan.summary())
    return plan
