"""
FamilyHub — Recipe to shopping list.

Applies the scale + merge plan from `familyhub.core.ingredients` through a
MutationSink: selected ingredients are scaled to the requested servings,
merged into the family's current list, and the recipe is marked for
cooking.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from familyhub.core.ingredients import (
    MergePlan,
    ShoppingInsert,
    merge_into_shopping_list,
    scale_ingredients,
)

if TYPE_CHECKING:
    from familyhub.data.models import Recipe, RecipeIngredient
    from familyhub.ports.store_port import MutationSink

logger = logging.getLogger(__name__)


class NothingSelectedError(ValueError):
    """No ingredient of the recipe was selected for the shopping list."""


def _select(recipe: Recipe, ingredient_ids: list[str] | None) -> list[RecipeIngredient]:
    if ingredient_ids is None:
        return [ing for ing in recipe.ingredients if ing.add_to_shopping]
    wanted = set(ingredient_ids)
    return [ing for ing in recipe.ingredients if ing.id in wanted]


def _apply(
    sink: MutationSink,
    plan: MergePlan,
    family_id: str,
    created_by_id: str | None,
    store: str | None = None,
    deal_date: str | None = None,
) -> None:
    for update in plan.updates:
        sink.update_shopping_quantity(update.item_id, update.quantity)
    for insert in plan.inserts:
        sink.add_shopping_item(
            family_id, insert.name, insert.quantity, insert.unit, created_by_id,
            store=store, deal_date=deal_date,
        )


def add_recipe_to_shopping(
    sink: MutationSink,
    recipe: Recipe,
    family_id: str,
    profile_id: str | None,
    desired_servings: int | None = None,
    ingredient_ids: list[str] | None = None,
) -> MergePlan:
    """Put a recipe's ingredients on the shopping list and mark it for cooking.

    Without `ingredient_ids` the ingredients flagged `add_to_shopping` are
    used. `desired_servings` defaults to the recipe's own servings.
    """
    selected = _select(recipe, ingredient_ids)
    if not selected:
        raise NothingSelectedError(f"No ingredients selected for recipe '{recipe.name}'")

    scaled = scale_ingredients(selected, recipe.servings, desired_servings)
    existing = sink.get_shopping_items(family_id)
    plan = merge_into_shopping_list(existing, scaled)

    _apply(sink, plan, family_id, profile_id)
    sink.mark_recipe_for_cooking(recipe.id, family_id, profile_id)

    logger.info("Recipe %s added to shopping list: %s", recipe.id, plan.summary())
    return plan


def add_shopping_item(
    sink: MutationSink,
    family_id: str,
    name: str,
    quantity: str,
    unit: str,
    created_by_id: str | None,
    store: str | None = None,
    deal_date: str | None = None,
) -> MergePlan:
    """Add one item, merging into a matching row (same name and unit) if any."""
    if not name.strip():
        raise ValueError("Item name must not be empty")
    existing = sink.get_shopping_items(family_id)
    plan = merge_into_shopping_list(
        existing, [ShoppingInsert(name=name, quantity=quantity, unit=unit)],
    )
    _apply(sink, plan, family_id, created_by_id, store=store, deal_date=deal_date)
    logger.info("Shopping item '%s' for %s: %s", name.strip(), family_id, plan.summary())
    return plan


def cooking_summary(recipe: Recipe, plan: MergePlan) -> str:
    if plan.is_empty:
        return f"'{recipe.name}' is marked for cooking. Nothing new to buy."
    return (
        f"'{recipe.name}' is marked for cooking.\n"
        f"Shopping list: {plan.added_count} added, {plan.updated_count} updated."
    )
