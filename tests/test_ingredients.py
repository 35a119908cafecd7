"""Tests for familyhub.core.ingredients — scaling and shopping-list merge."""

from conftest import make_shopping
from familyhub.core.ingredients import (
    MergePlan,
    QuantityUpdate,
    ShoppingInsert,
    merge_into_shopping_list,
    scale_factor,
    scale_ingredients,
)
from familyhub.data.models import RecipeIngredient


def _ings():
    return [
        RecipeIngredient(name="Mehl", quantity="250", unit="g"),
        RecipeIngredient(name="Eier", quantity="3", unit="Stk"),
        RecipeIngredient(name="Milch", quantity="0.5", unit="L"),
    ]


class TestScaleFactor:
    def test_ratio(self):
        assert scale_factor(4, 8) == 2.0

    def test_zero_base(self):
        assert scale_factor(0, 8) == 1.0

    def test_missing_values(self):
        assert scale_factor(None, 8) == 1.0
        assert scale_factor(4, None) == 1.0


class TestScaleIngredients:
    def test_same_servings_unchanged(self):
        scaled = scale_ingredients(_ings(), 4, 4)
        assert [i.quantity for i in scaled] == ["250", "3", "0.5"]

    def test_double(self):
        scaled = scale_ingredients(_ings(), 4, 8)
        assert [i.quantity for i in scaled] == ["500", "6", "1"]

    def test_half(self):
        scaled = scale_ingredients(_ings(), 4, 2)
        assert [i.quantity for i in scaled] == ["125", "1.5", "0.25"]

    def test_zero_base_does_not_raise(self):
        scaled = scale_ingredients(_ings(), 0, 8)
        assert [i.quantity for i in scaled] == ["250", "3", "0.5"]

    def test_name_unit_and_order_preserved(self):
        scaled = scale_ingredients(_ings(), 2, 3)
        assert [(i.name, i.unit) for i in scaled] == [("Mehl", "g"), ("Eier", "Stk"), ("Milch", "L")]

    def test_inputs_not_mutated(self):
        ings = _ings()
        scale_ingredients(ings, 4, 8)
        assert ings[0].quantity == "250"

    def test_non_numeric_quantity_becomes_zero(self):
        ings = [RecipeIngredient(name="Salz", quantity="etwas", unit="Prise")]
        assert scale_ingredients(ings, 2, 4)[0].quantity == "0"

    def test_dict_rows(self):
        scaled = scale_ingredients([{"name": "Zucker", "quantity": "100", "unit": "g"}], 2, 3)
        assert scaled == [{"name": "Zucker", "quantity": "150", "unit": "g"}]

    def test_repeating_fraction(self):
        scaled = scale_ingredients([RecipeIngredient(name="Ei", quantity="1", unit="Stk")], 3, 1)
        assert scaled[0].quantity == "0.333333"


class TestMergeIntoShoppingList:
    def test_case_insensitive_match_updates(self):
        existing = [{"id": "x", "name": "Milch", "unit": "Liter", "quantity": "2"}]
        plan = merge_into_shopping_list(existing, [{"name": "milch", "unit": "Liter", "quantity": "1"}])
        assert plan.updates == [QuantityUpdate(item_id="x", quantity="3.00")]
        assert plan.inserts == []

    def test_new_item_inserted(self):
        plan = merge_into_shopping_list([], [{"name": "Mehl", "unit": "g", "quantity": "250"}])
        assert plan.updates == []
        assert plan.inserts == [ShoppingInsert(name="Mehl", quantity="250.00", unit="g")]

    def test_unit_mismatch_is_separate(self):
        existing = [make_shopping("x", name="Milch", quantity="1", unit="L")]
        plan = merge_into_shopping_list(existing, [RecipeIngredient(name="Milch", quantity="200", unit="ml")])
        assert plan.updates == []
        assert plan.inserts == [ShoppingInsert(name="Milch", quantity="200.00", unit="ml")]

    def test_whitespace_trimmed_in_key(self):
        existing = [make_shopping("x", name="Eier", quantity="6", unit="Stk")]
        plan = merge_into_shopping_list(existing, [RecipeIngredient(name=" eier ", quantity="4", unit="Stk")])
        assert plan.updates == [QuantityUpdate(item_id="x", quantity="10.00")]

    def test_duplicate_incoming_rows_fold(self):
        existing = [make_shopping("x", name="Butter", quantity="1", unit="Stk")]
        incoming = [
            RecipeIngredient(name="Butter", quantity="1", unit="Stk"),
            RecipeIngredient(name="Zucker", quantity="100", unit="g"),
            RecipeIngredient(name="butter", quantity="2", unit="Stk"),
            RecipeIngredient(name="Zucker", quantity="50", unit="g"),
        ]
        plan = merge_into_shopping_list(existing, incoming)
        assert plan.updates == [QuantityUpdate(item_id="x", quantity="4.00")]
        assert plan.inserts == [ShoppingInsert(name="Zucker", quantity="150.00", unit="g")]

    def test_unparsable_quantities_count_as_zero(self):
        existing = [make_shopping("x", name="Salz", quantity="n/a", unit="Prise")]
        plan = merge_into_shopping_list(existing, [RecipeIngredient(name="Salz", quantity="", unit="Prise")])
        assert plan.updates == [QuantityUpdate(item_id="x", quantity="0.00")]

    def test_empty_incoming(self):
        plan = merge_into_shopping_list([make_shopping()], [])
        assert plan.is_empty

    def test_summary(self):
        plan = MergePlan(
            updates=[QuantityUpdate("a", "1.00")],
            inserts=[ShoppingInsert("b", "1.00", "g"), ShoppingInsert("c", "2.00", "g")],
        )
        assert plan.added_count == 2
        assert plan.updated_count == 1
        assert plan.summary() == "2 new, 1 updated"
