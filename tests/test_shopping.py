"""Tests for familyhub.core.shopping."""

from conftest import make_shopping
from familyhub.core.shopping import has_deal, sort_shopping_items, unique_purchased_items
from familyhub.data.models import ShoppingPurchaseItem


class TestSortShoppingItems:
    def test_deals_first_then_alphabetical(self):
        items = [
            make_shopping("1", name="Zwiebeln"),
            make_shopping("2", name="Kaffee", store="Lidl", deal_date="2025-06-14"),
            make_shopping("3", name="apfel"),
            make_shopping("4", name="Butter", store="Aldi", deal_date="2025-06-12"),
            make_shopping("5", name="Käse", store="Rewe"),
        ]
        assert [i.id for i in sort_shopping_items(items)] == ["4", "2", "5", "3", "1"]

    def test_same_deal_date_orders_by_store_then_name(self):
        items = [
            make_shopping("1", name="Tee", store="rewe", deal_date="2025-06-12"),
            make_shopping("2", name="Milch", store="Aldi", deal_date="2025-06-12"),
            make_shopping("3", name="Brot", store="Aldi", deal_date="2025-06-12"),
        ]
        assert [i.id for i in sort_shopping_items(items)] == ["3", "2", "1"]

    def test_has_deal(self):
        assert has_deal(make_shopping(store="Aldi"))
        assert has_deal(make_shopping(deal_date="2025-06-12"))
        assert not has_deal(make_shopping())


class TestUniquePurchasedItems:
    def test_dedupes_case_insensitively(self):
        rows = [
            ShoppingPurchaseItem(id="1", purchase_id="p", name="Milch", quantity="1", unit="L"),
            ShoppingPurchaseItem(id="2", purchase_id="p", name="milch", quantity="1", unit="L"),
            ShoppingPurchaseItem(id="3", purchase_id="p", name="Milch", quantity="2", unit="L"),
            ShoppingPurchaseItem(id="4", purchase_id="p", name="Brot", quantity="1", unit="Stk"),
        ]
        assert unique_purchased_items(rows) == [
            ("Brot", "1", "Stk"),
            ("Milch", "1", "L"),
            ("Milch", "2", "L"),
        ]

    def test_empty(self):
        assert unique_purchased_items([]) == []
