"""Tests for familyhub.core.calendar_data and the SQLite store adapter."""

from unittest.mock import MagicMock

import pytest

from conftest import make_todo
from familyhub.core.calendar_data import load_calendar_data


class TestLoadCalendarData:
    def test_attaches_comments(self, store, family):
        fam, profile = family
        todo = store.todos.add_todo(fam.id, "Call plumber", due_at="2025-06-11")
        store.todos.add_comment(todo.id, "Number is on the fridge", profile.id)
        store.calendar.add_event(fam.id, "Dentist", "2025-06-11")
        store.contacts.add_contact(fam.id, "Oma", "Erna", birthdate="1950-06-11")
        store.add_shopping_item(fam.id, "Kaffee", "1", "Packung", profile.id, deal_date="2025-06-11")
        store.add_shopping_item(fam.id, "Milch", "1", "L", profile.id)

        data = load_calendar_data(store, fam.id)

        assert [e.title for e in data.events] == ["Dentist"]
        assert [c.text for c in data.todos[0].comments] == ["Number is on the fridge"]
        assert [c.first_name for c in data.birthdays] == ["Oma"]
        assert [s.name for s in data.shopping_items] == ["Kaffee"]

    def test_scoped_to_family(self, store, family):
        fam, _ = family
        other = store.families.create_family("Other")
        store.calendar.add_event(other.id, "Not ours", "2025-06-11")
        assert load_calendar_data(store, fam.id).events == []

    def test_no_comment_lookup_without_todos(self):
        source = MagicMock()
        source.get_todos_for_calendar.return_value = []
        load_calendar_data(source, "f1")
        source.get_comments_for_todos.assert_not_called()

    def test_todos_without_comments_get_empty_list(self):
        source = MagicMock()
        source.get_todos_for_calendar.return_value = [make_todo("t1")]
        source.get_comments_for_todos.return_value = {}
        data = load_calendar_data(source, "f1")
        assert data.todos[0].comments == []

    def test_errors_propagate(self):
        source = MagicMock()
        source.get_calendar_events.side_effect = ConnectionError("db down")
        with pytest.raises(ConnectionError):
            load_calendar_data(source, "f1")


class TestSQLiteFamilyStore:
    def test_mutation_sink(self, store, family):
        fam, profile = family
        item = store.add_shopping_item(fam.id, "Milch", "1", "L", profile.id)
        store.update_shopping_quantity(item.id, "2.00")
        assert store.get_shopping_items(fam.id)[0].quantity == "2.00"

    def test_subscribers(self, store, family):
        fam, profile = family
        assert store.list_subscribers(fam.id) == [profile]
