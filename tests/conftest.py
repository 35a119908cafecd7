"""Shared test fixtures and configuration.

Sets up fake environment variables so familyhub.config doesn't sys.exit(),
and provides temp-file database fixtures plus small row factories.
"""

import os

# Patch env vars BEFORE any familyhub imports
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "fake-token-for-tests")
os.environ.setdefault("ALLOWED_USER_IDS", "12345")
os.environ.setdefault("DATABASE_PATH", ":memory:")

import pytest

from familyhub.data.models import CalendarEvent, Contact, ShoppingItem, Todo


@pytest.fixture
def tmp_db_path(tmp_path):
    """Return a temporary SQLite DB path."""
    return str(tmp_path / "test_familyhub.db")


@pytest.fixture
def store(tmp_db_path):
    """Return a SQLiteFamilyStore backed by a temp file."""
    from familyhub.adapters.sqlite_store import SQLiteFamilyStore
    return SQLiteFamilyStore(db_path=tmp_db_path)


@pytest.fixture
def family(store):
    """A family with one member linked to the authorized test user."""
    fam = store.families.create_family("Müller")
    profile = store.families.add_profile(fam.id, "Anna", telegram_user_id=12345)
    return fam, profile


def make_event(id="e1", event_date="2025-06-11", title="Dentist", event_time=None):
    return CalendarEvent(
        id=id, family_id="f1", title=title, event_date=event_date, event_time=event_time,
    )


def make_todo(id="t1", due_at="2025-06-11", task="Call plumber", is_done=False):
    return Todo(id=id, family_id="f1", task=task, due_at=due_at, is_done=is_done)


def make_contact(id="c1", birthdate="1980-05-15", first_name="Oma", last_name="Erna"):
    return Contact(
        id=id, family_id="f1", first_name=first_name, last_name=last_name, birthdate=birthdate,
    )


def make_shopping(id="s1", name="Butter", deal_date=None, store=None, quantity="1", unit="Stk"):
    return ShoppingItem(
        id=id, family_id="f1", name=name, quantity=quantity, unit=unit,
        store=store, deal_date=deal_date,
    )
