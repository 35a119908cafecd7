"""Tests for familyhub.core.agenda — list, day, week and month views."""

from datetime import date

import pytest

from conftest import make_contact, make_event, make_shopping, make_todo
from familyhub.core.agenda import (
    AgendaMode,
    build_agenda_list,
    build_day_agenda,
    build_month_grid,
    build_week_grid,
    project_birthday,
)
from familyhub.data.models import AgendaItemType

TODAY = date(2025, 6, 10)


class TestProjectBirthday:
    def test_keeps_month_and_day(self):
        assert project_birthday(date(1980, 5, 15), 2025) == date(2025, 5, 15)

    def test_leap_day_in_common_year(self):
        assert project_birthday(date(2000, 2, 29), 2025) == date(2025, 3, 1)

    def test_leap_day_in_leap_year(self):
        assert project_birthday(date(2000, 2, 29), 2028) == date(2028, 2, 29)


class TestBuildAgendaList:
    def test_sorted_by_date(self):
        items = build_agenda_list(
            [make_event("e1", "2025-07-01"), make_event("e2", "2025-06-12")],
            [make_todo("t1", "2025-06-20")],
            [make_contact("c1", "1990-06-15")],
            [make_shopping("s1", deal_date="2025-06-11")],
            mode=AgendaMode.ALL,
            today=TODAY,
        )
        dates = [i.date for i in items]
        assert dates == sorted(dates)
        assert len(items) == 5

    def test_upcoming_excludes_past_todo(self):
        items = build_agenda_list(
            [], [make_todo("old", "2025-06-01"), make_todo("new", "2025-06-11")], [], [],
            mode=AgendaMode.UPCOMING, today=TODAY,
        )
        assert [i.id for i in items] == ["new"]

    def test_upcoming_keeps_today(self):
        items = build_agenda_list(
            [make_event("e1", "2025-06-10")], [], [], [], mode="upcoming", today=TODAY,
        )
        assert len(items) == 1

    def test_all_mode_keeps_past_items(self):
        items = build_agenda_list(
            [], [make_todo("old", "2025-06-01")], [], [], mode=AgendaMode.ALL, today=TODAY,
        )
        assert [i.id for i in items] == ["old"]

    def test_birthday_projected_into_current_year(self):
        (item,) = build_agenda_list(
            [], [], [make_contact("c1", "1980-05-15")], [],
            mode=AgendaMode.ALL, today=date(2025, 1, 1),
        )
        assert item.kind is AgendaItemType.BIRTHDAY
        assert item.date == date(2025, 5, 15)
        assert item.age == 45
        assert item.title == "Oma Erna"

    def test_passed_birthday_does_not_roll_over(self):
        items = build_agenda_list(
            [], [], [make_contact("c1", "1980-05-15")], [], mode=AgendaMode.UPCOMING, today=TODAY,
        )
        assert items == []

    def test_same_day_keeps_kind_order(self):
        items = build_agenda_list(
            [make_event("e1", "2025-06-11")],
            [make_todo("t1", "2025-06-11T09:30:00")],
            [make_contact("c1", "1990-06-11")],
            [make_shopping("s1", deal_date="2025-06-11")],
            mode=AgendaMode.ALL,
            today=TODAY,
        )
        assert [i.kind for i in items] == [
            AgendaItemType.EVENT,
            AgendaItemType.TODO,
            AgendaItemType.BIRTHDAY,
            AgendaItemType.SHOPPING,
        ]

    def test_todo_carries_due_time(self):
        (item,) = build_agenda_list(
            [], [make_todo("t1", "2025-06-11T09:30:00")], [], [], today=TODAY,
        )
        assert item.time == "09:30"

    def test_event_time_shortened(self):
        (item,) = build_agenda_list(
            [make_event("e1", "2025-06-11", event_time="14:00:00")], [], [], [], today=TODAY,
        )
        assert item.time == "14:00"

    def test_shopping_title_and_description(self):
        (item,) = build_agenda_list(
            [], [], [],
            [make_shopping("s1", name="Kaffee", store="Aldi", deal_date="2025-06-12",
                           quantity="2", unit="Packung")],
            today=TODAY,
        )
        assert item.title == "Kaffee (Aldi)"
        assert item.description == "2 Packung"

    def test_rows_without_dates_are_ignored(self):
        items = build_agenda_list(
            [], [make_todo("t1", None)], [make_contact("c1", None)], [make_shopping("s1")],
            mode=AgendaMode.ALL, today=TODAY,
        )
        assert items == []

    def test_unparsable_dates_are_skipped(self):
        items = build_agenda_list(
            [make_event("bad", "not-a-date"), make_event("ok", "2025-06-12")],
            [make_todo("t1", "2025-13-40")],
            [make_contact("c1", "garbage")],
            [],
            mode=AgendaMode.ALL,
            today=TODAY,
        )
        assert [i.id for i in items] == ["ok"]

    def test_unknown_mode_rejected(self):
        with pytest.raises(ValueError):
            build_agenda_list([], [], [], [], mode="someday", today=TODAY)

    def test_empty_inputs(self):
        assert build_agenda_list([], [], [], [], today=TODAY) == []


class TestBuildDayAgenda:
    def test_only_matching_day(self):
        items = build_day_agenda(
            date(2025, 6, 11),
            [make_event("e1", "2025-06-11"), make_event("e2", "2025-06-12")],
            [make_todo("t1", "2025-06-11T18:00:00"), make_todo("t2", "2025-06-10")],
            [make_contact("c1", "1970-06-11")],
            [make_shopping("s1", deal_date="2025-06-11")],
        )
        assert {i.id for i in items} == {"e1", "t1", "c1", "s1"}
        assert all(i.date == date(2025, 6, 11) for i in items)

    def test_empty_day(self):
        items = build_day_agenda(
            date(2025, 6, 14),
            [make_event("e1", "2025-06-11")],
            [make_todo("t1", "2025-06-12")],
            [make_contact("c1", "1970-01-01")],
        )
        assert items == []

    def test_birthday_age_for_that_year(self):
        (item,) = build_day_agenda(date(2030, 5, 15), [], [], [make_contact("c1", "1980-05-15")])
        assert item.age == 50
        assert item.description == "turns 50"


class TestBuildMonthGrid:
    def test_42_cells_starting_monday(self):
        grid = build_month_grid(date(2025, 6, 18), [], [], [])
        assert len(grid) == 42
        assert grid[0].date.weekday() == 0
        assert grid[0].date == date(2025, 5, 26)

    def test_month_starting_on_monday(self):
        grid = build_month_grid(date(2025, 9, 1), [], [], [])
        assert grid[0].date == date(2025, 9, 1)

    def test_consecutive_days(self):
        grid = build_month_grid(date(2024, 2, 10), [], [], [])
        for prev, cur in zip(grid, grid[1:]):
            assert (cur.date - prev.date).days == 1

    def test_current_month_flags(self):
        grid = build_month_grid(date(2025, 6, 1), [], [], [])
        current = [d.date for d in grid if d.is_current_month]
        assert len(current) == 30
        assert current[0] == date(2025, 6, 1)
        assert current[-1] == date(2025, 6, 30)

    def test_items_land_in_cells(self):
        grid = build_month_grid(
            date(2025, 6, 1),
            [make_event("e1", "2025-06-11")],
            [make_todo("t1", "2025-05-30")],
            [make_contact("c1", "1980-06-03")],
            [make_shopping("s1", deal_date="2025-07-02")],
        )
        by_date = {d.date: [i.id for i in d.items] for d in grid}
        assert by_date[date(2025, 6, 11)] == ["e1"]
        assert by_date[date(2025, 5, 30)] == ["t1"]
        assert by_date[date(2025, 6, 3)] == ["c1"]
        assert by_date[date(2025, 7, 2)] == ["s1"]

    def test_grid_does_not_filter_past(self):
        grid = build_month_grid(date(2000, 1, 1), [make_event("e1", "2000-01-05")], [], [])
        assert any(d.items for d in grid)

    def test_birthdays_across_year_boundary(self):
        # December 2025 grid runs into January 2026
        grid = build_month_grid(
            date(2025, 12, 1), [], [], [make_contact("c1", "1990-01-02")],
        )
        cell = next(d for d in grid if d.date == date(2026, 1, 2))
        assert [i.age for i in cell.items] == [36]


class TestBuildWeekGrid:
    def test_seven_consecutive_days(self):
        week = build_week_grid(date(2025, 6, 9), [], [], [])
        assert [d.date for d in week] == [date(2025, 6, 9 + i) for i in range(7)]

    def test_items_by_day(self):
        week = build_week_grid(
            date(2025, 6, 9),
            [make_event("e1", "2025-06-12"), make_event("e2", "2025-06-20")],
            [], [],
        )
        assert [i.id for i in week[3].items] == ["e1"]
        assert sum(len(d.items) for d in week) == 1

    def test_current_month_relative_to_start(self):
        week = build_week_grid(date(2025, 6, 30), [], [], [])
        assert week[0].is_current_month is True
        assert week[1].is_current_month is False
