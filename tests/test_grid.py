"""Tests for the month grid and current-week derivations."""

from calendar import MONDAY, SUNDAY
from datetime import date

import pytest

from kiosk_dashboard.adapters.calendar.normalize import normalize
from kiosk_dashboard.domain.grid import (
    build_month_grid,
    current_week_events,
    shift_month,
    week_start_for,
)
from tests.conftest import FIXED_NOW, make_raw_event


def _events(*pairs):
    return normalize(
        [make_raw_event(event_id, "Event", start, start) for event_id, start in pairs],
        now=FIXED_NOW,
    )


MONTHS = [date(year, month, 1) for year in (2023, 2024, 2025) for month in range(1, 13)]


class TestBuildMonthGrid:
    def test_march_2024_starting_sunday(self):
        grid = build_month_grid(date(2024, 3, 1), [], date(2024, 3, 10))

        assert grid[0].date == date(2024, 2, 25)
        assert grid[41].date == date(2024, 4, 6)

    @pytest.mark.parametrize("month", MONTHS, ids=lambda value: value.strftime("%Y-%m"))
    @pytest.mark.parametrize("week_start", [SUNDAY, MONDAY])
    def test_always_42_days_starting_on_week_start(self, month, week_start):
        grid = build_month_grid(month, [], date(2024, 3, 10), week_start=week_start)

        assert len(grid) == 42
        assert grid[0].date.weekday() == week_start
        assert grid[0].date <= month
        assert all(
            later.date.toordinal() - earlier.date.toordinal() == 1
            for earlier, later in zip(grid, grid[1:])
        )

    def test_month_that_starts_on_week_start(self):
        # September 2024 begins on a Sunday, so the grid has no leading days.
        grid = build_month_grid(date(2024, 9, 1), [], date(2024, 9, 1))
        assert grid[0].date == date(2024, 9, 1)
        assert grid[0].is_current_month

    def test_flags(self):
        grid = build_month_grid(date(2024, 3, 15), [], date(2024, 3, 10))
        by_date = {day.date: day for day in grid}

        assert not by_date[date(2024, 2, 29)].is_current_month
        assert by_date[date(2024, 3, 1)].is_current_month
        assert by_date[date(2024, 3, 31)].is_current_month
        assert not by_date[date(2024, 4, 1)].is_current_month
        assert [day.date for day in grid if day.is_today] == [date(2024, 3, 10)]

    def test_today_outside_displayed_grid(self):
        grid = build_month_grid(date(2024, 6, 1), [], date(2024, 3, 10))
        assert not any(day.is_today for day in grid)

    def test_events_bind_by_start_date(self):
        events = _events(
            ("morning", "2024-03-10T00:00:00Z"),
            ("night", "2024-03-10T23:59:00Z"),
            ("leading", "2024-02-26T12:00:00Z"),
            ("trailing", "2024-04-06T12:00:00Z"),
            ("outside", "2024-04-07T12:00:00Z"),
        )
        grid = build_month_grid(date(2024, 3, 1), events, date(2024, 3, 10))
        by_date = {day.date: day for day in grid}

        assert [event.id for event in by_date[date(2024, 3, 10)].events] == ["morning", "night"]
        assert [event.id for event in by_date[date(2024, 2, 26)].events] == ["leading"]
        assert [event.id for event in by_date[date(2024, 4, 6)].events] == ["trailing"]
        assert sum(len(day.events) for day in grid) == 4
        for day in grid:
            for event in day.events:
                assert event.start_date == day.date

    def test_is_pure(self):
        events = _events(("a", "2024-03-10T09:00:00Z"), ("b", "2024-03-12T09:00:00Z"))
        first = build_month_grid(date(2024, 3, 1), events, date(2024, 3, 10))
        second = build_month_grid(date(2024, 3, 1), events, date(2024, 3, 10))

        assert first == second
        assert [day.model_dump() for day in first] == [day.model_dump() for day in second]


class TestCurrentWeekEvents:
    def test_only_events_in_current_week(self):
        events = _events(("tenth", "2024-03-10T09:00:00Z"), ("twentieth", "2024-03-20T09:00:00Z"))
        assert [event.id for event in current_week_events(events, date(2024, 3, 10))] == ["tenth"]

    def test_week_boundaries_are_inclusive(self):
        events = _events(
            ("saturday-before", "2024-03-09T23:00:00Z"),
            ("sunday", "2024-03-10T00:00:00Z"),
            ("saturday", "2024-03-16T23:59:00Z"),
            ("next-sunday", "2024-03-17T00:00:00Z"),
        )
        selected = current_week_events(events, date(2024, 3, 13))
        assert [event.id for event in selected] == ["sunday", "saturday"]

    def test_monday_week_start(self):
        events = _events(("sunday", "2024-03-10T09:00:00Z"), ("monday", "2024-03-11T09:00:00Z"))
        selected = current_week_events(events, date(2024, 3, 13), week_start=MONDAY)
        assert [event.id for event in selected] == ["monday"]

    def test_preserves_input_order(self):
        events = _events(("late", "2024-03-15T09:00:00Z"), ("early", "2024-03-11T09:00:00Z"))
        assert [event.id for event in current_week_events(events, date(2024, 3, 12))] == ["late", "early"]

    def test_is_pure(self):
        events = _events(("a", "2024-03-10T09:00:00Z"))
        assert current_week_events(events, date(2024, 3, 10)) == current_week_events(events, date(2024, 3, 10))


class TestMonthHelpers:
    @pytest.mark.parametrize(
        ("month", "delta", "expected"),
        [
            (date(2024, 3, 1), 1, date(2024, 4, 1)),
            (date(2024, 3, 1), -1, date(2024, 2, 1)),
            (date(2024, 12, 1), 1, date(2025, 1, 1)),
            (date(2024, 1, 1), -1, date(2023, 12, 1)),
            (date(2024, 1, 31), 1, date(2024, 2, 1)),
        ],
    )
    def test_shift_month(self, month, delta, expected):
        assert shift_month(month, delta) == expected

    def test_week_start_for(self):
        assert week_start_for(date(2024, 3, 13)) == date(2024, 3, 10)
        assert week_start_for(date(2024, 3, 10)) == date(2024, 3, 10)
        assert week_start_for(date(2024, 3, 13), MONDAY) == date(2024, 3, 11)
