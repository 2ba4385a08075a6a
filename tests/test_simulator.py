"""
Tests for the Balance Simulator.
"""

from datetime import timedelta
from decimal import Decimal


class TestSimulate:
    """Daily running-balance loop."""

    def test_one_point_per_day(self, today, project):
        series = project(1000, [], horizon_days=30)

        assert len(series) == 30
        assert series[0].date == today
        assert series[-1].date == today + timedelta(days=29)

    def test_days_without_events_carry_balance(self, project):
        series = project(1000, [], horizon_days=5)

        assert all(p.net_change == Decimal("0") for p in series)
        assert all(p.ending_balance == Decimal("1000") for p in series)

    def test_day_starts_where_previous_ended(self, make_event, project):
        events = [make_event(1, -300), make_event(3, 500), make_event(3, -50), make_event(6, -900)]

        series = project(1000, events)

        for previous, current in zip(series, series[1:]):
            assert current.starting_balance == previous.ending_balance

    def test_final_balance_is_start_plus_all_events(self, make_event, project):
        events = [make_event(0, 120), make_event(2, -45.5), make_event(9, 300)]

        series = project(1000, events)

        assert series[-1].ending_balance == Decimal("1000") + Decimal("120") - Decimal("45.5") + Decimal("300")
        assert sum(p.net_change for p in series) == Decimal("374.5")

    def test_inflow_outflow_totals(self, make_event, project):
        series = project(0, [make_event(2, 500, "a"), make_event(2, -200, "b")])

        day = series[2]
        assert day.total_inflow == Decimal("500")
        assert day.total_outflow == Decimal("200")
        assert day.net_change == Decimal("300")
        assert len(day.contributing_events) == 2

    def test_to_dict_uses_string_amounts(self, make_event, project):
        point = project(100, [make_event(0, -25)])[0].to_dict()

        assert point["ending_balance"] == "75"
        assert point["events"][0]["amount"] == "-25"
