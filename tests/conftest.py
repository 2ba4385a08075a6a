"""Shared test fixtures and configuration for cashflow engine tests."""
import pytest
from datetime import date, timedelta
from decimal import Decimal

from cashflow.forecast.events import CashFlowEvent, EventKind, ProjectionWindow, SourceType, event_id
from cashflow.forecast.simulator import simulate
from cashflow.forecast.timeline import build_timeline


# A Monday, so weekday rules line up with offsets
TODAY = date(2025, 3, 3)


@pytest.fixture
def today():
    """Fixed 'today' for every projection in the suite."""
    return TODAY


@pytest.fixture
def make_event(today):
    """Build a CashFlowEvent `offset` days after today."""
    def _make(offset, amount, source_id=None):
        amount = Decimal(str(amount))
        day = today + timedelta(days=offset)
        is_inflow = amount > 0
        source_type = SourceType.INCOME if is_inflow else SourceType.VENDOR
        source_id = source_id or f"evt-{offset}-{amount}"
        return CashFlowEvent(
            id=event_id(source_type, source_id, day),
            date=day,
            amount=amount,
            kind=EventKind.INFLOW if is_inflow else EventKind.OUTFLOW,
            source_type=source_type,
            source_id=source_id,
        )
    return _make


@pytest.fixture
def project(today):
    """Simulate a starting balance plus a list of events over a short horizon."""
    def _project(starting_balance, events, horizon_days=10, exclude_today=False):
        window = ProjectionWindow(start_date=today, horizon_days=horizon_days)
        timeline = build_timeline(events, window, exclude_today=exclude_today)
        return simulate(Decimal(str(starting_balance)), timeline, window)
    return _project
