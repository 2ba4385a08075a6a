"""
Balance Simulator - the one daily running-balance loop.

Both the balance chart and the safe-spending analyzer read the series
produced here; nothing else in the package recomputes balances.
"""
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from cashflow.forecast.events import CashFlowEvent, ProjectionWindow
from cashflow.forecast.timeline import Timeline


@dataclass(frozen=True)
class DailyBalancePoint:
    """Projected balance for one calendar day."""
    date: date
    starting_balance: Decimal
    net_change: Decimal
    ending_balance: Decimal
    contributing_events: Tuple[CashFlowEvent, ...] = ()

    @property
    def total_inflow(self) -> Decimal:
        return sum((e.amount for e in self.contributing_events if e.amount > 0), Decimal("0"))

    @property
    def total_outflow(self) -> Decimal:
        return sum((-e.amount for e in self.contributing_events if e.amount < 0), Decimal("0"))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API response."""
        return {
            "date": self.date.isoformat(),
            "starting_balance": str(self.starting_balance),
            "net_change": str(self.net_change),
            "ending_balance": str(self.ending_balance),
            "total_inflow": str(self.total_inflow),
            "total_outflow": str(self.total_outflow),
            "events": [e.to_dict() for e in self.contributing_events],
        }


def simulate(
    starting_balance: Decimal,
    timeline: Timeline,
    window: Optional[ProjectionWindow] = None,
) -> List[DailyBalancePoint]:
    """
    Walk the window day by day and carry the running balance forward.

    Returns exactly `window.horizon_days` points, including days without
    events (net change 0). Day N starts where day N-1 ended.
    """
    window = window or timeline.window

    series: List[DailyBalancePoint] = []
    current_balance = Decimal(starting_balance)

    for day in window.days():
        day_events = timeline.events_on(day)
        net_change = sum((e.amount for e in day_events), Decimal("0"))
        ending_balance = current_balance + net_change

        series.append(DailyBalancePoint(
            date=day,
            starting_balance=current_balance,
            net_change=net_change,
            ending_balance=ending_balance,
            contributing_events=day_events,
        ))

        current_balance = ending_balance

    return series
