"""
Timeline Builder - merges normalized events into one ordered, windowed set.
"""
import logging
from dataclasses import dataclass, replace
from datetime import date, timedelta
from decimal import Decimal
from typing import Dict, Iterable, List, Tuple

from cashflow.forecast.events import CashFlowEvent, EventKind, ProjectionWindow
from cashflow.sources.schemas import BankAccountRecord

logger = logging.getLogger(__name__)

# Order of events inside one day
_KIND_ORDER = {
    EventKind.INFLOW: 0,
    EventKind.OUTFLOW: 1,
    EventKind.CREDIT_PAYMENT: 2,
}


def _sort_key(event: CashFlowEvent):
    return (
        event.date,
        _KIND_ORDER[event.kind],
        event.source_type.value,
        event.source_id,
        event.id,
    )


@dataclass(frozen=True)
class Timeline:
    """Events of one projection run, grouped by funds-impact date."""
    window: ProjectionWindow
    events_by_date: Dict[date, Tuple[CashFlowEvent, ...]]

    def events_on(self, day: date) -> Tuple[CashFlowEvent, ...]:
        return self.events_by_date.get(day, ())

    def all_events(self) -> List[CashFlowEvent]:
        return [event for day_events in self.events_by_date.values() for event in day_events]

    @property
    def is_empty(self) -> bool:
        return not self.events_by_date

    def __len__(self) -> int:
        return sum(len(day_events) for day_events in self.events_by_date.values())


def build_timeline(
    events: Iterable[CashFlowEvent],
    window: ProjectionWindow,
    exclude_today: bool = False,
) -> Timeline:
    """
    Restrict events to the window and group them by date.

    - exclude_today drops every event dated window.start_date, whatever its source.
    - Open settlements (estimated payouts) whose funds date already passed are
      carried forward to the first eligible day instead of being dropped.
    """
    first_eligible = window.start_date + timedelta(days=1) if exclude_today else window.start_date

    kept: List[CashFlowEvent] = []
    for event in events:
        if event.is_open_settlement and event.date < first_eligible:
            logger.debug(f"Carrying open settlement {event.id} forward to {first_eligible}")
            event = replace(
                event,
                date=first_eligible,
                settlement_meta=replace(event.settlement_meta, availability_date=first_eligible),
            )

        if not window.contains(event.date):
            continue
        if exclude_today and event.date == window.start_date:
            continue
        kept.append(event)

    kept.sort(key=_sort_key)

    grouped: Dict[date, List[CashFlowEvent]] = {}
    for event in kept:
        grouped.setdefault(event.date, []).append(event)

    return Timeline(
        window=window,
        events_by_date={day: tuple(day_events) for day, day_events in grouped.items()},
    )


def select_starting_balance(
    bank_accounts: Iterable[BankAccountRecord],
    use_available_balance: bool = True,
) -> Decimal:
    """
    Sum the seed balance across active bank accounts.

    The available balance is already net of pending holds; when a bank does
    not report it the ledger balance is used for that account.
    """
    total = Decimal("0")
    for account in bank_accounts:
        if not account.is_active:
            continue
        if use_available_balance and account.available_balance is not None:
            total += account.available_balance
        else:
            total += account.balance
    return total
