"""
Recurrence expansion for recurring income/expense rules.

Occurrences are produced lazily and always recomputed from the rule's anchor
(`start_date`), so expanding the same rule twice over the same range gives
the same dates and no state is carried between calls.

Month-based frequencies clamp to the last day of shorter months without
drifting: a rule anchored on Jan 31 fires on Feb 28 (or 29), Mar 31, Apr 30.
"""
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterator, Optional

from dateutil.relativedelta import relativedelta

from cashflow.sources.schemas import RecurringFrequency, RecurringRule


# Days between occurrences for fixed-interval frequencies
_DAY_STEPS = {
    RecurringFrequency.DAILY: 1,
    RecurringFrequency.WEEKLY: 7,
    RecurringFrequency.BI_WEEKLY: 14,
}

# Months between occurrences for calendar-based frequencies
_MONTH_STEPS = {
    RecurringFrequency.MONTHLY: 1,
    RecurringFrequency.TWO_MONTHS: 2,
    RecurringFrequency.THREE_MONTHS: 3,
    RecurringFrequency.YEARLY: 12,
}

DEFAULT_LOOKAHEAD_DAYS = 730


def _is_weekend(d: date) -> bool:
    # Monday = 0 .. Sunday = 6
    return d.weekday() >= 5


def _candidate_dates(rule: RecurringRule, range_start: date) -> Iterator[date]:
    """Unbounded ascending occurrence dates, starting near `range_start`."""
    anchor = rule.start_date
    frequency = RecurringFrequency(rule.frequency)

    if frequency in _DAY_STEPS:
        step = _DAY_STEPS[frequency]
        n = 0
        if range_start > anchor:
            # Jump straight to the first occurrence on or after range_start
            n = -(-(range_start - anchor).days // step)
        while True:
            yield anchor + timedelta(days=n * step)
            n += 1

    elif frequency in _MONTH_STEPS:
        step = _MONTH_STEPS[frequency]
        n = 0
        if range_start > anchor:
            months_between = (range_start.year - anchor.year) * 12 + (range_start.month - anchor.month)
            n = max(0, months_between // step - 1)
        while True:
            yield anchor + relativedelta(months=n * step)
            n += 1

    elif frequency == RecurringFrequency.WEEKDAYS:
        current = max(anchor, range_start)
        while True:
            if not _is_weekend(current):
                yield current
            current += timedelta(days=1)

    else:
        raise ValueError(f"Unsupported recurring frequency: {rule.frequency}")


def expand(rule: RecurringRule, range_start: date, range_end: date) -> Iterator[date]:
    """
    Yield every occurrence of `rule` inside [range_start, range_end].

    Honors the rule's own start/end bounds, its active flag and any
    individually skipped dates. The sequence is finite because it stops at
    the earlier of `range_end` and the rule's `end_date`.
    """
    if not rule.is_active or range_end < range_start:
        return

    last = range_end
    if rule.end_date is not None and rule.end_date < last:
        last = rule.end_date

    skipped = set(rule.skipped_dates)
    for occurrence in _candidate_dates(rule, range_start):
        if occurrence > last:
            return
        if occurrence < range_start or occurrence < rule.start_date:
            continue
        if occurrence in skipped:
            continue
        yield occurrence


def next_occurrence(
    rule: RecurringRule,
    after: date,
    lookahead_days: int = DEFAULT_LOOKAHEAD_DAYS,
) -> Optional[date]:
    """First occurrence on or after `after`, looking at most `lookahead_days` ahead."""
    return next(expand(rule, after, after + timedelta(days=lookahead_days)), None)


def occurs_on(rule: RecurringRule, day: date) -> bool:
    return next(expand(rule, day, day), None) is not None


def monthly_amount(rule: RecurringRule, for_month: date) -> Decimal:
    """
    Total the rule contributes in the calendar month containing `for_month`.

    Counts actual calendar occurrences, so a weekly rule gives 4x or 5x its
    amount depending on the month.
    """
    month_start = for_month.replace(day=1)
    month_end = month_start + relativedelta(months=1) - timedelta(days=1)
    count = sum(1 for _ in expand(rule, month_start, month_end))
    return rule.amount * count
