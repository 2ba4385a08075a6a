"""
Safe-Spending Analyzer.

Reads a simulated daily balance series and a reserve floor and answers:
- How much can be spent today without the balance ever dropping below the
  reserve inside the horizon (the safe-spending limit, may be negative)
- Whether, and when, the balance goes negative (hard breach) or dips below
  the reserve (soft breach)
- When future inflows open up further spending (buying opportunities)

Buying opportunities:
    Every future day i with balance[i+1] > balance[i] is a valley. The amount
    spendable there is balance[i] - reserve, available once the rise lands on
    day i+1. The last day counts too when it is a plateau or a rise. An
    opportunity is hidden when a later one offers strictly less, because
    spending the earlier, larger amount would breach the reserve at the
    later valley. The safe-spending limit itself is always shown first as
    "opportunity zero", unless it equals the first detected opportunity.
"""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from cashflow.config import settings
from cashflow.forecast.simulator import DailyBalancePoint


class BreachLevel(str, Enum):
    """Severity of a projected reserve breach."""
    HARD = "hard"  # Balance goes below zero
    SOFT = "soft"  # Balance dips below the reserve floor


@dataclass(frozen=True)
class BuyingOpportunity:
    """An amount that can be committed without breaching the reserve."""
    spendable_amount: Decimal
    funds_available_date: date
    earliest_safe_spend_date: date

    def to_dict(self) -> Dict[str, Any]:
        return {
            "spendable_amount": str(self.spendable_amount),
            "funds_available_date": self.funds_available_date.isoformat(),
            "earliest_safe_spend_date": self.earliest_safe_spend_date.isoformat(),
        }


@dataclass(frozen=True)
class SafeSpendingResult:
    """Result of a safe-spending analysis."""
    reserve_amount: Decimal
    available_balance: Decimal
    lowest_projected_balance: Decimal
    lowest_balance_date: date
    safe_spending_limit: Decimal
    will_breach_reserve: bool
    breach_level: Optional[BreachLevel] = None
    breach_date: Optional[date] = None
    opportunities: List[BuyingOpportunity] = field(default_factory=list)

    @property
    def next_opportunity(self) -> Optional[BuyingOpportunity]:
        return self.opportunities[0] if self.opportunities else None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API response."""
        return {
            "reserve_amount": str(self.reserve_amount),
            "available_balance": str(self.available_balance),
            "lowest_projected_balance": str(self.lowest_projected_balance),
            "lowest_balance_date": self.lowest_balance_date.isoformat(),
            "safe_spending_limit": str(self.safe_spending_limit),
            "will_breach_reserve": self.will_breach_reserve,
            "breach_level": self.breach_level.value if self.breach_level else None,
            "breach_date": self.breach_date.isoformat() if self.breach_date else None,
            "opportunities": [o.to_dict() for o in self.opportunities],
        }


@dataclass(frozen=True)
class _Candidate:
    valley_index: int
    funds_index: int
    amount: Decimal


def _find_candidates(balances: Sequence[Decimal], reserve: Decimal) -> List[_Candidate]:
    """Valleys followed by a rise, plus a trailing plateau-or-rise. Day 0 is skipped."""
    last = len(balances) - 1
    candidates = []

    for i in range(1, last):
        if balances[i + 1] > balances[i]:
            candidates.append(_Candidate(i, i + 1, max(Decimal("0"), balances[i] - reserve)))

    if last >= 1 and balances[last] >= balances[last - 1]:
        if not any(c.funds_index == last for c in candidates):
            candidates.append(_Candidate(last, last, max(Decimal("0"), balances[last] - reserve)))

    return candidates


def _prune(candidates: List[_Candidate]) -> List[_Candidate]:
    """Keep a candidate only if no later candidate offers strictly less."""
    kept = []
    later_minimum: Optional[Decimal] = None
    for candidate in reversed(candidates):
        if later_minimum is None or not later_minimum < candidate.amount:
            kept.append(candidate)
        if later_minimum is None or candidate.amount < later_minimum:
            later_minimum = candidate.amount
    kept.reverse()
    return kept


def _earliest_safe_index(
    balances: Sequence[Decimal],
    valley_index: int,
    amount: Decimal,
    reserve: Decimal,
) -> int:
    """
    First day j such that spending `amount` on j keeps every day from j
    through the valley at or above the reserve.
    """
    earliest = 0
    for k in range(valley_index, -1, -1):
        if balances[k] - amount < reserve:
            earliest = k + 1
            break
    return earliest


def analyze(
    series: Sequence[DailyBalancePoint],
    reserve_amount: Decimal,
    available_balance: Optional[Decimal] = None,
    epsilon: Decimal = settings.OPPORTUNITY_EPSILON,
) -> SafeSpendingResult:
    """
    Compute the safe-spending limit, breach status and buying opportunities.

    Args:
        series: Daily balances from simulate(); day 0 is today
        reserve_amount: Minimum balance to keep, >= 0
        available_balance: Seed balance to report; defaults to day 0's start
        epsilon: Amounts closer than this count as equal

    Returns:
        SafeSpendingResult. A negative limit or a breach is a normal result.

    Raises:
        ValueError: if the series is empty or the reserve is negative
    """
    if not series:
        raise ValueError("analyze() requires a non-empty balance series")
    reserve = Decimal(reserve_amount)
    if reserve < 0:
        raise ValueError(f"reserve_amount must be >= 0, got {reserve_amount}")

    dates = [point.date for point in series]
    balances = [point.ending_balance for point in series]

    # Minimum scan
    lowest = min(balances)
    lowest_index = balances.index(lowest)
    safe_limit = lowest - reserve

    # Breach detection: hard breach wins over soft
    breach_level = None
    breach_date = None
    hard = next((i for i, b in enumerate(balances) if b < 0), None)
    if hard is not None:
        breach_level, breach_date = BreachLevel.HARD, dates[hard]
    else:
        soft = next((i for i, b in enumerate(balances) if b < reserve), None)
        if soft is not None:
            breach_level, breach_date = BreachLevel.SOFT, dates[soft]

    # Buying opportunities
    opportunities = []
    for candidate in _prune(_find_candidates(balances, reserve)):
        if candidate.amount <= 0:
            continue
        earliest = _earliest_safe_index(balances, candidate.valley_index, candidate.amount, reserve)
        opportunities.append(BuyingOpportunity(
            spendable_amount=candidate.amount,
            funds_available_date=dates[candidate.funds_index],
            earliest_safe_spend_date=dates[earliest],
        ))

    opportunity_zero = BuyingOpportunity(
        spendable_amount=safe_limit,
        funds_available_date=dates[0],
        earliest_safe_spend_date=dates[0],
    )
    has_events = any(point.contributing_events for point in series)
    if not has_events:
        opportunities = [opportunity_zero]
    elif not opportunities or abs(opportunities[0].spendable_amount - safe_limit) >= epsilon:
        opportunities.insert(0, opportunity_zero)

    return SafeSpendingResult(
        reserve_amount=reserve,
        available_balance=series[0].starting_balance if available_balance is None else available_balance,
        lowest_projected_balance=lowest,
        lowest_balance_date=dates[lowest_index],
        safe_spending_limit=safe_limit,
        will_breach_reserve=breach_level == BreachLevel.HARD,
        breach_level=breach_level,
        breach_date=breach_date,
        opportunities=opportunities,
    )
