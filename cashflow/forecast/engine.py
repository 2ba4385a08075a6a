"""
Projection pipeline.

Chains the projection stages for one run:
1. Normalize every upstream record into CashFlowEvents
2. Build the windowed timeline (exclude-today, open-settlement carry-forward)
3. Pick the seed balance (available or ledger)
4. Simulate the daily running balance
5. Analyze safe spending against the reserve

The whole run is a pure function of (snapshot, today, config). `today` is
passed in by the caller and never read from the clock, so two runs over the
same inputs return identical results.
"""
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from cashflow.config import settings
from cashflow.forecast.events import CashFlowEvent, ProjectionWindow
from cashflow.forecast.normalizer import normalize_snapshot
from cashflow.forecast.safe_spending import SafeSpendingResult, analyze
from cashflow.forecast.simulator import DailyBalancePoint, simulate
from cashflow.forecast.timeline import build_timeline, select_starting_balance
from cashflow.sources.schemas import SourceSnapshot

logger = logging.getLogger(__name__)


@dataclass
class ProjectionConfig:
    """Per-run configuration."""
    reserve_amount: Decimal = settings.DEFAULT_RESERVE_AMOUNT
    horizon_days: int = settings.DEFAULT_HORIZON_DAYS
    exclude_today_events: bool = False
    use_available_balance: bool = True
    forecasts_enabled: bool = settings.FORECASTS_ENABLED
    settlement_length_days: int = settings.ASSUMED_SETTLEMENT_LENGTH_DAYS
    transfer_lag_days: int = settings.PAYOUT_TRANSFER_LAG_DAYS
    opportunity_epsilon: Decimal = settings.OPPORTUNITY_EPSILON


@dataclass
class ProjectionResult:
    """Everything presentation layers read from one run."""
    window: ProjectionWindow
    starting_balance: Decimal
    events: List[CashFlowEvent]
    series: List[DailyBalancePoint]
    safe_spending: SafeSpendingResult

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API response."""
        return {
            "window": {
                "start_date": self.window.start_date.isoformat(),
                "end_date": self.window.end_date.isoformat(),
                "horizon_days": self.window.horizon_days,
            },
            "starting_balance": str(self.starting_balance),
            "event_count": len(self.events),
            "daily_balances": [point.to_dict() for point in self.series],
            "safe_spending": self.safe_spending.to_dict(),
        }


def run_projection(
    snapshot: SourceSnapshot,
    today: date,
    config: Optional[ProjectionConfig] = None,
) -> ProjectionResult:
    """
    Run the full projection pipeline over one snapshot.

    Args:
        snapshot: Consistent read of every upstream store
        today: First day of the window (the caller's local "today")
        config: Optional per-run configuration

    Returns:
        ProjectionResult with the daily series and the safe-spending analysis

    Raises:
        ValueError: on precondition violations (horizon_days <= 0, negative reserve)
    """
    config = config or ProjectionConfig()

    if config.reserve_amount < 0:
        raise ValueError(f"reserve_amount must be >= 0, got {config.reserve_amount}")

    window = ProjectionWindow(start_date=today, horizon_days=config.horizon_days)

    events = normalize_snapshot(
        snapshot,
        window,
        forecasts_enabled=config.forecasts_enabled,
        settlement_length_days=config.settlement_length_days,
        transfer_lag_days=config.transfer_lag_days,
    )
    timeline = build_timeline(events, window, exclude_today=config.exclude_today_events)

    starting_balance = select_starting_balance(
        snapshot.bank_accounts,
        use_available_balance=config.use_available_balance,
    )

    series = simulate(starting_balance, timeline, window)
    safe_spending = analyze(
        series,
        config.reserve_amount,
        available_balance=starting_balance,
        epsilon=config.opportunity_epsilon,
    )

    logger.info(
        f"Projection {window.start_date}..{window.end_date}: {len(timeline)} events, "
        f"lowest {safe_spending.lowest_projected_balance} on {safe_spending.lowest_balance_date}, "
        f"safe limit {safe_spending.safe_spending_limit}"
    )

    return ProjectionResult(
        window=window,
        starting_balance=starting_balance,
        events=timeline.all_events(),
        series=series,
        safe_spending=safe_spending,
    )
