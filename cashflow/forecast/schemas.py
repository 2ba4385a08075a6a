"""Projection request/response schemas."""
from datetime import date
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from cashflow.config import settings
from cashflow.sources.schemas import RecurringRule, SourceSnapshot


# ============================================
# Requests
# ============================================

class ProjectionRequest(BaseModel):
    """Snapshot plus per-run configuration."""
    snapshot: SourceSnapshot = Field(default_factory=SourceSnapshot)
    reserve_amount: Decimal = Field(
        default=settings.DEFAULT_RESERVE_AMOUNT,
        ge=0,
        description="Minimum balance that discretionary spending must never breach"
    )
    horizon_days: int = Field(
        default=settings.DEFAULT_HORIZON_DAYS,
        gt=0,
        le=settings.MAX_HORIZON_DAYS,
        description="Number of days to project, starting today"
    )
    exclude_today_events: bool = False
    use_available_balance: bool = True
    forecasts_enabled: bool = settings.FORECASTS_ENABLED
    today: Optional[date] = Field(
        None, description="Caller's local today; defaults to the server date"
    )


class RecurringPreviewRequest(BaseModel):
    """A recurring rule and the range to expand it over."""
    rule: RecurringRule
    range_start: date
    range_end: date


# ============================================
# Responses
# ============================================

class SettlementSummary(BaseModel):
    status: str
    availability_date: str
    display_date: str


class CashFlowEventSummary(BaseModel):
    """A cash-flow event in the projection."""
    id: str
    date: str
    amount: str
    kind: str
    source_type: str
    source_id: str
    description: str
    settlement: Optional[SettlementSummary] = None


class DailyBalance(BaseModel):
    """Projected balance for a single day."""
    date: str
    starting_balance: str
    net_change: str
    ending_balance: str
    total_inflow: str
    total_outflow: str
    events: List[CashFlowEventSummary]


class BuyingOpportunitySummary(BaseModel):
    spendable_amount: str
    funds_available_date: str
    earliest_safe_spend_date: str


class SafeSpendingSummary(BaseModel):
    """Safe-spending limit, breach status and opportunities."""
    reserve_amount: str
    available_balance: str
    lowest_projected_balance: str
    lowest_balance_date: str
    safe_spending_limit: str
    will_breach_reserve: bool
    breach_level: Optional[str] = None
    breach_date: Optional[str] = None
    opportunities: List[BuyingOpportunitySummary]


class WindowSummary(BaseModel):
    start_date: str
    end_date: str
    horizon_days: int


class ProjectionResponse(BaseModel):
    """Complete projection response."""
    window: WindowSummary
    starting_balance: str
    event_count: int
    daily_balances: List[DailyBalance]
    safe_spending: SafeSpendingSummary


class RecurringPreviewResponse(BaseModel):
    occurrences: List[date]
    next_occurrence: Optional[date] = None
    monthly_amount: Decimal
