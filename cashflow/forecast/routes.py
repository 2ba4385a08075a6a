"""Projection API routes."""
import logging
from datetime import date

from fastapi import APIRouter, HTTPException

from cashflow.forecast.engine import ProjectionConfig, run_projection
from cashflow.forecast.recurrence import expand, monthly_amount, next_occurrence
from cashflow.forecast.schemas import (
    ProjectionRequest,
    ProjectionResponse,
    RecurringPreviewRequest,
    RecurringPreviewResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=ProjectionResponse)
async def create_projection(request: ProjectionRequest):
    """
    Project the daily balance and the safe-spending limit for a snapshot.

    Args:
        request: Snapshot of every upstream store plus run configuration

    Returns:
        Daily balance series and safe-spending analysis
    """
    config = ProjectionConfig(
        reserve_amount=request.reserve_amount,
        horizon_days=request.horizon_days,
        exclude_today_events=request.exclude_today_events,
        use_available_balance=request.use_available_balance,
        forecasts_enabled=request.forecasts_enabled,
    )
    today = request.today or date.today()

    try:
        result = run_projection(request.snapshot, today, config)
    except ValueError as e:
        logger.warning(f"Rejected projection request: {e}")
        raise HTTPException(status_code=422, detail=str(e))

    return result.to_dict()


@router.post("/recurring/preview", response_model=RecurringPreviewResponse)
async def preview_recurring(request: RecurringPreviewRequest):
    """Expand a recurring rule over a date range."""
    if request.range_end < request.range_start:
        raise HTTPException(status_code=422, detail="range_end must not be before range_start")

    return {
        "occurrences": list(expand(request.rule, request.range_start, request.range_end)),
        "next_occurrence": next_occurrence(request.rule, request.range_start),
        "monthly_amount": monthly_amount(request.rule, request.range_start),
    }
