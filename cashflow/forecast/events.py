"""
Cash-flow event model shared by every projection stage.

Each upstream record (vendor bill, income item, recurring rule, credit card,
marketplace payout) is turned into one closed CashFlowEvent shape at the
normalization boundary. Downstream stages never branch on the source record
type again; they only read `date`, `amount` and `kind`.
"""
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterator, Optional

from cashflow.sources.schemas import PayoutStatus


# =============================================================================
# ENUMS
# =============================================================================

class EventKind(str, Enum):
    """Direction of a cash-flow event."""
    INFLOW = "inflow"
    OUTFLOW = "outflow"
    CREDIT_PAYMENT = "credit_payment"


class SourceType(str, Enum):
    """Upstream store an event was derived from."""
    VENDOR = "vendor"
    INCOME = "income"
    RECURRING = "recurring"
    CREDIT_CARD = "credit_card"
    MARKETPLACE_PAYOUT = "marketplace_payout"


# =============================================================================
# VALUE OBJECTS
# =============================================================================

@dataclass(frozen=True)
class SettlementMeta:
    """Settlement timing attached to marketplace payout events."""
    status: PayoutStatus
    availability_date: date  # Day the funds hit the bank balance
    display_date: date       # Day shown to the user (predicted payout date for forecasts)


@dataclass(frozen=True)
class CashFlowEvent:
    """
    A single future cash movement (computed, never stored).

    `date` is the funds-impact date with all timing adjustments applied.
    `amount` is signed: inflows positive, outflows and card payments negative.
    """
    id: str  # Synthetic ID: {source_type}_{source_id}_{date}[_{suffix}]
    date: date
    amount: Decimal
    kind: EventKind
    source_type: SourceType
    source_id: str
    description: str = ""
    settlement_meta: Optional[SettlementMeta] = None

    @property
    def is_inflow(self) -> bool:
        return self.kind == EventKind.INFLOW

    @property
    def is_open_settlement(self) -> bool:
        return (
            self.settlement_meta is not None
            and self.settlement_meta.status == PayoutStatus.ESTIMATED
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API response."""
        data = {
            "id": self.id,
            "date": self.date.isoformat(),
            "amount": str(self.amount),
            "kind": self.kind.value,
            "source_type": self.source_type.value,
            "source_id": self.source_id,
            "description": self.description,
            "settlement": None,
        }
        if self.settlement_meta is not None:
            data["settlement"] = {
                "status": self.settlement_meta.status.value,
                "availability_date": self.settlement_meta.availability_date.isoformat(),
                "display_date": self.settlement_meta.display_date.isoformat(),
            }
        return data


def event_id(source_type: SourceType, source_id: str, on: date, suffix: Optional[str] = None) -> str:
    """Build the deterministic synthetic ID used for every event."""
    base = f"{source_type.value}_{source_id}_{on.isoformat()}"
    return f"{base}_{suffix}" if suffix else base


@dataclass(frozen=True)
class ProjectionWindow:
    """
    The forward horizon of one projection run.

    Covers exactly `horizon_days` calendar days starting at `start_date`
    (today), so `end_date` is inclusive.
    """
    start_date: date
    horizon_days: int

    def __post_init__(self):
        if self.horizon_days <= 0:
            raise ValueError(f"horizon_days must be positive, got {self.horizon_days}")

    @property
    def end_date(self) -> date:
        return self.start_date + timedelta(days=self.horizon_days - 1)

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    def days(self) -> Iterator[date]:
        for offset in range(self.horizon_days):
            yield self.start_date + timedelta(days=offset)
