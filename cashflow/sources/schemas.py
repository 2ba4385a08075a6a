"""
Pydantic schemas for the upstream record stores the projection engine reads.

The engine never writes to these stores. Callers load a consistent snapshot
of every store, wrap it in a SourceSnapshot and hand it to the pipeline.
"""
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


# ============================================
# Enums
# ============================================

class RecurringFrequency(str, Enum):
    """How often a recurring rule fires."""
    DAILY = "daily"
    WEEKLY = "weekly"
    BI_WEEKLY = "bi-weekly"
    MONTHLY = "monthly"
    TWO_MONTHS = "2-months"
    THREE_MONTHS = "3-months"
    YEARLY = "yearly"
    WEEKDAYS = "weekdays"


class RecurringType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class PayoutStatus(str, Enum):
    """Lifecycle of a marketplace settlement."""
    CONFIRMED = "confirmed"    # Settlement closed, amount final
    ESTIMATED = "estimated"    # Open settlement, still accumulating
    FORECASTED = "forecasted"  # Model-generated, no settlement yet


# ============================================
# Vendor ledger
# ============================================

class PaymentScheduleLine(BaseModel):
    """One planned partial payment of a vendor obligation."""
    model_config = ConfigDict(populate_by_name=True)

    scheduled_date: Optional[date] = Field(None, alias="date")
    amount: Decimal = Field(Decimal("0"), description="Amount paid on this date")


class VendorRecord(BaseModel):
    """A bill or purchase order owed to a vendor."""
    id: str
    name: Optional[str] = None
    amount: Decimal = Field(Decimal("0"), description="Amount still owed")
    due_date: Optional[date] = None
    status: str = Field("pending", description="pending | paid | completed | partially_paid")
    payment_schedule: Optional[List[PaymentScheduleLine]] = Field(
        None, description="Split payments; each line becomes its own event"
    )
    credit_card_id: Optional[str] = Field(
        None, description="Set when the purchase was charged to a credit card"
    )


# ============================================
# Income ledger
# ============================================

class IncomeRecord(BaseModel):
    """Expected customer income."""
    id: str
    description: Optional[str] = None
    amount: Decimal = Decimal("0")
    payment_date: Optional[date] = None
    status: str = Field("pending", description="pending | received")


# ============================================
# Recurring-rule store
# ============================================

class RecurringRule(BaseModel):
    """A recurring income or expense template."""
    id: str
    name: Optional[str] = None
    amount: Decimal = Field(..., ge=0)
    frequency: RecurringFrequency
    start_date: date
    end_date: Optional[date] = None
    type: RecurringType = RecurringType.EXPENSE
    is_active: bool = True
    skipped_dates: List[date] = Field(
        default_factory=list, description="Single occurrences the user skipped"
    )


# ============================================
# Credit-card ledger
# ============================================

class CreditCardRecord(BaseModel):
    """A credit card and its current statement."""
    id: str
    name: Optional[str] = None
    balance: Decimal = Decimal("0")
    statement_balance: Decimal = Decimal("0")
    minimum_payment: Optional[Decimal] = None
    credit_limit: Decimal = Decimal("0")
    available_credit: Decimal = Decimal("0")
    payment_due_date: Optional[date] = None
    pay_minimum_only: bool = False
    forecast_next_cycle: bool = False
    is_active: bool = True


class CreditCardPaymentRecord(BaseModel):
    """A card payment the user has explicitly scheduled."""
    id: str
    credit_card_id: Optional[str] = None
    amount: Decimal = Decimal("0")
    payment_date: Optional[date] = None
    status: str = Field("scheduled", description="scheduled | completed | cancelled")
    description: Optional[str] = None


# ============================================
# Marketplace payout ledger
# ============================================

class MarketplacePayoutRecord(BaseModel):
    """A marketplace settlement (closed, open or forecasted)."""
    id: str
    settlement_id: Optional[str] = None
    payout_date: Optional[date] = None
    total_amount: Decimal = Decimal("0")
    status: PayoutStatus
    settlement_start: Optional[date] = None
    settlement_end: Optional[date] = None


# ============================================
# Bank balance store
# ============================================

class BankAccountRecord(BaseModel):
    """A connected or manual bank account."""
    id: str
    name: Optional[str] = None
    balance: Decimal = Field(Decimal("0"), description="Ledger balance")
    available_balance: Optional[Decimal] = Field(
        None, description="Balance net of pending holds, when the bank reports it"
    )
    is_active: bool = True


# ============================================
# Snapshot
# ============================================

class SourceSnapshot(BaseModel):
    """A consistent read of every upstream store, taken just before a run."""
    bank_accounts: List[BankAccountRecord] = Field(default_factory=list)
    vendors: List[VendorRecord] = Field(default_factory=list)
    income: List[IncomeRecord] = Field(default_factory=list)
    recurring: List[RecurringRule] = Field(default_factory=list)
    credit_cards: List[CreditCardRecord] = Field(default_factory=list)
    credit_card_payments: List[CreditCardPaymentRecord] = Field(default_factory=list)
    payouts: List[MarketplacePayoutRecord] = Field(default_factory=list)
