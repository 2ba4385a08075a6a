"""
Event Normalizer - converts upstream records into CashFlowEvents.

Every function here is pure: it reads one record (plus the run's dates and
options) and returns the events it contributes. No function raises for a
malformed record; the documented fallback is used, or the record is skipped
and a warning is logged, so one bad record never blocks the whole projection.

Timing rules by source:
- Vendor obligations: due date, or one event per payment-schedule line
- Income: expected payment date
- Recurring rules: every occurrence inside the window
- Credit cards: statement due date, optional forecast of the next cycle
- Scheduled card payments: payment date
- Marketplace payouts: settlement end + 1 day (T+1), see normalize_payout()
"""
import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import List, Optional

from dateutil.relativedelta import relativedelta

from cashflow.config import settings
from cashflow.forecast.events import (
    CashFlowEvent,
    EventKind,
    ProjectionWindow,
    SettlementMeta,
    SourceType,
    event_id,
)
from cashflow.forecast.recurrence import expand
from cashflow.sources.schemas import (
    CreditCardPaymentRecord,
    CreditCardRecord,
    IncomeRecord,
    MarketplacePayoutRecord,
    PayoutStatus,
    RecurringRule,
    RecurringType,
    SourceSnapshot,
    VendorRecord,
)

logger = logging.getLogger(__name__)

# Vendor bills in these states are already settled, or tracked against a
# separate payment ledger
VENDOR_EXCLUDED_STATUSES = {"paid", "completed", "partially_paid"}

INCOME_RECEIVED_STATUS = "received"
CARD_PAYMENT_SCHEDULED_STATUS = "scheduled"


def _outflow(
    source_type: SourceType,
    source_id: str,
    on: date,
    magnitude: Decimal,
    description: str,
    kind: EventKind = EventKind.OUTFLOW,
    suffix: Optional[str] = None,
) -> CashFlowEvent:
    return CashFlowEvent(
        id=event_id(source_type, source_id, on, suffix),
        date=on,
        amount=-abs(magnitude),
        kind=kind,
        source_type=source_type,
        source_id=source_id,
        description=description,
    )


# =============================================================================
# Vendors
# =============================================================================

def normalize_vendor(vendor: VendorRecord) -> List[CashFlowEvent]:
    """Compute outflow events for an unpaid vendor obligation."""
    status = (vendor.status or "").lower()
    if status in VENDOR_EXCLUDED_STATUSES:
        return []

    if vendor.credit_card_id:
        # Charged to a card; the card payment moves the bank balance instead
        return []

    description = vendor.name or "Vendor payment"

    if vendor.payment_schedule:
        events = []
        for i, line in enumerate(vendor.payment_schedule):
            if line.scheduled_date is None:
                logger.warning(f"Vendor {vendor.id} schedule line {i} has no date, skipping")
                continue
            if line.amount <= 0:
                continue
            events.append(_outflow(
                SourceType.VENDOR, vendor.id, line.scheduled_date, line.amount,
                description, suffix=str(i),
            ))
        return events

    if vendor.due_date is None:
        logger.warning(f"Vendor {vendor.id} has neither a due date nor a payment schedule, skipping")
        return []

    if vendor.amount <= 0:
        return []

    return [_outflow(SourceType.VENDOR, vendor.id, vendor.due_date, vendor.amount, description)]


# =============================================================================
# Income
# =============================================================================

def normalize_income(income: IncomeRecord) -> List[CashFlowEvent]:
    """Compute the inflow event for expected income not yet received."""
    if (income.status or "").lower() == INCOME_RECEIVED_STATUS:
        return []

    if income.payment_date is None:
        logger.warning(f"Income {income.id} has no payment date, skipping")
        return []

    if income.amount <= 0:
        return []

    return [CashFlowEvent(
        id=event_id(SourceType.INCOME, income.id, income.payment_date),
        date=income.payment_date,
        amount=income.amount,
        kind=EventKind.INFLOW,
        source_type=SourceType.INCOME,
        source_id=income.id,
        description=income.description or "Income",
    )]


# =============================================================================
# Recurring rules
# =============================================================================

def normalize_recurring(rule: RecurringRule, window: ProjectionWindow) -> List[CashFlowEvent]:
    """One event per occurrence of the rule inside the window."""
    if not rule.is_active or rule.amount <= 0:
        return []

    is_income = rule.type == RecurringType.INCOME
    description = rule.name or f"Recurring {rule.type.value}"

    events = []
    for occurrence in expand(rule, window.start_date, window.end_date):
        events.append(CashFlowEvent(
            id=event_id(SourceType.RECURRING, rule.id, occurrence),
            date=occurrence,
            amount=rule.amount if is_income else -rule.amount,
            kind=EventKind.INFLOW if is_income else EventKind.OUTFLOW,
            source_type=SourceType.RECURRING,
            source_id=rule.id,
            description=description,
        ))
    return events


# =============================================================================
# Credit cards
# =============================================================================

def normalize_credit_card(card: CreditCardRecord, has_scheduled_payment: bool = False) -> List[CashFlowEvent]:
    """
    Compute the statement payment for a card, plus an optional forecast.

    The statement amount falls back to the running card balance when no
    statement balance is reported. When the user has already scheduled a
    payment for this card, that payment carries the statement and no
    statement event is emitted here.

    The forecasted next-cycle payment is whatever has been charged since the
    statement closed: credit_limit - available_credit - statement_balance.
    """
    if not card.is_active:
        return []

    if card.payment_due_date is None:
        logger.warning(f"Credit card {card.id} has no payment due date, skipping")
        return []

    description = card.name or "Credit card payment"
    events = []

    amount = card.statement_balance or card.balance
    if card.pay_minimum_only:
        if card.minimum_payment is None:
            logger.warning(
                f"Credit card {card.id} pays minimum only but has no minimum payment, "
                f"using statement balance"
            )
        else:
            amount = card.minimum_payment

    if has_scheduled_payment:
        logger.debug(f"Credit card {card.id} statement covered by a scheduled payment")
    elif amount > 0:
        events.append(_outflow(
            SourceType.CREDIT_CARD, card.id, card.payment_due_date, amount,
            description, kind=EventKind.CREDIT_PAYMENT,
        ))

    if card.forecast_next_cycle:
        projected = card.credit_limit - card.available_credit - card.statement_balance
        if projected > 0:
            next_due = card.payment_due_date + relativedelta(months=1)
            events.append(_outflow(
                SourceType.CREDIT_CARD, card.id, next_due, projected,
                f"{description} (forecast)", kind=EventKind.CREDIT_PAYMENT, suffix="next",
            ))

    return events


def normalize_credit_card_payment(payment: CreditCardPaymentRecord) -> List[CashFlowEvent]:
    """Compute the event for an explicitly scheduled card payment."""
    if (payment.status or "").lower() != CARD_PAYMENT_SCHEDULED_STATUS:
        return []

    if payment.payment_date is None:
        logger.warning(f"Credit card payment {payment.id} has no payment date, skipping")
        return []

    if payment.amount <= 0:
        return []

    return [_outflow(
        SourceType.CREDIT_CARD, payment.id, payment.payment_date, payment.amount,
        payment.description or "Credit card payment", kind=EventKind.CREDIT_PAYMENT,
    )]


# =============================================================================
# Marketplace payouts
# =============================================================================

def normalize_payout(
    payout: MarketplacePayoutRecord,
    today: date,
    forecasts_enabled: bool = True,
    settlement_length_days: int = settings.ASSUMED_SETTLEMENT_LENGTH_DAYS,
    transfer_lag_days: int = settings.PAYOUT_TRANSFER_LAG_DAYS,
) -> List[CashFlowEvent]:
    """
    Compute the funds-impact event for a marketplace payout.

    - confirmed: settlement end + 1 day, else payout date + 1 day
    - estimated: settlement end + 1, else settlement start + assumed length + 1,
      else payout date + 1. Never dropped by date: an open settlement is money
      already earned.
    - forecasted: predicted payout date for display, + transfer lag for the
      balance. Dropped when the predicted payout date is already in the past.
    """
    status = payout.status
    one_day = timedelta(days=1)

    if status == PayoutStatus.CONFIRMED:
        if payout.settlement_end is not None:
            funds_date = payout.settlement_end + one_day
        elif payout.payout_date is not None:
            funds_date = payout.payout_date + one_day
        else:
            logger.warning(f"Confirmed payout {payout.id} has no settlement end or payout date, skipping")
            return []
        display_date = funds_date

    elif status == PayoutStatus.ESTIMATED:
        if payout.settlement_end is not None:
            close_date = payout.settlement_end
        elif payout.settlement_start is not None:
            close_date = payout.settlement_start + timedelta(days=settlement_length_days)
        elif payout.payout_date is not None:
            close_date = payout.payout_date
        else:
            logger.warning(f"Open settlement {payout.id} has no dates at all, skipping")
            return []
        funds_date = close_date + one_day
        display_date = funds_date

    elif status == PayoutStatus.FORECASTED:
        if not forecasts_enabled:
            return []
        if payout.payout_date is None:
            logger.warning(f"Forecasted payout {payout.id} has no payout date, skipping")
            return []
        if payout.payout_date < today:
            logger.debug(f"Dropping stale forecasted payout {payout.id} dated {payout.payout_date}")
            return []
        display_date = payout.payout_date
        funds_date = payout.payout_date + timedelta(days=transfer_lag_days)

    else:
        logger.warning(f"Payout {payout.id} has unknown status {status}, skipping")
        return []

    if payout.total_amount == 0:
        return []

    kind = EventKind.INFLOW if payout.total_amount > 0 else EventKind.OUTFLOW
    return [CashFlowEvent(
        id=event_id(SourceType.MARKETPLACE_PAYOUT, payout.id, funds_date),
        date=funds_date,
        amount=payout.total_amount,
        kind=kind,
        source_type=SourceType.MARKETPLACE_PAYOUT,
        source_id=payout.id,
        description=f"Marketplace {status.value}" + (
            f" {payout.settlement_id}" if payout.settlement_id else ""
        ),
        settlement_meta=SettlementMeta(
            status=status,
            availability_date=funds_date,
            display_date=display_date,
        ),
    )]


# =============================================================================
# Snapshot
# =============================================================================

def normalize_snapshot(
    snapshot: SourceSnapshot,
    window: ProjectionWindow,
    forecasts_enabled: bool = True,
    settlement_length_days: int = settings.ASSUMED_SETTLEMENT_LENGTH_DAYS,
    transfer_lag_days: int = settings.PAYOUT_TRANSFER_LAG_DAYS,
) -> List[CashFlowEvent]:
    """
    Normalize every record in the snapshot.

    Window membership is not enforced here (the timeline builder owns it),
    except that recurring rules are only expanded inside the window.
    """
    events: List[CashFlowEvent] = []

    for vendor in snapshot.vendors:
        events.extend(normalize_vendor(vendor))

    for income in snapshot.income:
        events.extend(normalize_income(income))

    for rule in snapshot.recurring:
        events.extend(normalize_recurring(rule, window))

    # Cards whose statement the user already scheduled a payment for
    scheduled_cards = {
        payment.credit_card_id
        for payment in snapshot.credit_card_payments
        if payment.credit_card_id
        and (payment.status or "").lower() == CARD_PAYMENT_SCHEDULED_STATUS
    }

    for card in snapshot.credit_cards:
        events.extend(normalize_credit_card(card, has_scheduled_payment=card.id in scheduled_cards))

    for payment in snapshot.credit_card_payments:
        events.extend(normalize_credit_card_payment(payment))

    for payout in snapshot.payouts:
        events.extend(normalize_payout(
            payout,
            today=window.start_date,
            forecasts_enabled=forecasts_enabled,
            settlement_length_days=settlement_length_days,
            transfer_lag_days=transfer_lag_days,
        ))

    return events
