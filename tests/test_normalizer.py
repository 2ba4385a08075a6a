"""
Tests for the Event Normalizer.

Tests cover per-source timing rules, sign conventions, excluded statuses
and the skip-and-log handling of malformed records.
"""

import logging
import pytest
from datetime import timedelta
from decimal import Decimal

from dateutil.relativedelta import relativedelta

from cashflow.forecast.events import EventKind, ProjectionWindow, SourceType
from cashflow.forecast.normalizer import (
    normalize_credit_card,
    normalize_credit_card_payment,
    normalize_income,
    normalize_payout,
    normalize_recurring,
    normalize_snapshot,
    normalize_vendor,
)
from cashflow.sources.schemas import (
    CreditCardPaymentRecord,
    CreditCardRecord,
    IncomeRecord,
    MarketplacePayoutRecord,
    PaymentScheduleLine,
    PayoutStatus,
    RecurringFrequency,
    RecurringRule,
    RecurringType,
    SourceSnapshot,
    VendorRecord,
)


def days(n):
    return timedelta(days=n)


# =============================================================================
# Vendors
# =============================================================================

class TestNormalizeVendor:
    """Vendor obligations become outflows on their due date."""

    def test_pending_vendor_is_outflow_on_due_date(self, today):
        vendor = VendorRecord(id="v1", name="Supplier", amount=Decimal("250"), due_date=today + days(5))

        events = normalize_vendor(vendor)

        assert len(events) == 1
        event = events[0]
        assert event.date == today + days(5)
        assert event.amount == Decimal("-250")
        assert event.kind == EventKind.OUTFLOW
        assert event.source_type == SourceType.VENDOR
        assert event.id == f"vendor_v1_{(today + days(5)).isoformat()}"

    @pytest.mark.parametrize("status", ["paid", "completed", "partially_paid", "PAID"])
    def test_settled_statuses_are_excluded(self, today, status):
        vendor = VendorRecord(id="v1", amount=Decimal("250"), due_date=today, status=status)

        assert normalize_vendor(vendor) == []

    def test_card_charged_vendor_is_excluded(self, today):
        vendor = VendorRecord(id="v1", amount=Decimal("250"), due_date=today, credit_card_id="cc1")

        assert normalize_vendor(vendor) == []

    def test_payment_schedule_splits_into_events(self, today):
        vendor = VendorRecord(
            id="v1",
            amount=Decimal("300"),
            due_date=today + days(20),
            payment_schedule=[
                PaymentScheduleLine(date=today + days(2), amount=Decimal("100")),
                PaymentScheduleLine(date=today + days(9), amount=Decimal("200")),
            ],
        )

        events = normalize_vendor(vendor)

        assert [e.date for e in events] == [today + days(2), today + days(9)]
        assert [e.amount for e in events] == [Decimal("-100"), Decimal("-200")]
        assert events[0].id.endswith("_0")
        assert events[1].id.endswith("_1")

    def test_schedule_line_without_date_is_skipped(self, today, caplog):
        vendor = VendorRecord(
            id="v1",
            payment_schedule=[
                PaymentScheduleLine(amount=Decimal("100")),
                PaymentScheduleLine(date=today, amount=Decimal("50")),
            ],
        )

        with caplog.at_level(logging.WARNING):
            events = normalize_vendor(vendor)

        assert len(events) == 1
        assert events[0].amount == Decimal("-50")
        assert "schedule line 0" in caplog.text

    def test_missing_due_date_is_logged_and_skipped(self, caplog):
        vendor = VendorRecord(id="v-bad", amount=Decimal("100"))

        with caplog.at_level(logging.WARNING):
            events = normalize_vendor(vendor)

        assert events == []
        assert "v-bad" in caplog.text


# =============================================================================
# Income
# =============================================================================

class TestNormalizeIncome:
    """Expected income becomes an inflow on its payment date."""

    def test_pending_income_is_inflow(self, today):
        income = IncomeRecord(id="i1", amount=Decimal("1200"), payment_date=today + days(3))

        events = normalize_income(income)

        assert len(events) == 1
        assert events[0].amount == Decimal("1200")
        assert events[0].kind == EventKind.INFLOW
        assert events[0].date == today + days(3)

    def test_received_income_is_excluded(self, today):
        income = IncomeRecord(id="i1", amount=Decimal("1200"), payment_date=today, status="received")

        assert normalize_income(income) == []

    def test_missing_payment_date_is_skipped(self, caplog):
        income = IncomeRecord(id="i-bad", amount=Decimal("1200"))

        with caplog.at_level(logging.WARNING):
            assert normalize_income(income) == []
        assert "i-bad" in caplog.text


# =============================================================================
# Recurring
# =============================================================================

class TestNormalizeRecurring:
    """Recurring rules expand into one event per occurrence in the window."""

    def test_expense_rule_is_outflows(self, today):
        rule = RecurringRule(
            id="r1", name="Software", amount=Decimal("40"),
            frequency=RecurringFrequency.WEEKLY, start_date=today,
        )
        window = ProjectionWindow(start_date=today, horizon_days=10)

        events = normalize_recurring(rule, window)

        assert [e.date for e in events] == [today, today + days(7)]
        assert all(e.amount == Decimal("-40") for e in events)
        assert all(e.kind == EventKind.OUTFLOW for e in events)

    def test_income_rule_is_inflows(self, today):
        rule = RecurringRule(
            id="r1", amount=Decimal("900"), frequency=RecurringFrequency.MONTHLY,
            start_date=today - days(20), type=RecurringType.INCOME,
        )
        window = ProjectionWindow(start_date=today, horizon_days=30)

        events = normalize_recurring(rule, window)

        assert len(events) == 1
        assert events[0].amount == Decimal("900")
        assert events[0].kind == EventKind.INFLOW

    def test_occurrences_outside_window_are_not_expanded(self, today):
        rule = RecurringRule(
            id="r1", amount=Decimal("10"), frequency=RecurringFrequency.DAILY,
            start_date=today - days(100),
        )
        window = ProjectionWindow(start_date=today, horizon_days=5)

        events = normalize_recurring(rule, window)

        assert len(events) == 5
        assert min(e.date for e in events) == today


# =============================================================================
# Credit cards
# =============================================================================

class TestNormalizeCreditCard:
    """Statement payments and the forecast next cycle."""

    def _card(self, today, **kwargs):
        defaults = dict(
            id="cc1",
            name="Business Visa",
            statement_balance=Decimal("1200"),
            credit_limit=Decimal("5000"),
            available_credit=Decimal("3000"),
            payment_due_date=today + days(10),
        )
        defaults.update(kwargs)
        return CreditCardRecord(**defaults)

    def test_statement_balance_paid_on_due_date(self, today):
        events = normalize_credit_card(self._card(today))

        assert len(events) == 1
        assert events[0].kind == EventKind.CREDIT_PAYMENT
        assert events[0].amount == Decimal("-1200")
        assert events[0].date == today + days(10)

    def test_minimum_payment_only(self, today):
        events = normalize_credit_card(
            self._card(today, pay_minimum_only=True, minimum_payment=Decimal("50"))
        )

        assert events[0].amount == Decimal("-50")

    def test_minimum_only_without_minimum_falls_back(self, today, caplog):
        with caplog.at_level(logging.WARNING):
            events = normalize_credit_card(self._card(today, pay_minimum_only=True))

        assert events[0].amount == Decimal("-1200")
        assert "cc1" in caplog.text

    def test_forecast_next_cycle(self, today):
        events = normalize_credit_card(self._card(today, forecast_next_cycle=True))

        assert len(events) == 2
        forecast = events[1]
        # 5000 limit - 3000 available - 1200 on the statement
        assert forecast.amount == Decimal("-800")
        assert forecast.date == today + days(10) + relativedelta(months=1)
        assert forecast.id.endswith("_next")

    def test_statement_falls_back_to_card_balance(self, today):
        events = normalize_credit_card(
            self._card(today, statement_balance=Decimal("0"), balance=Decimal("430"))
        )

        assert [e.amount for e in events] == [Decimal("-430")]

    def test_scheduled_payment_replaces_statement(self, today):
        events = normalize_credit_card(
            self._card(today, forecast_next_cycle=True), has_scheduled_payment=True
        )

        # Only the next-cycle forecast remains
        assert len(events) == 1
        assert events[0].id.endswith("_next")

    def test_inactive_card_is_excluded(self, today):
        assert normalize_credit_card(self._card(today, is_active=False)) == []

    def test_scheduled_card_payment(self, today):
        payment = CreditCardPaymentRecord(
            id="p1", credit_card_id="cc1", amount=Decimal("300"), payment_date=today + days(4),
        )

        events = normalize_credit_card_payment(payment)

        assert events[0].amount == Decimal("-300")
        assert events[0].kind == EventKind.CREDIT_PAYMENT

    def test_completed_card_payment_is_excluded(self, today):
        payment = CreditCardPaymentRecord(
            id="p1", amount=Decimal("300"), payment_date=today, status="completed",
        )

        assert normalize_credit_card_payment(payment) == []


# =============================================================================
# Marketplace payouts
# =============================================================================

class TestNormalizePayout:
    """T+1 settlement timing for every payout status."""

    def test_confirmed_lands_day_after_settlement_end(self, today):
        payout = MarketplacePayoutRecord(
            id="po1", total_amount=Decimal("4000"), status=PayoutStatus.CONFIRMED,
            settlement_end=today + days(3), payout_date=today + days(7),
        )

        events = normalize_payout(payout, today)

        assert len(events) == 1
        assert events[0].date == today + days(4)
        assert events[0].settlement_meta.availability_date == today + days(4)
        assert events[0].kind == EventKind.INFLOW

    def test_confirmed_without_settlement_end_uses_payout_date(self, today):
        payout = MarketplacePayoutRecord(
            id="po1", total_amount=Decimal("4000"), status=PayoutStatus.CONFIRMED,
            payout_date=today + days(2),
        )

        assert normalize_payout(payout, today)[0].date == today + days(3)

    def test_estimated_assumes_settlement_length(self, today):
        payout = MarketplacePayoutRecord(
            id="po1", total_amount=Decimal("900"), status=PayoutStatus.ESTIMATED,
            settlement_start=today,
        )

        events = normalize_payout(payout, today, settlement_length_days=15)

        assert events[0].date == today + days(16)
        assert events[0].is_open_settlement

    def test_forecasted_adds_transfer_lag(self, today):
        payout = MarketplacePayoutRecord(
            id="po1", total_amount=Decimal("700"), status=PayoutStatus.FORECASTED,
            payout_date=today + days(5),
        )

        events = normalize_payout(payout, today, transfer_lag_days=1)

        assert events[0].date == today + days(6)
        assert events[0].settlement_meta.display_date == today + days(5)

    @pytest.mark.parametrize("days_ago", [1, 3])
    def test_stale_forecast_is_dropped(self, today, days_ago):
        # Yesterday's forecast would land today after the lag, but it is still stale
        payout = MarketplacePayoutRecord(
            id="po1", total_amount=Decimal("700"), status=PayoutStatus.FORECASTED,
            payout_date=today - days(days_ago),
        )

        assert normalize_payout(payout, today, transfer_lag_days=1) == []

    def test_forecast_for_today_is_kept(self, today):
        payout = MarketplacePayoutRecord(
            id="po1", total_amount=Decimal("700"), status=PayoutStatus.FORECASTED,
            payout_date=today,
        )

        events = normalize_payout(payout, today, transfer_lag_days=1)

        assert [e.date for e in events] == [today + days(1)]

    def test_forecasts_disabled(self, today):
        payout = MarketplacePayoutRecord(
            id="po1", total_amount=Decimal("700"), status=PayoutStatus.FORECASTED,
            payout_date=today + days(5),
        )

        assert normalize_payout(payout, today, forecasts_enabled=False) == []

    def test_negative_payout_is_outflow(self, today):
        payout = MarketplacePayoutRecord(
            id="po1", total_amount=Decimal("-150"), status=PayoutStatus.CONFIRMED,
            settlement_end=today,
        )

        events = normalize_payout(payout, today)

        assert events[0].amount == Decimal("-150")
        assert events[0].kind == EventKind.OUTFLOW

    def test_zero_payout_is_skipped(self, today):
        payout = MarketplacePayoutRecord(
            id="po1", total_amount=Decimal("0"), status=PayoutStatus.CONFIRMED,
            settlement_end=today,
        )

        assert normalize_payout(payout, today) == []

    def test_dateless_payout_is_skipped(self, today, caplog):
        payout = MarketplacePayoutRecord(
            id="po-bad", total_amount=Decimal("100"), status=PayoutStatus.ESTIMATED,
        )

        with caplog.at_level(logging.WARNING):
            assert normalize_payout(payout, today) == []
        assert "po-bad" in caplog.text


# =============================================================================
# Snapshot
# =============================================================================

class TestNormalizeSnapshot:
    """Every store in the snapshot contributes events."""

    def test_all_sources_contribute(self, today):
        snapshot = SourceSnapshot(
            vendors=[VendorRecord(id="v1", amount=Decimal("100"), due_date=today + days(1))],
            income=[IncomeRecord(id="i1", amount=Decimal("200"), payment_date=today + days(2))],
            recurring=[RecurringRule(
                id="r1", amount=Decimal("5"), frequency=RecurringFrequency.DAILY, start_date=today,
            )],
            credit_cards=[CreditCardRecord(
                id="cc1", statement_balance=Decimal("50"), payment_due_date=today + days(3),
            )],
            credit_card_payments=[CreditCardPaymentRecord(
                id="p1", amount=Decimal("20"), payment_date=today + days(4),
            )],
            payouts=[MarketplacePayoutRecord(
                id="po1", total_amount=Decimal("400"), status=PayoutStatus.CONFIRMED,
                settlement_end=today + days(1),
            )],
        )
        window = ProjectionWindow(start_date=today, horizon_days=3)

        events = normalize_snapshot(snapshot, window)

        source_types = {e.source_type for e in events}
        assert source_types == set(SourceType)
        # 1 vendor + 1 income + 3 daily occurrences + 1 card + 1 card payment + 1 payout
        assert len(events) == 8

    def test_scheduled_statement_payment_is_counted_once(self, today):
        due = today + days(2)
        snapshot = SourceSnapshot(
            credit_cards=[CreditCardRecord(
                id="cc1", statement_balance=Decimal("800"), payment_due_date=due,
            )],
            credit_card_payments=[CreditCardPaymentRecord(
                id="p1", credit_card_id="cc1", amount=Decimal("800"), payment_date=due,
            )],
        )
        window = ProjectionWindow(start_date=today, horizon_days=5)

        events = normalize_snapshot(snapshot, window)

        assert len(events) == 1
        assert events[0].source_id == "p1"
        assert sum(e.amount for e in events) == Decimal("-800")

    def test_completed_payment_does_not_hide_statement(self, today):
        due = today + days(2)
        snapshot = SourceSnapshot(
            credit_cards=[CreditCardRecord(
                id="cc1", statement_balance=Decimal("800"), payment_due_date=due,
            )],
            credit_card_payments=[CreditCardPaymentRecord(
                id="p1", credit_card_id="cc1", amount=Decimal("800"),
                payment_date=today - days(10), status="completed",
            )],
        )
        window = ProjectionWindow(start_date=today, horizon_days=5)

        events = normalize_snapshot(snapshot, window)

        assert [e.source_id for e in events] == ["cc1"]
