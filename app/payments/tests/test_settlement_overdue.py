"""
Tests for the settlement overdue scanner.

Tests cover:
- Grace window and status filtering
- One email per settlement, sent only by the run that flagged it
- Merchants without an email address
- Email delivery failures reported as errors
- Overdue day rounding
"""

from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal

import pytest
from django.core import mail
from django.utils import timezone
from freezegun import freeze_time

from payments.state_machines import SettlementStatus
from payments.tests.factories import MerchantFactory, SettlementFactory
from payments.workers import SettlementOverdueService, mark_overdue_settlements
from payments.workers.settlement_overdue import overdue_days


def scan(**kwargs):
    return SettlementOverdueService.mark_overdue_settlements(**kwargs).data


class TestOverdueDays:
    def test_rounds_up_partial_days(self):
        period_end = datetime(2026, 3, 1, 0, 0, tzinfo=dt_timezone.utc)

        assert overdue_days(period_end, period_end + timedelta(days=2, hours=1)) == 3

    def test_whole_days(self):
        period_end = datetime(2026, 3, 1, 0, 0, tzinfo=dt_timezone.utc)

        assert overdue_days(period_end, period_end + timedelta(days=5)) == 5


@pytest.mark.django_db
class TestMarkOverdueSettlements:
    def test_flags_and_emails_merchant(self, settings):
        settings.MERCHANT_DASHBOARD_URL = "https://merchants.example.com/settlements"
        merchant = MerchantFactory(name="Nile Bakery", email="owner@nilebakery.example")
        with freeze_time("2026-03-20 09:00:00"):
            settlement = SettlementFactory(merchant=merchant, net_amount_due=Decimal("1200.50"))
            summary = scan()

        assert summary.found == 1
        assert summary.updated == 1
        assert summary.emails_sent == 1
        assert summary.errors == []
        settlement.refresh_from_db()
        assert settlement.status == SettlementStatus.OVERDUE
        assert settlement.overdue_at is not None

        assert len(mail.outbox) == 1
        message = mail.outbox[0]
        assert message.to == ["owner@nilebakery.example"]
        assert message.subject == "Settlement payment overdue - 10 days"
        assert "Nile Bakery" in message.body
        assert "1200.50" in message.body
        assert "https://merchants.example.com/settlements" in message.body
        assert message.alternatives

    def test_within_grace_window_untouched(self):
        with freeze_time("2026-03-10 12:00:00"):
            settlement = SettlementFactory(
                period_end=timezone.now() - timedelta(hours=12),
            )
            summary = scan(grace_days=1)

        assert summary.found == 0
        settlement.refresh_from_db()
        assert settlement.status == SettlementStatus.PENDING
        assert mail.outbox == []

    def test_singular_day_subject(self):
        with freeze_time("2026-03-10 12:00:00"):
            SettlementFactory(period_end=timezone.now() - timedelta(hours=20))
            scan(grace_days=0)

        assert mail.outbox[0].subject == "Settlement payment overdue - 1 day"

    def test_non_pending_ignored(self):
        SettlementFactory(status=SettlementStatus.OVERDUE)
        SettlementFactory(status=SettlementStatus.PAID)

        summary = scan()

        assert summary.found == 0
        assert mail.outbox == []

    def test_second_run_sends_nothing(self):
        SettlementFactory()

        scan()
        summary = scan()

        assert summary.found == 0
        assert summary.emails_sent == 0
        assert len(mail.outbox) == 1

    def test_lost_race_sends_no_email(self, mocker):
        SettlementFactory()
        # Another scanner flagged the row between the read and the write
        mocker.patch("payments.transitions.compare_and_set", return_value=0)

        summary = scan()

        assert summary.updated == 0
        assert summary.emails_sent == 0
        assert mail.outbox == []

    def test_merchant_without_email(self):
        settlement = SettlementFactory(merchant=MerchantFactory(email=None))

        summary = scan()

        assert summary.updated == 1
        assert summary.emails_sent == 0
        assert summary.errors == []
        settlement.refresh_from_db()
        assert settlement.status == SettlementStatus.OVERDUE

    def test_email_failure_reported(self, mocker):
        settlement = SettlementFactory()
        mocker.patch(
            "payments.workers.settlement_overdue.EmailService.send",
            return_value=False,
        )

        summary = scan()

        assert summary.updated == 1
        assert summary.emails_sent == 0
        assert len(summary.errors) == 1
        assert str(settlement.pk) in summary.errors[0]
        settlement.refresh_from_db()
        assert settlement.status == SettlementStatus.OVERDUE

    def test_task_returns_summary_dict(self):
        SettlementFactory()

        data = mark_overdue_settlements.apply().get()

        assert data["overdueFound"] == 1
        assert data["statusUpdated"] == 1
        assert data["emailsSent"] == 1
        assert data["errors"] == []
        assert data["timestamp"] is not None
