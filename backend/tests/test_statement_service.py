# Overview: Pytest coverage for statement balances, idempotent generation and the monthly batch.

from datetime import date, datetime

import pytest

from consignment.models import Statement
from consignment.models.consignors import CONSIGNOR_STATUS_INACTIVE
from consignment.models.payouts import STATEMENT_STATUS_VIEWED
from consignment.services import consignor_service, notification_service, payout_service, statement_service
from consignment.services.statement_service import StatementError, StatementNotFoundError

JAN = (date(2025, 1, 1), date(2025, 1, 31))
FEB = (date(2025, 2, 1), date(2025, 2, 28))


@pytest.fixture
def jan_feb_activity(db_session, org_a, consignor_a, make_sale):
    """
    January: $100 and $50 sold (60% -> $60 + $30), $60 paid out on Jan 25.
    February: $20 sold (-> $12), $30 paid out on Feb 10.
    """
    t1 = make_sale(consignor_a, 10000, datetime(2025, 1, 10, 14))
    t2 = make_sale(consignor_a, 5000, datetime(2025, 1, 31, 23, 30))
    payout_service.create_payout(
        org_id=org_a.id, consignor_id=consignor_a.id, transaction_ids=[t1.id],
        payment_method="Cash", payout_date=datetime(2025, 1, 25, 12),
    )
    make_sale(consignor_a, 2000, datetime(2025, 2, 5, 11))
    payout_service.create_payout(
        org_id=org_a.id, consignor_id=consignor_a.id, transaction_ids=[t2.id],
        payment_method="Check", payout_date=datetime(2025, 2, 10, 9),
    )
    return consignor_a


class TestGenerateStatement:

    def test_january_totals(self, jan_feb_activity):
        stmt = statement_service.generate_statement(jan_feb_activity.id, *JAN)

        assert stmt.opening_balance_cents == 0
        assert stmt.total_sales_cents == 15000
        assert stmt.total_earnings_cents == 9000
        assert stmt.total_payouts_cents == 6000
        assert stmt.closing_balance_cents == 3000
        assert stmt.items_sold == 2
        assert stmt.payout_count == 1
        assert stmt.statement_number == f"STMT-2025-01-PRV{jan_feb_activity.id:05d}"

    def test_closing_carries_into_next_opening(self, jan_feb_activity):
        jan = statement_service.generate_statement(jan_feb_activity.id, *JAN)
        feb = statement_service.generate_statement(jan_feb_activity.id, *FEB)

        assert feb.opening_balance_cents == jan.closing_balance_cents == 3000
        assert feb.total_earnings_cents == 1200
        assert feb.total_payouts_cents == 3000
        assert feb.closing_balance_cents == 1200

    def test_last_day_is_inclusive(self, jan_feb_activity):
        # The Jan 31 23:30 sale belongs to January
        jan = statement_service.generate_statement(jan_feb_activity.id, *JAN)
        feb = statement_service.generate_statement(jan_feb_activity.id, *FEB)
        assert jan.items_sold == 2
        assert feb.items_sold == 1

    def test_existing_statement_returned_unchanged(self, db_session, jan_feb_activity, make_sale):
        first = statement_service.generate_statement(jan_feb_activity.id, *JAN)
        make_sale(jan_feb_activity, 10000, datetime(2025, 1, 15))

        again = statement_service.generate_statement(jan_feb_activity.id, *JAN)

        assert again.id == first.id
        assert again.total_earnings_cents == 9000
        assert db_session.query(Statement).count() == 1

    def test_cancelled_sales_excluded(self, db_session, org_a, consignor_a, make_sale):
        from consignment.services import transaction_service

        make_sale(consignor_a, 10000, datetime(2025, 1, 3))
        voided = make_sale(consignor_a, 10000, datetime(2025, 1, 4))
        transaction_service.cancel_transaction(org_a.id, voided.id)

        stmt = statement_service.generate_statement(consignor_a.id, *JAN)
        assert stmt.total_earnings_cents == 6000

    def test_rejects_reversed_period(self, db_session, consignor_a):
        with pytest.raises(StatementError):
            statement_service.generate_statement(consignor_a.id, date(2025, 2, 1), date(2025, 1, 1))

    def test_org_scoping(self, db_session, org_a, consignor_b):
        with pytest.raises(StatementError):
            statement_service.generate_statement(consignor_b.id, *JAN, org_id=org_a.id)

    def test_sends_statement_ready_notification(self, db_session, jan_feb_activity):
        stmt = statement_service.generate_statement(jan_feb_activity.id, *JAN)
        ready = [
            n for n in notification_service.list_notifications(jan_feb_activity.id)
            if n.related_entity_type == "Statement"
        ]
        assert [n.related_entity_id for n in ready] == [stmt.id]


class TestStatementLifecycle:

    def test_regenerate_gives_identical_totals(self, db_session, jan_feb_activity):
        original = statement_service.generate_statement(jan_feb_activity.id, *JAN)
        before = {
            k: v for k, v in original.to_dict().items()
            if k.endswith("_cents") or k in ("items_sold", "payout_count")
        }

        regenerated = statement_service.regenerate_statement(original.id, jan_feb_activity.id)

        after = {k: regenerated.to_dict()[k] for k in before}
        assert after == before
        assert db_session.query(Statement).count() == 1

    def test_failed_regenerate_keeps_original(self, db_session, jan_feb_activity, monkeypatch):
        original = statement_service.generate_statement(jan_feb_activity.id, *JAN)
        original_id = original.id
        closing = original.closing_balance_cents

        def boom(consignor_id, period_start):
            raise StatementError("balance lookup failed")

        monkeypatch.setattr(statement_service, "calculate_balance_before", boom)

        with pytest.raises(StatementError):
            statement_service.regenerate_statement(original_id, jan_feb_activity.id)

        assert db_session.query(Statement).count() == 1
        kept = statement_service.get_statement(original_id, jan_feb_activity.id)
        assert kept.closing_balance_cents == closing

    def test_mark_viewed_sets_timestamp_once(self, db_session, jan_feb_activity):
        stmt = statement_service.generate_statement(jan_feb_activity.id, *JAN)

        viewed = statement_service.mark_as_viewed(stmt.id, jan_feb_activity.id)
        first_seen = viewed.viewed_at
        assert viewed.status == STATEMENT_STATUS_VIEWED

        assert statement_service.mark_as_viewed(stmt.id, jan_feb_activity.id).viewed_at == first_seen

    def test_list_newest_first_and_delete(self, db_session, jan_feb_activity):
        jan = statement_service.generate_statement(jan_feb_activity.id, *JAN)
        feb = statement_service.generate_statement(jan_feb_activity.id, *FEB)

        assert [s.id for s in statement_service.list_statements(jan_feb_activity.id)] == [feb.id, jan.id]

        statement_service.delete_statement(jan.id, jan_feb_activity.id)
        with pytest.raises(StatementNotFoundError):
            statement_service.get_statement(jan.id, jan_feb_activity.id)
        assert statement_service.get_statement_by_period(jan_feb_activity.id, *JAN) is None

    def test_statement_of_other_consignor_not_found(self, db_session, jan_feb_activity, consignor_a2):
        stmt = statement_service.generate_statement(jan_feb_activity.id, *JAN)
        with pytest.raises(StatementNotFoundError):
            statement_service.get_statement(stmt.id, consignor_a2.id)

    def test_detail_lists_sales_and_payouts(self, db_session, jan_feb_activity):
        stmt = statement_service.generate_statement(jan_feb_activity.id, *JAN)

        detail = statement_service.get_statement_detail(stmt)

        assert detail["consignor_name"] == "Ada Lovelace"
        assert [line["earnings_cents"] for line in detail["sales"]] == [6000, 3000]
        assert [line["amount_cents"] for line in detail["payouts"]] == [6000]


class TestMonthlyBatch:

    def test_generates_for_active_consignors_only(self, db_session, org_a, jan_feb_activity, consignor_a2):
        inactive = consignor_service.create_consignor(org_id=org_a.id, first_name="Old", last_name="Account")
        consignor_service.set_status(inactive.id, org_a.id, CONSIGNOR_STATUS_INACTIVE)

        summary = statement_service.generate_statements_for_month(2025, 1)

        assert summary["processed"] == 2
        assert len(summary["statement_ids"]) == 2
        assert summary["failed_consignor_ids"] == []
        assert statement_service.get_statement_by_period(inactive.id, *JAN) is None

    def test_continues_past_single_failure(self, db_session, jan_feb_activity, consignor_a2, monkeypatch):
        real_generate = statement_service.generate_statement

        def flaky(consignor_id, period_start, period_end, **kwargs):
            if consignor_id == jan_feb_activity.id:
                raise RuntimeError("database hiccup")
            return real_generate(consignor_id, period_start, period_end, **kwargs)

        monkeypatch.setattr(statement_service, "generate_statement", flaky)

        summary = statement_service.generate_statements_for_month(2025, 1)

        assert summary["failed_consignor_ids"] == [jan_feb_activity.id]
        assert len(summary["statement_ids"]) == 1
        assert statement_service.get_statement_by_period(consignor_a2.id, *JAN) is not None

    def test_scoped_to_one_org(self, db_session, org_a, consignor_a, consignor_b):
        summary = statement_service.generate_statements_for_month(2025, 1, org_id=org_a.id)
        assert summary["processed"] == 1

    @pytest.mark.parametrize("month", [0, 13])
    def test_invalid_month(self, db_session, month):
        with pytest.raises(StatementError):
            statement_service.generate_statements_for_month(2025, month)
