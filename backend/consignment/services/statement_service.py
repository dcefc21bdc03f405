# Overview: Service-layer operations for consignor statements; period balances and monthly batch generation.

"""
Consignor Statement Service

A statement covers one consignor and one period [period_start, period_end]
(whole days, both inclusive):

    opening  = earnings before the period - paid payouts before the period
    closing  = opening + earnings in the period - paid payouts in the period

Earnings are consignor amounts of Completed transactions by sale date;
payouts are Paid payouts by payout date. Because both sides are cumulative
sums over the same cut-off, the closing balance of one month is exactly the
opening balance of the next.

Statements are write-once per (consignor, period). Asking for an existing
period returns the stored row; regeneration deletes it first.
"""

from __future__ import annotations

from datetime import date

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Consignor, Payout, Statement, Transaction
from ..models.consignors import CONSIGNOR_STATUS_ACTIVE
from ..models.payouts import STATEMENT_STATUS_GENERATED, STATEMENT_STATUS_VIEWED
from ..models.sales import TRANSACTION_STATUS_COMPLETED, PAYOUT_STATUS_PAID
from .notification_service import notify_safely, notify_statement_ready
from .tenant_service import require_consignor_in_org, TenantAccessError
from consignment.time_utils import day_after, day_start, month_bounds, to_utc_z, utcnow


class StatementError(Exception):
    """Raised for statement operation errors."""
    pass


class StatementNotFoundError(StatementError):
    """Raised when a statement does not exist for the consignor."""
    pass


def _load_consignor(consignor_id: int, org_id: int | None) -> Consignor:
    if org_id is not None:
        try:
            return require_consignor_in_org(consignor_id, org_id)
        except TenantAccessError as exc:
            raise StatementError(str(exc))
    consignor = db.session.get(Consignor, consignor_id)
    if consignor is None:
        raise StatementError("Consignor not found")
    return consignor


def _earnings_query(consignor_id: int):
    return db.session.query(Transaction).filter(
        Transaction.consignor_id == consignor_id,
        Transaction.status == TRANSACTION_STATUS_COMPLETED,
    )


def _payouts_query(consignor_id: int):
    return db.session.query(Payout).filter(
        Payout.consignor_id == consignor_id,
        Payout.status == PAYOUT_STATUS_PAID,
    )


def calculate_balance_before(consignor_id: int, period_start: date) -> int:
    """Net unpaid earnings carried into a period, in cents."""
    cutoff = day_start(period_start)

    earned = (
        db.session.query(func.coalesce(func.sum(Transaction.consignor_amount_cents), 0))
        .filter(
            Transaction.consignor_id == consignor_id,
            Transaction.status == TRANSACTION_STATUS_COMPLETED,
            Transaction.sale_date < cutoff,
        )
        .scalar()
    )
    paid = (
        db.session.query(func.coalesce(func.sum(Payout.amount_cents), 0))
        .filter(
            Payout.consignor_id == consignor_id,
            Payout.status == PAYOUT_STATUS_PAID,
            Payout.payout_date < cutoff,
        )
        .scalar()
    )
    return int(earned) - int(paid)


def _period_transactions(consignor_id: int, period_start: date, period_end: date) -> list[Transaction]:
    return (
        _earnings_query(consignor_id)
        .filter(
            Transaction.sale_date >= day_start(period_start),
            Transaction.sale_date < day_after(period_end),
        )
        .order_by(Transaction.sale_date, Transaction.id)
        .all()
    )


def _period_payouts(consignor_id: int, period_start: date, period_end: date) -> list[Payout]:
    return (
        _payouts_query(consignor_id)
        .filter(
            Payout.payout_date >= day_start(period_start),
            Payout.payout_date < day_after(period_end),
        )
        .order_by(Payout.payout_date, Payout.id)
        .all()
    )


def statement_number(consignor: Consignor, period_start: date) -> str:
    # Format: STMT-2025-11-PRV00042
    return f"STMT-{period_start.year}-{period_start.month:02d}-PRV{consignor.id:05d}"


# =============================================================================
# GENERATION
# =============================================================================

def generate_statement(
    consignor_id: int,
    period_start: date,
    period_end: date,
    *,
    org_id: int | None = None,
) -> Statement:
    """
    Generate (or fetch) the statement for a consignor and period.

    Args:
        consignor_id: Consignor
        period_start: First day of the period
        period_end: Last day of the period (inclusive)
        org_id: When given, the consignor must belong to this organization

    Returns:
        The existing Statement for this exact period, or a newly persisted one

    Raises:
        StatementError: consignor unknown, or period_end before period_start
    """
    if period_end < period_start:
        raise StatementError("period_end must not be before period_start")

    consignor = _load_consignor(consignor_id, org_id)

    existing = get_statement_by_period(consignor.id, period_start, period_end)
    if existing is not None:
        return existing

    opening = calculate_balance_before(consignor.id, period_start)
    transactions = _period_transactions(consignor.id, period_start, period_end)
    payouts = _period_payouts(consignor.id, period_start, period_end)

    total_sales = sum(t.sale_price_cents for t in transactions)
    total_earnings = sum(t.consignor_amount_cents for t in transactions)
    total_payouts = sum(p.amount_cents for p in payouts)

    statement = Statement(
        org_id=consignor.org_id,
        consignor_id=consignor.id,
        statement_number=statement_number(consignor, period_start),
        period_start=period_start,
        period_end=period_end,
        opening_balance_cents=opening,
        total_sales_cents=total_sales,
        total_earnings_cents=total_earnings,
        total_payouts_cents=total_payouts,
        closing_balance_cents=opening + total_earnings - total_payouts,
        items_sold=len(transactions),
        payout_count=len(payouts),
        status=STATEMENT_STATUS_GENERATED,
        generated_at=utcnow(),
    )
    db.session.add(statement)
    db.session.commit()

    current_app.logger.info(
        "Generated statement %s for consignor %s", statement.statement_number, consignor.id
    )

    if current_app.config.get("STATEMENT_NOTIFY", True):
        notify_safely(notify_statement_ready, statement)

    return statement


def generate_statements_for_month(year: int, month: int, *, org_id: int | None = None) -> dict:
    """
    Generate statements for every active consignor for one calendar month.

    Consignors are processed one at a time. A failure for one consignor is
    logged and skipped; the rest still get their statements.

    Returns:
        Summary with period bounds, processed count, generated statement ids
        and the ids of consignors that failed
    """
    if month < 1 or month > 12:
        raise StatementError("Invalid month")

    period_start, period_end = month_bounds(year, month)

    query = db.session.query(Consignor.id).filter(Consignor.status == CONSIGNOR_STATUS_ACTIVE)
    if org_id is not None:
        query = query.filter(Consignor.org_id == org_id)
    consignor_ids = [row[0] for row in query.order_by(Consignor.id).all()]

    generated: list[int] = []
    failed: list[int] = []
    for consignor_id in consignor_ids:
        try:
            statement = generate_statement(consignor_id, period_start, period_end)
            generated.append(statement.id)
        except Exception:
            db.session.rollback()
            failed.append(consignor_id)
            current_app.logger.exception(
                "Failed to generate statement for consignor %s for period %s-%02d",
                consignor_id, year, month,
            )

    current_app.logger.info(
        "Completed statement generation for %s-%02d. Processed %s consignors (%s failed)",
        year, month, len(consignor_ids), len(failed),
    )
    return {
        "period_start": period_start,
        "period_end": period_end,
        "processed": len(consignor_ids),
        "statement_ids": generated,
        "failed_consignor_ids": failed,
    }


# =============================================================================
# QUERIES & LIFECYCLE
# =============================================================================

def list_statements(consignor_id: int) -> list[Statement]:
    return (
        db.session.query(Statement)
        .filter_by(consignor_id=consignor_id)
        .order_by(Statement.period_start.desc(), Statement.id.desc())
        .all()
    )


def get_statement(statement_id: int, consignor_id: int) -> Statement:
    statement = (
        db.session.query(Statement)
        .filter_by(id=statement_id, consignor_id=consignor_id)
        .first()
    )
    if statement is None:
        raise StatementNotFoundError("Statement not found")
    return statement


def get_statement_by_period(consignor_id: int, period_start: date, period_end: date) -> Statement | None:
    return (
        db.session.query(Statement)
        .filter_by(consignor_id=consignor_id, period_start=period_start, period_end=period_end)
        .first()
    )


def mark_as_viewed(statement_id: int, consignor_id: int) -> Statement:
    statement = get_statement(statement_id, consignor_id)
    if statement.viewed_at is None:
        statement.viewed_at = utcnow()
        statement.status = STATEMENT_STATUS_VIEWED
        db.session.commit()
    return statement


def delete_statement(statement_id: int, consignor_id: int) -> None:
    statement = get_statement(statement_id, consignor_id)
    db.session.delete(statement)
    db.session.commit()


def regenerate_statement(statement_id: int, consignor_id: int) -> Statement:
    """
    Replace a statement with a freshly generated one for the same period.

    The delete is only flushed; generate_statement's commit saves it together
    with the new row. If generation fails, the old statement is kept.
    """
    statement = get_statement(statement_id, consignor_id)
    period_start, period_end = statement.period_start, statement.period_end

    db.session.delete(statement)
    db.session.flush()

    try:
        return generate_statement(consignor_id, period_start, period_end)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Regeneration of statement %s failed; keeping the original", statement_id)
        raise


def get_statement_detail(statement: Statement) -> dict:
    """Statement header plus the sale and payout lines behind its totals."""
    consignor = statement.consignor
    sales = _period_transactions(statement.consignor_id, statement.period_start, statement.period_end)
    payouts = _period_payouts(statement.consignor_id, statement.period_start, statement.period_end)

    data = statement.to_dict()
    data["consignor_name"] = consignor.display_name if consignor else "Unknown"
    data["shop_name"] = consignor.organization.name if consignor and consignor.organization else "Unknown"
    data["sales"] = [
        {
            "transaction_id": t.id,
            "date": to_utc_z(t.sale_date),
            "item_sku": t.item.sku if t.item else "",
            "item_title": t.item.title if t.item else "",
            "sale_price_cents": t.sale_price_cents,
            "consignor_split_percent": f"{t.consignor_split_percent:.4f}",
            "earnings_cents": t.consignor_amount_cents,
        }
        for t in sales
    ]
    data["payouts"] = [
        {
            "payout_id": p.id,
            "date": to_utc_z(p.payout_date),
            "payout_number": p.payout_number,
            "payment_method": p.payment_method,
            "amount_cents": p.amount_cents,
        }
        for p in payouts
    ]
    return data
