# Overview: Service-layer operations for consignor payouts; manual payout marking and pending-balance reporting.

"""
Manual Payout Service

The owner pays consignors outside the system (cash, check, Venmo, ...) and
records it here. Marking a consignor as paid takes every unpaid, completed
transaction for that consignor, flags them paid with one shared date and
method, and creates one Payout row whose amount is the sum of their
consignor amounts. All of it is committed together.

A notification goes out after the commit. It is best-effort: a failure is
logged and never undoes the payout.

Concurrency: there is no row locking. Two simultaneous mark-paid requests
for the same consignor can both read the same pending rows.

Automated payouts go through a provider registry. No provider has a
handler yet, so every request is rejected.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Consignor, Payout, Transaction
from ..models.consignors import CONSIGNOR_STATUS_ACTIVE
from ..models.sales import (
    TRANSACTION_STATUS_COMPLETED,
    PAYOUT_STATUS_PENDING,
    PAYOUT_STATUS_PAID,
)
from .notification_service import notify_payout_processed, notify_safely
from .tenant_service import require_consignor_in_org, require_payout_in_org
from .transaction_service import PagedResult
from consignment.time_utils import utcnow


class PayoutError(Exception):
    """Raised for payout operation errors."""
    pass


class UnsupportedPayoutProviderError(PayoutError):
    """Raised when an automated payout provider is requested."""
    pass


PAYOUT_SORT_FIELDS = {
    "payout_date": Payout.payout_date,
    "amount": Payout.amount_cents,
    "status": Payout.status,
}


@dataclass
class PayoutFilters:
    consignor_id: int | None = None
    status: str | None = None
    payout_date_from: datetime | None = None
    payout_date_to: datetime | None = None


def _pending_query(org_id: int):
    return db.session.query(Transaction).filter(
        Transaction.org_id == org_id,
        Transaction.status == TRANSACTION_STATUS_COMPLETED,
        Transaction.paid_out.is_(False),
    )


def _next_payout_number(org_id: int, when: datetime) -> str:
    """PO{yyyymmdd}{seq:03}, sequence restarting each day per organization."""
    prefix = f"PO{when:%Y%m%d}"
    last = (
        db.session.query(Payout.payout_number)
        .filter(Payout.org_id == org_id, Payout.payout_number.like(f"{prefix}%"))
        # Longer numbers first so that ...1000 ranks above ...999
        .order_by(func.length(Payout.payout_number).desc(), Payout.payout_number.desc())
        .first()
    )
    seq = int(last[0][len(prefix):]) + 1 if last else 1
    return f"{prefix}{seq:03d}"


def _settle(
    *,
    org_id: int,
    consignor: Consignor,
    transactions: list[Transaction],
    payment_method: str,
    payout_date: datetime,
    payment_reference: str | None,
    notes: str | None,
    actor_user_id: int | None,
) -> Payout:
    """Create the Payout row and flip every transaction to paid. Caller commits."""
    payout = Payout(
        org_id=org_id,
        consignor_id=consignor.id,
        payout_number=_next_payout_number(org_id, payout_date),
        payout_date=payout_date,
        amount_cents=sum(t.consignor_amount_cents for t in transactions),
        status=PAYOUT_STATUS_PAID,
        payment_method=payment_method,
        payment_reference=payment_reference,
        period_start=min(t.sale_date for t in transactions),
        period_end=max(t.sale_date for t in transactions),
        transaction_count=len(transactions),
        notes=notes,
        created_by_user_id=actor_user_id,
    )
    db.session.add(payout)
    db.session.flush()  # Get payout ID

    for txn in transactions:
        txn.paid_out = True
        txn.paid_out_date = payout_date
        txn.payout_status = PAYOUT_STATUS_PAID
        txn.payout_method = payment_method
        txn.payout_notes = notes
        txn.payout_id = payout.id

    return payout


# =============================================================================
# PAYOUT MARKING
# =============================================================================

def mark_as_paid(
    *,
    org_id: int,
    consignor_id: int,
    payment_method: str,
    notes: str | None = None,
    payment_reference: str | None = None,
    actor_user_id: int | None = None,
) -> Payout:
    """
    Mark every pending transaction of a consignor as paid.

    Args:
        org_id: Tenant
        consignor_id: Consignor being paid
        payment_method: How the money was sent (Cash, Check, Venmo, ...)
        notes: Free text stored on the payout and on each transaction
        payment_reference: Check number, transfer id, ...
        actor_user_id: User recording the payout

    Returns:
        The new Payout

    Raises:
        TenantAccessError: consignor unknown in this organization
        PayoutError: missing payment method, or nothing pending
    """
    if not payment_method or not payment_method.strip():
        raise PayoutError("payment_method is required")

    consignor = require_consignor_in_org(consignor_id, org_id)

    transactions = (
        _pending_query(org_id)
        .filter(Transaction.consignor_id == consignor.id)
        .order_by(Transaction.sale_date, Transaction.id)
        .all()
    )
    if not transactions:
        raise PayoutError(f"No pending transactions for consignor {consignor_id}")

    payout = _settle(
        org_id=org_id,
        consignor=consignor,
        transactions=transactions,
        payment_method=payment_method.strip(),
        payout_date=utcnow(),
        payment_reference=payment_reference,
        notes=notes,
        actor_user_id=actor_user_id,
    )
    db.session.commit()

    current_app.logger.info(
        "[MANUAL PAYOUT] Marked %s transactions as paid for consignor %s (payout %s, %s cents, method=%s, notes=%s)",
        len(transactions), consignor.id, payout.payout_number, payout.amount_cents,
        payout.payment_method, notes or "None",
    )

    notify_safely(notify_payout_processed, payout)
    return payout


def create_payout(
    *,
    org_id: int,
    consignor_id: int,
    transaction_ids: list[int],
    payment_method: str,
    payout_date: datetime | None = None,
    payment_reference: str | None = None,
    notes: str | None = None,
    actor_user_id: int | None = None,
) -> Payout:
    """
    Pay out a selected subset of a consignor's pending transactions.

    Every id must be a pending, completed transaction of this consignor in
    this organization; otherwise nothing is changed.
    """
    if not payment_method or not payment_method.strip():
        raise PayoutError("payment_method is required")
    if not transaction_ids:
        raise PayoutError("transaction_ids must not be empty")

    consignor = require_consignor_in_org(consignor_id, org_id)
    wanted = set(transaction_ids)

    transactions = (
        _pending_query(org_id)
        .filter(
            Transaction.consignor_id == consignor.id,
            Transaction.id.in_(wanted),
        )
        .order_by(Transaction.sale_date, Transaction.id)
        .all()
    )
    if len(transactions) != len(wanted):
        raise PayoutError("Some transactions are invalid or already paid out")

    payout = _settle(
        org_id=org_id,
        consignor=consignor,
        transactions=transactions,
        payment_method=payment_method.strip(),
        payout_date=payout_date or utcnow(),
        payment_reference=payment_reference,
        notes=notes,
        actor_user_id=actor_user_id,
    )
    db.session.commit()

    current_app.logger.info(
        "Created payout %s for consignor %s covering %s transactions",
        payout.payout_number, consignor.id, len(transactions),
    )

    notify_safely(notify_payout_processed, payout)
    return payout


# =============================================================================
# AUTOMATED PAYOUT PROVIDERS
# =============================================================================

# Known provider names mapped to their disbursement handler. None means the
# provider is recognized but has no handler yet.
PAYOUT_PROVIDERS: dict[str, Callable[..., dict] | None] = {
    "stripe": None,
    "square": None,
    "quickbooks": None,
    "clover": None,
    "shopify": None,
}


def register_payout_provider(name: str, handler: Callable[..., dict]) -> None:
    PAYOUT_PROVIDERS[name.strip().lower()] = handler


def get_supported_providers() -> list[str]:
    return sorted(name for name, handler in PAYOUT_PROVIDERS.items() if handler is not None)


def get_payout_provider(provider: str) -> Callable[..., dict]:
    """
    Look up the handler for a provider name (case-insensitive).

    Raises:
        UnsupportedPayoutProviderError: unknown provider, or one without a handler
    """
    key = (provider or "").strip().lower()
    if key not in PAYOUT_PROVIDERS:
        raise UnsupportedPayoutProviderError(f"Payout provider '{provider}' is not supported")
    handler = PAYOUT_PROVIDERS[key]
    if handler is None:
        raise UnsupportedPayoutProviderError(
            f"Automated payouts via '{provider}' are not implemented yet. Use manual payout tracking."
        )
    return handler


def process_automated_payout(provider: str, **kwargs) -> dict:
    """Dispatch a disbursement to the named provider's handler."""
    try:
        handler = get_payout_provider(provider)
    except UnsupportedPayoutProviderError:
        current_app.logger.warning("Automated payout requested via %r; provider unavailable", provider)
        raise
    return handler(**kwargs)


# =============================================================================
# PENDING BALANCES & REPORTS
# =============================================================================

def get_pending_amount(org_id: int, consignor_id: int) -> int:
    require_consignor_in_org(consignor_id, org_id)
    total = (
        db.session.query(func.coalesce(func.sum(Transaction.consignor_amount_cents), 0))
        .filter(
            Transaction.org_id == org_id,
            Transaction.consignor_id == consignor_id,
            Transaction.status == TRANSACTION_STATUS_COMPLETED,
            Transaction.paid_out.is_(False),
        )
        .scalar()
    )
    return int(total)


def get_pending_payouts(
    org_id: int,
    consignor_id: int | None = None,
    minimum_cents: int | None = None,
    sold_before: datetime | None = None,
) -> list[dict]:
    """One row per consignor with unpaid earnings."""
    query = (
        db.session.query(
            Transaction.consignor_id,
            func.sum(Transaction.consignor_amount_cents),
            func.count(Transaction.id),
            func.min(Transaction.sale_date),
            func.max(Transaction.sale_date),
        )
        .filter(
            Transaction.org_id == org_id,
            Transaction.status == TRANSACTION_STATUS_COMPLETED,
            Transaction.paid_out.is_(False),
            Transaction.payout_status == PAYOUT_STATUS_PENDING,
        )
    )
    if consignor_id:
        query = query.filter(Transaction.consignor_id == consignor_id)
    if sold_before:
        query = query.filter(Transaction.sale_date <= sold_before)

    rows = query.group_by(Transaction.consignor_id).all()
    consignors = {
        c.id: c for c in db.session.query(Consignor).filter(
            Consignor.id.in_([r[0] for r in rows])
        ).all()
    } if rows else {}

    result = []
    for cid, amount, count, earliest, latest in rows:
        amount = int(amount or 0)
        if minimum_cents is not None and amount < minimum_cents:
            continue
        consignor = consignors.get(cid)
        result.append({
            "consignor_id": cid,
            "consignor_name": consignor.display_name if consignor else None,
            "consignor_email": consignor.email if consignor else None,
            "pending_amount_cents": amount,
            "transaction_count": int(count),
            "earliest_sale": earliest,
            "latest_sale": latest,
        })
    result.sort(key=lambda r: r["pending_amount_cents"], reverse=True)
    return result


def generate_payout_report(org_id: int, consignor_id: int, start: datetime, end: datetime) -> dict:
    """Preview what a consignor is owed for sales inside [start, end]. No writes."""
    consignor = require_consignor_in_org(consignor_id, org_id)
    transactions = (
        _pending_query(org_id)
        .filter(
            Transaction.consignor_id == consignor.id,
            Transaction.sale_date >= start,
            Transaction.sale_date <= end,
        )
        .order_by(Transaction.sale_date, Transaction.id)
        .all()
    )
    return {
        "consignor_id": consignor.id,
        "consignor_name": consignor.display_name,
        "start_date": start,
        "end_date": end,
        "total_amount_cents": sum(t.consignor_amount_cents for t in transactions),
        "transaction_count": len(transactions),
        "status": PAYOUT_STATUS_PENDING,
        "generated_at": utcnow(),
        "transactions": transactions,
    }


def generate_all_payout_reports(org_id: int, start: datetime, end: datetime) -> list[dict]:
    """Reports for every active consignor that is owed something."""
    consignors = (
        db.session.query(Consignor)
        .filter_by(org_id=org_id, status=CONSIGNOR_STATUS_ACTIVE)
        .order_by(Consignor.id)
        .all()
    )
    reports = []
    for consignor in consignors:
        report = generate_payout_report(org_id, consignor.id, start, end)
        if report["total_amount_cents"] > 0:
            reports.append(report)
    return reports


# =============================================================================
# PAYOUT QUERIES
# =============================================================================

def get_payout(org_id: int, payout_id: int) -> Payout:
    return require_payout_in_org(payout_id, org_id)


def list_payouts(
    org_id: int,
    filters: PayoutFilters | None = None,
    *,
    sort_by: str = "payout_date",
    sort_direction: str = "desc",
    page: int = 1,
    page_size: int = 25,
) -> PagedResult:
    filters = filters or PayoutFilters()
    query = db.session.query(Payout).filter(Payout.org_id == org_id)

    if filters.consignor_id:
        query = query.filter(Payout.consignor_id == filters.consignor_id)
    if filters.status:
        query = query.filter(Payout.status == filters.status)
    if filters.payout_date_from:
        query = query.filter(Payout.payout_date >= filters.payout_date_from)
    if filters.payout_date_to:
        query = query.filter(Payout.payout_date <= filters.payout_date_to)

    column = PAYOUT_SORT_FIELDS.get((sort_by or "").lower(), Payout.payout_date)
    ordering = column.asc() if (sort_direction or "").lower() == "asc" else column.desc()

    total = query.count()
    rows = (
        query.order_by(ordering, Payout.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return PagedResult(items=rows, total_count=total, page=page, page_size=page_size)
