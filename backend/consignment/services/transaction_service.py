# Overview: Service-layer operations for sale transactions; records sales and freezes the commission split.

"""
Sale Transaction Service

Recording a sale copies the consignor's current split percent into the
transaction and computes both amounts once. Nothing recomputes them later:
historical sales keep the split that applied when they happened.

Lifecycle:
- Completed + Pending payout: freshly recorded sale
- Completed + Paid: included in a payout (immutable from here on)
- Cancelled: voided before payout, excluded from balances and statements
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import func

from ..extensions import db
from ..models import Transaction
from ..models.consignors import CONSIGNOR_STATUS_ACTIVE, ITEM_STATUS_AVAILABLE, ITEM_STATUS_SOLD
from ..models.sales import (
    TRANSACTION_STATUS_COMPLETED,
    TRANSACTION_STATUS_CANCELLED,
    PAYOUT_STATUS_PENDING,
)
from ..validation import parse_cents
from .split_service import calculate_split
from .tenant_service import (
    require_consignor_in_org,
    require_item_in_org,
    require_transaction_in_org,
    TenantAccessError,
)
from consignment.time_utils import utcnow


class SaleError(Exception):
    """Raised for sale recording and transaction errors."""
    pass


SORT_FIELDS = {
    "sale_date": Transaction.sale_date,
    "sale_price": Transaction.sale_price_cents,
    "consignor_amount": Transaction.consignor_amount_cents,
}


@dataclass
class TransactionFilters:
    consignor_id: int | None = None
    start: datetime | None = None
    end: datetime | None = None
    payment_method: str | None = None
    payout_status: str | None = None
    status: str | None = None


@dataclass
class PagedResult:
    items: list = field(default_factory=list)
    total_count: int = 0
    page: int = 1
    page_size: int = 25

    @property
    def total_pages(self) -> int:
        if self.page_size <= 0:
            return 0
        return (self.total_count + self.page_size - 1) // self.page_size

    def to_dict(self) -> dict:
        return {
            "items": [row.to_dict() for row in self.items],
            "total_count": self.total_count,
            "page": self.page,
            "page_size": self.page_size,
            "total_pages": self.total_pages,
        }


def record_sale(
    *,
    org_id: int,
    sale_price_cents,
    consignor_id: int | None = None,
    item_id: int | None = None,
    sale_date: datetime | None = None,
    payment_method: str | None = None,
    sales_tax_cents: int | None = None,
    notes: str | None = None,
    processed_by_user_id: int | None = None,
) -> Transaction:
    """
    Record a completed sale.

    Either item_id or consignor_id is required. With an item, the consignor
    is the item's owner, the item must be Available and becomes Sold.

    Raises:
        SaleError: unknown item/consignor, inactive consignor, item not available
        ValidationError: non-positive or malformed price
    """
    price_cents = parse_cents(sale_price_cents, "sale_price_cents")
    if sales_tax_cents is not None:
        sales_tax_cents = parse_cents(sales_tax_cents, "sales_tax_cents", allow_zero=True)

    item = None
    try:
        if item_id is not None:
            item = require_item_in_org(item_id, org_id)
            if consignor_id is not None and consignor_id != item.consignor_id:
                raise SaleError("Item does not belong to the given consignor")
            consignor = item.consignor
        elif consignor_id is not None:
            consignor = require_consignor_in_org(consignor_id, org_id)
        else:
            raise SaleError("item_id or consignor_id is required")
    except TenantAccessError as exc:
        raise SaleError(str(exc))

    if consignor.status != CONSIGNOR_STATUS_ACTIVE:
        raise SaleError("Consignor not found or inactive")

    if item is not None and item.status != ITEM_STATUS_AVAILABLE:
        raise SaleError(f"Item is not available for sale. Current status: {item.status}")

    split = calculate_split(price_cents, consignor.consignor_split_percent)
    now = utcnow()

    txn = Transaction(
        org_id=org_id,
        consignor_id=consignor.id,
        item_id=item.id if item else None,
        sale_price_cents=price_cents,
        sale_date=sale_date or now,
        payment_method=payment_method,
        sales_tax_cents=sales_tax_cents,
        consignor_split_percent=split.split_percent,
        consignor_amount_cents=split.consignor_amount_cents,
        shop_amount_cents=split.shop_amount_cents,
        status=TRANSACTION_STATUS_COMPLETED,
        payout_status=PAYOUT_STATUS_PENDING,
        paid_out=False,
        notes=notes,
        processed_by_user_id=processed_by_user_id,
    )
    db.session.add(txn)

    if item is not None:
        item.status = ITEM_STATUS_SOLD
        item.sold_at = txn.sale_date

    db.session.commit()
    return txn


def get_transaction(org_id: int, transaction_id: int) -> Transaction:
    return require_transaction_in_org(transaction_id, org_id)


def list_transactions(
    org_id: int,
    filters: TransactionFilters | None = None,
    *,
    sort_by: str = "sale_date",
    sort_direction: str = "desc",
    page: int = 1,
    page_size: int = 25,
) -> PagedResult:
    filters = filters or TransactionFilters()
    query = db.session.query(Transaction).filter(Transaction.org_id == org_id)

    if filters.consignor_id:
        query = query.filter(Transaction.consignor_id == filters.consignor_id)
    if filters.start:
        query = query.filter(Transaction.sale_date >= filters.start)
    if filters.end:
        query = query.filter(Transaction.sale_date <= filters.end)
    if filters.payment_method:
        query = query.filter(Transaction.payment_method == filters.payment_method)
    if filters.payout_status:
        query = query.filter(Transaction.payout_status == filters.payout_status)
    if filters.status:
        query = query.filter(Transaction.status == filters.status)

    column = SORT_FIELDS.get((sort_by or "").lower(), Transaction.sale_date)
    ordering = column.asc() if (sort_direction or "").lower() == "asc" else column.desc()

    total = query.count()
    rows = (
        query.order_by(ordering, Transaction.id)
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return PagedResult(items=rows, total_count=total, page=page, page_size=page_size)


def cancel_transaction(org_id: int, transaction_id: int, reason: str | None = None) -> Transaction:
    """
    Cancel an unpaid sale. The item, if any, goes back on the floor.

    Raises SaleError if the transaction is already paid out or cancelled.
    """
    txn = require_transaction_in_org(transaction_id, org_id)

    if txn.paid_out:
        raise SaleError("Cannot cancel a transaction that has been paid out")
    if txn.status == TRANSACTION_STATUS_CANCELLED:
        raise SaleError("Transaction is already cancelled")

    txn.status = TRANSACTION_STATUS_CANCELLED
    txn.cancelled_at = utcnow()
    txn.cancel_reason = reason

    if txn.item is not None and txn.item.status == ITEM_STATUS_SOLD:
        txn.item.status = ITEM_STATUS_AVAILABLE
        txn.item.sold_at = None

    db.session.commit()
    return txn


def get_sales_metrics(org_id: int, start: datetime | None = None, end: datetime | None = None) -> dict:
    """Totals over completed sales in an optional date window."""
    query = db.session.query(
        func.count(Transaction.id),
        func.coalesce(func.sum(Transaction.sale_price_cents), 0),
        func.coalesce(func.sum(Transaction.shop_amount_cents), 0),
        func.coalesce(func.sum(Transaction.consignor_amount_cents), 0),
    ).filter(
        Transaction.org_id == org_id,
        Transaction.status == TRANSACTION_STATUS_COMPLETED,
    )
    if start:
        query = query.filter(Transaction.sale_date >= start)
    if end:
        query = query.filter(Transaction.sale_date <= end)

    count, sales, shop, consignor = query.one()
    return {
        "transaction_count": int(count),
        "total_sales_cents": int(sales),
        "shop_revenue_cents": int(shop),
        "consignor_earnings_cents": int(consignor),
        "average_sale_cents": int(sales) // int(count) if count else 0,
    }
