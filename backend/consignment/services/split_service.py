# Overview: Service-layer operations for commission splits; pure arithmetic plus period summaries.

"""
Commission Split Calculation

A sale price is divided between the consignor and the shop. The consignor's
share is rounded to the cent (half-to-even); the shop gets the remainder, so
the two amounts always add back up to the sale price exactly.

No bounds checking happens here: a negative price or a percentage outside
0-100 gives a nonsensical but well-defined result. Callers validate input.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_EVEN

from ..extensions import db
from ..models import Transaction
from ..models.sales import TRANSACTION_STATUS_COMPLETED


@dataclass(frozen=True)
class SplitResult:
    consignor_amount_cents: int
    shop_amount_cents: int
    split_percent: Decimal

    def to_dict(self) -> dict:
        return {
            "consignor_amount_cents": self.consignor_amount_cents,
            "shop_amount_cents": self.shop_amount_cents,
            "split_percent": f"{self.split_percent:.4f}",
        }


def calculate_split(sale_price_cents: int, split_percent) -> SplitResult:
    """
    Split a sale price between consignor and shop.

    Args:
        sale_price_cents: Sale price in cents
        split_percent: Consignor's share, 0-100 (Decimal, int or numeric string)

    Returns:
        SplitResult with consignor amount = round(price * pct / 100) and
        shop amount = price - consignor amount
    """
    pct = split_percent if isinstance(split_percent, Decimal) else Decimal(str(split_percent))
    raw = Decimal(sale_price_cents) * pct / Decimal(100)
    consignor_cents = int(raw.quantize(Decimal(1), rounding=ROUND_HALF_EVEN))
    return SplitResult(
        consignor_amount_cents=consignor_cents,
        shop_amount_cents=sale_price_cents - consignor_cents,
        split_percent=pct,
    )


def summarize_period(consignor_id: int, period_start: datetime, period_end: datetime) -> dict:
    """
    Total a consignor's completed sales inside [period_start, period_end].

    Includes paid and unpaid transactions; used for payout previews and the
    split summary on the consignor detail view.
    """
    rows = (
        db.session.query(Transaction)
        .filter(
            Transaction.consignor_id == consignor_id,
            Transaction.status == TRANSACTION_STATUS_COMPLETED,
            Transaction.sale_date >= period_start,
            Transaction.sale_date <= period_end,
        )
        .order_by(Transaction.sale_date)
        .all()
    )
    return {
        "consignor_id": consignor_id,
        "period_start": period_start,
        "period_end": period_end,
        "transaction_count": len(rows),
        "total_sales_cents": sum(t.sale_price_cents for t in rows),
        "total_consignor_cents": sum(t.consignor_amount_cents for t in rows),
        "total_shop_cents": sum(t.shop_amount_cents for t in rows),
        "transactions": rows,
    }
