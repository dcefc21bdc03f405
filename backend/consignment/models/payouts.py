from __future__ import annotations

from ..extensions import db
from consignment.time_utils import to_utc_z


STATEMENT_STATUS_GENERATED = "Generated"
STATEMENT_STATUS_VIEWED = "Viewed"


class Payout(db.Model):
    """
    A disbursement to a consignor covering one or more unpaid transactions.

    amount_cents is the sum of consignor_amount_cents of the linked
    transactions; period_start/period_end span their sale dates.
    """
    __tablename__ = "payouts"
    __table_args__ = (
        db.UniqueConstraint("org_id", "payout_number", name="uq_payouts_org_number"),
        db.Index("ix_payouts_consignor_date", "consignor_id", "payout_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    consignor_id = db.Column(db.Integer, db.ForeignKey("consignors.id"), nullable=False, index=True)

    # Human-readable number (e.g., "PO20251122001")
    payout_number = db.Column(db.String(50), nullable=False)
    payout_date = db.Column(db.DateTime(timezone=True), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(16), nullable=False, default="Paid", index=True)

    payment_method = db.Column(db.String(50), nullable=False)
    payment_reference = db.Column(db.String(100), nullable=True)

    period_start = db.Column(db.DateTime(timezone=True), nullable=False)
    period_end = db.Column(db.DateTime(timezone=True), nullable=False)
    transaction_count = db.Column(db.Integer, nullable=False)

    notes = db.Column(db.Text, nullable=True)
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    consignor = db.relationship("Consignor", backref=db.backref("payouts", lazy=True))

    def to_dict(self, include_transactions: bool = False) -> dict:
        data = {
            "id": self.id,
            "org_id": self.org_id,
            "consignor_id": self.consignor_id,
            "payout_number": self.payout_number,
            "payout_date": to_utc_z(self.payout_date),
            "amount_cents": self.amount_cents,
            "status": self.status,
            "payment_method": self.payment_method,
            "payment_reference": self.payment_reference,
            "period_start": to_utc_z(self.period_start),
            "period_end": to_utc_z(self.period_end),
            "transaction_count": self.transaction_count,
            "notes": self.notes,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }
        if include_transactions:
            data["transactions"] = [t.to_dict() for t in self.transactions]
        return data


class Statement(db.Model):
    """
    Monthly rollup of a consignor's earnings and payouts.

    closing_balance = opening_balance + total_earnings - total_payouts.
    The closing balance of one period equals the opening balance of the
    next for the same consignor. A period is generated at most once; to
    regenerate, the old row is deleted first.
    """
    __tablename__ = "statements"
    __table_args__ = (
        db.UniqueConstraint("consignor_id", "period_start", "period_end", name="uq_statements_consignor_period"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    consignor_id = db.Column(db.Integer, db.ForeignKey("consignors.id"), nullable=False, index=True)

    # e.g. STMT-2025-11-PRV00042
    statement_number = db.Column(db.String(32), nullable=False)
    period_start = db.Column(db.Date, nullable=False)
    period_end = db.Column(db.Date, nullable=False)

    opening_balance_cents = db.Column(db.Integer, nullable=False, default=0)
    total_sales_cents = db.Column(db.Integer, nullable=False, default=0)
    total_earnings_cents = db.Column(db.Integer, nullable=False, default=0)
    total_payouts_cents = db.Column(db.Integer, nullable=False, default=0)
    closing_balance_cents = db.Column(db.Integer, nullable=False, default=0)

    items_sold = db.Column(db.Integer, nullable=False, default=0)
    payout_count = db.Column(db.Integer, nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default=STATEMENT_STATUS_GENERATED)
    viewed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    generated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    consignor = db.relationship("Consignor", backref=db.backref("statements", lazy=True))

    @property
    def period_label(self) -> str:
        return self.period_start.strftime("%B %Y")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "org_id": self.org_id,
            "consignor_id": self.consignor_id,
            "statement_number": self.statement_number,
            "period_start": self.period_start.isoformat(),
            "period_end": self.period_end.isoformat(),
            "period_label": self.period_label,
            "opening_balance_cents": self.opening_balance_cents,
            "total_sales_cents": self.total_sales_cents,
            "total_earnings_cents": self.total_earnings_cents,
            "total_payouts_cents": self.total_payouts_cents,
            "closing_balance_cents": self.closing_balance_cents,
            "items_sold": self.items_sold,
            "payout_count": self.payout_count,
            "status": self.status,
            "viewed_at": to_utc_z(self.viewed_at) if self.viewed_at else None,
            "generated_at": to_utc_z(self.generated_at),
        }
