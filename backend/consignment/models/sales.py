from __future__ import annotations

from ..extensions import db
from consignment.time_utils import to_utc_z


TRANSACTION_STATUS_COMPLETED = "Completed"
TRANSACTION_STATUS_CANCELLED = "Cancelled"

PAYOUT_STATUS_PENDING = "Pending"
PAYOUT_STATUS_PAID = "Paid"


class Transaction(db.Model):
    """
    One completed sale of a consignor's goods.

    The split is frozen at creation: consignor_split_percent is copied from
    the consignor and the amounts are computed once. After that only the
    payout fields change, and a paid transaction is never deleted.

    INVARIANT: consignor_amount_cents + shop_amount_cents == sale_price_cents
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index("ix_transactions_org_sale_date", "org_id", "sale_date"),
        db.Index("ix_transactions_consignor_paid", "consignor_id", "paid_out"),
        db.CheckConstraint(
            "consignor_amount_cents + shop_amount_cents = sale_price_cents",
            name="ck_transactions_split_sums_to_price",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    consignor_id = db.Column(db.Integer, db.ForeignKey("consignors.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=True, index=True)

    sale_price_cents = db.Column(db.Integer, nullable=False)
    sale_date = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    payment_method = db.Column(db.String(50), nullable=True)  # Cash, Card, Online
    sales_tax_cents = db.Column(db.Integer, nullable=True)

    # Split snapshot (calculated, not user-entered)
    consignor_split_percent = db.Column(db.Numeric(7, 4), nullable=False)
    consignor_amount_cents = db.Column(db.Integer, nullable=False)
    shop_amount_cents = db.Column(db.Integer, nullable=False)

    status = db.Column(db.String(16), nullable=False, default=TRANSACTION_STATUS_COMPLETED, index=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancel_reason = db.Column(db.String(255), nullable=True)

    # Payout tracking
    payout_status = db.Column(db.String(16), nullable=False, default=PAYOUT_STATUS_PENDING, index=True)
    paid_out = db.Column(db.Boolean, nullable=False, default=False)
    paid_out_date = db.Column(db.DateTime(timezone=True), nullable=True)
    payout_method = db.Column(db.String(50), nullable=True)
    payout_notes = db.Column(db.Text, nullable=True)
    payout_id = db.Column(db.Integer, db.ForeignKey("payouts.id"), nullable=True, index=True)

    notes = db.Column(db.Text, nullable=True)
    processed_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    consignor = db.relationship("Consignor", backref=db.backref("transactions", lazy=True))
    item = db.relationship("Item", backref=db.backref("transactions", lazy=True))
    payout = db.relationship("Payout", backref=db.backref("transactions", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "org_id": self.org_id,
            "consignor_id": self.consignor_id,
            "item_id": self.item_id,
            "sale_price_cents": self.sale_price_cents,
            "sale_date": to_utc_z(self.sale_date),
            "payment_method": self.payment_method,
            "sales_tax_cents": self.sales_tax_cents,
            "consignor_split_percent": f"{self.consignor_split_percent:.4f}",
            "consignor_amount_cents": self.consignor_amount_cents,
            "shop_amount_cents": self.shop_amount_cents,
            "status": self.status,
            "cancelled_at": to_utc_z(self.cancelled_at) if self.cancelled_at else None,
            "cancel_reason": self.cancel_reason,
            "payout_status": self.payout_status,
            "paid_out": self.paid_out,
            "paid_out_date": to_utc_z(self.paid_out_date) if self.paid_out_date else None,
            "payout_method": self.payout_method,
            "payout_notes": self.payout_notes,
            "payout_id": self.payout_id,
            "notes": self.notes,
            "processed_by_user_id": self.processed_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
