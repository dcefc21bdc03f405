from __future__ import annotations

from ..extensions import db
from consignment.time_utils import to_utc_z


CONSIGNOR_STATUS_ACTIVE = "Active"
CONSIGNOR_STATUS_INACTIVE = "Inactive"
CONSIGNOR_STATUS_PENDING = "Pending"

VALID_CONSIGNOR_STATUSES = (
    CONSIGNOR_STATUS_ACTIVE,
    CONSIGNOR_STATUS_INACTIVE,
    CONSIGNOR_STATUS_PENDING,
)

ITEM_STATUS_AVAILABLE = "Available"
ITEM_STATUS_SOLD = "Sold"
ITEM_STATUS_REMOVED = "Removed"


def _split_str(value) -> str | None:
    return None if value is None else f"{value:.4f}"


class Consignor(db.Model):
    """
    A person supplying items to the shop for sale on commission.

    consignor_split_percent is the consignor's share of each sale price
    (0-100). The shop always keeps the remainder. The value is copied into
    each Transaction when the sale is recorded, so later changes never
    affect historical sales.
    """
    __tablename__ = "consignors"
    __table_args__ = (
        db.UniqueConstraint("org_id", "consignor_number", name="uq_consignors_org_number"),
        db.Index("ix_consignors_org_status", "org_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)

    # Human-readable number (e.g., "PRV-00001")
    consignor_number = db.Column(db.String(20), nullable=False)

    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)

    consignor_split_percent = db.Column(db.Numeric(7, 4), nullable=False, default=50)
    preferred_payment_method = db.Column(db.String(50), nullable=True)  # Cash, Check, Venmo, Zelle, PayPal

    status = db.Column(db.String(16), nullable=False, default=CONSIGNOR_STATUS_ACTIVE)
    status_changed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    status_changed_reason = db.Column(db.String(255), nullable=True)

    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    organization = db.relationship("Organization", backref=db.backref("consignors", lazy=True))

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self) -> str:
        return f"<Consignor id={self.id} number={self.consignor_number!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "org_id": self.org_id,
            "consignor_number": self.consignor_number,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "display_name": self.display_name,
            "email": self.email,
            "phone": self.phone,
            "consignor_split_percent": _split_str(self.consignor_split_percent),
            "preferred_payment_method": self.preferred_payment_method,
            "status": self.status,
            "status_changed_at": to_utc_z(self.status_changed_at) if self.status_changed_at else None,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Item(db.Model):
    """Inventory item owned by a consignor and offered for sale by the shop."""
    __tablename__ = "items"
    __table_args__ = (
        db.UniqueConstraint("org_id", "sku", name="uq_items_org_sku"),
        db.Index("ix_items_org_status", "org_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    consignor_id = db.Column(db.Integer, db.ForeignKey("consignors.id"), nullable=False, index=True)

    sku = db.Column(db.String(64), nullable=False)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    price_cents = db.Column(db.Integer, nullable=False)

    status = db.Column(db.String(16), nullable=False, default=ITEM_STATUS_AVAILABLE)
    sold_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    consignor = db.relationship("Consignor", backref=db.backref("items", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "org_id": self.org_id,
            "consignor_id": self.consignor_id,
            "sku": self.sku,
            "title": self.title,
            "description": self.description,
            "price_cents": self.price_cents,
            "status": self.status,
            "sold_at": to_utc_z(self.sold_at) if self.sold_at else None,
            "created_at": to_utc_z(self.created_at),
        }
