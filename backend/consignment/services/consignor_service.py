# Overview: Service-layer operations for consignors and their inventory items.

"""
Consignor Service

MULTI-TENANT: Consignors and items are scoped to organizations via org_id.
Consignor numbers (PRV-00001) and item SKUs are unique within an organization.

The consignor split percent is a live setting: changing it affects only
sales recorded afterwards, since every Transaction carries its own copy.
"""

from __future__ import annotations

from sqlalchemy import func, or_

from ..extensions import db
from ..models import Consignor, Item, Organization, Transaction
from ..models.consignors import (
    CONSIGNOR_STATUS_ACTIVE,
    VALID_CONSIGNOR_STATUSES,
    ITEM_STATUS_AVAILABLE,
)
from ..models.sales import TRANSACTION_STATUS_COMPLETED
from ..validation import parse_cents, parse_percent, ValidationError
from .tenant_service import require_consignor_in_org, TenantAccessError
from consignment.time_utils import utcnow


class ConsignorError(Exception):
    """Raised for consignor and item operation errors."""
    pass


UPDATABLE_FIELDS = (
    "first_name",
    "last_name",
    "email",
    "phone",
    "preferred_payment_method",
    "notes",
)


def _next_consignor_number(org_id: int) -> str:
    count = db.session.query(func.count(Consignor.id)).filter_by(org_id=org_id).scalar() or 0
    return f"PRV-{count + 1:05d}"


def create_consignor(
    *,
    org_id: int,
    first_name: str,
    last_name: str,
    consignor_split_percent=50,
    email: str | None = None,
    phone: str | None = None,
    preferred_payment_method: str | None = None,
    status: str = CONSIGNOR_STATUS_ACTIVE,
    notes: str | None = None,
) -> Consignor:
    """
    Create a consignor with an auto-generated consignor number.

    Raises:
        ConsignorError: organization missing/inactive, names missing, bad status
        ValidationError: split percent outside 0-100
    """
    org = db.session.get(Organization, org_id)
    if not org or not org.is_active:
        raise ConsignorError("Organization not found or inactive")

    if not first_name or not first_name.strip() or not last_name or not last_name.strip():
        raise ConsignorError("first_name and last_name are required")

    if status not in VALID_CONSIGNOR_STATUSES:
        raise ConsignorError(f"Invalid status: {status}. Must be one of {list(VALID_CONSIGNOR_STATUSES)}")

    consignor = Consignor(
        org_id=org_id,
        consignor_number=_next_consignor_number(org_id),
        first_name=first_name.strip(),
        last_name=last_name.strip(),
        email=email.strip().lower() if email else None,
        phone=phone,
        consignor_split_percent=parse_percent(consignor_split_percent),
        preferred_payment_method=preferred_payment_method,
        status=status,
        notes=notes,
    )
    db.session.add(consignor)
    db.session.commit()
    return consignor


def update_consignor(consignor_id: int, org_id: int, changes: dict) -> Consignor:
    """
    Apply a partial update. Unknown keys are rejected.

    A new consignor_split_percent applies to future sales only.
    """
    consignor = require_consignor_in_org(consignor_id, org_id)

    unknown = set(changes) - set(UPDATABLE_FIELDS) - {"consignor_split_percent"}
    if unknown:
        raise ValidationError(f"Fields not writable: {', '.join(sorted(unknown))}")

    for field in UPDATABLE_FIELDS:
        if field in changes:
            value = changes[field]
            if field in ("first_name", "last_name") and (not value or not str(value).strip()):
                raise ConsignorError(f"{field} cannot be empty")
            if field == "email" and value:
                value = value.strip().lower()
            setattr(consignor, field, value)

    if "consignor_split_percent" in changes:
        consignor.consignor_split_percent = parse_percent(changes["consignor_split_percent"])

    db.session.commit()
    return consignor


def set_status(consignor_id: int, org_id: int, status: str, reason: str | None = None) -> Consignor:
    if status not in VALID_CONSIGNOR_STATUSES:
        raise ConsignorError(f"Invalid status: {status}. Must be one of {list(VALID_CONSIGNOR_STATUSES)}")

    consignor = require_consignor_in_org(consignor_id, org_id)
    if consignor.status != status:
        consignor.status = status
        consignor.status_changed_at = utcnow()
        consignor.status_changed_reason = reason
        db.session.commit()
    return consignor


def get_consignor(consignor_id: int, org_id: int) -> Consignor:
    return require_consignor_in_org(consignor_id, org_id)


def list_consignors(org_id: int, status: str | None = None, search: str | None = None) -> list[Consignor]:
    query = db.session.query(Consignor).filter_by(org_id=org_id)
    if status:
        query = query.filter(Consignor.status == status)
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(or_(
            Consignor.first_name.ilike(like),
            Consignor.last_name.ilike(like),
            Consignor.email.ilike(like),
            Consignor.consignor_number.ilike(like),
        ))
    return query.order_by(Consignor.last_name, Consignor.first_name).all()


def get_balance(consignor_id: int, org_id: int) -> dict:
    """Unpaid earnings for a consignor."""
    require_consignor_in_org(consignor_id, org_id)
    pending_cents, pending_count = (
        db.session.query(
            func.coalesce(func.sum(Transaction.consignor_amount_cents), 0),
            func.count(Transaction.id),
        )
        .filter(
            Transaction.consignor_id == consignor_id,
            Transaction.status == TRANSACTION_STATUS_COMPLETED,
            Transaction.paid_out.is_(False),
        )
        .one()
    )
    return {
        "consignor_id": consignor_id,
        "pending_amount_cents": int(pending_cents),
        "pending_transaction_count": int(pending_count),
    }


# =============================================================================
# ITEMS
# =============================================================================

def create_item(
    *,
    org_id: int,
    consignor_id: int,
    sku: str,
    title: str,
    price_cents,
    description: str | None = None,
) -> Item:
    try:
        consignor = require_consignor_in_org(consignor_id, org_id)
    except TenantAccessError as exc:
        raise ConsignorError(str(exc))

    if not sku or not sku.strip():
        raise ConsignorError("sku is required")
    if not title or not title.strip():
        raise ConsignorError("title is required")

    sku = sku.strip()
    exists = db.session.query(Item.id).filter_by(org_id=org_id, sku=sku).first()
    if exists:
        raise ConsignorError(f"SKU {sku} already exists")

    item = Item(
        org_id=org_id,
        consignor_id=consignor.id,
        sku=sku,
        title=title.strip(),
        description=description,
        price_cents=parse_cents(price_cents, "price_cents"),
        status=ITEM_STATUS_AVAILABLE,
    )
    db.session.add(item)
    db.session.commit()
    return item


def list_items(org_id: int, consignor_id: int | None = None, status: str | None = None) -> list[Item]:
    query = db.session.query(Item).filter_by(org_id=org_id)
    if consignor_id:
        query = query.filter(Item.consignor_id == consignor_id)
    if status:
        query = query.filter(Item.status == status)
    return query.order_by(Item.created_at.desc(), Item.id.desc()).all()
