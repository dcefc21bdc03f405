"""
Multi-Tenant Service: Tenant Validation and Scoping Helpers

Every request is scoped to a tenant (organization) and every id coming from
client input is checked against it before use. Cross-tenant lookups fail
exactly like missing rows so that the response never reveals that a record
exists in another organization.

USAGE:
    from consignment.services.tenant_service import require_consignor_in_org

    consignor = require_consignor_in_org(consignor_id, g.org_id)
"""

from flask import current_app, g, has_request_context, request

from ..extensions import db
from ..models import Consignor, Item, Transaction, Payout


class TenantAccessError(Exception):
    """Raised when a record is missing or belongs to a different organization."""
    pass


def get_current_org_id() -> int:
    """
    Get current tenant's org_id from Flask g context.

    Raises TenantAccessError if org_id not set (should never happen after
    @require_auth).
    """
    if not hasattr(g, 'org_id') or g.org_id is None:
        raise TenantAccessError("Tenant context not established")
    return g.org_id


def _require_in_org(model, label: str, record_id: int, org_id: int):
    record = db.session.get(model, record_id)

    if record is None:
        raise TenantAccessError(f"{label} not found")

    if record.org_id != org_id:
        _log_cross_tenant_attempt(
            f"{label} {record_id} belongs to org {record.org_id}, not {org_id}",
            org_id=org_id,
        )
        raise TenantAccessError(f"{label} not found")  # Don't reveal it exists in another org

    return record


def require_consignor_in_org(consignor_id: int, org_id: int) -> Consignor:
    return _require_in_org(Consignor, "Consignor", consignor_id, org_id)


def require_item_in_org(item_id: int, org_id: int) -> Item:
    return _require_in_org(Item, "Item", item_id, org_id)


def require_transaction_in_org(transaction_id: int, org_id: int) -> Transaction:
    return _require_in_org(Transaction, "Transaction", transaction_id, org_id)


def require_payout_in_org(payout_id: int, org_id: int) -> Payout:
    return _require_in_org(Payout, "Payout", payout_id, org_id)


def _log_cross_tenant_attempt(reason: str, org_id: int | None) -> None:
    path = request.path if has_request_context() else None
    current_app.logger.warning(
        "CROSS_TENANT_ACCESS_DENIED org_id=%s path=%s reason=%s",
        org_id, path, reason,
    )
