# Overview: Flask API routes for sale transactions; parses input and returns JSON responses.

"""
Sale Transaction Routes

SECURITY: All routes require authentication and a staff role (owner, clerk).
Transactions are scoped to organizations (multi-tenant).
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_role
from ..models.auth import ROLE_OWNER, ROLE_CLERK
from ..services import transaction_service
from ..services.split_service import calculate_split
from ..services.tenant_service import require_consignor_in_org, TenantAccessError
from ..services.transaction_service import SaleError, TransactionFilters
from ..validation import (
    ValidationError,
    parse_cents,
    parse_optional_datetime,
    parse_optional_int,
    parse_pagination,
    parse_percent,
    require_fields,
)


transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")

STAFF = (ROLE_OWNER, ROLE_CLERK)


@transactions_bp.get("")
@require_auth
@require_role(*STAFF)
def list_transactions_route():
    """
    Query parameters:
    - consignor_id, payment_method, payout_status (Pending | Paid), status
    - start, end: ISO-8601 sale date bounds
    - sort_by: sale_date | sale_price | consignor_amount
    - sort_direction: asc | desc (default desc)
    - page, page_size
    """
    args = request.args
    try:
        filters = TransactionFilters(
            consignor_id=parse_optional_int(args.get("consignor_id"), "consignor_id"),
            start=parse_optional_datetime(args.get("start"), "start"),
            end=parse_optional_datetime(args.get("end"), "end"),
            payment_method=args.get("payment_method") or None,
            payout_status=args.get("payout_status") or None,
            status=args.get("status") or None,
        )
        page, page_size = parse_pagination(
            args,
            default_size=current_app.config["DEFAULT_PAGE_SIZE"],
            max_size=current_app.config["MAX_PAGE_SIZE"],
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    result = transaction_service.list_transactions(
        g.org_id,
        filters,
        sort_by=args.get("sort_by", "sale_date"),
        sort_direction=args.get("sort_direction", "desc"),
        page=page,
        page_size=page_size,
    )
    return jsonify(result.to_dict())


@transactions_bp.post("")
@require_auth
@require_role(*STAFF)
def record_sale_route():
    """
    Record a sale.

    Request body:
    {
        "item_id": 12,                 // or "consignor_id" for untracked goods
        "sale_price_cents": 4500,      // required, integer cents
        "sale_date": "2025-11-02T15:04:00Z",
        "payment_method": "Card",
        "sales_tax_cents": 371,
        "notes": "..."
    }
    """
    try:
        data = require_fields(request.get_json(silent=True), "sale_price_cents")
        txn = transaction_service.record_sale(
            org_id=g.org_id,
            sale_price_cents=data["sale_price_cents"],
            consignor_id=parse_optional_int(data.get("consignor_id"), "consignor_id"),
            item_id=parse_optional_int(data.get("item_id"), "item_id"),
            sale_date=parse_optional_datetime(data.get("sale_date"), "sale_date"),
            payment_method=data.get("payment_method"),
            sales_tax_cents=data.get("sales_tax_cents"),
            notes=data.get("notes"),
            processed_by_user_id=g.current_user.id,
        )
        return jsonify(txn.to_dict()), 201
    except (SaleError, ValidationError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to record sale")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.get("/metrics")
@require_auth
@require_role(*STAFF)
def metrics_route():
    try:
        start = parse_optional_datetime(request.args.get("start"), "start")
        end = parse_optional_datetime(request.args.get("end"), "end")
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(transaction_service.get_sales_metrics(g.org_id, start, end))


@transactions_bp.post("/split-preview")
@require_auth
@require_role(*STAFF)
def split_preview_route():
    """
    Preview a split without recording anything.

    Request body: {"sale_price_cents": 10000, "consignor_id": 3}
    or {"sale_price_cents": 10000, "consignor_split_percent": "60"}
    """
    try:
        data = require_fields(request.get_json(silent=True), "sale_price_cents")
        price_cents = parse_cents(data["sale_price_cents"], "sale_price_cents")
        if data.get("consignor_id") is not None:
            consignor_id = parse_optional_int(data["consignor_id"], "consignor_id")
            pct = require_consignor_in_org(consignor_id, g.org_id).consignor_split_percent
        else:
            pct = parse_percent(data.get("consignor_split_percent"))
        result = calculate_split(price_cents, pct)
        return jsonify({"sale_price_cents": price_cents, **result.to_dict()})
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400


@transactions_bp.get("/<int:transaction_id>")
@require_auth
@require_role(*STAFF)
def get_transaction_route(transaction_id: int):
    try:
        return jsonify(transaction_service.get_transaction(g.org_id, transaction_id).to_dict())
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 404


@transactions_bp.post("/<int:transaction_id>/cancel")
@require_auth
@require_role(*STAFF)
def cancel_transaction_route(transaction_id: int):
    """Request body: {"reason": "..."} (optional)"""
    data = request.get_json(silent=True) or {}
    try:
        txn = transaction_service.cancel_transaction(g.org_id, transaction_id, reason=data.get("reason"))
        return jsonify(txn.to_dict())
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 404
    except SaleError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to cancel transaction %s", transaction_id)
        return jsonify({"error": "Internal server error"}), 500
