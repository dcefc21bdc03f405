# Overview: Flask API routes for consignor payouts; parses input and returns JSON responses.

"""
Payout Routes

SECURITY: All routes require authentication.
- Viewing payouts, pending balances and reports requires a staff role
- Recording a payout (mark-paid, selected transactions) requires the owner role

Payouts are recorded manually after the owner pays a consignor outside
the system. The automated endpoint dispatches to a provider registry
that has no handlers yet.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_role
from ..models.auth import ROLE_OWNER, ROLE_CLERK
from ..services import payout_service
from ..services.payout_service import PayoutError, PayoutFilters
from ..services.tenant_service import TenantAccessError
from ..validation import (
    ValidationError,
    parse_optional_datetime,
    parse_optional_int,
    parse_pagination,
    require_fields,
)
from consignment.time_utils import to_utc_z


payouts_bp = Blueprint("payouts", __name__, url_prefix="/api/payouts")

STAFF = (ROLE_OWNER, ROLE_CLERK)


def _report_to_dict(report: dict) -> dict:
    data = dict(report)
    for key in ("start_date", "end_date", "generated_at"):
        data[key] = to_utc_z(data[key])
    data["transactions"] = [t.to_dict() for t in report["transactions"]]
    return data


@payouts_bp.get("")
@require_auth
@require_role(*STAFF)
def list_payouts_route():
    """
    Query parameters:
    - consignor_id, status
    - from, to: ISO-8601 payout date bounds
    - sort_by: payout_date | amount | status
    - sort_direction: asc | desc (default desc)
    - page, page_size
    """
    args = request.args
    try:
        filters = PayoutFilters(
            consignor_id=parse_optional_int(args.get("consignor_id"), "consignor_id"),
            status=args.get("status") or None,
            payout_date_from=parse_optional_datetime(args.get("from"), "from"),
            payout_date_to=parse_optional_datetime(args.get("to"), "to"),
        )
        page, page_size = parse_pagination(
            args,
            default_size=current_app.config["DEFAULT_PAGE_SIZE"],
            max_size=current_app.config["MAX_PAGE_SIZE"],
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    result = payout_service.list_payouts(
        g.org_id,
        filters,
        sort_by=args.get("sort_by", "payout_date"),
        sort_direction=args.get("sort_direction", "desc"),
        page=page,
        page_size=page_size,
    )
    return jsonify(result.to_dict())


@payouts_bp.get("/<int:payout_id>")
@require_auth
@require_role(*STAFF)
def get_payout_route(payout_id: int):
    try:
        payout = payout_service.get_payout(g.org_id, payout_id)
        return jsonify(payout.to_dict(include_transactions=True))
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 404


@payouts_bp.get("/pending")
@require_auth
@require_role(*STAFF)
def pending_payouts_route():
    """
    Consignors with unpaid earnings, largest balance first.

    Query parameters: consignor_id, minimum_cents, sold_before (ISO-8601)
    """
    args = request.args
    try:
        rows = payout_service.get_pending_payouts(
            g.org_id,
            consignor_id=parse_optional_int(args.get("consignor_id"), "consignor_id"),
            minimum_cents=parse_optional_int(args.get("minimum_cents"), "minimum_cents"),
            sold_before=parse_optional_datetime(args.get("sold_before"), "sold_before"),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    for row in rows:
        row["earliest_sale"] = to_utc_z(row["earliest_sale"])
        row["latest_sale"] = to_utc_z(row["latest_sale"])
    return jsonify({
        "items": rows,
        "count": len(rows),
        "total_pending_cents": sum(r["pending_amount_cents"] for r in rows),
    })


@payouts_bp.post("")
@require_auth
@require_role(ROLE_OWNER)
def create_payout_route():
    """
    Pay out selected pending transactions of one consignor.

    Request body:
    {
        "consignor_id": 3,
        "transaction_ids": [10, 11, 14],
        "payment_method": "Check",
        "payment_reference": "#1042",
        "payout_date": "2025-11-30T12:00:00Z",
        "notes": "..."
    }
    """
    try:
        data = require_fields(
            request.get_json(silent=True), "consignor_id", "transaction_ids", "payment_method"
        )
        raw_ids = data["transaction_ids"]
        if not isinstance(raw_ids, list):
            raise ValidationError("transaction_ids must be a list")
        payout = payout_service.create_payout(
            org_id=g.org_id,
            consignor_id=parse_optional_int(data["consignor_id"], "consignor_id"),
            transaction_ids=[parse_optional_int(t, "transaction_ids") for t in raw_ids],
            payment_method=data["payment_method"],
            payout_date=parse_optional_datetime(data.get("payout_date"), "payout_date"),
            payment_reference=data.get("payment_reference"),
            notes=data.get("notes"),
            actor_user_id=g.current_user.id,
        )
        return jsonify(payout.to_dict(include_transactions=True)), 201
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 404
    except (PayoutError, ValidationError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create payout")
        return jsonify({"error": "Internal server error"}), 500


@payouts_bp.post("/<int:consignor_id>/mark-paid")
@require_auth
@require_role(ROLE_OWNER)
def mark_paid_route(consignor_id: int):
    """
    Mark every pending transaction of a consignor as paid.

    Request body:
    {
        "payment_method": "Cash",     // required
        "notes": "...",
        "payment_reference": "..."
    }
    """
    try:
        data = require_fields(request.get_json(silent=True), "payment_method")
        payout = payout_service.mark_as_paid(
            org_id=g.org_id,
            consignor_id=consignor_id,
            payment_method=data["payment_method"],
            notes=data.get("notes"),
            payment_reference=data.get("payment_reference"),
            actor_user_id=g.current_user.id,
        )
        return jsonify({
            "success": True,
            "message": f"Marked {payout.transaction_count} transaction(s) as paid",
            "payout": payout.to_dict(),
        })
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 404
    except (PayoutError, ValidationError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to mark consignor %s as paid", consignor_id)
        return jsonify({"error": "Internal server error"}), 500


@payouts_bp.post("/automated")
@require_auth
@require_role(ROLE_OWNER)
def automated_payout_route():
    """
    Hand a payout to an automated provider.

    Request body: {"provider": "stripe", "consignor_id": 3}
    Rejected with 400 while no provider has a handler.
    """
    try:
        data = require_fields(request.get_json(silent=True), "provider")
        result = payout_service.process_automated_payout(
            str(data["provider"]),
            org_id=g.org_id,
            consignor_id=parse_optional_int(data.get("consignor_id"), "consignor_id"),
            actor_user_id=g.current_user.id,
        )
        return jsonify(result)
    except (PayoutError, ValidationError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Automated payout failed")
        return jsonify({"error": "Internal server error"}), 500


@payouts_bp.get("/report")
@require_auth
@require_role(*STAFF)
def payout_report_route():
    """
    Preview unpaid earnings for sales inside [start, end].

    Query parameters:
    - start, end: ISO-8601 (required)
    - consignor_id: one consignor; omitted means every active consignor owed money
    """
    args = request.args
    try:
        start = parse_optional_datetime(args.get("start"), "start")
        end = parse_optional_datetime(args.get("end"), "end")
        if start is None or end is None:
            raise ValidationError("start and end are required")
        if end < start:
            raise ValidationError("end must not be before start")
        consignor_id = parse_optional_int(args.get("consignor_id"), "consignor_id")

        if consignor_id is not None:
            report = payout_service.generate_payout_report(g.org_id, consignor_id, start, end)
            return jsonify(_report_to_dict(report))

        reports = payout_service.generate_all_payout_reports(g.org_id, start, end)
        return jsonify({
            "items": [_report_to_dict(r) for r in reports],
            "count": len(reports),
            "total_amount_cents": sum(r["total_amount_cents"] for r in reports),
        })
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
