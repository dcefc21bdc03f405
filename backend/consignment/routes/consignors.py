# Overview: Flask API routes for consignor operations; parses input and returns JSON responses.

"""
Consignor Routes

SECURITY: All routes require authentication.
- Staff (owner, clerk) manage consignors of their organization
- Consignor-role users may read their own notifications only

Consignors are scoped to organizations (multi-tenant).
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_role, require_consignor_access
from ..models.auth import ROLE_OWNER, ROLE_CLERK
from ..services import consignor_service, notification_service, split_service
from ..services.consignor_service import ConsignorError
from ..services.tenant_service import require_consignor_in_org, TenantAccessError
from ..validation import ValidationError, require_fields, parse_optional_datetime
from consignment.time_utils import to_utc_z


consignors_bp = Blueprint("consignors", __name__, url_prefix="/api/consignors")

STAFF = (ROLE_OWNER, ROLE_CLERK)


@consignors_bp.get("")
@require_auth
@require_role(*STAFF)
def list_consignors_route():
    """
    Query parameters:
    - status: Active | Inactive | Pending
    - search: matches name, email or consignor number
    """
    consignors = consignor_service.list_consignors(
        g.org_id,
        status=request.args.get("status"),
        search=request.args.get("search"),
    )
    return jsonify({"items": [c.to_dict() for c in consignors], "count": len(consignors)})


@consignors_bp.post("")
@require_auth
@require_role(*STAFF)
def create_consignor_route():
    """
    Request body:
    {
        "first_name": "Ada",                 // required
        "last_name": "Lovelace",             // required
        "consignor_split_percent": "60",     // optional, default 50
        "email": "...", "phone": "...",
        "preferred_payment_method": "Check",
        "notes": "..."
    }
    """
    try:
        data = require_fields(request.get_json(silent=True), "first_name", "last_name")
        consignor = consignor_service.create_consignor(
            org_id=g.org_id,
            first_name=data["first_name"],
            last_name=data["last_name"],
            consignor_split_percent=data.get("consignor_split_percent", 50),
            email=data.get("email"),
            phone=data.get("phone"),
            preferred_payment_method=data.get("preferred_payment_method"),
            status=data.get("status") or "Active",
            notes=data.get("notes"),
        )
        return jsonify(consignor.to_dict()), 201
    except (ConsignorError, ValidationError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create consignor")
        return jsonify({"error": "Internal server error"}), 500


@consignors_bp.get("/<int:consignor_id>")
@require_auth
@require_role(*STAFF)
def get_consignor_route(consignor_id: int):
    try:
        consignor = consignor_service.get_consignor(consignor_id, g.org_id)
        return jsonify(consignor.to_dict())
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 404


@consignors_bp.patch("/<int:consignor_id>")
@require_auth
@require_role(*STAFF)
def update_consignor_route(consignor_id: int):
    """Partial update. A new split percent applies to future sales only."""
    data = request.get_json(silent=True) or {}
    try:
        consignor = consignor_service.update_consignor(consignor_id, g.org_id, data)
        return jsonify(consignor.to_dict())
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 404
    except (ConsignorError, ValidationError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update consignor %s", consignor_id)
        return jsonify({"error": "Internal server error"}), 500


@consignors_bp.post("/<int:consignor_id>/status")
@require_auth
@require_role(ROLE_OWNER)
def set_status_route(consignor_id: int):
    """Request body: {"status": "Inactive", "reason": "..."}"""
    try:
        data = require_fields(request.get_json(silent=True), "status")
        consignor = consignor_service.set_status(
            consignor_id, g.org_id, data["status"], reason=data.get("reason")
        )
        return jsonify(consignor.to_dict())
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 404
    except (ConsignorError, ValidationError) as e:
        return jsonify({"error": str(e)}), 400


@consignors_bp.get("/<int:consignor_id>/balance")
@require_auth
@require_role(*STAFF)
def balance_route(consignor_id: int):
    try:
        return jsonify(consignor_service.get_balance(consignor_id, g.org_id))
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 404


@consignors_bp.get("/<int:consignor_id>/split-summary")
@require_auth
@require_role(*STAFF)
def split_summary_route(consignor_id: int):
    """
    Sales totals and split for a date window.

    Query parameters:
    - start, end: ISO-8601 datetimes (required)
    """
    try:
        require_consignor_in_org(consignor_id, g.org_id)
        start = parse_optional_datetime(request.args.get("start"), "start")
        end = parse_optional_datetime(request.args.get("end"), "end")
        if start is None or end is None:
            raise ValidationError("start and end are required")

        summary = split_service.summarize_period(consignor_id, start, end)
        summary["period_start"] = to_utc_z(start)
        summary["period_end"] = to_utc_z(end)
        summary["transactions"] = [t.to_dict() for t in summary["transactions"]]
        return jsonify(summary)
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400


@consignors_bp.get("/<int:consignor_id>/notifications")
@require_auth
@require_consignor_access
def list_notifications_route(consignor_id: int):
    """Query parameters: unread_only=true to hide read notifications."""
    try:
        require_consignor_in_org(consignor_id, g.org_id)
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 404

    unread_only = request.args.get("unread_only", "false").lower() == "true"
    notifications = notification_service.list_notifications(consignor_id, unread_only=unread_only)
    return jsonify({"items": [n.to_dict() for n in notifications], "count": len(notifications)})
