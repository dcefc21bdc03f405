# Overview: Flask API routes for consignment inventory items.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_role
from ..models.auth import ROLE_OWNER, ROLE_CLERK
from ..services import consignor_service
from ..services.consignor_service import ConsignorError
from ..services.tenant_service import require_item_in_org, TenantAccessError
from ..validation import ValidationError, require_fields, parse_optional_int


items_bp = Blueprint("items", __name__, url_prefix="/api/items")


@items_bp.get("")
@require_auth
@require_role(ROLE_OWNER, ROLE_CLERK)
def list_items_route():
    try:
        consignor_id = parse_optional_int(request.args.get("consignor_id"), "consignor_id")
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    items = consignor_service.list_items(
        g.org_id, consignor_id=consignor_id, status=request.args.get("status")
    )
    return jsonify({"items": [i.to_dict() for i in items], "count": len(items)})


@items_bp.post("")
@require_auth
@require_role(ROLE_OWNER, ROLE_CLERK)
def create_item_route():
    """
    Request body:
    {"consignor_id": 1, "sku": "A-100", "title": "Oak chair", "price_cents": 4500, "description": "..."}
    """
    try:
        data = require_fields(request.get_json(silent=True), "consignor_id", "sku", "title", "price_cents")
        item = consignor_service.create_item(
            org_id=g.org_id,
            consignor_id=parse_optional_int(data["consignor_id"], "consignor_id"),
            sku=str(data["sku"]),
            title=str(data["title"]),
            price_cents=data["price_cents"],
            description=data.get("description"),
        )
        return jsonify(item.to_dict()), 201
    except (ConsignorError, ValidationError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create item")
        return jsonify({"error": "Internal server error"}), 500


@items_bp.get("/<int:item_id>")
@require_auth
@require_role(ROLE_OWNER, ROLE_CLERK)
def get_item_route(item_id: int):
    try:
        return jsonify(require_item_in_org(item_id, g.org_id).to_dict())
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 404
