# Overview: Flask API routes for consignor statements; parses input and returns JSON responses.

"""
Statement Routes

SECURITY: All routes require authentication.
- Listing and viewing: staff, or the consignor the statement belongs to
  (consignor-role portal users)
- Marking a statement viewed: only that consignor, from the portal
- Generating, regenerating and deleting statements: owner only

Statements are scoped to organizations through their consignor.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_role, require_consignor_access
from ..models.auth import ROLE_OWNER, ROLE_CONSIGNOR
from ..services import statement_service
from ..services.statement_service import StatementError, StatementNotFoundError
from ..services.tenant_service import require_consignor_in_org, TenantAccessError
from ..validation import ValidationError, parse_optional_date, parse_optional_int, require_fields
from consignment.time_utils import month_bounds


statements_bp = Blueprint("statements", __name__, url_prefix="/api/statements")


def _parse_year_month(data: dict) -> tuple[int, int]:
    year = parse_optional_int(data.get("year"), "year")
    month = parse_optional_int(data.get("month"), "month")
    if year is None or month is None:
        raise ValidationError("year and month are required")
    if month < 1 or month > 12:
        raise ValidationError("month must be between 1 and 12")
    return year, month


def _parse_period(data: dict):
    """Either {"period_start", "period_end"} dates or {"year", "month"}."""
    if data.get("period_start") or data.get("period_end"):
        start = parse_optional_date(data.get("period_start"), "period_start")
        end = parse_optional_date(data.get("period_end"), "period_end")
        if start is None or end is None:
            raise ValidationError("period_start and period_end are both required")
        return start, end
    return month_bounds(*_parse_year_month(data))


@statements_bp.post("/generate-month")
@require_auth
@require_role(ROLE_OWNER)
def generate_month_route():
    """
    Generate statements for every active consignor of this organization.

    Request body: {"year": 2025, "month": 11}
    """
    try:
        year, month = _parse_year_month(request.get_json(silent=True) or {})
        summary = statement_service.generate_statements_for_month(year, month, org_id=g.org_id)
        summary["period_start"] = summary["period_start"].isoformat()
        summary["period_end"] = summary["period_end"].isoformat()
        return jsonify(summary)
    except (StatementError, ValidationError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to generate monthly statements")
        return jsonify({"error": "Internal server error"}), 500


@statements_bp.get("/<int:consignor_id>")
@require_auth
@require_consignor_access
def list_statements_route(consignor_id: int):
    try:
        require_consignor_in_org(consignor_id, g.org_id)
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 404

    statements = statement_service.list_statements(consignor_id)
    return jsonify({"items": [s.to_dict() for s in statements], "count": len(statements)})


@statements_bp.post("/<int:consignor_id>/generate")
@require_auth
@require_role(ROLE_OWNER)
def generate_statement_route(consignor_id: int):
    """
    Generate a statement, or return the existing one for the same period.

    Request body: {"year": 2025, "month": 11}
    or {"period_start": "2025-11-01", "period_end": "2025-11-30"}
    """
    try:
        require_consignor_in_org(consignor_id, g.org_id)
        period_start, period_end = _parse_period(require_fields(request.get_json(silent=True)))
        statement = statement_service.generate_statement(
            consignor_id, period_start, period_end, org_id=g.org_id
        )
        return jsonify(statement.to_dict()), 201
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 404
    except (StatementError, ValidationError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to generate statement for consignor %s", consignor_id)
        return jsonify({"error": "Internal server error"}), 500


@statements_bp.get("/<int:consignor_id>/<int:statement_id>")
@require_auth
@require_consignor_access
def get_statement_route(consignor_id: int, statement_id: int):
    """Statement header with its sale and payout lines."""
    try:
        require_consignor_in_org(consignor_id, g.org_id)
        statement = statement_service.get_statement(statement_id, consignor_id)
        return jsonify(statement_service.get_statement_detail(statement))
    except (TenantAccessError, StatementNotFoundError) as e:
        return jsonify({"error": str(e)}), 404


@statements_bp.post("/<int:consignor_id>/<int:statement_id>/viewed")
@require_auth
@require_role(ROLE_CONSIGNOR)
@require_consignor_access
def mark_viewed_route(consignor_id: int, statement_id: int):
    """Records that the consignor opened the statement; staff reads do not count."""
    try:
        require_consignor_in_org(consignor_id, g.org_id)
        statement = statement_service.mark_as_viewed(statement_id, consignor_id)
        return jsonify(statement.to_dict())
    except (TenantAccessError, StatementNotFoundError) as e:
        return jsonify({"error": str(e)}), 404


@statements_bp.post("/<int:consignor_id>/<int:statement_id>/regenerate")
@require_auth
@require_role(ROLE_OWNER)
def regenerate_statement_route(consignor_id: int, statement_id: int):
    try:
        require_consignor_in_org(consignor_id, g.org_id)
        statement = statement_service.regenerate_statement(statement_id, consignor_id)
        return jsonify(statement.to_dict())
    except (TenantAccessError, StatementNotFoundError) as e:
        return jsonify({"error": str(e)}), 404
    except StatementError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to regenerate statement %s", statement_id)
        return jsonify({"error": "Internal server error"}), 500


@statements_bp.delete("/<int:consignor_id>/<int:statement_id>")
@require_auth
@require_role(ROLE_OWNER)
def delete_statement_route(consignor_id: int, statement_id: int):
    try:
        require_consignor_in_org(consignor_id, g.org_id)
        statement_service.delete_statement(statement_id, consignor_id)
        return jsonify({"message": "Statement deleted"})
    except (TenantAccessError, StatementNotFoundError) as e:
        return jsonify({"error": str(e)}), 404
