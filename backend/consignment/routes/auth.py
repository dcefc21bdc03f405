# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

Login issues a bearer token; every other route expects
`Authorization: Bearer <token>`.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..extensions import db
from ..models import Organization
from ..services import auth_service
from ..services import session_service
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Request body:
    {
        "username": "owner",      // or "email"
        "password": "...",
        "org_code": "SHOP1"       // optional, scopes the lookup to one shop
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        username = data.get("username") or data.get("email")
        password = data.get("password")

        if not all([username, password]):
            return jsonify({"error": "username/email and password required"}), 400

        org_id = None
        org_code = data.get("org_code")
        if org_code:
            org = db.session.query(Organization).filter_by(code=org_code).first()
            if not org:
                return jsonify({"error": "Invalid credentials"}), 401
            org_id = org.id

        user = auth_service.authenticate(username, password, org_id=org_id)
        if not user:
            current_app.logger.info("Failed login for %r", username)
            return jsonify({"error": "Invalid credentials"}), 401

        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )

        return jsonify({
            "user": user.to_dict(),
            "token": token,
            "session": session.to_dict(),
            "org_id": session.org_id,
            "message": "Login successful",
        }), 200

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
def logout_route():
    try:
        auth_header = request.headers.get("Authorization")
        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authorization header required"}), 401

        token = auth_header.split(" ", 1)[1]
        if not session_service.revoke_session(token, reason="User logout"):
            return jsonify({"error": "Invalid or expired token"}), 401

        return jsonify({"message": "Logout successful"}), 200

    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    """Current user and tenant context."""
    return jsonify({
        "user": g.current_user.to_dict(),
        "org_id": g.org_id,
    })
