# Overview: Request and role decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .models.auth import ROLE_CONSIGNOR
from .services import session_service


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user') and hasattr(g, 'org_id')


def require_auth(f):
    """
    Require a bearer token and establish tenant context.

    Sets on Flask g:
    - g.current_user: the authenticated User
    - g.org_id: the organization (tenant) of the session
    - g.session_context: the full SessionContext

    Returns 401 on a missing, invalid, expired or revoked token.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1]
        context = session_service.validate_session(token)

        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = context.user
        g.org_id = context.org_id
        g.session_context = context

        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles: str):
    """Allow only users whose role is one of roles. Use after @require_auth."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            if g.current_user.role not in roles:
                return jsonify({
                    "error": "Permission denied",
                    "required_roles": list(roles),
                }), 403

            return f(*args, **kwargs)

        return decorated_function

    return decorator


def require_consignor_access(f):
    """
    Guard routes taking a consignor_id path parameter.

    Staff may access any consignor of their organization (the service layer
    enforces the organization). Consignor-role users may only access the
    consignor they are linked to.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not _is_authenticated():
            return jsonify({"error": "Authentication required"}), 401

        user = g.current_user
        if user.role == ROLE_CONSIGNOR and kwargs.get("consignor_id") != user.consignor_id:
            return jsonify({"error": "Permission denied"}), 403

        return f(*args, **kwargs)

    return decorated_function
