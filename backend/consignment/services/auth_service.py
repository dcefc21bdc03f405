# Overview: Service-layer operations for auth; password hashing, user creation and credential checks.

"""
Authentication Service with Multi-Tenant Support

MULTI-TENANT: Users belong to exactly one organization (org_id).
Username/email uniqueness is tenant-scoped.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_ROUNDS, default 12)
- Minimum 8 characters, upper, lower, digit and special char required
- Session tokens managed separately (see session_service.py)
- Consignor-role users must be linked to a consignor of the same organization
"""

import re

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import Consignor, Organization, User
from ..models.auth import ROLE_CONSIGNOR, ROLE_CLERK, VALID_ROLES
from consignment.time_utils import utcnow


class AuthError(Exception):
    """Raised for user management errors."""
    pass


class PasswordValidationError(AuthError):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    if not password or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")
    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")
    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")
    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")
    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """Validate strength, then hash with bcrypt."""
    validate_password_strength(password)
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt(rounds=rounds))
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash in the database
        return False


def create_user(
    *,
    org_id: int,
    username: str,
    email: str,
    password: str,
    role: str = ROLE_CLERK,
    consignor_id: int | None = None,
) -> User:
    """
    Create a user with a bcrypt password hash.

    Raises:
        AuthError: org missing/inactive, duplicate username/email, bad role,
            consignor link missing or from another organization
        PasswordValidationError: weak password
    """
    org = db.session.get(Organization, org_id)
    if not org:
        raise AuthError("Organization not found")
    if not org.is_active:
        raise AuthError("Organization is not active")

    if role not in VALID_ROLES:
        raise AuthError(f"Invalid role: {role}. Must be one of {list(VALID_ROLES)}")

    if not username or not email:
        raise AuthError("username and email are required")

    existing = db.session.query(User).filter(
        User.org_id == org_id,
        db.or_(User.username == username, User.email == email)
    ).first()
    if existing:
        raise AuthError("Username or email already exists in this organization")

    if role == ROLE_CONSIGNOR:
        if consignor_id is None:
            raise AuthError("consignor_id is required for consignor users")
        consignor = db.session.get(Consignor, consignor_id)
        if consignor is None or consignor.org_id != org_id:
            raise AuthError("Consignor not found")
    elif consignor_id is not None:
        raise AuthError("Only consignor users may be linked to a consignor")

    user = User(
        org_id=org_id,
        username=username,
        email=email,
        password_hash=hash_password(password),
        role=role,
        consignor_id=consignor_id,
    )
    db.session.add(user)
    db.session.commit()
    return user


def authenticate(username: str, password: str, org_id: int | None = None) -> User | None:
    """
    Check credentials and return the User, or None.

    Args:
        username: Username or email
        password: Password to verify
        org_id: Organization to scope the lookup to (recommended)
    """
    query = db.session.query(User).filter(
        db.or_(User.username == username, User.email == username),
        User.is_active.is_(True),
    )
    if org_id is not None:
        query = query.filter(User.org_id == org_id)

    user = query.first()
    if not user:
        return None

    org = db.session.get(Organization, user.org_id)
    if not org or not org.is_active:
        return None

    if not verify_password(password, user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user
