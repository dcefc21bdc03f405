# Overview: Pytest coverage for login, sessions and role checks.

from datetime import timedelta

import pytest

from consignment.models.auth import ROLE_CONSIGNOR
from consignment.services import session_service
from consignment.services.auth_service import (
    AuthError,
    PasswordValidationError,
    authenticate,
    create_user,
)
from consignment.time_utils import utcnow

from conftest import PASSWORD, auth_headers, get_auth_token


class TestAuthService:

    def test_password_is_hashed(self, db_session, owner_a):
        assert owner_a.password_hash != PASSWORD
        assert owner_a.password_hash.startswith("$2")

    @pytest.mark.parametrize("weak", ["short1!", "alllowercase1!", "NoDigits!!", "NoSpecial123"])
    def test_weak_passwords_rejected(self, db_session, org_a, weak):
        with pytest.raises(PasswordValidationError):
            create_user(org_id=org_a.id, username="weak", email="weak@sta.test", password=weak)

    def test_duplicate_username_in_org_rejected(self, db_session, org_a, owner_a):
        with pytest.raises(AuthError):
            create_user(org_id=org_a.id, username="owner_a", email="x@sta.test", password=PASSWORD)

    def test_consignor_role_requires_link(self, db_session, org_a):
        with pytest.raises(AuthError):
            create_user(
                org_id=org_a.id, username="p", email="p@sta.test", password=PASSWORD, role=ROLE_CONSIGNOR,
            )

    def test_consignor_link_must_be_same_org(self, db_session, org_a, consignor_b):
        with pytest.raises(AuthError):
            create_user(
                org_id=org_a.id, username="p", email="p@sta.test", password=PASSWORD,
                role=ROLE_CONSIGNOR, consignor_id=consignor_b.id,
            )

    def test_authenticate(self, db_session, org_a, org_b, owner_a):
        assert authenticate("owner_a", PASSWORD).id == owner_a.id
        assert authenticate("owner@sta.test", PASSWORD).id == owner_a.id
        assert authenticate("owner_a", "Wrong123!") is None
        assert authenticate("owner_a", PASSWORD, org_id=org_b.id) is None


class TestSessions:

    def test_idle_session_revoked(self, db_session, owner_a):
        session, token = session_service.create_session(owner_a.id)
        session.last_used_at = utcnow() - session_service.SESSION_IDLE_TIMEOUT - timedelta(minutes=1)
        db_session.commit()

        assert session_service.validate_session(token) is None
        db_session.refresh(session)
        assert session.is_revoked is True
        assert session.revoked_reason == "Idle timeout"

    def test_deactivated_user_rejected(self, db_session, owner_a):
        _, token = session_service.create_session(owner_a.id)
        owner_a.is_active = False
        db_session.commit()

        assert session_service.validate_session(token) is None


class TestAuthRoutes:

    def test_login_me_logout(self, client, owner_a):
        token = get_auth_token(client, "owner_a")
        assert token

        me = client.get("/api/auth/me", headers=auth_headers(token))
        assert me.status_code == 200
        assert me.json["user"]["username"] == "owner_a"
        assert me.json["org_id"] == owner_a.org_id

        assert client.post("/api/auth/logout", headers=auth_headers(token)).status_code == 200
        assert client.get("/api/auth/me", headers=auth_headers(token)).status_code == 401

    def test_login_with_org_code(self, client, owner_a):
        resp = client.post("/api/auth/login", json={"username": "owner_a", "password": PASSWORD, "org_code": "STA"})
        assert resp.status_code == 200

        resp = client.post("/api/auth/login", json={"username": "owner_a", "password": PASSWORD, "org_code": "NOPE"})
        assert resp.status_code == 401

    def test_bad_credentials(self, client, owner_a):
        resp = client.post("/api/auth/login", json={"username": "owner_a", "password": "Nope1234!"})
        assert resp.status_code == 401

    def test_missing_fields(self, client, db_session):
        assert client.post("/api/auth/login", json={}).status_code == 400

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/consignors"),
            ("GET", "/api/items"),
            ("GET", "/api/transactions"),
            ("GET", "/api/payouts"),
            ("GET", "/api/payouts/pending"),
            ("POST", "/api/payouts/1/mark-paid"),
            ("GET", "/api/statements/1"),
            ("POST", "/api/statements/generate-month"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_health(self, client, db_session):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json["status"] == "ok"
