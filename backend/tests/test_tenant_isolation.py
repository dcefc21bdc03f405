# Overview: Pytest coverage for tenant isolation behavior.

"""
Multi-Tenant Isolation Tests

Two organizations, each with its own owner and consignors. Verifies that:
1. Service lookups across tenants fail exactly like missing rows
2. API requests for another tenant's records return 404
3. Cross-tenant attempts are logged
4. Consignor portal users only see their own statements
"""

import logging
from datetime import date, datetime

import pytest

from consignment.services import statement_service
from consignment.services.tenant_service import (
    require_consignor_in_org,
    require_transaction_in_org,
    TenantAccessError,
)


class TestTenantServiceHelpers:

    def test_consignor_in_own_org(self, db_session, org_a, consignor_a):
        assert require_consignor_in_org(consignor_a.id, org_a.id).id == consignor_a.id

    def test_consignor_cross_tenant(self, db_session, org_a, consignor_b):
        with pytest.raises(TenantAccessError, match="Consignor not found"):
            require_consignor_in_org(consignor_b.id, org_a.id)

    def test_nonexistent(self, db_session, org_a):
        with pytest.raises(TenantAccessError):
            require_transaction_in_org(99999, org_a.id)

    def test_cross_tenant_attempt_logged(self, db_session, app, org_a, consignor_b, caplog):
        with caplog.at_level(logging.WARNING, logger=app.logger.name):
            with pytest.raises(TenantAccessError):
                require_consignor_in_org(consignor_b.id, org_a.id)
        assert "CROSS_TENANT_ACCESS_DENIED" in caplog.text


class TestCrossTenantApi:

    def test_cannot_read_other_org_consignor(self, client, owner_headers, consignor_b):
        resp = client.get(f"/api/consignors/{consignor_b.id}", headers=owner_headers)
        assert resp.status_code == 404

    def test_cannot_mark_other_org_consignor_paid(self, client, owner_headers, consignor_b, make_sale):
        make_sale(consignor_b, 1000)
        resp = client.post(
            f"/api/payouts/{consignor_b.id}/mark-paid",
            json={"payment_method": "Cash"},
            headers=owner_headers,
        )
        assert resp.status_code == 404

    def test_cannot_read_other_org_statements(self, client, owner_headers, consignor_b):
        resp = client.get(f"/api/statements/{consignor_b.id}", headers=owner_headers)
        assert resp.status_code == 404

    def test_listings_only_show_own_org(self, client, owner_headers, consignor_a, consignor_b, make_sale):
        make_sale(consignor_a, 1000)
        make_sale(consignor_b, 1000)

        consignors = client.get("/api/consignors", headers=owner_headers).json
        transactions = client.get("/api/transactions", headers=owner_headers).json

        assert [c["id"] for c in consignors["items"]] == [consignor_a.id]
        assert transactions["total_count"] == 1


class TestConsignorPortalAccess:

    @pytest.fixture
    def statements(self, db_session, consignor_a, consignor_a2, make_sale):
        make_sale(consignor_a, 1000, datetime(2025, 3, 3))
        own = statement_service.generate_statement(consignor_a.id, date(2025, 3, 1), date(2025, 3, 31))
        other = statement_service.generate_statement(consignor_a2.id, date(2025, 3, 1), date(2025, 3, 31))
        return own, other

    def test_reads_own_statements(self, client, portal_headers, consignor_a, statements):
        own, _ = statements
        resp = client.get(f"/api/statements/{consignor_a.id}/{own.id}", headers=portal_headers)
        assert resp.status_code == 200
        assert resp.json["total_earnings_cents"] == 600

    def test_cannot_read_other_consignor(self, client, portal_headers, consignor_a2, statements):
        _, other = statements
        resp = client.get(f"/api/statements/{consignor_a2.id}/{other.id}", headers=portal_headers)
        assert resp.status_code == 403

    def test_reads_own_notifications_only(self, client, portal_headers, consignor_a, consignor_a2, statements):
        own = client.get(f"/api/consignors/{consignor_a.id}/notifications", headers=portal_headers)
        assert own.status_code == 200
        assert own.json["count"] == 1

        other = client.get(f"/api/consignors/{consignor_a2.id}/notifications", headers=portal_headers)
        assert other.status_code == 403

    def test_cannot_use_staff_routes(self, client, portal_headers, consignor_a):
        assert client.get("/api/consignors", headers=portal_headers).status_code == 403
        resp = client.post(
            f"/api/statements/{consignor_a.id}/generate",
            json={"year": 2025, "month": 4},
            headers=portal_headers,
        )
        assert resp.status_code == 403
