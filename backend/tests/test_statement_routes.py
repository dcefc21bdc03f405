# Overview: Pytest coverage for the statement HTTP routes and the monthly CLI job.

from datetime import datetime

from consignment.models import Statement


def _generate(client, headers, consignor_id, **period):
    return client.post(f"/api/statements/{consignor_id}/generate", json=period, headers=headers)


class TestStatementRoutes:

    def test_generate_view_and_list(self, client, owner_headers, portal_headers, consignor_a, make_sale):
        make_sale(consignor_a, 10000, datetime(2025, 10, 4))

        resp = _generate(client, owner_headers, consignor_a.id, year=2025, month=10)
        assert resp.status_code == 201
        statement = resp.json
        assert statement["period_start"] == "2025-10-01"
        assert statement["period_end"] == "2025-10-31"
        assert statement["closing_balance_cents"] == 6000

        detail = client.get(f"/api/statements/{consignor_a.id}/{statement['id']}", headers=owner_headers)
        assert detail.status_code == 200
        assert len(detail.json["sales"]) == 1

        staff_view = client.post(f"/api/statements/{consignor_a.id}/{statement['id']}/viewed", headers=owner_headers)
        assert staff_view.status_code == 403

        viewed = client.post(f"/api/statements/{consignor_a.id}/{statement['id']}/viewed", headers=portal_headers)
        assert viewed.status_code == 200
        assert viewed.json["status"] == "Viewed"

        listed = client.get(f"/api/statements/{consignor_a.id}", headers=owner_headers)
        assert listed.json["count"] == 1

    def test_generate_with_explicit_dates(self, client, owner_headers, consignor_a):
        resp = _generate(
            client, owner_headers, consignor_a.id, period_start="2025-10-01", period_end="2025-10-15",
        )
        assert resp.status_code == 201
        assert resp.json["period_end"] == "2025-10-15"

    def test_bad_month_is_400(self, client, owner_headers, consignor_a):
        assert _generate(client, owner_headers, consignor_a.id, year=2025, month=13).status_code == 400

    def test_regenerate_and_delete(self, client, owner_headers, consignor_a, make_sale, db_session):
        make_sale(consignor_a, 5000, datetime(2025, 10, 4))
        original = _generate(client, owner_headers, consignor_a.id, year=2025, month=10).json

        regen = client.post(
            f"/api/statements/{consignor_a.id}/{original['id']}/regenerate", headers=owner_headers,
        )
        assert regen.status_code == 200
        assert regen.json["closing_balance_cents"] == original["closing_balance_cents"]

        deleted = client.delete(f"/api/statements/{consignor_a.id}/{regen.json['id']}", headers=owner_headers)
        assert deleted.status_code == 200
        assert db_session.query(Statement).count() == 0

        missing = client.get(f"/api/statements/{consignor_a.id}/{regen.json['id']}", headers=owner_headers)
        assert missing.status_code == 404

    def test_generate_month_for_org(self, client, owner_headers, consignor_a, consignor_a2, consignor_b):
        resp = client.post(
            "/api/statements/generate-month", json={"year": 2025, "month": 10}, headers=owner_headers,
        )
        assert resp.status_code == 200
        assert resp.json["processed"] == 2
        assert resp.json["failed_consignor_ids"] == []

    def test_clerk_cannot_generate(self, client, clerk_headers, consignor_a):
        assert _generate(client, clerk_headers, consignor_a.id, year=2025, month=10).status_code == 403


class TestMonthlyCli:

    def test_generate_monthly_command(self, app, db_session, consignor_a, consignor_b):
        runner = app.test_cli_runner()

        result = runner.invoke(args=["statements", "generate-monthly", "--year", "2025", "--month", "1"])

        assert result.exit_code == 0, result.output
        assert "Generated 2 statement(s) for January 2025" in result.output
        assert db_session.query(Statement).count() == 2

    def test_month_out_of_range(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["statements", "generate-monthly", "--year", "2025", "--month", "13"])
        assert result.exit_code != 0

    def test_year_without_month(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["statements", "generate-monthly", "--year", "2025"])
        assert result.exit_code != 0
