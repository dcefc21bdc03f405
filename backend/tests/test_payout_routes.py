# Overview: Pytest coverage for the payout, transaction and consignor HTTP routes.

from datetime import datetime


class TestSalesRoutes:

    def test_record_sale_and_preview(self, client, clerk_headers, consignor_a):
        preview = client.post(
            "/api/transactions/split-preview",
            json={"sale_price_cents": 3333, "consignor_split_percent": "33.333"},
            headers=clerk_headers,
        )
        assert preview.status_code == 200
        assert preview.json["consignor_amount_cents"] == 1111
        assert preview.json["shop_amount_cents"] == 2222

        resp = client.post(
            "/api/transactions",
            json={"consignor_id": consignor_a.id, "sale_price_cents": 10000, "payment_method": "Card"},
            headers=clerk_headers,
        )
        assert resp.status_code == 201
        assert resp.json["consignor_amount_cents"] == 6000
        assert resp.json["consignor_split_percent"] == "60.0000"

    def test_rejects_decimal_price(self, client, clerk_headers, consignor_a):
        resp = client.post(
            "/api/transactions",
            json={"consignor_id": consignor_a.id, "sale_price_cents": 99.5},
            headers=clerk_headers,
        )
        assert resp.status_code == 400

    def test_create_consignor_and_item(self, client, clerk_headers):
        resp = client.post(
            "/api/consignors",
            json={"first_name": "Mary", "last_name": "Shelley", "consignor_split_percent": "55.5"},
            headers=clerk_headers,
        )
        assert resp.status_code == 201
        consignor_id = resp.json["id"]
        assert resp.json["consignor_split_percent"] == "55.5000"

        item = client.post(
            "/api/items",
            json={"consignor_id": consignor_id, "sku": "BK-1", "title": "First edition", "price_cents": 25000},
            headers=clerk_headers,
        )
        assert item.status_code == 201
        assert client.get(f"/api/items/{item.json['id']}", headers=clerk_headers).status_code == 200


class TestPayoutRoutes:

    def test_owner_marks_paid(self, client, owner_headers, consignor_a, make_sale):
        make_sale(consignor_a, 5000)
        make_sale(consignor_a, 10000)

        resp = client.post(
            f"/api/payouts/{consignor_a.id}/mark-paid",
            json={"payment_method": "Check", "notes": "Check #1001"},
            headers=owner_headers,
        )

        assert resp.status_code == 200
        assert resp.json["payout"]["amount_cents"] == 9000
        assert resp.json["payout"]["transaction_count"] == 2

        listed = client.get("/api/payouts", headers=owner_headers).json
        assert listed["total_count"] == 1

        detail = client.get(f"/api/payouts/{resp.json['payout']['id']}", headers=owner_headers).json
        assert len(detail["transactions"]) == 2

        balance = client.get(f"/api/consignors/{consignor_a.id}/balance", headers=owner_headers).json
        assert balance["pending_amount_cents"] == 0

    def test_clerk_cannot_mark_paid(self, client, clerk_headers, consignor_a, make_sale):
        make_sale(consignor_a, 5000)
        resp = client.post(
            f"/api/payouts/{consignor_a.id}/mark-paid",
            json={"payment_method": "Cash"},
            headers=clerk_headers,
        )
        assert resp.status_code == 403

    def test_nothing_pending_is_400(self, client, owner_headers, consignor_a):
        resp = client.post(
            f"/api/payouts/{consignor_a.id}/mark-paid",
            json={"payment_method": "Cash"},
            headers=owner_headers,
        )
        assert resp.status_code == 400

    def test_selected_payout(self, client, owner_headers, consignor_a, make_sale):
        t1 = make_sale(consignor_a, 1000)
        make_sale(consignor_a, 2000)

        resp = client.post(
            "/api/payouts",
            json={"consignor_id": consignor_a.id, "transaction_ids": [t1.id], "payment_method": "Zelle"},
            headers=owner_headers,
        )

        assert resp.status_code == 201
        assert resp.json["amount_cents"] == 600
        pending = client.get("/api/payouts/pending", headers=owner_headers).json
        assert pending["total_pending_cents"] == 1200

    def test_report(self, client, owner_headers, consignor_a, make_sale):
        make_sale(consignor_a, 10000, datetime(2025, 9, 10))

        resp = client.get(
            "/api/payouts/report?start=2025-09-01T00:00:00Z&end=2025-09-30T23:59:59Z",
            headers=owner_headers,
        )

        assert resp.status_code == 200
        assert resp.json["total_amount_cents"] == 6000
        assert resp.json["items"][0]["transactions"][0]["sale_date"] == "2025-09-10T00:00:00Z"

    def test_report_requires_window(self, client, owner_headers):
        assert client.get("/api/payouts/report", headers=owner_headers).status_code == 400

    def test_automated_payout_rejected(self, client, owner_headers):
        resp = client.post("/api/payouts/automated", json={"provider": "stripe"}, headers=owner_headers)
        assert resp.status_code == 400
        assert "not implemented" in resp.json["error"]

        resp = client.post("/api/payouts/automated", json={"provider": "paypal"}, headers=owner_headers)
        assert resp.status_code == 400
        assert "not supported" in resp.json["error"]

    def test_automated_payout_requires_provider(self, client, owner_headers):
        assert client.post("/api/payouts/automated", json={}, headers=owner_headers).status_code == 400
