# Overview: Pytest coverage for commission split arithmetic and period summaries.

from datetime import datetime
from decimal import Decimal

import pytest

from consignment.services.split_service import calculate_split, summarize_period


class TestCalculateSplit:

    def test_sixty_forty(self):
        result = calculate_split(10000, Decimal("60"))
        assert result.consignor_amount_cents == 6000
        assert result.shop_amount_cents == 4000

    def test_fractional_percent_rounds_to_cent(self):
        # $33.33 at 33.333% -> $11.11 consignor, $22.22 shop
        result = calculate_split(3333, Decimal("33.333"))
        assert result.consignor_amount_cents == 1111
        assert result.shop_amount_cents == 2222

    def test_half_cent_rounds_to_even(self):
        assert calculate_split(5, 50).consignor_amount_cents == 2
        assert calculate_split(15, 50).consignor_amount_cents == 8

    def test_accepts_string_percent(self):
        assert calculate_split(2000, "25").consignor_amount_cents == 500

    @pytest.mark.parametrize("price", [0, 1, 99, 3333, 10000, 12345, 999_999_999])
    @pytest.mark.parametrize("pct", ["0", "33.333", "50", "60", "66.6667", "99.9999", "100"])
    def test_amounts_always_sum_to_price(self, price, pct):
        result = calculate_split(price, Decimal(pct))
        assert result.consignor_amount_cents + result.shop_amount_cents == price

    def test_boundaries(self):
        assert calculate_split(10000, 0).consignor_amount_cents == 0
        assert calculate_split(10000, 100).shop_amount_cents == 0

    def test_to_dict(self):
        assert calculate_split(10000, Decimal("60")).to_dict() == {
            "consignor_amount_cents": 6000,
            "shop_amount_cents": 4000,
            "split_percent": "60.0000",
        }


class TestSummarizePeriod:

    def test_totals_completed_sales_in_window(self, db_session, consignor_a, make_sale):
        make_sale(consignor_a, 10000, datetime(2025, 3, 5, 10))
        make_sale(consignor_a, 2500, datetime(2025, 3, 20, 16))
        make_sale(consignor_a, 9999, datetime(2025, 4, 1, 9))

        summary = summarize_period(consignor_a.id, datetime(2025, 3, 1), datetime(2025, 3, 31, 23, 59, 59))

        assert summary["transaction_count"] == 2
        assert summary["total_sales_cents"] == 12500
        assert summary["total_consignor_cents"] == 7500
        assert summary["total_shop_cents"] == 5000
