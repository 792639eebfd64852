"""
Query-string parsing for list endpoints.
"""

from datetime import datetime
from decimal import Decimal

import pytest

from retailpos.services.queries import (
    ProductQuery,
    SaleQuery,
    parse_limit,
    parse_page,
    parse_range_end,
    parse_range_start,
)
from retailpos.validation import ValidationError, parse_id


class TestPaging:

    def test_defaults(self, app):
        with app.app_context():
            assert parse_page(None) == 1
            assert parse_limit(None) == 20

    def test_limit_is_capped(self, app):
        with app.app_context():
            assert parse_limit("500") == 100

    @pytest.mark.parametrize("value", ["0", "-1", "abc", "1.5"])
    def test_bad_page(self, app, value):
        with app.app_context(), pytest.raises(ValidationError):
            parse_page(value)


class TestParseId:

    def test_plain_digits(self):
        assert parse_id(" 42 ") == 42

    @pytest.mark.parametrize("value", ["\u00b2", "\u0663", "\uff11", "-1", "0", "1.5", "", None])
    def test_rejects(self, value):
        with pytest.raises(ValidationError):
            parse_id(value)


class TestDateRanges:

    def test_bare_date_end_covers_whole_day(self):
        assert parse_range_start("2026-05-01") == datetime(2026, 5, 1)
        assert parse_range_end("2026-05-01") == datetime(2026, 5, 2)

    def test_datetime_used_as_given(self):
        assert parse_range_end("2026-05-01T12:30:00Z") == datetime(2026, 5, 1, 12, 30)

    def test_blank_is_none(self):
        assert parse_range_start("") is None
        assert parse_range_end(None) is None

    def test_invalid(self):
        with pytest.raises(ValidationError):
            parse_range_start("May 1st")


class TestProductQuery:

    def test_from_args(self, app):
        with app.app_context():
            query = ProductQuery.from_args({
                "search": " coffee ",
                "min_price": "1.5",
                "max_price": "20",
                "in_stock": "TRUE",
                "sort_by": "Selling_Price",
                "sort_order": "DESC",
                "page": "2",
            })
        assert query.search == "coffee"
        assert query.min_price == Decimal("1.50")
        assert query.in_stock is True
        assert query.sort_by == "selling_price"
        assert query.sort_order == "desc"
        assert query.page == 2

    @pytest.mark.parametrize("args", [
        {"min_price": "10", "max_price": "5"},
        {"min_price": "-1"},
        {"sort_by": "password"},
        {"in_stock": "maybe"},
        {"supplier_id": "abc"},
    ])
    def test_rejects(self, app, args):
        with app.app_context(), pytest.raises(ValidationError):
            ProductQuery.from_args(args)


class TestSaleQuery:

    def test_defaults(self, app):
        with app.app_context():
            query = SaleQuery.from_args({})
        assert query.sort_by == "created_at"
        assert query.sort_order == "desc"
        assert query.start is None and query.end is None

    def test_same_day_range_is_valid(self, app):
        with app.app_context():
            query = SaleQuery.from_args({"start_date": "2026-05-01", "end_date": "2026-05-01"})
        assert query.end - query.start == datetime(2026, 5, 2) - datetime(2026, 5, 1)

    @pytest.mark.parametrize("args", [
        {"start_date": "2026-05-03", "end_date": "2026-05-01"},
        {"status": "lost"},
        {"payment_method": "barter"},
        {"customer_id": "0"},
    ])
    def test_rejects(self, app, args):
        with app.app_context(), pytest.raises(ValidationError):
            SaleQuery.from_args(args)
