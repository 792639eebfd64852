"""
Sales reporting tests.
"""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from retailpos.models import Customer, Sale
from retailpos.services import reporting_service
from retailpos.services.sales_service import create_sale
from retailpos.time_utils import utcnow
from retailpos.validation import ValidationError


@pytest.fixture
def ring_up(db_session, cashier_user):
    """Factory: ring_up(items, at, status="completed", payment_method="cash", customer=None) -> Sale."""
    def _ring_up(items, at, status="completed", payment_method="cash", customer=None):
        created = create_sale(
            [{"product_id": p.id, "quantity": q} for p, q in items],
            staff_user_id=cashier_user.id,
            payment_method=payment_method,
            status=status,
            customer_id=customer.id if customer is not None else None,
        )
        sale = db_session.get(Sale, created["id"])
        sale.created_at = at
        db_session.commit()
        return sale
    return _ring_up


class TestDailySales:

    def test_totals_and_window(self, db_session, make_product, ring_up):
        a = make_product("SKU-A", "Product A", price="10.00")
        ring_up([(a, 1)], datetime(2026, 5, 1, 0, 0, 0))
        ring_up([(a, 2)], datetime(2026, 5, 1, 23, 59, 59))
        ring_up([(a, 4)], datetime(2026, 5, 2, 0, 0, 0))
        ring_up([(a, 8)], datetime(2026, 4, 30, 23, 59, 59))

        report = reporting_service.daily_sales("2026-05-01")

        assert report["date"] == "2026-05-01"
        assert report["total_sales"] == 30.0
        assert report["total_transactions"] == 2
        assert len(report["sales"]) == 2

    def test_only_completed_sales_count(self, db_session, make_product, ring_up):
        a = make_product("SKU-A", "Product A", price="10.00")
        ring_up([(a, 1)], datetime(2026, 5, 1, 9))
        ring_up([(a, 1)], datetime(2026, 5, 1, 10), status="pending")
        ring_up([(a, 1)], datetime(2026, 5, 1, 11), status="cancelled")

        report = reporting_service.daily_sales("2026-05-01")
        assert report["total_transactions"] == 1
        assert report["total_sales"] == 10.0

    def test_empty_day(self, db_session):
        report = reporting_service.daily_sales("2026-05-01")
        assert report == {
            "date": "2026-05-01",
            "total_sales": 0.0,
            "total_transactions": 0,
            "top_products": [],
            "sales": [],
        }

    @pytest.mark.parametrize("value", ["2026-13-01", "yesterday", "2026-5-1", ""])
    def test_invalid_date(self, db_session, value):
        with pytest.raises(ValidationError):
            reporting_service.daily_sales(value)


class TestTopProducts:

    def test_ranked_by_revenue(self, db_session, make_product, ring_up):
        cheap = make_product("SKU-C", "Cheap", price="1.00")
        dear = make_product("SKU-D", "Dear", price="50.00")
        ring_up([(cheap, 10), (dear, 1)], datetime(2026, 5, 1, 9))
        ring_up([(cheap, 5)], datetime(2026, 5, 1, 10))

        top = reporting_service.daily_sales("2026-05-01")["top_products"]

        assert top == [
            {"product_id": dear.id, "sku": "SKU-D", "name": "Dear", "total_quantity": 1, "total_revenue": 50.0},
            {"product_id": cheap.id, "sku": "SKU-C", "name": "Cheap", "total_quantity": 15, "total_revenue": 15.0},
        ]

    def test_revenue_ties_break_on_product_id(self, db_session, make_product, ring_up):
        first = make_product("SKU-1", "First", price="5.00")
        second = make_product("SKU-2", "Second", price="5.00")
        # Ring the higher id up first so iteration order alone would be wrong
        ring_up([(second, 2), (first, 2)], datetime(2026, 5, 1, 9))

        top = reporting_service.daily_sales("2026-05-01")["top_products"]
        assert [t["product_id"] for t in top] == [first.id, second.id]

    def test_limit(self, db_session, make_product, ring_up):
        products = [make_product(f"SKU-{i}", f"P{i}", price=f"{i}.00") for i in range(1, 5)]
        sales = [ring_up([(p, 1)], datetime(2026, 5, 1, 9)) for p in products]

        top = reporting_service.top_products(sales, limit=2)
        assert [t["sku"] for t in top] == ["SKU-4", "SKU-3"]


class TestSalesSummary:

    def test_summary(self, db_session, make_product, ring_up):
        a = make_product("SKU-A", "Product A", price="10.00")
        ring_up([(a, 1)], datetime(2026, 5, 1, 9), payment_method="cash")
        ring_up([(a, 2)], datetime(2026, 5, 3, 23, 30), payment_method="card")
        ring_up([(a, 4)], datetime(2026, 5, 3, 12), payment_method="card")
        ring_up([(a, 8)], datetime(2026, 5, 4, 0, 0), payment_method="cash")

        report = reporting_service.sales_summary("2026-05-01", "2026-05-03")

        assert report["start_date"] == "2026-05-01"
        assert report["end_date"] == "2026-05-03"
        assert report["total_sales"] == 70.0
        assert report["total_transactions"] == 3
        assert report["average_transaction_value"] == 23.33
        assert report["payment_methods"] == {"card": 60.0, "cash": 10.0}
        assert report["top_products"][0]["total_quantity"] == 7

    def test_empty_range(self, db_session):
        report = reporting_service.sales_summary("2026-05-01", "2026-05-31")
        assert report["total_transactions"] == 0
        assert report["average_transaction_value"] == 0.0
        assert report["payment_methods"] == {}

    def test_start_after_end(self, db_session):
        with pytest.raises(ValidationError):
            reporting_service.sales_summary("2026-05-03", "2026-05-01")

    def test_dates_required(self, db_session):
        with pytest.raises(ValidationError):
            reporting_service.sales_summary(None, "2026-05-01")


class TestCustomerSalesReport:

    @pytest.fixture
    def other(self, db_session):
        other = Customer(first_name="Ben", last_name="Okafor", email="ben@example.com", phone="555-0400", tags=[])
        db_session.add(other)
        db_session.commit()
        return other

    def test_grouped_and_ranked(self, db_session, make_product, ring_up, customer, other):
        a = make_product("SKU-A", "Product A", price="10.00")
        ring_up([(a, 2)], datetime(2026, 5, 1, 9), customer=customer)
        ring_up([(a, 1)], datetime(2026, 5, 3, 9), customer=customer)
        ring_up([(a, 5)], datetime(2026, 5, 2, 9), customer=other)
        ring_up([(a, 9)], datetime(2026, 5, 2, 10))
        ring_up([(a, 1)], datetime(2026, 5, 2, 11), status="pending", customer=customer)
        ring_up([(a, 1)], datetime(2026, 6, 1, 9), customer=customer)

        report = reporting_service.customer_sales_report("2026-05-01", "2026-05-31")

        assert report["total_customers"] == 2
        assert report["total_revenue"] == 80.0
        assert report["average_customer_value"] == 40.0
        first, second = report["customers"]
        assert first["customer_id"] == other.id
        assert first["total_spent"] == 50.0
        assert second["customer_id"] == customer.id
        assert second["name"] == "Maria Lopez"
        assert second["total_orders"] == 2
        assert second["total_items"] == 3
        assert second["average_order_value"] == 15.0
        assert second["first_order"] == "2026-05-01T09:00:00Z"
        assert second["last_order"] == "2026-05-03T09:00:00Z"

    def test_limit_keeps_window_totals(self, db_session, make_product, ring_up, customer, other):
        a = make_product("SKU-A", "Product A", price="10.00")
        ring_up([(a, 1)], datetime(2026, 5, 1, 9), customer=customer)
        ring_up([(a, 2)], datetime(2026, 5, 1, 10), customer=other)

        report = reporting_service.customer_sales_report("2026-05-01", "2026-05-01", limit=1)
        assert [c["customer_id"] for c in report["customers"]] == [other.id]
        assert report["total_customers"] == 2
        assert report["total_revenue"] == 30.0

    def test_defaults_to_last_thirty_days(self, db_session, make_product, ring_up, customer):
        a = make_product("SKU-A", "Product A", price="10.00")
        ring_up([(a, 1)], utcnow() - timedelta(days=1), customer=customer)
        ring_up([(a, 1)], utcnow() - timedelta(days=40), customer=customer)

        report = reporting_service.customer_sales_report()
        assert report["end_date"] == utcnow().date().isoformat()
        assert report["customers"][0]["total_orders"] == 1

    def test_empty_window(self, db_session):
        report = reporting_service.customer_sales_report("2026-05-01", "2026-05-31")
        assert report["customers"] == []
        assert report["average_customer_value"] == 0.0

    @pytest.mark.parametrize("start, end", [("2026-05-31", "2026-05-01"), ("May 1", None)])
    def test_invalid_range(self, db_session, start, end):
        with pytest.raises(ValidationError):
            reporting_service.customer_sales_report(start, end)


class TestStockLevelReport:

    def test_statuses_values_and_order(self, db_session, make_product):
        make_product("SKU-L", "Low", quantity=5)
        make_product("SKU-O", "Over", quantity=60, max_stock=50)
        make_product("SKU-N", "Normal", quantity=25, max_stock=100)
        make_product("SKU-U", "Unbounded", quantity=40)

        report = reporting_service.stock_level_report()

        items = report["items"]
        assert [i["sku"] for i in items] == ["SKU-O", "SKU-N", "SKU-L", "SKU-U"]
        assert [i["status"] for i in items] == ["overstocked", "normal", "low_stock", "normal"]
        assert [i["utilization"] for i in items] == [120.0, 25.0, None, None]
        # cost is half the 10.00 selling price
        assert [i["stock_value"] for i in items] == [300.0, 125.0, 25.0, 200.0]
        assert report["summary"] == {
            "total_products": 4,
            "low_stock_count": 1,
            "overstocked_count": 1,
            "normal_count": 2,
            "total_value": 650.0,
            "average_utilization": 72.5,
        }

    def test_empty_catalog(self, db_session):
        report = reporting_service.stock_level_report()
        assert report["items"] == []
        assert report["summary"]["total_value"] == 0.0
        assert report["summary"]["average_utilization"] is None


class TestInventoryValuationReport:

    def test_grouped_by_category(self, db_session, make_product):
        make_product("SKU-A", "Alpha", price="10.00", quantity=10, category="Tools")
        make_product("SKU-B", "Beta", price="4.00", quantity=5, category="Tools", cost_price=Decimal("3.00"))
        make_product("SKU-C", "Gamma", price="2.00", quantity=100, category="Snacks")
        make_product("SKU-D", "Delta", price="0.00", quantity=3)

        report = reporting_service.inventory_valuation_report()

        assert [c["category"] for c in report["categories"]] == ["Snacks", "Tools", "Uncategorized"]
        snacks, tools, other = report["categories"]
        assert tools["product_count"] == 2
        assert tools["total_cost"] == 65.0
        assert tools["total_retail"] == 120.0
        assert tools["total_profit"] == 55.0
        assert tools["average_margin"] == 37.5
        assert tools["profit_percentage"] == 45.83
        assert [i["profit_margin"] for i in tools["items"]] == [50.0, 25.0]
        assert snacks["profit_percentage"] == 50.0
        assert other["average_margin"] is None
        assert other["profit_percentage"] is None
        assert report["summary"] == {
            "total_products": 4,
            "total_cost": 165.0,
            "total_retail": 320.0,
            "total_profit": 155.0,
        }

class TestReportRoutes:

    def test_daily_route(self, client, cashier_headers):
        resp = client.get("/api/sales/daily/2026-05-01", headers=cashier_headers)
        assert resp.status_code == 200
        assert resp.json["total_transactions"] == 0

    def test_daily_route_bad_date(self, client, cashier_headers):
        assert client.get("/api/sales/daily/05-01-2026", headers=cashier_headers).status_code == 400

    def test_summary_route(self, client, cashier_headers):
        resp = client.get(
            "/api/sales/summary?start_date=2026-05-01&end_date=2026-05-31", headers=cashier_headers,
        )
        assert resp.status_code == 200
        assert resp.json["total_sales"] == 0.0

    def test_summary_route_missing_dates(self, client, cashier_headers):
        assert client.get("/api/sales/summary", headers=cashier_headers).status_code == 400

    @pytest.mark.parametrize("path", [
        "/api/reports/customer-sales",
        "/api/reports/stock-levels",
        "/api/reports/inventory-valuation",
    ])
    def test_management_reports_require_manager(self, client, cashier_headers, manager_headers, path):
        assert client.get(path, headers=cashier_headers).status_code == 403
        assert client.get(path, headers=manager_headers).status_code == 200

    def test_customer_sales_route_bad_range(self, client, manager_headers):
        resp = client.get(
            "/api/reports/customer-sales?start_date=2026-05-31&end_date=2026-05-01", headers=manager_headers,
        )
        assert resp.status_code == 400
