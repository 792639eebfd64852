"""
Customer tests.
"""

from decimal import Decimal

import pytest

from retailpos.models import Customer
from retailpos.services import customers_service
from retailpos.services.customers_service import record_purchase


def _payload(**overrides):
    data = {
        "first_name": "James",
        "last_name": "Chen",
        "email": "James.Chen@Example.com",
        "phone": "555-0300",
        "address": {"street": "1 Main St", "city": "Springfield", "country": "US"},
        "tags": ["vip"],
    }
    data.update(overrides)
    return data


class TestCustomersApi:

    def test_create(self, client, cashier_headers, cashier_user):
        resp = client.post("/api/customers", json=_payload(), headers=cashier_headers)

        assert resp.status_code == 201
        assert resp.json["email"] == "james.chen@example.com"
        assert resp.json["full_name"] == "James Chen"
        assert resp.json["created_by_user_id"] == cashier_user.id
        assert resp.json["statistics"]["total_orders"] == 0

    def test_duplicate_email_is_409(self, client, cashier_headers):
        client.post("/api/customers", json=_payload(), headers=cashier_headers)
        resp = client.post("/api/customers", json=_payload(phone="555-0999"), headers=cashier_headers)
        assert resp.status_code == 409

    def test_duplicate_phone_is_409(self, client, cashier_headers):
        client.post("/api/customers", json=_payload(), headers=cashier_headers)
        resp = client.post("/api/customers", json=_payload(email="other@example.com"), headers=cashier_headers)
        assert resp.status_code == 409

    @pytest.mark.parametrize("overrides", [
        {"email": "not-an-email"},
        {"phone": "12"},
        {"customer_type": "alien"},
        {"address": {"planet": "Mars"}},
        {"tags": "vip"},
    ])
    def test_invalid_payload_is_400(self, client, cashier_headers, overrides):
        resp = client.post("/api/customers", json=_payload(**overrides), headers=cashier_headers)
        assert resp.status_code == 400

    def test_lookups(self, client, cashier_headers, customer):
        assert client.get(f"/api/customers/{customer.id}", headers=cashier_headers).json["email"] == "maria@example.com"
        assert client.get("/api/customers/email/MARIA@example.com", headers=cashier_headers).json["id"] == customer.id
        assert client.get("/api/customers/phone/555-0200", headers=cashier_headers).json["id"] == customer.id
        assert client.get("/api/customers/phone/000", headers=cashier_headers).status_code == 404
        assert client.get("/api/customers/xyz", headers=cashier_headers).status_code == 400

    def test_list_search(self, client, cashier_headers, customer):
        client.post("/api/customers", json=_payload(), headers=cashier_headers)
        resp = client.get("/api/customers?search=chen", headers=cashier_headers)
        assert resp.status_code == 200
        assert [c["last_name"] for c in resp.json["items"]] == ["Chen"]

    def test_update(self, client, cashier_headers, customer):
        resp = client.patch(f"/api/customers/{customer.id}", json={"notes": "Prefers email"}, headers=cashier_headers)
        assert resp.status_code == 200
        assert resp.json["notes"] == "Prefers email"

    def test_new_customer_starts_at_bronze(self, client, cashier_headers):
        resp = client.post("/api/customers", json=_payload(), headers=cashier_headers)
        assert resp.json["loyalty"]["points"] == 0
        assert resp.json["loyalty"]["tier"] == "bronze"
        assert resp.json["loyalty"]["member_since"].endswith("Z")

    def test_tier_update_and_filter(self, client, cashier_headers, customer):
        client.post("/api/customers", json=_payload(), headers=cashier_headers)
        resp = client.patch(f"/api/customers/{customer.id}", json={"loyalty_tier": "gold"}, headers=cashier_headers)
        assert resp.status_code == 200
        assert resp.json["loyalty"]["tier"] == "gold"

        gold = client.get("/api/customers?tier=gold", headers=cashier_headers).json
        assert [c["id"] for c in gold["items"]] == [customer.id]
        bronze = client.get("/api/customers?tier=bronze", headers=cashier_headers).json
        assert [c["last_name"] for c in bronze["items"]] == ["Chen"]

    def test_unknown_tier_is_400(self, client, cashier_headers, customer):
        assert client.get("/api/customers?tier=diamond", headers=cashier_headers).status_code == 400
        resp = client.patch(f"/api/customers/{customer.id}", json={"loyalty_tier": "diamond"}, headers=cashier_headers)
        assert resp.status_code == 400

    def test_delete_requires_manager(self, client, cashier_headers, manager_headers, customer):
        assert client.delete(f"/api/customers/{customer.id}", headers=cashier_headers).status_code == 403
        assert client.delete(f"/api/customers/{customer.id}", headers=manager_headers).status_code == 200

    def test_delete_with_sales_is_409(self, client, cashier_headers, manager_headers, customer, make_product):
        product = make_product("SKU-1", "Widget")
        client.post("/api/sales", json={
            "items": [{"product_id": product.id, "quantity": 1}],
            "payment_method": "cash",
            "customer_id": customer.id,
        }, headers=cashier_headers)

        assert client.delete(f"/api/customers/{customer.id}", headers=manager_headers).status_code == 409


class TestRecordPurchase:

    def test_statistics_accumulate(self, db_session, customer):
        record_purchase(customer, Decimal("10.00"))
        record_purchase(customer, Decimal("5.00"))
        db_session.commit()

        refreshed = db_session.get(Customer, customer.id)
        assert refreshed.total_orders == 2
        assert refreshed.total_spent == Decimal("15.00")
        assert refreshed.average_order_value == Decimal("7.50")

    def test_loyalty_points_round_down(self, db_session, customer):
        record_purchase(customer, Decimal("125.50"))
        record_purchase(customer, Decimal("9.99"))
        db_session.commit()

        refreshed = db_session.get(Customer, customer.id)
        # floor(12.55) + floor(0.999)
        assert refreshed.loyalty_points == 12
        assert refreshed.loyalty_tier == "bronze"

    def test_points_rate_is_configurable(self, app, db_session, customer, monkeypatch):
        monkeypatch.setitem(app.config, "LOYALTY_POINTS_RATE", "1")
        record_purchase(customer, Decimal("42.75"))
        assert customer.loyalty_points == 42


def _add_customer(db_session, n, spent, is_active=True):
    customer = Customer(
        first_name=f"Guest{n}",
        last_name="Shopper",
        email=f"guest{n}@example.com",
        phone=f"555-01{n:02d}",
        tags=[],
        total_spent=Decimal(spent),
        is_active=is_active,
    )
    db_session.add(customer)
    db_session.commit()
    return customer


class TestCustomerRankings:

    def test_top_customers_by_spend(self, db_session):
        low = _add_customer(db_session, 1, "50.00")
        high = _add_customer(db_session, 2, "900.00")
        tied = _add_customer(db_session, 3, "50.00")
        _add_customer(db_session, 4, "5000.00", is_active=False)

        ranked = customers_service.top_customers()
        assert [c["id"] for c in ranked] == [high.id, low.id, tied.id]
        assert [c["id"] for c in customers_service.top_customers(limit=1)] == [high.id]

    def test_counts(self, db_session):
        _add_customer(db_session, 1, "0")
        _add_customer(db_session, 2, "0")
        _add_customer(db_session, 3, "0", is_active=False)
        assert customers_service.customer_counts() == {"total": 3, "active": 2, "inactive": 1}

    def test_counts_when_empty(self, db_session):
        assert customers_service.customer_counts() == {"total": 0, "active": 0, "inactive": 0}

    def test_routes(self, client, cashier_headers, customer):
        top = client.get("/api/customers/top?limit=5", headers=cashier_headers)
        assert top.status_code == 200
        assert [c["id"] for c in top.json["items"]] == [customer.id]

        stats = client.get("/api/customers/stats", headers=cashier_headers)
        assert stats.json == {"total": 1, "active": 1, "inactive": 0}

        assert client.get("/api/customers/top?limit=zero", headers=cashier_headers).status_code == 400
