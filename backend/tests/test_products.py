"""
Product catalog tests (HTTP).
"""

import pytest

from retailpos.models import Product


def _payload(**overrides):
    data = {
        "sku": "BEV-COF-001",
        "name": "House Blend Coffee",
        "category": "Beverages",
        "subcategory": "Coffee",
        "cost_price": 11.5,
        "selling_price": 19.99,
        "quantity": 40,
    }
    data.update(overrides)
    return data


class TestCreateProduct:

    def test_create_with_defaults(self, client, manager_headers):
        resp = client.post("/api/products", json=_payload(), headers=manager_headers)

        assert resp.status_code == 201
        body = resp.json
        assert body["sku"] == "BEV-COF-001"
        assert body["selling_price"] == 19.99
        assert body["currency"] == "USD"
        assert body["min_stock"] == 10
        assert body["location"] == "Main Store"
        assert body["is_low_stock"] is False
        assert body["variants"] == []

    def test_duplicate_sku_is_409(self, client, manager_headers):
        client.post("/api/products", json=_payload(), headers=manager_headers)
        resp = client.post("/api/products", json=_payload(name="Other"), headers=manager_headers)
        assert resp.status_code == 409

    def test_duplicate_name_is_409(self, client, manager_headers):
        client.post("/api/products", json=_payload(), headers=manager_headers)
        resp = client.post("/api/products", json=_payload(sku="OTHER-1"), headers=manager_headers)
        assert resp.status_code == 409

    @pytest.mark.parametrize("overrides", [
        {"selling_price": -1},
        {"quantity": -5},
        {"quantity": 2.5},
        {"currency": "DOLLARS"},
        {"variants": [{"name": "Size"}]},
        {"images": "not-a-list"},
        {"unknown_field": 1},
    ])
    def test_invalid_payload_is_400(self, client, manager_headers, overrides):
        resp = client.post("/api/products", json=_payload(**overrides), headers=manager_headers)
        assert resp.status_code == 400

    def test_missing_required_is_400(self, client, manager_headers):
        resp = client.post("/api/products", json={"sku": "X"}, headers=manager_headers)
        assert resp.status_code == 400
        assert "Missing required fields" in resp.json["error"]

    def test_unknown_supplier_is_404(self, client, manager_headers):
        resp = client.post("/api/products", json=_payload(supplier_id=999999), headers=manager_headers)
        assert resp.status_code == 404

    def test_supplier_summary_embedded(self, client, manager_headers, supplier):
        resp = client.post("/api/products", json=_payload(supplier_id=supplier.id), headers=manager_headers)
        assert resp.json["supplier"] == {
            "id": supplier.id,
            "name": "Northwind Traders",
            "email": "orders@northwind.test",
            "phone": "555-0100",
        }

    def test_variants_are_normalized(self, client, manager_headers):
        resp = client.post("/api/products", json=_payload(
            variants=[{"name": "Size", "value": "1kg", "price_modifier": "2.5"}],
        ), headers=manager_headers)
        assert resp.json["variants"] == [{"name": "Size", "value": "1kg", "price_modifier": 2.5}]

    def test_cashier_cannot_create(self, client, cashier_headers):
        resp = client.post("/api/products", json=_payload(), headers=cashier_headers)
        assert resp.status_code == 403


class TestReadProducts:

    def test_get_by_id_and_sku(self, client, cashier_headers, make_product):
        product = make_product("SKU-1", "Widget")
        assert client.get(f"/api/products/{product.id}", headers=cashier_headers).json["sku"] == "SKU-1"
        assert client.get("/api/products/sku/SKU-1", headers=cashier_headers).json["id"] == product.id

    def test_missing_is_404(self, client, cashier_headers):
        assert client.get("/api/products/999999", headers=cashier_headers).status_code == 404
        assert client.get("/api/products/sku/NOPE", headers=cashier_headers).status_code == 404

    def test_malformed_id_is_400(self, client, cashier_headers):
        assert client.get("/api/products/abc", headers=cashier_headers).status_code == 400

    @pytest.mark.parametrize("raw", ["%C2%B2", "%D9%A3", "%EF%BC%91"])
    def test_non_ascii_digit_id_is_400(self, client, cashier_headers, raw):
        # superscript two, Arabic-Indic three, fullwidth one
        assert client.get(f"/api/products/{raw}", headers=cashier_headers).status_code == 400

    def test_list_search_and_pagination(self, client, cashier_headers, make_product):
        make_product("SKU-1", "Blue Widget")
        make_product("SKU-2", "Red Widget")
        make_product("SKU-3", "Green Gadget")

        resp = client.get("/api/products?search=widget&limit=1", headers=cashier_headers)

        assert resp.status_code == 200
        assert resp.json["count"] == 1
        assert resp.json["items"][0]["name"] == "Blue Widget"
        assert resp.json["pagination"]["total"] == 2
        assert resp.json["pagination"]["has_next"] is True

    def test_list_filters(self, client, cashier_headers, make_product):
        make_product("SKU-1", "Cheap", price="2.00", quantity=0, category="Snacks")
        make_product("SKU-2", "Mid", price="10.00", quantity=5, category="Snacks")
        make_product("SKU-3", "Pricey", price="50.00", quantity=5, category="Home")

        in_stock = client.get("/api/products?in_stock=true", headers=cashier_headers).json
        assert {p["sku"] for p in in_stock["items"]} == {"SKU-2", "SKU-3"}

        ranged = client.get("/api/products?min_price=5&max_price=10", headers=cashier_headers).json
        assert [p["sku"] for p in ranged["items"]] == ["SKU-2"]

        snacks = client.get(
            "/api/products?category=Snacks&sort_by=selling_price&sort_order=desc", headers=cashier_headers,
        ).json
        assert [p["sku"] for p in snacks["items"]] == ["SKU-2", "SKU-1"]

    @pytest.mark.parametrize("query", ["page=0", "limit=abc", "sort_by=cost_price", "in_stock=maybe", "min_price=x"])
    def test_list_rejects_bad_args(self, client, cashier_headers, query):
        assert client.get(f"/api/products?{query}", headers=cashier_headers).status_code == 400

    def test_limit_is_capped(self, client, cashier_headers, make_product):
        make_product("SKU-1", "Widget")
        resp = client.get("/api/products?limit=1000", headers=cashier_headers)
        assert resp.json["pagination"]["per_page"] == 100

    def test_categories(self, client, cashier_headers, make_product):
        make_product("SKU-1", "A", category="Snacks", subcategory="Chips")
        make_product("SKU-2", "B", category="Snacks", subcategory="Bars")
        make_product("SKU-3", "C", category="Home")
        make_product("SKU-4", "D")

        assert client.get("/api/products/categories", headers=cashier_headers).json["categories"] == ["Home", "Snacks"]
        sub = client.get("/api/products/categories/Snacks/subcategories", headers=cashier_headers).json
        assert sub["subcategories"] == ["Bars", "Chips"]


class TestLowStock:

    def test_threshold_is_inclusive_and_ordered(self, client, cashier_headers, make_product):
        make_product("SKU-1", "Zeta", quantity=10, min_stock=10)
        make_product("SKU-2", "Alpha", quantity=0, min_stock=5)
        make_product("SKU-3", "Plenty", quantity=11, min_stock=10)

        resp = client.get("/api/products/low-stock", headers=cashier_headers)

        assert [p["name"] for p in resp.json["items"]] == ["Alpha", "Zeta"]
        assert all(p["is_low_stock"] for p in resp.json["items"])

    def test_repeated_calls_are_identical(self, client, cashier_headers, make_product):
        make_product("SKU-1", "Zeta", quantity=1)
        make_product("SKU-2", "Alpha", quantity=2)

        first = client.get("/api/products/low-stock", headers=cashier_headers).json
        second = client.get("/api/products/low-stock", headers=cashier_headers).json
        assert first == second


class TestUpdateDeleteProduct:

    def test_patch_and_put(self, client, manager_headers, make_product):
        product = make_product("SKU-1", "Widget")
        resp = client.patch(f"/api/products/{product.id}", json={"selling_price": 12.5}, headers=manager_headers)
        assert resp.status_code == 200
        assert resp.json["selling_price"] == 12.5

        resp = client.put(f"/api/products/{product.id}", json={"is_active": False}, headers=manager_headers)
        assert resp.json["is_active"] is False

    def test_rename_to_existing_sku_is_409(self, client, manager_headers, make_product):
        make_product("SKU-1", "Widget")
        other = make_product("SKU-2", "Gadget")
        resp = client.patch(f"/api/products/{other.id}", json={"sku": "SKU-1"}, headers=manager_headers)
        assert resp.status_code == 409

    def test_keeping_own_sku_is_allowed(self, client, manager_headers, make_product):
        product = make_product("SKU-1", "Widget")
        resp = client.patch(f"/api/products/{product.id}", json={"sku": "SKU-1"}, headers=manager_headers)
        assert resp.status_code == 200

    def test_delete_unsold_product(self, client, manager_headers, make_product, db_session):
        product = make_product("SKU-1", "Widget")
        product_id = product.id
        resp = client.delete(f"/api/products/{product_id}", headers=manager_headers)
        assert resp.status_code == 200
        assert db_session.query(Product).filter_by(id=product_id).count() == 0

    def test_delete_sold_product_is_409(self, client, manager_headers, make_product):
        product = make_product("SKU-1", "Widget", quantity=5)
        client.post("/api/sales", json={
            "items": [{"product_id": product.id, "quantity": 1}],
            "payment_method": "cash",
        }, headers=manager_headers)

        resp = client.delete(f"/api/products/{product.id}", headers=manager_headers)
        assert resp.status_code == 409

    def test_max_stock_bounds(self, client, manager_headers, make_product):
        created = client.post("/api/products", json=_payload(min_stock=5, max_stock=50), headers=manager_headers)
        assert created.status_code == 201
        assert created.json["max_stock"] == 50

        below = client.post(
            "/api/products", json=_payload(sku="BEV-COF-002", name="Decaf", min_stock=5, max_stock=4),
            headers=manager_headers,
        )
        assert below.status_code == 400

        product = make_product("SKU-1", "Widget")
        resp = client.patch(f"/api/products/{product.id}", json={"max_stock": 3}, headers=manager_headers)
        assert resp.status_code == 400
        resp = client.patch(f"/api/products/{product.id}", json={"max_stock": -1}, headers=manager_headers)
        assert resp.status_code == 400


class TestStockRoute:

    def test_adjust_by_query(self, client, manager_headers, make_product):
        product = make_product("SKU-1", "Widget", quantity=5)
        resp = client.patch(
            f"/api/products/{product.id}/stock?quantity=3&operation=add", headers=manager_headers,
        )
        assert resp.status_code == 200
        assert resp.json["quantity"] == 8

    @pytest.mark.parametrize("body", [[1], "3", 7])
    def test_non_object_body_is_400(self, client, manager_headers, make_product, body):
        product = make_product("SKU-1", "Widget", quantity=5)
        resp = client.patch(f"/api/products/{product.id}/stock", json=body, headers=manager_headers)
        assert resp.status_code == 400
        assert "error" in resp.json
