"""
Supplier API tests.
"""


class TestSuppliersApi:

    def test_create_and_fetch(self, client, manager_headers):
        resp = client.post("/api/suppliers", json={
            "name": "Contoso Wholesale",
            "contact_name": "Ravi Patel",
            "email": "sales@contoso.test",
        }, headers=manager_headers)
        assert resp.status_code == 201

        fetched = client.get(f"/api/suppliers/{resp.json['id']}", headers=manager_headers)
        assert fetched.json["contact_name"] == "Ravi Patel"
        assert fetched.json["is_active"] is True

    def test_duplicate_name_is_409(self, client, manager_headers, supplier):
        resp = client.post("/api/suppliers", json={"name": "Northwind Traders"}, headers=manager_headers)
        assert resp.status_code == 409

    def test_name_required(self, client, manager_headers):
        resp = client.post("/api/suppliers", json={"email": "x@y.test"}, headers=manager_headers)
        assert resp.status_code == 400

    def test_inactive_hidden_by_default(self, client, manager_headers, supplier):
        resp = client.patch(f"/api/suppliers/{supplier.id}", json={"is_active": False}, headers=manager_headers)
        assert resp.status_code == 200

        assert client.get("/api/suppliers", headers=manager_headers).json["count"] == 0
        listed = client.get("/api/suppliers?include_inactive=true", headers=manager_headers).json
        assert [s["name"] for s in listed["items"]] == ["Northwind Traders"]

    def test_unknown_and_malformed_ids(self, client, cashier_headers):
        assert client.get("/api/suppliers/999999", headers=cashier_headers).status_code == 404
        assert client.get("/api/suppliers/abc", headers=cashier_headers).status_code == 400
