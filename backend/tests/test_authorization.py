"""
Authorization tests.

Verifies:
- Unauthenticated requests return 401
- Cashier role denied back office management (403)
- Admin role can manage the catalog but not employees
- Logout revokes the token
"""

import pytest

from conftest import TEST_PASSWORD, auth_headers


# =============================================================================
# UNAUTHENTICATED ACCESS - 401
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/sales"),
            ("POST", "/api/sales"),
            ("PUT", "/api/sales/some-uuid"),
            ("DELETE", "/api/sales/some-uuid"),
            ("GET", "/api/items"),
            ("POST", "/api/items"),
            ("GET", "/api/items/top-selling"),
            ("PUT", "/api/items/stock/some-uuid"),
            ("DELETE", "/api/items/categories/some-uuid"),
            ("GET", "/api/members"),
            ("GET", "/api/members/loyal"),
            ("GET", "/api/members/points"),
            ("GET", "/api/coupons"),
            ("GET", "/api/coupons/most-used"),
            ("GET", "/api/employees"),
            ("PUT", "/api/employees/some-uuid"),
            ("GET", "/api/employees/salaries"),
            ("GET", "/api/roles"),
            ("POST", "/api/roles"),
            ("GET", "/api/auth/me"),
            ("POST", "/api/auth/logout"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_garbage_token(self, client, db_session):
        resp = client.get("/api/sales", headers=auth_headers("not-a-token"))
        assert resp.status_code == 401

    def test_health_is_public(self, client, db_session, setup_roles):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json["status"] == "healthy"


class TestLogin:

    def test_login_returns_token_and_permissions(self, client, cashier):
        resp = client.post("/api/auth/login", json={"username": "cashier", "password": TEST_PASSWORD})

        assert resp.status_code == 200
        assert len(resp.json["token"]) == 64
        assert "MANAGE_SALES" in resp.json["permissions"]
        assert "MANAGE_EMPLOYEES" not in resp.json["permissions"]
        assert resp.json["expires_at"].endswith("Z")

    def test_login_by_email(self, client, cashier):
        resp = client.post("/api/auth/login", json={"email": cashier.email, "password": TEST_PASSWORD})
        assert resp.status_code == 200

    def test_wrong_password(self, client, cashier):
        resp = client.post("/api/auth/login", json={"username": "cashier", "password": "Wrong12345"})
        assert resp.status_code == 401

    def test_missing_fields(self, client, db_session):
        resp = client.post("/api/auth/login", json={"username": "cashier"})
        assert resp.status_code == 400

    def test_me(self, client, cashier_headers):
        resp = client.get("/api/auth/me", headers=cashier_headers)
        assert resp.status_code == 200
        assert resp.json["employee"]["username"] == "cashier"

    def test_logout_revokes_token(self, client, cashier_headers):
        assert client.post("/api/auth/logout", headers=cashier_headers).status_code == 200
        assert client.get("/api/auth/me", headers=cashier_headers).status_code == 401


# =============================================================================
# CASHIER DENIED MANAGEMENT - 403
# =============================================================================


class TestCashierDenied:
    """Cashier role can sell but cannot manage the back office."""

    def test_cannot_create_item(self, client, cashier_headers):
        resp = client.post("/api/items", json={"name": "X", "price": 1}, headers=cashier_headers)
        assert resp.status_code == 403
        assert resp.json["required_permission"] == "MANAGE_ITEMS"

    def test_cannot_create_coupon(self, client, cashier_headers):
        resp = client.post(
            "/api/coupons", json={"code": "FREE", "name": "Free", "value": 1000}, headers=cashier_headers
        )
        assert resp.status_code == 403

    def test_cannot_create_member(self, client, cashier_headers):
        resp = client.post("/api/members", json={"name": "M"}, headers=cashier_headers)
        assert resp.status_code == 403

    def test_cannot_view_reports(self, client, cashier_headers):
        assert client.get("/api/items/top-selling", headers=cashier_headers).status_code == 403
        assert client.get("/api/coupons/most-used", headers=cashier_headers).status_code == 403

    def test_cannot_manage_employees(self, client, cashier_headers):
        assert client.get("/api/employees", headers=cashier_headers).status_code == 403
        assert client.delete("/api/roles/some-uuid", headers=cashier_headers).status_code == 403

    def test_cannot_correct_stock_lots(self, client, cashier_headers, item_x):
        lot = item_x.stock_lots[0]
        resp = client.put(f"/api/items/stock/{lot.uuid}", json={"qty": 0}, headers=cashier_headers)
        assert resp.status_code == 403
        assert client.get(f"/api/items/stock/{lot.uuid}", headers=cashier_headers).status_code == 200

    def test_can_list_sales_and_items(self, client, cashier_headers):
        assert client.get("/api/sales", headers=cashier_headers).status_code == 200
        assert client.get("/api/items", headers=cashier_headers).status_code == 200


class TestAdminAccess:

    def test_can_manage_catalog(self, client, admin_headers):
        resp = client.post("/api/items", json={"name": "Kopi", "price": "12000"}, headers=admin_headers)
        assert resp.status_code == 201

    def test_cannot_manage_employees(self, client, admin_headers):
        assert client.get("/api/employees", headers=admin_headers).status_code == 403
        assert client.get("/api/roles", headers=admin_headers).status_code == 403
        assert client.get("/api/employees/commission", headers=admin_headers).status_code == 403

    def test_super_can_manage_employees(self, client, super_headers):
        assert client.get("/api/employees", headers=super_headers).status_code == 200
