"""
API route tests: sales lifecycle over HTTP plus catalog, member,
coupon and employee endpoints.
"""

from decimal import Decimal

from backoffice.models import Member, Role
from backoffice.services import salary_service, stock_service


def _create_sale(client, headers, item, qty, status="hold", **extra):
    body = {"status": status, "cart": [{"item_id": item.id, "qty": qty, "price": "2000"}], **extra}
    return client.post("/api/sales", json=body, headers=headers)


class TestSalesRoutes:

    def test_create_success_sale(self, client, cashier_headers, item_x):
        resp = _create_sale(client, cashier_headers, item_x, 10, status="success")

        assert resp.status_code == 201
        sale = resp.json["sale"]
        assert sale["status"] == "success"
        assert sale["sub_total"] == "20000.00"
        assert sale["tax"] == "200.00"
        assert sale["total"] == "20200.00"
        assert sale["items"][0]["qty"] == 10
        assert sale["code"].startswith("SAL/")

    def test_hold_then_cancel(self, client, cashier_headers, item_x):
        sale = _create_sale(client, cashier_headers, item_x, 5).json["sale"]

        resp = client.put(f"/api/sales/{sale['uuid']}", json={"status": "canceled"}, headers=cashier_headers)

        assert resp.status_code == 200
        assert resp.json["sale"]["status"] == "canceled"
        assert stock_service.get_stock_count(item_x.id) == 200

    def test_update_terminal_sale_is_conflict(self, client, cashier_headers, item_x):
        sale = _create_sale(client, cashier_headers, item_x, 1, status="success").json["sale"]

        resp = client.put(f"/api/sales/{sale['uuid']}", json={"status": "canceled"}, headers=cashier_headers)

        assert resp.status_code == 409
        assert resp.json["details"]["status"] == "success"

    def test_insufficient_stock_is_conflict(self, client, cashier_headers, item_x):
        resp = _create_sale(client, cashier_headers, item_x, 201)

        assert resp.status_code == 409
        assert resp.json["error"] == "Stock of Item X is not enough only(200)"
        assert resp.json["details"]["items"][0]["available"] == 200

    def test_validation_error(self, client, cashier_headers):
        resp = client.post("/api/sales", json={"status": "hold", "cart": []}, headers=cashier_headers)
        assert resp.status_code == 400

    def test_unknown_item(self, client, cashier_headers, db_session):
        resp = client.post(
            "/api/sales", json={"cart": [{"item_id": 404, "qty": 1, "price": 1}]}, headers=cashier_headers
        )
        assert resp.status_code == 404

    def test_get_list_and_delete(self, client, cashier_headers, item_x):
        sale = _create_sale(client, cashier_headers, item_x, 2).json["sale"]

        assert client.get(f"/api/sales/{sale['uuid']}", headers=cashier_headers).json["sale"]["id"] == sale["id"]
        listing = client.get("/api/sales?status=hold", headers=cashier_headers).json
        assert listing["pagination"]["total"] == 1

        assert client.delete(f"/api/sales/{sale['uuid']}", headers=cashier_headers).status_code == 200
        assert client.get(f"/api/sales/{sale['uuid']}", headers=cashier_headers).status_code == 404

    def test_bad_status_filter(self, client, cashier_headers):
        assert client.get("/api/sales?status=refunded", headers=cashier_headers).status_code == 400


class TestItemRoutes:

    def test_create_with_initial_stock(self, client, admin_headers, category):
        resp = client.post(
            "/api/items",
            json={"name": "Teh", "price": "8000", "category_id": category.id, "stock": {"cogs": "5000", "qty": 12}},
            headers=admin_headers,
        )

        assert resp.status_code == 201
        item = resp.json["item"]
        assert item["code"].startswith("ITM/")
        stock = client.get(f"/api/items/{item['uuid']}/stock", headers=admin_headers).json
        assert stock["stock_count"] == 12
        assert len(stock["lots"]) == 1

    def test_negative_price_rejected(self, client, admin_headers):
        resp = client.post("/api/items", json={"name": "Bad", "price": "-1"}, headers=admin_headers)
        assert resp.status_code == 400

    def test_receive_stock(self, client, admin_headers, item_x):
        resp = client.post(
            f"/api/items/{item_x.uuid}/stock", json={"cogs": "4900", "qty": 30}, headers=admin_headers
        )
        assert resp.status_code == 201
        assert stock_service.get_stock_count(item_x.id) == 230

    def test_movement_history(self, client, admin_headers, cashier_headers, item_x):
        sale = _create_sale(client, cashier_headers, item_x, 4).json["sale"]
        client.put(f"/api/sales/{sale['uuid']}", json={"status": "canceled"}, headers=cashier_headers)

        resp = client.get(f"/api/items/{item_x.uuid}/movements", headers=admin_headers)

        assert resp.status_code == 200
        kinds = [(m["direction"], m["source_kind"], m["qty"]) for m in resp.json["movements"]]
        assert kinds == [("add", "rollback", 4), ("deduct", "sale_item", 4), ("add", "restock", 200)]

    def test_update_and_delete(self, client, admin_headers, item_x):
        resp = client.put(f"/api/items/{item_x.uuid}", json={"price": "2500"}, headers=admin_headers)
        assert resp.json["item"]["price"] == "2500.00"

        assert client.delete(f"/api/items/{item_x.uuid}", headers=admin_headers).status_code == 200
        assert client.get(f"/api/items/{item_x.uuid}", headers=admin_headers).status_code == 404

    def test_reports(self, client, admin_headers, cashier_headers, item_x, item_y):
        _create_sale(client, cashier_headers, item_x, 3, status="success")
        client.post(
            "/api/sales",
            json={"status": "success", "cart": [{"item_id": item_y.id, "qty": 13, "price": "150"}]},
            headers=cashier_headers,
        )

        top = client.get("/api/items/top-selling", headers=admin_headers).json["items"]
        assert [row["sold_qty"] for row in top] == [13, 3]

        empty = client.get("/api/items/out-of-stock", headers=admin_headers).json["items"]
        assert [row["id"] for row in empty] == [item_y.id]

    def test_category_crud_and_items(self, client, admin_headers, category, item_x):
        path = f"/api/items/categories/{category.uuid}"
        assert client.get(path, headers=admin_headers).json["category"]["name"] == "Beverages"

        client.post("/api/items/categories", json={"name": "Snacks"}, headers=admin_headers)
        assert client.put(path, json={"name": "Snacks"}, headers=admin_headers).status_code == 409
        assert client.put(path, json={"name": " "}, headers=admin_headers).status_code == 400
        renamed = client.put(path, json={"name": "Drinks"}, headers=admin_headers)
        assert renamed.json["category"]["name"] == "Drinks"

        listing = client.get(f"{path}/items", headers=admin_headers).json
        assert listing["category"]["name"] == "Drinks"
        assert [row["id"] for row in listing["items"]] == [item_x.id]

        # Still holds Item X
        assert client.delete(path, headers=admin_headers).status_code == 409

        client.delete(f"/api/items/{item_x.uuid}", headers=admin_headers)
        assert client.delete(path, headers=admin_headers).status_code == 200
        assert client.get(path, headers=admin_headers).status_code == 404
        assert client.get(f"{path}/items", headers=admin_headers).status_code == 404

    def test_correct_stock_lot(self, client, admin_headers, item_x):
        lot = item_x.stock_lots[0]
        path = f"/api/items/stock/{lot.uuid}"

        resp = client.put(path, json={"cogs": "4800", "qty": 150}, headers=admin_headers)

        assert resp.status_code == 200
        assert resp.json["lot"]["cogs"] == "4800.00"
        assert resp.json["lot"]["qty"] == 150
        assert stock_service.get_stock_count(item_x.id) == 150
        movements = client.get(f"/api/items/{item_x.uuid}/movements", headers=admin_headers).json["movements"]
        kinds = [(m["direction"], m["source_kind"], m["qty"]) for m in movements]
        assert kinds == [("deduct", "adjustment", 50), ("add", "restock", 200)]

        raised = client.put(path, json={"qty": 160}, headers=admin_headers)
        assert raised.json["lot"]["qty"] == 160
        assert client.get(path, headers=admin_headers).json["lot"]["qty"] == 160

    def test_bad_lot_corrections(self, client, admin_headers, item_x):
        path = f"/api/items/stock/{item_x.stock_lots[0].uuid}"

        assert client.put(path, json={"qty": -1}, headers=admin_headers).status_code == 400
        assert client.put(path, json={"qty": 1.5}, headers=admin_headers).status_code == 400
        assert client.put(path, json={"cogs": None}, headers=admin_headers).status_code == 400
        assert client.put(path, json={"item_id": 2}, headers=admin_headers).status_code == 400
        assert client.get("/api/items/stock/missing", headers=admin_headers).status_code == 404
        assert stock_service.get_stock_count(item_x.id) == 200

    def test_write_off_lot_then_cancel_sale(self, client, admin_headers, cashier_headers, item_x):
        sale = _create_sale(client, cashier_headers, item_x, 4).json["sale"]
        lot_uuid = item_x.stock_lots[0].uuid

        resp = client.delete(f"/api/items/stock/{lot_uuid}", headers=admin_headers)

        assert resp.status_code == 200
        assert resp.json["lot"]["qty"] == 0
        assert stock_service.get_stock_count(item_x.id) == 0

        # The held line still owns its 4 units and gets them back
        client.put(f"/api/sales/{sale['uuid']}", json={"status": "canceled"}, headers=cashier_headers)
        assert stock_service.get_stock_count(item_x.id) == 4
        assert client.get(f"/api/items/stock/{lot_uuid}", headers=admin_headers).json["lot"]["qty"] == 4


class TestMemberRoutes:

    def test_create_member(self, client, admin_headers):
        resp = client.post("/api/members", json={"name": "Budi", "phone_no": "0812"}, headers=admin_headers)

        assert resp.status_code == 201
        assert resp.json["member"]["point"] == "0.00"
        assert resp.json["member"]["code"].startswith("MBR/")

    def test_point_is_not_writable(self, client, admin_headers):
        resp = client.post("/api/members", json={"name": "Budi", "point": 999}, headers=admin_headers)
        assert resp.status_code == 400

    def test_point_history(self, client, admin_headers, cashier_headers, member, item_x):
        _create_sale(client, cashier_headers, item_x, 10, status="success", member_id=member.id)

        resp = client.get(f"/api/members/{member.uuid}/points", headers=admin_headers)

        assert resp.status_code == 200
        assert resp.json["member"]["point"] == "200.00"
        assert resp.json["items"][0]["description"].startswith("Earned points from sales SAL/")

    def test_bad_date_filter(self, client, admin_headers, member):
        resp = client.get(f"/api/members/{member.uuid}/points?date_from=yesterday", headers=admin_headers)
        assert resp.status_code == 400

    def test_loyal_members(self, client, admin_headers, cashier_headers, member, item_x):
        _create_sale(client, cashier_headers, item_x, 1, status="success", member_id=member.id)
        _create_sale(client, cashier_headers, item_x, 1, status="hold", member_id=member.id)

        loyal = client.get("/api/members/loyal", headers=admin_headers).json["members"]
        assert loyal[0]["sales_count"] == 1

    def test_all_point_logs(self, client, admin_headers, cashier_headers, db_session, member, item_x):
        other = Member(code="MBR/TEST/1", name="John Member", point=0)
        db_session.add(other)
        db_session.commit()
        _create_sale(client, cashier_headers, item_x, 10, status="success", member_id=member.id)
        _create_sale(client, cashier_headers, item_x, 5, status="success", member_id=other.id)

        resp = client.get("/api/members/points", headers=admin_headers)

        assert resp.status_code == 200
        assert resp.json["pagination"]["total"] == 2
        assert [row["member_id"] for row in resp.json["items"]] == [other.id, member.id]
        assert client.get("/api/members/points?date_to=soon", headers=admin_headers).status_code == 400

    def test_delete_member(self, client, admin_headers, db_session, member):
        assert client.delete(f"/api/members/{member.uuid}", headers=admin_headers).status_code == 200
        db_session.expire_all()
        assert db_session.get(Member, member.id).deleted_at is not None


class TestCouponRoutes:

    def test_crud(self, client, admin_headers):
        resp = client.post(
            "/api/coupons", json={"code": "DISC10", "name": "Diskon", "value": "10000"}, headers=admin_headers
        )
        assert resp.status_code == 201
        coupon_uuid = resp.json["coupon"]["uuid"]

        dup = client.post(
            "/api/coupons", json={"code": "DISC10", "name": "Again", "value": "1"}, headers=admin_headers
        )
        assert dup.status_code == 409

        updated = client.put(f"/api/coupons/{coupon_uuid}", json={"value": "7500"}, headers=admin_headers)
        assert updated.json["coupon"]["value"] == "7500.00"

        assert client.delete(f"/api/coupons/{coupon_uuid}", headers=admin_headers).status_code == 200
        assert client.get(f"/api/coupons/{coupon_uuid}", headers=admin_headers).status_code == 404

    def test_null_value_rejected(self, client, admin_headers, coupon):
        resp = client.post(
            "/api/coupons", json={"code": "NULL0", "name": "Nothing", "value": None}, headers=admin_headers
        )
        assert resp.status_code == 400

        resp = client.put(f"/api/coupons/{coupon.uuid}", json={"value": None}, headers=admin_headers)
        assert resp.status_code == 400
        assert client.get(f"/api/coupons/{coupon.uuid}", headers=admin_headers).json["coupon"]["value"] == "5000.00"

    def test_usage_report(self, client, admin_headers, cashier_headers, coupon, item_x):
        _create_sale(client, cashier_headers, item_x, 10, status="success", coupon_id=coupon.id)

        usage = client.get(f"/api/coupons/{coupon.uuid}/usage", headers=admin_headers).json
        assert usage["used_count"] == 1
        assert Decimal(usage["total_discount"]) == Decimal("5000")

        most_used = client.get("/api/coupons/most-used", headers=admin_headers).json["coupons"]
        assert most_used[0]["code"] == coupon.code


class TestEmployeeRoutes:

    def test_create_employee(self, client, super_headers):
        resp = client.post(
            "/api/employees",
            json={
                "name": "New Cashier",
                "username": "newbie",
                "email": "newbie@backoffice.test",
                "password": "Password123",
                "role": "cashier",
            },
            headers=super_headers,
        )

        assert resp.status_code == 201
        assert resp.json["employee"]["code"].startswith("EMP/")
        assert "password_hash" not in resp.json["employee"]

    def test_weak_password(self, client, super_headers):
        resp = client.post(
            "/api/employees",
            json={"name": "W", "username": "weak", "email": "weak@backoffice.test", "password": "short", "role": "cashier"},
            headers=super_headers,
        )
        assert resp.status_code == 400

    def test_duplicate_username(self, client, super_headers, cashier):
        resp = client.post(
            "/api/employees",
            json={
                "name": "Dup",
                "username": "cashier",
                "email": "other@backoffice.test",
                "password": "Password123",
                "role": "cashier",
            },
            headers=super_headers,
        )
        assert resp.status_code == 409

    def test_commission_and_salaries(self, client, super_headers, cashier_headers, cashier, item_x):
        _create_sale(client, cashier_headers, item_x, 10, status="success")

        commission = client.get(f"/api/employees/{cashier.uuid}/commission", headers=super_headers).json
        assert commission["balance"] == "200.00"
        assert commission["items"][0]["description"].startswith("Earned commission from sales SAL/")

        sales = client.get(f"/api/employees/{cashier.uuid}/sales", headers=super_headers).json
        assert sales["pagination"]["total"] == 1

        salaries = client.get(f"/api/employees/{cashier.uuid}/salaries", headers=super_headers).json
        assert salaries["count"] == 0

    def test_update_employee(self, client, super_headers, cashier, admin):
        path = f"/api/employees/{cashier.uuid}"

        resp = client.put(path, json={"name": "Promoted", "role": "admin"}, headers=super_headers)

        assert resp.status_code == 200
        assert resp.json["employee"]["name"] == "Promoted"
        assert resp.json["employee"]["role"] == "admin"

        assert client.put(path, json={"username": admin.username}, headers=super_headers).status_code == 409
        assert client.put(path, json={"role": "janitor"}, headers=super_headers).status_code == 404
        assert client.put(path, json={"code": "EMP/X"}, headers=super_headers).status_code == 400
        assert client.put(path, json={"password": "short"}, headers=super_headers).status_code == 400

    def test_password_change_signs_out(self, client, super_headers, cashier_headers, cashier):
        resp = client.put(
            f"/api/employees/{cashier.uuid}", json={"password": "NewPassword456"}, headers=super_headers
        )

        assert resp.status_code == 200
        assert client.get("/api/auth/me", headers=cashier_headers).status_code == 401
        login = client.post("/api/auth/login", json={"username": cashier.username, "password": "NewPassword456"})
        assert login.status_code == 200

    def test_delete_employee(self, client, super_headers, cashier_headers, cashier, super_employee):
        assert client.delete(f"/api/employees/{cashier.uuid}", headers=super_headers).status_code == 200

        assert client.get(f"/api/employees/{cashier.uuid}", headers=super_headers).status_code == 404
        assert client.get("/api/auth/me", headers=cashier_headers).status_code == 401

        own = client.delete(f"/api/employees/{super_employee.uuid}", headers=super_headers)
        assert own.status_code == 409

    def test_all_commission_and_salaries(self, client, super_headers, cashier_headers, cashier, item_x):
        _create_sale(client, cashier_headers, item_x, 10, status="success")

        commission = client.get("/api/employees/commission", headers=super_headers).json
        assert commission["pagination"]["total"] == 1
        assert commission["items"][0]["employee_id"] == cashier.id

        salary_service.generate_salaries(period="2030-01")
        salaries = client.get("/api/employees/salaries?period=2030-01", headers=super_headers).json
        assert salaries["pagination"]["total"] == 2
        assert client.get("/api/employees/salaries?period=2030-02", headers=super_headers).json["count"] == 0
        assert client.get("/api/employees/salaries?period=January", headers=super_headers).status_code == 400

        salary_uuid = salaries["items"][0]["uuid"]
        salary = client.get(f"/api/employees/salaries/{salary_uuid}", headers=super_headers)
        assert salary.json["salary"]["period"] == "2030-01"
        assert client.get("/api/employees/salaries/missing", headers=super_headers).status_code == 404


class TestRoleRoutes:

    def test_crud(self, client, super_headers):
        resp = client.post(
            "/api/roles",
            json={"name": "supervisor", "basic_salary": "750000", "commission_percentage": "0.025"},
            headers=super_headers,
        )
        assert resp.status_code == 201
        role = resp.json["role"]
        assert role["basic_salary"] == "750000.00"
        assert Decimal(role["commission_percentage"]) == Decimal("0.025")

        names = [r["name"] for r in client.get("/api/roles", headers=super_headers).json["items"]]
        assert names == ["admin", "cashier", "super", "supervisor"]

        path = f"/api/roles/{role['uuid']}"
        updated = client.put(path, json={"basic_salary": "800000", "description": "Floor lead"}, headers=super_headers)
        assert updated.json["role"]["basic_salary"] == "800000.00"
        assert updated.json["role"]["description"] == "Floor lead"

        assert client.delete(path, headers=super_headers).status_code == 200
        assert client.get(path, headers=super_headers).status_code == 404

    def test_invalid_roles(self, client, super_headers):
        base = {"name": "lead", "basic_salary": "100"}
        bad = [
            {**base},
            {**base, "commission_percentage": "1.5"},
            {**base, "commission_percentage": "-0.01"},
            {**base, "commission_percentage": "0.00001"},
            {**base, "commission_percentage": None},
            {**base, "basic_salary": "-1", "commission_percentage": "0.01"},
            {"basic_salary": "100", "commission_percentage": "0.01"},
        ]
        for body in bad:
            assert client.post("/api/roles", json=body, headers=super_headers).status_code == 400, body

        dup = client.post(
            "/api/roles", json={"name": "cashier", "basic_salary": "1", "commission_percentage": "0"}, headers=super_headers
        )
        assert dup.status_code == 409

    def test_role_in_use_cannot_be_deleted(self, client, super_headers, db_session, cashier):
        role_uuid = db_session.query(Role).filter_by(name="cashier").one().uuid
        assert client.delete(f"/api/roles/{role_uuid}", headers=super_headers).status_code == 409

    def test_new_rate_drives_commission(self, client, super_headers, cashier_headers, db_session, cashier, item_x):
        role_uuid = db_session.query(Role).filter_by(name="cashier").one().uuid
        resp = client.put(f"/api/roles/{role_uuid}", json={"commission_percentage": "0.05"}, headers=super_headers)
        assert resp.status_code == 200

        _create_sale(client, cashier_headers, item_x, 10, status="success")

        commission = client.get(f"/api/employees/{cashier.uuid}/commission", headers=super_headers).json
        assert commission["balance"] == "1000.00"
