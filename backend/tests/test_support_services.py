"""
Code allocation, notification outbox and CLI tests.
"""

from decimal import Decimal

from backoffice.models import Employee, Member, Notification, StockLot
from backoffice.services import commission_service, notification_service, sales_service
from backoffice.services.code_service import generate_code


class TestCodes:

    def test_sequence_per_tag_and_year(self, db_session):
        assert generate_code("SAL", year=2024) == "SAL/2024/0"
        assert generate_code("SAL", year=2024) == "SAL/2024/1"
        assert generate_code("SAL", year=2025) == "SAL/2025/0"
        assert generate_code("MBR", year=2024) == "MBR/2024/0"


class TestNotifications:

    def test_disabled_outbox_queues_nothing(self, app, db_session):
        app.config["NOTIFICATIONS_ENABLED"] = False
        try:
            assert notification_service.notify("member", 1, "sale_report", {"total": "1.00"}) is None
        finally:
            app.config["NOTIFICATIONS_ENABLED"] = True
        assert db_session.query(Notification).count() == 0

    def test_unserializable_payload_is_dropped(self, db_session):
        assert notification_service.notify("member", 1, "sale_report", {"total": Decimal("1")}) is None
        assert db_session.query(Notification).count() == 0

    def test_failed_outbox_write_keeps_the_sale(self, db_session, monkeypatch, cashier, member, item_x):
        # recipient_kind is NOT NULL, so the outbox insert fails on flush
        monkeypatch.setattr(notification_service, "RECIPIENT_MEMBER", None)

        sale = sales_service.create_sale(
            {"status": "success", "member_id": member.id, "cart": [{"item_id": item_x.id, "qty": 10, "price": "2000"}]},
            cashier.id,
        )

        assert sale.status == "success"
        assert db_session.query(Notification).count() == 0
        db_session.expire_all()
        assert db_session.get(Member, member.id).point == Decimal("200.00")
        assert commission_service.get_balance(cashier.id) == Decimal("200.00")


class TestCli:

    def test_system_init(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["system", "init", "--password", "Password123"])

        assert result.exit_code == 0, result.output
        assert "PASS Created employee: super" in result.output
        assert db_session.query(Employee).filter_by(username="super").one().role.name == "super"

        again = runner.invoke(args=["system", "init"])
        assert "already exists" in again.output

    def test_receive_stock(self, app, db_session, item_x):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["stock", "receive", item_x.code, "--qty", "10", "--cogs", "4500"])

        assert result.exit_code == 0, result.output
        assert db_session.query(StockLot).filter_by(item_id=item_x.id).count() == 2

    def test_salary_rejects_bad_period(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["salary", "generate", "--period", "May"])
        assert result.exit_code == 2
        assert "period must be YYYY-MM" in result.output
