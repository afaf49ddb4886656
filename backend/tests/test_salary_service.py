"""
Monthly salary run tests.
"""

from decimal import Decimal

import pytest

from backoffice.errors import ValidationError
from backoffice.models import CommissionLog, EmployeeSalary, Notification
from backoffice.services import commission_service, salary_service, sales_service


def test_salary_pays_out_commission(db_session, cashier, item_x):
    sales_service.create_sale(
        {"status": "success", "cart": [{"item_id": item_x.id, "qty": 10, "price": "2000"}]},
        cashier.id,
    )

    salaries = salary_service.generate_salaries(period="2024-05")

    assert len(salaries) == 1
    salary = salaries[0]
    assert salary.employee_id == cashier.id
    assert salary.basic_salary == Decimal("500000.00")
    assert salary.sales_commission == Decimal("200.00")
    assert salary.total_salary == Decimal("500200.00")
    assert commission_service.get_balance(cashier.id) == Decimal("0.00")

    payout = db_session.query(CommissionLog).filter_by(type=CommissionLog.TYPE_SUB).one()
    assert payout.salary_id == salary.id
    assert db_session.query(Notification).filter_by(event="salary_report").count() == 1


def test_employee_without_commission_gets_basic_only(db_session, cashier):
    salary = salary_service.generate_salaries(period="2024-05")[0]

    assert salary.sales_commission == Decimal("0")
    assert salary.total_salary == Decimal("500000.00")
    assert db_session.query(CommissionLog).count() == 0


def test_rerun_skips_paid_employees(db_session, cashier, admin):
    assert len(salary_service.generate_salaries(period="2024-06")) == 2
    assert salary_service.generate_salaries(period="2024-06") == []
    assert db_session.query(EmployeeSalary).count() == 2


def test_default_period_is_current_month(db_session, cashier):
    salary = salary_service.generate_salaries()[0]
    assert salary.period == salary_service.current_period()


@pytest.mark.parametrize("period", ["2024-13", "2024-5", "May 2024", "2024/05"])
def test_rejects_bad_period(db_session, cashier, period):
    with pytest.raises(ValidationError):
        salary_service.generate_salaries(period=period)
    assert db_session.query(EmployeeSalary).count() == 0
