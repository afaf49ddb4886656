# Overview: Monthly salary run: basic salary plus the commission balance, paid out of the ledger.

from __future__ import annotations

import re
from decimal import Decimal

from flask import current_app

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Employee, EmployeeSalary
from ..money import to_money
from ..time_utils import utcnow
from . import commission_service, notification_service
from .concurrency import run_with_retry, transaction
from .pagination import paginate


_PERIOD_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


def current_period() -> str:
    return utcnow().strftime("%Y-%m")


def calculate_monthly_commission(employee_id: int) -> Decimal:
    """Commission earned and not yet paid out: the ledger balance."""
    return commission_service.get_balance(employee_id)


def _salary_for(employee: Employee, period: str, actor_id: int | None) -> EmployeeSalary:
    basic_salary = to_money(employee.role.basic_salary)
    commission = calculate_monthly_commission(employee.id)

    salary = EmployeeSalary(
        employee_id=employee.id,
        period=period,
        basic_salary=basic_salary,
        sales_commission=commission,
        total_salary=to_money(basic_salary + commission),
        created_by=actor_id,
    )
    db.session.add(salary)
    db.session.flush()

    if commission > 0:
        commission_service.sub_commission(salary, commission, actor_id=actor_id)

    notification_service.notify_salary_report(salary)
    return salary


def generate_salaries(period: str | None = None, actor_id: int | None = None) -> list[EmployeeSalary]:
    """
    Pay every active employee with a role for the period.

    One transaction for the whole run. Employees who already have a salary
    row for the period are skipped, so a rerun only pays the ones missed.
    """
    period = period or current_period()
    if not _PERIOD_RE.match(period):
        raise ValidationError("period must be YYYY-MM")

    def _op():
        with transaction():
            paid = {
                employee_id
                for (employee_id,) in db.session.query(EmployeeSalary.employee_id)
                .filter(EmployeeSalary.period == period)
                .all()
            }
            employees = (
                db.session.query(Employee)
                .filter(Employee.deleted_at.is_(None), Employee.role_id.isnot(None))
                .order_by(Employee.id.asc())
                .all()
            )

            salaries = [
                _salary_for(employee, period, actor_id)
                for employee in employees
                if employee.id not in paid
            ]
        return salaries

    salaries = run_with_retry(_op)
    current_app.logger.info("Salary run %s: %d salaries generated", period, len(salaries))
    return salaries


def list_salaries(employee_id: int) -> list[EmployeeSalary]:
    return (
        db.session.query(EmployeeSalary)
        .filter_by(employee_id=employee_id)
        .order_by(EmployeeSalary.period.desc())
        .all()
    )


def get_salary(salary_uuid: str) -> EmployeeSalary:
    salary = db.session.query(EmployeeSalary).filter_by(uuid=salary_uuid).first()
    if salary is None:
        raise NotFoundError(f"Salary {salary_uuid} not found")
    return salary


def list_all_salaries(period: str | None = None, page: int | None = 1, per_page: int | None = 50) -> dict:
    """Salaries of every employee, newest period first; period narrows to one month."""
    q = db.session.query(EmployeeSalary)
    if period is not None:
        if not _PERIOD_RE.match(period):
            raise ValidationError("period must be YYYY-MM")
        q = q.filter(EmployeeSalary.period == period)
    return paginate(q.order_by(EmployeeSalary.period.desc(), EmployeeSalary.id.asc()), page, per_page)
