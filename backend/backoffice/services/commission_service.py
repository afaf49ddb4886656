# Overview: Service-layer operations for the employee commission ledger.

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import case, func

from ..errors import ValidationError
from ..extensions import db
from ..models import CommissionLog, EmployeeSalary, Sale
from ..money import ZERO, to_decimal, to_money
from .pagination import paginate
"""
Commission Ledger Invariants (authoritative)

- Append-only: rows are never updated or deleted.
- value is a positive magnitude; type (add/sub) carries the sign.
- Balance = SUM(add) - SUM(sub), computed from the log, never stored.
- The earned value is frozen at the time of the sale; later changes to a
  role's commission_percentage do not touch existing rows.
- Rows are written inside the caller's transaction (flush only).
"""


def compute_commission(sale: Sale) -> Decimal:
    role = sale.employee.role if sale.employee else None
    if role is None:
        return ZERO
    return to_money(to_decimal(sale.sub_total) * to_decimal(role.commission_percentage))


def add_commission(sale: Sale, *, actor_id: int | None = None) -> CommissionLog | None:
    """
    Credit the sale's employee with sub_total x role commission percentage.

    A zero value (no role, 0% role, empty sale) records nothing and
    returns None.
    """
    value = compute_commission(sale)
    if value <= 0:
        return None

    log = CommissionLog(
        employee_id=sale.employee_id,
        type=CommissionLog.TYPE_ADD,
        value=value,
        description=f"Earned commission from sales {sale.code}",
        source_kind=CommissionLog.SOURCE_SALE,
        sale_id=sale.id,
        created_by=actor_id,
    )
    db.session.add(log)
    db.session.flush()
    return log


def sub_commission(source: Sale | EmployeeSalary, value, *, actor_id: int | None = None) -> CommissionLog:
    """
    Debit commission from the employee tied to source.

    A Sale source reverses commission for a refunded sale; an
    EmployeeSalary source pays the balance out in a salary run.
    """
    value = to_money(value)
    if value <= 0:
        raise ValidationError("commission value must be > 0")

    if isinstance(source, Sale):
        log = CommissionLog(
            employee_id=source.employee_id,
            type=CommissionLog.TYPE_SUB,
            value=value,
            description=f"Cancelled commission for refunded sales {source.code}",
            source_kind=CommissionLog.SOURCE_SALE,
            sale_id=source.id,
            created_by=actor_id,
        )
    elif isinstance(source, EmployeeSalary):
        log = CommissionLog(
            employee_id=source.employee_id,
            type=CommissionLog.TYPE_SUB,
            value=value,
            description="Deducted commission due to monthly calculation",
            source_kind=CommissionLog.SOURCE_SALARY,
            salary_id=source.id,
            created_by=actor_id,
        )
    else:
        raise ValidationError(f"Unsupported commission source: {type(source).__name__}")

    db.session.add(log)
    db.session.flush()
    return log


def get_balance(employee_id: int) -> Decimal:
    signed = case(
        (CommissionLog.type == CommissionLog.TYPE_ADD, CommissionLog.value),
        else_=-CommissionLog.value,
    )
    total = (
        db.session.query(func.coalesce(func.sum(signed), 0))
        .filter(CommissionLog.employee_id == employee_id)
        .scalar()
    )
    return to_money(total) if total is not None else ZERO


def list_logs(employee_id: int | None = None, *, page: int | None = 1, per_page: int | None = 50) -> dict:
    q = db.session.query(CommissionLog)
    if employee_id is not None:
        q = q.filter(CommissionLog.employee_id == employee_id)
    return paginate(q.order_by(CommissionLog.id.desc()), page, per_page)
