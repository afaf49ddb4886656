from __future__ import annotations

from uuid import uuid4

from ..extensions import db
from ..money import money_str
from ..time_utils import to_utc_z


class CommissionLog(db.Model):
    """
    Append-only per-employee commission ledger.

    TYPES:
    - 1 (add): earned from a successful sale
    - 2 (sub): reversed for a refunded sale, or paid out by a salary run

    SOURCE KINDS:
    - sale:   sale_id is set
    - salary: salary_id is set

    Balance = sum(add) - sum(sub). IMMUTABLE: never updated or deleted.
    """
    __tablename__ = "commission_logs"
    __table_args__ = (
        db.CheckConstraint("value > 0", name="ck_commission_logs_value_positive"),
        db.Index("ix_commission_logs_employee_created", "employee_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    TYPE_ADD = 1
    TYPE_SUB = 2

    SOURCE_SALE = "sale"
    SOURCE_SALARY = "salary"

    id = db.Column(db.Integer, primary_key=True)
    uuid = db.Column(db.String(36), nullable=False, unique=True, default=lambda: str(uuid4()))
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)

    type = db.Column(db.Integer, nullable=False)
    value = db.Column(db.Numeric(14, 2), nullable=False)
    description = db.Column(db.String(255), nullable=False)

    source_kind = db.Column(db.String(16), nullable=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)
    salary_id = db.Column(db.Integer, db.ForeignKey("employee_salaries.id"), nullable=True, index=True)

    created_by = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    employee = db.relationship(
        "Employee",
        foreign_keys=[employee_id],
        backref=db.backref("commission_logs", lazy=True),
    )
    sale = db.relationship("Sale", backref=db.backref("commission_logs", lazy=True))
    salary = db.relationship("EmployeeSalary", backref=db.backref("commission_logs", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "uuid": self.uuid,
            "employee_id": self.employee_id,
            "type": "add" if self.type == self.TYPE_ADD else "sub",
            "value": money_str(self.value),
            "description": self.description,
            "source_kind": self.source_kind,
            "sale_id": self.sale_id,
            "salary_id": self.salary_id,
            "created_at": to_utc_z(self.created_at),
        }


class EmployeeSalary(db.Model):
    """Monthly salary: role basic salary plus the commission balance paid out."""
    __tablename__ = "employee_salaries"
    __table_args__ = (
        db.UniqueConstraint("employee_id", "period", name="uq_employee_salaries_employee_period"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    uuid = db.Column(db.String(36), nullable=False, unique=True, default=lambda: str(uuid4()))
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)

    # "YYYY-MM"
    period = db.Column(db.String(7), nullable=False, index=True)

    basic_salary = db.Column(db.Numeric(14, 2), nullable=False)
    sales_commission = db.Column(db.Numeric(14, 2), nullable=False)
    total_salary = db.Column(db.Numeric(14, 2), nullable=False)

    created_by = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    employee = db.relationship(
        "Employee",
        foreign_keys=[employee_id],
        backref=db.backref("salaries", lazy=True),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "uuid": self.uuid,
            "employee_id": self.employee_id,
            "period": self.period,
            "basic_salary": money_str(self.basic_salary),
            "sales_commission": money_str(self.sales_commission),
            "total_salary": money_str(self.total_salary),
            "created_at": to_utc_z(self.created_at),
        }
