from __future__ import annotations

import json

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import EmployeeSalary, Notification, Sale
from ..money import money_str


RECIPIENT_MEMBER = "member"
RECIPIENT_EMPLOYEE = "employee"

EVENT_SALE_REPORT = "sale_report"
EVENT_SALARY_REPORT = "salary_report"


def notify(recipient_kind: str, recipient_id: int, event: str, payload: dict | None = None) -> Notification | None:
    """
    Queue a message in the notification outbox.

    Fire-and-forget: a payload that cannot be serialized, or a row that
    cannot be written, is logged and dropped. The row is flushed inside a
    savepoint, so the surrounding sale or salary run carries on.
    """
    if not current_app.config.get("NOTIFICATIONS_ENABLED", True):
        return None

    try:
        body = json.dumps(payload or {}, sort_keys=True)
    except (TypeError, ValueError):
        current_app.logger.exception(
            "Failed to serialize %s notification for %s %s", event, recipient_kind, recipient_id
        )
        return None

    notification = Notification(
        recipient_kind=recipient_kind,
        recipient_id=recipient_id,
        event=event,
        payload=body,
    )
    nested = db.session.begin_nested()
    try:
        db.session.add(notification)
        db.session.flush()
        nested.commit()
    except SQLAlchemyError:
        nested.rollback()
        current_app.logger.exception(
            "Failed to queue %s notification for %s %s", event, recipient_kind, recipient_id
        )
        return None

    current_app.logger.info(
        "Queued %s notification for %s %s", event, recipient_kind, recipient_id
    )
    return notification


def notify_sale_report(sale: Sale) -> Notification | None:
    if sale.member_id is None:
        return None
    return notify(
        RECIPIENT_MEMBER,
        sale.member_id,
        EVENT_SALE_REPORT,
        {
            "sale_uuid": sale.uuid,
            "code": sale.code,
            "items": [
                {"name": line.item.name if line.item else None, "qty": line.qty, "sub_total": money_str(line.sub_total)}
                for line in sale.items
            ],
            "discount": money_str(sale.discount),
            "tax": money_str(sale.tax),
            "total": money_str(sale.total),
        },
    )


def notify_salary_report(salary: EmployeeSalary) -> Notification | None:
    return notify(
        RECIPIENT_EMPLOYEE,
        salary.employee_id,
        EVENT_SALARY_REPORT,
        {
            "period": salary.period,
            "basic_salary": money_str(salary.basic_salary),
            "sales_commission": money_str(salary.sales_commission),
            "total_salary": money_str(salary.total_salary),
        },
    )
