# Overview: Service-layer operations for member loyalty points; balance and log move together.

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from flask import current_app
from sqlalchemy import case, func

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Member, MemberPointLog, Sale
from ..money import ZERO, to_decimal, to_money
from .concurrency import lock_for_update
from .pagination import paginate


def _lock_member(member_id: int) -> Member:
    member = lock_for_update(
        db.session.query(Member).filter_by(id=member_id, deleted_at=None)
    ).first()
    if member is None:
        raise NotFoundError(f"Member {member_id} not found")
    return member


def compute_points(sale: Sale) -> Decimal:
    rate = to_decimal(current_app.config.get("POINT_RATE", "0.01"))
    return to_money(to_decimal(sale.sub_total) * rate)


def add_point(sale: Sale, *, actor_id: int | None = None) -> MemberPointLog | None:
    """
    Credit the sale's member with sub_total x POINT_RATE.

    The member row is locked, the balance bumped and the log row added in
    one flush. Zero points record nothing.
    """
    if sale.member_id is None:
        return None

    point = compute_points(sale)
    if point <= 0:
        return None

    member = _lock_member(sale.member_id)
    member.point = to_money(member.point) + point

    log = MemberPointLog(
        member_id=member.id,
        sale_id=sale.id,
        type=MemberPointLog.TYPE_ADD,
        point=point,
        description=f"Earned points from sales {sale.code}",
        created_by=actor_id,
    )
    db.session.add(log)
    db.session.flush()
    return log


def sub_point(sale: Sale, point, *, actor_id: int | None = None) -> MemberPointLog:
    """Spend the member's points to pay for a sale. The balance may not go below zero."""
    if sale.member_id is None:
        raise ValidationError(f"Sale {sale.code} has no member")

    point = to_money(point)
    if point <= 0:
        raise ValidationError("point must be > 0")

    member = _lock_member(sale.member_id)
    balance = to_money(member.point)
    if point > balance:
        raise ValidationError(
            f"Member {member.code} has {balance} points, cannot use {point}"
        )
    member.point = balance - point

    log = MemberPointLog(
        member_id=member.id,
        sale_id=sale.id,
        type=MemberPointLog.TYPE_SUB,
        point=point,
        description=f"Used points to pay for sales {sale.code}",
        created_by=actor_id,
    )
    db.session.add(log)
    db.session.flush()
    return log


def get_ledger_balance(member_id: int) -> Decimal:
    """Balance recomputed from the log; always equals Member.point."""
    signed = case(
        (MemberPointLog.type == MemberPointLog.TYPE_ADD, MemberPointLog.point),
        else_=-MemberPointLog.point,
    )
    total = (
        db.session.query(func.coalesce(func.sum(signed), 0))
        .filter(MemberPointLog.member_id == member_id)
        .scalar()
    )
    return to_money(total) if total is not None else ZERO


def list_logs(
    member_id: int | None = None,
    *,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    page: int | None = 1,
    per_page: int | None = 50,
) -> dict:
    q = db.session.query(MemberPointLog)
    if member_id is not None:
        q = q.filter(MemberPointLog.member_id == member_id)
    if date_from is not None:
        q = q.filter(MemberPointLog.created_at >= date_from)
    if date_to is not None:
        q = q.filter(MemberPointLog.created_at <= date_to)

    return paginate(q.order_by(MemberPointLog.id.desc()), page, per_page)
