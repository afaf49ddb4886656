from __future__ import annotations

from decimal import Decimal, InvalidOperation

from sqlalchemy import func

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Coupon, Sale, SaleCoupon
from ..money import to_decimal, to_money
from ..time_utils import utcnow


def get_coupon(coupon_id: int) -> Coupon:
    coupon = db.session.query(Coupon).filter_by(id=coupon_id, deleted_at=None).first()
    if coupon is None:
        raise NotFoundError(f"Coupon {coupon_id} not found")
    return coupon


def get_coupon_by_uuid(coupon_uuid: str) -> Coupon:
    coupon = db.session.query(Coupon).filter_by(uuid=coupon_uuid, deleted_at=None).first()
    if coupon is None:
        raise NotFoundError(f"Coupon {coupon_uuid} not found")
    return coupon


def apply_discount(sale: Sale, coupon_id: int | None) -> SaleCoupon | None:
    """
    Attach a coupon to a sale and take its value as the sale discount.

    Records one usage row per (sale, coupon). Runs before the lines are
    totaled so calculate_sales sees the discount. Flush only.
    """
    if not coupon_id:
        return None

    coupon = get_coupon(coupon_id)

    sale.coupon_id = coupon.id
    if to_money(sale.discount) != to_money(coupon.value):
        sale.discount = to_money(coupon.value)

    usage = (
        db.session.query(SaleCoupon)
        .filter_by(sale_id=sale.id, coupon_id=coupon.id)
        .first()
    )
    if usage is None:
        usage = SaleCoupon(sale_id=sale.id, coupon_id=coupon.id)
        db.session.add(usage)

    db.session.flush()
    return usage


def remove_discount(sale: Sale) -> None:
    """Detach the sale's coupon and drop its usage row."""
    if sale.coupon_id is None:
        return
    (
        db.session.query(SaleCoupon)
        .filter_by(sale_id=sale.id, coupon_id=sale.coupon_id)
        .delete(synchronize_session="fetch")
    )
    sale.coupon_id = None
    db.session.flush()


def _parse_value(raw) -> Decimal:
    if raw is None or isinstance(raw, bool):
        raise ValidationError("value must be a number")
    try:
        value = to_money(raw)
    except (InvalidOperation, ValueError):
        raise ValidationError("value must be a number")
    if value < 0:
        raise ValidationError("value must be >= 0")
    return value


def list_coupons(search: str | None = None) -> list[Coupon]:
    q = db.session.query(Coupon).filter(Coupon.deleted_at.is_(None))
    if search:
        like = f"%{search}%"
        q = q.filter((Coupon.code.ilike(like)) | (Coupon.name.ilike(like)))
    return q.order_by(Coupon.created_at.desc(), Coupon.id.desc()).all()


def create_coupon(data: dict, actor_id: int | None = None) -> Coupon:
    code = (data.get("code") or "").strip()
    name = (data.get("name") or "").strip()
    if not code:
        raise ValidationError("code is required")
    if not name:
        raise ValidationError("name is required")
    if "value" not in data:
        raise ValidationError("value is required")

    if db.session.query(Coupon.id).filter_by(code=code).first() is not None:
        raise ConflictError(f"Coupon code {code} already exists")

    coupon = Coupon(
        code=code,
        name=name,
        value=_parse_value(data["value"]),
        created_by=actor_id,
        updated_by=actor_id,
    )
    db.session.add(coupon)
    db.session.commit()
    return coupon


def update_coupon(coupon_uuid: str, data: dict, actor_id: int | None = None) -> Coupon:
    coupon = get_coupon_by_uuid(coupon_uuid)

    if "code" in data:
        code = (data.get("code") or "").strip()
        if not code:
            raise ValidationError("code cannot be empty")
        clash = (
            db.session.query(Coupon.id)
            .filter(Coupon.code == code, Coupon.id != coupon.id)
            .first()
        )
        if clash is not None:
            raise ConflictError(f"Coupon code {code} already exists")
        coupon.code = code
    if "name" in data:
        name = (data.get("name") or "").strip()
        if not name:
            raise ValidationError("name cannot be empty")
        coupon.name = name
    if "value" in data:
        coupon.value = _parse_value(data["value"])

    coupon.updated_by = actor_id
    db.session.commit()
    return coupon


def delete_coupon(coupon_uuid: str, actor_id: int | None = None) -> bool:
    coupon = get_coupon_by_uuid(coupon_uuid)
    coupon.deleted_at = utcnow()
    coupon.updated_by = actor_id
    db.session.commit()
    return True


def get_coupon_usage(coupon_id: int) -> dict:
    """Usage count and total discount granted through successful sales."""
    coupon = db.session.query(Coupon).filter_by(id=coupon_id).first()
    if coupon is None:
        raise NotFoundError(f"Coupon {coupon_id} not found")

    used, discounted = (
        db.session.query(
            func.count(SaleCoupon.id),
            func.coalesce(func.sum(Sale.discount), 0),
        )
        .join(Sale, Sale.id == SaleCoupon.sale_id)
        .filter(
            SaleCoupon.coupon_id == coupon.id,
            Sale.status == "success",
            Sale.deleted_at.is_(None),
        )
        .one()
    )
    return {
        "coupon": coupon.to_dict(),
        "used_count": int(used or 0),
        "total_discount": str(to_money(to_decimal(discounted))),
    }


def most_used_coupons(limit: int = 10) -> list[dict]:
    used = func.count(SaleCoupon.id).label("used_count")
    rows = (
        db.session.query(Coupon, used)
        .join(SaleCoupon, SaleCoupon.coupon_id == Coupon.id)
        .join(Sale, Sale.id == SaleCoupon.sale_id)
        .filter(Sale.status == "success", Sale.deleted_at.is_(None))
        .group_by(Coupon.id)
        .order_by(used.desc(), Coupon.id.asc())
        .limit(limit)
        .all()
    )
    return [{**coupon.to_dict(), "used_count": int(count)} for coupon, count in rows]
