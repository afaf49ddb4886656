"""
Sales Service - order lifecycle and the side effects of finalising a sale

LIFECYCLE:
- create: new order as hold (cart reserved) or success (finalised at once)
- update: only hold orders change; hold -> hold edits the cart,
  hold -> success finalises, hold -> canceled returns all stock
- destroy: soft delete, no ledger effects

Every create/update is one transaction. Stock, commission, points, coupon
usage and the card payment row are all written inside it or not at all.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from flask import current_app
from sqlalchemy.orm import selectinload

from ..errors import InsufficientStockError, InvalidStateTransition, NotFoundError, ValidationError
from ..extensions import db
from ..models import Employee, Item, Member, Sale, SaleCardPayment, SaleItem
from ..money import ZERO, to_decimal, to_money
from ..time_utils import utcnow
from ..validation import parse_int, parse_money
from . import commission_service, coupon_service, notification_service, point_service, stock_service
from .code_service import generate_code
from .concurrency import lock_for_update, run_with_retry, transaction
from .pagination import paginate


HOLD = "hold"
SUCCESS = "success"
CANCELED = "canceled"

CREATE_STATUSES = {HOLD, SUCCESS}
UPDATE_STATUSES = {HOLD, SUCCESS, CANCELED}


@dataclass(frozen=True)
class CartLine:
    item_id: int
    qty: int
    price: Decimal

    @property
    def sub_total(self) -> Decimal:
        return to_money(self.price * self.qty)


@dataclass
class SalePayload:
    status: str
    member_id: int | None = None
    coupon_id: int | None = None
    discount: Decimal = ZERO
    cart: list[CartLine] | None = None
    card_no: str | None = None
    provided: frozenset = field(default_factory=frozenset)


def parse_cart(raw) -> list[CartLine]:
    """
    Validate cart lines and merge duplicates.

    A repeated item_id becomes one line: quantities are summed and the
    first price wins. Line totals are never taken from the caller.
    """
    if not isinstance(raw, list) or not raw:
        raise ValidationError("cart must be a non-empty list")

    merged: dict[int, CartLine] = {}
    for index, entry in enumerate(raw):
        if not isinstance(entry, dict):
            raise ValidationError(f"cart[{index}] must be an object")
        if "item_id" not in entry:
            raise ValidationError(f"cart[{index}].item_id is required")

        item_id = parse_int(entry["item_id"], f"cart[{index}].item_id")
        qty = parse_int(entry.get("qty"), f"cart[{index}].qty")
        if qty <= 0:
            raise ValidationError(f"cart[{index}].qty must be > 0")
        price = parse_money(entry.get("price"), f"cart[{index}].price")

        if item_id in merged:
            first = merged[item_id]
            merged[item_id] = CartLine(item_id=item_id, qty=first.qty + qty, price=first.price)
        else:
            merged[item_id] = CartLine(item_id=item_id, qty=qty, price=price)

    return list(merged.values())


def _parse_card_no(raw) -> str | None:
    if raw is None or raw == "":
        return None
    digits = "".join(ch for ch in str(raw) if not ch.isspace() and ch != "-")
    if not digits.isdigit() or len(digits) < 4 or len(digits) > 19:
        raise ValidationError("card_no must be 4-19 digits")
    return digits


def mask_card_no(card_no: str) -> str:
    return "*" * (len(card_no) - 4) + card_no[-4:]


def parse_sale_payload(data: dict, *, allowed_statuses: set[str], require_cart: bool) -> SalePayload:
    """
    Turn a request body into a SalePayload.

    sub_total, tax and total are accepted but ignored: they are always
    recomputed from the lines.
    """
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")

    status = data.get("status") or HOLD
    if not isinstance(status, str) or status.strip().lower() not in allowed_statuses:
        raise ValidationError(
            f"status must be one of: {', '.join(sorted(allowed_statuses))}",
        )
    status = status.strip().lower()

    payload = SalePayload(status=status, provided=frozenset(data.keys()))

    if data.get("member_id") is not None:
        payload.member_id = parse_int(data["member_id"], "member_id")
    if data.get("coupon_id") is not None:
        payload.coupon_id = parse_int(data["coupon_id"], "coupon_id")
    if data.get("discount") is not None:
        payload.discount = parse_money(data["discount"], "discount")

    if status != CANCELED:
        if "cart" in data or require_cart:
            payload.cart = parse_cart(data.get("cart"))

    payload.card_no = _parse_card_no(data.get("card_no"))
    return payload


def _get_employee(employee_id: int) -> Employee:
    employee = db.session.query(Employee).filter_by(id=employee_id, deleted_at=None).first()
    if employee is None:
        raise NotFoundError(f"Employee {employee_id} not found")
    return employee


def _get_member(member_id: int) -> Member:
    member = db.session.query(Member).filter_by(id=member_id, deleted_at=None).first()
    if member is None:
        raise NotFoundError(f"Member {member_id} not found")
    return member


def _load_items(cart: list[CartLine]) -> dict[int, Item]:
    ids = [line.item_id for line in cart]
    items = {
        item.id: item
        for item in db.session.query(Item).filter(Item.id.in_(ids), Item.deleted_at.is_(None)).all()
    }
    missing = [item_id for item_id in ids if item_id not in items]
    if missing:
        raise NotFoundError(
            f"Item {missing[0]} not found",
        )
    return items


def _check_stock(sale: Sale, cart: list[CartLine], items: dict[int, Item]) -> None:
    """
    Every line must be coverable before anything is deducted.

    New lines need their full quantity; existing lines only the increase.
    """
    existing = {line.item_id: line for line in sale.items}
    shortages = []
    for cart_line in cart:
        current = existing.get(cart_line.item_id)
        needed = cart_line.qty - (current.qty if current else 0)
        if needed <= 0:
            continue
        available = stock_service.get_stock_count(cart_line.item_id)
        if available < needed:
            shortages.append({
                "item_id": cart_line.item_id,
                "name": items[cart_line.item_id].name,
                "requested": needed,
                "available": available,
            })

    if shortages:
        first = shortages[0]
        raise InsufficientStockError(
            f"Stock of {first['name']} is not enough only({first['available']})",
            details={"items": shortages},
        )


def _sync_sale_items(sale: Sale, cart: list[CartLine], actor_id: int | None) -> None:
    """
    Make the sale's lines match the cart, moving stock for the difference.

    Removed lines give back everything they drew; changed quantities
    deduct or release only the delta.
    """
    items = _load_items(cart)
    _check_stock(sale, cart, items)

    wanted = {cart_line.item_id: cart_line for cart_line in cart}
    existing = {line.item_id: line for line in sale.items}

    for item_id, line in existing.items():
        if item_id not in wanted:
            stock_service.rollback(line)
            sale.items.remove(line)
    db.session.flush()

    for cart_line in cart:
        line = existing.get(cart_line.item_id)
        if line is None:
            line = SaleItem(
                item=items[cart_line.item_id],
                qty=cart_line.qty,
                price=cart_line.price,
                sub_total=cart_line.sub_total,
                created_by=actor_id,
                updated_by=actor_id,
            )
            sale.items.append(line)
            db.session.flush()
            stock_service.deduct_stock(cart_line.item_id, cart_line.qty, line)
            continue

        delta = cart_line.qty - line.qty
        if delta > 0:
            stock_service.deduct_stock(cart_line.item_id, delta, line)
        elif delta < 0:
            stock_service.release_stock(line, -delta)

        line.qty = cart_line.qty
        line.price = cart_line.price
        line.sub_total = cart_line.sub_total
        line.updated_by = actor_id

    db.session.flush()


def calculate_sales(sale: Sale) -> Sale:
    """
    sub_total = sum(line sub_totals) - discount
    tax       = sub_total x TAX_RATE
    total     = sub_total + tax
    """
    lines_total = sum((to_decimal(line.sub_total) for line in sale.items), ZERO)
    discount = to_money(sale.discount)
    if discount > lines_total:
        raise ValidationError(
            f"discount {discount} exceeds the cart total {to_money(lines_total)}",
        )

    rate = to_decimal(current_app.config.get("TAX_RATE", "0.01"))
    sub_total = to_money(lines_total - discount)
    tax = to_money(sub_total * rate)

    sale.discount = discount
    sale.sub_total = sub_total
    sale.tax = tax
    sale.total = to_money(sub_total + tax)
    db.session.flush()
    return sale


def process_after_sales(sale: Sale, card_no: str | None = None, actor_id: int | None = None) -> None:
    """Points and member report, card payment, then the employee's commission."""
    if sale.member_id is not None:
        point_service.add_point(sale, actor_id=actor_id)
        notification_service.notify_sale_report(sale)

    if card_no:
        db.session.add(SaleCardPayment(sale_id=sale.id, card_no=mask_card_no(card_no), created_by=actor_id))

    commission_service.add_commission(sale, actor_id=actor_id)
    db.session.flush()

    current_app.logger.info("Sale %s finalised: total=%s", sale.code, sale.total)


def _apply_header(sale: Sale, payload: SalePayload) -> None:
    """Member, coupon and discount for an update; keys left out keep their values."""
    if "member_id" in payload.provided:
        if payload.member_id is not None:
            _get_member(payload.member_id)
        sale.member_id = payload.member_id

    coupon_changed = "coupon_id" in payload.provided and payload.coupon_id != sale.coupon_id
    if coupon_changed:
        coupon_service.remove_discount(sale)
        if payload.coupon_id is not None:
            coupon_service.apply_discount(sale, payload.coupon_id)
        else:
            sale.discount = payload.discount
    elif sale.coupon_id is not None:
        coupon_service.apply_discount(sale, sale.coupon_id)
    elif "discount" in payload.provided:
        sale.discount = payload.discount


def create_sale(data: dict, actor_id: int) -> Sale:
    """
    Create an order as hold or success.

    Steps, all in one transaction: allocate the code, record the header,
    apply the coupon, add the lines and deduct their stock, compute the
    totals, and on success run the after-sales effects.
    """
    payload = parse_sale_payload(data, allowed_statuses=CREATE_STATUSES, require_cart=True)

    def _op():
        with transaction():
            code = generate_code(current_app.config.get("SALES_CODE_TAG", "SAL"))
            _get_employee(actor_id)
            if payload.member_id is not None:
                _get_member(payload.member_id)

            sale = Sale(
                code=code,
                status=HOLD,
                member_id=payload.member_id,
                employee_id=actor_id,
                discount=payload.discount,
                created_by=actor_id,
                updated_by=actor_id,
            )
            db.session.add(sale)
            db.session.flush()

            coupon_service.apply_discount(sale, payload.coupon_id)
            _sync_sale_items(sale, payload.cart, actor_id)
            calculate_sales(sale)

            sale.status = payload.status
            if payload.status == SUCCESS:
                process_after_sales(sale, payload.card_no, actor_id)
            db.session.flush()
            sale_id = sale.id
        return get_sale_by_id(sale_id)

    return run_with_retry(_op)


def _cancel_locked(sale: Sale, actor_id: int | None) -> None:
    for line in sale.items:
        stock_service.rollback(line)
    sale.status = CANCELED
    sale.updated_by = actor_id
    db.session.flush()
    current_app.logger.info("Sale %s canceled, stock returned", sale.code)


def update_sale(sale_uuid: str, data: dict, actor_id: int) -> Sale:
    """
    Move a hold order to hold (edit), success (finalise) or canceled.

    Orders that are already success or canceled raise
    InvalidStateTransition.
    """
    payload = parse_sale_payload(data, allowed_statuses=UPDATE_STATUSES, require_cart=False)

    def _op():
        with transaction():
            sale = lock_for_update(
                db.session.query(Sale).filter_by(uuid=sale_uuid, deleted_at=None)
            ).first()
            if sale is None:
                raise NotFoundError(f"Sale {sale_uuid} not found")

            if sale.status != HOLD:
                raise InvalidStateTransition(
                    f"Sale {sale.code} is {sale.status}; only hold sales can be updated",
                    details={"status": sale.status, "requested_status": payload.status},
                )

            if payload.status == CANCELED:
                _cancel_locked(sale, actor_id)
            else:
                _apply_header(sale, payload)
                if payload.cart is not None:
                    _sync_sale_items(sale, payload.cart, actor_id)
                calculate_sales(sale)

                sale.status = payload.status
                sale.updated_by = actor_id
                if payload.status == SUCCESS:
                    process_after_sales(sale, payload.card_no, actor_id)
            db.session.flush()
            sale_id = sale.id
        return get_sale_by_id(sale_id)

    return run_with_retry(_op)


def destroy_sale(sale_uuid: str, actor_id: int | None = None) -> bool:
    """Soft delete. Stock, commission and points stay as they are."""
    def _op():
        with transaction():
            sale = lock_for_update(
                db.session.query(Sale).filter_by(uuid=sale_uuid, deleted_at=None)
            ).first()
            if sale is None:
                raise NotFoundError(f"Sale {sale_uuid} not found")
            sale.deleted_at = utcnow()
            sale.updated_by = actor_id
        return True

    return run_with_retry(_op)


def _detail_query():
    return db.session.query(Sale).options(
        selectinload(Sale.items).selectinload(SaleItem.item),
        selectinload(Sale.member),
        selectinload(Sale.employee),
        selectinload(Sale.coupon),
    )


def get_sale_by_id(sale_id: int) -> Sale:
    sale = _detail_query().filter(Sale.id == sale_id, Sale.deleted_at.is_(None)).first()
    if sale is None:
        raise NotFoundError(f"Sale {sale_id} not found")
    return sale


def get_sale(sale_uuid: str) -> Sale:
    sale = _detail_query().filter(Sale.uuid == sale_uuid, Sale.deleted_at.is_(None)).first()
    if sale is None:
        raise NotFoundError(f"Sale {sale_uuid} not found")
    return sale


def list_sales(
    search: str | None = None,
    page: int | None = 1,
    per_page: int | None = 20,
    status: str | None = None,
    member_id: int | None = None,
    employee_id: int | None = None,
) -> dict:
    q = db.session.query(Sale).filter(Sale.deleted_at.is_(None))
    if search:
        q = q.filter(Sale.code.ilike(f"%{search.strip()}%"))
    if status:
        if status not in UPDATE_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(sorted(UPDATE_STATUSES))}")
        q = q.filter(Sale.status == status)
    if member_id is not None:
        q = q.filter(Sale.member_id == member_id)
    if employee_id is not None:
        q = q.filter(Sale.employee_id == employee_id)

    return paginate(q.order_by(Sale.created_at.desc(), Sale.id.desc()), page, per_page)
