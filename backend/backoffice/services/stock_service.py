# Overview: Service-layer operations for item stock lots; encapsulates business logic and database work.

"""
Stock Ledger Invariants (authoritative)

Model:
- An item's stock is split into StockLot rows (one per purchase cost).
- Available stock for an item = SUM(lot.qty) over its lots.
- lot.qty never goes below zero (CHECK constraint + checks below).

Movements:
- Every change to lot.qty writes exactly one StockMovement in the same flush.
- Movements are append-only; direction is 'add' or 'deduct', qty is a magnitude.
- Deductions for a sale line are attributed to that SaleItem, and so are
  give-backs (quantity decreases, rollbacks). The net draw of a line on a
  lot is therefore SUM(deduct) - SUM(add) over the line's movements.
- Manual corrections of a lot are adjustment movements with no sale
  reference; they never count towards a sale line's draw.

Ordering:
- Deductions drain lots in creation order (lowest id first).
- Give-backs return units to the most recently drawn lot first.

Transactions:
- Functions here only flush. The caller owns the transaction().
"""

from __future__ import annotations

from sqlalchemy import case, func

from ..errors import InsufficientStockError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Item, StockLot, StockMovement, StockOperation, SaleItem
from ..money import to_money
from ..validation import parse_int, parse_money
from .concurrency import lock_for_update, run_with_retry, transaction


DIRECTION_ADD = "add"
DIRECTION_DEDUCT = "deduct"

SOURCE_SALE_ITEM = "sale_item"
SOURCE_RESTOCK = "restock"
SOURCE_ROLLBACK = "rollback"
SOURCE_ADJUSTMENT = "adjustment"


def _get_item(item_id: int) -> Item:
    item = db.session.query(Item).filter_by(id=item_id, deleted_at=None).first()
    if item is None:
        raise NotFoundError(f"Item {item_id} not found")
    return item


def get_stock_count(item_id: int) -> int:
    """Total units on hand across all of the item's lots."""
    total = (
        db.session.query(func.coalesce(func.sum(StockLot.qty), 0))
        .join(Item, Item.id == StockLot.item_id)
        .filter(StockLot.item_id == item_id, Item.deleted_at.is_(None))
        .scalar()
    )
    return int(total or 0)


def check_available(item_id: int, needed_qty: int) -> bool:
    """True when the item's lots hold at least needed_qty units."""
    return get_stock_count(item_id) >= needed_qty


def add_stock(
    lot: StockLot,
    quantity: int,
    description: str | None = None,
    *,
    source_kind: str = SOURCE_RESTOCK,
    sale_item: SaleItem | None = None,
    operation: StockOperation | None = None,
) -> StockMovement:
    """
    Put units back into (or onto) a lot and record an 'add' movement.

    Used for restocks, for quantity decreases on a held sale line, and for
    rollbacks. The movement is attributed to sale_item or operation.
    """
    if quantity <= 0:
        raise ValidationError("quantity must be > 0")

    lot.qty = lot.qty + quantity
    movement = StockMovement(
        stock_lot=lot,
        direction=DIRECTION_ADD,
        qty=quantity,
        source_kind=source_kind,
        sale_id=sale_item.sale_id if sale_item is not None else None,
        sale_item_id=sale_item.id if sale_item is not None else None,
        stock_operation=operation,
        description=description or f"Added {quantity} units to item stock (ID: {lot.id})",
    )
    db.session.add(movement)
    db.session.flush()
    return movement


def create_lot(item_id: int, cogs, qty: int, actor_id: int | None = None, note: str | None = None) -> StockLot:
    """
    Create a new stock lot for an item and record its initial quantity.

    The lot starts at zero and the initial quantity goes through add_stock,
    so the movement history explains the whole counter.
    """
    if qty is None or qty < 0:
        raise ValidationError("qty must be >= 0")
    cogs = to_money(cogs)
    if cogs < 0:
        raise ValidationError("cogs must be >= 0")

    item = _get_item(item_id)

    lot = StockLot(item=item, cogs=cogs, qty=0, created_by=actor_id)
    db.session.add(lot)
    db.session.flush()

    if qty > 0:
        operation = StockOperation(item=item, qty=qty, note=note, created_by=actor_id)
        db.session.add(operation)
        db.session.flush()
        add_stock(
            lot,
            qty,
            description=f"Initial stock of {qty} units for item stock (ID: {lot.id})",
            source_kind=SOURCE_RESTOCK,
            operation=operation,
        )

    return lot


def receive_stock(*, item_id: int, cogs, qty: int, actor_id: int | None = None, note: str | None = None) -> StockLot:
    """Standalone restock: creates a lot in its own transaction."""
    if qty is None or qty <= 0:
        raise ValidationError("qty must be > 0")

    def _op():
        with transaction():
            lot = create_lot(item_id, cogs, qty, actor_id=actor_id, note=note)
        return lot

    return run_with_retry(_op)


def deduct_stock(item_id: int, quantity: int, sale_item: SaleItem) -> list[StockMovement]:
    """
    Take quantity units for a sale line, oldest lot first.

    Lots are locked before being read. If the lots cannot cover the full
    quantity nothing is deducted and InsufficientStockError is raised.
    """
    if quantity <= 0:
        raise ValidationError("quantity must be > 0")

    lots = lock_for_update(
        db.session.query(StockLot)
        .filter(StockLot.item_id == item_id, StockLot.qty > 0)
        .order_by(StockLot.id.asc())
    ).all()

    available = sum(lot.qty for lot in lots)
    if available < quantity:
        raise InsufficientStockError(
            "Insufficient stock",
            details={"item_id": item_id, "requested_quantity": quantity, "available": available},
        )

    remaining = quantity
    movements: list[StockMovement] = []
    for lot in lots:
        take = min(remaining, lot.qty)
        lot.qty = lot.qty - take
        movement = StockMovement(
            stock_lot=lot,
            direction=DIRECTION_DEDUCT,
            qty=take,
            source_kind=SOURCE_SALE_ITEM,
            sale_id=sale_item.sale_id,
            sale_item_id=sale_item.id,
            description=f"Deducted {take} units from item stock (ID: {lot.id})",
        )
        db.session.add(movement)
        movements.append(movement)

        remaining -= take
        if remaining == 0:
            break

    db.session.flush()
    return movements


def net_drawn_by_lot(sale_item: SaleItem) -> dict[int, int]:
    """
    Units a sale line currently holds from each lot: deductions minus
    give-backs, keyed by lot id, in the order the lots were first drawn.
    """
    signed = case(
        (StockMovement.direction == DIRECTION_DEDUCT, StockMovement.qty),
        else_=-StockMovement.qty,
    )
    rows = (
        db.session.query(
            StockMovement.stock_lot_id,
            func.sum(signed).label("net"),
            func.min(StockMovement.id).label("first_movement_id"),
        )
        .filter(StockMovement.sale_item_id == sale_item.id)
        .group_by(StockMovement.stock_lot_id)
        .order_by(func.min(StockMovement.id).asc())
        .all()
    )
    return {row.stock_lot_id: int(row.net) for row in rows if int(row.net or 0) > 0}


def release_stock(
    sale_item: SaleItem,
    quantity: int,
    description: str | None = None,
    *,
    source_kind: str = SOURCE_SALE_ITEM,
) -> list[StockMovement]:
    """
    Give quantity units held by a sale line back to the lots it drew from,
    most recently drawn lot first.
    """
    if quantity <= 0:
        raise ValidationError("quantity must be > 0")

    drawn = net_drawn_by_lot(sale_item)
    if sum(drawn.values()) < quantity:
        raise ValidationError(
            f"Sale line {sale_item.id} holds {sum(drawn.values())} units, cannot release {quantity}"
        )

    lots = {
        lot.id: lot
        for lot in lock_for_update(
            db.session.query(StockLot).filter(StockLot.id.in_(list(drawn.keys())))
        ).all()
    }

    remaining = quantity
    movements: list[StockMovement] = []
    for lot_id in reversed(list(drawn.keys())):
        give_back = min(remaining, drawn[lot_id])
        lot = lots[lot_id]
        movements.append(
            add_stock(
                lot,
                give_back,
                description=description or f"Returned {give_back} units to item stock (ID: {lot.id})",
                source_kind=source_kind,
                sale_item=sale_item,
            )
        )
        remaining -= give_back
        if remaining == 0:
            break

    return movements


def rollback(sale_item: SaleItem, description: str | None = None) -> list[StockMovement]:
    """
    Return everything a sale line still holds to the lots it came from.

    Each lot gets back exactly the line's net draw on it.
    """
    drawn = net_drawn_by_lot(sale_item)
    if not drawn:
        return []

    lots = {
        lot.id: lot
        for lot in lock_for_update(
            db.session.query(StockLot).filter(StockLot.id.in_(list(drawn.keys())))
        ).all()
    }

    movements = []
    for lot_id, qty in drawn.items():
        lot = lots[lot_id]
        movements.append(
            add_stock(
                lot,
                qty,
                description=description
                or f"Rollback added {qty} units to item stock (ID: {lot.id})",
                source_kind=SOURCE_ROLLBACK,
                sale_item=sale_item,
            )
        )
    return movements


def list_lots(item_id: int) -> list[StockLot]:
    _get_item(item_id)
    return (
        db.session.query(StockLot)
        .filter_by(item_id=item_id)
        .order_by(StockLot.id.asc())
        .all()
    )


def list_movements(*, stock_lot_id: int | None = None, sale_item_id: int | None = None, limit: int = 200):
    q = db.session.query(StockMovement)
    if stock_lot_id is not None:
        q = q.filter(StockMovement.stock_lot_id == stock_lot_id)
    if sale_item_id is not None:
        q = q.filter(StockMovement.sale_item_id == sale_item_id)
    return q.order_by(StockMovement.id.desc()).limit(limit).all()


def get_lot(lot_uuid: str) -> StockLot:
    lot = db.session.query(StockLot).filter_by(uuid=lot_uuid).first()
    if lot is None:
        raise NotFoundError(f"Stock lot {lot_uuid} not found")
    return lot


def adjust_lot(lot: StockLot, new_qty: int, description: str | None = None) -> StockMovement | None:
    """
    Set a lot's counter to new_qty through one 'adjustment' movement.

    The caller must hold the lot's row lock. Returns None when the
    counter already reads new_qty.
    """
    if new_qty < 0:
        raise ValidationError("qty must be >= 0")
    delta = new_qty - lot.qty
    if delta == 0:
        return None
    if delta > 0:
        return add_stock(
            lot,
            delta,
            description=description or f"Adjusted item stock (ID: {lot.id}) up by {delta} units",
            source_kind=SOURCE_ADJUSTMENT,
        )

    lot.qty = new_qty
    movement = StockMovement(
        stock_lot=lot,
        direction=DIRECTION_DEDUCT,
        qty=-delta,
        source_kind=SOURCE_ADJUSTMENT,
        description=description or f"Adjusted item stock (ID: {lot.id}) down by {-delta} units",
    )
    db.session.add(movement)
    db.session.flush()
    return movement


def update_lot(lot_uuid: str, data: dict) -> StockLot:
    """
    Correct a lot's cost and/or count. data: cogs, qty (both optional).

    A count change is written as an adjustment movement, never as a bare
    counter update.
    """
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")
    unknown = sorted(set(data) - {"cogs", "qty"})
    if unknown:
        raise ValidationError(f"Field not allowed: {unknown[0]}")

    cogs = parse_money(data["cogs"], "cogs") if "cogs" in data else None
    qty = parse_int(data["qty"], "qty") if "qty" in data else None
    if qty is not None and qty < 0:
        raise ValidationError("qty must be >= 0")

    lot_id = get_lot(lot_uuid).id

    def _op():
        with transaction():
            lot = lock_for_update(db.session.query(StockLot).filter_by(id=lot_id)).one()
            if cogs is not None:
                lot.cogs = cogs
            if qty is not None:
                adjust_lot(lot, qty)
            db.session.flush()
        return lot

    return run_with_retry(_op)


def empty_lot(lot_uuid: str) -> StockLot:
    """
    Write a lot off: its remaining units leave through an adjustment.

    The row itself stays, since movements and sale lines point at it.
    """
    lot_id = get_lot(lot_uuid).id

    def _op():
        with transaction():
            lot = lock_for_update(db.session.query(StockLot).filter_by(id=lot_id)).one()
            adjust_lot(lot, 0, description=f"Wrote off item stock (ID: {lot.id})")
        return lot

    return run_with_retry(_op)
