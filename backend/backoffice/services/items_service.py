# Overview: Service-layer operations for catalog items and categories; encapsulates business logic and database work.

from __future__ import annotations

from sqlalchemy import func

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Category, Item, Sale, SaleItem, StockLot
from ..time_utils import utcnow
from ..validation import ModelValidationPolicy, enforce_rules_item, parse_int, parse_money, validate_payload
from . import stock_service
from .code_service import generate_code
from .concurrency import run_with_retry, transaction
from .pagination import paginate


ITEM_CODE_TAG = "ITM"

ITEM_POLICY = ModelValidationPolicy(
    writable_fields={"name", "price", "category_id"},
    required_on_create={"name", "price"},
)


def get_item(item_uuid: str) -> Item:
    item = db.session.query(Item).filter_by(uuid=item_uuid, deleted_at=None).first()
    if item is None:
        raise NotFoundError(f"Item {item_uuid} not found")
    return item


def _check_category(category_id: int | None) -> None:
    if category_id is None:
        return
    exists = db.session.query(Category.id).filter_by(id=category_id, deleted_at=None).first()
    if exists is None:
        raise NotFoundError(f"Category {category_id} not found")


def list_items(search: str | None = None, page: int | None = None, per_page: int | None = None) -> dict:
    q = db.session.query(Item).filter(Item.deleted_at.is_(None))
    if search:
        like = f"%{search.strip()}%"
        q = q.filter((Item.name.ilike(like)) | (Item.code.ilike(like)))
    return paginate(q.order_by(Item.name.asc(), Item.id.asc()), page, per_page)


def create_item(data: dict, actor_id: int | None = None) -> Item:
    """
    Create an item, optionally with its first stock lot.

    data may carry "stock": {"cogs": ..., "qty": ...}; the item and the
    lot are written in one transaction.
    """
    data = dict(data or {})
    stock = data.pop("stock", None)
    patch = validate_payload(model=Item, payload=data, policy=ITEM_POLICY, partial=False)
    enforce_rules_item(patch)

    initial_qty = initial_cogs = None
    if stock is not None:
        if not isinstance(stock, dict):
            raise ValidationError("stock must be an object")
        initial_qty = parse_int(stock.get("qty"), "stock.qty")
        if initial_qty < 0:
            raise ValidationError("stock.qty must be >= 0")
        initial_cogs = parse_money(stock.get("cogs"), "stock.cogs")

    def _op():
        with transaction():
            code = generate_code(ITEM_CODE_TAG)
            _check_category(patch.get("category_id"))

            item = Item(code=code, created_by=actor_id, updated_by=actor_id, **patch)
            db.session.add(item)
            db.session.flush()

            if initial_qty is not None:
                stock_service.create_lot(item.id, initial_cogs, initial_qty, actor_id=actor_id, note="Initial stock")
        return item

    return run_with_retry(_op)


def update_item(item_uuid: str, data: dict, actor_id: int | None = None) -> Item:
    item = get_item(item_uuid)
    patch = validate_payload(model=Item, payload=data, policy=ITEM_POLICY, partial=True)
    enforce_rules_item(patch)
    if "category_id" in patch:
        _check_category(patch["category_id"])

    for key, value in patch.items():
        setattr(item, key, value)
    item.updated_by = actor_id

    db.session.commit()
    return item


def delete_item(item_uuid: str, actor_id: int | None = None) -> bool:
    """Soft delete: historical sale lines keep pointing at the item."""
    item = get_item(item_uuid)
    item.deleted_at = utcnow()
    item.updated_by = actor_id
    db.session.commit()
    return True


def receive_item_stock(item_uuid: str, data: dict, actor_id: int | None = None) -> StockLot:
    item = get_item(item_uuid)
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")
    return stock_service.receive_stock(
        item_id=item.id,
        cogs=parse_money(data.get("cogs"), "cogs"),
        qty=parse_int(data.get("qty"), "qty"),
        actor_id=actor_id,
        note=data.get("note"),
    )


def item_stock(item_uuid: str) -> dict:
    item = get_item(item_uuid)
    lots = stock_service.list_lots(item.id)
    return {
        "item": item.to_dict(),
        "stock_count": sum(lot.qty for lot in lots),
        "lots": [lot.to_dict() for lot in lots],
    }


def item_movements(item_uuid: str, limit: int = 200) -> dict:
    """Stock movements across all of the item's lots, newest first."""
    item = get_item(item_uuid)
    movements = []
    for lot in stock_service.list_lots(item.id):
        movements.extend(stock_service.list_movements(stock_lot_id=lot.id, limit=limit))
    movements.sort(key=lambda m: m.id, reverse=True)
    return {"item": item.to_dict(), "movements": [m.to_dict() for m in movements[:limit]]}


def top_selling_items(limit: int = 10) -> list[dict]:
    """Items ranked by units sold on successful, non-deleted sales."""
    sold = func.sum(SaleItem.qty).label("sold_qty")
    rows = (
        db.session.query(Item, sold)
        .join(SaleItem, SaleItem.item_id == Item.id)
        .join(Sale, Sale.id == SaleItem.sale_id)
        .filter(Sale.status == "success", Sale.deleted_at.is_(None))
        .group_by(Item.id)
        .order_by(sold.desc(), Item.id.asc())
        .limit(limit)
        .all()
    )
    return [{**item.to_dict(), "sold_qty": int(qty)} for item, qty in rows]


def out_of_stock_items() -> list[dict]:
    on_hand = func.coalesce(func.sum(StockLot.qty), 0)
    rows = (
        db.session.query(Item)
        .outerjoin(StockLot, StockLot.item_id == Item.id)
        .filter(Item.deleted_at.is_(None))
        .group_by(Item.id)
        .having(on_hand <= 0)
        .order_by(Item.name.asc(), Item.id.asc())
        .all()
    )
    return [item.to_dict() for item in rows]


def list_categories() -> list[Category]:
    return (
        db.session.query(Category)
        .filter(Category.deleted_at.is_(None))
        .order_by(Category.name.asc())
        .all()
    )


def create_category(name: str, actor_id: int | None = None) -> Category:
    name = (name or "").strip()
    if not name:
        raise ValidationError("name is required")
    if db.session.query(Category.id).filter_by(name=name).first() is not None:
        raise ConflictError(f"Category {name} already exists")

    category = Category(name=name, created_by=actor_id)
    db.session.add(category)
    db.session.commit()
    return category


def get_category(category_uuid: str) -> Category:
    category = db.session.query(Category).filter_by(uuid=category_uuid, deleted_at=None).first()
    if category is None:
        raise NotFoundError(f"Category {category_uuid} not found")
    return category


def update_category(category_uuid: str, name: str) -> Category:
    category = get_category(category_uuid)
    name = (name or "").strip()
    if not name:
        raise ValidationError("name is required")
    clash = db.session.query(Category.id).filter(Category.name == name, Category.id != category.id).first()
    if clash is not None:
        raise ConflictError(f"Category {name} already exists")

    category.name = name
    db.session.commit()
    return category


def delete_category(category_uuid: str) -> bool:
    """Soft delete; refused while live items still belong to the category."""
    category = get_category(category_uuid)
    in_use = (
        db.session.query(func.count(Item.id))
        .filter(Item.category_id == category.id, Item.deleted_at.is_(None))
        .scalar()
    )
    if in_use:
        raise ConflictError(f"Category {category.name} still has {in_use} items")

    category.deleted_at = utcnow()
    db.session.commit()
    return True


def category_items(category_uuid: str, page: int | None = None, per_page: int | None = None) -> dict:
    category = get_category(category_uuid)
    q = db.session.query(Item).filter(Item.category_id == category.id, Item.deleted_at.is_(None))
    return {"category": category.to_dict(), **paginate(q.order_by(Item.name.asc(), Item.id.asc()), page, per_page)}
