from __future__ import annotations

from uuid import uuid4

from ..extensions import db
from ..money import money_str
from ..time_utils import to_utc_z


class Category(db.Model):
    __tablename__ = "categories"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    uuid = db.Column(db.String(36), nullable=False, unique=True, default=lambda: str(uuid4()))
    name = db.Column(db.String(128), nullable=False, unique=True)

    created_by = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "uuid": self.uuid,
            "name": self.name,
            "created_at": to_utc_z(self.created_at),
        }


class Item(db.Model):
    """
    Sellable catalog item.

    Stock is not a column here: it lives in StockLot rows and
    stock_count is always the sum of their quantities.
    """
    __tablename__ = "items"
    __table_args__ = (
        db.Index("ix_items_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    uuid = db.Column(db.String(36), nullable=False, unique=True, default=lambda: str(uuid4()))
    code = db.Column(db.String(32), nullable=False, unique=True)
    name = db.Column(db.String(255), nullable=False)
    price = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True, index=True)

    created_by = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True)
    updated_by = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    category = db.relationship("Category", backref=db.backref("items", lazy=True))

    @property
    def stock_count(self) -> int:
        return sum(lot.qty for lot in self.stock_lots)

    def __repr__(self) -> str:
        return f"<Item id={self.id} code={self.code!r} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "uuid": self.uuid,
            "code": self.code,
            "name": self.name,
            "price": money_str(self.price),
            "category_id": self.category_id,
            "stock_count": self.stock_count,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockLot(db.Model):
    """
    A batch of an item's inventory bought at one cost.

    qty is a mutable counter; every change to it is mirrored by a
    StockMovement row, so the movements explain the counter.
    """
    __tablename__ = "stock_lots"
    __table_args__ = (
        db.CheckConstraint("qty >= 0", name="ck_stock_lots_qty_non_negative"),
        db.Index("ix_stock_lots_item_qty", "item_id", "qty"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    uuid = db.Column(db.String(36), nullable=False, unique=True, default=lambda: str(uuid4()))
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)

    cogs = db.Column(db.Numeric(14, 2), nullable=False)
    qty = db.Column(db.Integer, nullable=False, default=0)

    created_by = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )
    version_id = db.Column(db.Integer, nullable=False, default=1)

    item = db.relationship(
        "Item",
        backref=db.backref("stock_lots", lazy=True, order_by="StockLot.id"),
    )
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "uuid": self.uuid,
            "item_id": self.item_id,
            "cogs": money_str(self.cogs),
            "qty": self.qty,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockOperation(db.Model):
    """A restock event: initial stock for a new lot or a later receive."""
    __tablename__ = "stock_operations"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)
    qty = db.Column(db.Integer, nullable=False)
    note = db.Column(db.String(255), nullable=True)

    created_by = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    item = db.relationship("Item")


class StockMovement(db.Model):
    """
    Append-only stock movement.

    SOURCE KINDS (exactly one typed reference is meaningful per kind):
    - sale_item: deduction or quantity give-back caused by a sale line (sale_item_id)
    - restock:   units added by a StockOperation (stock_operation_id)
    - rollback:  units returned to the lot a sale line drew from (sale_item_id)
    - adjustment: manual correction of a lot count (no typed reference)

    sale_id and sale_item_id are written once and never rewritten.
    sale_item_id is a plain reference: it outlives a line removed from a
    held cart, so the removed line's deductions and rollback stay linked.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("ix_stock_movements_lot_created", "stock_lot_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    stock_lot_id = db.Column(db.Integer, db.ForeignKey("stock_lots.id"), nullable=False, index=True)

    direction = db.Column(db.String(8), nullable=False)  # add, deduct
    qty = db.Column(db.Integer, nullable=False)
    description = db.Column(db.String(255), nullable=True)

    source_kind = db.Column(db.String(16), nullable=False, index=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)
    sale_item_id = db.Column(db.Integer, nullable=True, index=True)
    stock_operation_id = db.Column(db.Integer, db.ForeignKey("stock_operations.id"), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    stock_lot = db.relationship("StockLot", backref=db.backref("movements", lazy=True))
    stock_operation = db.relationship("StockOperation", backref=db.backref("movements", lazy=True))

    @property
    def signed_qty(self) -> int:
        return self.qty if self.direction == "add" else -self.qty

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "stock_lot_id": self.stock_lot_id,
            "direction": self.direction,
            "qty": self.qty,
            "description": self.description,
            "source_kind": self.source_kind,
            "sale_id": self.sale_id,
            "sale_item_id": self.sale_item_id,
            "stock_operation_id": self.stock_operation_id,
            "created_at": to_utc_z(self.created_at),
        }
