from __future__ import annotations

from uuid import uuid4

from ..extensions import db
from ..money import money_str
from ..time_utils import to_utc_z


class Coupon(db.Model):
    """Fixed-value discount applied to a whole sale."""
    __tablename__ = "coupons"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    uuid = db.Column(db.String(36), nullable=False, unique=True, default=lambda: str(uuid4()))
    code = db.Column(db.String(64), nullable=False, unique=True)
    name = db.Column(db.String(255), nullable=False)
    value = db.Column(db.Numeric(14, 2), nullable=False)

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

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "uuid": self.uuid,
            "code": self.code,
            "name": self.name,
            "value": money_str(self.value),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Sale(db.Model):
    """
    Sales order (aggregate root).

    LIFECYCLE:
    - hold:     draft; stock already deducted, nothing else granted
    - success:  final; commission, loyalty points and payment recorded
    - canceled: void; all deducted stock returned to its lots

    Only hold sales can change. sub_total, tax and total are always
    recomputed together from the lines and the discount.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    uuid = db.Column(db.String(36), nullable=False, unique=True, default=lambda: str(uuid4()))

    # Human-readable code (e.g., "SAL/2024/7")
    code = db.Column(db.String(32), nullable=False, unique=True)

    status = db.Column(db.String(16), nullable=False, default="hold", index=True)

    member_id = db.Column(db.Integer, db.ForeignKey("members.id"), nullable=True, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)
    coupon_id = db.Column(db.Integer, db.ForeignKey("coupons.id"), nullable=True, index=True)

    discount = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    tax = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    sub_total = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    total = db.Column(db.Numeric(14, 2), nullable=False, default=0)

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
    version_id = db.Column(db.Integer, nullable=False, default=1)

    member = db.relationship("Member", backref=db.backref("sales", lazy=True))
    employee = db.relationship(
        "Employee",
        foreign_keys=[employee_id],
        backref=db.backref("managed_sales", lazy=True),
    )
    coupon = db.relationship("Coupon")
    items = db.relationship(
        "SaleItem",
        back_populates="sale",
        cascade="all, delete-orphan",
        order_by="SaleItem.id",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "uuid": self.uuid,
            "code": self.code,
            "status": self.status,
            "member_id": self.member_id,
            "employee_id": self.employee_id,
            "coupon_id": self.coupon_id,
            "discount": money_str(self.discount),
            "tax": money_str(self.tax),
            "sub_total": money_str(self.sub_total),
            "total": money_str(self.total),
            "created_by": self.created_by,
            "updated_by": self.updated_by,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }

    def to_detail_dict(self) -> dict:
        data = self.to_dict()
        data["member"] = self.member.to_dict() if self.member else None
        data["employee"] = (
            {"id": self.employee.id, "uuid": self.employee.uuid, "name": self.employee.name}
            if self.employee
            else None
        )
        data["coupon"] = self.coupon.to_dict() if self.coupon else None
        data["items"] = [line.to_dict() for line in self.items]
        data["card_payments"] = [payment.to_dict() for payment in self.card_payments]
        return data


class SaleItem(db.Model):
    """
    Line on a sale. price is captured from the cart at transaction
    time, not read live from the item.
    """
    __tablename__ = "sale_items"
    __table_args__ = (
        db.UniqueConstraint("sale_id", "item_id", name="uq_sale_items_sale_item"),
        db.CheckConstraint("qty > 0", name="ck_sale_items_qty_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    uuid = db.Column(db.String(36), nullable=False, unique=True, default=lambda: str(uuid4()))
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)

    qty = db.Column(db.Integer, nullable=False)
    price = db.Column(db.Numeric(14, 2), nullable=False)
    sub_total = db.Column(db.Numeric(14, 2), nullable=False)

    created_by = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True)
    updated_by = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    sale = db.relationship("Sale", back_populates="items")
    item = db.relationship("Item")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "uuid": self.uuid,
            "sale_id": self.sale_id,
            "item_id": self.item_id,
            "item_name": self.item.name if self.item else None,
            "qty": self.qty,
            "price": money_str(self.price),
            "sub_total": money_str(self.sub_total),
            "created_at": to_utc_z(self.created_at),
        }


class SaleCardPayment(db.Model):
    """Card payment attached to a successful sale (number stored masked)."""
    __tablename__ = "sale_card_payments"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    card_no = db.Column(db.String(32), nullable=False)

    created_by = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    sale = db.relationship("Sale", backref=db.backref("card_payments", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "card_no": self.card_no,
            "created_at": to_utc_z(self.created_at),
        }


class SaleCoupon(db.Model):
    """Coupon usage: links a sale to the coupon applied to it."""
    __tablename__ = "sale_coupons"
    __table_args__ = (
        db.UniqueConstraint("sale_id", "coupon_id", name="uq_sale_coupons_sale_coupon"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    coupon_id = db.Column(db.Integer, db.ForeignKey("coupons.id"), nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    sale = db.relationship("Sale", backref=db.backref("coupon_usages", lazy=True))
    coupon = db.relationship("Coupon", backref=db.backref("usages", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "coupon_id": self.coupon_id,
            "created_at": to_utc_z(self.created_at),
        }
