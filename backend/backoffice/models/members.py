from __future__ import annotations

from uuid import uuid4

from ..extensions import db
from ..money import money_str
from ..time_utils import to_utc_z


class Member(db.Model):
    """
    Loyalty customer.

    point is a denormalized running balance. It only changes together
    with a MemberPointLog row in the same flush, so it always equals
    sum(add) - sum(sub) over the member's log.
    """
    __tablename__ = "members"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    uuid = db.Column(db.String(36), nullable=False, unique=True, default=lambda: str(uuid4()))
    code = db.Column(db.String(32), nullable=False, unique=True)

    name = db.Column(db.String(255), nullable=False)
    phone_no = db.Column(db.String(32), nullable=True)

    point = db.Column(db.Numeric(14, 2), nullable=False, default=0)

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

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "uuid": self.uuid,
            "code": self.code,
            "name": self.name,
            "phone_no": self.phone_no,
            "point": money_str(self.point),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class MemberPointLog(db.Model):
    """
    Append-only ledger of loyalty point events.

    TYPES:
    - 1 (add): points earned from a successful sale
    - 2 (sub): points spent to pay for a sale

    point is always a positive magnitude; type carries the sign.
    IMMUTABLE: Records are never updated or deleted.
    """
    __tablename__ = "member_point_logs"
    __table_args__ = (
        db.CheckConstraint("point > 0", name="ck_member_point_logs_point_positive"),
        db.Index("ix_member_point_logs_member_created", "member_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    TYPE_ADD = 1
    TYPE_SUB = 2

    id = db.Column(db.Integer, primary_key=True)
    uuid = db.Column(db.String(36), nullable=False, unique=True, default=lambda: str(uuid4()))
    member_id = db.Column(db.Integer, db.ForeignKey("members.id"), nullable=False, index=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)

    type = db.Column(db.Integer, nullable=False)
    point = db.Column(db.Numeric(14, 2), nullable=False)
    description = db.Column(db.String(255), nullable=False)

    created_by = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    member = db.relationship("Member", backref=db.backref("point_logs", lazy=True))
    sale = db.relationship("Sale", backref=db.backref("point_logs", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "uuid": self.uuid,
            "member_id": self.member_id,
            "sale_id": self.sale_id,
            "type": "add" if self.type == self.TYPE_ADD else "sub",
            "point": money_str(self.point),
            "description": self.description,
            "created_at": to_utc_z(self.created_at),
        }
