from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class CodeSequence(db.Model):
    """
    Per-tag, per-year counter behind human-readable codes (SAL/2024/7).

    next_number is the number of codes already issued for (tag, year).
    """
    __tablename__ = "code_sequences"
    __table_args__ = (
        db.UniqueConstraint("tag", "year", name="uq_code_sequences_tag_year"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tag = db.Column(db.String(16), nullable=False)
    year = db.Column(db.Integer, nullable=False)
    next_number = db.Column(db.Integer, nullable=False, default=0)


class Notification(db.Model):
    """
    Outbox of messages for members and employees (sales and salary reports).

    Rows are written in the same transaction as the event they describe;
    delivery is somebody else's job.
    """
    __tablename__ = "notifications"
    __table_args__ = (
        db.Index("ix_notifications_recipient", "recipient_kind", "recipient_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    recipient_kind = db.Column(db.String(16), nullable=False)  # member, employee
    recipient_id = db.Column(db.Integer, nullable=False)
    event = db.Column(db.String(64), nullable=False, index=True)
    payload = db.Column(db.Text, nullable=True)  # JSON
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    delivered_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "recipient_kind": self.recipient_kind,
            "recipient_id": self.recipient_id,
            "event": self.event,
            "payload": self.payload,
            "created_at": to_utc_z(self.created_at),
            "delivered_at": to_utc_z(self.delivered_at) if self.delivered_at else None,
        }
