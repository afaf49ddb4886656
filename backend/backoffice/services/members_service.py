from __future__ import annotations

from sqlalchemy import func

from ..errors import NotFoundError
from ..extensions import db
from ..models import Member, Sale
from ..time_utils import utcnow
from ..validation import ModelValidationPolicy, validate_payload
from .code_service import generate_code
from .concurrency import run_with_retry, transaction
from .pagination import paginate


MEMBER_CODE_TAG = "MBR"

# point is ledger-owned and never writable from the API
MEMBER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "phone_no"},
    required_on_create={"name"},
)


def get_member(member_uuid: str) -> Member:
    member = db.session.query(Member).filter_by(uuid=member_uuid, deleted_at=None).first()
    if member is None:
        raise NotFoundError(f"Member {member_uuid} not found")
    return member


def list_members(search: str | None = None, page: int | None = None, per_page: int | None = None) -> dict:
    q = db.session.query(Member).filter(Member.deleted_at.is_(None))
    if search:
        like = f"%{search.strip()}%"
        q = q.filter(
            (Member.name.ilike(like)) | (Member.code.ilike(like)) | (Member.phone_no.ilike(like))
        )
    return paginate(q.order_by(Member.name.asc(), Member.id.asc()), page, per_page)


def create_member(data: dict, actor_id: int | None = None) -> Member:
    patch = validate_payload(model=Member, payload=data, policy=MEMBER_POLICY, partial=False)

    def _op():
        with transaction():
            member = Member(
                code=generate_code(MEMBER_CODE_TAG),
                point=0,
                created_by=actor_id,
                updated_by=actor_id,
                **patch,
            )
            db.session.add(member)
        return member

    return run_with_retry(_op)


def update_member(member_uuid: str, data: dict, actor_id: int | None = None) -> Member:
    member = get_member(member_uuid)
    patch = validate_payload(model=Member, payload=data, policy=MEMBER_POLICY, partial=True)
    for key, value in patch.items():
        setattr(member, key, value)
    member.updated_by = actor_id
    db.session.commit()
    return member


def delete_member(member_uuid: str, actor_id: int | None = None) -> bool:
    member = get_member(member_uuid)
    member.deleted_at = utcnow()
    member.updated_by = actor_id
    db.session.commit()
    return True


def loyal_members(limit: int = 10) -> list[dict]:
    """Members ranked by number of successful sales."""
    sales_count = func.count(Sale.id).label("sales_count")
    rows = (
        db.session.query(Member, sales_count)
        .join(Sale, Sale.member_id == Member.id)
        .filter(
            Member.deleted_at.is_(None),
            Sale.status == "success",
            Sale.deleted_at.is_(None),
        )
        .group_by(Member.id)
        .order_by(sales_count.desc(), Member.id.asc())
        .limit(limit)
        .all()
    )
    return [{**member.to_dict(), "sales_count": int(count)} for member, count in rows]
