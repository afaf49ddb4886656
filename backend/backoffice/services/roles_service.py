# Overview: Service-layer operations for employee roles; pay terms used by commission and salary runs.

from __future__ import annotations

from decimal import Decimal, InvalidOperation

from sqlalchemy import func

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Employee, Role
from ..money import to_decimal
from ..time_utils import utcnow
from ..validation import ModelValidationPolicy, validate_payload


ROLE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "basic_salary", "commission_percentage"},
    required_on_create={"name", "basic_salary"},
)


def _parse_rate(value) -> Decimal:
    """commission_percentage is a fraction in [0, 1], kept to four places."""
    if value is None or isinstance(value, bool):
        raise ValidationError("commission_percentage must be a number")
    try:
        rate = to_decimal(value)
    except (InvalidOperation, ValueError):
        raise ValidationError("commission_percentage must be a number")
    if not rate.is_finite() or rate < 0 or rate > 1:
        raise ValidationError("commission_percentage must be between 0 and 1")
    if rate != rate.quantize(Decimal("0.0001")):
        raise ValidationError("commission_percentage allows at most 4 decimal places")
    return rate


def _clean(data: dict, *, partial: bool) -> dict:
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")
    data = dict(data)
    has_rate = "commission_percentage" in data
    raw_rate = data.pop("commission_percentage", None)

    patch = validate_payload(model=Role, payload=data, policy=ROLE_POLICY, partial=partial)
    if not partial and not has_rate:
        raise ValidationError("Missing required fields: commission_percentage")

    if "basic_salary" in patch and patch["basic_salary"] < 0:
        raise ValidationError("basic_salary must be >= 0")
    if has_rate:
        patch["commission_percentage"] = _parse_rate(raw_rate)
    return patch


def _check_name(name: str, role_id: int | None = None) -> None:
    q = db.session.query(Role.id).filter(Role.name == name)
    if role_id is not None:
        q = q.filter(Role.id != role_id)
    if q.first() is not None:
        raise ConflictError(f"Role {name} already exists")


def get_role(role_uuid: str) -> Role:
    role = db.session.query(Role).filter_by(uuid=role_uuid, deleted_at=None).first()
    if role is None:
        raise NotFoundError(f"Role {role_uuid} not found")
    return role


def list_roles() -> list[Role]:
    return db.session.query(Role).filter(Role.deleted_at.is_(None)).order_by(Role.name.asc()).all()


def create_role(data: dict) -> Role:
    """
    data: name, basic_salary, commission_percentage, optional description.

    The role starts with no permissions.
    """
    patch = _clean(data, partial=False)
    _check_name(patch["name"])

    role = Role(**patch)
    db.session.add(role)
    db.session.commit()
    return role


def update_role(role_uuid: str, data: dict) -> Role:
    """New pay terms apply to sales and salary runs from now on; past logs keep their values."""
    role = get_role(role_uuid)
    patch = _clean(data, partial=True)
    if "name" in patch:
        _check_name(patch["name"], role.id)

    for key, value in patch.items():
        setattr(role, key, value)
    db.session.commit()
    return role


def delete_role(role_uuid: str) -> bool:
    """Soft delete; refused while active employees still hold the role."""
    role = get_role(role_uuid)
    holders = (
        db.session.query(func.count(Employee.id))
        .filter(Employee.role_id == role.id, Employee.deleted_at.is_(None))
        .scalar()
    )
    if holders:
        raise ConflictError(f"Role {role.name} is still assigned to {holders} employees")

    role.deleted_at = utcnow()
    db.session.commit()
    return True
