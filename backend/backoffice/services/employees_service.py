# Overview: Service-layer operations for employees; account creation and commission views.

from __future__ import annotations

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Employee, Role
from ..time_utils import utcnow
from ..validation import ModelValidationPolicy, validate_payload
from . import commission_service, session_service
from .auth_service import PasswordValidationError, hash_password
from .code_service import generate_code
from .concurrency import run_with_retry, transaction
from .pagination import paginate


EMPLOYEE_CODE_TAG = "EMP"

EMPLOYEE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "username", "email", "address", "phone_no"},
    required_on_create={"name", "username", "email"},
)


def get_employee(employee_uuid: str) -> Employee:
    employee = db.session.query(Employee).filter_by(uuid=employee_uuid, deleted_at=None).first()
    if employee is None:
        raise NotFoundError(f"Employee {employee_uuid} not found")
    return employee


def _resolve_role(role_name: str | None) -> Role:
    if not role_name:
        raise ValidationError("role is required")
    role = db.session.query(Role).filter_by(name=role_name, deleted_at=None).first()
    if role is None:
        raise NotFoundError(f"Role {role_name} not found")
    return role


def list_employees(search: str | None = None, page: int | None = None, per_page: int | None = None) -> dict:
    q = db.session.query(Employee).filter(Employee.deleted_at.is_(None))
    if search:
        like = f"%{search.strip()}%"
        q = q.filter(
            (Employee.name.ilike(like)) | (Employee.username.ilike(like)) | (Employee.code.ilike(like))
        )
    return paginate(q.order_by(Employee.name.asc(), Employee.id.asc()), page, per_page)


def create_employee(data: dict, actor_id: int | None = None, *, password_rounds: int = 12) -> Employee:
    """
    Create an employee with a bcrypt-hashed password.

    data: name, username, email, password, role (name), optional
    address and phone_no.
    """
    data = dict(data or {})
    password = data.pop("password", None)
    role_name = data.pop("role", None)

    patch = validate_payload(model=Employee, payload=data, policy=EMPLOYEE_POLICY, partial=False)

    try:
        password_hash = hash_password(password, rounds=password_rounds)
    except PasswordValidationError as e:
        raise ValidationError(str(e))

    def _op():
        with transaction():
            code = generate_code(EMPLOYEE_CODE_TAG)
            role = _resolve_role(role_name)

            clash = db.session.query(Employee.id).filter(
                db.or_(Employee.username == patch["username"], Employee.email == patch["email"])
            ).first()
            if clash is not None:
                raise ConflictError("Username or email already exists")

            employee = Employee(
                code=code,
                password_hash=password_hash,
                role_id=role.id,
                created_by=actor_id,
                **patch,
            )
            db.session.add(employee)
        return employee

    return run_with_retry(_op)


def update_employee(employee_uuid: str, data: dict, *, password_rounds: int = 12) -> Employee:
    """
    Partial update. Besides the profile fields, data may carry a new
    password or a role name; a password change signs the employee out.
    """
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")
    data = dict(data)
    password = data.pop("password", None)
    role_name = data.pop("role", None)
    patch = validate_payload(model=Employee, payload=data, policy=EMPLOYEE_POLICY, partial=True)

    password_hash = None
    if password is not None:
        try:
            password_hash = hash_password(password, rounds=password_rounds)
        except PasswordValidationError as e:
            raise ValidationError(str(e))

    employee_id = get_employee(employee_uuid).id

    def _op():
        with transaction():
            employee = db.session.get(Employee, employee_id)
            if role_name is not None:
                employee.role_id = _resolve_role(role_name).id

            clashes = []
            if "username" in patch:
                clashes.append(Employee.username == patch["username"])
            if "email" in patch:
                clashes.append(Employee.email == patch["email"])
            if clashes:
                clash = db.session.query(Employee.id).filter(
                    db.or_(*clashes), Employee.id != employee.id
                ).first()
                if clash is not None:
                    raise ConflictError("Username or email already exists")

            for key, value in patch.items():
                setattr(employee, key, value)
            if password_hash is not None:
                employee.password_hash = password_hash
                session_service.revoke_employee_sessions(employee.id)
        return employee

    return run_with_retry(_op)


def delete_employee(employee_uuid: str, actor_id: int | None = None) -> bool:
    """Soft delete and sign out. Sales, commission and salary rows keep pointing at the employee."""
    employee = get_employee(employee_uuid)
    if actor_id is not None and employee.id == actor_id:
        raise ConflictError("You cannot delete your own account")

    with transaction():
        employee.deleted_at = utcnow()
        session_service.revoke_employee_sessions(employee.id)
    return True


def commission_summary(employee_uuid: str, page: int | None = 1, per_page: int | None = 50) -> dict:
    employee = get_employee(employee_uuid)
    logs = commission_service.list_logs(employee.id, page=page, per_page=per_page)
    return {
        "employee": employee.to_dict(),
        "balance": str(commission_service.get_balance(employee.id)),
        **logs,
    }
