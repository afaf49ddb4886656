# Overview: Service-layer operations for permission; role-based access checks and seeding.

"""
Permission Checking

- Fail closed: deny by default, require an explicit grant through the role
- An employee has exactly one role; its RolePermission rows are the grants
"""

from ..extensions import db
from ..models import Employee, Permission, Role, RolePermission
from ..permissions import PERMISSION_DEFINITIONS, DEFAULT_ROLE_PERMISSIONS


class PermissionDeniedError(Exception):
    """Raised when an employee lacks a required permission."""
    pass


def get_employee_permissions(employee_id: int) -> set[str]:
    """Permission codes granted to the employee's role (e.g., {"VIEW_SALES"})."""
    rows = (
        db.session.query(Permission.code)
        .join(RolePermission, RolePermission.permission_id == Permission.id)
        .join(Employee, Employee.role_id == RolePermission.role_id)
        .filter(Employee.id == employee_id, Employee.deleted_at.is_(None))
        .all()
    )
    return {code for (code,) in rows}


def employee_has_permission(employee_id: int, permission_code: str) -> bool:
    return permission_code in get_employee_permissions(employee_id)


def require_permission(employee_id: int, permission_code: str) -> None:
    """Raises PermissionDeniedError if the employee lacks the permission."""
    if not employee_has_permission(employee_id, permission_code):
        raise PermissionDeniedError(f"Missing permission: {permission_code}")


def initialize_permissions():
    """
    Create Permission records for all codes in PERMISSION_DEFINITIONS.

    Idempotent: Safe to run multiple times.
    """
    created_count = 0

    for code, name, description, category in PERMISSION_DEFINITIONS:
        existing = db.session.query(Permission).filter_by(code=code).first()

        if not existing:
            permission = Permission(
                code=code,
                name=name,
                description=description,
                category=category
            )
            db.session.add(permission)
            created_count += 1

    db.session.commit()
    return created_count


def assign_default_role_permissions():
    """
    Link roles to their DEFAULT_ROLE_PERMISSIONS.

    Idempotent: Safe to run multiple times (skips existing).
    """
    created_count = 0

    for role_name, permission_codes in DEFAULT_ROLE_PERMISSIONS.items():
        role = db.session.query(Role).filter_by(name=role_name).first()

        if not role:
            continue

        for permission_code in permission_codes:
            permission = db.session.query(Permission).filter_by(code=permission_code).first()

            if not permission:
                continue

            existing = db.session.query(RolePermission).filter_by(
                role_id=role.id,
                permission_id=permission.id
            ).first()

            if not existing:
                db.session.add(RolePermission(role_id=role.id, permission_id=permission.id))
                created_count += 1

    db.session.commit()
    return created_count
