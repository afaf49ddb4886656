# Overview: Service-layer operations for auth; password hashing, login and default roles.

"""
Authentication Service

Every sale and ledger row is attributed to the employee who caused it, so
every request must be tied to a real employee account.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters, at least one letter and one digit
- Session tokens managed separately (see session_service.py)
"""

import re
from decimal import Decimal

import bcrypt

from ..extensions import db
from ..models import Employee, Role
from ..time_utils import utcnow


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


# name -> (description, basic_salary, commission_percentage)
DEFAULT_ROLES = {
    "super": ("Full system access", Decimal("500000"), Decimal("0.05")),
    "admin": ("Back office management", Decimal("500000"), Decimal("0.01")),
    "cashier": ("Point of sale only", Decimal("500000"), Decimal("0.01")),
}


def validate_password_strength(password: str) -> None:
    """
    Requirements:
    - Minimum 8 characters
    - At least one letter
    - At least one digit

    Raises PasswordValidationError if requirements not met.
    """
    if not isinstance(password, str) or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Za-z]', password):
        raise PasswordValidationError("Password must contain at least one letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")


def hash_password(password: str, *, rounds: int = 12) -> str:
    """Hash password using bcrypt. Password is validated for strength before hashing."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe via bcrypt.checkpw; malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def authenticate(username: str, password: str) -> Employee | None:
    """
    Authenticate an employee by username (or email) and password.

    Returns the Employee if credentials are valid, None otherwise.
    Updates last_login_at on success.
    """
    if not username or not password:
        return None

    employee = db.session.query(Employee).filter(
        db.or_(Employee.username == username, Employee.email == username),
        Employee.deleted_at.is_(None),
    ).first()

    if not employee:
        return None

    if verify_password(password, employee.password_hash):
        employee.last_login_at = utcnow()
        db.session.commit()
        return employee

    return None


def create_default_roles() -> list[Role]:
    """Create the standard roles if they don't exist. Existing roles are left as they are."""
    roles = []
    for name, (description, basic_salary, commission_percentage) in DEFAULT_ROLES.items():
        role = db.session.query(Role).filter_by(name=name).first()
        if not role:
            role = Role(
                name=name,
                description=description,
                basic_salary=basic_salary,
                commission_percentage=commission_percentage,
            )
            db.session.add(role)
        roles.append(role)

    db.session.commit()
    return roles
