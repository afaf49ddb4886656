# Overview: Flask API routes for employee roles; parses input and returns JSON responses.

"""
Role management routes. All require MANAGE_EMPLOYEES.

A role carries the pay terms (basic_salary, commission_percentage) that
commission and salary runs read.
"""

from flask import Blueprint, request

from ..errors import ConflictError, NotFoundError, ValidationError
from ..services import roles_service
from ..decorators import require_auth, require_permission

roles_bp = Blueprint("roles", __name__, url_prefix="/api/roles")


@roles_bp.get("")
@require_auth
@require_permission("MANAGE_EMPLOYEES")
def list_roles_route():
    roles = roles_service.list_roles()
    return {"items": [r.to_dict() for r in roles], "count": len(roles)}


@roles_bp.post("")
@require_auth
@require_permission("MANAGE_EMPLOYEES")
def create_role_route():
    """Body: name, basic_salary, commission_percentage (fraction, 0.05 == 5%), optional description."""
    payload = request.get_json(silent=True) or {}
    try:
        role = roles_service.create_role(payload)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409
    return {"role": role.to_dict()}, 201


@roles_bp.get("/<role_uuid>")
@require_auth
@require_permission("MANAGE_EMPLOYEES")
def get_role_route(role_uuid: str):
    try:
        role = roles_service.get_role(role_uuid)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"role": role.to_dict()}


@roles_bp.put("/<role_uuid>")
@require_auth
@require_permission("MANAGE_EMPLOYEES")
def update_role_route(role_uuid: str):
    payload = request.get_json(silent=True) or {}
    try:
        role = roles_service.update_role(role_uuid, payload)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
    return {"role": role.to_dict()}


@roles_bp.delete("/<role_uuid>")
@require_auth
@require_permission("MANAGE_EMPLOYEES")
def delete_role_route(role_uuid: str):
    try:
        roles_service.delete_role(role_uuid)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
    return {"message": "Role deleted"}
