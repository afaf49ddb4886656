# Overview: Flask API routes for employees; parses input and returns JSON responses.

"""
Employee management routes. All require MANAGE_EMPLOYEES.
"""

from flask import Blueprint, request, g, current_app

from ..errors import ConflictError, NotFoundError, ValidationError
from ..services import commission_service, employees_service, salary_service, sales_service
from ..decorators import require_auth, require_permission

employees_bp = Blueprint("employees", __name__, url_prefix="/api/employees")


@employees_bp.get("")
@require_auth
@require_permission("MANAGE_EMPLOYEES")
def list_employees_route():
    return employees_service.list_employees(
        search=request.args.get("search"),
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )


@employees_bp.post("")
@require_auth
@require_permission("MANAGE_EMPLOYEES")
def create_employee_route():
    """Body: name, username, email, password, role, optional address and phone_no."""
    payload = request.get_json(silent=True) or {}
    try:
        employee = employees_service.create_employee(payload, g.current_employee.id)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
    except Exception:
        current_app.logger.exception("Failed to create employee")
        return {"error": "Internal server error"}, 500

    return {"employee": employee.to_dict()}, 201


@employees_bp.get("/commission")
@require_auth
@require_permission("MANAGE_EMPLOYEES")
def commission_logs_route():
    """Commission log of all employees, newest first."""
    return commission_service.list_logs(
        page=request.args.get("page", default=1, type=int),
        per_page=request.args.get("per_page", default=50, type=int),
    )


@employees_bp.get("/salaries")
@require_auth
@require_permission("MANAGE_EMPLOYEES")
def list_salaries_route():
    """Query params: period (YYYY-MM), page, per_page."""
    try:
        return salary_service.list_all_salaries(
            period=request.args.get("period"),
            page=request.args.get("page", default=1, type=int),
            per_page=request.args.get("per_page", default=50, type=int),
        )
    except ValidationError as e:
        return {"error": str(e)}, 400


@employees_bp.get("/salaries/<salary_uuid>")
@require_auth
@require_permission("MANAGE_EMPLOYEES")
def get_salary_route(salary_uuid: str):
    try:
        salary = salary_service.get_salary(salary_uuid)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"salary": salary.to_dict()}


@employees_bp.get("/<employee_uuid>")
@require_auth
@require_permission("MANAGE_EMPLOYEES")
def get_employee_route(employee_uuid: str):
    try:
        employee = employees_service.get_employee(employee_uuid)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"employee": employee.to_dict()}


@employees_bp.put("/<employee_uuid>")
@require_auth
@require_permission("MANAGE_EMPLOYEES")
def update_employee_route(employee_uuid: str):
    """Body: any of name, username, email, address, phone_no, password, role."""
    payload = request.get_json(silent=True) or {}
    try:
        employee = employees_service.update_employee(employee_uuid, payload)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
    except Exception:
        current_app.logger.exception("Failed to update employee")
        return {"error": "Internal server error"}, 500
    return {"employee": employee.to_dict()}


@employees_bp.delete("/<employee_uuid>")
@require_auth
@require_permission("MANAGE_EMPLOYEES")
def delete_employee_route(employee_uuid: str):
    try:
        employees_service.delete_employee(employee_uuid, g.current_employee.id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
    return {"message": "Employee deleted"}


@employees_bp.get("/<employee_uuid>/commission")
@require_auth
@require_permission("MANAGE_EMPLOYEES")
def employee_commission_route(employee_uuid: str):
    """Commission balance and log, newest first."""
    try:
        return employees_service.commission_summary(
            employee_uuid,
            page=request.args.get("page", default=1, type=int),
            per_page=request.args.get("per_page", default=50, type=int),
        )
    except NotFoundError as e:
        return {"error": str(e)}, 404


@employees_bp.get("/<employee_uuid>/sales")
@require_auth
@require_permission("MANAGE_EMPLOYEES")
def employee_sales_route(employee_uuid: str):
    try:
        employee = employees_service.get_employee(employee_uuid)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return sales_service.list_sales(
        employee_id=employee.id,
        page=request.args.get("page", default=1, type=int),
        per_page=request.args.get("per_page", default=20, type=int),
    )


@employees_bp.get("/<employee_uuid>/salaries")
@require_auth
@require_permission("MANAGE_EMPLOYEES")
def employee_salaries_route(employee_uuid: str):
    try:
        employee = employees_service.get_employee(employee_uuid)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    salaries = salary_service.list_salaries(employee.id)
    return {"items": [s.to_dict() for s in salaries], "count": len(salaries)}
