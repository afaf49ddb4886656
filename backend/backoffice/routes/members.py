# Overview: Flask API routes for members; parses input and returns JSON responses.

from flask import Blueprint, request, g

from ..errors import NotFoundError, ValidationError
from ..services import members_service, point_service, sales_service
from ..decorators import require_auth, require_permission
from ..time_utils import parse_iso_datetime

members_bp = Blueprint("members", __name__, url_prefix="/api/members")


@members_bp.get("")
@require_auth
@require_permission("VIEW_MEMBERS")
def list_members_route():
    return members_service.list_members(
        search=request.args.get("search"),
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )


@members_bp.post("")
@require_auth
@require_permission("MANAGE_MEMBERS")
def create_member_route():
    payload = request.get_json(silent=True) or {}
    try:
        member = members_service.create_member(payload, g.current_employee.id)
    except ValidationError as e:
        return {"error": str(e)}, 400
    return {"member": member.to_dict()}, 201


@members_bp.get("/loyal")
@require_auth
@require_permission("VIEW_MEMBERS")
def loyal_members_route():
    limit = request.args.get("limit", default=10, type=int)
    return {"members": members_service.loyal_members(limit=max(1, min(limit, 100)))}


@members_bp.get("/points")
@require_auth
@require_permission("VIEW_MEMBERS")
def point_logs_route():
    """
    Point log of all members, newest first.

    Query params: date_from, date_to (ISO-8601), page, per_page
    """
    try:
        date_from = parse_iso_datetime(request.args.get("date_from"))
        date_to = parse_iso_datetime(request.args.get("date_to"))
    except ValueError:
        return {"error": "date_from/date_to must be ISO-8601 datetimes"}, 400

    return point_service.list_logs(
        date_from=date_from,
        date_to=date_to,
        page=request.args.get("page", default=1, type=int),
        per_page=request.args.get("per_page", default=50, type=int),
    )


@members_bp.get("/<member_uuid>")
@require_auth
@require_permission("VIEW_MEMBERS")
def get_member_route(member_uuid: str):
    try:
        member = members_service.get_member(member_uuid)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"member": member.to_dict()}


@members_bp.put("/<member_uuid>")
@require_auth
@require_permission("MANAGE_MEMBERS")
def update_member_route(member_uuid: str):
    payload = request.get_json(silent=True) or {}
    try:
        member = members_service.update_member(member_uuid, payload, g.current_employee.id)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"member": member.to_dict()}


@members_bp.delete("/<member_uuid>")
@require_auth
@require_permission("MANAGE_MEMBERS")
def delete_member_route(member_uuid: str):
    try:
        members_service.delete_member(member_uuid, g.current_employee.id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"message": "Member deleted"}


@members_bp.get("/<member_uuid>/sales")
@require_auth
@require_permission("VIEW_MEMBERS")
def member_sales_route(member_uuid: str):
    try:
        member = members_service.get_member(member_uuid)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return sales_service.list_sales(
        member_id=member.id,
        page=request.args.get("page", default=1, type=int),
        per_page=request.args.get("per_page", default=20, type=int),
    )


@members_bp.get("/<member_uuid>/points")
@require_auth
@require_permission("VIEW_MEMBERS")
def member_points_route(member_uuid: str):
    """
    Point log, newest first, with the current balance.

    Query params: date_from, date_to (ISO-8601), page, per_page
    """
    try:
        member = members_service.get_member(member_uuid)
        date_from = parse_iso_datetime(request.args.get("date_from"))
        date_to = parse_iso_datetime(request.args.get("date_to"))
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ValueError:
        return {"error": "date_from/date_to must be ISO-8601 datetimes"}, 400

    logs = point_service.list_logs(
        member.id,
        date_from=date_from,
        date_to=date_to,
        page=request.args.get("page", default=1, type=int),
        per_page=request.args.get("per_page", default=50, type=int),
    )
    return {"member": member.to_dict(), **logs}
