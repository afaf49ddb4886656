# Overview: Flask API routes for coupons; parses input and returns JSON responses.

from flask import Blueprint, request, g

from ..errors import ConflictError, NotFoundError, ValidationError
from ..services import coupon_service
from ..decorators import require_auth, require_permission

coupons_bp = Blueprint("coupons", __name__, url_prefix="/api/coupons")


@coupons_bp.get("")
@require_auth
@require_permission("VIEW_COUPONS")
def list_coupons_route():
    coupons = coupon_service.list_coupons(search=request.args.get("search"))
    return {"items": [c.to_dict() for c in coupons], "count": len(coupons)}


@coupons_bp.post("")
@require_auth
@require_permission("MANAGE_COUPONS")
def create_coupon_route():
    payload = request.get_json(silent=True) or {}
    try:
        coupon = coupon_service.create_coupon(payload, g.current_employee.id)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409
    return {"coupon": coupon.to_dict()}, 201


@coupons_bp.get("/most-used")
@require_auth
@require_permission("VIEW_REPORTS")
def most_used_coupons_route():
    limit = request.args.get("limit", default=10, type=int)
    return {"coupons": coupon_service.most_used_coupons(limit=max(1, min(limit, 100)))}


@coupons_bp.get("/<coupon_uuid>")
@require_auth
@require_permission("VIEW_COUPONS")
def get_coupon_route(coupon_uuid: str):
    try:
        coupon = coupon_service.get_coupon_by_uuid(coupon_uuid)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"coupon": coupon.to_dict()}


@coupons_bp.put("/<coupon_uuid>")
@require_auth
@require_permission("MANAGE_COUPONS")
def update_coupon_route(coupon_uuid: str):
    payload = request.get_json(silent=True) or {}
    try:
        coupon = coupon_service.update_coupon(coupon_uuid, payload, g.current_employee.id)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
    return {"coupon": coupon.to_dict()}


@coupons_bp.delete("/<coupon_uuid>")
@require_auth
@require_permission("MANAGE_COUPONS")
def delete_coupon_route(coupon_uuid: str):
    try:
        coupon_service.delete_coupon(coupon_uuid, g.current_employee.id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"message": "Coupon deleted"}


@coupons_bp.get("/<coupon_uuid>/usage")
@require_auth
@require_permission("VIEW_REPORTS")
def coupon_usage_route(coupon_uuid: str):
    try:
        coupon = coupon_service.get_coupon_by_uuid(coupon_uuid)
        return coupon_service.get_coupon_usage(coupon.id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
