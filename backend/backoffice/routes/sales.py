# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/backoffice/routes/sales.py
"""Sales API routes with permission enforcement"""

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import NotFoundError, SaleError, ValidationError
from ..services import sales_service
from ..decorators import require_auth, require_permission


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.get("")
@require_auth
@require_permission("VIEW_SALES")
def list_sales_route():
    """
    List sales, newest first.

    Query params: search (code), status, member_id, employee_id,
    page (default 1), per_page (default 20, max 100)
    """
    try:
        result = sales_service.list_sales(
            search=request.args.get("search"),
            page=request.args.get("page", default=1, type=int),
            per_page=request.args.get("per_page", default=20, type=int),
            status=request.args.get("status"),
            member_id=request.args.get("member_id", type=int),
            employee_id=request.args.get("employee_id", type=int),
        )
        return jsonify(result), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400


@sales_bp.post("")
@require_auth
@require_permission("MANAGE_SALES")
def create_sale_route():
    """
    Create a sale as hold or success.

    Body: status, member_id, coupon_id, discount, card_no,
    cart: [{item_id, qty, price}]. Totals are computed server-side.
    """
    try:
        data = request.get_json(silent=True) or {}
        sale = sales_service.create_sale(data, g.current_employee.id)
        return jsonify({"sale": sale.to_detail_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/<sale_uuid>")
@require_auth
@require_permission("VIEW_SALES")
def get_sale_route(sale_uuid: str):
    try:
        sale = sales_service.get_sale(sale_uuid)
        return jsonify({"sale": sale.to_detail_dict()}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@sales_bp.put("/<sale_uuid>")
@require_auth
@require_permission("MANAGE_SALES")
def update_sale_route(sale_uuid: str):
    """
    Edit (status hold), finalise (success) or cancel (canceled) a hold sale.

    Sales that are already success or canceled return 409.
    """
    try:
        data = request.get_json(silent=True) or {}
        sale = sales_service.update_sale(sale_uuid, data, g.current_employee.id)
        return jsonify({"sale": sale.to_detail_dict()}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.delete("/<sale_uuid>")
@require_auth
@require_permission("MANAGE_SALES")
def destroy_sale_route(sale_uuid: str):
    """Soft delete; stock, commission and points are left as they are."""
    try:
        sales_service.destroy_sale(sale_uuid, g.current_employee.id)
        return jsonify({"message": "Sale deleted"}), 200

    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to delete sale")
        return jsonify({"error": "Internal server error"}), 500
