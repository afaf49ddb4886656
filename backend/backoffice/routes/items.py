# Overview: Flask API routes for catalog items and stock; parses input and returns JSON responses.

# backend/backoffice/routes/items.py
"""
Item management routes.

- Read operations require VIEW_ITEMS permission
- Write operations, restocks and lot corrections require MANAGE_ITEMS permission
- Reports require VIEW_REPORTS permission
"""
from flask import Blueprint, request, g, current_app

from ..errors import ConflictError, NotFoundError, ValidationError
from ..services import items_service, stock_service
from ..decorators import require_auth, require_permission

items_bp = Blueprint("items", __name__, url_prefix="/api/items")


@items_bp.get("")
@require_auth
@require_permission("VIEW_ITEMS")
def list_items_route():
    """
    Query params:
    - search: matches name or code
    - page: int (optional) - page number (1-indexed). If omitted, returns all items.
    - per_page: int (optional) - items per page (default 20, max 100)
    """
    return items_service.list_items(
        search=request.args.get("search"),
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )


@items_bp.post("")
@require_auth
@require_permission("MANAGE_ITEMS")
def create_item_route():
    """Body: name, price, category_id, optional stock: {cogs, qty}."""
    payload = request.get_json(silent=True) or {}
    try:
        item = items_service.create_item(payload, g.current_employee.id)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404

    return {"item": item.to_dict()}, 201


@items_bp.get("/top-selling")
@require_auth
@require_permission("VIEW_REPORTS")
def top_selling_route():
    limit = request.args.get("limit", default=10, type=int)
    return {"items": items_service.top_selling_items(limit=max(1, min(limit, 100)))}


@items_bp.get("/out-of-stock")
@require_auth
@require_permission("VIEW_REPORTS")
def out_of_stock_route():
    return {"items": items_service.out_of_stock_items()}


@items_bp.get("/categories")
@require_auth
@require_permission("VIEW_ITEMS")
def list_categories_route():
    return {"categories": [c.to_dict() for c in items_service.list_categories()]}


@items_bp.post("/categories")
@require_auth
@require_permission("MANAGE_ITEMS")
def create_category_route():
    payload = request.get_json(silent=True) or {}
    try:
        category = items_service.create_category(payload.get("name"), g.current_employee.id)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409
    return {"category": category.to_dict()}, 201


@items_bp.get("/categories/<category_uuid>")
@require_auth
@require_permission("VIEW_ITEMS")
def get_category_route(category_uuid: str):
    try:
        category = items_service.get_category(category_uuid)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"category": category.to_dict()}


@items_bp.put("/categories/<category_uuid>")
@require_auth
@require_permission("MANAGE_ITEMS")
def update_category_route(category_uuid: str):
    payload = request.get_json(silent=True) or {}
    try:
        category = items_service.update_category(category_uuid, payload.get("name"))
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
    return {"category": category.to_dict()}


@items_bp.delete("/categories/<category_uuid>")
@require_auth
@require_permission("MANAGE_ITEMS")
def delete_category_route(category_uuid: str):
    try:
        items_service.delete_category(category_uuid)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
    return {"message": "Category deleted"}


@items_bp.get("/categories/<category_uuid>/items")
@require_auth
@require_permission("VIEW_ITEMS")
def category_items_route(category_uuid: str):
    try:
        return items_service.category_items(
            category_uuid,
            page=request.args.get("page", type=int),
            per_page=request.args.get("per_page", type=int),
        )
    except NotFoundError as e:
        return {"error": str(e)}, 404


@items_bp.get("/<item_uuid>")
@require_auth
@require_permission("VIEW_ITEMS")
def get_item_route(item_uuid: str):
    try:
        item = items_service.get_item(item_uuid)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"item": item.to_dict()}


@items_bp.put("/<item_uuid>")
@require_auth
@require_permission("MANAGE_ITEMS")
def update_item_route(item_uuid: str):
    payload = request.get_json(silent=True) or {}
    try:
        item = items_service.update_item(item_uuid, payload, g.current_employee.id)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"item": item.to_dict()}


@items_bp.delete("/<item_uuid>")
@require_auth
@require_permission("MANAGE_ITEMS")
def delete_item_route(item_uuid: str):
    try:
        items_service.delete_item(item_uuid, g.current_employee.id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"message": "Item deleted"}


@items_bp.get("/<item_uuid>/stock")
@require_auth
@require_permission("VIEW_ITEMS")
def item_stock_route(item_uuid: str):
    """Stock count and lots (oldest first)."""
    try:
        return items_service.item_stock(item_uuid)
    except NotFoundError as e:
        return {"error": str(e)}, 404


@items_bp.post("/<item_uuid>/stock")
@require_auth
@require_permission("MANAGE_ITEMS")
def receive_stock_route(item_uuid: str):
    """Receive stock as a new lot. Body: cogs, qty, note."""
    payload = request.get_json(silent=True) or {}
    try:
        lot = items_service.receive_item_stock(item_uuid, payload, g.current_employee.id)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except Exception:
        current_app.logger.exception("Failed to receive stock")
        return {"error": "Internal server error"}, 500

    return {"lot": lot.to_dict()}, 201


@items_bp.get("/<item_uuid>/movements")
@require_auth
@require_permission("VIEW_ITEMS")
def item_movements_route(item_uuid: str):
    """Stock movement history, newest first. Query params: limit (default 200, max 500)."""
    limit = request.args.get("limit", default=200, type=int)
    try:
        return items_service.item_movements(item_uuid, limit=max(1, min(limit, 500)))
    except NotFoundError as e:
        return {"error": str(e)}, 404


@items_bp.get("/stock/<lot_uuid>")
@require_auth
@require_permission("VIEW_ITEMS")
def get_lot_route(lot_uuid: str):
    try:
        lot = stock_service.get_lot(lot_uuid)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"lot": lot.to_dict()}


@items_bp.put("/stock/<lot_uuid>")
@require_auth
@require_permission("MANAGE_ITEMS")
def update_lot_route(lot_uuid: str):
    """Correct a lot. Body: cogs, qty. A qty change is recorded as an adjustment movement."""
    payload = request.get_json(silent=True) or {}
    try:
        lot = stock_service.update_lot(lot_uuid, payload)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except Exception:
        current_app.logger.exception("Failed to update stock lot")
        return {"error": "Internal server error"}, 500
    return {"lot": lot.to_dict()}


@items_bp.delete("/stock/<lot_uuid>")
@require_auth
@require_permission("MANAGE_ITEMS")
def delete_lot_route(lot_uuid: str):
    """Write off the lot's remaining units; the lot and its history stay."""
    try:
        lot = stock_service.empty_lot(lot_uuid)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except Exception:
        current_app.logger.exception("Failed to write off stock lot")
        return {"error": "Internal server error"}, 500
    return {"message": "Stock lot written off", "lot": lot.to_dict()}
