# Overview: Flask API routes for stock movements and reconciliation.

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import CoreError, ValidationFailed
from ..permissions import Module
from ..services import stock_service
from ..decorators import require_auth, require_capability


stock_bp = Blueprint("stock", __name__, url_prefix="/api/stock")


@stock_bp.post("/movements")
@require_auth
@require_capability(Module.STOCK, "create")
def register_stock_movement_route():
    """
    Manual stock movement.

    Body: product_id, quantity, direction (ENTRY | EXIT), reason
    """
    try:
        data = request.get_json(silent=True) or {}
        movement = stock_service.register_stock_movement(
            product_id=data.get("product_id"),
            quantity=data.get("quantity"),
            direction=data.get("direction"),
            reason=data.get("reason"),
            actor=g.actor,
        )
        return jsonify({
            "movement": movement.to_dict(),
            "product": movement.product.to_dict(),
        }), 201
    except CoreError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to register stock movement")
        return jsonify({"error": "Internal server error"}), 500


@stock_bp.get("/movements")
@require_auth
@require_capability(Module.STOCK, "view")
def list_stock_movements_route():
    try:
        product_id = request.args.get("product_id", type=int)
        limit = request.args.get("limit", default=100, type=int)
        if limit is None or limit < 1:
            raise ValidationFailed("limit must be a positive integer")
        movements = stock_service.list_movements(product_id, limit=limit)
        return jsonify({"movements": [m.to_dict() for m in movements]}), 200
    except CoreError as e:
        return jsonify(e.to_dict()), e.status_code


@stock_bp.get("/products/<int:product_id>/reconcile")
@require_auth
@require_capability(Module.STOCK, "view")
def reconcile_product_route(product_id: int):
    try:
        return jsonify({"reconciliation": stock_service.reconcile_product(product_id)}), 200
    except CoreError as e:
        return jsonify(e.to_dict()), e.status_code
