# Overview: Flask API routes for product master data.

from flask import Blueprint, request, jsonify, current_app

from ..errors import CoreError
from ..permissions import Module
from ..services import products_service
from ..decorators import require_auth, require_capability


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.post("")
@require_auth
@require_capability(Module.PRODUCTS, "create")
def create_product_route():
    try:
        data = request.get_json(silent=True) or {}
        product = products_service.create_product(**data)
        return jsonify({"product": product.to_dict()}), 201
    except CoreError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("")
@require_auth
@require_capability(Module.PRODUCTS, "view")
def list_products_route():
    try:
        products = products_service.list_products(
            status=request.args.get("status"),
            product_type=request.args.get("product_type"),
            category_id=request.args.get("category_id"),
        )
        return jsonify({"products": [p.to_dict() for p in products]}), 200
    except CoreError as e:
        return jsonify(e.to_dict()), e.status_code


@products_bp.get("/<int:product_id>")
@require_auth
@require_capability(Module.PRODUCTS, "view")
def get_product_route(product_id: int):
    try:
        product = products_service.get_product(product_id)
    except CoreError as e:
        return jsonify(e.to_dict()), e.status_code
    return jsonify({"product": product.to_dict()}), 200


@products_bp.patch("/<int:product_id>")
@require_auth
@require_capability(Module.PRODUCTS, "edit")
def update_product_route(product_id: int):
    try:
        data = request.get_json(silent=True) or {}
        product = products_service.update_product(product_id, **data)
        return jsonify({"product": product.to_dict()}), 200
    except CoreError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.post("/<int:product_id>/status")
@require_auth
@require_capability(Module.PRODUCTS, "inactivate")
def set_product_status_route(product_id: int):
    try:
        data = request.get_json(silent=True) or {}
        product = products_service.set_product_status(product_id, data.get("status"))
        return jsonify({"product": product.to_dict()}), 200
    except CoreError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to change product status")
        return jsonify({"error": "Internal server error"}), 500
