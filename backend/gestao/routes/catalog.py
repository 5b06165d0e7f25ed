# Overview: Flask API routes for product categories and units of measure.

from flask import Blueprint, request, jsonify, current_app

from ..errors import CoreError
from ..permissions import Module
from ..services import catalog_service
from ..decorators import require_auth, require_capability


categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")
units_bp = Blueprint("units", __name__, url_prefix="/api/units")


def _register_catalog_routes(bp: Blueprint, kind: str, module: str, plural: str) -> None:

    @bp.post("")
    @require_auth
    @require_capability(module, "create")
    def create_entry_route():
        try:
            data = request.get_json(silent=True) or {}
            entry = catalog_service.create_entry(kind, **data)
            return jsonify({kind: entry.to_dict()}), 201
        except CoreError as e:
            return jsonify(e.to_dict()), e.status_code
        except Exception:
            current_app.logger.exception("Failed to create %s", kind)
            return jsonify({"error": "Internal server error"}), 500

    @bp.get("")
    @require_auth
    @require_capability(module, "view")
    def list_entries_route():
        try:
            entries = catalog_service.list_entries(kind, status=request.args.get("status"))
            return jsonify({plural: [entry.to_dict() for entry in entries]}), 200
        except CoreError as e:
            return jsonify(e.to_dict()), e.status_code

    @bp.get("/<int:entry_id>")
    @require_auth
    @require_capability(module, "view")
    def get_entry_route(entry_id: int):
        try:
            entry = catalog_service.get_entry(kind, entry_id)
        except CoreError as e:
            return jsonify(e.to_dict()), e.status_code
        return jsonify({kind: entry.to_dict()}), 200

    @bp.patch("/<int:entry_id>")
    @require_auth
    @require_capability(module, "edit")
    def update_entry_route(entry_id: int):
        try:
            data = request.get_json(silent=True) or {}
            entry = catalog_service.update_entry(kind, entry_id, **data)
            return jsonify({kind: entry.to_dict()}), 200
        except CoreError as e:
            return jsonify(e.to_dict()), e.status_code
        except Exception:
            current_app.logger.exception("Failed to update %s", kind)
            return jsonify({"error": "Internal server error"}), 500

    @bp.post("/<int:entry_id>/status")
    @require_auth
    @require_capability(module, "inactivate")
    def set_entry_status_route(entry_id: int):
        """Inactivate or explicitly reactivate. Body: status"""
        try:
            data = request.get_json(silent=True) or {}
            entry = catalog_service.set_entry_status(kind, entry_id, data.get("status"))
            return jsonify({kind: entry.to_dict()}), 200
        except CoreError as e:
            return jsonify(e.to_dict()), e.status_code
        except Exception:
            current_app.logger.exception("Failed to change %s status", kind)
            return jsonify({"error": "Internal server error"}), 500


_register_catalog_routes(categories_bp, "category", Module.CATEGORIES, "categories")
_register_catalog_routes(units_bp, "unit", Module.UNITS, "units")
