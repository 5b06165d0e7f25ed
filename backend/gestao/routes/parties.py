# Overview: Flask API routes for suppliers and clients.

from flask import Blueprint, request, jsonify, current_app

from ..errors import CoreError
from ..permissions import Module
from ..services import party_service
from ..decorators import require_auth, require_capability


suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")
clients_bp = Blueprint("clients", __name__, url_prefix="/api/clients")


def _register_party_routes(bp: Blueprint, kind: str, module: str, plural: str) -> None:
    """Same CRUD + status surface for both party kinds."""

    @bp.post("")
    @require_auth
    @require_capability(module, "create")
    def create_party_route():
        try:
            data = request.get_json(silent=True) or {}
            party = party_service.create_party(kind, **data)
            return jsonify({kind: party.to_dict()}), 201
        except CoreError as e:
            return jsonify(e.to_dict()), e.status_code
        except Exception:
            current_app.logger.exception("Failed to create %s", kind)
            return jsonify({"error": "Internal server error"}), 500

    @bp.get("")
    @require_auth
    @require_capability(module, "view")
    def list_parties_route():
        try:
            parties = party_service.list_parties(kind, status=request.args.get("status"))
            return jsonify({plural: [p.to_dict() for p in parties]}), 200
        except CoreError as e:
            return jsonify(e.to_dict()), e.status_code

    @bp.get("/<int:party_id>")
    @require_auth
    @require_capability(module, "view")
    def get_party_route(party_id: int):
        try:
            party = party_service.get_party(kind, party_id)
        except CoreError as e:
            return jsonify(e.to_dict()), e.status_code
        return jsonify({kind: party.to_dict()}), 200

    @bp.patch("/<int:party_id>")
    @require_auth
    @require_capability(module, "edit")
    def update_party_route(party_id: int):
        try:
            data = request.get_json(silent=True) or {}
            party = party_service.update_party(kind, party_id, **data)
            return jsonify({kind: party.to_dict()}), 200
        except CoreError as e:
            return jsonify(e.to_dict()), e.status_code
        except Exception:
            current_app.logger.exception("Failed to update %s", kind)
            return jsonify({"error": "Internal server error"}), 500

    @bp.post("/<int:party_id>/status")
    @require_auth
    @require_capability(module, "inactivate")
    def set_party_status_route(party_id: int):
        """Inactivate or explicitly reactivate. Body: status"""
        try:
            data = request.get_json(silent=True) or {}
            party = party_service.set_party_status(kind, party_id, data.get("status"))
            return jsonify({kind: party.to_dict()}), 200
        except CoreError as e:
            return jsonify(e.to_dict()), e.status_code
        except Exception:
            current_app.logger.exception("Failed to change %s status", kind)
            return jsonify({"error": "Internal server error"}), 500


_register_party_routes(suppliers_bp, "supplier", Module.SUPPLIERS, "suppliers")
_register_party_routes(clients_bp, "client", Module.CLIENTS, "clients")
