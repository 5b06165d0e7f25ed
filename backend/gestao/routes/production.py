# Overview: Flask API routes for slaughter records and production runs.

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import CoreError
from ..permissions import Module
from ..services import abate_service, production_service
from ..decorators import require_auth, require_capability


abates_bp = Blueprint("abates", __name__, url_prefix="/api/abates")
production_bp = Blueprint("production", __name__, url_prefix="/api/production")


# =============================================================================
# Abates
# =============================================================================

@abates_bp.post("")
@require_auth
@require_capability(Module.ABATES, "create")
def register_abate_route():
    try:
        data = request.get_json(silent=True) or {}
        abate = abate_service.register_abate(
            slaughter_date=data.get("slaughter_date"),
            total_animals=data.get("total_animals"),
            condemned=data.get("condemned", 0),
            responsible_id=data.get("responsible_id"),
            purchase_id=data.get("purchase_id"),
            actor=g.actor,
        )
        return jsonify({"abate": abate.to_dict()}), 201
    except CoreError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to register abate")
        return jsonify({"error": "Internal server error"}), 500


@abates_bp.get("")
@require_auth
@require_capability(Module.ABATES, "view")
def list_abates_route():
    try:
        abates = abate_service.list_abates(status=request.args.get("status"))
        return jsonify({"abates": [a.to_dict() for a in abates]}), 200
    except CoreError as e:
        return jsonify(e.to_dict()), e.status_code


@abates_bp.get("/<int:abate_id>")
@require_auth
@require_capability(Module.ABATES, "view")
def get_abate_route(abate_id: int):
    try:
        abate = abate_service.get_abate(abate_id)
    except CoreError as e:
        return jsonify(e.to_dict()), e.status_code
    return jsonify({"abate": abate.to_dict()}), 200


@abates_bp.patch("/<int:abate_id>")
@require_auth
@require_capability(Module.ABATES, "edit")
def update_abate_route(abate_id: int):
    try:
        data = request.get_json(silent=True) or {}
        abate = abate_service.update_abate(abate_id, **data)
        return jsonify({"abate": abate.to_dict()}), 200
    except CoreError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update abate")
        return jsonify({"error": "Internal server error"}), 500


@abates_bp.post("/<int:abate_id>/inactivate")
@require_auth
@require_capability(Module.ABATES, "inactivate")
def inactivate_abate_route(abate_id: int):
    try:
        abate = abate_service.inactivate_abate(abate_id)
        return jsonify({"abate": abate.to_dict()}), 200
    except CoreError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to inactivate abate")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# Production runs
# =============================================================================

@production_bp.post("")
@require_auth
@require_capability(Module.PRODUCTION, "create")
def register_production_route():
    """
    Register a production run.

    Body:
        production_date, responsible_id, abate_id, lot, description,
        items: [{product_id, quantity, loss_quantity}]
    """
    try:
        data = request.get_json(silent=True) or {}
        run = production_service.register_production(
            production_date=data.get("production_date"),
            responsible_id=data.get("responsible_id"),
            abate_id=data.get("abate_id"),
            items=data.get("items"),
            lot=data.get("lot"),
            description=data.get("description"),
            actor=g.actor,
        )
        return jsonify({"production": run.to_dict()}), 201
    except CoreError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to register production")
        return jsonify({"error": "Internal server error"}), 500


@production_bp.get("")
@require_auth
@require_capability(Module.PRODUCTION, "view")
def list_production_route():
    try:
        runs = production_service.list_production(status=request.args.get("status"))
        return jsonify({"production": [r.to_dict(include_items=False) for r in runs]}), 200
    except CoreError as e:
        return jsonify(e.to_dict()), e.status_code


@production_bp.get("/<int:run_id>")
@require_auth
@require_capability(Module.PRODUCTION, "view")
def get_production_route(run_id: int):
    try:
        run = production_service.get_production(run_id)
    except CoreError as e:
        return jsonify(e.to_dict()), e.status_code
    return jsonify({"production": run.to_dict()}), 200


@production_bp.patch("/<int:run_id>")
@require_auth
@require_capability(Module.PRODUCTION, "edit")
def update_production_route(run_id: int):
    try:
        data = request.get_json(silent=True) or {}
        run = production_service.update_production(run_id, **data)
        return jsonify({"production": run.to_dict(include_items=False)}), 200
    except CoreError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update production run")
        return jsonify({"error": "Internal server error"}), 500


@production_bp.post("/<int:run_id>/inactivate")
@require_auth
@require_capability(Module.PRODUCTION, "inactivate")
def inactivate_production_route(run_id: int):
    try:
        run = production_service.inactivate_production(run_id)
        return jsonify({"production": run.to_dict(include_items=False)}), 200
    except CoreError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to inactivate production run")
        return jsonify({"error": "Internal server error"}), 500
