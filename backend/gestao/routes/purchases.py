# Overview: Flask API routes for purchases; parses input and returns JSON responses.

"""Purchase API routes with capability enforcement"""

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import CoreError
from ..permissions import Module
from ..services import purchase_service
from ..decorators import require_auth, require_capability


purchases_bp = Blueprint("purchases", __name__, url_prefix="/api/purchases")


@purchases_bp.post("")
@require_auth
@require_capability(Module.PURCHASES, "create")
def register_purchase_route():
    """
    Register a purchase with its stock entries and payment effects.

    Body:
        supplier_id, invoice_number, purchase_date (YYYY-MM-DD),
        bank_account_id, payment_terms (A_VISTA | A_PRAZO),
        installments, first_due_date (A_PRAZO only),
        items: [{product_id, quantity, unit_cost_cents}]
    """
    try:
        data = request.get_json(silent=True) or {}
        purchase = purchase_service.register_purchase(
            supplier_id=data.get("supplier_id"),
            invoice_number=data.get("invoice_number"),
            purchase_date=data.get("purchase_date"),
            items=data.get("items"),
            bank_account_id=data.get("bank_account_id"),
            payment_terms=data.get("payment_terms", "A_VISTA"),
            installments=data.get("installments"),
            first_due_date=data.get("first_due_date"),
            actor=g.actor,
        )
        return jsonify({
            "purchase": purchase.to_dict(),
            "payables": [entry.to_dict() for entry in purchase.payables],
        }), 201

    except CoreError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to register purchase")
        return jsonify({"error": "Internal server error"}), 500


@purchases_bp.get("")
@require_auth
@require_capability(Module.PURCHASES, "view")
def list_purchases_route():
    try:
        purchases = purchase_service.list_purchases(status=request.args.get("status"))
        return jsonify({"purchases": [p.to_dict(include_items=False) for p in purchases]}), 200
    except CoreError as e:
        return jsonify(e.to_dict()), e.status_code


@purchases_bp.get("/<int:purchase_id>")
@require_auth
@require_capability(Module.PURCHASES, "view")
def get_purchase_route(purchase_id: int):
    try:
        purchase = purchase_service.get_purchase(purchase_id)
    except CoreError as e:
        return jsonify(e.to_dict()), e.status_code
    return jsonify({
        "purchase": purchase.to_dict(),
        "payables": [entry.to_dict() for entry in purchase.payables],
    }), 200


@purchases_bp.post("/<int:purchase_id>/inactivate")
@require_auth
@require_capability(Module.PURCHASES, "inactivate")
def inactivate_purchase_route(purchase_id: int):
    """Status flag only: stock and money already moved are not reversed."""
    try:
        purchase = purchase_service.inactivate_purchase(purchase_id)
        return jsonify({"purchase": purchase.to_dict(include_items=False)}), 200
    except CoreError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to inactivate purchase")
        return jsonify({"error": "Internal server error"}), 500
