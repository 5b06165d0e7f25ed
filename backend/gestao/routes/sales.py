# Overview: Flask API routes for sales; parses input and returns JSON responses.

"""Sales API routes with capability enforcement"""

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import CoreError
from ..permissions import Module
from ..services import sale_service
from ..decorators import require_auth, require_capability


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
@require_auth
@require_capability(Module.SALES, "create")
def register_sale_route():
    """
    Register a sale with its stock exits and receivables.

    Body:
        client_id, sale_date, payment_method, payment_terms,
        bank_account_id (required for A_VISTA), installments,
        first_due_date, card_fee_cents,
        items: [{product_id, quantity, unit_price_cents}]

    409 with product/current/requested when a line exceeds stock.
    """
    try:
        data = request.get_json(silent=True) or {}
        sale = sale_service.register_sale(
            client_id=data.get("client_id"),
            sale_date=data.get("sale_date"),
            items=data.get("items"),
            payment_method=data.get("payment_method"),
            payment_terms=data.get("payment_terms", "A_VISTA"),
            bank_account_id=data.get("bank_account_id"),
            installments=data.get("installments"),
            first_due_date=data.get("first_due_date"),
            card_fee_cents=data.get("card_fee_cents", 0),
            actor=g.actor,
        )
        return jsonify({
            "sale": sale.to_dict(),
            "receivables": [entry.to_dict() for entry in sale.receivables],
        }), 201

    except CoreError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to register sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("")
@require_auth
@require_capability(Module.SALES, "view")
def list_sales_route():
    try:
        sales = sale_service.list_sales(status=request.args.get("status"))
        return jsonify({"sales": [s.to_dict(include_items=False) for s in sales]}), 200
    except CoreError as e:
        return jsonify(e.to_dict()), e.status_code


@sales_bp.get("/<int:sale_id>")
@require_auth
@require_capability(Module.SALES, "view")
def get_sale_route(sale_id: int):
    try:
        sale = sale_service.get_sale(sale_id)
    except CoreError as e:
        return jsonify(e.to_dict()), e.status_code
    return jsonify({
        "sale": sale.to_dict(),
        "receivables": [entry.to_dict() for entry in sale.receivables],
    }), 200


@sales_bp.patch("/<int:sale_id>")
@require_auth
@require_capability(Module.SALES, "edit")
def update_sale_route(sale_id: int):
    try:
        data = request.get_json(silent=True) or {}
        sale = sale_service.update_sale(sale_id, **data)
        return jsonify({"sale": sale.to_dict(include_items=False)}), 200
    except CoreError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("/<int:sale_id>/inactivate")
@require_auth
@require_capability(Module.SALES, "inactivate")
def inactivate_sale_route(sale_id: int):
    try:
        sale = sale_service.inactivate_sale(sale_id)
        return jsonify({"sale": sale.to_dict(include_items=False)}), 200
    except CoreError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to inactivate sale")
        return jsonify({"error": "Internal server error"}), 500
