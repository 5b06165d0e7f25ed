# Overview: Flask API routes for bank accounts, expenses, payables and receivables.

"""Finance API routes with capability enforcement"""

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import CoreError
from ..permissions import Module
from ..services import expense_service, ledger_service, register_service
from ..decorators import require_auth, require_capability
from ..validation import to_optional_date


bank_accounts_bp = Blueprint("bank_accounts", __name__, url_prefix="/api/bank-accounts")
expenses_bp = Blueprint("expenses", __name__, url_prefix="/api/expenses")
payables_bp = Blueprint("payables", __name__, url_prefix="/api/payables")
receivables_bp = Blueprint("receivables", __name__, url_prefix="/api/receivables")


# =============================================================================
# Bank accounts
# =============================================================================

@bank_accounts_bp.post("")
@require_auth
@require_capability(Module.FINANCE, "create")
def create_bank_account_route():
    try:
        data = request.get_json(silent=True) or {}
        account = ledger_service.create_bank_account(
            name=data.get("name"),
            bank=data.get("bank"),
            agency=data.get("agency"),
            account_number=data.get("account_number"),
            account_type=data.get("account_type", "CHECKING"),
            initial_balance_cents=data.get("initial_balance_cents", 0),
            actor=g.actor,
        )
        return jsonify({"bank_account": account.to_dict()}), 201
    except CoreError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create bank account")
        return jsonify({"error": "Internal server error"}), 500


@bank_accounts_bp.get("")
@require_auth
@require_capability(Module.FINANCE, "view")
def list_bank_accounts_route():
    try:
        accounts = ledger_service.list_bank_accounts(status=request.args.get("status"))
        return jsonify({"bank_accounts": [a.to_dict() for a in accounts]}), 200
    except CoreError as e:
        return jsonify(e.to_dict()), e.status_code


@bank_accounts_bp.get("/<int:account_id>")
@require_auth
@require_capability(Module.FINANCE, "view")
def get_bank_account_route(account_id: int):
    try:
        account = ledger_service.get_bank_account(account_id)
    except CoreError as e:
        return jsonify(e.to_dict()), e.status_code
    return jsonify({"bank_account": account.to_dict()}), 200


@bank_accounts_bp.patch("/<int:account_id>")
@require_auth
@require_capability(Module.FINANCE, "edit")
def update_bank_account_route(account_id: int):
    """Metadata only; balances change through movements."""
    try:
        data = request.get_json(silent=True) or {}
        account = ledger_service.update_bank_account(account_id, **data)
        return jsonify({"bank_account": account.to_dict()}), 200
    except CoreError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update bank account")
        return jsonify({"error": "Internal server error"}), 500


@bank_accounts_bp.post("/<int:account_id>/status")
@require_auth
@require_capability(Module.FINANCE, "inactivate")
def set_bank_account_status_route(account_id: int):
    try:
        data = request.get_json(silent=True) or {}
        account = ledger_service.set_bank_account_status(account_id, data.get("status"))
        return jsonify({"bank_account": account.to_dict()}), 200
    except CoreError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to change bank account status")
        return jsonify({"error": "Internal server error"}), 500


@bank_accounts_bp.post("/<int:account_id>/movements")
@require_auth
@require_capability(Module.FINANCE, "edit")
def register_bank_movement_route(account_id: int):
    """
    Manual credit or debit.

    Body: amount_cents, direction (CREDIT | DEBIT), reason
    """
    try:
        data = request.get_json(silent=True) or {}
        movement = ledger_service.register_bank_movement(
            account_id=account_id,
            amount_cents=data.get("amount_cents"),
            direction=data.get("direction"),
            reason=data.get("reason"),
            actor=g.actor,
        )
        return jsonify({
            "movement": movement.to_dict(),
            "bank_account": movement.account.to_dict(),
        }), 201
    except CoreError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to register bank movement")
        return jsonify({"error": "Internal server error"}), 500


@bank_accounts_bp.get("/<int:account_id>/movements")
@require_auth
@require_capability(Module.FINANCE, "view")
def list_bank_movements_route(account_id: int):
    """Statement; start and end (YYYY-MM-DD) are inclusive."""
    try:
        start = to_optional_date(request.args.get("start"), "start")
        end = to_optional_date(request.args.get("end"), "end")
        movements = ledger_service.list_movements(account_id, start=start, end=end)
        return jsonify({"movements": [m.to_dict() for m in movements]}), 200
    except CoreError as e:
        return jsonify(e.to_dict()), e.status_code


@bank_accounts_bp.get("/<int:account_id>/reconcile")
@require_auth
@require_capability(Module.FINANCE, "view")
def reconcile_bank_account_route(account_id: int):
    try:
        return jsonify({"reconciliation": ledger_service.reconcile_account(account_id)}), 200
    except CoreError as e:
        return jsonify(e.to_dict()), e.status_code


# =============================================================================
# Expenses
# =============================================================================

@expenses_bp.post("")
@require_auth
@require_capability(Module.FINANCE, "create")
def register_expense_route():
    try:
        data = request.get_json(silent=True) or {}
        expense = expense_service.register_expense(
            description=data.get("description"),
            category=data.get("category"),
            amount_cents=data.get("amount_cents"),
            due_date=data.get("due_date"),
            bank_account_id=data.get("bank_account_id"),
            actor=g.actor,
        )
        return jsonify({
            "expense": expense.to_dict(),
            "payables": [entry.to_dict() for entry in expense.payables],
        }), 201
    except CoreError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to register expense")
        return jsonify({"error": "Internal server error"}), 500


@expenses_bp.get("")
@require_auth
@require_capability(Module.FINANCE, "view")
def list_expenses_route():
    try:
        expenses = expense_service.list_expenses(status=request.args.get("status"))
        return jsonify({"expenses": [e.to_dict() for e in expenses]}), 200
    except CoreError as e:
        return jsonify(e.to_dict()), e.status_code


@expenses_bp.get("/<int:expense_id>")
@require_auth
@require_capability(Module.FINANCE, "view")
def get_expense_route(expense_id: int):
    try:
        expense = expense_service.get_expense(expense_id)
    except CoreError as e:
        return jsonify(e.to_dict()), e.status_code
    return jsonify({
        "expense": expense.to_dict(),
        "payables": [entry.to_dict() for entry in expense.payables],
    }), 200


@expenses_bp.patch("/<int:expense_id>")
@require_auth
@require_capability(Module.FINANCE, "edit")
def update_expense_route(expense_id: int):
    try:
        data = request.get_json(silent=True) or {}
        expense = expense_service.update_expense(expense_id, **data)
        return jsonify({
            "expense": expense.to_dict(),
            "payables": [entry.to_dict() for entry in expense.payables],
        }), 200
    except CoreError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update expense")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# Payables / receivables
# =============================================================================

@payables_bp.get("")
@require_auth
@require_capability(Module.FINANCE, "view")
def list_payables_route():
    try:
        entries = register_service.list_payables(status=request.args.get("status"))
        return jsonify({"payables": [entry.to_dict() for entry in entries]}), 200
    except CoreError as e:
        return jsonify(e.to_dict()), e.status_code


@payables_bp.post("/<int:entry_id>/settle")
@require_auth
@require_capability(Module.FINANCE, "edit")
def settle_payable_route(entry_id: int):
    """Pay a bill. Body: bank_account_id"""
    try:
        data = request.get_json(silent=True) or {}
        entry = register_service.settle_payable(entry_id, data.get("bank_account_id"), g.actor)
        return jsonify({
            "payable": entry.to_dict(),
            "bank_account": entry.settled_account.to_dict(),
        }), 200
    except CoreError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to settle payable")
        return jsonify({"error": "Internal server error"}), 500


@receivables_bp.get("")
@require_auth
@require_capability(Module.FINANCE, "view")
def list_receivables_route():
    try:
        entries = register_service.list_receivables(status=request.args.get("status"))
        return jsonify({"receivables": [entry.to_dict() for entry in entries]}), 200
    except CoreError as e:
        return jsonify(e.to_dict()), e.status_code


@receivables_bp.post("/<int:entry_id>/settle")
@require_auth
@require_capability(Module.FINANCE, "edit")
def settle_receivable_route(entry_id: int):
    """Receive an installment. Body: bank_account_id"""
    try:
        data = request.get_json(silent=True) or {}
        entry = register_service.settle_receivable(entry_id, data.get("bank_account_id"), g.actor)
        return jsonify({
            "receivable": entry.to_dict(),
            "bank_account": entry.settled_account.to_dict(),
        }), 200
    except CoreError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to settle receivable")
        return jsonify({"error": "Internal server error"}), 500
