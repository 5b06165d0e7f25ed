# Overview: Operating expenses; each one owes exactly one payable.

from __future__ import annotations

from datetime import date

from ..constants import ExpenseStatus, PayableStatus, PaymentTerms
from ..errors import EntityNotFound, ValidationFailed
from ..extensions import db
from ..models import BankAccount, Expense, PayableEntry
from ..time_utils import utcnow
from ..validation import to_cents, to_choice, to_date, to_optional_id, to_text
from . import register_service
from .document_service import next_document_number
from .identity_service import Actor
from .transaction import TransactionScope, run_in_transaction


def register_expense(
    *,
    description: str,
    category: str,
    amount_cents: int,
    due_date: date | str,
    actor: Actor,
    bank_account_id: int | None = None,
) -> Expense:
    """
    Register an expense (PENDING) and its single PENDING payable "1/1".

    The payable is issued today, due on the expense due date, and references
    the category.
    bank_account_id is the account the bill is expected to be paid from;
    no money moves until the payable is settled.
    """
    description = to_text(description, "description")
    category = to_text(category, "category", max_length=128)
    amount = to_cents(amount_cents, "amount_cents")
    due_date = to_date(due_date, "due_date")
    bank_account_id = to_optional_id(bank_account_id, "bank_account_id")

    plan = register_service.build_installment_plan(
        amount,
        terms=PaymentTerms.A_VISTA.value,
        document_date=due_date,
    )

    def _op(scope: TransactionScope) -> Expense:
        account = (
            scope.get(BankAccount, bank_account_id, label="Bank account", lock=False)
            if bank_account_id is not None else None
        )
        if account is not None and not account.is_active:
            raise ValidationFailed(f'Bank account "{account.name}" is inactive')
        document_number = next_document_number(scope, "EXPENSE")

        expense = scope.add(Expense(
            document_number=document_number,
            description=description,
            category=category,
            amount_cents=amount,
            due_date=due_date,
            bank_account=account,
            status=ExpenseStatus.PENDING.value,
            registered_by_id=actor.actor_id,
            registered_by_name=actor.display_name,
        ))
        register_service.create_payables(
            scope,
            plan,
            issue_date=utcnow().date(),
            expense=expense,
            reference=category,
        )
        return expense

    return run_in_transaction(_op, label="register_expense")


def update_expense(expense_id: int, **fields) -> Expense:
    """
    Edit an expense's description, category or due date.

    The amount is fixed. The due date can only move while the expense is
    PENDING and is copied to its pending payable, as is a new category.
    """
    unknown = set(fields) - {"description", "category", "due_date"}
    if unknown:
        raise ValidationFailed(f"Unknown fields: {', '.join(sorted(unknown))}")
    clean = {}
    if "description" in fields:
        clean["description"] = to_text(fields["description"], "description")
    if "category" in fields:
        clean["category"] = to_text(fields["category"], "category", max_length=128)
    if "due_date" in fields:
        clean["due_date"] = to_date(fields["due_date"], "due_date")

    def _op(scope: TransactionScope) -> Expense:
        expense = scope.get(Expense, expense_id)
        pending = scope.query(PayableEntry, expense_id=expense.id, status=PayableStatus.PENDING.value, lock=True)
        if "due_date" in clean and expense.status != ExpenseStatus.PENDING.value:
            raise ValidationFailed(f"Expense {expense.document_number} is already paid")

        if clean:
            scope.update(expense, **clean)
        for entry in pending:
            changes = {}
            if "due_date" in clean:
                changes["due_date"] = clean["due_date"]
            if "category" in clean:
                changes["reference"] = clean["category"]
            if changes:
                scope.update(entry, **changes)
        return expense

    return run_in_transaction(_op, label="update_expense")


def get_expense(expense_id: int) -> Expense:
    expense = db.session.get(Expense, expense_id)
    if expense is None:
        raise EntityNotFound("Expense", expense_id)
    return expense


def list_expenses(*, status: str | None = None) -> list[Expense]:
    query = db.session.query(Expense)
    if status:
        query = query.filter(Expense.status == to_choice(status, ExpenseStatus, "status"))
    return query.order_by(Expense.due_date.asc(), Expense.id.asc()).all()
