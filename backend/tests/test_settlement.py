"""
Payable/receivable register tests.

Verifies:
- Expenses create one PENDING payable issued today
- Settling debits the account once; a second attempt is rejected
- A failed settlement leaves the entry PENDING and the balance untouched
- Installment plans split cents exactly
"""

from datetime import date

import pytest

from gestao.errors import EntityNotFound, EntryAlreadySettled, InsufficientFunds, ValidationFailed
from gestao.models import BankAccount, BankMovement, Expense, PayableEntry
from gestao.services import expense_service, ledger_service, register_service
from gestao.time_utils import utcnow


def _expense(actor, amount_cents=200, **kwargs):
    return expense_service.register_expense(
        description="Conta de energia",
        category="Utilities",
        amount_cents=amount_cents,
        due_date="2026-07-10",
        actor=actor,
        **kwargs,
    )


def test_expense_creates_single_pending_payable(db_session, actor):
    expense = _expense(actor)

    assert expense.status == "PENDING"
    assert expense.document_number == "DSP-000001"
    payable = db_session.query(PayableEntry).one()
    assert payable.expense_id == expense.id
    assert payable.purchase_id is None
    assert payable.status == "PENDING"
    assert payable.installment_label == "1/1"
    assert payable.amount_cents == 200
    assert payable.due_date == date(2026, 7, 10)
    assert payable.issue_date == utcnow().date()
    assert payable.reference == "Utilities"


def test_expense_rejects_inactive_account(db_session, account, actor):
    ledger_service.set_bank_account_status(account.id, "INACTIVE")

    with pytest.raises(ValidationFailed, match="inactive"):
        _expense(actor, bank_account_id=account.id)

    assert db_session.query(Expense).count() == 0
    assert db_session.query(PayableEntry).count() == 0


def test_settling_payable_debits_account_and_pays_expense(db_session, account, actor):
    expense = _expense(actor)
    payable = db_session.query(PayableEntry).one()

    settled = register_service.settle_payable(payable.id, account.id, actor)

    assert settled.status == "PAID"
    assert settled.settled_account_id == account.id
    assert settled.settled_by_id == "uid-ana"
    assert settled.settled_at is not None
    assert db_session.get(Expense, expense.id).status == "PAID"
    assert db_session.get(BankAccount, account.id).balance_cents == 800

    movement = db_session.query(BankMovement).one()
    assert movement.payable_id == payable.id
    assert movement.amount_delta_cents == -200


def test_settling_twice_is_rejected(db_session, account, actor):
    _expense(actor)
    payable = db_session.query(PayableEntry).one()
    register_service.settle_payable(payable.id, account.id, actor)

    with pytest.raises(EntryAlreadySettled):
        register_service.settle_payable(payable.id, account.id, actor)

    assert db_session.query(BankMovement).count() == 1
    assert db_session.get(BankAccount, account.id).balance_cents == 800


def test_paying_more_than_balance_leaves_entry_pending(db_session, actor):
    poor = ledger_service.create_bank_account(
        name="Caixa", bank="Interno", account_type="CASH", actor=actor, initial_balance_cents=150
    )
    _expense(actor, amount_cents=200)
    payable = db_session.query(PayableEntry).one()

    with pytest.raises(InsufficientFunds):
        register_service.settle_payable(payable.id, poor.id, actor)

    assert db_session.get(PayableEntry, payable.id).status == "PENDING"
    assert db_session.get(BankAccount, poor.id).balance_cents == 150
    assert db_session.query(BankMovement).count() == 0


def test_settling_unknown_entry(db_session, account, actor):
    with pytest.raises(EntityNotFound):
        register_service.settle_payable(9999, account.id, actor)
    with pytest.raises(EntityNotFound):
        register_service.settle_receivable(9999, account.id, actor)


def test_list_payables_by_status(db_session, account, actor):
    _expense(actor, amount_cents=100)
    _expense(actor, amount_cents=300)
    first = db_session.query(PayableEntry).order_by(PayableEntry.id).first()
    register_service.settle_payable(first.id, account.id, actor)

    pending = register_service.list_payables(status="PENDING")

    assert [p.amount_cents for p in pending] == [300]
    assert len(register_service.list_payables()) == 2


# =============================================================================
# Installment plans
# =============================================================================


def test_split_amount_gives_remainder_to_last():
    assert register_service.split_amount(1000, 3) == [333, 333, 334]
    assert register_service.split_amount(900, 3) == [300, 300, 300]


def test_split_amount_rejects_zero_parts():
    with pytest.raises(ValidationFailed):
        register_service.split_amount(2, 3)


def test_cash_plan_is_single_entry_at_document_date():
    plan = register_service.build_installment_plan(
        500, terms="A_VISTA", document_date=date(2026, 1, 15)
    )

    assert plan == [register_service.Installment("1/1", 500, date(2026, 1, 15))]


def test_installment_plan_due_dates_follow_months():
    plan = register_service.build_installment_plan(
        600,
        terms="A_PRAZO",
        document_date=date(2026, 1, 1),
        installments=3,
        first_due_date=date(2026, 11, 30),
    )

    assert [i.due_date for i in plan] == [date(2026, 11, 30), date(2026, 12, 30), date(2027, 1, 30)]
    assert [i.label for i in plan] == ["1/3", "2/3", "3/3"]
