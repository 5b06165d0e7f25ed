"""
Ledger store tests.

Verifies:
- Opening balance is stored without a movement
- Credits/debits snapshot balance before and after
- Overdrafts are rejected with no side effects
- Statements are chronological and inclusive on both ends
"""

from datetime import date, timedelta

import pytest

from gestao.errors import EntityNotFound, InsufficientFunds, InvalidTransition, ValidationFailed
from gestao.models import BankAccount, BankMovement
from gestao.services import ledger_service
from gestao.time_utils import utcnow


def _credit(account, amount, actor, reason="Aporte"):
    return ledger_service.register_bank_movement(
        account_id=account.id, amount_cents=amount, direction="CREDIT", reason=reason, actor=actor
    )


def _debit(account, amount, actor, reason="Tarifa"):
    return ledger_service.register_bank_movement(
        account_id=account.id, amount_cents=amount, direction="DEBIT", reason=reason, actor=actor
    )


def test_opening_balance_writes_no_movement(db_session, account):
    assert account.balance_cents == 1000
    assert account.initial_balance_cents == 1000
    assert account.created_by_actor_id == "uid-ana"
    assert db_session.query(BankMovement).count() == 0


def test_movements_snapshot_balance_chain(db_session, account, actor):
    credit = _credit(account, 250, actor)
    debit = _debit(account, 400, actor)

    assert (credit.balance_before_cents, credit.balance_after_cents) == (1000, 1250)
    assert (debit.balance_before_cents, debit.balance_after_cents) == (1250, 850)
    assert debit.amount_delta_cents == -400
    assert db_session.get(BankAccount, account.id).balance_cents == 850


def test_overdraft_is_rejected(db_session, account, actor):
    with pytest.raises(InsufficientFunds) as exc_info:
        _debit(account, 1001, actor)

    assert exc_info.value.balance_cents == 1000
    assert exc_info.value.amount_cents == 1001
    assert db_session.get(BankAccount, account.id).balance_cents == 1000
    assert db_session.query(BankMovement).count() == 0


def test_debit_of_whole_balance_is_allowed(db_session, account, actor):
    _debit(account, 1000, actor)
    assert db_session.get(BankAccount, account.id).balance_cents == 0


def test_inactive_account_rejects_movements(db_session, account, actor):
    ledger_service.set_bank_account_status(account.id, "INACTIVE")

    with pytest.raises(ValidationFailed):
        _credit(account, 10, actor)


def test_status_toggle_requires_a_change(db_session, account):
    with pytest.raises(InvalidTransition):
        ledger_service.set_bank_account_status(account.id, "ACTIVE")

    ledger_service.set_bank_account_status(account.id, "INACTIVE")
    reactivated = ledger_service.set_bank_account_status(account.id, "ACTIVE")
    assert reactivated.status == "ACTIVE"


def test_balance_is_not_editable(db_session, account):
    with pytest.raises(ValidationFailed):
        ledger_service.update_bank_account(account.id, balance_cents=99999)

    updated = ledger_service.update_bank_account(account.id, name="Conta Loja", agency="0001")
    assert updated.name == "Conta Loja"
    assert updated.agency == "0001"
    assert updated.balance_cents == 1000


def test_statement_is_chronological_and_inclusive(db_session, account, actor):
    first = _credit(account, 100, actor)
    second = _debit(account, 50, actor)
    today = utcnow().date()

    statement = ledger_service.list_movements(account.id, start=today, end=today)

    assert [m.id for m in statement] == [first.id, second.id]
    assert ledger_service.list_movements(account.id, end=today - timedelta(days=1)) == []


def test_statement_rejects_inverted_range(db_session, account):
    with pytest.raises(ValidationFailed):
        ledger_service.list_movements(account.id, start=date(2026, 2, 1), end=date(2026, 1, 1))


def test_statement_of_unknown_account(db_session):
    with pytest.raises(EntityNotFound):
        ledger_service.list_movements(9999)


def test_reconcile_account(db_session, account, actor):
    _credit(account, 300, actor)
    _debit(account, 200, actor)

    report = ledger_service.reconcile_account(account.id)

    assert report["consistent"] is True
    assert report["chain_ok"] is True
    assert report["movement_count"] == 2
    assert report["replayed_balance_cents"] == 1100


def test_audit_flags_tampered_balance(db_session, account, actor):
    _credit(account, 300, actor)
    db_session.execute(
        BankAccount.__table__.update().where(BankAccount.id == account.id).values(balance_cents=5)
    )
    db_session.commit()

    rows = ledger_service.audit_accounts()

    assert [row["consistent"] for row in rows] == [False]
