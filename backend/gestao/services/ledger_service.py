# Overview: Ledger store; bank accounts and the only code path that changes a balance.

"""
Gestao Ledger Invariants (authoritative)

- BankAccount.balance_cents changes only through record_movement, inside a
  transaction scope, together with exactly one new BankMovement.
- A DEBIT larger than the current balance raises InsufficientFunds; the
  balance is never negative.
- Every movement snapshots balance_before_cents and balance_after_cents, so
  an account can be audited without replaying its whole history:
  balance == initial + SUM(amount_delta_cents), and each movement's
  balance_before equals the previous movement's balance_after.
- Statement filtering is inclusive on both ends (end date = end of day).
"""

from __future__ import annotations

from datetime import date, datetime

from ..constants import AccountType, BankDirection, RecordStatus
from ..errors import EntityNotFound, InsufficientFunds, ValidationFailed
from ..extensions import db
from ..models import BankAccount, BankMovement
from ..time_utils import end_of_day, utcnow
from ..validation import to_cents, to_choice, to_id, to_text
from .identity_service import Actor
from .lifecycle_service import ensure_transition
from .transaction import TransactionScope, run_in_transaction


def record_movement(
    scope: TransactionScope,
    account: BankAccount,
    amount_cents: int,
    direction: str,
    reason: str | None,
    actor: Actor,
    *,
    purchase=None,
    sale=None,
    payable=None,
    receivable=None,
    occurred_at: datetime | None = None,
) -> BankMovement:
    """
    Stage a signed balance change plus its movement record.

    account must have been read through the same scope.
    """
    amount = to_cents(amount_cents, "amount_cents")
    direction = to_choice(direction, BankDirection, "direction")

    if not account.is_active:
        raise ValidationFailed(f'Bank account "{account.name}" is inactive')

    before = int(account.balance_cents or 0)
    if direction == BankDirection.DEBIT.value:
        if before < amount:
            raise InsufficientFunds(account.name, before, amount)
        delta = -amount
    else:
        delta = amount
    after = before + delta

    scope.update(account, balance_cents=after)
    return scope.add(BankMovement(
        account=account,
        direction=direction,
        amount_delta_cents=delta,
        balance_before_cents=before,
        balance_after_cents=after,
        reason=reason,
        occurred_at=occurred_at or utcnow(),
        actor_id=actor.actor_id,
        actor_name=actor.display_name,
        purchase=purchase,
        sale=sale,
        payable=payable,
        receivable=receivable,
    ))


# =============================================================================
# Bank accounts
# =============================================================================

def create_bank_account(
    *,
    name: str,
    bank: str,
    actor: Actor,
    agency: str | None = None,
    account_number: str | None = None,
    account_type: str = AccountType.CHECKING.value,
    initial_balance_cents: int = 0,
) -> BankAccount:
    """
    Open an account. The current balance starts at the initial balance;
    no movement is written for the opening amount.
    """
    name = to_text(name, "name", max_length=128)
    bank = to_text(bank, "bank", max_length=128)
    agency = to_text(agency, "agency", required=False, max_length=32)
    account_number = to_text(account_number, "account_number", required=False, max_length=32)
    account_type = to_choice(account_type, AccountType, "account_type")
    initial = to_cents(initial_balance_cents, "initial_balance_cents", allow_zero=True)

    def _op(scope: TransactionScope) -> BankAccount:
        return scope.add(BankAccount(
            name=name,
            bank=bank,
            agency=agency,
            account_number=account_number,
            account_type=account_type,
            initial_balance_cents=initial,
            balance_cents=initial,
            created_by_actor_id=actor.actor_id,
            created_by_actor_name=actor.display_name,
        ))

    return run_in_transaction(_op, label="create_bank_account")


_EDITABLE_FIELDS = {
    "name": 128,
    "bank": 128,
    "agency": 32,
    "account_number": 32,
}


def update_bank_account(account_id: int, **changes) -> BankAccount:
    """
    Edit account metadata. Balances are not editable here; use
    register_bank_movement.
    """
    forbidden = {"balance_cents", "initial_balance_cents", "status", "version_id"} & set(changes)
    if forbidden:
        raise ValidationFailed(
            f"Cannot edit {', '.join(sorted(forbidden))} directly"
        )
    unknown = set(changes) - set(_EDITABLE_FIELDS) - {"account_type"}
    if unknown:
        raise ValidationFailed(f"Unknown fields: {', '.join(sorted(unknown))}")

    clean = {}
    for field, value in changes.items():
        if field == "account_type":
            clean[field] = to_choice(value, AccountType, field)
        else:
            required = field in ("name", "bank")
            clean[field] = to_text(value, field, required=required, max_length=_EDITABLE_FIELDS[field])

    def _op(scope: TransactionScope) -> BankAccount:
        account = scope.get(BankAccount, account_id, label="Bank account")
        if clean:
            scope.update(account, **clean)
        return account

    return run_in_transaction(_op, label="update_bank_account")


def set_bank_account_status(account_id: int, status: str) -> BankAccount:
    status = to_choice(status, RecordStatus, "status")

    def _op(scope: TransactionScope) -> BankAccount:
        account = scope.get(BankAccount, account_id, label="Bank account")
        new_status = ensure_transition("bank_account", account.status, status)
        return scope.update(account, status=new_status)

    return run_in_transaction(_op, label="set_bank_account_status")


def register_bank_movement(
    *,
    account_id: int,
    amount_cents: int,
    direction: str,
    reason: str | None,
    actor: Actor,
) -> BankMovement:
    """Manual credit or debit ("change bank balance")."""
    account_id = to_id(account_id, "account_id")
    amount = to_cents(amount_cents, "amount_cents")
    direction = to_choice(direction, BankDirection, "direction")
    reason = to_text(reason, "reason", required=False)

    def _op(scope: TransactionScope) -> BankMovement:
        account = scope.get(BankAccount, account_id, label="Bank account")
        return record_movement(scope, account, amount, direction, reason, actor)

    return run_in_transaction(_op, label="register_bank_movement")


# =============================================================================
# Reads and audits
# =============================================================================

def get_bank_account(account_id: int) -> BankAccount:
    account = db.session.get(BankAccount, account_id)
    if account is None:
        raise EntityNotFound("Bank account", account_id)
    return account


def list_bank_accounts(*, status: str | None = None) -> list[BankAccount]:
    query = db.session.query(BankAccount)
    if status:
        query = query.filter(BankAccount.status == to_choice(status, RecordStatus, "status"))
    return query.order_by(BankAccount.name.asc(), BankAccount.id.asc()).all()


def list_movements(
    account_id: int,
    *,
    start: date | None = None,
    end: date | None = None,
) -> list[BankMovement]:
    """Account statement in chronological order, both bounds inclusive."""
    get_bank_account(account_id)
    if start and end and start > end:
        raise ValidationFailed("start must be on or before end")

    query = db.session.query(BankMovement).filter(BankMovement.account_id == account_id)
    if start:
        query = query.filter(BankMovement.occurred_at >= datetime.combine(start, datetime.min.time()))
    if end:
        query = query.filter(BankMovement.occurred_at <= end_of_day(end))
    return query.order_by(BankMovement.occurred_at.asc(), BankMovement.id.asc()).all()


def reconcile_account(account_id: int) -> dict:
    """
    Check the cached balance against the movement log.

    consistent is True when balance == initial + SUM(deltas) and the
    before/after snapshots form an unbroken chain.
    """
    account = get_bank_account(account_id)
    movements = (
        db.session.query(BankMovement)
        .filter(BankMovement.account_id == account_id)
        .order_by(BankMovement.id.asc())
        .all()
    )

    expected = account.initial_balance_cents
    chain_ok = True
    for movement in movements:
        if movement.balance_before_cents != expected:
            chain_ok = False
        if movement.balance_after_cents != movement.balance_before_cents + movement.amount_delta_cents:
            chain_ok = False
        expected += movement.amount_delta_cents

    replayed = account.initial_balance_cents + sum(m.amount_delta_cents for m in movements)
    return {
        "account_id": account.id,
        "name": account.name,
        "balance_cents": account.balance_cents,
        "replayed_balance_cents": replayed,
        "movement_count": len(movements),
        "chain_ok": chain_ok,
        "consistent": chain_ok and replayed == account.balance_cents and account.balance_cents >= 0,
    }


def audit_accounts() -> list[dict]:
    ids = [row[0] for row in db.session.query(BankAccount.id).order_by(BankAccount.id.asc()).all()]
    return [reconcile_account(account_id) for account_id in ids]
