"""
Transaction coordinator tests.

Verifies:
- Reads after the first write are refused
- Transactions cannot nest and never start on a dirty session
- Optimistic-lock conflicts are retried
- Exhausted retries surface as CommitConflict chained to the DB error
- Movement rows are immutable
"""

import pytest
from sqlalchemy import text
from sqlalchemy.orm.exc import StaleDataError

from gestao.errors import CommitConflict, EntityNotFound, TransactionScopeError
from gestao.models import BankMovement, ImmutableRecordError, Product, StockMovement
from gestao.services import ledger_service, stock_service
from gestao.services.transaction import run_in_transaction


def _bump_version(session, product_id):
    """Simulate a concurrent writer committing a new version of the row."""
    session.connection().execute(
        text("UPDATE products SET version_id = version_id + 1 WHERE id = :id"),
        {"id": product_id},
    )


def test_read_after_write_is_refused(db_session, product):
    def _op(scope):
        item = scope.get(Product, product.id)
        scope.update(item, name="Alcatra")
        scope.get(Product, product.id)

    with pytest.raises(TransactionScopeError):
        run_in_transaction(_op)

    assert db_session.get(Product, product.id).name == "Picanha"


def test_nested_transactions_are_refused(db_session, product):
    def _inner(scope):
        return None

    def _outer(scope):
        scope.get(Product, product.id)
        run_in_transaction(_inner)

    with pytest.raises(TransactionScopeError):
        run_in_transaction(_outer)


def test_dirty_session_is_refused(db_session, product):
    db_session.get(Product, product.id).name = "Fraldinha"

    with pytest.raises(TransactionScopeError):
        run_in_transaction(lambda scope: None)

    db_session.rollback()


def test_missing_entity_raises_not_found(db_session):
    with pytest.raises(EntityNotFound) as exc_info:
        run_in_transaction(lambda scope: scope.get(Product, 424242))

    assert exc_info.value.entity_id == 424242


def test_get_many_returns_rows_keyed_by_id(db_session, product):
    rows = run_in_transaction(lambda scope: scope.get_many(Product, [product.id, product.id]))

    assert list(rows) == [product.id]


def test_conflict_is_retried(db_session, product):
    calls = []

    def _op(scope):
        item = scope.get(Product, product.id)
        calls.append(1)
        if len(calls) == 1:
            _bump_version(scope.session, product.id)
        scope.update(item, name="Maminha")
        return item

    result = run_in_transaction(_op, attempts=3, backoff_base=0)

    assert len(calls) == 2
    assert result.name == "Maminha"
    assert db_session.get(Product, product.id).name == "Maminha"


def test_exhausted_retries_raise_commit_conflict(db_session, product):
    attempts = []

    def _op(scope):
        item = scope.get(Product, product.id)
        attempts.append(1)
        _bump_version(scope.session, product.id)
        scope.update(item, name="Cupim")

    with pytest.raises(CommitConflict) as exc_info:
        run_in_transaction(_op, attempts=3, backoff_base=0, label="rename_product")

    assert len(attempts) == 3
    assert isinstance(exc_info.value.__cause__, StaleDataError)
    assert "rename_product" in str(exc_info.value)
    assert db_session.get(Product, product.id).name == "Picanha"


def test_business_errors_are_not_retried(db_session, product):
    calls = []

    def _op(scope):
        calls.append(1)
        scope.get(Product, 999999)

    with pytest.raises(EntityNotFound):
        run_in_transaction(_op, attempts=5, backoff_base=0)

    assert len(calls) == 1


def test_stock_movements_are_immutable(db_session, product, actor):
    movement = stock_service.register_stock_movement(
        product_id=product.id, quantity=1, direction="ENTRY", reason="Entrada", actor=actor
    )

    def _edit(scope):
        row = scope.get(StockMovement, movement.id, lock=False)
        scope.update(row, reason="Edited")

    with pytest.raises(ImmutableRecordError):
        run_in_transaction(_edit)

    db_session.delete(db_session.get(StockMovement, movement.id))
    with pytest.raises(ImmutableRecordError):
        db_session.commit()
    db_session.rollback()

    assert db_session.get(StockMovement, movement.id).reason == "Entrada"


def test_bank_movements_are_immutable(db_session, account, actor):
    movement = ledger_service.register_bank_movement(
        account_id=account.id, amount_cents=10, direction="CREDIT", reason="Aporte", actor=actor
    )

    def _edit(scope):
        row = scope.get(BankMovement, movement.id, lock=False)
        scope.update(row, amount_delta_cents=999)

    with pytest.raises(ImmutableRecordError):
        run_in_transaction(_edit)

    assert ledger_service.reconcile_account(account.id)["consistent"] is True
