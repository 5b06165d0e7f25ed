"""
Concurrent writer tests.

Two threads, each with its own app context and session, read the same
account (or product) and only then race to debit it. The database is a
file so both sessions see each other's commits.

Verifies:
- Two debits that together would overdraw an account: exactly one succeeds
- Two stock exits that together exceed the on-hand quantity: exactly one succeeds
- The loser re-reads the committed state and fails with the business error
"""

import threading
from decimal import Decimal

import pytest

from gestao import create_app
from gestao.errors import CoreError
from gestao.extensions import db
from gestao.models import BankAccount, BankMovement, Product, StockMovement
from gestao.services import ledger_service, products_service, stock_service
from gestao.services.identity_service import Actor
from gestao.services.transaction import run_in_transaction

ANA = Actor(actor_id="uid-ana", display_name="Ana")
BIA = Actor(actor_id="uid-bia", display_name="Bia")


@pytest.fixture
def file_app(tmp_path):
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'gestao.db'}",
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'TRANSACTION_RETRY_ATTEMPTS': 5,
        'TRANSACTION_RETRY_BACKOFF': 0,
    })
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.drop_all()
        db.engine.dispose()


def _race(app, model, entity_id, step):
    """
    Run step(scope, row, actor) in two threads that both finish reading
    before either writes. Returns one outcome per thread.
    """
    barrier = threading.Barrier(2, timeout=10)
    outcomes = []
    lock = threading.Lock()

    def _worker(actor):
        attempts = []

        def _op(scope):
            row = scope.get(model, entity_id)
            attempts.append(1)
            if len(attempts) == 1:
                barrier.wait()
            return step(scope, row, actor)

        with app.app_context():
            try:
                run_in_transaction(_op, label=f"race_{actor.actor_id}")
                outcome = "ok"
            except CoreError as exc:
                outcome = type(exc).__name__
            except Exception as exc:
                outcome = repr(exc)
        with lock:
            outcomes.append(outcome)

    threads = [threading.Thread(target=_worker, args=(actor,)) for actor in (ANA, BIA)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)
    return sorted(outcomes)


def test_concurrent_debits_cannot_overdraw(file_app):
    with file_app.app_context():
        account = ledger_service.create_bank_account(
            name="Conta", bank="Banco", actor=ANA, initial_balance_cents=1000
        )
        account_id = account.id

    def _debit(scope, account, actor):
        return ledger_service.record_movement(scope, account, 700, "DEBIT", "Pagamento", actor)

    outcomes = _race(file_app, BankAccount, account_id, _debit)

    assert outcomes == ["InsufficientFunds", "ok"]
    with file_app.app_context():
        assert db.session.get(BankAccount, account_id).balance_cents == 300
        assert db.session.query(BankMovement).filter_by(account_id=account_id).count() == 1
        assert ledger_service.reconcile_account(account_id)["consistent"] is True


def test_concurrent_exits_cannot_go_negative(file_app):
    with file_app.app_context():
        product = products_service.create_product(name="Picanha", sale_price_cents=500)
        stock_service.register_stock_movement(
            product_id=product.id, quantity=5, direction="ENTRY", reason="Inventario", actor=ANA
        )
        product_id = product.id

    def _exit(scope, product, actor):
        return stock_service.record_movement(scope, product, Decimal("4"), "EXIT", "Venda", actor)

    outcomes = _race(file_app, Product, product_id, _exit)

    assert outcomes == ["InsufficientStock", "ok"]
    with file_app.app_context():
        assert db.session.get(Product, product_id).quantity == Decimal("1")
        assert db.session.query(StockMovement).filter_by(product_id=product_id).count() == 2
        assert stock_service.reconcile_product(product_id)["consistent"] is True
