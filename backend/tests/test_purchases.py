"""
Purchase registration tests.

Verifies:
- A_VISTA purchases debit the account, add stock and write one PAID payable
- A_PRAZO purchases split the total into PENDING installments
- Any failure leaves every store exactly as it was
"""

from datetime import date
from decimal import Decimal

import pytest

from gestao.errors import EntityNotFound, InsufficientFunds, InvalidTransition, ValidationFailed
from gestao.models import (
    BankAccount,
    BankMovement,
    DocumentSequence,
    PayableEntry,
    Product,
    Purchase,
    StockMovement,
)
from gestao.services import ledger_service, party_service, purchase_service


def _register(supplier, account, items, actor, **kwargs):
    return purchase_service.register_purchase(
        supplier_id=supplier.id,
        invoice_number=kwargs.pop("invoice_number", "NF-123"),
        purchase_date=kwargs.pop("purchase_date", "2026-03-10"),
        items=items,
        bank_account_id=account.id if account is not None else None,
        actor=actor,
        **kwargs,
    )


def test_cash_purchase_moves_money_stock_and_payables(db_session, supplier, account, product, actor):
    purchase = _register(
        supplier, account,
        [{"product_id": product.id, "quantity": "10", "unit_cost_cents": 50}],
        actor,
    )

    assert purchase.document_number == "CMP-000001"
    assert purchase.total_cents == 500
    assert purchase.status == "ACTIVE"
    assert purchase.registered_by_id == "uid-ana"

    assert db_session.get(BankAccount, account.id).balance_cents == 500
    movement = db_session.query(BankMovement).one()
    assert movement.direction == "DEBIT"
    assert movement.purchase_id == purchase.id
    assert movement.reason == "Purchase CMP-000001 invoice NF-123"

    refreshed = db_session.get(Product, product.id)
    assert refreshed.quantity == Decimal("10")
    assert refreshed.unit_cost_cents == 50
    stock = db_session.query(StockMovement).one()
    assert stock.reason == "Purchase invoice NF-123"
    assert stock.purchase_id == purchase.id

    payable = db_session.query(PayableEntry).one()
    assert payable.status == "PAID"
    assert payable.installment_label == "1/1"
    assert payable.amount_cents == 500
    assert payable.due_date == date(2026, 3, 10)
    assert payable.settled_account_id == account.id
    assert payable.reference == "NF-123"


def test_installment_purchase_creates_pending_payables(db_session, supplier, account, product, actor):
    purchase = _register(
        supplier, account,
        [{"product_id": product.id, "quantity": "3", "unit_cost_cents": 300}],
        actor,
        payment_terms="A_PRAZO",
        installments=3,
        first_due_date="2026-01-31",
    )

    payables = (
        db_session.query(PayableEntry)
        .filter_by(purchase_id=purchase.id)
        .order_by(PayableEntry.id)
        .all()
    )
    assert [p.amount_cents for p in payables] == [300, 300, 300]
    assert [p.installment_label for p in payables] == ["1/3", "2/3", "3/3"]
    assert [p.due_date for p in payables] == [date(2026, 1, 31), date(2026, 2, 28), date(2026, 3, 31)]
    assert {p.status for p in payables} == {"PENDING"}

    # Money only moves on settlement
    assert db_session.get(BankAccount, account.id).balance_cents == 1000
    assert db_session.query(BankMovement).count() == 0
    assert db_session.get(Product, product.id).quantity == Decimal("3")


def test_installment_remainder_goes_to_last_entry(db_session, supplier, account, product, actor):
    _register(
        supplier, account,
        [{"product_id": product.id, "quantity": "1", "unit_cost_cents": 1000}],
        actor,
        payment_terms="A_PRAZO",
        installments=3,
        first_due_date="2026-04-01",
    )

    amounts = [p.amount_cents for p in db_session.query(PayableEntry).order_by(PayableEntry.id)]
    assert amounts == [333, 333, 334]


def test_insufficient_funds_rolls_back_everything(db_session, supplier, account, product, actor):
    with pytest.raises(InsufficientFunds):
        _register(
            supplier, account,
            [{"product_id": product.id, "quantity": "2", "unit_cost_cents": 600}],
            actor,
        )

    assert db_session.query(Purchase).count() == 0
    assert db_session.query(PayableEntry).count() == 0
    assert db_session.query(StockMovement).count() == 0
    assert db_session.query(DocumentSequence).count() == 0
    assert db_session.get(BankAccount, account.id).balance_cents == 1000
    assert db_session.get(Product, product.id).quantity == Decimal("0")


def test_unknown_product_rolls_back_everything(db_session, supplier, account, product, actor):
    with pytest.raises(EntityNotFound):
        _register(
            supplier, account,
            [
                {"product_id": product.id, "quantity": "1", "unit_cost_cents": 10},
                {"product_id": 9999, "quantity": "1", "unit_cost_cents": 10},
            ],
            actor,
        )

    assert db_session.query(Purchase).count() == 0
    assert db_session.get(Product, product.id).quantity == Decimal("0")


def test_missing_bank_account_is_rejected(db_session, supplier, product, actor):
    with pytest.raises(ValidationFailed):
        _register(
            supplier, None,
            [{"product_id": product.id, "quantity": "1", "unit_cost_cents": 10}],
            actor,
        )


def test_unknown_bank_account_rolls_back_everything(db_session, supplier, product, actor):
    with pytest.raises(EntityNotFound):
        purchase_service.register_purchase(
            supplier_id=supplier.id,
            invoice_number="NF-404",
            purchase_date="2026-03-10",
            items=[{"product_id": product.id, "quantity": "3", "unit_cost_cents": 10}],
            bank_account_id=424242,
            actor=actor,
        )

    assert db_session.query(Purchase).count() == 0
    assert db_session.query(PayableEntry).count() == 0
    assert db_session.query(StockMovement).count() == 0
    assert db_session.query(DocumentSequence).count() == 0
    assert db_session.get(Product, product.id).quantity == Decimal("0")


@pytest.mark.parametrize("terms", [
    {"payment_terms": "A_VISTA"},
    {"payment_terms": "A_PRAZO", "installments": 2, "first_due_date": "2026-04-10"},
])
def test_inactive_bank_account_is_rejected(db_session, supplier, account, product, actor, terms):
    ledger_service.set_bank_account_status(account.id, "INACTIVE")

    with pytest.raises(ValidationFailed, match="inactive"):
        _register(
            supplier, account,
            [{"product_id": product.id, "quantity": "1", "unit_cost_cents": 10}],
            actor,
            **terms,
        )

    assert db_session.query(Purchase).count() == 0
    assert db_session.query(PayableEntry).count() == 0


def test_empty_items_are_rejected(db_session, supplier, account, actor):
    with pytest.raises(ValidationFailed):
        _register(supplier, account, [], actor)


def test_installments_require_schedule(db_session, supplier, account, product, actor):
    with pytest.raises(ValidationFailed):
        _register(
            supplier, account,
            [{"product_id": product.id, "quantity": "1", "unit_cost_cents": 10}],
            actor,
            payment_terms="A_PRAZO",
            installments=2,
        )


def test_inactive_supplier_is_rejected(db_session, supplier, account, product, actor):
    party_service.set_party_status("supplier", supplier.id, "INACTIVE")

    with pytest.raises(ValidationFailed):
        _register(
            supplier, account,
            [{"product_id": product.id, "quantity": "1", "unit_cost_cents": 10}],
            actor,
        )


def test_document_numbers_are_sequential(db_session, supplier, account, product, actor):
    items = [{"product_id": product.id, "quantity": "1", "unit_cost_cents": 10}]
    first = _register(supplier, account, items, actor, invoice_number="NF-1")
    second = _register(supplier, account, items, actor, invoice_number="NF-2")

    assert (first.document_number, second.document_number) == ("CMP-000001", "CMP-000002")


def test_inactivation_does_not_reverse_effects(db_session, supplier, account, product, actor):
    purchase = _register(
        supplier, account,
        [{"product_id": product.id, "quantity": "4", "unit_cost_cents": 25}],
        actor,
    )

    inactive = purchase_service.inactivate_purchase(purchase.id)

    assert inactive.status == "INACTIVE"
    assert db_session.get(BankAccount, account.id).balance_cents == 900
    assert db_session.get(Product, product.id).quantity == Decimal("4")
    assert db_session.query(PayableEntry).one().status == "PAID"

    with pytest.raises(InvalidTransition):
        purchase_service.inactivate_purchase(purchase.id)


def test_list_purchases_filters_by_status(db_session, supplier, account, product, actor):
    items = [{"product_id": product.id, "quantity": "1", "unit_cost_cents": 10}]
    keep = _register(supplier, account, items, actor, invoice_number="NF-1")
    drop = _register(supplier, account, items, actor, invoice_number="NF-2")
    purchase_service.inactivate_purchase(drop.id)

    active = purchase_service.list_purchases(status="ACTIVE")

    assert [p.id for p in active] == [keep.id]
