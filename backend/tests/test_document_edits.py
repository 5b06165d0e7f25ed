"""
Document edit tests.

Verifies:
- Abates, production runs, expenses and sales accept header edits
- Edits never move stock or money
- Inactive documents cannot be edited
- An expense's due date and category follow through to its pending payable
"""

from datetime import date
from decimal import Decimal

import pytest

from gestao.errors import ValidationFailed
from gestao.models import BankAccount, BankMovement, PayableEntry, Product, StockMovement
from gestao.services import (
    abate_service,
    expense_service,
    production_service,
    products_service,
    purchase_service,
    register_service,
    sale_service,
    stock_service,
)


@pytest.fixture
def abate(db_session, supplier, account, actor):
    cattle = products_service.create_product(name="Boi vivo", product_type="RAW_MATERIAL")
    purchase = purchase_service.register_purchase(
        supplier_id=supplier.id,
        invoice_number="NF-901",
        purchase_date="2026-08-01",
        items=[{"product_id": cattle.id, "quantity": "3", "unit_cost_cents": 100}],
        bank_account_id=account.id,
        actor=actor,
    )
    return abate_service.register_abate(
        slaughter_date="2026-08-02",
        total_animals=3,
        condemned=1,
        responsible_id="uid-ana",
        purchase_id=purchase.id,
        actor=actor,
    )


@pytest.fixture
def expense(db_session, actor):
    return expense_service.register_expense(
        description="Conta de agua",
        category="Utilities",
        amount_cents=120,
        due_date="2026-07-10",
        actor=actor,
    )


# =============================================================================
# Abates / production
# =============================================================================


def test_update_abate_fields(db_session, abate):
    updated = abate_service.update_abate(abate.id, total_animals=4, condemned=2, slaughter_date="2026-08-03")

    assert updated.total_animals == 4
    assert updated.condemned == 2
    assert updated.slaughter_date == date(2026, 8, 3)


def test_update_abate_checks_condemned_against_stored_total(db_session, abate):
    with pytest.raises(ValidationFailed, match="condemned cannot exceed"):
        abate_service.update_abate(abate.id, condemned=4)

    assert abate_service.get_abate(abate.id).condemned == 1


def test_update_abate_rejects_purchase_change(db_session, abate):
    with pytest.raises(ValidationFailed, match="Unknown fields"):
        abate_service.update_abate(abate.id, purchase_id=1)


def test_inactive_abate_cannot_be_edited(db_session, abate):
    abate_service.inactivate_abate(abate.id)

    with pytest.raises(ValidationFailed, match="inactive"):
        abate_service.update_abate(abate.id, total_animals=5)


def test_update_production_keeps_stock(db_session, abate, product, actor):
    run = production_service.register_production(
        production_date="2026-08-03",
        responsible_id="uid-ana",
        abate_id=abate.id,
        items=[{"product_id": product.id, "quantity": "2"}],
        actor=actor,
    )

    updated = production_service.update_production(run.id, lot="L-7", description="Desossa")

    assert updated.lot == "L-7"
    assert updated.description == "Desossa"
    assert db_session.get(Product, product.id).quantity == Decimal("2")
    assert db_session.query(StockMovement).filter_by(production_run_id=run.id).count() == 1

    production_service.inactivate_production(run.id)
    with pytest.raises(ValidationFailed, match="inactive"):
        production_service.update_production(run.id, lot="L-8")


def test_update_production_rejects_items(db_session, abate, product, actor):
    run = production_service.register_production(
        production_date="2026-08-03",
        responsible_id="uid-ana",
        abate_id=abate.id,
        items=[{"product_id": product.id, "quantity": "2"}],
        actor=actor,
    )

    with pytest.raises(ValidationFailed, match="Unknown fields"):
        production_service.update_production(run.id, items=[])


# =============================================================================
# Expenses
# =============================================================================


def test_expense_due_date_and_category_reach_payable(db_session, expense):
    expense_service.update_expense(expense.id, due_date="2026-08-15", category="Water")

    payable = db_session.query(PayableEntry).filter_by(expense_id=expense.id).one()
    assert payable.due_date == date(2026, 8, 15)
    assert payable.reference == "Water"
    assert payable.amount_cents == 120
    assert expense_service.get_expense(expense.id).due_date == date(2026, 8, 15)


def test_paid_expense_keeps_its_due_date(db_session, expense, account, actor):
    payable = db_session.query(PayableEntry).filter_by(expense_id=expense.id).one()
    register_service.settle_payable(payable.id, account.id, actor)

    with pytest.raises(ValidationFailed, match="already paid"):
        expense_service.update_expense(expense.id, due_date="2026-09-01")

    updated = expense_service.update_expense(expense.id, description="Agua julho")
    assert updated.description == "Agua julho"
    assert db_session.get(PayableEntry, payable.id).due_date == date(2026, 7, 10)
    assert db_session.get(BankAccount, account.id).balance_cents == 880


def test_expense_amount_is_fixed(db_session, expense):
    with pytest.raises(ValidationFailed, match="Unknown fields"):
        expense_service.update_expense(expense.id, amount_cents=1)


# =============================================================================
# Sales
# =============================================================================


def test_update_sale_changes_labels_only(db_session, customer, account, product, actor):
    stock_service.register_stock_movement(
        product_id=product.id, quantity=2, direction="ENTRY", reason="Inventario", actor=actor
    )
    sale = sale_service.register_sale(
        client_id=customer.id,
        sale_date="2026-05-02",
        items=[{"product_id": product.id, "quantity": "1", "unit_price_cents": 300}],
        payment_method="PIX",
        bank_account_id=account.id,
        actor=actor,
    )

    updated = sale_service.update_sale(sale.id, payment_method="Dinheiro", sale_date="2026-05-03")

    assert updated.payment_method == "Dinheiro"
    assert updated.sale_date == date(2026, 5, 3)
    assert updated.final_amount_cents == 300
    assert db_session.get(BankAccount, account.id).balance_cents == 1300
    assert db_session.query(BankMovement).filter_by(account_id=account.id).count() == 1
    assert db_session.get(Product, product.id).quantity == Decimal("1")

    sale_service.inactivate_sale(sale.id)
    with pytest.raises(ValidationFailed, match="inactive"):
        sale_service.update_sale(sale.id, payment_method="PIX")


class TestEditRoutes:

    def test_patch_expense(self, client, admin_headers, expense):
        resp = client.patch(
            f"/api/expenses/{expense.id}", json={"due_date": "2026-07-20"}, headers=admin_headers
        )
        assert resp.status_code == 200
        assert resp.json["expense"]["due_date"] == "2026-07-20"
        assert [p["due_date"] for p in resp.json["payables"]] == ["2026-07-20"]

    def test_patch_abate_validation(self, client, admin_headers, abate):
        resp = client.patch(f"/api/abates/{abate.id}", json={"condemned": 9}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json["code"] == "ValidationFailed"
