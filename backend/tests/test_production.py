"""
Abate and production tests.

Verifies:
- Abates validate their head counts and require an active purchase
- Production runs add stock for produced quantities only (loss never enters)
"""

from decimal import Decimal

import pytest

from gestao.errors import ValidationFailed
from gestao.models import Product, ProductionItem, StockMovement
from gestao.services import abate_service, production_service, products_service, purchase_service


@pytest.fixture
def purchase(db_session, supplier, account, actor):
    cattle = products_service.create_product(name="Boi vivo", product_type="RAW_MATERIAL")
    return purchase_service.register_purchase(
        supplier_id=supplier.id,
        invoice_number="NF-900",
        purchase_date="2026-08-01",
        items=[{"product_id": cattle.id, "quantity": "2", "unit_cost_cents": 400}],
        bank_account_id=account.id,
        actor=actor,
    )


@pytest.fixture
def abate(purchase, actor):
    return abate_service.register_abate(
        slaughter_date="2026-08-02",
        total_animals=2,
        condemned=0,
        responsible_id="uid-ana",
        purchase_id=purchase.id,
        actor=actor,
    )


def test_abate_links_purchase(db_session, abate, purchase):
    assert abate.purchase_id == purchase.id
    assert abate.status == "ACTIVE"
    assert abate.registered_by_name == "Ana"


def test_condemned_cannot_exceed_total(db_session, purchase, actor):
    with pytest.raises(ValidationFailed):
        abate_service.register_abate(
            slaughter_date="2026-08-02",
            total_animals=2,
            condemned=3,
            responsible_id="uid-ana",
            purchase_id=purchase.id,
            actor=actor,
        )


def test_abate_requires_active_purchase(db_session, purchase, actor):
    purchase_service.inactivate_purchase(purchase.id)

    with pytest.raises(ValidationFailed):
        abate_service.register_abate(
            slaughter_date="2026-08-02",
            total_animals=1,
            condemned=0,
            responsible_id="uid-ana",
            purchase_id=purchase.id,
            actor=actor,
        )


def test_production_adds_stock_and_records_loss(db_session, abate, product, actor):
    run = production_service.register_production(
        production_date="2026-08-03",
        responsible_id="uid-ana",
        abate_id=abate.id,
        lot="L-42",
        items=[{"product_id": product.id, "quantity": "12.500", "loss_quantity": "0.750"}],
        actor=actor,
    )

    assert run.document_number == "PRD-000001"
    assert db_session.get(Product, product.id).quantity == Decimal("12.5")

    item = db_session.query(ProductionItem).filter_by(production_run_id=run.id).one()
    assert item.loss_quantity == Decimal("0.75")

    movement = db_session.query(StockMovement).filter_by(production_run_id=run.id).one()
    assert movement.quantity_delta == Decimal("12.5")
    assert movement.reason == "Production batch L-42"


def test_production_reason_falls_back_to_document_number(db_session, abate, product, actor):
    run = production_service.register_production(
        production_date="2026-08-03",
        responsible_id="uid-ana",
        abate_id=abate.id,
        items=[{"product_id": product.id, "quantity": "1"}],
        actor=actor,
    )

    movement = db_session.query(StockMovement).filter_by(production_run_id=run.id).one()
    assert movement.reason == f"Production batch {run.document_number}"


def test_production_requires_active_abate(db_session, abate, product, actor):
    abate_service.inactivate_abate(abate.id)

    with pytest.raises(ValidationFailed):
        production_service.register_production(
            production_date="2026-08-03",
            responsible_id="uid-ana",
            abate_id=abate.id,
            items=[{"product_id": product.id, "quantity": "1"}],
            actor=actor,
        )

    assert db_session.get(Product, product.id).quantity == Decimal("0")


def test_inactivating_production_keeps_stock(db_session, abate, product, actor):
    run = production_service.register_production(
        production_date="2026-08-03",
        responsible_id="uid-ana",
        abate_id=abate.id,
        items=[{"product_id": product.id, "quantity": "3"}],
        actor=actor,
    )

    production_service.inactivate_production(run.id)

    assert production_service.get_production(run.id).status == "INACTIVE"
    assert db_session.get(Product, product.id).quantity == Decimal("3")
