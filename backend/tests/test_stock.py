"""
Stock store tests.

Verifies:
- ENTRY/EXIT change the cached quantity and append a movement
- An EXIT larger than the on-hand quantity is rejected and nothing changes
- Replaying movements always yields the cached quantity
"""

from decimal import Decimal

import pytest

from gestao.errors import EntityNotFound, InsufficientStock, ValidationFailed
from gestao.models import Product, StockMovement
from gestao.services import products_service, stock_service


def _move(product, quantity, direction, actor, reason="Ajuste"):
    return stock_service.register_stock_movement(
        product_id=product.id,
        quantity=quantity,
        direction=direction,
        reason=reason,
        actor=actor,
    )


def test_entry_and_exit_update_cached_quantity(db_session, product, actor):
    _move(product, "10.5", "ENTRY", actor)
    movement = _move(product, "2.25", "EXIT", actor, reason="Quebra")

    refreshed = db_session.get(Product, product.id)
    assert refreshed.quantity == Decimal("8.250")
    assert movement.quantity_delta == Decimal("-2.250")
    assert movement.actor_id == "uid-ana"
    assert movement.actor_name == "Ana"
    assert movement.reason == "Quebra"


def test_exit_beyond_on_hand_is_rejected(db_session, product, actor):
    _move(product, 3, "ENTRY", actor)

    with pytest.raises(InsufficientStock) as exc_info:
        _move(product, 5, "EXIT", actor)

    assert exc_info.value.current == Decimal("3.000")
    assert exc_info.value.requested == Decimal("5.000")
    assert db_session.get(Product, product.id).quantity == Decimal("3.000")
    assert db_session.query(StockMovement).count() == 1


def test_exit_of_exact_on_hand_leaves_zero(db_session, product, actor):
    _move(product, 4, "ENTRY", actor)
    _move(product, 4, "EXIT", actor)

    assert db_session.get(Product, product.id).quantity == Decimal("0")


@pytest.mark.parametrize("quantity", [0, -1, "abc", "1.0005", None])
def test_invalid_quantities_are_rejected(db_session, product, actor, quantity):
    with pytest.raises(ValidationFailed):
        _move(product, quantity, "ENTRY", actor)
    assert db_session.query(StockMovement).count() == 0


def test_unknown_direction_is_rejected(db_session, product, actor):
    with pytest.raises(ValidationFailed):
        _move(product, 1, "SIDEWAYS", actor)


def test_unknown_product_raises_not_found(db_session, actor):
    with pytest.raises(EntityNotFound):
        stock_service.register_stock_movement(
            product_id=9999, quantity=1, direction="ENTRY", reason=None, actor=actor
        )


def test_inactive_product_cannot_move(db_session, product, actor):
    products_service.set_product_status(product.id, "INACTIVE")

    with pytest.raises(ValidationFailed):
        _move(product, 1, "ENTRY", actor)


def test_reconcile_matches_replay(db_session, product, actor):
    _move(product, 10, "ENTRY", actor)
    _move(product, "0.5", "EXIT", actor)
    _move(product, 2, "ENTRY", actor)

    report = stock_service.reconcile_product(product.id)

    assert report["consistent"] is True
    assert Decimal(report["cached_quantity"]) == Decimal("11.5")
    assert Decimal(report["replayed_quantity"]) == Decimal("11.5")


def test_audit_flags_tampered_quantity(db_session, product, actor):
    _move(product, 10, "ENTRY", actor)
    db_session.execute(
        Product.__table__.update().where(Product.id == product.id).values(quantity=Decimal("7"))
    )
    db_session.commit()

    rows = stock_service.audit_stock()

    assert [row["consistent"] for row in rows] == [False]


def test_list_movements_newest_first(db_session, product, actor):
    first = _move(product, 1, "ENTRY", actor)
    second = _move(product, 2, "ENTRY", actor)

    movements = stock_service.list_movements(product.id)

    assert [m.id for m in movements] == [second.id, first.id]
    assert len(stock_service.list_movements(product.id, limit=1)) == 1


def test_product_quantity_cannot_be_edited_directly(db_session, product):
    with pytest.raises(ValidationFailed):
        products_service.update_product(product.id, quantity=50)
