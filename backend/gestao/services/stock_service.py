# Overview: Stock store; the only code path that changes a product's on-hand quantity.

"""
Gestao Stock Store

Invariants (authoritative):
- Product.quantity changes only through record_movement, inside a transaction
  scope, together with exactly one new StockMovement.
- Product.quantity is never negative; an EXIT larger than the on-hand
  quantity raises InsufficientStock and the whole transaction rolls back.
- Replaying a product's movements (SUM of quantity_delta) yields the cached
  quantity. reconcile_product checks exactly that.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from ..constants import StockDirection
from ..errors import EntityNotFound, InsufficientStock, ValidationFailed
from ..extensions import db
from ..models import Product, StockMovement
from ..time_utils import utcnow
from ..validation import to_choice, to_id, to_quantity, to_text
from .identity_service import Actor
from .transaction import TransactionScope, run_in_transaction


def record_movement(
    scope: TransactionScope,
    product: Product,
    quantity,
    direction: str,
    reason: str | None,
    actor: Actor,
    *,
    purchase=None,
    sale=None,
    production_run=None,
    occurred_at: datetime | None = None,
) -> StockMovement:
    """
    Stage a signed change of on-hand quantity plus its movement record.

    product must have been read through the same scope. quantity is the
    unsigned amount; direction decides the sign.
    """
    qty = to_quantity(quantity)
    direction = to_choice(direction, StockDirection, "direction")

    if not product.is_active:
        raise ValidationFailed(f'Product "{product.name}" is inactive')

    current = Decimal(product.quantity or 0)
    if direction == StockDirection.EXIT.value:
        if current < qty:
            raise InsufficientStock(product.name, current, qty)
        delta = -qty
    else:
        delta = qty

    scope.update(product, quantity=current + delta)
    return scope.add(StockMovement(
        product=product,
        direction=direction,
        quantity_delta=delta,
        reason=reason,
        occurred_at=occurred_at or utcnow(),
        actor_id=actor.actor_id,
        actor_name=actor.display_name,
        purchase=purchase,
        sale=sale,
        production_run=production_run,
    ))


def register_stock_movement(
    *,
    product_id: int,
    quantity,
    direction: str,
    reason: str | None,
    actor: Actor,
) -> StockMovement:
    """Manual stock adjustment (inventory count, breakage, internal use)."""
    product_id = to_id(product_id, "product_id")
    qty = to_quantity(quantity)
    direction = to_choice(direction, StockDirection, "direction")
    reason = to_text(reason, "reason", required=False)

    def _op(scope: TransactionScope) -> StockMovement:
        product = scope.get(Product, product_id)
        return record_movement(scope, product, qty, direction, reason, actor)

    return run_in_transaction(_op, label="register_stock_movement")


def replayed_quantity(product_id: int) -> Decimal:
    """Quantity rebuilt from the movement log alone."""
    deltas = (
        db.session.query(StockMovement.quantity_delta)
        .filter(StockMovement.product_id == product_id)
        .all()
    )
    return sum((Decimal(row[0]) for row in deltas), Decimal("0.000"))


def reconcile_product(product_id: int) -> dict:
    product = db.session.get(Product, product_id)
    if product is None:
        raise EntityNotFound("Product", product_id)

    cached = Decimal(product.quantity or 0)
    replayed = replayed_quantity(product_id)
    return {
        "product_id": product.id,
        "name": product.name,
        "cached_quantity": str(cached),
        "replayed_quantity": str(replayed),
        "consistent": cached == replayed and cached >= 0,
    }


def audit_stock() -> list[dict]:
    """Reconcile every product; returns one report row per product."""
    ids = [row[0] for row in db.session.query(Product.id).order_by(Product.id.asc()).all()]
    return [reconcile_product(product_id) for product_id in ids]


def list_movements(product_id: int | None = None, *, limit: int = 100) -> list[StockMovement]:
    """Newest first."""
    query = db.session.query(StockMovement)
    if product_id is not None:
        query = query.filter(StockMovement.product_id == product_id)
    return (
        query.order_by(StockMovement.occurred_at.desc(), StockMovement.id.desc())
        .limit(max(1, min(int(limit), 1000)))
        .all()
    )
