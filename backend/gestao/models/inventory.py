from __future__ import annotations

from sqlalchemy import event

from ..extensions import db
from .catalog import QUANTITY
from gestao.time_utils import to_utc_z


class ImmutableRecordError(RuntimeError):
    """Raised when code tries to update or delete an append-only row."""


class StockMovement(db.Model):
    """
    Immutable stock audit record.

    - Append-only: one row per change of a product's cached quantity.
    - quantity_delta is signed (+ for ENTRY, - for EXIT).
    - SUM(quantity_delta) per product equals Product.quantity.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("ix_stock_movements_product_occurred", "product_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    direction = db.Column(db.String(8), nullable=False)
    quantity_delta = db.Column(QUANTITY, nullable=False)
    reason = db.Column(db.String(255), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    actor_id = db.Column(db.String(128), nullable=False)
    actor_name = db.Column(db.String(255), nullable=True)

    # Source document (at most one is set)
    purchase_id = db.Column(db.Integer, db.ForeignKey("purchases.id"), nullable=True, index=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)
    production_run_id = db.Column(db.Integer, db.ForeignKey("production_runs.id"), nullable=True, index=True)

    product = db.relationship("Product", backref=db.backref("stock_movements", lazy="dynamic"))
    purchase = db.relationship("Purchase")
    sale = db.relationship("Sale")
    production_run = db.relationship("ProductionRun")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "direction": self.direction,
            "quantity_delta": str(self.quantity_delta),
            "reason": self.reason,
            "occurred_at": to_utc_z(self.occurred_at),
            "actor_id": self.actor_id,
            "actor_name": self.actor_name,
            "purchase_id": self.purchase_id,
            "sale_id": self.sale_id,
            "production_run_id": self.production_run_id,
        }


def forbid_mutation(model):
    """Reject UPDATE and DELETE of an append-only model at flush time."""

    def _reject_update(mapper, connection, target):
        raise ImmutableRecordError(f"{model.__name__} records are immutable")

    def _reject_delete(mapper, connection, target):
        raise ImmutableRecordError(f"{model.__name__} records cannot be deleted")

    event.listen(model, "before_update", _reject_update)
    event.listen(model, "before_delete", _reject_delete)
    return model


forbid_mutation(StockMovement)
