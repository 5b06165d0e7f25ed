# Overview: Production runs; produced quantities enter stock, losses are only recorded.

from __future__ import annotations

from datetime import date

from ..constants import RecordStatus, StockDirection
from ..errors import EntityNotFound, ValidationFailed
from ..extensions import db
from ..models import Abate, Product, ProductionItem, ProductionRun
from ..validation import parse_production_lines, to_choice, to_date, to_id, to_text
from . import stock_service
from .document_service import next_document_number
from .identity_service import Actor
from .lifecycle_service import ensure_transition
from .transaction import TransactionScope, run_in_transaction


def register_production(
    *,
    production_date: date | str,
    responsible_id: str,
    abate_id: int,
    items: list,
    actor: Actor,
    lot: str | None = None,
    description: str | None = None,
) -> ProductionRun:
    """
    Register a production run and its stock entries atomically.

    Each item's quantity becomes a stock ENTRY. loss_quantity is stored on
    the item and never touches stock: it never entered inventory.
    """
    production_date = to_date(production_date, "production_date")
    responsible_id = to_text(responsible_id, "responsible_id", max_length=128)
    abate_id = to_id(abate_id, "abate_id")
    lot = to_text(lot, "lot", required=False, max_length=64)
    description = to_text(description, "description", required=False, max_length=2000)
    lines = parse_production_lines(items)

    def _op(scope: TransactionScope) -> ProductionRun:
        abate = scope.get(Abate, abate_id, lock=False)
        products = scope.get_many(Product, [line.product_id for line in lines])
        if abate.status != RecordStatus.ACTIVE.value:
            raise ValidationFailed(f"Abate {abate.id} is inactive")
        document_number = next_document_number(scope, "PRODUCTION")

        run = scope.add(ProductionRun(
            document_number=document_number,
            production_date=production_date,
            responsible_id=responsible_id,
            abate=abate,
            lot=lot,
            description=description,
            status=RecordStatus.ACTIVE.value,
            registered_by_id=actor.actor_id,
            registered_by_name=actor.display_name,
        ))

        reason = f"Production batch {lot or document_number}"
        for line in lines:
            product = products[line.product_id]
            scope.add(ProductionItem(
                production_run=run,
                product=product,
                quantity=line.quantity,
                loss_quantity=line.loss_quantity,
            ))
            stock_service.record_movement(
                scope,
                product,
                line.quantity,
                StockDirection.ENTRY.value,
                reason,
                actor,
                production_run=run,
            )

        return run

    return run_in_transaction(_op, label="register_production")


def update_production(run_id: int, **fields) -> ProductionRun:
    """Header fields only; items and their stock entries are fixed."""
    unknown = set(fields) - {"production_date", "responsible_id", "lot", "description"}
    if unknown:
        raise ValidationFailed(f"Unknown fields: {', '.join(sorted(unknown))}")
    clean = {}
    if "production_date" in fields:
        clean["production_date"] = to_date(fields["production_date"], "production_date")
    if "responsible_id" in fields:
        clean["responsible_id"] = to_text(fields["responsible_id"], "responsible_id", max_length=128)
    if "lot" in fields:
        clean["lot"] = to_text(fields["lot"], "lot", required=False, max_length=64)
    if "description" in fields:
        clean["description"] = to_text(fields["description"], "description", required=False, max_length=2000)

    def _op(scope: TransactionScope) -> ProductionRun:
        run = scope.get(ProductionRun, run_id, label="Production run")
        if run.status != RecordStatus.ACTIVE.value:
            raise ValidationFailed(f"Production run {run.document_number} is inactive")
        if clean:
            scope.update(run, **clean)
        return run

    return run_in_transaction(_op, label="update_production")


def inactivate_production(run_id: int) -> ProductionRun:
    """Status flag only; produced stock stays in inventory."""
    def _op(scope: TransactionScope) -> ProductionRun:
        run = scope.get(ProductionRun, run_id, label="Production run")
        new_status = ensure_transition("production", run.status, RecordStatus.INACTIVE.value)
        return scope.update(run, status=new_status)

    return run_in_transaction(_op, label="inactivate_production")


def get_production(run_id: int) -> ProductionRun:
    run = db.session.get(ProductionRun, run_id)
    if run is None:
        raise EntityNotFound("Production run", run_id)
    return run


def list_production(*, status: str | None = None) -> list[ProductionRun]:
    query = db.session.query(ProductionRun)
    if status:
        query = query.filter(ProductionRun.status == to_choice(status, RecordStatus, "status"))
    return query.order_by(ProductionRun.production_date.desc(), ProductionRun.id.desc()).all()
