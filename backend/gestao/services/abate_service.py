# Overview: Slaughter (abate) records linked to the purchase that supplied the animals.

from __future__ import annotations

from datetime import date

from ..constants import RecordStatus
from ..errors import EntityNotFound, ValidationFailed
from ..extensions import db
from ..models import Abate, Purchase
from ..validation import to_choice, to_count, to_date, to_id, to_text
from .identity_service import Actor
from .lifecycle_service import ensure_transition
from .transaction import TransactionScope, run_in_transaction


def register_abate(
    *,
    slaughter_date: date | str,
    total_animals: int,
    condemned: int,
    responsible_id: str,
    purchase_id: int,
    actor: Actor,
) -> Abate:
    """No stock effect; production runs bring the yield into inventory."""
    slaughter_date = to_date(slaughter_date, "slaughter_date")
    total_animals = to_count(total_animals, "total_animals")
    condemned = to_count(condemned or 0, "condemned", allow_zero=True)
    responsible_id = to_text(responsible_id, "responsible_id", max_length=128)
    purchase_id = to_id(purchase_id, "purchase_id")
    if condemned > total_animals:
        raise ValidationFailed("condemned cannot exceed total_animals")

    def _op(scope: TransactionScope) -> Abate:
        purchase = scope.get(Purchase, purchase_id, lock=False)
        if purchase.status != RecordStatus.ACTIVE.value:
            raise ValidationFailed(f"Purchase {purchase.document_number} is inactive")
        return scope.add(Abate(
            slaughter_date=slaughter_date,
            total_animals=total_animals,
            condemned=condemned,
            responsible_id=responsible_id,
            purchase=purchase,
            status=RecordStatus.ACTIVE.value,
            registered_by_id=actor.actor_id,
            registered_by_name=actor.display_name,
        ))

    return run_in_transaction(_op, label="register_abate")


_EDITABLE = {"slaughter_date", "total_animals", "condemned", "responsible_id"}


def update_abate(abate_id: int, **fields) -> Abate:
    """Correct the record's details. The linked purchase is fixed."""
    unknown = set(fields) - _EDITABLE
    if unknown:
        raise ValidationFailed(f"Unknown fields: {', '.join(sorted(unknown))}")
    clean = {}
    if "slaughter_date" in fields:
        clean["slaughter_date"] = to_date(fields["slaughter_date"], "slaughter_date")
    if "total_animals" in fields:
        clean["total_animals"] = to_count(fields["total_animals"], "total_animals")
    if "condemned" in fields:
        clean["condemned"] = to_count(fields["condemned"] or 0, "condemned", allow_zero=True)
    if "responsible_id" in fields:
        clean["responsible_id"] = to_text(fields["responsible_id"], "responsible_id", max_length=128)

    def _op(scope: TransactionScope) -> Abate:
        abate = scope.get(Abate, abate_id)
        if abate.status != RecordStatus.ACTIVE.value:
            raise ValidationFailed(f"Abate {abate.id} is inactive")
        total = clean.get("total_animals", abate.total_animals)
        if clean.get("condemned", abate.condemned) > total:
            raise ValidationFailed("condemned cannot exceed total_animals")
        if clean:
            scope.update(abate, **clean)
        return abate

    return run_in_transaction(_op, label="update_abate")


def inactivate_abate(abate_id: int) -> Abate:
    def _op(scope: TransactionScope) -> Abate:
        abate = scope.get(Abate, abate_id)
        new_status = ensure_transition("abate", abate.status, RecordStatus.INACTIVE.value)
        return scope.update(abate, status=new_status)

    return run_in_transaction(_op, label="inactivate_abate")


def get_abate(abate_id: int) -> Abate:
    abate = db.session.get(Abate, abate_id)
    if abate is None:
        raise EntityNotFound("Abate", abate_id)
    return abate


def list_abates(*, status: str | None = None) -> list[Abate]:
    query = db.session.query(Abate)
    if status:
        query = query.filter(Abate.status == to_choice(status, RecordStatus, "status"))
    return query.order_by(Abate.slaughter_date.desc(), Abate.id.desc()).all()
