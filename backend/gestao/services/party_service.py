# Overview: Suppliers and clients referenced by purchases and sales.

"""
Party Service

WHY: Purchases need a supplier and sales need a client. Both are plain
master data: created, edited, switched off and (explicitly) back on.
Switching a party off never touches documents already registered for it.
"""

from __future__ import annotations

from ..constants import RecordStatus
from ..errors import EntityNotFound, ValidationFailed
from ..extensions import db
from ..models import Client, Supplier
from ..validation import to_choice, to_text
from .lifecycle_service import ensure_transition
from .transaction import TransactionScope, run_in_transaction

PARTY_MODELS = {
    "supplier": Supplier,
    "client": Client,
}

_FIELDS = {
    "name": 255,
    "tax_id": 32,
    "email": 255,
    "phone": 32,
}


def _model(kind: str):
    try:
        return PARTY_MODELS[kind]
    except KeyError:
        raise ValidationFailed(f"Unknown party kind '{kind}'") from None


def _clean(fields: dict, *, creating: bool) -> dict:
    unknown = set(fields) - set(_FIELDS)
    if unknown:
        raise ValidationFailed(f"Unknown fields: {', '.join(sorted(unknown))}")
    clean = {}
    for field, max_length in _FIELDS.items():
        if field not in fields and not (creating and field == "name"):
            continue
        clean[field] = to_text(fields.get(field), field, required=field == "name", max_length=max_length)
    tax_id = clean.get("tax_id")
    if tax_id:
        digits = "".join(ch for ch in tax_id if ch.isdigit())
        # CPF (11 digits) or CNPJ (14 digits)
        if len(digits) not in (11, 14):
            raise ValidationFailed("tax_id must be a CPF (11 digits) or CNPJ (14 digits)")
        clean["tax_id"] = digits
    email = clean.get("email")
    if email and "@" not in email:
        raise ValidationFailed("email is not valid")
    return clean


def create_party(kind: str, **fields):
    model = _model(kind)
    clean = _clean(fields, creating=True)

    def _op(scope: TransactionScope):
        return scope.add(model(status=RecordStatus.ACTIVE.value, **clean))

    return run_in_transaction(_op, label=f"create_{kind}")


def update_party(kind: str, party_id: int, **fields):
    model = _model(kind)
    clean = _clean(fields, creating=False)

    def _op(scope: TransactionScope):
        party = scope.get(model, party_id, label=kind.capitalize())
        if clean:
            scope.update(party, **clean)
        return party

    return run_in_transaction(_op, label=f"update_{kind}")


def set_party_status(kind: str, party_id: int, status: str):
    """Explicit inactivation or reactivation."""
    model = _model(kind)
    status = to_choice(status, RecordStatus, "status")

    def _op(scope: TransactionScope):
        party = scope.get(model, party_id, label=kind.capitalize())
        return scope.update(party, status=ensure_transition(kind, party.status, status))

    return run_in_transaction(_op, label=f"set_{kind}_status")


def get_party(kind: str, party_id: int):
    party = db.session.get(_model(kind), party_id)
    if party is None:
        raise EntityNotFound(kind.capitalize(), party_id)
    return party


def list_parties(kind: str, *, status: str | None = None) -> list:
    model = _model(kind)
    query = db.session.query(model)
    if status:
        query = query.filter(model.status == to_choice(status, RecordStatus, "status"))
    return query.order_by(model.name.asc(), model.id.asc()).all()
