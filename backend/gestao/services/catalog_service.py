# Overview: Product categories and units of measure referenced by products.

"""
Catalog Service

WHY: Products are grouped by category and measured in a unit. Both are
small lookup tables the dashboard edits directly: created, renamed,
switched off and (explicitly) back on. Switching one off keeps the products
that already point at it, but new products and edits may not pick it.
"""

from __future__ import annotations

from ..constants import RecordStatus
from ..errors import EntityNotFound, ValidationFailed
from ..extensions import db
from ..models import Category, Unit
from ..validation import to_choice, to_text
from .lifecycle_service import ensure_transition
from .transaction import TransactionScope, run_in_transaction

CATALOG_MODELS = {
    "category": Category,
    "unit": Unit,
}

# kind -> {field: max_length}; every field is required on create
_FIELDS = {
    "category": {"name": 128},
    "unit": {"name": 64, "abbreviation": 10},
}

# The column that must stay unique per kind
_UNIQUE = {
    "category": "name",
    "unit": "abbreviation",
}


def _model(kind: str):
    try:
        return CATALOG_MODELS[kind]
    except KeyError:
        raise ValidationFailed(f"Unknown catalog kind '{kind}'") from None


def _clean(kind: str, fields: dict, *, creating: bool) -> dict:
    allowed = _FIELDS[kind]
    unknown = set(fields) - set(allowed)
    if unknown:
        raise ValidationFailed(f"Unknown fields: {', '.join(sorted(unknown))}")
    clean = {}
    for field, max_length in allowed.items():
        if field in fields or creating:
            clean[field] = to_text(fields.get(field), field, max_length=max_length)
    return clean


def _ensure_unique(scope: TransactionScope, kind: str, clean: dict, current=None) -> None:
    column = _UNIQUE[kind]
    value = clean.get(column)
    if value is None or (current is not None and getattr(current, column) == value):
        return
    if scope.query(_model(kind), **{column: value}):
        raise ValidationFailed(f"{kind} {column} '{value}' already exists")


def create_entry(kind: str, **fields):
    model = _model(kind)
    clean = _clean(kind, fields, creating=True)

    def _op(scope: TransactionScope):
        _ensure_unique(scope, kind, clean)
        return scope.add(model(status=RecordStatus.ACTIVE.value, **clean))

    return run_in_transaction(_op, label=f"create_{kind}")


def update_entry(kind: str, entry_id: int, **fields):
    model = _model(kind)
    clean = _clean(kind, fields, creating=False)

    def _op(scope: TransactionScope):
        entry = scope.get(model, entry_id, label=kind.capitalize())
        _ensure_unique(scope, kind, clean, current=entry)
        if clean:
            scope.update(entry, **clean)
        return entry

    return run_in_transaction(_op, label=f"update_{kind}")


def set_entry_status(kind: str, entry_id: int, status: str):
    """Explicit inactivation or reactivation."""
    model = _model(kind)
    status = to_choice(status, RecordStatus, "status")

    def _op(scope: TransactionScope):
        entry = scope.get(model, entry_id, label=kind.capitalize())
        return scope.update(entry, status=ensure_transition(kind, entry.status, status))

    return run_in_transaction(_op, label=f"set_{kind}_status")


def get_entry(kind: str, entry_id: int):
    entry = db.session.get(_model(kind), entry_id)
    if entry is None:
        raise EntityNotFound(kind.capitalize(), entry_id)
    return entry


def list_entries(kind: str, *, status: str | None = None) -> list:
    model = _model(kind)
    query = db.session.query(model)
    if status:
        query = query.filter(model.status == to_choice(status, RecordStatus, "status"))
    return query.order_by(model.name.asc(), model.id.asc()).all()
