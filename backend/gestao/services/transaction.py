# Overview: Transaction coordinator; the all-or-nothing boundary of every business operation.

"""
Gestao Transaction Coordinator

================================================================================
PURPOSE: Run one business operation as a single atomic unit
================================================================================

A business operation is a function ``func(scope)``. The scope is its only
read/write handle:

    READ PHASE:   scope.get / scope.get_many / scope.query
                  Rows are re-loaded from the database (never a stale identity
                  map copy) and locked FOR UPDATE where the database supports it.
    WRITE PHASE:  scope.add / scope.update
                  Writes are staged in the session; autoflush is off, nothing
                  reaches the database until commit.

RULES:
1. Every read happens before the first write. A read after a write raises
   TransactionScopeError, so invariant checks always see one snapshot.
2. A CoreError (or anything else) raised by func rolls the session back and
   propagates unchanged. Zero durable writes remain.
3. Concurrency conflicts (version mismatch, lock errors, unique races) roll
   back and re-run func from scratch, with exponential backoff. When attempts
   run out the caller gets CommitConflict.
4. After a successful commit the touched tables are published to
   subscriptions (services.subscriptions). The coordinator never waits on
   subscribers.

================================================================================
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, TypeVar

from flask import current_app

from ..errors import EntityNotFound, TransactionScopeError
from ..extensions import db
from .concurrency import lock_for_update, run_with_retry

T = TypeVar("T")

_ACTIVE_SCOPE_KEY = "gestao.active_scope"


class TransactionScope:
    """Read/write handle handed to a transaction function."""

    def __init__(self, session):
        self.session = session
        self._writing = False

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _check_read(self) -> None:
        if self._writing:
            raise TransactionScopeError(
                "reads must happen before the first write of a transaction"
            )

    def get(self, model, entity_id, *, label: str | None = None, lock: bool = True):
        """Load one row by primary key or raise EntityNotFound."""
        self._check_read()
        label = label or model.__name__
        if entity_id is None:
            raise EntityNotFound(label, None)

        query = self.session.query(model).filter(model.id == entity_id).populate_existing()
        if lock:
            query = lock_for_update(query)
        obj = query.one_or_none()
        if obj is None:
            raise EntityNotFound(label, entity_id)
        return obj

    def get_many(self, model, ids: Iterable, *, label: str | None = None, lock: bool = True) -> dict:
        """
        Load several rows by primary key, keyed by id.

        Rows are requested in ascending id order so that concurrent
        transactions lock them in the same order.
        """
        self._check_read()
        label = label or model.__name__
        wanted = sorted(set(ids))
        if not wanted:
            return {}

        query = (
            self.session.query(model)
            .filter(model.id.in_(wanted))
            .order_by(model.id.asc())
            .populate_existing()
        )
        if lock:
            query = lock_for_update(query)
        found = {obj.id: obj for obj in query.all()}
        for entity_id in wanted:
            if entity_id not in found:
                raise EntityNotFound(label, entity_id)
        return found

    def query(self, model, *, order_by=None, lock: bool = False, **filters) -> list:
        """Load rows matching equality filters."""
        self._check_read()
        query = self.session.query(model).filter_by(**filters).populate_existing()
        if order_by is not None:
            query = query.order_by(order_by)
        if lock:
            query = lock_for_update(query)
        return query.all()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def add(self, obj: T) -> T:
        """Stage a new row."""
        self._writing = True
        self.session.add(obj)
        return obj

    def update(self, obj: T, **changes: Any) -> T:
        """Stage column changes on a row previously read through this scope."""
        self._writing = True
        for key, value in changes.items():
            if not hasattr(obj, key):
                raise TransactionScopeError(f"{type(obj).__name__} has no attribute {key!r}")
            setattr(obj, key, value)
        return obj


def _touched_tables(session) -> set[str]:
    tables = set()
    for obj in list(session.new) + list(session.dirty) + list(session.deleted):
        table = getattr(obj, "__tablename__", None)
        if table:
            tables.add(table)
    return tables


def run_in_transaction(
    func: Callable[[TransactionScope], T],
    *,
    attempts: int | None = None,
    backoff_base: float | None = None,
    label: str | None = None,
) -> T:
    """
    Execute func(scope) atomically and return its result.

    attempts / backoff_base default to TRANSACTION_RETRY_ATTEMPTS and
    TRANSACTION_RETRY_BACKOFF from the app config.
    """
    session = db.session
    if session.info.get(_ACTIVE_SCOPE_KEY):
        raise TransactionScopeError("transactions cannot be nested")
    if session.new or session.dirty or session.deleted:
        raise TransactionScopeError("session has uncommitted changes")

    if attempts is None:
        attempts = current_app.config.get("TRANSACTION_RETRY_ATTEMPTS", 3)
    if backoff_base is None:
        backoff_base = current_app.config.get("TRANSACTION_RETRY_BACKOFF", 0.1)
    label = label or getattr(func, "__name__", "transaction")

    touched: set[str] = set()

    def _attempt():
        scope = TransactionScope(session)
        session.info[_ACTIVE_SCOPE_KEY] = True
        try:
            with session.no_autoflush:
                result = func(scope)
            touched.clear()
            touched.update(_touched_tables(session))
            session.commit()
            return result
        except BaseException:
            session.rollback()
            raise
        finally:
            session.info.pop(_ACTIVE_SCOPE_KEY, None)

    result = run_with_retry(_attempt, attempts=attempts, backoff_base=backoff_base, label=label)

    if touched:
        from .subscriptions import publish_commit
        publish_commit(touched)
    return result
