# Overview: Live-query subscriptions pushed after committed transactions.

"""
Live-query subscriptions.

Presentation code asks for "all rows of X matching these filters" and gets a
fresh list pushed every time a committed transaction touched X's table. The
transaction coordinator only publishes the set of touched table names on the
``committed`` signal; it never knows who is listening.
"""

from __future__ import annotations

from typing import Callable

from blinker import Namespace
from flask import current_app

from ..extensions import db

_signals = Namespace()

committed = _signals.signal("gestao.committed")


def publish_commit(tables) -> None:
    committed.send(current_app._get_current_object(), tables=frozenset(tables))


class Subscription:
    """
    A live query over one model.

    filters are equality filters (filter_by); order_by is a column or
    column expression. The callback receives the list of matching rows.
    """

    def __init__(self, model, callback: Callable[[list], None], *, filters: dict | None = None, order_by=None):
        self.model = model
        self.callback = callback
        self.filters = dict(filters or {})
        self.order_by = order_by
        self.active = False

    def fetch(self) -> list:
        query = db.session.query(self.model).filter_by(**self.filters)
        if self.order_by is not None:
            query = query.order_by(self.order_by)
        return query.all()

    def refresh(self) -> None:
        try:
            self.callback(self.fetch())
        except Exception:
            current_app.logger.exception(
                "Subscription refresh failed for %s", self.model.__tablename__
            )

    def _on_commit(self, sender, tables=frozenset(), **kwargs) -> None:
        if self.active and self.model.__tablename__ in tables:
            self.refresh()

    def start(self) -> "Subscription":
        committed.connect(self._on_commit, weak=False)
        self.active = True
        self.refresh()
        return self

    def unsubscribe(self) -> None:
        self.active = False
        committed.disconnect(self._on_commit)


def subscribe(model, callback: Callable[[list], None], *, filters: dict | None = None, order_by=None) -> Subscription:
    """Push the current matching rows now and after every relevant commit."""
    return Subscription(model, callback, filters=filters, order_by=order_by).start()
