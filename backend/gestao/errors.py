# Overview: Error taxonomy shared by the service layer and the HTTP adapters.

"""
Gestao core errors.

Every business operation either commits all of its writes or none of them.
The errors below are how a failed attempt is reported to the caller; the
service layer never swallows them.
"""

from __future__ import annotations

from decimal import Decimal


class CoreError(Exception):
    """Base class for failures of a business operation."""

    status_code = 400

    def to_dict(self) -> dict:
        return {"error": str(self), "code": type(self).__name__}


class ValidationFailed(CoreError):
    """Malformed or incomplete input, detected before any write."""


class InvalidTransition(ValidationFailed):
    """A status change that the entity's lifecycle table does not allow."""


class EntityNotFound(CoreError):
    """A referenced product, account, party or document does not exist."""

    status_code = 404

    def __init__(self, entity: str, entity_id):
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class InsufficientStock(CoreError):
    """An exit would take a product's on-hand quantity below zero."""

    status_code = 409

    def __init__(self, product_name: str, current: Decimal, requested: Decimal):
        super().__init__(
            f'Insufficient stock for "{product_name}": on hand {current}, requested {requested}'
        )
        self.product_name = product_name
        self.current = current
        self.requested = requested

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload.update({
            "product": self.product_name,
            "current": str(self.current),
            "requested": str(self.requested),
        })
        return payload


class InsufficientFunds(CoreError):
    """A debit would overdraw a bank account."""

    status_code = 409

    def __init__(self, account_name: str, balance_cents: int, amount_cents: int):
        super().__init__(
            f'Insufficient funds in "{account_name}": balance {balance_cents} cents, '
            f"debit {amount_cents} cents"
        )
        self.account_name = account_name
        self.balance_cents = balance_cents
        self.amount_cents = amount_cents

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload.update({
            "account": self.account_name,
            "balance_cents": self.balance_cents,
            "amount_cents": self.amount_cents,
        })
        return payload


class EntryAlreadySettled(CoreError):
    """A payable/receivable entry is already Paid/Received."""

    status_code = 409


class CommitConflict(CoreError):
    """Concurrent modification kept the atomic commit from applying."""

    status_code = 409


class TransactionScopeError(RuntimeError):
    """Misuse of a transaction scope (programming error, not a business failure)."""
