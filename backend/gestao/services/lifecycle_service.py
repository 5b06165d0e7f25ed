# Overview: Status state machines shared by documents, register entries and master data.

"""
Gestao Lifecycle Service

================================================================================
PURPOSE: One transition table per entity kind
================================================================================

Status columns are plain strings in the database; the only legal changes
between them are listed here. Anything not in the table (Paid -> Pending,
Inactive -> Active for a purchase, ...) raises InvalidTransition.

TABLE:
    purchase, production, abate    ACTIVE  -> INACTIVE
    sale                           PENDING -> PAID
                                   PENDING -> INACTIVE
                                   PAID    -> INACTIVE
    expense, payable               PENDING -> PAID
    receivable                     PENDING -> RECEIVED
    bank_account, supplier,
    client, product, category,
    unit, role, user               ACTIVE <-> INACTIVE

RULES:
1. Terminal states are only left through an explicit action listed above.
2. Inactivating a document is a status change only. Stock, balances and
   register entries it produced stay as they are.
3. Same-state "transitions" are rejected; callers decide whether a repeat
   request is an error (settlement) or not.

================================================================================
"""

from __future__ import annotations

from ..constants import (
    ExpenseStatus,
    PayableStatus,
    ReceivableStatus,
    RecordStatus,
    SaleStatus,
)
from ..errors import InvalidTransition

_ACTIVE = RecordStatus.ACTIVE.value
_INACTIVE = RecordStatus.INACTIVE.value

_ONE_WAY = {(_ACTIVE, _INACTIVE)}
_TOGGLE = {(_ACTIVE, _INACTIVE), (_INACTIVE, _ACTIVE)}

TRANSITIONS: dict[str, set[tuple[str, str]]] = {
    "purchase": _ONE_WAY,
    "production": _ONE_WAY,
    "abate": _ONE_WAY,
    "sale": {
        (SaleStatus.PENDING.value, SaleStatus.PAID.value),
        (SaleStatus.PENDING.value, SaleStatus.INACTIVE.value),
        (SaleStatus.PAID.value, SaleStatus.INACTIVE.value),
    },
    "expense": {(ExpenseStatus.PENDING.value, ExpenseStatus.PAID.value)},
    "payable": {(PayableStatus.PENDING.value, PayableStatus.PAID.value)},
    "receivable": {(ReceivableStatus.PENDING.value, ReceivableStatus.RECEIVED.value)},
    "bank_account": _TOGGLE,
    "supplier": _TOGGLE,
    "client": _TOGGLE,
    "product": _TOGGLE,
    "category": _TOGGLE,
    "unit": _TOGGLE,
    "role": _TOGGLE,
    "user": _TOGGLE,
}


def can_transition(kind: str, from_status: str, to_status: str) -> bool:
    try:
        allowed = TRANSITIONS[kind]
    except KeyError:
        raise InvalidTransition(f"Unknown entity kind '{kind}'") from None
    return (_value(from_status), _value(to_status)) in allowed


def ensure_transition(kind: str, from_status: str, to_status: str) -> str:
    """
    Validate a status change and return the new status value.

    Raises:
        InvalidTransition: if the pair is not in the kind's table
    """
    from_value, to_value = _value(from_status), _value(to_status)
    if not can_transition(kind, from_value, to_value):
        raise InvalidTransition(
            f"Cannot change {kind} status from '{from_value}' to '{to_value}'"
        )
    return to_value


def _value(status) -> str:
    return getattr(status, "value", status)
