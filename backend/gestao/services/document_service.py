# Overview: Human-readable document numbers allocated inside the caller's transaction.

from __future__ import annotations

from ..models import DocumentSequence
from .transaction import TransactionScope

# document_type -> prefix
DOCUMENT_PREFIXES = {
    "PURCHASE": "CMP",
    "SALE": "VND",
    "PRODUCTION": "PRD",
    "EXPENSE": "DSP",
}


def next_document_number(scope: TransactionScope, document_type: str, *, pad: int = 6) -> str:
    """
    Allocate the next number for a document type (e.g. CMP-000001).

    This performs the last read of the caller's transaction: call it after
    every other scope read and before the first write. The sequence row is
    versioned, so two transactions that read the same counter cannot both
    commit; the loser is retried by the coordinator with a fresh counter.
    A missing sequence row is created on first use (unique on document_type).
    """
    try:
        prefix = DOCUMENT_PREFIXES[document_type]
    except KeyError:
        raise ValueError(f"Unknown document type '{document_type}'") from None

    rows = scope.query(DocumentSequence, lock=True, document_type=document_type)
    if rows:
        seq = rows[0]
        number = seq.next_number
        scope.update(seq, next_number=number + 1)
    else:
        number = 1
        scope.add(DocumentSequence(document_type=document_type, next_number=2))

    return f"{prefix}-{number:0{pad}d}"
