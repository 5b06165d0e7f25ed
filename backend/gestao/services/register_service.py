# Overview: Accounts payable / receivable register and settlement.

"""
Gestao Payable/Receivable Register

================================================================================
PURPOSE: Obligations derived from purchases, expenses and sales
================================================================================

Entries are created by the document writers inside their own transaction:

    A_VISTA (immediate):  one entry "1/1" dated at the document date.
                          Paid/Received on the spot when money moved at
                          registration, Pending otherwise (expenses).
    A_PRAZO (installment): N Pending entries "1/N".."N/N", due at
                          first_due_date + 0..N-1 months. The total is split
                          in cents; remainder cents go to the last entry.

Settlement is its own transaction:

    settle_payable:    DEBIT account, entry -> PAID, source expense -> PAID
    settle_receivable: CREDIT account, entry -> RECEIVED, source sale -> PAID
                       once none of its receivables is still Pending

A terminal entry is never settled twice: EntryAlreadySettled, no movement.
Entries are never deleted.

================================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from ..constants import (
    BankDirection,
    ExpenseStatus,
    PayableStatus,
    PaymentTerms,
    ReceivableStatus,
    SaleStatus,
)
from ..errors import EntryAlreadySettled, ValidationFailed
from ..extensions import db
from ..models import BankAccount, Expense, PayableEntry, ReceivableEntry, Sale
from ..time_utils import add_months, utcnow
from ..validation import to_choice, to_id
from . import ledger_service
from .identity_service import Actor
from .lifecycle_service import ensure_transition
from .transaction import TransactionScope, run_in_transaction


@dataclass(frozen=True)
class Installment:
    label: str
    amount_cents: int
    due_date: date


def split_amount(total_cents: int, count: int) -> list[int]:
    """Split cents into count parts; the last part absorbs the remainder."""
    if count < 1:
        raise ValidationFailed("installments must be at least 1")
    base = total_cents // count
    if base <= 0:
        raise ValidationFailed(
            f"Cannot split {total_cents} cents into {count} installments"
        )
    parts = [base] * count
    parts[-1] += total_cents - base * count
    return parts


def build_installment_plan(
    total_cents: int,
    *,
    terms: str,
    document_date: date,
    installments: int | None = None,
    first_due_date: date | None = None,
) -> list[Installment]:
    terms = to_choice(terms, PaymentTerms, "payment_terms")
    if total_cents <= 0:
        raise ValidationFailed("total must be greater than zero")

    if terms == PaymentTerms.A_VISTA.value:
        return [Installment(label="1/1", amount_cents=total_cents, due_date=document_date)]

    if not installments:
        raise ValidationFailed("installments is required for A_PRAZO terms")
    if first_due_date is None:
        raise ValidationFailed("first_due_date is required for A_PRAZO terms")

    amounts = split_amount(total_cents, installments)
    return [
        Installment(
            label=f"{i + 1}/{installments}",
            amount_cents=amount,
            due_date=add_months(first_due_date, i),
        )
        for i, amount in enumerate(amounts)
    ]


def create_payables(
    scope: TransactionScope,
    plan: list[Installment],
    *,
    issue_date: date,
    purchase=None,
    expense=None,
    supplier=None,
    reference: str | None = None,
    settled_account: BankAccount | None = None,
    actor: Actor | None = None,
) -> list[PayableEntry]:
    """
    Stage one payable per installment.

    Passing settled_account marks the entries PAID (money already left the
    account at registration).
    """
    if (purchase is None) == (expense is None):
        raise ValidationFailed("a payable needs exactly one source: purchase or expense")

    entries = []
    for installment in plan:
        entry = PayableEntry(
            purchase=purchase,
            expense=expense,
            supplier=supplier,
            reference=reference,
            amount_cents=installment.amount_cents,
            issue_date=issue_date,
            due_date=installment.due_date,
            installment_label=installment.label,
            status=PayableStatus.PENDING.value,
        )
        if settled_account is not None:
            entry.status = PayableStatus.PAID.value
            entry.settled_at = utcnow()
            entry.settled_account = settled_account
            entry.settled_by_id = actor.actor_id if actor else None
        entries.append(scope.add(entry))
    return entries


def create_receivables(
    scope: TransactionScope,
    plan: list[Installment],
    *,
    issue_date: date,
    sale,
    client=None,
    reference: str | None = None,
    settled_account: BankAccount | None = None,
    actor: Actor | None = None,
) -> list[ReceivableEntry]:
    entries = []
    for installment in plan:
        entry = ReceivableEntry(
            sale=sale,
            client=client,
            reference=reference,
            amount_cents=installment.amount_cents,
            issue_date=issue_date,
            due_date=installment.due_date,
            installment_label=installment.label,
            status=ReceivableStatus.PENDING.value,
        )
        if settled_account is not None:
            entry.status = ReceivableStatus.RECEIVED.value
            entry.settled_at = utcnow()
            entry.settled_account = settled_account
            entry.settled_by_id = actor.actor_id if actor else None
        entries.append(scope.add(entry))
    return entries


# =============================================================================
# Settlement
# =============================================================================

def settle_payable(entry_id: int, account_id: int, actor: Actor) -> PayableEntry:
    """Pay a pending bill from a bank account."""
    entry_id = to_id(entry_id, "entry_id")
    account_id = to_id(account_id, "account_id")

    def _op(scope: TransactionScope) -> PayableEntry:
        entry = scope.get(PayableEntry, entry_id, label="Payable")
        if entry.status != PayableStatus.PENDING.value:
            raise EntryAlreadySettled(f"Payable {entry.id} is already {entry.status}")
        account = scope.get(BankAccount, account_id, label="Bank account")
        expense = scope.get(Expense, entry.expense_id) if entry.expense_id else None

        ledger_service.record_movement(
            scope,
            account,
            entry.amount_cents,
            BankDirection.DEBIT.value,
            f"Payment of payable {entry.installment_label} ({entry.reference or entry.id})",
            actor,
            payable=entry,
        )
        scope.update(
            entry,
            status=ensure_transition("payable", entry.status, PayableStatus.PAID.value),
            settled_at=utcnow(),
            settled_account=account,
            settled_by_id=actor.actor_id,
        )
        if expense is not None and expense.status == ExpenseStatus.PENDING.value:
            scope.update(
                expense,
                status=ensure_transition("expense", expense.status, ExpenseStatus.PAID.value),
            )
        return entry

    return run_in_transaction(_op, label="settle_payable")


def settle_receivable(entry_id: int, account_id: int, actor: Actor) -> ReceivableEntry:
    """Receive a pending installment into a bank account."""
    entry_id = to_id(entry_id, "entry_id")
    account_id = to_id(account_id, "account_id")

    def _op(scope: TransactionScope) -> ReceivableEntry:
        entry = scope.get(ReceivableEntry, entry_id, label="Receivable")
        if entry.status != ReceivableStatus.PENDING.value:
            raise EntryAlreadySettled(f"Receivable {entry.id} is already {entry.status}")
        account = scope.get(BankAccount, account_id, label="Bank account")
        sale = scope.get(Sale, entry.sale_id)
        siblings = scope.query(ReceivableEntry, sale_id=entry.sale_id)
        still_pending = [
            other for other in siblings
            if other.id != entry.id and other.status == ReceivableStatus.PENDING.value
        ]

        ledger_service.record_movement(
            scope,
            account,
            entry.amount_cents,
            BankDirection.CREDIT.value,
            f"Receipt of receivable {entry.installment_label} ({entry.reference or entry.id})",
            actor,
            receivable=entry,
            sale=sale,
        )
        scope.update(
            entry,
            status=ensure_transition("receivable", entry.status, ReceivableStatus.RECEIVED.value),
            settled_at=utcnow(),
            settled_account=account,
            settled_by_id=actor.actor_id,
        )
        if not still_pending and sale.status == SaleStatus.PENDING.value:
            scope.update(
                sale,
                status=ensure_transition("sale", sale.status, SaleStatus.PAID.value),
            )
        return entry

    return run_in_transaction(_op, label="settle_receivable")


# =============================================================================
# Reads
# =============================================================================

def list_payables(*, status: str | None = None) -> list[PayableEntry]:
    query = db.session.query(PayableEntry)
    if status:
        query = query.filter(PayableEntry.status == to_choice(status, PayableStatus, "status"))
    return query.order_by(PayableEntry.due_date.asc(), PayableEntry.id.asc()).all()


def list_receivables(*, status: str | None = None) -> list[ReceivableEntry]:
    query = db.session.query(ReceivableEntry)
    if status:
        query = query.filter(ReceivableEntry.status == to_choice(status, ReceivableStatus, "status"))
    return query.order_by(ReceivableEntry.due_date.asc(), ReceivableEntry.id.asc()).all()
