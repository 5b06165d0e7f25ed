# Overview: Purchase registration; document + stock entries + payment effects in one transaction.

"""
Purchase Writer

WHY: A purchase touches four stores at once (the purchase document, stock,
the funding account and the payables register). They must agree, so the
whole thing is a single run_in_transaction call.

Flow:
    READ   funding account, supplier, products, document counter
    CHECK  active records, funds for A_VISTA
    WRITE  Purchase + items
           A_VISTA: DEBIT account, one PAID payable "1/1"
           A_PRAZO: N PENDING payables
           per item: stock ENTRY, product.unit_cost_cents := item cost

Inactivation (inactivate_purchase) only flips the status flag. Stock and
money already moved stay moved.
"""

from __future__ import annotations

from datetime import date

from ..constants import BankDirection, PaymentTerms, RecordStatus, StockDirection
from ..errors import EntityNotFound, ValidationFailed
from ..extensions import db
from ..models import BankAccount, Product, Purchase, PurchaseItem, Supplier
from ..validation import (
    line_total_cents,
    parse_purchase_lines,
    to_choice,
    to_count,
    to_date,
    to_id,
    to_optional_date,
    to_text,
)
from . import ledger_service, register_service, stock_service
from .document_service import next_document_number
from .identity_service import Actor
from .lifecycle_service import ensure_transition
from .transaction import TransactionScope, run_in_transaction


def register_purchase(
    *,
    supplier_id: int,
    invoice_number: str,
    purchase_date: date | str,
    items: list,
    bank_account_id: int | None,
    actor: Actor,
    payment_terms: str = PaymentTerms.A_VISTA.value,
    installments: int | None = None,
    first_due_date: date | str | None = None,
) -> Purchase:
    """
    Register a purchase and all of its effects atomically.

    Raises:
        ValidationFailed: missing funding account, bad items, bad terms
        EntityNotFound: unknown account, supplier or product
        InsufficientFunds: A_VISTA total exceeds the account balance
    """
    if bank_account_id in (None, ""):
        raise ValidationFailed("bank_account_id is required to register a purchase")
    bank_account_id = to_id(bank_account_id, "bank_account_id")
    supplier_id = to_id(supplier_id, "supplier_id")
    invoice_number = to_text(invoice_number, "invoice_number", max_length=64)
    purchase_date = to_date(purchase_date, "purchase_date")
    terms = to_choice(payment_terms, PaymentTerms, "payment_terms")
    lines = parse_purchase_lines(items)

    if terms == PaymentTerms.A_PRAZO.value:
        installments = to_count(installments, "installments")
        first_due = to_date(first_due_date, "first_due_date")
    else:
        installments = 1
        first_due = to_optional_date(first_due_date, "first_due_date")

    line_totals = [line_total_cents(line.quantity, line.unit_cost_cents) for line in lines]
    total_cents = sum(line_totals)
    plan = register_service.build_installment_plan(
        total_cents,
        terms=terms,
        document_date=purchase_date,
        installments=installments,
        first_due_date=first_due,
    )

    def _op(scope: TransactionScope) -> Purchase:
        account = scope.get(BankAccount, bank_account_id, label="Bank account")
        supplier = scope.get(Supplier, supplier_id, lock=False)
        products = scope.get_many(Product, [line.product_id for line in lines])
        if supplier.status != RecordStatus.ACTIVE.value:
            raise ValidationFailed(f'Supplier "{supplier.name}" is inactive')
        if not account.is_active:
            raise ValidationFailed(f'Bank account "{account.name}" is inactive')
        document_number = next_document_number(scope, "PURCHASE")

        purchase = scope.add(Purchase(
            document_number=document_number,
            supplier=supplier,
            invoice_number=invoice_number,
            purchase_date=purchase_date,
            total_cents=total_cents,
            payment_terms=terms,
            installments=installments,
            first_due_date=first_due,
            bank_account=account,
            status=RecordStatus.ACTIVE.value,
            registered_by_id=actor.actor_id,
            registered_by_name=actor.display_name,
        ))

        if terms == PaymentTerms.A_VISTA.value:
            ledger_service.record_movement(
                scope,
                account,
                total_cents,
                BankDirection.DEBIT.value,
                f"Purchase {document_number} invoice {invoice_number}",
                actor,
                purchase=purchase,
            )
            register_service.create_payables(
                scope,
                plan,
                issue_date=purchase_date,
                purchase=purchase,
                supplier=supplier,
                reference=invoice_number,
                settled_account=account,
                actor=actor,
            )
        else:
            register_service.create_payables(
                scope,
                plan,
                issue_date=purchase_date,
                purchase=purchase,
                supplier=supplier,
                reference=invoice_number,
            )

        for line, line_total in zip(lines, line_totals):
            product = products[line.product_id]
            scope.add(PurchaseItem(
                purchase=purchase,
                product=product,
                quantity=line.quantity,
                unit_cost_cents=line.unit_cost_cents,
                line_total_cents=line_total,
            ))
            stock_service.record_movement(
                scope,
                product,
                line.quantity,
                StockDirection.ENTRY.value,
                f"Purchase invoice {invoice_number}",
                actor,
                purchase=purchase,
            )
            scope.update(product, unit_cost_cents=line.unit_cost_cents)

        return purchase

    return run_in_transaction(_op, label="register_purchase")


def inactivate_purchase(purchase_id: int) -> Purchase:
    """Status flag only; never reverses stock, balance or payables."""
    def _op(scope: TransactionScope) -> Purchase:
        purchase = scope.get(Purchase, purchase_id)
        new_status = ensure_transition("purchase", purchase.status, RecordStatus.INACTIVE.value)
        return scope.update(purchase, status=new_status)

    return run_in_transaction(_op, label="inactivate_purchase")


def get_purchase(purchase_id: int) -> Purchase:
    purchase = db.session.get(Purchase, purchase_id)
    if purchase is None:
        raise EntityNotFound("Purchase", purchase_id)
    return purchase


def list_purchases(*, status: str | None = None) -> list[Purchase]:
    """Newest first, like the dashboard list."""
    query = db.session.query(Purchase)
    if status:
        query = query.filter(Purchase.status == to_choice(status, RecordStatus, "status"))
    return query.order_by(Purchase.purchase_date.desc(), Purchase.id.desc()).all()
