# Overview: Sale registration; stock exits, receivables and funding credit in one transaction.

"""
Sale Writer

Mirror of the purchase flow on the outbound side:

    READ   client, products, funding account (if any), document counter
    CHECK  every line fits in the on-hand quantity (InsufficientStock names
           the product), A_VISTA has a funding account
    WRITE  Sale + items (unit cost snapshotted from the product)
           per item: stock EXIT
           A_VISTA: CREDIT account with the final amount, one RECEIVED
                    receivable "1/1", sale PAID
           A_PRAZO: N PENDING receivables, sale PENDING

final_amount_cents = total_cents - card_fee_cents; that is the money that
actually reaches the account, so receivables are split from it.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from ..constants import BankDirection, PaymentTerms, RecordStatus, SaleStatus, StockDirection
from ..errors import EntityNotFound, InsufficientStock, ValidationFailed
from ..extensions import db
from ..models import BankAccount, Client, Product, Sale, SaleItem
from ..validation import (
    line_total_cents,
    parse_sale_lines,
    to_cents,
    to_choice,
    to_count,
    to_date,
    to_id,
    to_optional_date,
    to_optional_id,
    to_text,
)
from . import ledger_service, register_service, stock_service
from .document_service import next_document_number
from .identity_service import Actor
from .lifecycle_service import ensure_transition
from .transaction import TransactionScope, run_in_transaction


def register_sale(
    *,
    client_id: int,
    sale_date: date | str,
    items: list,
    payment_method: str,
    actor: Actor,
    payment_terms: str = PaymentTerms.A_VISTA.value,
    bank_account_id: int | None = None,
    installments: int | None = None,
    first_due_date: date | str | None = None,
    card_fee_cents: int = 0,
) -> Sale:
    """
    Register a sale and all of its effects atomically.

    Raises:
        ValidationFailed: bad input, A_VISTA without a funding account
        EntityNotFound: unknown client, product or account
        InsufficientStock: a line asks for more than is on hand
    """
    client_id = to_id(client_id, "client_id")
    sale_date = to_date(sale_date, "sale_date")
    payment_method = to_text(payment_method, "payment_method", max_length=32)
    terms = to_choice(payment_terms, PaymentTerms, "payment_terms")
    bank_account_id = to_optional_id(bank_account_id, "bank_account_id")
    card_fee = to_cents(card_fee_cents or 0, "card_fee_cents", allow_zero=True)
    lines = parse_sale_lines(items)

    if terms == PaymentTerms.A_VISTA.value:
        if bank_account_id is None:
            raise ValidationFailed("bank_account_id is required for an A_VISTA sale")
        installments = 1
        first_due = to_optional_date(first_due_date, "first_due_date")
    else:
        installments = to_count(installments, "installments")
        first_due = to_date(first_due_date, "first_due_date")

    line_totals = [line_total_cents(line.quantity, line.unit_price_cents) for line in lines]
    total_cents = sum(line_totals)
    if card_fee >= total_cents:
        raise ValidationFailed("card_fee_cents must be lower than the sale total")
    final_cents = total_cents - card_fee

    plan = register_service.build_installment_plan(
        final_cents,
        terms=terms,
        document_date=sale_date,
        installments=installments,
        first_due_date=first_due,
    )

    def _op(scope: TransactionScope) -> Sale:
        client = scope.get(Client, client_id, lock=False)
        products = scope.get_many(Product, [line.product_id for line in lines])
        account = (
            scope.get(BankAccount, bank_account_id, label="Bank account")
            if bank_account_id is not None else None
        )
        if client.status != RecordStatus.ACTIVE.value:
            raise ValidationFailed(f'Client "{client.name}" is inactive')
        if account is not None and not account.is_active:
            raise ValidationFailed(f'Bank account "{account.name}" is inactive')

        # Several lines may draw on the same product.
        requested: dict[int, Decimal] = {}
        for line in lines:
            requested[line.product_id] = requested.get(line.product_id, Decimal("0")) + line.quantity
        for product_id, qty in requested.items():
            product = products[product_id]
            on_hand = Decimal(product.quantity or 0)
            if on_hand < qty:
                raise InsufficientStock(product.name, on_hand, qty)

        document_number = next_document_number(scope, "SALE")
        paid_now = terms == PaymentTerms.A_VISTA.value

        sale = scope.add(Sale(
            document_number=document_number,
            client=client,
            sale_date=sale_date,
            total_cents=total_cents,
            card_fee_cents=card_fee,
            final_amount_cents=final_cents,
            payment_terms=terms,
            payment_method=payment_method,
            installments=installments,
            first_due_date=first_due,
            bank_account=account,
            status=SaleStatus.PAID.value if paid_now else SaleStatus.PENDING.value,
            registered_by_id=actor.actor_id,
            registered_by_name=actor.display_name,
        ))

        for line, line_total in zip(lines, line_totals):
            product = products[line.product_id]
            scope.add(SaleItem(
                sale=sale,
                product=product,
                quantity=line.quantity,
                unit_price_cents=line.unit_price_cents,
                unit_cost_cents=product.unit_cost_cents or 0,
                line_total_cents=line_total,
            ))
            stock_service.record_movement(
                scope,
                product,
                line.quantity,
                StockDirection.EXIT.value,
                f"Sale {document_number}",
                actor,
                sale=sale,
            )

        if paid_now:
            ledger_service.record_movement(
                scope,
                account,
                final_cents,
                BankDirection.CREDIT.value,
                f"Sale {document_number} ({payment_method})",
                actor,
                sale=sale,
            )
            register_service.create_receivables(
                scope,
                plan,
                issue_date=sale_date,
                sale=sale,
                client=client,
                reference=document_number,
                settled_account=account,
                actor=actor,
            )
        else:
            register_service.create_receivables(
                scope,
                plan,
                issue_date=sale_date,
                sale=sale,
                client=client,
                reference=document_number,
            )

        return sale

    return run_in_transaction(_op, label="register_sale")


def update_sale(sale_id: int, **fields) -> Sale:
    """
    Correct the sale date or payment method label.

    Amounts, items, terms and the funding account are fixed once the
    stock and money effects are recorded.
    """
    unknown = set(fields) - {"sale_date", "payment_method"}
    if unknown:
        raise ValidationFailed(f"Unknown fields: {', '.join(sorted(unknown))}")
    clean = {}
    if "sale_date" in fields:
        clean["sale_date"] = to_date(fields["sale_date"], "sale_date")
    if "payment_method" in fields:
        clean["payment_method"] = to_text(fields["payment_method"], "payment_method", max_length=32)

    def _op(scope: TransactionScope) -> Sale:
        sale = scope.get(Sale, sale_id)
        if sale.status == SaleStatus.INACTIVE.value:
            raise ValidationFailed(f"Sale {sale.document_number} is inactive")
        if clean:
            scope.update(sale, **clean)
        return sale

    return run_in_transaction(_op, label="update_sale")


def inactivate_sale(sale_id: int) -> Sale:
    """Status flag only; stock exits and receipts are not reversed."""
    def _op(scope: TransactionScope) -> Sale:
        sale = scope.get(Sale, sale_id)
        new_status = ensure_transition("sale", sale.status, SaleStatus.INACTIVE.value)
        return scope.update(sale, status=new_status)

    return run_in_transaction(_op, label="inactivate_sale")


def get_sale(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        raise EntityNotFound("Sale", sale_id)
    return sale


def list_sales(*, status: str | None = None) -> list[Sale]:
    """Active sales (anything but INACTIVE) unless a status is given."""
    query = db.session.query(Sale)
    if status:
        query = query.filter(Sale.status == to_choice(status, SaleStatus, "status"))
    else:
        query = query.filter(Sale.status != SaleStatus.INACTIVE.value)
    return query.order_by(Sale.sale_date.desc(), Sale.id.desc()).all()
