from __future__ import annotations

from ..extensions import db
from ..constants import PaymentTerms, RecordStatus, SaleStatus
from .catalog import QUANTITY
from gestao.time_utils import to_utc_z, to_iso_date


class Purchase(db.Model):
    """
    Purchase document.

    Registered together with its stock entries and payable installments in
    one transaction. Inactivating a purchase only flips its status; stock
    and financial effects are NOT reversed.
    """
    __tablename__ = "purchases"
    __table_args__ = (
        db.UniqueConstraint("document_number", name="uq_purchases_docnum"),
        db.Index("ix_purchases_status_date", "status", "purchase_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    document_number = db.Column(db.String(32), nullable=False)

    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)
    invoice_number = db.Column(db.String(64), nullable=False)
    purchase_date = db.Column(db.Date, nullable=False)

    total_cents = db.Column(db.Integer, nullable=False)
    payment_terms = db.Column(db.String(16), nullable=False, default=PaymentTerms.A_VISTA.value)
    installments = db.Column(db.Integer, nullable=False, default=1)
    first_due_date = db.Column(db.Date, nullable=True)
    bank_account_id = db.Column(db.Integer, db.ForeignKey("bank_accounts.id"), nullable=False)

    status = db.Column(db.String(16), nullable=False, default=RecordStatus.ACTIVE.value, index=True)

    registered_by_id = db.Column(db.String(128), nullable=False)
    registered_by_name = db.Column(db.String(255), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    supplier = db.relationship("Supplier", backref=db.backref("purchases", lazy=True))
    bank_account = db.relationship("BankAccount")
    items = db.relationship("PurchaseItem", back_populates="purchase", lazy=True, order_by="PurchaseItem.id")
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "document_number": self.document_number,
            "supplier_id": self.supplier_id,
            "invoice_number": self.invoice_number,
            "purchase_date": to_iso_date(self.purchase_date),
            "total_cents": self.total_cents,
            "payment_terms": self.payment_terms,
            "installments": self.installments,
            "first_due_date": to_iso_date(self.first_due_date),
            "bank_account_id": self.bank_account_id,
            "status": self.status,
            "registered_by_id": self.registered_by_id,
            "registered_by_name": self.registered_by_name,
            "created_at": to_utc_z(self.created_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class PurchaseItem(db.Model):
    __tablename__ = "purchase_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    purchase_id = db.Column(db.Integer, db.ForeignKey("purchases.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    quantity = db.Column(QUANTITY, nullable=False)
    unit_cost_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    purchase = db.relationship("Purchase", back_populates="items")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "quantity": str(self.quantity),
            "unit_cost_cents": self.unit_cost_cents,
            "line_total_cents": self.line_total_cents,
        }


class Sale(db.Model):
    """
    Sale document.

    Status is PAID when settled at registration (a vista) and PENDING while
    receivables remain open. Each item snapshots the product's unit cost at
    sale time for margin reporting.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("document_number", name="uq_sales_docnum"),
        db.Index("ix_sales_status_date", "status", "sale_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    document_number = db.Column(db.String(32), nullable=False)

    client_id = db.Column(db.Integer, db.ForeignKey("clients.id"), nullable=False, index=True)
    sale_date = db.Column(db.Date, nullable=False)

    total_cents = db.Column(db.Integer, nullable=False)
    card_fee_cents = db.Column(db.Integer, nullable=False, default=0)
    final_amount_cents = db.Column(db.Integer, nullable=False)

    payment_terms = db.Column(db.String(16), nullable=False, default=PaymentTerms.A_VISTA.value)
    payment_method = db.Column(db.String(32), nullable=False)
    installments = db.Column(db.Integer, nullable=False, default=1)
    first_due_date = db.Column(db.Date, nullable=True)
    bank_account_id = db.Column(db.Integer, db.ForeignKey("bank_accounts.id"), nullable=True)

    status = db.Column(db.String(16), nullable=False, default=SaleStatus.PENDING.value, index=True)

    registered_by_id = db.Column(db.String(128), nullable=False)
    registered_by_name = db.Column(db.String(255), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    client = db.relationship("Client", backref=db.backref("sales", lazy=True))
    bank_account = db.relationship("BankAccount")
    items = db.relationship("SaleItem", back_populates="sale", lazy=True, order_by="SaleItem.id")
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "document_number": self.document_number,
            "client_id": self.client_id,
            "sale_date": to_iso_date(self.sale_date),
            "total_cents": self.total_cents,
            "card_fee_cents": self.card_fee_cents,
            "final_amount_cents": self.final_amount_cents,
            "payment_terms": self.payment_terms,
            "payment_method": self.payment_method,
            "installments": self.installments,
            "first_due_date": to_iso_date(self.first_due_date),
            "bank_account_id": self.bank_account_id,
            "status": self.status,
            "registered_by_id": self.registered_by_id,
            "registered_by_name": self.registered_by_name,
            "created_at": to_utc_z(self.created_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class SaleItem(db.Model):
    __tablename__ = "sale_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    quantity = db.Column(QUANTITY, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    # Product.unit_cost_cents as of the sale
    unit_cost_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    sale = db.relationship("Sale", back_populates="items")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "quantity": str(self.quantity),
            "unit_price_cents": self.unit_price_cents,
            "unit_cost_cents": self.unit_cost_cents,
            "line_total_cents": self.line_total_cents,
        }


class Abate(db.Model):
    """Slaughter record linking a livestock purchase to later production runs."""
    __tablename__ = "abates"
    __table_args__ = (
        db.CheckConstraint("condemned >= 0", name="ck_abates_condemned_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    slaughter_date = db.Column(db.Date, nullable=False)
    total_animals = db.Column(db.Integer, nullable=False)
    condemned = db.Column(db.Integer, nullable=False, default=0)
    responsible_id = db.Column(db.String(128), nullable=False)
    purchase_id = db.Column(db.Integer, db.ForeignKey("purchases.id"), nullable=False, index=True)

    status = db.Column(db.String(16), nullable=False, default=RecordStatus.ACTIVE.value, index=True)

    registered_by_id = db.Column(db.String(128), nullable=False)
    registered_by_name = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    purchase = db.relationship("Purchase", backref=db.backref("abates", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "slaughter_date": to_iso_date(self.slaughter_date),
            "total_animals": self.total_animals,
            "condemned": self.condemned,
            "responsible_id": self.responsible_id,
            "purchase_id": self.purchase_id,
            "status": self.status,
            "registered_by_id": self.registered_by_id,
            "registered_by_name": self.registered_by_name,
            "created_at": to_utc_z(self.created_at),
        }


class ProductionRun(db.Model):
    """
    Production run (cutting/processing of a slaughter batch).

    Each produced item adds stock; loss_quantity is recorded on the item
    only and never enters stock.
    """
    __tablename__ = "production_runs"
    __table_args__ = (
        db.UniqueConstraint("document_number", name="uq_production_runs_docnum"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    document_number = db.Column(db.String(32), nullable=False)
    production_date = db.Column(db.Date, nullable=False)
    responsible_id = db.Column(db.String(128), nullable=False)
    abate_id = db.Column(db.Integer, db.ForeignKey("abates.id"), nullable=False, index=True)
    lot = db.Column(db.String(64), nullable=True)
    description = db.Column(db.Text, nullable=True)

    status = db.Column(db.String(16), nullable=False, default=RecordStatus.ACTIVE.value, index=True)

    registered_by_id = db.Column(db.String(128), nullable=False)
    registered_by_name = db.Column(db.String(255), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    abate = db.relationship("Abate", backref=db.backref("production_runs", lazy=True))
    items = db.relationship("ProductionItem", back_populates="production_run", lazy=True, order_by="ProductionItem.id")
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "document_number": self.document_number,
            "production_date": to_iso_date(self.production_date),
            "responsible_id": self.responsible_id,
            "abate_id": self.abate_id,
            "lot": self.lot,
            "description": self.description,
            "status": self.status,
            "registered_by_id": self.registered_by_id,
            "registered_by_name": self.registered_by_name,
            "created_at": to_utc_z(self.created_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class ProductionItem(db.Model):
    __tablename__ = "production_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    production_run_id = db.Column(db.Integer, db.ForeignKey("production_runs.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    quantity = db.Column(QUANTITY, nullable=False)
    loss_quantity = db.Column(QUANTITY, nullable=False, default=0)

    production_run = db.relationship("ProductionRun", back_populates="items")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "quantity": str(self.quantity),
            "loss_quantity": str(self.loss_quantity),
        }


class DocumentSequence(db.Model):
    """
    Per-type document counters.

    WHY: Human-readable numbers (CMP-000001) are allocated inside the same
    transaction as the document; the version column makes two concurrent
    allocations of the same number conflict instead of duplicating it.
    """
    __tablename__ = "document_sequences"
    __table_args__ = (
        db.UniqueConstraint("document_type", name="uq_doc_sequences_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    document_type = db.Column(db.String(32), nullable=False)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    version_id = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "document_type": self.document_type,
            "next_number": self.next_number,
            "updated_at": to_utc_z(self.updated_at),
        }
