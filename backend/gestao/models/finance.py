from __future__ import annotations

from ..extensions import db
from ..constants import AccountType, ExpenseStatus, PayableStatus, ReceivableStatus, RecordStatus
from .inventory import forbid_mutation
from gestao.time_utils import to_utc_z, to_iso_date


class BankAccount(db.Model):
    """
    Bank or cash account.

    INVARIANT: balance_cents is only changed by ledger_service.record_movement
    and never goes negative; balance_cents == initial_balance_cents + SUM of
    the account's BankMovement.amount_delta_cents.
    """
    __tablename__ = "bank_accounts"
    __table_args__ = (
        db.CheckConstraint("balance_cents >= 0", name="ck_bank_accounts_balance_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    bank = db.Column(db.String(128), nullable=False)
    agency = db.Column(db.String(32), nullable=True)
    account_number = db.Column(db.String(32), nullable=True)
    account_type = db.Column(db.String(16), nullable=False, default=AccountType.CHECKING.value)

    initial_balance_cents = db.Column(db.Integer, nullable=False, default=0)
    balance_cents = db.Column(db.Integer, nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default=RecordStatus.ACTIVE.value, index=True)

    created_by_actor_id = db.Column(db.String(128), nullable=True)
    created_by_actor_name = db.Column(db.String(255), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_active(self) -> bool:
        return self.status == RecordStatus.ACTIVE.value

    def __repr__(self) -> str:
        return f"<BankAccount id={self.id} name={self.name!r} balance_cents={self.balance_cents}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "bank": self.bank,
            "agency": self.agency,
            "account_number": self.account_number,
            "account_type": self.account_type,
            "initial_balance_cents": self.initial_balance_cents,
            "balance_cents": self.balance_cents,
            "status": self.status,
            "created_by_actor_id": self.created_by_actor_id,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
        }


class BankMovement(db.Model):
    """
    Immutable bank statement line.

    balance_before_cents/balance_after_cents snapshot the account at the
    moment of the movement so statements reconcile without a full replay.
    """
    __tablename__ = "bank_movements"
    __table_args__ = (
        db.Index("ix_bank_movements_account_occurred", "account_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    account_id = db.Column(db.Integer, db.ForeignKey("bank_accounts.id"), nullable=False, index=True)

    direction = db.Column(db.String(8), nullable=False)
    amount_delta_cents = db.Column(db.Integer, nullable=False)
    balance_before_cents = db.Column(db.Integer, nullable=False)
    balance_after_cents = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(255), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    actor_id = db.Column(db.String(128), nullable=False)
    actor_name = db.Column(db.String(255), nullable=True)

    purchase_id = db.Column(db.Integer, db.ForeignKey("purchases.id"), nullable=True, index=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)
    payable_id = db.Column(db.Integer, db.ForeignKey("payable_entries.id"), nullable=True, index=True)
    receivable_id = db.Column(db.Integer, db.ForeignKey("receivable_entries.id"), nullable=True, index=True)

    account = db.relationship("BankAccount", backref=db.backref("movements", lazy="dynamic"))
    purchase = db.relationship("Purchase")
    sale = db.relationship("Sale")
    payable = db.relationship("PayableEntry", foreign_keys=[payable_id])
    receivable = db.relationship("ReceivableEntry", foreign_keys=[receivable_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "account_id": self.account_id,
            "direction": self.direction,
            "amount_delta_cents": self.amount_delta_cents,
            "balance_before_cents": self.balance_before_cents,
            "balance_after_cents": self.balance_after_cents,
            "reason": self.reason,
            "occurred_at": to_utc_z(self.occurred_at),
            "actor_id": self.actor_id,
            "actor_name": self.actor_name,
            "purchase_id": self.purchase_id,
            "sale_id": self.sale_id,
            "payable_id": self.payable_id,
            "receivable_id": self.receivable_id,
        }


forbid_mutation(BankMovement)


class Expense(db.Model):
    """Operating expense; always created together with one PayableEntry."""
    __tablename__ = "expenses"
    __table_args__ = (
        db.UniqueConstraint("document_number", name="uq_expenses_docnum"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    document_number = db.Column(db.String(32), nullable=False)
    description = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(128), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    due_date = db.Column(db.Date, nullable=False)
    bank_account_id = db.Column(db.Integer, db.ForeignKey("bank_accounts.id"), nullable=True)
    status = db.Column(db.String(16), nullable=False, default=ExpenseStatus.PENDING.value, index=True)

    registered_by_id = db.Column(db.String(128), nullable=False)
    registered_by_name = db.Column(db.String(255), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    bank_account = db.relationship("BankAccount")
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "document_number": self.document_number,
            "description": self.description,
            "category": self.category,
            "amount_cents": self.amount_cents,
            "due_date": to_iso_date(self.due_date),
            "bank_account_id": self.bank_account_id,
            "status": self.status,
            "registered_by_id": self.registered_by_id,
            "registered_by_name": self.registered_by_name,
            "created_at": to_utc_z(self.created_at),
        }


class PayableEntry(db.Model):
    """
    One installment owed to a supplier or for an operating expense.

    Exactly one of purchase_id / expense_id is set. PENDING -> PAID happens
    once, through register_service.settle_payable. Rows are never deleted.
    """
    __tablename__ = "payable_entries"
    __table_args__ = (
        db.CheckConstraint(
            "(purchase_id IS NULL) <> (expense_id IS NULL)",
            name="ck_payable_entries_single_source",
        ),
        db.CheckConstraint("amount_cents > 0", name="ck_payable_entries_amount_positive"),
        db.Index("ix_payable_entries_status_due", "status", "due_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    purchase_id = db.Column(db.Integer, db.ForeignKey("purchases.id"), nullable=True, index=True)
    expense_id = db.Column(db.Integer, db.ForeignKey("expenses.id"), nullable=True, index=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=True, index=True)
    # Invoice number for purchases, category for expenses
    reference = db.Column(db.String(128), nullable=True)

    amount_cents = db.Column(db.Integer, nullable=False)
    issue_date = db.Column(db.Date, nullable=False)
    due_date = db.Column(db.Date, nullable=False)
    installment_label = db.Column(db.String(16), nullable=False)

    status = db.Column(db.String(16), nullable=False, default=PayableStatus.PENDING.value)

    settled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    settled_account_id = db.Column(db.Integer, db.ForeignKey("bank_accounts.id"), nullable=True)
    settled_by_id = db.Column(db.String(128), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    purchase = db.relationship("Purchase", backref=db.backref("payables", lazy=True))
    expense = db.relationship("Expense", backref=db.backref("payables", lazy=True))
    supplier = db.relationship("Supplier")
    settled_account = db.relationship("BankAccount")
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_id": self.purchase_id,
            "expense_id": self.expense_id,
            "supplier_id": self.supplier_id,
            "reference": self.reference,
            "amount_cents": self.amount_cents,
            "issue_date": to_iso_date(self.issue_date),
            "due_date": to_iso_date(self.due_date),
            "installment_label": self.installment_label,
            "status": self.status,
            "settled_at": to_utc_z(self.settled_at) if self.settled_at else None,
            "settled_account_id": self.settled_account_id,
            "settled_by_id": self.settled_by_id,
            "version_id": self.version_id,
        }


class ReceivableEntry(db.Model):
    """
    One installment owed by a customer for a sale.

    PENDING -> RECEIVED happens once, through register_service.settle_receivable.
    """
    __tablename__ = "receivable_entries"
    __table_args__ = (
        db.CheckConstraint("amount_cents > 0", name="ck_receivable_entries_amount_positive"),
        db.Index("ix_receivable_entries_status_due", "status", "due_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    client_id = db.Column(db.Integer, db.ForeignKey("clients.id"), nullable=True, index=True)
    reference = db.Column(db.String(128), nullable=True)

    amount_cents = db.Column(db.Integer, nullable=False)
    issue_date = db.Column(db.Date, nullable=False)
    due_date = db.Column(db.Date, nullable=False)
    installment_label = db.Column(db.String(16), nullable=False)

    status = db.Column(db.String(16), nullable=False, default=ReceivableStatus.PENDING.value)

    settled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    settled_account_id = db.Column(db.Integer, db.ForeignKey("bank_accounts.id"), nullable=True)
    settled_by_id = db.Column(db.String(128), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    sale = db.relationship("Sale", backref=db.backref("receivables", lazy=True))
    client = db.relationship("Client")
    settled_account = db.relationship("BankAccount")
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "client_id": self.client_id,
            "reference": self.reference,
            "amount_cents": self.amount_cents,
            "issue_date": to_iso_date(self.issue_date),
            "due_date": to_iso_date(self.due_date),
            "installment_label": self.installment_label,
            "status": self.status,
            "settled_at": to_utc_z(self.settled_at) if self.settled_at else None,
            "settled_account_id": self.settled_account_id,
            "settled_by_id": self.settled_by_id,
            "version_id": self.version_id,
        }
