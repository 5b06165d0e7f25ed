"""initial schema

Revision ID: g0001
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the complete gestao schema:
- roles / users: capability matrices and upstream-authenticated users
- categories / units / products / suppliers / clients: master data
- purchases, sales, abates, production_runs (+ items): business documents
- stock_movements / bank_movements: append-only movement logs
- expenses, payable_entries, receivable_entries: financial registers
- document_sequences: per-type document counters
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'g0001'
down_revision = None
branch_labels = None
depends_on = None


QUANTITY = sa.Numeric(precision=14, scale=3)


def _timestamp(name='created_at'):
    return sa.Column(name, sa.DateTime(timezone=True), nullable=False,
                     server_default=sa.text('CURRENT_TIMESTAMP'))


def _actor_columns(prefix):
    return [
        sa.Column(f'{prefix}_id', sa.String(length=128), nullable=False),
        sa.Column(f'{prefix}_name', sa.String(length=255), nullable=True),
    ]


def _party_table(name):
    op.create_table(
        name,
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('tax_id', sa.String(length=32), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False),
        _timestamp(),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index(f'ix_{name}_status', name, ['status'])


def upgrade():
    """
    Create all tables from scratch.

    WHY: Cached quantities and balances live next to the movement logs that
    justify them; CHECK constraints back the non-negative invariants at the
    database level as well.
    """

    # ============================================================================
    # roles / users
    # ============================================================================
    op.create_table(
        'roles',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=64), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=True),
        sa.Column('permissions', sa.JSON(), nullable=False),
        sa.Column('is_super_admin', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('status', sa.String(length=16), nullable=False),
        _timestamp(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
        sqlite_autoincrement=True
    )

    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('uid', sa.String(length=128), nullable=False),
        sa.Column('display_name', sa.String(length=255), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('role_id', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False),
        _timestamp(),
        sa.ForeignKeyConstraint(['role_id'], ['roles.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_users_uid', 'users', ['uid'], unique=True)

    # ============================================================================
    # master data
    # ============================================================================
    op.create_table(
        'categories',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        _timestamp(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_categories_status', 'categories', ['status'])

    op.create_table(
        'units',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=64), nullable=False),
        sa.Column('abbreviation', sa.String(length=10), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        _timestamp(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('abbreviation'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_units_status', 'units', ['status'])

    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('sku', sa.String(length=64), nullable=True),
        sa.Column('product_type', sa.String(length=16), nullable=False),
        sa.Column('quantity', QUANTITY, nullable=False, server_default='0'),
        sa.Column('unit_cost_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('sale_price_cents', sa.Integer(), nullable=True),
        sa.Column('category_id', sa.Integer(), nullable=True),
        sa.Column('unit_id', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        _timestamp(),
        _timestamp('updated_at'),
        sa.CheckConstraint('quantity >= 0', name='ck_products_quantity_non_negative'),
        sa.ForeignKeyConstraint(['category_id'], ['categories.id']),
        sa.ForeignKeyConstraint(['unit_id'], ['units.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sku'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_products_status', 'products', ['status'])
    op.create_index('ix_products_status_name', 'products', ['status', 'name'])
    op.create_index('ix_products_category_id', 'products', ['category_id'])

    _party_table('suppliers')
    _party_table('clients')

    op.create_table(
        'bank_accounts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('bank', sa.String(length=128), nullable=False),
        sa.Column('agency', sa.String(length=32), nullable=True),
        sa.Column('account_number', sa.String(length=32), nullable=True),
        sa.Column('account_type', sa.String(length=16), nullable=False),
        sa.Column('initial_balance_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('balance_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('created_by_actor_id', sa.String(length=128), nullable=True),
        sa.Column('created_by_actor_name', sa.String(length=255), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        _timestamp(),
        sa.CheckConstraint('balance_cents >= 0', name='ck_bank_accounts_balance_non_negative'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_bank_accounts_status', 'bank_accounts', ['status'])

    op.create_table(
        'document_sequences',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('document_type', sa.String(length=32), nullable=False),
        sa.Column('next_number', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        _timestamp('updated_at'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('document_type', name='uq_doc_sequences_type'),
        sqlite_autoincrement=True
    )

    # ============================================================================
    # documents
    # ============================================================================
    op.create_table(
        'purchases',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('document_number', sa.String(length=32), nullable=False),
        sa.Column('supplier_id', sa.Integer(), nullable=False),
        sa.Column('invoice_number', sa.String(length=64), nullable=False),
        sa.Column('purchase_date', sa.Date(), nullable=False),
        sa.Column('total_cents', sa.Integer(), nullable=False),
        sa.Column('payment_terms', sa.String(length=16), nullable=False),
        sa.Column('installments', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('first_due_date', sa.Date(), nullable=True),
        sa.Column('bank_account_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        *_actor_columns('registered_by'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        _timestamp(),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id']),
        sa.ForeignKeyConstraint(['bank_account_id'], ['bank_accounts.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('document_number', name='uq_purchases_docnum'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_purchases_supplier_id', 'purchases', ['supplier_id'])
    op.create_index('ix_purchases_status', 'purchases', ['status'])
    op.create_index('ix_purchases_status_date', 'purchases', ['status', 'purchase_date'])

    op.create_table(
        'purchase_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('purchase_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('quantity', QUANTITY, nullable=False),
        sa.Column('unit_cost_cents', sa.Integer(), nullable=False),
        sa.Column('line_total_cents', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['purchase_id'], ['purchases.id']),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_purchase_items_purchase_id', 'purchase_items', ['purchase_id'])

    op.create_table(
        'sales',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('document_number', sa.String(length=32), nullable=False),
        sa.Column('client_id', sa.Integer(), nullable=False),
        sa.Column('sale_date', sa.Date(), nullable=False),
        sa.Column('total_cents', sa.Integer(), nullable=False),
        sa.Column('card_fee_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('final_amount_cents', sa.Integer(), nullable=False),
        sa.Column('payment_terms', sa.String(length=16), nullable=False),
        sa.Column('payment_method', sa.String(length=32), nullable=False),
        sa.Column('installments', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('first_due_date', sa.Date(), nullable=True),
        sa.Column('bank_account_id', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False),
        *_actor_columns('registered_by'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        _timestamp(),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id']),
        sa.ForeignKeyConstraint(['bank_account_id'], ['bank_accounts.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('document_number', name='uq_sales_docnum'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sales_client_id', 'sales', ['client_id'])
    op.create_index('ix_sales_status', 'sales', ['status'])
    op.create_index('ix_sales_status_date', 'sales', ['status', 'sale_date'])

    op.create_table(
        'sale_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('quantity', QUANTITY, nullable=False),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False),
        sa.Column('unit_cost_cents', sa.Integer(), nullable=False),
        sa.Column('line_total_cents', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id']),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sale_items_sale_id', 'sale_items', ['sale_id'])

    op.create_table(
        'abates',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('slaughter_date', sa.Date(), nullable=False),
        sa.Column('total_animals', sa.Integer(), nullable=False),
        sa.Column('condemned', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('responsible_id', sa.String(length=128), nullable=False),
        sa.Column('purchase_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        *_actor_columns('registered_by'),
        _timestamp(),
        sa.CheckConstraint('condemned >= 0', name='ck_abates_condemned_non_negative'),
        sa.ForeignKeyConstraint(['purchase_id'], ['purchases.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_abates_purchase_id', 'abates', ['purchase_id'])
    op.create_index('ix_abates_status', 'abates', ['status'])

    op.create_table(
        'production_runs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('document_number', sa.String(length=32), nullable=False),
        sa.Column('production_date', sa.Date(), nullable=False),
        sa.Column('responsible_id', sa.String(length=128), nullable=False),
        sa.Column('abate_id', sa.Integer(), nullable=False),
        sa.Column('lot', sa.String(length=64), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False),
        *_actor_columns('registered_by'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        _timestamp(),
        sa.ForeignKeyConstraint(['abate_id'], ['abates.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('document_number', name='uq_production_runs_docnum'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_production_runs_abate_id', 'production_runs', ['abate_id'])
    op.create_index('ix_production_runs_status', 'production_runs', ['status'])

    op.create_table(
        'production_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('production_run_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('quantity', QUANTITY, nullable=False),
        sa.Column('loss_quantity', QUANTITY, nullable=False, server_default='0'),
        sa.ForeignKeyConstraint(['production_run_id'], ['production_runs.id']),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_production_items_production_run_id', 'production_items', ['production_run_id'])

    # ============================================================================
    # financial registers
    # ============================================================================
    op.create_table(
        'expenses',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('document_number', sa.String(length=32), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=False),
        sa.Column('category', sa.String(length=128), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('due_date', sa.Date(), nullable=False),
        sa.Column('bank_account_id', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False),
        *_actor_columns('registered_by'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        _timestamp(),
        sa.ForeignKeyConstraint(['bank_account_id'], ['bank_accounts.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('document_number', name='uq_expenses_docnum'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_expenses_status', 'expenses', ['status'])

    op.create_table(
        'payable_entries',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('purchase_id', sa.Integer(), nullable=True),
        sa.Column('expense_id', sa.Integer(), nullable=True),
        sa.Column('supplier_id', sa.Integer(), nullable=True),
        sa.Column('reference', sa.String(length=128), nullable=True),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('issue_date', sa.Date(), nullable=False),
        sa.Column('due_date', sa.Date(), nullable=False),
        sa.Column('installment_label', sa.String(length=16), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('settled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('settled_account_id', sa.Integer(), nullable=True),
        sa.Column('settled_by_id', sa.String(length=128), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        _timestamp(),
        sa.CheckConstraint('(purchase_id IS NULL) <> (expense_id IS NULL)',
                           name='ck_payable_entries_single_source'),
        sa.CheckConstraint('amount_cents > 0', name='ck_payable_entries_amount_positive'),
        sa.ForeignKeyConstraint(['purchase_id'], ['purchases.id']),
        sa.ForeignKeyConstraint(['expense_id'], ['expenses.id']),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id']),
        sa.ForeignKeyConstraint(['settled_account_id'], ['bank_accounts.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_payable_entries_purchase_id', 'payable_entries', ['purchase_id'])
    op.create_index('ix_payable_entries_expense_id', 'payable_entries', ['expense_id'])
    op.create_index('ix_payable_entries_supplier_id', 'payable_entries', ['supplier_id'])
    op.create_index('ix_payable_entries_status_due', 'payable_entries', ['status', 'due_date'])

    op.create_table(
        'receivable_entries',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('client_id', sa.Integer(), nullable=True),
        sa.Column('reference', sa.String(length=128), nullable=True),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('issue_date', sa.Date(), nullable=False),
        sa.Column('due_date', sa.Date(), nullable=False),
        sa.Column('installment_label', sa.String(length=16), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('settled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('settled_account_id', sa.Integer(), nullable=True),
        sa.Column('settled_by_id', sa.String(length=128), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        _timestamp(),
        sa.CheckConstraint('amount_cents > 0', name='ck_receivable_entries_amount_positive'),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id']),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id']),
        sa.ForeignKeyConstraint(['settled_account_id'], ['bank_accounts.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_receivable_entries_sale_id', 'receivable_entries', ['sale_id'])
    op.create_index('ix_receivable_entries_client_id', 'receivable_entries', ['client_id'])
    op.create_index('ix_receivable_entries_status_due', 'receivable_entries', ['status', 'due_date'])

    # ============================================================================
    # movement logs (append-only)
    # ============================================================================
    op.create_table(
        'stock_movements',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('direction', sa.String(length=8), nullable=False),
        sa.Column('quantity_delta', QUANTITY, nullable=False),
        sa.Column('reason', sa.String(length=255), nullable=True),
        _timestamp('occurred_at'),
        *_actor_columns('actor'),
        sa.Column('purchase_id', sa.Integer(), nullable=True),
        sa.Column('sale_id', sa.Integer(), nullable=True),
        sa.Column('production_run_id', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.ForeignKeyConstraint(['purchase_id'], ['purchases.id']),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id']),
        sa.ForeignKeyConstraint(['production_run_id'], ['production_runs.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_stock_movements_product_id', 'stock_movements', ['product_id'])
    op.create_index('ix_stock_movements_purchase_id', 'stock_movements', ['purchase_id'])
    op.create_index('ix_stock_movements_sale_id', 'stock_movements', ['sale_id'])
    op.create_index('ix_stock_movements_production_run_id', 'stock_movements', ['production_run_id'])
    op.create_index('ix_stock_movements_product_occurred', 'stock_movements', ['product_id', 'occurred_at'])

    op.create_table(
        'bank_movements',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('direction', sa.String(length=8), nullable=False),
        sa.Column('amount_delta_cents', sa.Integer(), nullable=False),
        sa.Column('balance_before_cents', sa.Integer(), nullable=False),
        sa.Column('balance_after_cents', sa.Integer(), nullable=False),
        sa.Column('reason', sa.String(length=255), nullable=True),
        _timestamp('occurred_at'),
        *_actor_columns('actor'),
        sa.Column('purchase_id', sa.Integer(), nullable=True),
        sa.Column('sale_id', sa.Integer(), nullable=True),
        sa.Column('payable_id', sa.Integer(), nullable=True),
        sa.Column('receivable_id', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['account_id'], ['bank_accounts.id']),
        sa.ForeignKeyConstraint(['purchase_id'], ['purchases.id']),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id']),
        sa.ForeignKeyConstraint(['payable_id'], ['payable_entries.id']),
        sa.ForeignKeyConstraint(['receivable_id'], ['receivable_entries.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_bank_movements_account_id', 'bank_movements', ['account_id'])
    op.create_index('ix_bank_movements_purchase_id', 'bank_movements', ['purchase_id'])
    op.create_index('ix_bank_movements_sale_id', 'bank_movements', ['sale_id'])
    op.create_index('ix_bank_movements_payable_id', 'bank_movements', ['payable_id'])
    op.create_index('ix_bank_movements_receivable_id', 'bank_movements', ['receivable_id'])
    op.create_index('ix_bank_movements_account_occurred', 'bank_movements', ['account_id', 'occurred_at'])


def downgrade():
    """Drop all tables in reverse dependency order."""
    for table in (
        'bank_movements',
        'stock_movements',
        'receivable_entries',
        'payable_entries',
        'expenses',
        'production_items',
        'production_runs',
        'abates',
        'sale_items',
        'sales',
        'purchase_items',
        'purchases',
        'document_sequences',
        'bank_accounts',
        'clients',
        'suppliers',
        'products',
        'units',
        'categories',
        'users',
        'roles',
    ):
        op.drop_table(table)
