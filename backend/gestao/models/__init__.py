from .catalog import Product, Supplier, Client, Category, Unit
from .inventory import StockMovement, ImmutableRecordError
from .finance import BankAccount, BankMovement, Expense, PayableEntry, ReceivableEntry
from .documents import (
    Purchase,
    PurchaseItem,
    Sale,
    SaleItem,
    Abate,
    ProductionRun,
    ProductionItem,
    DocumentSequence,
)
from .auth import Role, User

__all__ = [
    'Product', 'Supplier', 'Client', 'Category', 'Unit',
    'StockMovement', 'ImmutableRecordError',
    'BankAccount', 'BankMovement', 'Expense', 'PayableEntry', 'ReceivableEntry',
    'Purchase', 'PurchaseItem', 'Sale', 'SaleItem',
    'Abate', 'ProductionRun', 'ProductionItem', 'DocumentSequence',
    'Role', 'User',
]
