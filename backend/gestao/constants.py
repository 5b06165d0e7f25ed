"""Enumerations shared by models, services and routes.

Status values are stored as their string value; the allowed changes between
them live in ``services.lifecycle_service``.
"""

from __future__ import annotations

from enum import Enum


class RecordStatus(str, Enum):
    """Master data and documents that can only be switched on/off."""

    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class SaleStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    INACTIVE = "INACTIVE"


class ExpenseStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"


class PayableStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"


class ReceivableStatus(str, Enum):
    PENDING = "PENDING"
    RECEIVED = "RECEIVED"


class PaymentTerms(str, Enum):
    """Immediate payment (a vista) or installments (a prazo)."""

    A_VISTA = "A_VISTA"
    A_PRAZO = "A_PRAZO"


class StockDirection(str, Enum):
    ENTRY = "ENTRY"
    EXIT = "EXIT"


class BankDirection(str, Enum):
    CREDIT = "CREDIT"
    DEBIT = "DEBIT"


class ProductType(str, Enum):
    FOR_SALE = "FOR_SALE"
    RAW_MATERIAL = "RAW_MATERIAL"
    INTERNAL_USE = "INTERNAL_USE"


class AccountType(str, Enum):
    CHECKING = "CHECKING"
    SAVINGS = "SAVINGS"
    CASH = "CASH"


__all__ = [
    "RecordStatus",
    "SaleStatus",
    "ExpenseStatus",
    "PayableStatus",
    "ReceivableStatus",
    "PaymentTerms",
    "StockDirection",
    "BankDirection",
    "ProductType",
    "AccountType",
]
