"""Input coercion shared by services and routes.

Everything here raises ValidationFailed with a field-specific message, before
any transaction is opened.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any

from .errors import ValidationFailed
from .time_utils import parse_iso_date

QUANTITY_STEP = Decimal("0.001")


def to_quantity(value: Any, field: str = "quantity", *, allow_zero: bool = False) -> Decimal:
    """Positive fixed-point quantity with at most three decimals."""
    if value is None or value == "" or isinstance(value, bool):
        raise ValidationFailed(f"{field} is required")
    try:
        qty = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationFailed(f"{field} must be a number") from None
    if not qty.is_finite():
        raise ValidationFailed(f"{field} must be a number")
    if qty != qty.quantize(QUANTITY_STEP):
        raise ValidationFailed(f"{field} allows at most 3 decimal places")
    if qty < 0 or (qty == 0 and not allow_zero):
        raise ValidationFailed(f"{field} must be greater than zero")
    return qty.quantize(QUANTITY_STEP)


def to_cents(value: Any, field: str, *, allow_zero: bool = False) -> int:
    """Non-negative integer amount in cents."""
    if value is None or value == "" or isinstance(value, bool):
        raise ValidationFailed(f"{field} is required")
    if isinstance(value, int):
        cents = value
    else:
        text = str(value).strip()
        if not text.lstrip("-").isdigit():
            raise ValidationFailed(f"{field} must be an integer amount in cents")
        cents = int(text)
    if cents < 0 or (cents == 0 and not allow_zero):
        raise ValidationFailed(f"{field} must be greater than zero")
    return cents


def to_count(value: Any, field: str, *, allow_zero: bool = False) -> int:
    """Whole number of things (installments, animals)."""
    if value is None or value == "" or isinstance(value, bool):
        raise ValidationFailed(f"{field} is required")
    try:
        count = int(str(value).strip())
    except ValueError:
        raise ValidationFailed(f"{field} must be a whole number") from None
    if count < 0 or (count == 0 and not allow_zero):
        raise ValidationFailed(f"{field} must be greater than zero")
    return count


def to_date(value: Any, field: str) -> date:
    if isinstance(value, date):
        return value
    if value is None or value == "":
        raise ValidationFailed(f"{field} is required")
    try:
        parsed = parse_iso_date(str(value))
    except ValueError:
        parsed = None
    if parsed is None:
        raise ValidationFailed(f"{field} must be an ISO date (YYYY-MM-DD)")
    return parsed


def to_optional_date(value: Any, field: str) -> date | None:
    if value is None or value == "":
        return None
    return to_date(value, field)


def to_choice(value: Any, enum_cls: type[Enum], field: str) -> str:
    if isinstance(value, enum_cls):
        return value.value
    allowed = [member.value for member in enum_cls]
    if value not in allowed:
        raise ValidationFailed(f"{field} must be one of: {', '.join(allowed)}")
    return value


def to_text(value: Any, field: str, *, required: bool = True, max_length: int = 255) -> str | None:
    text = str(value).strip() if value is not None else ""
    if not text:
        if required:
            raise ValidationFailed(f"{field} is required")
        return None
    if len(text) > max_length:
        raise ValidationFailed(f"{field} must be at most {max_length} characters")
    return text


def to_id(value: Any, field: str) -> int:
    if value is None or value == "" or isinstance(value, bool):
        raise ValidationFailed(f"{field} is required")
    try:
        entity_id = int(str(value).strip())
    except ValueError:
        raise ValidationFailed(f"{field} must be an integer id") from None
    if entity_id <= 0:
        raise ValidationFailed(f"{field} must be a positive id")
    return entity_id


def to_optional_id(value: Any, field: str) -> int | None:
    if value is None or value == "":
        return None
    return to_id(value, field)


# =============================================================================
# Line items
# =============================================================================

@dataclass(frozen=True)
class PurchaseLine:
    product_id: int
    quantity: Decimal
    unit_cost_cents: int


@dataclass(frozen=True)
class SaleLine:
    product_id: int
    quantity: Decimal
    unit_price_cents: int


@dataclass(frozen=True)
class ProductionLine:
    product_id: int
    quantity: Decimal
    loss_quantity: Decimal = Decimal("0.000")


def _require_items(items, field: str) -> list:
    if not isinstance(items, (list, tuple)) or not items:
        raise ValidationFailed(f"{field} must contain at least one item")
    return list(items)


def parse_purchase_lines(items) -> list[PurchaseLine]:
    lines = []
    for i, raw in enumerate(_require_items(items, "items"), start=1):
        if isinstance(raw, PurchaseLine):
            lines.append(raw)
            continue
        if not isinstance(raw, dict):
            raise ValidationFailed(f"items[{i}] must be an object")
        lines.append(PurchaseLine(
            product_id=to_id(raw.get("product_id"), f"items[{i}].product_id"),
            quantity=to_quantity(raw.get("quantity"), f"items[{i}].quantity"),
            unit_cost_cents=to_cents(raw.get("unit_cost_cents"), f"items[{i}].unit_cost_cents", allow_zero=True),
        ))
    return lines


def parse_sale_lines(items) -> list[SaleLine]:
    lines = []
    for i, raw in enumerate(_require_items(items, "items"), start=1):
        if isinstance(raw, SaleLine):
            lines.append(raw)
            continue
        if not isinstance(raw, dict):
            raise ValidationFailed(f"items[{i}] must be an object")
        lines.append(SaleLine(
            product_id=to_id(raw.get("product_id"), f"items[{i}].product_id"),
            quantity=to_quantity(raw.get("quantity"), f"items[{i}].quantity"),
            unit_price_cents=to_cents(raw.get("unit_price_cents"), f"items[{i}].unit_price_cents", allow_zero=True),
        ))
    return lines


def parse_production_lines(items) -> list[ProductionLine]:
    lines = []
    for i, raw in enumerate(_require_items(items, "items"), start=1):
        if isinstance(raw, ProductionLine):
            lines.append(raw)
            continue
        if not isinstance(raw, dict):
            raise ValidationFailed(f"items[{i}] must be an object")
        loss = raw.get("loss_quantity")
        lines.append(ProductionLine(
            product_id=to_id(raw.get("product_id"), f"items[{i}].product_id"),
            quantity=to_quantity(raw.get("quantity"), f"items[{i}].quantity"),
            loss_quantity=(
                to_quantity(loss, f"items[{i}].loss_quantity", allow_zero=True)
                if loss not in (None, "") else Decimal("0.000")
            ),
        ))
    return lines


def line_total_cents(quantity: Decimal, unit_cents: int) -> int:
    """Quantity x unit amount, rounded half-up to whole cents."""
    return int((Decimal(quantity) * unit_cents).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
