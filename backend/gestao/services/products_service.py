# Overview: Product master data; quantity is owned by the stock store, not by this module.

from __future__ import annotations

from ..constants import ProductType, RecordStatus
from ..errors import EntityNotFound, ValidationFailed
from ..extensions import db
from ..models import Category, Product, Unit
from ..validation import to_cents, to_choice, to_id, to_optional_id, to_text
from .lifecycle_service import ensure_transition
from .transaction import TransactionScope, run_in_transaction

# Columns this module may write. quantity is absent: it only
# changes through stock_service.record_movement.
_EDITABLE = {"name", "sku", "product_type", "unit_cost_cents", "sale_price_cents", "category_id", "unit_id"}

_LINKS = {
    "category_id": Category,
    "unit_id": Unit,
}


def _clean(fields: dict, *, creating: bool) -> dict:
    if "quantity" in fields:
        raise ValidationFailed("quantity changes only through stock movements")
    unknown = set(fields) - _EDITABLE
    if unknown:
        raise ValidationFailed(f"Unknown fields: {', '.join(sorted(unknown))}")

    clean = {}
    if creating or "name" in fields:
        clean["name"] = to_text(fields.get("name"), "name")
    if "sku" in fields:
        clean["sku"] = to_text(fields.get("sku"), "sku", required=False, max_length=64)
    if creating or "product_type" in fields:
        clean["product_type"] = to_choice(
            fields.get("product_type", ProductType.FOR_SALE.value), ProductType, "product_type"
        )
    if "unit_cost_cents" in fields:
        clean["unit_cost_cents"] = to_cents(fields["unit_cost_cents"], "unit_cost_cents", allow_zero=True)
    if fields.get("sale_price_cents") not in (None, ""):
        clean["sale_price_cents"] = to_cents(fields["sale_price_cents"], "sale_price_cents")
    for field in _LINKS:
        if field in fields:
            clean[field] = to_optional_id(fields[field], field)

    product_type = clean.get("product_type")
    if creating and product_type == ProductType.FOR_SALE.value and "sale_price_cents" not in clean:
        raise ValidationFailed("sale_price_cents is required for FOR_SALE products")
    return clean


def _check_links(scope: TransactionScope, clean: dict, product: Product | None = None) -> None:
    """Newly linked categories and units must be active."""
    for field, model in _LINKS.items():
        linked_id = clean.get(field)
        if linked_id is None or (product is not None and getattr(product, field) == linked_id):
            continue
        linked = scope.get(model, linked_id, lock=False)
        if not linked.is_active:
            raise ValidationFailed(f'{model.__name__} "{linked.name}" is inactive')


def create_product(**fields) -> Product:
    """New products start with zero stock."""
    clean = _clean(fields, creating=True)

    def _op(scope: TransactionScope) -> Product:
        _check_links(scope, clean)
        if clean.get("sku") and scope.query(Product, sku=clean["sku"]):
            raise ValidationFailed(f"SKU '{clean['sku']}' already exists")
        return scope.add(Product(status=RecordStatus.ACTIVE.value, **clean))

    return run_in_transaction(_op, label="create_product")


def update_product(product_id: int, **fields) -> Product:
    clean = _clean(fields, creating=False)

    def _op(scope: TransactionScope) -> Product:
        product = scope.get(Product, product_id)
        _check_links(scope, clean, product)
        if clean.get("sku") and clean["sku"] != product.sku:
            if scope.query(Product, sku=clean["sku"]):
                raise ValidationFailed(f"SKU '{clean['sku']}' already exists")
        if clean:
            scope.update(product, **clean)
        return product

    return run_in_transaction(_op, label="update_product")


def set_product_status(product_id: int, status: str) -> Product:
    status = to_choice(status, RecordStatus, "status")

    def _op(scope: TransactionScope) -> Product:
        product = scope.get(Product, product_id)
        return scope.update(product, status=ensure_transition("product", product.status, status))

    return run_in_transaction(_op, label="set_product_status")


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise EntityNotFound("Product", product_id)
    return product


def list_products(
    *, status: str | None = None, product_type: str | None = None, category_id=None
) -> list[Product]:
    query = db.session.query(Product)
    if category_id not in (None, ""):
        query = query.filter(Product.category_id == to_id(category_id, "category_id"))
    if status:
        query = query.filter(Product.status == to_choice(status, RecordStatus, "status"))
    if product_type:
        query = query.filter(Product.product_type == to_choice(product_type, ProductType, "product_type"))
    return query.order_by(Product.name.asc(), Product.id.asc()).all()
