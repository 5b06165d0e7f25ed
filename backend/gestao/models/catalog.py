from __future__ import annotations

from ..extensions import db
from ..constants import RecordStatus, ProductType
from gestao.time_utils import to_utc_z

QUANTITY = db.Numeric(14, 3, asdecimal=True)


class Product(db.Model):
    """
    Product master data with a cached on-hand quantity.

    INVARIANT: quantity is only changed by stock_service.record_movement,
    inside a transaction scope that appends the matching StockMovement.
    Replaying a product's movements always yields this value.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_products_quantity_non_negative"),
        db.Index("ix_products_status_name", "status", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    sku = db.Column(db.String(64), nullable=True, unique=True)
    product_type = db.Column(db.String(16), nullable=False, default=ProductType.FOR_SALE.value)

    quantity = db.Column(QUANTITY, nullable=False, default=0)

    # Latest purchase cost; snapshotted onto sale items at sale time
    unit_cost_cents = db.Column(db.Integer, nullable=False, default=0)
    sale_price_cents = db.Column(db.Integer, nullable=True)

    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True, index=True)
    unit_id = db.Column(db.Integer, db.ForeignKey("units.id"), nullable=True)

    status = db.Column(db.String(16), nullable=False, default=RecordStatus.ACTIVE.value, index=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    category = db.relationship("Category", backref=db.backref("products", lazy=True))
    unit = db.relationship("Unit", backref=db.backref("products", lazy=True))

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_active(self) -> bool:
        return self.status == RecordStatus.ACTIVE.value

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} quantity={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "sku": self.sku,
            "product_type": self.product_type,
            "quantity": str(self.quantity) if self.quantity is not None else None,
            "unit_cost_cents": self.unit_cost_cents,
            "sale_price_cents": self.sale_price_cents,
            "category_id": self.category_id,
            "unit_id": self.unit_id,
            "status": self.status,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class _Party:
    """Columns shared by suppliers and clients."""

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    # CPF or CNPJ, digits only
    tax_id = db.Column(db.String(32), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    status = db.Column(db.String(16), nullable=False, default=RecordStatus.ACTIVE.value, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "tax_id": self.tax_id,
            "email": self.email,
            "phone": self.phone,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }


class Supplier(_Party, db.Model):
    __tablename__ = "suppliers"
    __table_args__ = {"sqlite_autoincrement": True}

    def __repr__(self) -> str:
        return f"<Supplier id={self.id} name={self.name!r}>"


class Client(_Party, db.Model):
    __tablename__ = "clients"
    __table_args__ = {"sqlite_autoincrement": True}

    def __repr__(self) -> str:
        return f"<Client id={self.id} name={self.name!r}>"


class Category(db.Model):
    """Product grouping shown on the dashboard; switched off, never deleted."""
    __tablename__ = "categories"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False, unique=True)
    status = db.Column(db.String(16), nullable=False, default=RecordStatus.ACTIVE.value, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    @property
    def is_active(self) -> bool:
        return self.status == RecordStatus.ACTIVE.value

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }


class Unit(db.Model):
    """Unit of measure (kg, un, cx); abbreviation is what labels print."""
    __tablename__ = "units"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), nullable=False)
    abbreviation = db.Column(db.String(10), nullable=False, unique=True)
    status = db.Column(db.String(16), nullable=False, default=RecordStatus.ACTIVE.value, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    @property
    def is_active(self) -> bool:
        return self.status == RecordStatus.ACTIVE.value

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "abbreviation": self.abbreviation,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }
