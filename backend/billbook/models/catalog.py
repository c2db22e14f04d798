from __future__ import annotations

from ..extensions import db


def _money(value):
    return str(value) if value is not None else None


class Product(db.Model):
    """
    Catalog product.

    The id IS the internal SKU (e.g. "TEV-50-05102") and is what purchase
    lines link to and what supplier mappings resolve to.

    STOCK OWNERSHIP:
    `stock` is written only by services.stock_service. Catalog edits go
    through catalog_service and never touch it; purchase finalize is the only
    other writer of `cost_price` (last landed cost).
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        db.Index("ix_products_category", "category"),
    )

    id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(64), nullable=False, default="")
    description = db.Column(db.Text, nullable=True)

    # Unit sale price and unit cost price in INR
    price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    cost_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    stock = db.Column(db.Integer, nullable=False, default=0)

    # GST rate in percent (e.g. 18)
    gst_rate = db.Column(db.Numeric(5, 2), nullable=False, default=0)
    hsn_code = db.Column(db.String(16), nullable=True)
    watts = db.Column(db.String(16), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime, nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id!r} name={self.name!r} stock={self.stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "description": self.description,
            "price": _money(self.price),
            "cost_price": _money(self.cost_price),
            "stock": self.stock,
            "gst_rate": _money(self.gst_rate),
            "hsn_code": self.hsn_code,
            "watts": self.watts,
        }


class SupplierMapping(db.Model):
    """Supplier SKU -> internal SKU link, used to auto-link purchase lines."""
    __tablename__ = "supplier_mappings"
    __table_args__ = (
        db.Index("ix_supplier_mappings_supplier_sku", "supplier_sku"),
    )

    id = db.Column(db.String(32), primary_key=True)
    supplier_sku = db.Column(db.String(64), nullable=False)
    supplier_name = db.Column(db.String(255), nullable=False, default="")
    internal_sku = db.Column(db.String(64), nullable=False)
    internal_name = db.Column(db.String(255), nullable=False, default="")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "supplier_sku": self.supplier_sku,
            "supplier_name": self.supplier_name,
            "internal_sku": self.internal_sku,
            "internal_name": self.internal_name,
        }


class WattMapping(db.Model):
    __tablename__ = "watt_mappings"

    id = db.Column(db.String(32), primary_key=True)
    internal_sku = db.Column(db.String(64), nullable=False, index=True)
    watts = db.Column(db.String(16), nullable=False)

    def to_dict(self) -> dict:
        return {"id": self.id, "internal_sku": self.internal_sku, "watts": self.watts}
