# backend/billbook/services/catalog_service.py
"""
Catalog Service

Product create / edit / delete. `stock` is not a catalog field: a new
product's opening stock goes through the Stock Ledger like any other
movement, and edits that try to set it are rejected.
"""
from __future__ import annotations

from decimal import Decimal

from sqlalchemy import or_

from ..errors import InvalidInput, UnknownProduct
from ..extensions import db
from ..models import Product
from .ledger_service import ledger_operation
from .settings_service import get_company_config
from .stock_service import _apply_batch_locked
from .tax_service import money, to_decimal

PRODUCT_MUTABLE_FIELDS = {
    "name", "category", "description", "price", "cost_price", "gst_rate", "hsn_code", "watts",
}
MONEY_FIELDS = {"price", "cost_price", "gst_rate"}


def _clean_value(field: str, value):
    if field in MONEY_FIELDS:
        dec = to_decimal(value, field=field, error=InvalidInput)
        if dec < 0:
            raise InvalidInput(f"{field} cannot be negative", details={"field": field})
        return money(dec)
    if value is None:
        return None if field in {"description", "hsn_code", "watts"} else ""
    if not isinstance(value, str):
        raise InvalidInput(f"{field} must be a string", details={"field": field})
    return value.strip()


def apply_product_patch(product: Product, patch: dict) -> None:
    if "stock" in patch:
        raise InvalidInput(
            "stock cannot be edited directly; record a purchase or sale",
            details={"field": "stock", "product_id": product.id},
        )
    unknown = sorted(set(patch) - PRODUCT_MUTABLE_FIELDS)
    if unknown:
        raise InvalidInput(f"Unknown product fields: {', '.join(unknown)}", details={"fields": unknown})
    for field, value in patch.items():
        setattr(product, field, _clean_value(field, value))
    if not product.name:
        raise InvalidInput("name is required", details={"field": "name"})


def get_product(product_id: str) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise UnknownProduct(f"Unknown product: {product_id}", details={"product_ids": [product_id]})
    return product


def list_products(search: str | None = None, category: str | None = None) -> list[Product]:
    query = db.session.query(Product)
    if category:
        query = query.filter(Product.category == category)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(Product.id.ilike(pattern), Product.name.ilike(pattern)))
    return query.order_by(Product.category, Product.id).all()


def low_stock_products(threshold: int | None = None) -> list[Product]:
    """Products whose stock is strictly below the threshold (company setting by default)."""
    if threshold is None:
        threshold = get_company_config().low_stock_threshold
    return (
        db.session.query(Product)
        .filter(Product.stock < threshold)
        .order_by(Product.stock.asc(), Product.id)
        .all()
    )


@ledger_operation
def create_product(data: dict) -> Product:
    product_id = data.get("id")
    if not isinstance(product_id, str) or not product_id.strip():
        raise InvalidInput("id (SKU) is required", details={"field": "id"})
    product_id = product_id.strip()
    if db.session.get(Product, product_id) is not None:
        raise InvalidInput(f"Product {product_id} already exists", details={"product_id": product_id})

    opening_stock = data.get("stock", 0)
    if isinstance(opening_stock, bool) or not isinstance(opening_stock, int) or opening_stock < 0:
        raise InvalidInput("stock must be a non-negative integer", details={"field": "stock"})

    product = Product(
        id=product_id,
        name="",
        price=Decimal("0.00"),
        cost_price=Decimal("0.00"),
        gst_rate=Decimal("0.00"),
        stock=0,
    )
    patch = {k: v for k, v in data.items() if k not in {"id", "stock"}}
    apply_product_patch(product, patch)

    db.session.add(product)
    db.session.flush()

    if opening_stock:
        _apply_batch_locked({product.id: opening_stock})
    return product


@ledger_operation
def update_product(product_id: str, patch: dict) -> Product:
    product = get_product(product_id)
    apply_product_patch(product, patch)
    db.session.flush()
    return product


@ledger_operation
def delete_product(product_id: str) -> str:
    """Remove a product. Issued invoices keep their line snapshots."""
    product = get_product(product_id)
    db.session.delete(product)
    db.session.flush()
    return product_id
