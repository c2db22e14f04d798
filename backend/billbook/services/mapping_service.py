# Overview: Supplier SKU and wattage mappings used when linking purchase lines.

from __future__ import annotations

import uuid

from ..errors import InvalidPurchaseInput, UnknownProduct
from ..extensions import db
from ..models import Product, SupplierMapping, WattMapping
from .ledger_service import ledger_operation


def _required(data: dict, field: str) -> str:
    value = data.get(field)
    if not isinstance(value, str) or not value.strip():
        raise InvalidPurchaseInput(f"{field} is required", details={"field": field})
    return value.strip()


def resolve_supplier_sku(supplier_sku: str | None) -> SupplierMapping | None:
    """
    Internal mapping for a supplier SKU, if one exists.

    The first mapping added for a supplier SKU wins when several exist.
    """
    if not supplier_sku:
        return None
    return (
        db.session.query(SupplierMapping)
        .filter(SupplierMapping.supplier_sku == supplier_sku.strip())
        .order_by(SupplierMapping.supplier_name, SupplierMapping.id)
        .first()
    )


def watts_for(internal_sku: str) -> str | None:
    mapping = db.session.query(WattMapping).filter_by(internal_sku=internal_sku).first()
    return mapping.watts if mapping else None


@ledger_operation
def add_supplier_mapping(data: dict) -> SupplierMapping:
    supplier_sku = _required(data, "supplier_sku")
    internal_sku = _required(data, "internal_sku")

    product = db.session.get(Product, internal_sku)
    if product is None:
        raise UnknownProduct(
            f"Unknown product: {internal_sku}",
            details={"product_ids": [internal_sku]},
        )

    mapping = SupplierMapping(
        id=uuid.uuid4().hex,
        supplier_sku=supplier_sku,
        supplier_name=(data.get("supplier_name") or "").strip(),
        internal_sku=internal_sku,
        internal_name=(data.get("internal_name") or product.name).strip(),
    )
    db.session.add(mapping)
    db.session.flush()
    return mapping


@ledger_operation
def delete_supplier_mapping(mapping_id: str) -> str:
    mapping = db.session.get(SupplierMapping, mapping_id)
    if mapping is None:
        raise InvalidPurchaseInput("Mapping not found", details={"mapping_id": mapping_id})
    db.session.delete(mapping)
    db.session.flush()
    return mapping_id


def list_supplier_mappings() -> list[SupplierMapping]:
    return (
        db.session.query(SupplierMapping)
        .order_by(SupplierMapping.supplier_name, SupplierMapping.supplier_sku)
        .all()
    )


@ledger_operation
def set_watt_mapping(internal_sku: str, watts: str) -> WattMapping:
    """Add or replace the wattage tag of an internal SKU."""
    internal_sku = _required({"internal_sku": internal_sku}, "internal_sku")
    watts = _required({"watts": watts}, "watts")

    mapping = db.session.query(WattMapping).filter_by(internal_sku=internal_sku).first()
    if mapping is None:
        mapping = WattMapping(id=uuid.uuid4().hex, internal_sku=internal_sku, watts=watts)
        db.session.add(mapping)
    else:
        mapping.watts = watts
    db.session.flush()
    return mapping


@ledger_operation
def delete_watt_mapping(mapping_id: str) -> str:
    mapping = db.session.get(WattMapping, mapping_id)
    if mapping is None:
        raise InvalidPurchaseInput("Mapping not found", details={"mapping_id": mapping_id})
    db.session.delete(mapping)
    db.session.flush()
    return mapping_id


def list_watt_mappings() -> list[WattMapping]:
    return db.session.query(WattMapping).order_by(WattMapping.internal_sku).all()
