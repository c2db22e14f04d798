# Overview: Flask API routes for the product catalog and mappings.

# backend/billbook/routes/products.py
"""
Product catalog routes.

SECURITY: All routes require authentication.
- Reads are open to every signed-in user
- Create / edit / delete and mapping changes require the admin role

Stock is never edited here; it moves only through invoices and purchases.
"""
from flask import Blueprint, request

from ..errors import LedgerError
from ..services import catalog_service, mapping_service
from ..decorators import require_auth, require_admin
from .common import ledger_error_response, result_response

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
def list_products():
    """
    Query params:
    - search: str (optional) - matches SKU or name
    - category: str (optional)
    """
    products = catalog_service.list_products(
        search=request.args.get("search"),
        category=request.args.get("category"),
    )
    return {"items": [p.to_dict() for p in products], "count": len(products)}


@products_bp.get("/low-stock")
@require_auth
def low_stock():
    threshold = request.args.get("threshold", type=int)
    products = catalog_service.low_stock_products(threshold)
    return {"items": [p.to_dict() for p in products], "count": len(products)}


@products_bp.get("/<product_id>")
@require_auth
def get_product(product_id: str):
    try:
        return catalog_service.get_product(product_id).to_dict()
    except LedgerError as e:
        return ledger_error_response(e)


@products_bp.post("")
@require_auth
@require_admin
def create_product_route():
    payload = request.get_json(silent=True) or {}
    return result_response(catalog_service.create_product(payload), status=201)


@products_bp.patch("/<product_id>")
@require_auth
@require_admin
def update_product_route(product_id: str):
    payload = request.get_json(silent=True) or {}
    return result_response(catalog_service.update_product(product_id, payload))


@products_bp.delete("/<product_id>")
@require_auth
@require_admin
def delete_product_route(product_id: str):
    return result_response(catalog_service.delete_product(product_id))


@products_bp.get("/mappings/suppliers")
@require_auth
def list_supplier_mappings():
    return {"items": [m.to_dict() for m in mapping_service.list_supplier_mappings()]}


@products_bp.post("/mappings/suppliers")
@require_auth
@require_admin
def add_supplier_mapping():
    payload = request.get_json(silent=True) or {}
    return result_response(mapping_service.add_supplier_mapping(payload), status=201)


@products_bp.delete("/mappings/suppliers/<mapping_id>")
@require_auth
@require_admin
def delete_supplier_mapping(mapping_id: str):
    return result_response(mapping_service.delete_supplier_mapping(mapping_id))


@products_bp.get("/mappings/watts")
@require_auth
def list_watt_mappings():
    return {"items": [m.to_dict() for m in mapping_service.list_watt_mappings()]}


@products_bp.put("/mappings/watts/<internal_sku>")
@require_auth
@require_admin
def set_watt_mapping(internal_sku: str):
    payload = request.get_json(silent=True) or {}
    return result_response(mapping_service.set_watt_mapping(internal_sku, payload.get("watts")))


@products_bp.delete("/mappings/watts/<mapping_id>")
@require_auth
@require_admin
def delete_watt_mapping(mapping_id: str):
    return result_response(mapping_service.delete_watt_mapping(mapping_id))
