# Overview: Whole-state JSON document exchanged with the remote store.

"""
Sync document

build_document() serializes the entire local state; apply_document()
replaces local collections with the ones in a document. There is no merge:
the last document written wins.

Layout (camelCase, money as JSON numbers):

    schemaVersion, lastUpdated,
    users            password = credential_service.obfuscate(<bcrypt hash>)
    products
    orders           items[] carry the price / cost / tax snapshots
    purchaseOrders   confirmed purchases
    pendingInventory Stock purchases awaiting review
    companyConfig    includes invoiceSequence
    supplierMappings, wattMappings, lowStockThreshold

apply_document() validates and builds every row before deleting anything,
so a malformed document leaves local state untouched. A collection key that
is absent from the document leaves that local collection as it is.
"""

from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from ..models import (
    Order,
    OrderItem,
    OrderStatus,
    Product,
    PurchaseNature,
    PurchaseOrder,
    PurchaseOrderItem,
    PurchaseStatus,
    SupplierMapping,
    User,
    WattMapping,
)
from ..time_utils import business_now, parse_iso_datetime, to_iso, utc_stamp
from .auth_service import store_password_from_document
from .credential_service import obfuscate, reveal
from .settings_service import get_company_config
from .tax_service import MONEY_QUANT, money

SCHEMA_VERSION = 2

COLLECTION_KEYS = (
    "users", "products", "orders", "purchaseOrders", "pendingInventory",
    "companyConfig", "supplierMappings", "wattMappings", "lowStockThreshold",
)

# companyConfig document key -> CompanyConfig column
COMPANY_FIELDS = {
    "name": "name",
    "address": "address",
    "gstin": "gstin",
    "phone": "phone",
    "email": "email",
    "tagline": "tagline",
    "stateCode": "state_code",
    "bankName": "bank_name",
    "bankIfsc": "bank_ifsc",
    "bankAccountNo": "bank_account_no",
    "bankAccountHolder": "bank_account_holder",
    "invoicePrefix": "invoice_prefix",
    "invoiceSequence": "invoice_sequence",
}


# plan key -> models whose rows apply_document() deletes and re-adds
REPLACED_MODELS = {
    "products": (Product,),
    "orders": (Order, OrderItem),
    "purchases": (PurchaseOrder, PurchaseOrderItem),
    "users": (User,),
    "supplierMappings": (SupplierMapping,),
    "wattMappings": (WattMapping,),
}


class InvalidDocument(ValueError):
    """The remote document cannot be applied; local state was not changed."""


def is_empty_document(document: dict | None) -> bool:
    return not document or not any(key in document for key in COLLECTION_KEYS)


# -- serialization -----------------------------------------------------------

def _num(value) -> float:
    return float(value) if value is not None else 0.0


def _user_entry(user: User) -> dict:
    return {
        "id": user.id,
        "username": user.username,
        "password": obfuscate(user.password_hash),
        "role": user.role,
        "firstName": user.first_name,
        "lastName": user.last_name,
        "enabled": user.enabled,
        "email": user.email,
        "phone": user.phone,
    }


def _product_entry(p: Product) -> dict:
    return {
        "id": p.id,
        "name": p.name,
        "category": p.category,
        "price": _num(p.price),
        "costPrice": _num(p.cost_price),
        "stock": p.stock,
        "description": p.description or "",
        "gstRate": _num(p.gst_rate),
        "hsnCode": p.hsn_code,
        "watts": p.watts,
    }


def _order_entry(o: Order) -> dict:
    return {
        "id": o.id,
        "serialNumber": o.serial_number,
        "customerName": o.customer_name,
        "customerEmail": o.customer_email,
        "customerPhone": o.customer_phone,
        "customerGstin": o.customer_gstin,
        "date": to_iso(o.created_at),
        "isInterState": o.is_inter_state,
        "items": [
            {
                "id": i.id,
                "productId": i.product_id,
                "name": i.name,
                "quantity": i.quantity,
                "unitPrice": _num(i.unit_price),
                "costPrice": _num(i.cost_price),
                "gstRate": _num(i.gst_rate),
                "taxAmount": _num(i.tax_amount),
                "hsnCode": i.hsn_code,
            }
            for i in o.items
        ],
        "subtotal": _num(o.subtotal),
        "cgst": _num(o.cgst),
        "sgst": _num(o.sgst),
        "igst": _num(o.igst),
        "totalTax": _num(o.total_tax),
        "totalAmount": _num(o.total_amount),
        "status": o.status.value,
        "notes": o.notes,
    }


def _purchase_entry(po: PurchaseOrder) -> dict:
    return {
        "id": po.id,
        "supplierName": po.supplier_name,
        "country": po.country,
        "natureOfPurchase": po.nature.value,
        "invoiceRef": po.invoice_ref,
        "date": po.purchase_date,
        "createdAt": to_iso(po.created_at),
        "confirmedAt": to_iso(po.confirmed_at),
        "items": [
            {
                "id": i.id,
                "supplierSku": i.supplier_sku,
                "tevoltaSku": i.linked_sku or "",
                "name": i.name,
                "quantity": i.quantity,
                "costPerUnit": _num(i.unit_cost),
                "watts": i.watts,
                "totalForeign": _num(i.total_foreign),
            }
            for i in po.items
        ],
        "currency": po.currency,
        "exchangeRate": _num(po.exchange_rate),
        "extraFee": _num(po.extra_fee),
        "extraFeeRemarks": po.extra_fee_remarks,
        "depositAmount": _num(po.deposit_amount),
        "remainingBalance": _num(po.remaining_balance),
        "totalForeignAmount": _num(po.total_foreign_amount),
        "investmentInr": _num(po.investment_inr),
        "totalQuantity": po.total_quantity,
        "status": po.status.value,
    }


def build_document() -> dict:
    """Snapshot of the whole local state. Caller holds ledger_write_lock."""
    config = get_company_config()
    company = {key: getattr(config, column) for key, column in COMPANY_FIELDS.items()}

    purchases = db.session.query(PurchaseOrder).order_by(PurchaseOrder.created_at.desc()).all()

    return {
        "schemaVersion": SCHEMA_VERSION,
        "lastUpdated": utc_stamp(),
        "users": [_user_entry(u) for u in db.session.query(User).order_by(User.username).all()],
        "products": [_product_entry(p) for p in db.session.query(Product).order_by(Product.id).all()],
        "orders": [
            _order_entry(o)
            for o in db.session.query(Order).order_by(Order.created_at.desc(), Order.serial_number.desc()).all()
        ],
        "purchaseOrders": [_purchase_entry(po) for po in purchases if not po.is_pending_review],
        "pendingInventory": [_purchase_entry(po) for po in purchases if po.is_pending_review],
        "companyConfig": company,
        "supplierMappings": [
            {
                "id": m.id,
                "supplierSku": m.supplier_sku,
                "supplierName": m.supplier_name,
                "tevoltaSku": m.internal_sku,
                "tevoltaName": m.internal_name,
            }
            for m in db.session.query(SupplierMapping).order_by(SupplierMapping.id).all()
        ],
        "wattMappings": [
            {"id": m.id, "tevoltaSku": m.internal_sku, "watts": m.watts}
            for m in db.session.query(WattMapping).order_by(WattMapping.id).all()
        ],
        "lowStockThreshold": config.low_stock_threshold,
    }


# -- parsing -----------------------------------------------------------------

def _dec(entry: dict, key: str, default=0) -> Decimal:
    value = entry.get(key, default)
    if value is None:
        value = default
    if isinstance(value, bool):
        raise InvalidDocument(f"{key} must be a number")
    try:
        dec = Decimal(str(value))
    except ArithmeticError:
        raise InvalidDocument(f"{key} must be a number, got {value!r}")
    if not dec.is_finite():
        raise InvalidDocument(f"{key} must be finite")
    return dec


def _int(entry: dict, key: str, default=0) -> int:
    dec = _dec(entry, key, default)
    if dec != dec.to_integral_value():
        raise InvalidDocument(f"{key} must be a whole number")
    return int(dec)


def _date(entry: dict, key: str, tz_name: str, label: str):
    try:
        return parse_iso_datetime(entry.get(key), tz_name)
    except (TypeError, ValueError) as e:
        raise InvalidDocument(f"{label} has an invalid {key}: {e}")


def _str(entry: dict, key: str, default: str = "") -> str:
    value = entry.get(key)
    return default if value is None else str(value)


def _required_id(entry, kind: str) -> str:
    if not isinstance(entry, dict):
        raise InvalidDocument(f"{kind} entries must be objects")
    value = entry.get("id")
    if value in (None, ""):
        raise InvalidDocument(f"{kind} entry without id")
    return str(value)


def _list(document: dict, key: str) -> list:
    value = document.get(key) or []
    if not isinstance(value, list):
        raise InvalidDocument(f"{key} must be a list")
    return value


def _parse_products(entries: list) -> list[Product]:
    products = []
    for entry in entries:
        product_id = _required_id(entry, "product")
        stock = _int(entry, "stock")
        if stock < 0:
            raise InvalidDocument(f"Product {product_id} has negative stock {stock}")
        products.append(Product(
            id=product_id,
            name=_str(entry, "name"),
            category=_str(entry, "category"),
            description=entry.get("description"),
            price=_dec(entry, "price"),
            cost_price=_dec(entry, "costPrice"),
            stock=stock,
            gst_rate=_dec(entry, "gstRate"),
            hsn_code=entry.get("hsnCode") or None,
            watts=entry.get("watts") or None,
        ))
    return products


def _parse_orders(entries: list, tz_name: str) -> list[Order]:
    orders = []
    for entry in entries:
        order_id = _required_id(entry, "order")
        created_at = _date(entry, "date", tz_name, f"Order {order_id}")
        if created_at is None:
            raise InvalidDocument(f"Order {order_id} has no date")
        order = Order(
            id=order_id,
            serial_number=_str(entry, "serialNumber", order_id),
            customer_name=_str(entry, "customerName"),
            customer_email=_str(entry, "customerEmail"),
            customer_phone=_str(entry, "customerPhone"),
            customer_gstin=entry.get("customerGstin") or None,
            notes=_str(entry, "notes"),
            is_inter_state=bool(entry.get("isInterState", False)),
            created_at=created_at,
            subtotal=_dec(entry, "subtotal"),
            cgst=_dec(entry, "cgst"),
            sgst=_dec(entry, "sgst"),
            igst=_dec(entry, "igst"),
            total_tax=_dec(entry, "totalTax"),
            total_amount=_dec(entry, "totalAmount"),
            status=OrderStatus.ISSUED,
        )
        for position, item in enumerate(entry.get("items") or []):
            item_id = _required_id(item, "order item")
            quantity = _int(item, "quantity")
            if quantity <= 0:
                raise InvalidDocument(f"Order {order_id} line {item_id} has quantity {quantity}")
            order.items.append(OrderItem(
                id=item_id,
                position=position,
                product_id=_str(item, "productId"),
                name=_str(item, "name"),
                quantity=quantity,
                unit_price=_dec(item, "unitPrice"),
                cost_price=_dec(item, "costPrice"),
                gst_rate=_dec(item, "gstRate"),
                tax_amount=_dec(item, "taxAmount"),
                hsn_code=item.get("hsnCode") or None,
            ))
        _check_order_totals(order)
        orders.append(order)
    return orders


def _check_order_totals(order: Order) -> None:
    """Stored totals must agree with the lines, to a paisa per line of rounding."""
    tolerance = MONEY_QUANT * max(1, len(order.items))
    subtotal = sum((money(i.unit_price) * i.quantity for i in order.items), Decimal("0"))
    line_tax = sum((money(i.tax_amount) for i in order.items), Decimal("0"))
    total_tax = money(order.total_tax)
    checks = (
        (subtotal, money(order.subtotal)),
        (line_tax, total_tax),
        (money(order.cgst) + money(order.sgst) + money(order.igst), total_tax),
        (money(order.subtotal) + total_tax, money(order.total_amount)),
    )
    if any(abs(a - b) > tolerance for a, b in checks):
        raise InvalidDocument(f"Order {order.id} totals do not match its lines")


def _parse_purchases(entries: list, tz_name: str, *, pending: bool) -> list[PurchaseOrder]:
    purchases = []
    now = business_now(tz_name)
    for entry in entries:
        po_id = _required_id(entry, "purchase")
        try:
            nature = PurchaseNature(entry.get("natureOfPurchase") or PurchaseNature.STOCK.value)
            status = PurchaseStatus(entry.get("status") or PurchaseStatus.LOGGED.value)
        except ValueError as e:
            raise InvalidDocument(f"Purchase {po_id}: {e}")
        if pending:
            nature, status = PurchaseNature.STOCK, PurchaseStatus.LOGGED

        created_at = _date(entry, "createdAt", tz_name, f"Purchase {po_id}") or now
        po = PurchaseOrder(
            id=po_id,
            supplier_name=_str(entry, "supplierName"),
            country=_str(entry, "country", "Unknown"),
            nature=nature,
            invoice_ref=_str(entry, "invoiceRef"),
            purchase_date=_str(entry, "date"),
            currency=_str(entry, "currency", "USD"),
            exchange_rate=_dec(entry, "exchangeRate", 1),
            extra_fee=_dec(entry, "extraFee"),
            extra_fee_remarks=_str(entry, "extraFeeRemarks"),
            deposit_amount=_dec(entry, "depositAmount"),
            total_foreign_amount=_dec(entry, "totalForeignAmount"),
            remaining_balance=_dec(entry, "remainingBalance"),
            investment_inr=_dec(entry, "investmentInr"),
            total_quantity=_int(entry, "totalQuantity"),
            status=status,
            created_at=created_at,
            confirmed_at=_date(entry, "confirmedAt", tz_name, f"Purchase {po_id}"),
        )
        for position, item in enumerate(entry.get("items") or []):
            item_id = _required_id(item, "purchase item")
            linked = item.get("tevoltaSku") or item.get("sku")
            po.items.append(PurchaseOrderItem(
                id=item_id,
                position=position,
                supplier_sku=_str(item, "supplierSku"),
                linked_sku=linked or None,
                name=_str(item, "name"),
                watts=_str(item, "watts"),
                quantity=_int(item, "quantity"),
                unit_cost=_dec(item, "costPerUnit"),
                total_foreign=_dec(item, "totalForeign"),
            ))
        purchases.append(po)
    return purchases


def _parse_users(entries: list) -> list[User]:
    users = []
    for entry in entries:
        user_id = _required_id(entry, "user")
        username = _str(entry, "username").strip()
        password = reveal(entry.get("password"))
        if not username or not password:
            raise InvalidDocument(f"User {user_id} needs a username and password")
        users.append(User(
            id=user_id,
            username=username,
            password_hash=store_password_from_document(password),
            role=_str(entry, "role", "employee"),
            first_name=_str(entry, "firstName"),
            last_name=_str(entry, "lastName"),
            enabled=bool(entry.get("enabled", True)),
            email=entry.get("email"),
            phone=entry.get("phone"),
        ))
    return users


def apply_document(document: dict, tz_name: str) -> dict:
    """
    Replace local collections with the document's. Does not commit.

    Returns the number of rows written per collection.
    """
    if not isinstance(document, dict):
        raise InvalidDocument("Document must be a JSON object")

    # Build everything first; nothing is deleted until the document parsed cleanly
    plan: dict[str, list] = {}
    if "products" in document:
        plan["products"] = _parse_products(_list(document, "products"))
    if "orders" in document:
        plan["orders"] = _parse_orders(_list(document, "orders"), tz_name)
    if "purchaseOrders" in document or "pendingInventory" in document:
        confirmed = _parse_purchases(_list(document, "purchaseOrders"), tz_name, pending=False)
        pending = _parse_purchases(_list(document, "pendingInventory"), tz_name, pending=True)
        seen = {po.id for po in confirmed}
        plan["purchases"] = confirmed + [po for po in pending if po.id not in seen]
    if document.get("users"):
        # An empty user list would lock every workstation out; it is ignored
        plan["users"] = _parse_users(_list(document, "users"))
    if "supplierMappings" in document:
        plan["supplierMappings"] = [
            SupplierMapping(
                id=_required_id(m, "supplier mapping"),
                supplier_sku=_str(m, "supplierSku"),
                supplier_name=_str(m, "supplierName"),
                internal_sku=_str(m, "tevoltaSku"),
                internal_name=_str(m, "tevoltaName"),
            )
            for m in _list(document, "supplierMappings")
        ]
    if "wattMappings" in document:
        plan["wattMappings"] = [
            WattMapping(id=_required_id(m, "watt mapping"), internal_sku=_str(m, "tevoltaSku"), watts=_str(m, "watts"))
            for m in _list(document, "wattMappings")
        ]

    company = document.get("companyConfig")
    if company is not None and not isinstance(company, dict):
        raise InvalidDocument("companyConfig must be an object")
    threshold = None
    if document.get("lowStockThreshold") is not None:
        threshold = _int(document, "lowStockThreshold")
        if threshold < 0:
            raise InvalidDocument("lowStockThreshold cannot be negative")
    sequence = _int(company, "invoiceSequence", 0) if company and "invoiceSequence" in company else None

    # Bulk deletes bypass the identity map; drop stale instances of the
    # replaced models so the new rows cannot collide with them. Anything
    # else the caller holds (the request user, the sync session) stays attached.
    db.session.flush()
    replaced = set()
    for key in plan:
        replaced.update(REPLACED_MODELS[key])
    for instance in list(db.session.identity_map.values()):
        if type(instance) in replaced and instance in db.session:
            db.session.expunge(instance)

    counts = {}
    if "products" in plan:
        db.session.query(Product).delete(synchronize_session=False)
        db.session.add_all(plan["products"])
        counts["products"] = len(plan["products"])
    if "orders" in plan:
        db.session.query(OrderItem).delete(synchronize_session=False)
        db.session.query(Order).delete(synchronize_session=False)
        db.session.add_all(plan["orders"])
        counts["orders"] = len(plan["orders"])
    if "purchases" in plan:
        db.session.query(PurchaseOrderItem).delete(synchronize_session=False)
        db.session.query(PurchaseOrder).delete(synchronize_session=False)
        db.session.add_all(plan["purchases"])
        counts["purchases"] = len(plan["purchases"])
    if "users" in plan:
        db.session.query(User).delete(synchronize_session=False)
        db.session.add_all(plan["users"])
        counts["users"] = len(plan["users"])
    if "supplierMappings" in plan:
        db.session.query(SupplierMapping).delete(synchronize_session=False)
        db.session.add_all(plan["supplierMappings"])
        counts["supplierMappings"] = len(plan["supplierMappings"])
    if "wattMappings" in plan:
        db.session.query(WattMapping).delete(synchronize_session=False)
        db.session.add_all(plan["wattMappings"])
        counts["wattMappings"] = len(plan["wattMappings"])

    db.session.flush()

    config = get_company_config()
    if company:
        for key, column in COMPANY_FIELDS.items():
            if key in company and key != "invoiceSequence":
                setattr(config, column, _str(company, key))
        if sequence is not None:
            config.invoice_sequence = sequence
    if threshold is not None:
        config.low_stock_threshold = threshold
    db.session.flush()
    return counts

