# Overview: Order (sales invoice) manager; issues and deletes tax invoices.

"""
Order Service

LIFECYCLE (see models.sales.OrderStatus):
1. DRAFT: cart held by the caller, nothing persisted
2. ISSUED: create_order persisted it, assigned a serial, decremented stock
3. DELETED: delete_order restored stock and removed the row

There is no edit transition. A wrong invoice is deleted and re-issued.

ORDERING inside create_order (one transaction):
- snapshot product price / cost / tax rate onto each line
- compute totals (tax_service)
- decrement stock as one batch (stock_service)
- allocate the serial and advance CompanyConfig.invoice_sequence
If the stock batch fails nothing is written and no sequence is consumed.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from flask import current_app
from sqlalchemy import or_

from ..errors import InvalidOrderInput, OrderNotFound, PermissionDenied
from ..extensions import db
from ..models import ELEVATED_ROLES, Order, OrderItem, OrderStatus
from ..time_utils import business_now, year_bounds
from .ledger_service import ledger_operation
from .settings_service import get_company_config
from .stock_service import _apply_batch_locked, aggregate_deltas, load_products, split_known
from .tax_service import compute_invoice_totals, compute_line_tax, money, next_serial, validate_quantity

CUSTOMER_FIELDS = ("name", "email", "phone", "gstin")


def _new_id() -> str:
    return uuid.uuid4().hex


def _parse_cart(cart_items) -> list[tuple[str, int]]:
    if not cart_items:
        raise InvalidOrderInput("Bill must contain at least one item")

    parsed = []
    for index, item in enumerate(cart_items):
        if not isinstance(item, dict):
            raise InvalidOrderInput("Cart items must be objects", details={"line": index})
        product_id = item.get("product_id")
        if not product_id or not isinstance(product_id, str):
            raise InvalidOrderInput("product_id is required", details={"line": index, "field": "product_id"})
        quantity = validate_quantity(item.get("quantity"), field=f"items[{index}].quantity")
        parsed.append((product_id, quantity))
    return parsed


def _customer_value(customer: dict, field: str) -> str:
    value = customer.get(field)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise InvalidOrderInput(f"customer {field} must be a string", details={"field": f"customer.{field}"})
    return value.strip()


@ledger_operation
def create_order(
    cart_items,
    customer: dict | None = None,
    *,
    is_inter_state: bool = False,
    notes: str = "",
    actor_user_id: str | None = None,
    now: datetime | None = None,
) -> Order:
    """
    Issue a tax invoice for `cart_items` ([{"product_id", "quantity"}, ...]).

    Returns the persisted Order (wrapped in an OperationResult).
    """
    lines = _parse_cart(cart_items)
    if customer is None:
        customer = {}
    elif not isinstance(customer, dict):
        raise InvalidOrderInput("customer must be an object", details={"field": "customer"})
    if notes is not None and not isinstance(notes, str):
        raise InvalidOrderInput("notes must be a string", details={"field": "notes"})
    if now is None:
        now = business_now(current_app.config["BUSINESS_TIMEZONE"])

    products = load_products([pid for pid, _ in lines], lock=True)

    order = Order(
        id=_new_id(),
        customer_name=_customer_value(customer, "name"),
        customer_email=_customer_value(customer, "email"),
        customer_phone=_customer_value(customer, "phone"),
        customer_gstin=_customer_value(customer, "gstin") or None,
        notes=notes or "",
        is_inter_state=bool(is_inter_state),
        created_at=now,
        status=OrderStatus.ISSUED,
        created_by_user_id=actor_user_id,
    )

    for position, (product_id, quantity) in enumerate(lines):
        product = products[product_id]
        order.items.append(OrderItem(
            id=_new_id(),
            position=position,
            product_id=product.id,
            name=product.name,
            quantity=quantity,
            unit_price=money(product.price),
            cost_price=money(product.cost_price),
            gst_rate=product.gst_rate,
            tax_amount=compute_line_tax(product.price, quantity, product.gst_rate),
            hsn_code=product.hsn_code,
        ))

    totals = compute_invoice_totals(
        ((item.unit_price, item.quantity, item.gst_rate) for item in order.items),
        order.is_inter_state,
    )
    order.subtotal = totals.subtotal
    order.cgst = totals.cgst
    order.sgst = totals.sgst
    order.igst = totals.igst
    order.total_tax = totals.total_tax
    order.total_amount = totals.total_amount

    # Raises before anything is written if any line is short
    _apply_batch_locked(aggregate_deltas(lines, sign=-1))

    config = get_company_config(lock=True)
    start, end = year_bounds(now.year)
    orders_this_year = (
        db.session.query(Order)
        .filter(Order.created_at >= start, Order.created_at < end)
        .limit(1)
        .all()
    )
    order.serial_number, config.invoice_sequence = next_serial(
        config,
        orders_this_year,
        now,
        baseline=current_app.config["INVOICE_SEQUENCE_BASELINE"],
    )

    db.session.add(order)
    db.session.flush()
    return order


@ledger_operation
def delete_order(order_id: str, actor_role: str | None) -> dict:
    """
    Delete an issued invoice and put its quantities back into stock.

    Elevated role only. Deleting an order that does not exist fails with
    OrderNotFound; a double delete is never reported as success.
    """
    if actor_role not in ELEVATED_ROLES:
        raise PermissionDenied(
            "Only an admin can delete invoices",
            details={"role": actor_role, "order_id": order_id},
        )

    order = db.session.get(Order, order_id)
    if order is None:
        raise OrderNotFound(f"Order {order_id} not found", details={"order_id": order_id})

    # Lines whose product has since left the catalog have nowhere to go back to
    deltas, missing = split_known(
        aggregate_deltas(((item.product_id, item.quantity) for item in order.items), sign=1)
    )
    restored = _apply_batch_locked(deltas)
    if missing:
        current_app.logger.warning(
            "Order %s deleted; stock not restored for removed products %s",
            order.serial_number, ", ".join(missing),
        )

    snapshot = order.to_dict()
    snapshot["status"] = OrderStatus.DELETED.value
    snapshot["restored"] = [change.to_dict() for change in restored]
    snapshot["missing_products"] = missing

    db.session.delete(order)
    db.session.flush()
    return snapshot


def get_order(order_id: str) -> Order:
    order = db.session.get(Order, order_id)
    if order is None:
        raise OrderNotFound(f"Order {order_id} not found", details={"order_id": order_id})
    return order


def list_orders(search: str | None = None, *, limit: int | None = None) -> list[Order]:
    """Orders most-recent-first, optionally filtered by customer name, serial or email."""
    query = db.session.query(Order)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(
            Order.customer_name.ilike(pattern),
            Order.serial_number.ilike(pattern),
            Order.customer_email.ilike(pattern),
        ))
    query = query.order_by(Order.created_at.desc(), Order.serial_number.desc())
    if limit is not None:
        query = query.limit(limit)
    return query.all()
