# Overview: Service-layer reporting; GST summaries, margins and the dashboard.

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal

from flask import current_app

from ..errors import InvalidInput
from ..extensions import db
from ..models import Order, OrderItem, Product
from ..time_utils import business_now, month_bounds, quarter_bounds, to_iso, year_bounds
from .settings_service import get_company_config

ZERO = Decimal("0.00")


def _period(year: int, month: int | None, quarter: int | None) -> tuple[datetime, datetime, str]:
    if month is not None and quarter is not None:
        raise InvalidInput("Give either month or quarter, not both", details={"fields": ["month", "quarter"]})
    if month is not None:
        if not 1 <= month <= 12:
            raise InvalidInput("month must be 1-12", details={"field": "month"})
        start, end = month_bounds(year, month)
        return start, end, f"{year}-{month:02d}"
    if quarter is not None:
        if not 1 <= quarter <= 4:
            raise InvalidInput("quarter must be 1-4", details={"field": "quarter"})
        start, end = quarter_bounds(year, quarter)
        return start, end, f"{year}-Q{quarter}"
    start, end = year_bounds(year)
    return start, end, str(year)


def _orders_between(start: datetime | None, end: datetime | None) -> list[Order]:
    query = db.session.query(Order)
    if start is not None:
        query = query.filter(Order.created_at >= start)
    if end is not None:
        query = query.filter(Order.created_at < end)
    return query.order_by(Order.created_at.asc(), Order.serial_number.asc()).all()


def gst_summary(year: int, month: int | None = None, quarter: int | None = None) -> dict:
    """
    Output tax for a calendar month, quarter or whole year (GSTR-1 style).

    taxable_value is the sum of invoice subtotals (value before GST).
    """
    start, end, label = _period(year, month, quarter)
    orders = _orders_between(start, end)

    totals = {
        "taxable_value": ZERO,
        "cgst": ZERO,
        "sgst": ZERO,
        "igst": ZERO,
        "total_tax": ZERO,
        "total_amount": ZERO,
    }
    invoices = []
    for order in orders:
        totals["taxable_value"] += order.subtotal
        totals["cgst"] += order.cgst
        totals["sgst"] += order.sgst
        totals["igst"] += order.igst
        totals["total_tax"] += order.total_tax
        totals["total_amount"] += order.total_amount
        invoices.append({
            "serial_number": order.serial_number,
            "date": to_iso(order.created_at),
            "customer_name": order.customer_name,
            "customer_gstin": order.customer_gstin,
            "taxable_value": str(order.subtotal),
            "cgst": str(order.cgst),
            "sgst": str(order.sgst),
            "igst": str(order.igst),
            "total_amount": str(order.total_amount),
        })

    return {
        "period": label,
        "start": to_iso(start),
        "end": to_iso(end),
        "invoice_count": len(orders),
        **{key: str(value) for key, value in totals.items()},
        "invoices": invoices,
    }


def sales_margin(start: datetime | None = None, end: datetime | None = None) -> dict:
    """
    Revenue against cost, from the price and cost snapshots on invoice lines.

    Revenue excludes GST. Lines are grouped per product.
    """
    query = db.session.query(OrderItem).join(Order, OrderItem.order_id == Order.id)
    if start is not None:
        query = query.filter(Order.created_at >= start)
    if end is not None:
        query = query.filter(Order.created_at < end)

    per_product: dict[str, dict] = {}
    revenue = ZERO
    cost = ZERO
    for item in query.all():
        line_revenue = item.unit_price * item.quantity
        line_cost = item.cost_price * item.quantity
        revenue += line_revenue
        cost += line_cost

        row = per_product.setdefault(item.product_id, {
            "product_id": item.product_id,
            "name": item.name,
            "quantity": 0,
            "revenue": ZERO,
            "cost": ZERO,
        })
        row["quantity"] += item.quantity
        row["revenue"] += line_revenue
        row["cost"] += line_cost

    products = []
    for row in sorted(per_product.values(), key=lambda r: r["revenue"], reverse=True):
        products.append({
            **row,
            "revenue": str(row["revenue"]),
            "cost": str(row["cost"]),
            "margin": str(row["revenue"] - row["cost"]),
        })

    margin = revenue - cost
    margin_pct = (margin * 100 / revenue).quantize(Decimal("0.01")) if revenue else ZERO
    return {
        "revenue": str(revenue),
        "cost": str(cost),
        "margin": str(margin),
        "margin_percent": str(margin_pct),
        "products": products,
    }


def dashboard(now: datetime | None = None) -> dict:
    """Headline numbers plus revenue per day for the last seven days (today included)."""
    if now is None:
        now = business_now(current_app.config["BUSINESS_TIMEZONE"])

    orders = db.session.query(Order).all()
    revenue = sum((o.total_amount for o in orders), ZERO)
    order_count = len(orders)

    threshold = get_company_config().low_stock_threshold
    low_stock_count = db.session.query(Product).filter(Product.stock < threshold).count()

    today = now.date()
    first_day = today - timedelta(days=6)
    daily = {first_day + timedelta(days=i): ZERO for i in range(7)}
    for order in orders:
        day = order.created_at.date()
        if day in daily:
            daily[day] += order.total_amount

    return {
        "order_count": order_count,
        "revenue": str(revenue),
        "average_order_value": str((revenue / order_count).quantize(Decimal("0.01")) if order_count else ZERO),
        "low_stock_count": low_stock_count,
        "low_stock_threshold": threshold,
        "daily_revenue": [{"date": day.isoformat(), "revenue": str(value)} for day, value in daily.items()],
    }
