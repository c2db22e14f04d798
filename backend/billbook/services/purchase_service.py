# Overview: Purchase intake, pending review queue, finalize and revert.

"""
Purchase Intake & Review Workflow

LIFECYCLE (models.purchasing.PurchaseStatus):
- Other nature:  intake -> CONFIRMED immediately; expense record, no stock effect
- Stock nature:  intake -> LOGGED (pending review queue)
                 LOGGED -> CONFIRMED via finalize_review (stock + cost basis applied)
                 LOGGED -> removed via reject_pending / reject_pending_item
                 CONFIRMED -> removed via revert (stock deducted, floored at zero)

STOCK EFFECT:
A confirmed Stock purchase has added each line's quantity to its linked
product exactly once. It can only leave CONFIRMED by revert, which deletes
the record in the same transaction as the deduction, so the deduction can
never run twice.

COSTING:
finalize_review overwrites Product.cost_price with unit_cost * exchange_rate
of the latest purchase (last landed cost; no averaging).
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from flask import current_app

from ..errors import (
    InvalidPurchaseInput,
    InvalidTransition,
    PermissionDenied,
    PurchaseNotFound,
    UnresolvedSku,
)
from ..extensions import db
from ..models import (
    CURRENCIES,
    ELEVATED_ROLES,
    Product,
    PurchaseNature,
    PurchaseOrder,
    PurchaseOrderItem,
    PurchaseStatus,
)
from ..time_utils import business_now
from .ledger_service import ledger_operation
from .mapping_service import resolve_supplier_sku, watts_for
from .stock_service import StockChange, _apply_batch_locked, aggregate_deltas, split_known
from .tax_service import money, to_decimal, validate_quantity

# action -> statuses it may start from
TRANSITIONS = {
    "edit": {PurchaseStatus.LOGGED},
    "finalize": {PurchaseStatus.LOGGED},
    "reject": {PurchaseStatus.LOGGED},
    "revert": {PurchaseStatus.LOGGED, PurchaseStatus.CONFIRMED},
}

# Actions that only apply to records sitting in the pending review queue
PENDING_ONLY = {"edit", "finalize", "reject"}

EDITABLE_ITEM_FIELDS = ("supplier_sku", "linked_sku", "name", "watts", "quantity", "unit_cost")


@dataclass
class RevertOutcome:
    purchase_id: str
    previous_status: str
    changes: list[StockChange] = field(default_factory=list)
    missing_products: list[str] = field(default_factory=list)

    @property
    def shortfalls(self) -> list[dict]:
        """Lines where on-hand stock was below the imported quantity."""
        return [
            {"product_id": c.product_id, "shortfall": c.shortfall}
            for c in self.changes
            if c.shortfall
        ]

    def to_dict(self) -> dict:
        return {
            "purchase_id": self.purchase_id,
            "previous_status": self.previous_status,
            "changes": [c.to_dict() for c in self.changes],
            "shortfalls": self.shortfalls,
            "missing_products": self.missing_products,
        }


def _now() -> datetime:
    return business_now(current_app.config["BUSINESS_TIMEZONE"])


def _amount(value, field: str, *, default=None, positive: bool = False) -> Decimal:
    if value is None or value == "":
        if default is None:
            raise InvalidPurchaseInput(f"{field} is required", details={"field": field})
        value = default
    dec = to_decimal(value, field=field, error=InvalidPurchaseInput)
    if positive and dec <= 0:
        raise InvalidPurchaseInput(f"{field} must be greater than zero", details={"field": field})
    if dec < 0:
        raise InvalidPurchaseInput(f"{field} cannot be negative", details={"field": field})
    return dec


def _text(data: dict, key: str, default: str = "") -> str:
    value = data.get(key)
    if value is None:
        return default
    if not isinstance(value, str):
        raise InvalidPurchaseInput(f"{key} must be a string", details={"field": key})
    return value.strip()


def _get_purchase(po_id: str) -> PurchaseOrder:
    po = db.session.get(PurchaseOrder, po_id)
    if po is None:
        raise PurchaseNotFound(f"Purchase {po_id} not found", details={"purchase_id": po_id})
    return po


def _check_transition(po: PurchaseOrder, action: str) -> None:
    allowed = TRANSITIONS[action]
    if po.status not in allowed or (action in PENDING_ONLY and not po.is_pending_review):
        raise InvalidTransition(
            f"Cannot {action} purchase {po.id} in status {po.status.value}",
            details={"purchase_id": po.id, "status": po.status.value, "action": action},
        )


def _require_elevated(actor_role: str | None, action: str, po_id: str) -> None:
    if actor_role not in ELEVATED_ROLES:
        raise PermissionDenied(
            f"Only an admin can {action} purchases",
            details={"role": actor_role, "purchase_id": po_id},
        )


def recompute_totals(po: PurchaseOrder) -> PurchaseOrder:
    """
    Refresh derived amounts from the lines.

    items total   = sum(line quantity * unit cost)
    foreign total = items total + extra fee
    investment    = foreign total * exchange rate (INR)
    remaining     = foreign total - deposit
    """
    items_total = Decimal("0.00")
    quantity = 0
    for item in po.items:
        item.total_foreign = money(Decimal(item.quantity) * Decimal(item.unit_cost))
        items_total += item.total_foreign
        quantity += item.quantity

    foreign_total = items_total + money(po.extra_fee)
    po.total_foreign_amount = foreign_total
    po.investment_inr = money(foreign_total * Decimal(po.exchange_rate))
    po.remaining_balance = foreign_total - money(po.deposit_amount)
    po.total_quantity = quantity
    return po


def _build_item(raw, position: int) -> PurchaseOrderItem:
    if not isinstance(raw, dict):
        raise InvalidPurchaseInput("Purchase items must be objects", details={"line": position})

    supplier_sku = _text(raw, "supplier_sku")
    linked_sku = _text(raw, "linked_sku") or None
    name = _text(raw, "name")
    watts = _text(raw, "watts")

    if linked_sku is None and supplier_sku:
        mapping = resolve_supplier_sku(supplier_sku)
        if mapping is not None:
            linked_sku = mapping.internal_sku
            name = name or mapping.internal_name
    if linked_sku and not watts:
        watts = watts_for(linked_sku) or ""

    return PurchaseOrderItem(
        id=uuid.uuid4().hex,
        position=position,
        supplier_sku=supplier_sku,
        linked_sku=linked_sku,
        name=name,
        watts=watts,
        quantity=validate_quantity(raw.get("quantity"), field=f"items[{position}].quantity", error=InvalidPurchaseInput),
        unit_cost=_amount(raw.get("unit_cost"), f"items[{position}].unit_cost"),
    )


@ledger_operation
def intake(purchase_data: dict, *, actor_user_id: str | None = None, now: datetime | None = None) -> PurchaseOrder:
    """
    Register a supplier purchase.

    Stock-nature purchases land in the pending review queue (LOGGED); lines
    without a linked SKU are auto-linked through the supplier mappings.
    Other-nature purchases are confirmed at once and never touch stock.
    """
    if not isinstance(purchase_data, dict):
        raise InvalidPurchaseInput("Purchase data must be an object")

    supplier_name = _text(purchase_data, "supplier_name")
    if not supplier_name:
        raise InvalidPurchaseInput("supplier_name is required", details={"field": "supplier_name"})

    try:
        nature = PurchaseNature(purchase_data.get("nature") or PurchaseNature.STOCK.value)
    except ValueError:
        raise InvalidPurchaseInput(
            "nature must be Stock or Other",
            details={"field": "nature", "value": purchase_data.get("nature")},
        )

    currency = (purchase_data.get("currency") or "USD")
    if currency not in CURRENCIES:
        raise InvalidPurchaseInput(
            f"currency must be one of {', '.join(CURRENCIES)}",
            details={"field": "currency", "value": currency},
        )

    raw_items = purchase_data.get("items") or []
    if not raw_items:
        raise InvalidPurchaseInput("Purchase must contain at least one item", details={"field": "items"})

    now = now or _now()
    po = PurchaseOrder(
        id=_text(purchase_data, "id") or f"PO-{uuid.uuid4().hex[:10].upper()}",
        supplier_name=supplier_name,
        country=_text(purchase_data, "country", "Unknown") or "Unknown",
        nature=nature,
        invoice_ref=_text(purchase_data, "invoice_ref"),
        purchase_date=_text(purchase_data, "purchase_date") or now.date().isoformat(),
        currency=currency,
        exchange_rate=_amount(purchase_data.get("exchange_rate"), "exchange_rate", default=1, positive=True),
        extra_fee=_amount(purchase_data.get("extra_fee"), "extra_fee", default=0),
        extra_fee_remarks=_text(purchase_data, "extra_fee_remarks"),
        deposit_amount=_amount(purchase_data.get("deposit_amount"), "deposit_amount", default=0),
        status=PurchaseStatus.LOGGED,
        created_at=now,
        created_by_user_id=actor_user_id,
    )
    if db.session.get(PurchaseOrder, po.id) is not None:
        raise InvalidPurchaseInput(f"Purchase {po.id} already exists", details={"purchase_id": po.id})

    po.items = [_build_item(raw, position) for position, raw in enumerate(raw_items)]
    recompute_totals(po)

    if nature == PurchaseNature.OTHER:
        po.status = PurchaseStatus.CONFIRMED
        po.confirmed_at = now

    db.session.add(po)
    db.session.flush()
    return po


@ledger_operation
def finalize_review(po_id: str, *, now: datetime | None = None) -> PurchaseOrder:
    """
    Confirm a pending Stock purchase.

    All-or-nothing: if any line's linked SKU is unset or names no product,
    fails with UnresolvedSku listing every such line, and nothing changes.
    """
    po = _get_purchase(po_id)
    _check_transition(po, "finalize")

    linked = {item.linked_sku for item in po.items if item.linked_sku}
    existing = {
        row[0]
        for row in db.session.query(Product.id).filter(Product.id.in_(linked)).all()
    } if linked else set()
    unresolved = [
        {"item_id": item.id, "supplier_sku": item.supplier_sku, "linked_sku": item.linked_sku}
        for item in po.items
        if not item.linked_sku or item.linked_sku not in existing
    ]
    if unresolved:
        raise UnresolvedSku(
            "Unresolved SKU(s): " + ", ".join(
                u["linked_sku"] or u["supplier_sku"] or u["item_id"] for u in unresolved
            ),
            details={"purchase_id": po.id, "items": unresolved},
        )

    _apply_batch_locked(aggregate_deltas(((i.linked_sku, i.quantity) for i in po.items), sign=1))

    # Later lines win when the same product appears twice
    for item in po.items:
        product = db.session.get(Product, item.linked_sku)
        product.cost_price = money(Decimal(item.unit_cost) * Decimal(po.exchange_rate))

    po.status = PurchaseStatus.CONFIRMED
    po.confirmed_at = now or _now()
    db.session.flush()
    return po


@ledger_operation
def revert(po_id: str, actor_role: str | None) -> RevertOutcome:
    """
    Remove a purchase. Elevated role only.

    A confirmed Stock purchase first takes its quantities back out of stock,
    floored at zero. Units that were sold in the meantime cannot be taken
    back; that shortfall is returned and logged rather than dropped.
    """
    _require_elevated(actor_role, "revert", po_id)
    po = _get_purchase(po_id)
    _check_transition(po, "revert")

    outcome = RevertOutcome(purchase_id=po.id, previous_status=po.status.value)
    if po.status == PurchaseStatus.CONFIRMED and po.nature == PurchaseNature.STOCK:
        deltas, missing = split_known(
            aggregate_deltas(((i.linked_sku, i.quantity) for i in po.items if i.linked_sku), sign=-1)
        )
        outcome.changes = _apply_batch_locked(deltas, clamp_at_zero=True)
        outcome.missing_products = missing

        if outcome.shortfalls or missing:
            current_app.logger.warning(
                "Purchase %s reverted with discrepancies: shortfalls=%s missing_products=%s",
                po.id, outcome.shortfalls, missing,
            )

    db.session.delete(po)
    db.session.flush()
    return outcome


@ledger_operation
def update_pending_item(po_id: str, item_id: str, changes: dict) -> PurchaseOrder:
    """Edit one line of a pending purchase (quantity, cost, linked SKU, labels)."""
    po = _get_purchase(po_id)
    _check_transition(po, "edit")

    unknown = sorted(set(changes) - set(EDITABLE_ITEM_FIELDS))
    if unknown:
        raise InvalidPurchaseInput(f"Fields not editable: {', '.join(unknown)}", details={"fields": unknown})

    item = next((i for i in po.items if i.id == item_id), None)
    if item is None:
        raise PurchaseNotFound(
            f"Item {item_id} not found on purchase {po_id}",
            details={"purchase_id": po_id, "item_id": item_id},
        )

    if "quantity" in changes:
        item.quantity = validate_quantity(changes["quantity"], error=InvalidPurchaseInput)
    if "unit_cost" in changes:
        item.unit_cost = _amount(changes["unit_cost"], "unit_cost")
    for key in ("supplier_sku", "name", "watts"):
        if key in changes:
            setattr(item, key, _text(changes, key))
    if "linked_sku" in changes:
        item.linked_sku = _text(changes, "linked_sku") or None
        if item.linked_sku and not item.watts:
            item.watts = watts_for(item.linked_sku) or ""

    recompute_totals(po)
    db.session.flush()
    return po


@ledger_operation
def reject_pending_item(po_id: str, item_id: str) -> dict:
    """
    Drop one line from a pending purchase. Dropping the last line removes the
    whole pending record.
    """
    po = _get_purchase(po_id)
    _check_transition(po, "reject")

    item = next((i for i in po.items if i.id == item_id), None)
    if item is None:
        raise PurchaseNotFound(
            f"Item {item_id} not found on purchase {po_id}",
            details={"purchase_id": po_id, "item_id": item_id},
        )

    po.items.remove(item)
    if not po.items:
        db.session.delete(po)
        db.session.flush()
        return {"purchase_id": po_id, "purchase_removed": True, "purchase": None}

    recompute_totals(po)
    db.session.flush()
    return {"purchase_id": po_id, "purchase_removed": False, "purchase": po.to_dict()}


@ledger_operation
def reject_pending(po_id: str) -> str:
    po = _get_purchase(po_id)
    _check_transition(po, "reject")
    db.session.delete(po)
    db.session.flush()
    return po_id


def get_purchase(po_id: str) -> PurchaseOrder:
    return _get_purchase(po_id)


def list_pending() -> list[PurchaseOrder]:
    return (
        db.session.query(PurchaseOrder)
        .filter(
            PurchaseOrder.nature == PurchaseNature.STOCK,
            PurchaseOrder.status == PurchaseStatus.LOGGED,
        )
        .order_by(PurchaseOrder.created_at.desc())
        .all()
    )


def list_purchases(status: PurchaseStatus | None = None) -> list[PurchaseOrder]:
    """The permanent purchase ledger (confirmed records unless told otherwise)."""
    query = db.session.query(PurchaseOrder).filter(
        PurchaseOrder.status == (status or PurchaseStatus.CONFIRMED)
    )
    return query.order_by(PurchaseOrder.created_at.desc()).all()
