# Overview: Stock Ledger; the only writer of Product.stock.

# backend/billbook/services/stock_service.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from ..errors import InvalidOrderInput, InsufficientStock, UnknownProduct
from ..extensions import db
from ..models import Product
from .concurrency import lock_for_update
from .ledger_service import ledger_operation
"""
Stock Ledger Invariants (authoritative)

- Product.stock is written ONLY here. Orders, purchases, catalog creation and
  reverts all go through _apply_batch_locked. The one exception is a sync
  pull, which replaces the whole product table with the remote copy
  (sync_document.apply_document rejects negative stock).
- stock >= 0 for every product at every observable point (also enforced by
  the ck_products_stock_non_negative check constraint).
- A batch is all-or-nothing: every product is loaded and every resulting
  quantity computed before the first write. If any delta is invalid, nothing
  is written.
- Decrements that would go negative fail with InsufficientStock, unless the
  caller asks for clamp_at_zero (purchase revert), in which case the result
  is floored at zero and the shortfall is reported back.
- Increments never fail on stock grounds.
"""


@dataclass(frozen=True)
class StockChange:
    product_id: str
    before: int
    after: int
    requested_delta: int

    @property
    def applied_delta(self) -> int:
        return self.after - self.before

    @property
    def shortfall(self) -> int:
        """Units a clamped decrement could not remove (0 when fully applied)."""
        return self.applied_delta - self.requested_delta

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "before": self.before,
            "after": self.after,
            "requested_delta": self.requested_delta,
            "applied_delta": self.applied_delta,
            "shortfall": self.shortfall,
        }


def _validate_deltas(deltas: Mapping[str, int]) -> dict[str, int]:
    clean: dict[str, int] = {}
    for product_id, delta in deltas.items():
        if isinstance(delta, bool) or not isinstance(delta, int):
            raise InvalidOrderInput(
                "Stock delta must be an integer",
                details={"product_id": product_id, "delta": repr(delta)},
            )
        clean[str(product_id)] = delta
    return clean


def load_products(product_ids, *, lock: bool = False) -> dict[str, Product]:
    """Fetch products by id; raises UnknownProduct naming every missing id."""
    ids = sorted(set(product_ids))
    if not ids:
        return {}
    query = db.session.query(Product).filter(Product.id.in_(ids))
    if lock:
        query = lock_for_update(query)
    found = {p.id: p for p in query.all()}
    missing = [pid for pid in ids if pid not in found]
    if missing:
        raise UnknownProduct(
            f"Unknown product(s): {', '.join(missing)}",
            details={"product_ids": missing},
        )
    return found


def split_known(deltas: Mapping[str, int]) -> tuple[dict[str, int], list[str]]:
    """Partition a delta map into (deltas for existing products, missing ids)."""
    if not deltas:
        return {}, []
    existing = {
        row[0]
        for row in db.session.query(Product.id).filter(Product.id.in_(list(deltas))).all()
    }
    known = {pid: delta for pid, delta in deltas.items() if pid in existing}
    missing = sorted(pid for pid in deltas if pid not in existing)
    return known, missing


def _apply_batch_locked(deltas: Mapping[str, int], *, clamp_at_zero: bool = False) -> list[StockChange]:
    """
    Apply a map of product_id -> delta as one unit. Does not commit.

    Raises UnknownProduct / InsufficientStock / InvalidOrderInput before any
    write happens.
    """
    clean = _validate_deltas(deltas)
    products = load_products(clean.keys(), lock=True)

    planned: list[tuple[Product, StockChange]] = []
    insufficient = []
    for product_id in sorted(clean):
        delta = clean[product_id]
        product = products[product_id]
        before = product.stock
        after = before + delta
        if after < 0:
            if clamp_at_zero:
                after = 0
            else:
                insufficient.append({
                    "product_id": product_id,
                    "requested_quantity": -delta,
                    "on_hand": before,
                })
                continue
        planned.append((product, StockChange(product_id, before, after, delta)))

    if insufficient:
        raise InsufficientStock(
            "Insufficient stock for " + ", ".join(i["product_id"] for i in insufficient),
            details={"items": insufficient},
        )

    changes = []
    for product, change in planned:
        product.stock = change.after
        changes.append(change)

    db.session.flush()
    return changes


@ledger_operation
def apply_batch(deltas: Mapping[str, int]) -> list[StockChange]:
    """Apply a whole order's or purchase's stock effect as one logical unit."""
    return _apply_batch_locked(deltas)


def apply_delta(product_id: str, delta: int):
    """Add `delta` to one product's stock (positive: incoming, negative: sale)."""
    return apply_batch({product_id: delta})


def aggregate_deltas(pairs, *, sign: int) -> dict[str, int]:
    """
    Sum (product_id, quantity) pairs into a delta map.

    sign=-1 for outgoing stock (sales), +1 for incoming (purchases, restores).
    The same product appearing on several lines is checked once, on its total.
    """
    deltas: dict[str, int] = {}
    for product_id, quantity in pairs:
        deltas[product_id] = deltas.get(product_id, 0) + sign * quantity
    return deltas
