from __future__ import annotations

import enum

from ..extensions import db
from ..time_utils import to_iso


class PurchaseNature(str, enum.Enum):
    STOCK = "Stock"
    # Expense-only record; never touches inventory
    OTHER = "Other"


class PurchaseStatus(str, enum.Enum):
    """
    Purchase lifecycle.

    Other:  LOGGED -> CONFIRMED immediately on intake
    Stock:  LOGGED (pending review queue) -> CONFIRMED on finalize

    Rejecting a pending record or reverting a logged/confirmed one removes the
    row; see purchase_service for the transition table.
    """
    DRAFT = "Draft"
    LOGGED = "Logged"
    CONFIRMED = "Confirmed"


CURRENCIES = ("USD", "CNY", "INR")


class PurchaseOrder(db.Model):
    __tablename__ = "purchase_orders"
    __table_args__ = (
        db.Index("ix_purchase_orders_status", "status"),
        db.Index("ix_purchase_orders_created_at", "created_at"),
    )

    id = db.Column(db.String(32), primary_key=True)
    supplier_name = db.Column(db.String(255), nullable=False)
    country = db.Column(db.String(64), nullable=False, default="Unknown")
    nature = db.Column(
        db.Enum(PurchaseNature, values_callable=lambda e: [m.value for m in e], native_enum=False, length=16),
        nullable=False,
        default=PurchaseNature.STOCK,
    )
    invoice_ref = db.Column(db.String(128), nullable=False, default="")
    purchase_date = db.Column(db.String(32), nullable=False, default="")

    currency = db.Column(db.String(3), nullable=False, default="USD")
    # INR per unit of `currency`
    exchange_rate = db.Column(db.Numeric(14, 4), nullable=False, default=1)
    extra_fee = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    extra_fee_remarks = db.Column(db.String(255), nullable=False, default="")
    deposit_amount = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    # Derived by purchase_service.recompute_totals (source currency unless noted)
    total_foreign_amount = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    remaining_balance = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    investment_inr = db.Column(db.Numeric(16, 2), nullable=False, default=0)
    total_quantity = db.Column(db.Integer, nullable=False, default=0)

    status = db.Column(
        db.Enum(PurchaseStatus, values_callable=lambda e: [m.value for m in e], native_enum=False, length=16),
        nullable=False,
        default=PurchaseStatus.LOGGED,
    )

    created_at = db.Column(db.DateTime, nullable=False)
    confirmed_at = db.Column(db.DateTime, nullable=True)
    created_by_user_id = db.Column(db.String(32), nullable=True)

    items = db.relationship(
        "PurchaseOrderItem",
        backref="purchase_order",
        cascade="all, delete-orphan",
        order_by="PurchaseOrderItem.position",
        lazy=True,
    )

    @property
    def is_pending_review(self) -> bool:
        return self.nature == PurchaseNature.STOCK and self.status == PurchaseStatus.LOGGED

    def __repr__(self) -> str:
        return f"<PurchaseOrder id={self.id!r} status={self.status.value}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "supplier_name": self.supplier_name,
            "country": self.country,
            "nature": self.nature.value,
            "invoice_ref": self.invoice_ref,
            "purchase_date": self.purchase_date,
            "currency": self.currency,
            "exchange_rate": str(self.exchange_rate),
            "extra_fee": str(self.extra_fee),
            "extra_fee_remarks": self.extra_fee_remarks,
            "deposit_amount": str(self.deposit_amount),
            "total_foreign_amount": str(self.total_foreign_amount),
            "remaining_balance": str(self.remaining_balance),
            "investment_inr": str(self.investment_inr),
            "total_quantity": self.total_quantity,
            "status": self.status.value,
            "pending_review": self.is_pending_review,
            "created_at": to_iso(self.created_at),
            "confirmed_at": to_iso(self.confirmed_at),
            "items": [item.to_dict() for item in self.items],
        }


class PurchaseOrderItem(db.Model):
    __tablename__ = "purchase_order_items"

    id = db.Column(db.String(32), primary_key=True)
    purchase_order_id = db.Column(
        db.String(32), db.ForeignKey("purchase_orders.id"), nullable=False, index=True
    )
    position = db.Column(db.Integer, nullable=False, default=0)

    supplier_sku = db.Column(db.String(64), nullable=False, default="")
    # Internal SKU (Product.id); unset until linked during review
    linked_sku = db.Column(db.String(64), nullable=True)
    name = db.Column(db.String(255), nullable=False, default="")
    watts = db.Column(db.String(16), nullable=False, default="")

    quantity = db.Column(db.Integer, nullable=False)
    # Source currency
    unit_cost = db.Column(db.Numeric(14, 4), nullable=False)
    total_foreign = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "supplier_sku": self.supplier_sku,
            "linked_sku": self.linked_sku,
            "name": self.name,
            "watts": self.watts,
            "quantity": self.quantity,
            "unit_cost": str(self.unit_cost),
            "total_foreign": str(self.total_foreign),
        }
