from __future__ import annotations

import enum

from ..extensions import db
from ..time_utils import to_iso


class OrderStatus(str, enum.Enum):
    """
    Invoice lifecycle.

    DRAFT   -> cart in progress, never persisted
    ISSUED  -> persisted, serial assigned, stock decremented
    DELETED -> stock restored, row removed (never persisted either)

    There is no edit transition: corrections are delete + re-issue.
    """
    DRAFT = "Draft"
    ISSUED = "Issued"
    DELETED = "Deleted"


class Order(db.Model):
    """
    Tax invoice.

    Immutable once issued. Totals are stored, and always equal the sum over
    the item snapshots (order_service computes both in one pass).
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.UniqueConstraint("serial_number", name="uq_orders_serial_number"),
        db.Index("ix_orders_created_at", "created_at"),
    )

    id = db.Column(db.String(32), primary_key=True)

    # Human-facing, year-scoped serial (e.g. "TE/2025/1001")
    serial_number = db.Column(db.String(64), nullable=False)

    customer_name = db.Column(db.String(255), nullable=False, default="")
    customer_email = db.Column(db.String(255), nullable=False, default="")
    customer_phone = db.Column(db.String(64), nullable=False, default="")
    customer_gstin = db.Column(db.String(32), nullable=True)
    notes = db.Column(db.Text, nullable=False, default="")

    # Inter-state supplies carry IGST instead of CGST + SGST
    is_inter_state = db.Column(db.Boolean, nullable=False, default=False)

    # Business clock (see time_utils)
    created_at = db.Column(db.DateTime, nullable=False)

    subtotal = db.Column(db.Numeric(14, 2), nullable=False)
    cgst = db.Column(db.Numeric(14, 2), nullable=False)
    sgst = db.Column(db.Numeric(14, 2), nullable=False)
    igst = db.Column(db.Numeric(14, 2), nullable=False)
    total_tax = db.Column(db.Numeric(14, 2), nullable=False)
    total_amount = db.Column(db.Numeric(14, 2), nullable=False)

    status = db.Column(
        db.Enum(OrderStatus, values_callable=lambda e: [m.value for m in e], native_enum=False, length=16),
        nullable=False,
        default=OrderStatus.ISSUED,
    )

    created_by_user_id = db.Column(db.String(32), nullable=True)

    items = db.relationship(
        "OrderItem",
        backref="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.position",
        lazy=True,
    )

    def __repr__(self) -> str:
        return f"<Order id={self.id!r} serial={self.serial_number!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "serial_number": self.serial_number,
            "customer_name": self.customer_name,
            "customer_email": self.customer_email,
            "customer_phone": self.customer_phone,
            "customer_gstin": self.customer_gstin,
            "notes": self.notes,
            "is_inter_state": self.is_inter_state,
            "created_at": to_iso(self.created_at),
            "subtotal": str(self.subtotal),
            "cgst": str(self.cgst),
            "sgst": str(self.sgst),
            "igst": str(self.igst),
            "total_tax": str(self.total_tax),
            "total_amount": str(self.total_amount),
            "status": self.status.value,
            "items": [item.to_dict() for item in self.items],
        }


class OrderItem(db.Model):
    """
    Invoice line.

    name / unit_price / cost_price / gst_rate are snapshots taken when the
    invoice was issued, so later catalog edits never change history. No foreign key
    to products: a product may be removed from the catalog while its invoices
    remain.
    """
    __tablename__ = "order_items"

    id = db.Column(db.String(32), primary_key=True)
    order_id = db.Column(db.String(32), db.ForeignKey("orders.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    product_id = db.Column(db.String(64), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)
    cost_price = db.Column(db.Numeric(12, 2), nullable=False)
    gst_rate = db.Column(db.Numeric(5, 2), nullable=False)
    tax_amount = db.Column(db.Numeric(14, 2), nullable=False)
    hsn_code = db.Column(db.String(16), nullable=True)

    @property
    def line_total(self):
        return self.unit_price * self.quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "name": self.name,
            "quantity": self.quantity,
            "unit_price": str(self.unit_price),
            "cost_price": str(self.cost_price),
            "gst_rate": str(self.gst_rate),
            "tax_amount": str(self.tax_amount),
            "hsn_code": self.hsn_code,
        }
