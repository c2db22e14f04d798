# Overview: Pure GST, invoice total and serial-number calculations.

"""
Tax & Serial Calculator

Pure functions, no database access. Money is Decimal rounded to the paisa
(ROUND_HALF_UP) at line level; totals are sums of already-rounded lines so an
invoice's stored totals always equal the sum over its lines.

Malformed input (NaN, infinities, non-numeric strings, non-positive or
fractional quantities, negative prices or rates) raises InvalidOrderInput
before the caller has written anything.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable

from ..errors import InvalidOrderInput

MONEY_QUANT = Decimal("0.01")
HUNDRED = Decimal("100")
INVOICE_SEQUENCE_BASELINE = 1001


def to_decimal(value, *, field: str = "amount", error=InvalidOrderInput) -> Decimal:
    """Convert int/str/float/Decimal to a finite Decimal; `error` is the LedgerError raised."""
    if isinstance(value, bool) or value is None:
        raise error(f"{field} must be a number", details={"field": field})
    try:
        # str() first so 0.1 becomes Decimal("0.1"), not its binary expansion
        dec = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise error(f"{field} must be a number", details={"field": field, "value": str(value)})
    if not dec.is_finite():
        raise error(f"{field} must be finite", details={"field": field, "value": str(value)})
    return dec


def money(value) -> Decimal:
    return to_decimal(value).quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


def validate_quantity(quantity, *, field: str = "quantity", error=InvalidOrderInput) -> int:
    """Quantities are positive whole units."""
    if isinstance(quantity, bool):
        raise error(f"{field} must be a positive integer", details={"field": field})
    if isinstance(quantity, int):
        qty = quantity
    else:
        dec = to_decimal(quantity, field=field, error=error)
        if dec != dec.to_integral_value():
            raise error(f"{field} must be a whole number", details={"field": field, "value": str(quantity)})
        qty = int(dec)
    if qty <= 0:
        raise error(f"{field} must be positive", details={"field": field, "value": qty})
    return qty


def _non_negative(value, *, field: str) -> Decimal:
    dec = to_decimal(value, field=field)
    if dec < 0:
        raise InvalidOrderInput(f"{field} cannot be negative", details={"field": field, "value": str(dec)})
    return dec


def compute_line_tax(unit_price, quantity, tax_rate) -> Decimal:
    """unit_price * quantity * tax_rate / 100, rounded to the paisa."""
    price = _non_negative(unit_price, field="unit_price")
    qty = validate_quantity(quantity)
    rate = _non_negative(tax_rate, field="tax_rate")
    return (price * qty * rate / HUNDRED).quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class TaxSplit:
    cgst: Decimal
    sgst: Decimal
    igst: Decimal


def split_tax(total_tax, is_inter_state: bool) -> TaxSplit:
    """
    Inter-state: everything is IGST.
    Intra-state: half CGST, half SGST. When the total has an odd paisa the
    extra paisa goes to SGST so that cgst + sgst == total_tax exactly.
    """
    total = money(total_tax)
    zero = Decimal("0.00")
    if is_inter_state:
        return TaxSplit(cgst=zero, sgst=zero, igst=total)
    cgst = (total / 2).quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)
    if cgst * 2 > total:
        cgst -= MONEY_QUANT
    return TaxSplit(cgst=cgst, sgst=total - cgst, igst=zero)


@dataclass(frozen=True)
class InvoiceTotals:
    subtotal: Decimal
    cgst: Decimal
    sgst: Decimal
    igst: Decimal
    total_tax: Decimal
    total_amount: Decimal


def compute_invoice_totals(lines: Iterable[tuple], is_inter_state: bool = False) -> InvoiceTotals:
    """
    lines: iterable of (unit_price, quantity, tax_rate).
    """
    subtotal = Decimal("0.00")
    total_tax = Decimal("0.00")
    for unit_price, quantity, tax_rate in lines:
        subtotal += money(unit_price) * validate_quantity(quantity)
        total_tax += compute_line_tax(unit_price, quantity, tax_rate)

    split = split_tax(total_tax, is_inter_state)
    return InvoiceTotals(
        subtotal=subtotal,
        cgst=split.cgst,
        sgst=split.sgst,
        igst=split.igst,
        total_tax=total_tax,
        total_amount=subtotal + total_tax,
    )


def format_serial(prefix: str, year: int, sequence: int) -> str:
    return f"{prefix}/{year}/{sequence:04d}"


def parse_serial_sequence(serial: str) -> int | None:
    """Numeric suffix of a serial ("TE/2025/1002" -> 1002)."""
    try:
        return int(serial.rsplit("/", 1)[1])
    except (IndexError, ValueError):
        return None


def next_serial(config, orders, now, *, baseline: int = INVOICE_SEQUENCE_BASELINE) -> tuple[str, int]:
    """
    Allocate the serial for an invoice issued at `now`.

    config: anything with invoice_prefix / invoice_sequence (CompanyConfig)
    orders: existing invoices (anything with created_at); only their years matter

    If no invoice exists yet in now's year the sequence restarts at the
    baseline; otherwise config.invoice_sequence is used. Returns the serial
    and the sequence value the caller must persist with the new invoice.
    """
    has_prior_this_year = any(order.created_at.year == now.year for order in orders)
    sequence = config.invoice_sequence if has_prior_this_year else baseline
    return format_serial(config.invoice_prefix, now.year, sequence), sequence + 1
