import unittest
from datetime import datetime
from decimal import Decimal
from types import SimpleNamespace

from billbook.errors import InvalidOrderInput, InvalidPurchaseInput
from billbook.services.tax_service import (
    compute_invoice_totals,
    compute_line_tax,
    format_serial,
    money,
    next_serial,
    parse_serial_sequence,
    split_tax,
    to_decimal,
    validate_quantity,
)


class LineTaxTests(unittest.TestCase):
    def test_rounds_half_up_to_the_paisa(self):
        # 99.99 * 3 * 18% = 53.9946
        self.assertEqual(compute_line_tax(Decimal("99.99"), 3, 18), Decimal("53.99"))
        # 0.25 * 1 * 18% = 0.045
        self.assertEqual(compute_line_tax("0.25", 1, "18"), Decimal("0.05"))

    def test_zero_rate_is_allowed(self):
        self.assertEqual(compute_line_tax("120.00", 2, 0), Decimal("0.00"))

    def test_rejects_negative_price_and_rate(self):
        with self.assertRaises(InvalidOrderInput):
            compute_line_tax("-1", 1, 18)
        with self.assertRaises(InvalidOrderInput):
            compute_line_tax("10", 1, "-5")

    def test_rejects_non_finite_amounts(self):
        for bad in (float("nan"), float("inf"), "NaN", "abc", None):
            with self.assertRaises(InvalidOrderInput):
                compute_line_tax(bad, 1, 18)


class QuantityTests(unittest.TestCase):
    def test_accepts_whole_positive_values(self):
        self.assertEqual(validate_quantity(3), 3)
        self.assertEqual(validate_quantity("4"), 4)
        self.assertEqual(validate_quantity(Decimal("2.0")), 2)

    def test_rejects_zero_negative_fractional_and_bool(self):
        for bad in (0, -2, 1.5, "2.25", True, None, float("nan")):
            with self.assertRaises(InvalidOrderInput):
                validate_quantity(bad)

    def test_error_class_is_configurable(self):
        with self.assertRaises(InvalidPurchaseInput):
            validate_quantity(0, error=InvalidPurchaseInput)
        with self.assertRaises(InvalidPurchaseInput):
            to_decimal("x", field="unit_cost", error=InvalidPurchaseInput)

    def test_to_decimal_avoids_binary_expansion(self):
        self.assertEqual(to_decimal(0.1), Decimal("0.1"))
        self.assertEqual(money(2.675), Decimal("2.68"))


class SplitTests(unittest.TestCase):
    def test_intra_state_halves(self):
        split = split_tax(Decimal("540.00"), is_inter_state=False)
        self.assertEqual((split.cgst, split.sgst, split.igst), (Decimal("270.00"), Decimal("270.00"), Decimal("0.00")))

    def test_odd_paisa_goes_to_sgst(self):
        split = split_tax(Decimal("0.05"), is_inter_state=False)
        self.assertEqual(split.cgst, Decimal("0.02"))
        self.assertEqual(split.sgst, Decimal("0.03"))
        self.assertEqual(split.cgst + split.sgst, Decimal("0.05"))

    def test_inter_state_is_all_igst(self):
        split = split_tax(Decimal("17.31"), is_inter_state=True)
        self.assertEqual((split.cgst, split.sgst, split.igst), (Decimal("0.00"), Decimal("0.00"), Decimal("17.31")))


class InvoiceTotalsTests(unittest.TestCase):
    def test_totals_are_sums_of_rounded_lines(self):
        lines = [("99.99", 3, 18), ("0.25", 1, 18)]
        totals = compute_invoice_totals(lines)
        self.assertEqual(totals.subtotal, Decimal("300.22"))
        self.assertEqual(totals.total_tax, Decimal("54.04"))
        self.assertEqual(totals.cgst + totals.sgst, totals.total_tax)
        self.assertEqual(totals.total_amount, totals.subtotal + totals.total_tax)

    def test_inter_state_totals(self):
        totals = compute_invoice_totals([("1000", 3, 18)], is_inter_state=True)
        self.assertEqual(totals.igst, Decimal("540.00"))
        self.assertEqual(totals.cgst, Decimal("0.00"))
        self.assertEqual(totals.total_amount, Decimal("3540.00"))

    def test_bad_line_raises_before_anything_is_summed(self):
        with self.assertRaises(InvalidOrderInput):
            compute_invoice_totals([("10", 1, 18), ("10", 0, 18)])


class SerialTests(unittest.TestCase):
    def setUp(self):
        self.config = SimpleNamespace(invoice_prefix="TE", invoice_sequence=1007)

    def test_first_invoice_of_year_restarts_at_baseline(self):
        now = datetime(2026, 1, 1, 0, 10)
        prior = [SimpleNamespace(created_at=datetime(2025, 12, 31, 23, 50))]
        serial, next_sequence = next_serial(self.config, prior, now)
        self.assertEqual(serial, "TE/2026/1001")
        self.assertEqual(next_sequence, 1002)

    def test_continues_the_stored_sequence_within_a_year(self):
        now = datetime(2025, 6, 1, 9, 0)
        prior = [SimpleNamespace(created_at=datetime(2025, 5, 30, 18, 0))]
        serial, next_sequence = next_serial(self.config, prior, now)
        self.assertEqual(serial, "TE/2025/1007")
        self.assertEqual(next_sequence, 1008)

    def test_custom_baseline(self):
        serial, next_sequence = next_serial(self.config, [], datetime(2025, 1, 5), baseline=1)
        self.assertEqual(serial, "TE/2025/0001")
        self.assertEqual(next_sequence, 2)

    def test_format_and_parse(self):
        self.assertEqual(format_serial("INV", 2025, 1234), "INV/2025/1234")
        self.assertEqual(parse_serial_sequence("TE/2025/1002"), 1002)
        self.assertIsNone(parse_serial_sequence("garbage"))


if __name__ == "__main__":
    unittest.main()
