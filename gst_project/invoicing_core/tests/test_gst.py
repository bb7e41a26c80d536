import random
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import SimpleTestCase

from ..services.gst import (GST_RATES, calc_document_totals, calc_line_item,
                            is_inter_state, round2)


class LineCalculationTests(SimpleTestCase):
    def test_intra_state_splits_tax_into_cgst_and_sgst(self):
        calc = calc_line_item(1, 50000, 18, is_inter_state=False)

        self.assertEqual(calc.taxable_amount, Decimal("50000.00"))
        self.assertEqual(calc.cgst_amount, Decimal("4500.00"))
        self.assertEqual(calc.sgst_amount, Decimal("4500.00"))
        self.assertEqual(calc.igst_amount, Decimal("0.00"))
        self.assertEqual(calc.line_total, Decimal("59000.00"))

    def test_inter_state_charges_full_igst(self):
        calc = calc_line_item(1, 50000, 18, is_inter_state=True)

        self.assertEqual(calc.cgst_amount, Decimal("0.00"))
        self.assertEqual(calc.sgst_amount, Decimal("0.00"))
        self.assertEqual(calc.igst_amount, Decimal("9000.00"))
        self.assertEqual(calc.line_total, Decimal("59000.00"))

    def test_odd_paisa_goes_to_sgst(self):
        # 100.10 @ 5% = 5.005 -> 5.01, split 2.51 / 2.50
        calc = calc_line_item(1, "100.10", 5)

        self.assertEqual(calc.cgst_amount + calc.sgst_amount, Decimal("5.01"))
        self.assertEqual(calc.cgst_amount, Decimal("2.51"))
        self.assertEqual(calc.sgst_amount, Decimal("2.50"))

    def test_float_inputs_are_coerced_through_str(self):
        calc = calc_line_item(3, 33.33, 18)

        self.assertEqual(calc.amount, Decimal("99.99"))
        self.assertEqual(calc.cgst_amount + calc.sgst_amount, Decimal("18.00"))
        self.assertEqual(calc.line_total, Decimal("117.99"))

    def test_percentage_discount(self):
        calc = calc_line_item(2, 500, 18, discount_type="percentage", discount_value=10)

        self.assertEqual(calc.discount_amount, Decimal("100.00"))
        self.assertEqual(calc.taxable_amount, Decimal("900.00"))
        self.assertEqual(calc.cgst_amount, Decimal("81.00"))

    def test_fixed_discount(self):
        calc = calc_line_item(1, 1000, 12, discount_type="fixed", discount_value="250")

        self.assertEqual(calc.taxable_amount, Decimal("750.00"))
        self.assertEqual(calc.line_total, Decimal("840.00"))

    def test_discount_larger_than_amount_is_rejected(self):
        with self.assertRaises(ValidationError):
            calc_line_item(1, 100, 18, discount_type="fixed", discount_value=150)

    def test_invalid_inputs_are_rejected(self):
        bad = [
            dict(quantity=-1, rate=100, gst_rate=18),
            dict(quantity=1, rate=-5, gst_rate=18),
            dict(quantity=1, rate=100, gst_rate=7),
            dict(quantity="abc", rate=100, gst_rate=18),
            dict(quantity=1, rate=None, gst_rate=18),
            dict(quantity=1, rate=100, gst_rate=18, discount_type="bogus", discount_value=1),
            dict(quantity=1, rate=100, gst_rate=18,
                 discount_type="percentage", discount_value=120),
        ]
        for kwargs in bad:
            with self.subTest(**kwargs):
                with self.assertRaises(ValidationError):
                    calc_line_item(**kwargs)

    def test_zero_rated_line_has_no_tax(self):
        calc = calc_line_item(4, "250.00", 0)

        self.assertEqual(calc.taxable_amount, Decimal("1000.00"))
        self.assertEqual(calc.cgst_amount + calc.sgst_amount + calc.igst_amount, Decimal("0"))


class TaxTypeExclusivityTests(SimpleTestCase):
    """Randomised inputs: tax types never mix and the halves add up."""

    def setUp(self):
        self.rng = random.Random(20240401)

    def random_line(self):
        quantity = Decimal(self.rng.randint(0, 5000)) / Decimal(self.rng.choice([1, 10, 100]))
        rate = Decimal(self.rng.randint(0, 10_000_000)) / Decimal(100)
        gst_rate = self.rng.choice(GST_RATES)
        return quantity, rate, gst_rate

    def test_exactly_one_tax_type_applies(self):
        for _ in range(500):
            quantity, rate, gst_rate = self.random_line()
            inter = self.rng.random() < 0.5
            calc = calc_line_item(quantity, rate, gst_rate, is_inter_state=inter)
            gst = round2(calc.taxable_amount * gst_rate / 100)

            if inter:
                self.assertEqual(calc.cgst_amount, 0)
                self.assertEqual(calc.sgst_amount, 0)
                self.assertEqual(calc.igst_amount, gst)
            else:
                self.assertEqual(calc.igst_amount, 0)
                if gst >= Decimal("0.02"):
                    self.assertGreater(calc.cgst_amount, 0)
                    self.assertGreater(calc.sgst_amount, 0)

    def test_cgst_plus_sgst_equals_total_gst(self):
        for _ in range(500):
            quantity, rate, gst_rate = self.random_line()
            calc = calc_line_item(quantity, rate, gst_rate, is_inter_state=False)

            self.assertEqual(
                calc.cgst_amount + calc.sgst_amount,
                round2(calc.taxable_amount * gst_rate / 100),
            )
            self.assertEqual(
                calc.line_total,
                calc.taxable_amount + calc.cgst_amount + calc.sgst_amount,
            )


class DocumentTotalsTests(SimpleTestCase):
    def test_totals_are_sums_of_rounded_lines(self):
        lines = [
            calc_line_item(1, 50000, 18),
            calc_line_item(3, "33.33", 5),
            calc_line_item(2, 500, 12, discount_type="percentage", discount_value=10),
        ]
        totals = calc_document_totals(lines)

        self.assertEqual(totals.taxable_amount, sum(l.taxable_amount for l in lines))
        self.assertEqual(totals.cgst_amount, sum(l.cgst_amount for l in lines))
        self.assertEqual(totals.discount_amount, Decimal("100.00"))
        self.assertEqual(
            totals.total_amount,
            totals.taxable_amount + totals.cgst_amount + totals.sgst_amount + totals.igst_amount,
        )
        self.assertEqual(totals.total_amount, sum(l.line_total for l in lines))

    def test_empty_document_totals_are_zero(self):
        totals = calc_document_totals([])
        self.assertEqual(totals.total_amount, Decimal("0.00"))


class InterStateTests(SimpleTestCase):
    def test_inter_state_requires_two_different_known_codes(self):
        self.assertFalse(is_inter_state("27", "27"))
        self.assertTrue(is_inter_state("27", "29"))
        self.assertFalse(is_inter_state(None, "29"))
        self.assertFalse(is_inter_state("27", ""))
