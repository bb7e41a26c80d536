import datetime
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone

from ..services.documents import change_status
from ..services.ledger import build_customer_ledger, build_ledger, build_vendor_ledger
from ..services.payment import delete_payment, record_payment, record_unapplied_payment
from .helpers import make_bill, make_company, make_customer, make_invoice, make_vendor


class CustomerLedgerTests(TestCase):
    def setUp(self):
        self.company = make_company()
        self.customer = make_customer(self.company, opening_balance=Decimal("1000.00"))
        self.day = timezone.localdate() - datetime.timedelta(days=10)

    def test_running_balance(self):
        inv = make_invoice(self.company, self.customer, invoice_date=self.day)
        make_invoice(self.company, self.customer, invoice_date=self.day, status="draft")
        cancelled = make_invoice(self.company, self.customer, invoice_date=self.day, status="draft")
        change_status(cancelled, "cancelled")

        # payment on the invoice date sorts after the invoice
        record_payment(inv, "30000.00", self.day)
        reversed_payment = record_payment(inv, "1000.00", self.day + datetime.timedelta(days=1))
        delete_payment(reversed_payment)
        record_unapplied_payment(self.customer, "500.00", self.day + datetime.timedelta(days=2))

        ledger = build_customer_ledger(self.customer)

        self.assertEqual(ledger["opening_balance"], Decimal("1000.00"))
        self.assertEqual([e["kind"] for e in ledger["entries"]], ["invoice", "payment", "payment"])
        self.assertEqual(
            [e["balance"] for e in ledger["entries"]],
            [Decimal("60000.00"), Decimal("30000.00"), Decimal("29500.00")],
        )
        self.assertEqual(ledger["entries"][0]["debit"], Decimal("59000.00"))
        self.assertEqual(ledger["entries"][0]["reference"], inv.invoice_number)
        self.assertEqual(ledger["closing_balance"], Decimal("29500.00"))

    def test_empty_ledger_is_opening_balance(self):
        ledger = build_ledger(self.customer)

        self.assertEqual(ledger["entries"], [])
        self.assertEqual(ledger["closing_balance"], Decimal("1000.00"))


class VendorLedgerTests(TestCase):
    def test_bills_are_credits_and_payments_debits(self):
        company = make_company()
        vendor = make_vendor(company, opening_balance=Decimal("200.00"))
        day = timezone.localdate() - datetime.timedelta(days=3)
        bill = make_bill(company, vendor, bill_date=day)  # 5,040
        record_payment(bill, "2000.00", day)

        ledger = build_vendor_ledger(vendor)

        self.assertEqual([e["kind"] for e in ledger["entries"]], ["bill", "payment"])
        self.assertEqual(ledger["entries"][0]["credit"], Decimal("5040.00"))
        self.assertEqual(ledger["entries"][1]["debit"], Decimal("2000.00"))
        self.assertEqual(ledger["closing_balance"], Decimal("3240.00"))
        self.assertEqual(build_ledger(vendor)["closing_balance"], Decimal("3240.00"))
