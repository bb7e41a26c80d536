import datetime
from decimal import Decimal

from django.test import SimpleTestCase, TestCase
from django.utils import timezone

from ..services.documents import update_bill_compliance, update_invoice_compliance
from ..services.payment import record_payment
from ..services.reports import (AGING_BUCKETS, aging_bucket, outstanding_aging,
                                sales_summary, tds_register, vendor_gst_register)
from .helpers import make_bill, make_company, make_customer, make_invoice, make_vendor


class AgingBucketTests(SimpleTestCase):
    def test_bucket_edges(self):
        self.assertEqual(aging_bucket(-3), "Current")
        self.assertEqual(aging_bucket(0), "Current")
        self.assertEqual(aging_bucket(1), "1-30 days")
        self.assertEqual(aging_bucket(30), "1-30 days")
        self.assertEqual(aging_bucket(31), "31-60 days")
        self.assertEqual(aging_bucket(90), "61-90 days")
        self.assertEqual(aging_bucket(91), "90+ days")


class OutstandingAgingTests(TestCase):
    def test_open_balances_by_bucket(self):
        company = make_company()
        customer = make_customer(company)
        today = timezone.localdate()
        for offset in (5, -10, -45, -75, -120):
            due = today + datetime.timedelta(days=offset)
            make_invoice(company, customer, invoice_date=due - datetime.timedelta(days=1),
                         due_date=due)
        paid = make_invoice(company, customer)
        record_payment(paid, "59000.00", today)
        make_invoice(company, customer, status="draft")

        report = outstanding_aging(company, today=today)

        self.assertEqual(len(report["rows"]), 5)
        for bucket in AGING_BUCKETS:
            self.assertEqual(report["totals"][bucket], Decimal("59000.00"))
        oldest = report["rows"][0]
        self.assertEqual(oldest["days_overdue"], 120)
        self.assertEqual(oldest["bucket"], "90+ days")
        self.assertEqual(report["rows"][-1]["days_overdue"], 0)


class RegisterTests(TestCase):
    def setUp(self):
        self.company = make_company()
        self.customer = make_customer(self.company, pan="ABCDE1234F")

    def test_sales_summary_is_month_wise_newest_first(self):
        for day in (datetime.date(2024, 5, 10), datetime.date(2024, 6, 2),
                    datetime.date(2024, 6, 20)):
            make_invoice(self.company, self.customer, invoice_date=day)
        make_invoice(self.company, self.customer, invoice_date=datetime.date(2024, 6, 5),
                     status="draft")

        summary = sales_summary(self.company)

        self.assertEqual([row["month"] for row in summary], ["2024-06", "2024-05"])
        june = summary[0]
        self.assertEqual(june["invoice_count"], 2)
        self.assertEqual(june["taxable_amount"], Decimal("100000.00"))
        self.assertEqual(june["cgst"], Decimal("9000.00"))
        self.assertEqual(june["total_amount"], Decimal("118000.00"))
        self.assertEqual(june["collected"], Decimal("0.00"))

    def test_tds_register_lists_only_tds_invoices(self):
        tds = make_invoice(self.company, self.customer)
        make_invoice(self.company, self.customer)
        update_invoice_compliance(tds, tds_applicable=True, tds_rate="2")

        [row] = tds_register(self.company)

        self.assertEqual(row["invoice_number"], tds.invoice_number)
        self.assertEqual(row["customer_pan"], "ABCDE1234F")
        self.assertEqual(row["tds_amount"], Decimal("1000.00"))

    def test_vendor_gst_register(self):
        vendor = make_vendor(self.company, gstin="27ABCDE1234F1Z5")
        bill = make_bill(self.company, vendor)
        update_bill_compliance(bill, gstr2b_reflected=True)

        [row] = vendor_gst_register(self.company)

        self.assertEqual(row["bill_number"], "OSC-1001")
        self.assertEqual(row["vendor_gstin"], "27ABCDE1234F1Z5")
        self.assertEqual(row["cgst"] + row["sgst"], Decimal("540.00"))
        self.assertTrue(row["gstr2b_reflected"])
        self.assertFalse(row["gst_filed"])
