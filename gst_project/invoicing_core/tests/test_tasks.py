import datetime
import uuid
from io import StringIO
from unittest import mock

from django.core.management import call_command
from django.test import SimpleTestCase, TestCase
from django.utils import timezone

from ..exceptions import RateLimitExceeded
from ..models import BankTransaction, Company, Invoice, VendorBill
from ..ratelimit import RateLimiter
from ..services.banking import suggest_matches
from ..tasks import refresh_all_document_statuses, refresh_document_statuses
from .helpers import make_bill, make_company, make_customer, make_invoice, make_vendor


class RefreshTaskTests(TestCase):
    def setUp(self):
        self.company = make_company()
        customer = make_customer(self.company)
        self.stale = make_invoice(self.company, customer)
        self.fresh = make_invoice(self.company, customer)
        self.draft = make_invoice(self.company, customer, status="draft")
        self.bill = make_bill(self.company, make_vendor(self.company))
        past = timezone.localdate() - datetime.timedelta(days=1)
        Invoice.objects.filter(pk__in=[self.stale.pk, self.draft.pk]).update(due_date=past)
        VendorBill.objects.filter(pk=self.bill.pk).update(due_date=past)

    def test_refresh_marks_overdue_documents(self):
        changed = refresh_document_statuses(self.company.pk)

        self.assertEqual(changed, 2)
        self.assertEqual(Invoice.objects.get(pk=self.stale.pk).status, "overdue")
        self.assertEqual(Invoice.objects.get(pk=self.fresh.pk).status, "sent")
        self.assertEqual(Invoice.objects.get(pk=self.draft.pk).status, "draft")
        self.assertEqual(VendorBill.objects.get(pk=self.bill.pk).status, "overdue")

        self.assertEqual(refresh_document_statuses(self.company.pk), 0)

    def test_fan_out_queues_one_task_per_company(self):
        make_company("Other Co")

        with mock.patch.object(refresh_document_statuses, "delay") as delay:
            count = refresh_all_document_statuses()

        self.assertEqual(count, 2)
        queued = sorted(call.args[0] for call in delay.call_args_list)
        self.assertEqual(queued, sorted(Company.objects.values_list("id", flat=True)))


class RateLimiterTests(SimpleTestCase):
    def setUp(self):
        self.limiter = RateLimiter(2, 60, prefix=f"test-{uuid.uuid4()}")

    def test_limit_is_per_key(self):
        self.assertTrue(self.limiter.hit("a"))
        self.assertTrue(self.limiter.hit("a"))
        self.assertFalse(self.limiter.hit("a"))
        self.assertTrue(self.limiter.hit("b"))

    def test_check_raises_and_reset_clears(self):
        self.limiter.check("a")
        self.limiter.check("a")
        with self.assertRaises(RateLimitExceeded):
            self.limiter.check("a")

        self.limiter.reset("a")
        self.limiter.check("a")


class DemoTenantCommandTests(TestCase):
    def test_creates_a_usable_tenant(self):
        out = StringIO()
        call_command("create_demo_tenant", "--company-name", "Demo Traders", stdout=out)

        company = Company.objects.get(slug="demo-traders")
        self.assertEqual(Invoice.objects.for_company(company).count(), 2)
        self.assertEqual(VendorBill.objects.for_company(company).count(), 1)
        self.assertEqual(BankTransaction.objects.for_company(company).count(), 1)
        self.assertEqual(
            Invoice.objects.for_company(company).filter(status="partially_paid").count(), 1)
        [suggestion] = suggest_matches(company)
        self.assertGreaterEqual(suggestion["candidates"][0]["score"], 80)
        self.assertIn("Demo tenant setup complete!", out.getvalue())
