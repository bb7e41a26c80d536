import datetime
from concurrent.futures import ThreadPoolExecutor

from django.db import connection, transaction
from django.test import SimpleTestCase, TestCase, TransactionTestCase, skipUnlessDBFeature

from ..exceptions import NotFoundError
from ..models import Company
from ..services.numbering import financial_year, format_invoice_number, next_invoice_number
from .helpers import make_company

JUNE = datetime.date(2024, 6, 1)


class FinancialYearTests(SimpleTestCase):
    def test_april_start(self):
        self.assertEqual(financial_year(datetime.date(2024, 4, 1)), "2024-25")
        self.assertEqual(financial_year(datetime.date(2025, 3, 31)), "2024-25")
        self.assertEqual(financial_year(datetime.date(2099, 12, 1)), "2099-00")

    def test_january_start(self):
        self.assertEqual(financial_year(datetime.date(2025, 1, 10), start_month=1), "2025-26")

    def test_format_pads_serial(self):
        self.assertEqual(format_invoice_number("TES/", "2024-25", 7), "TES/2024-25/007")
        self.assertEqual(format_invoice_number("", "2024-25", 1234), "2024-25/1234")


class InvoiceNumberTests(TestCase):
    def setUp(self):
        self.company = make_company()

    def test_numbers_are_sequential(self):
        numbers = [next_invoice_number(self.company, JUNE) for _ in range(3)]

        self.assertEqual(numbers, ["TES/2024-25/001", "TES/2024-25/002", "TES/2024-25/003"])
        self.company.refresh_from_db()
        self.assertEqual(self.company.invoice_next_number, 4)

    def test_many_reservations_are_distinct_and_gapless(self):
        numbers = [next_invoice_number(self.company.pk, JUNE) for _ in range(10)]

        self.assertEqual(len(set(numbers)), 10)
        serials = [int(n.rsplit("/", 1)[1]) for n in numbers]
        self.assertEqual(serials, list(range(1, 11)))

    def test_financial_year_follows_the_document_date(self):
        self.assertEqual(
            next_invoice_number(self.company, datetime.date(2025, 2, 1)), "TES/2024-25/001")
        self.assertEqual(
            next_invoice_number(self.company, datetime.date(2025, 4, 1)), "TES/2025-26/002")

    def test_rolled_back_reservation_is_not_consumed(self):
        with self.assertRaises(RuntimeError):
            with transaction.atomic():
                next_invoice_number(self.company, JUNE)
                raise RuntimeError("create failed")

        self.company.refresh_from_db()
        self.assertEqual(self.company.invoice_next_number, 1)
        self.assertEqual(next_invoice_number(self.company, JUNE), "TES/2024-25/001")

    def test_unknown_company(self):
        with self.assertRaises(NotFoundError):
            next_invoice_number(999999, JUNE)

    def test_counters_are_per_company(self):
        other = make_company("Other Co", invoice_prefix="OTH/")

        self.assertEqual(next_invoice_number(self.company, JUNE), "TES/2024-25/001")
        self.assertEqual(next_invoice_number(other, JUNE), "OTH/2024-25/001")


@skipUnlessDBFeature("has_select_for_update")
class ConcurrentInvoiceNumberTests(TransactionTestCase):
    """
    Threads racing for serials on one company. SQLite has no row locks, so
    this class is skipped on the default settings; run it against PostgreSQL
    (DATABASE_ENGINE=postgres) to exercise the locking path.
    """

    def test_parallel_reservations_never_collide(self):
        company = make_company()

        def reserve(_):
            try:
                with transaction.atomic():
                    return next_invoice_number(company.pk, JUNE)
            finally:
                connection.close()

        with ThreadPoolExecutor(max_workers=8) as pool:
            numbers = list(pool.map(reserve, range(40)))

        self.assertEqual(len(set(numbers)), 40)
        self.assertEqual(Company.objects.get(pk=company.pk).invoice_next_number, 41)
