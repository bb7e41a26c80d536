import datetime
import hashlib
from decimal import Decimal
from unittest import mock

from django.core.exceptions import ValidationError
from django.db import IntegrityError
from django.test import SimpleTestCase, TestCase
from django.utils import timezone

from ..models import AuditLog, BankTransaction, Invoice, Payment
from ..services.banking import (StatementRow, ignore_transaction, import_hash,
                                import_statement_rows, match_transaction,
                                parse_statement_csv, suggest_matches, unignore_transaction)
from ..services.payment import delete_payment, record_payment
from .helpers import make_company, make_customer, make_invoice

STATEMENT = """Date,Description,Debit,Credit,Balance,Reference
01/05/2024,NEFT CR ACME TRADERS,,"59,000.00","1,59,000.00",UTR123
02/05/2024,ATM WDL,"2,000.00",,"1,57,000.00",
2024-05-03,UPI RENT,500,,156500,
"""


class StatementParsingTests(SimpleTestCase):
    def test_parse_csv(self):
        rows = parse_statement_csv(STATEMENT)

        self.assertEqual(len(rows), 3)
        first = rows[0]
        self.assertEqual(first.txn_date, datetime.date(2024, 5, 1))
        self.assertEqual(first.credit, Decimal("59000.00"))
        self.assertEqual(first.debit, Decimal("0.00"))
        self.assertEqual(first.balance, Decimal("159000.00"))
        self.assertEqual(first.reference_number, "UTR123")
        self.assertEqual(rows[1].debit, Decimal("2000.00"))
        self.assertEqual(rows[2].txn_date, datetime.date(2024, 5, 3))

    def test_errors_name_the_line(self):
        bad = "Date,Description,Debit,Credit\n01/05/2024,OK,,10\n31/02/2024,Bad date,,10\n"

        with self.assertRaises(ValidationError) as ctx:
            parse_statement_csv(bad)
        self.assertIn("Line 3", ctx.exception.messages[0])

    def test_rows_need_exactly_one_side(self):
        for mapping in (
            {"date": "2024-05-01", "description": "both", "debit": "1", "credit": "1"},
            {"date": "2024-05-01", "description": "neither"},
            {"date": "2024-05-01", "description": "negative", "credit": "-5"},
            {"date": "2024-05-01", "description": "", "credit": "5"},
        ):
            with self.subTest(mapping=mapping):
                with self.assertRaises(ValidationError):
                    StatementRow.from_mapping(mapping, 1)

    def test_empty_statement(self):
        with self.assertRaises(ValidationError):
            parse_statement_csv("")

    def test_import_hash_drops_trailing_zeros(self):
        expected = hashlib.sha256(b"2024-05-01|NEFT ACME|59000").hexdigest()

        self.assertEqual(import_hash(datetime.date(2024, 5, 1), "NEFT ACME", Decimal("59000.00")), expected)
        self.assertEqual(
            import_hash(datetime.date(2024, 5, 1), "X", Decimal("100.50")),
            hashlib.sha256(b"2024-05-01|X|100.5").hexdigest(),
        )


class StatementImportTests(TestCase):
    def setUp(self):
        self.company = make_company()
        self.rows = parse_statement_csv(STATEMENT)

    def test_reimport_is_idempotent(self):
        first = import_statement_rows(self.company, self.rows, bank_account_label="HDFC")
        second = import_statement_rows(self.company, self.rows)

        self.assertEqual(first, {"imported": 3, "skipped": 0, "total": 3})
        self.assertEqual(second, {"imported": 0, "skipped": 3, "total": 3})
        self.assertEqual(BankTransaction.objects.for_company(self.company).count(), 3)

    def test_duplicate_rows_within_one_file(self):
        row = StatementRow(txn_date=datetime.date(2024, 5, 1), description="NEFT ACME",
                           credit=Decimal("59000.00"))

        result = import_statement_rows(self.company, [row, row])

        self.assertEqual(result, {"imported": 1, "skipped": 1, "total": 2})

    def test_same_row_may_exist_for_two_companies(self):
        other = make_company("Other Co")

        import_statement_rows(self.company, self.rows)
        result = import_statement_rows(other, self.rows)

        self.assertEqual(result["imported"], 3)

    def test_mappings_are_accepted(self):
        result = import_statement_rows(self.company, [
            {"Date": "2024-06-01", "Description": "IMPS CR", "Credit": "1,000"},
        ])

        self.assertEqual(result["imported"], 1)
        txn = BankTransaction.objects.get()
        self.assertEqual(txn.credit, Decimal("1000.00"))
        self.assertEqual(txn.status, "unmatched")

    def test_malformed_row_rejects_the_whole_batch(self):
        with self.assertRaises(ValidationError):
            import_statement_rows(self.company, [
                {"date": "2024-06-01", "description": "fine", "credit": "10"},
                {"date": "not a date", "description": "broken", "credit": "10"},
            ])
        self.assertFalse(BankTransaction.objects.exists())

    def test_failure_mid_import_stores_nothing(self):
        with mock.patch("invoicing_core.services.banking.import_hash",
                        side_effect=["a" * 64, RuntimeError("disk full")]):
            with self.assertRaises(RuntimeError):
                import_statement_rows(self.company, self.rows[:2])
        self.assertFalse(BankTransaction.objects.exists())

    def test_other_integrity_errors_abort_the_import(self):
        save = BankTransaction.save

        def failing_save(txn, *args, **kwargs):
            if txn.description == "ATM WDL":
                raise IntegrityError("NOT NULL constraint failed")
            return save(txn, *args, **kwargs)

        with mock.patch.object(BankTransaction, "save", failing_save):
            with self.assertRaises(IntegrityError):
                import_statement_rows(self.company, self.rows)
        self.assertFalse(BankTransaction.objects.exists())


class SuggestionTests(TestCase):
    def setUp(self):
        self.company = make_company()
        self.customer = make_customer(self.company, "Acme Traders")
        self.invoice = make_invoice(self.company, self.customer)  # 59,000
        self.today = timezone.localdate()

    def credit(self, amount, description, reference=""):
        import_statement_rows(self.company, [StatementRow(
            txn_date=self.today, description=description,
            credit=Decimal(amount), reference_number=reference)])
        return BankTransaction.objects.get(description=description)

    def test_amount_and_invoice_number_score_high(self):
        txn = self.credit("59000.00", f"NEFT CR {self.invoice.invoice_number}")

        [suggestion] = suggest_matches(self.company)

        self.assertEqual(suggestion["transaction"].pk, txn.pk)
        top = suggestion["candidates"][0]
        self.assertEqual(top["invoice"].pk, self.invoice.pk)
        self.assertGreaterEqual(top["score"], 80)

    def test_scoring_rules(self):
        other = make_invoice(self.company, make_customer(self.company, "Zen Co"))
        record_payment(other, "30000.00", self.today)  # balance 29,000, total 59,000

        def other_score(suggestion):
            return next(c["score"] for c in suggestion["candidates"]
                        if c["invoice"].pk == other.pk)

        self.credit("59000.00", "IMPS from somebody")
        self.credit("58000.00", "CHQ DEP", reference="001")
        by_desc = {s["transaction"].description: s for s in suggest_matches(self.company)}

        # exact balance on the first invoice, exact total on the other
        self.assertEqual(by_desc["IMPS from somebody"]["candidates"][0]["score"], 50)
        self.assertEqual(other_score(by_desc["IMPS from somebody"]), 40)
        # within 5% of the balance, reference is part of the invoice number
        chq = by_desc["CHQ DEP"]["candidates"][0]
        self.assertEqual(chq["invoice"].pk, self.invoice.pk)
        self.assertEqual(chq["score"], 20 + 20)

    def test_customer_name_in_description(self):
        self.credit("10.00", "UPI ACME PAYMENT")

        [suggestion] = suggest_matches(self.company)
        self.assertEqual(suggestion["candidates"][0]["score"], 15)

    def test_at_most_three_candidates(self):
        for _ in range(4):
            make_invoice(self.company, self.customer)
        self.credit("59000.00", "NEFT CR")

        [suggestion] = suggest_matches(self.company)
        self.assertEqual(len(suggestion["candidates"]), 3)
        # ties keep due-date order
        self.assertEqual(suggestion["candidates"][0]["invoice"].pk, self.invoice.pk)

    def test_only_unmatched_credits_with_candidates_are_suggested(self):
        self.credit("123.45", "UNRELATED")
        ignored = self.credit("59000.00", "IGNORE ME")
        ignore_transaction(ignored)
        import_statement_rows(self.company, [StatementRow(
            txn_date=self.today, description="DEBIT", debit=Decimal("59000.00"))])

        self.assertEqual(suggest_matches(self.company), [])

    def test_suggestions_do_not_write(self):
        self.credit("59000.00", "NEFT CR")
        suggest_matches(self.company)

        self.assertFalse(Payment.objects.exists())
        self.assertEqual(BankTransaction.objects.get().status, "unmatched")


class MatchTests(TestCase):
    def setUp(self):
        self.company = make_company()
        self.customer = make_customer(self.company)
        self.invoice = make_invoice(self.company, self.customer)
        self.today = timezone.localdate()

    def credit(self, amount, description="NEFT CR ACME"):
        import_statement_rows(self.company, [StatementRow(
            txn_date=self.today, description=description,
            credit=Decimal(amount), reference_number="UTR9")])
        return BankTransaction.objects.get(description=description)

    def test_match_records_payment_and_marks_line(self):
        txn = self.credit("59000.00")

        payment = match_transaction(txn, self.invoice)

        txn.refresh_from_db()
        self.invoice.refresh_from_db()
        self.assertEqual(txn.status, "matched")
        self.assertEqual(txn.matched_payment, payment)
        self.assertEqual(payment.amount, Decimal("59000.00"))
        self.assertEqual(payment.reference_number, "UTR9")
        self.assertEqual(payment.payment_date, self.today)
        self.assertEqual(self.invoice.status, "paid")
        self.assertTrue(AuditLog.objects.filter(action="match").exists())

    def test_default_amount_is_capped_at_balance(self):
        txn = self.credit("70000.00")

        payment = match_transaction(txn, self.invoice)

        self.assertEqual(payment.amount, Decimal("59000.00"))

    def test_partial_match(self):
        txn = self.credit("20000.00")

        match_transaction(txn, self.invoice)

        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.status, "partially_paid")
        self.assertEqual(self.invoice.balance_due, Decimal("39000.00"))

    def test_amount_cannot_exceed_the_bank_credit(self):
        txn = self.credit("20000.00")

        with self.assertRaises(ValidationError):
            match_transaction(txn, self.invoice, amount="20000.01")

        txn.refresh_from_db()
        self.assertEqual(txn.status, "unmatched")
        self.assertFalse(Payment.objects.exists())
        payment = match_transaction(txn, self.invoice, amount="20000.00")
        self.assertEqual(payment.amount, Decimal("20000.00"))

    def test_cannot_match_twice_or_match_debits(self):
        txn = self.credit("100.00")
        match_transaction(txn, self.invoice)
        with self.assertRaises(ValidationError):
            match_transaction(txn, self.invoice)

        import_statement_rows(self.company, [StatementRow(
            txn_date=self.today, description="ATM", debit=Decimal("100.00"))])
        debit = BankTransaction.objects.get(description="ATM")
        with self.assertRaises(ValidationError):
            match_transaction(debit, self.invoice)

    def test_failed_match_leaves_everything_untouched(self):
        txn = self.credit("59000.00")

        with mock.patch("invoicing_core.services.banking.log_action",
                        side_effect=RuntimeError("boom")):
            with self.assertRaises(RuntimeError):
                match_transaction(txn, self.invoice)

        txn.refresh_from_db()
        self.invoice.refresh_from_db()
        self.assertEqual(txn.status, "unmatched")
        self.assertIsNone(txn.matched_payment)
        self.assertEqual(self.invoice.status, "sent")
        self.assertFalse(Payment.objects.exists())

    def test_reversing_matched_payment_releases_the_line(self):
        txn = self.credit("59000.00")
        payment = match_transaction(txn, self.invoice)

        delete_payment(payment)

        txn.refresh_from_db()
        self.invoice.refresh_from_db()
        self.assertEqual(txn.status, "unmatched")
        self.assertIsNone(txn.matched_payment)
        self.assertEqual(self.invoice.status, "sent")
        self.assertEqual(Invoice.objects.get(pk=self.invoice.pk).amount_paid, Decimal("0.00"))


class IgnoreTests(TestCase):
    def setUp(self):
        self.company = make_company()
        import_statement_rows(self.company, [StatementRow(
            txn_date=timezone.localdate(), description="BANK CHARGES", credit=Decimal("1.00"))])
        self.txn = BankTransaction.objects.get()

    def test_ignore_and_unignore(self):
        ignore_transaction(self.txn)
        self.assertEqual(BankTransaction.objects.get().status, "ignored")

        unignore_transaction(self.txn)
        self.assertEqual(BankTransaction.objects.get().status, "unmatched")
        self.assertEqual(
            list(AuditLog.objects.order_by("id").values_list("action", flat=True)),
            ["ignore", "unignore"],
        )

    def test_invalid_transitions(self):
        with self.assertRaises(ValidationError):
            unignore_transaction(self.txn)

        ignore_transaction(self.txn)
        with self.assertRaises(ValidationError):
            ignore_transaction(self.txn)
