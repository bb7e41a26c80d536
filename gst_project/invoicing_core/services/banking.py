"""
Bank statement import and reconciliation.

Statement rows are parsed into StatementRow records, hashed and inserted
once per company. Unmatched credits are scored against open invoices;
an operator confirms a suggestion with match_transaction().
"""
import csv
import datetime
import hashlib
import io
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List, Mapping, Optional

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction

from ..exceptions import NotFoundError
from ..models import BankTransaction, Invoice, Payment
from .audit_helper import log_action
from .gst import ZERO, round2, to_decimal
from .payment import record_payment

logger = logging.getLogger(__name__)

DATE_FORMATS = ("%Y-%m-%d", "%d/%m/%Y", "%d-%m-%Y")
OPEN_INVOICE_STATUSES = ("sent", "partially_paid", "overdue")
MAX_CANDIDATES = 3
TOLERANCE = Decimal("0.01")


# ----------------------------
# Statement rows
# ----------------------------
def parse_date(value, line_no=None) -> datetime.date:
    if isinstance(value, datetime.date):
        return value
    text = (value or "").strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise ValidationError(f"Line {line_no}: unrecognised date {value!r}")


def parse_amount(value, field, line_no=None) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, str):
        # "1,18,000.00" is how Indian statements print amounts
        value = value.replace(",", "").strip()
        if not value:
            return ZERO
    try:
        amount = to_decimal(value, field)
    except ValidationError:
        raise ValidationError(f"Line {line_no}: {field} must be a number, got {value!r}")
    if amount < 0:
        raise ValidationError(f"Line {line_no}: {field} must not be negative")
    return round2(amount)


@dataclass(frozen=True)
class StatementRow:
    txn_date: datetime.date
    description: str
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    narration: str = ""
    reference_number: str = ""
    balance: Optional[Decimal] = None

    @property
    def amount(self) -> Decimal:
        return self.credit if self.credit > 0 else self.debit

    @classmethod
    def from_mapping(cls, mapping: Mapping, line_no=None) -> "StatementRow":
        """Build a row from a dict keyed by column name; reject anything malformed."""
        row = {str(k).strip().lower(): v for k, v in mapping.items() if k is not None}

        description = (row.get("description") or "").strip()
        if not description:
            raise ValidationError(f"Line {line_no}: description is required")

        debit = parse_amount(row.get("debit"), "debit", line_no)
        credit = parse_amount(row.get("credit"), "credit", line_no)
        if debit > 0 and credit > 0:
            raise ValidationError(f"Line {line_no}: row has both a debit and a credit")
        if debit == 0 and credit == 0:
            raise ValidationError(f"Line {line_no}: row has neither a debit nor a credit")

        balance = row.get("balance")
        if balance is not None and str(balance).strip():
            balance = round2(to_decimal(str(balance).replace(",", ""), "balance"))
        else:
            balance = None

        return cls(
            txn_date=parse_date(row.get("date") or row.get("txn_date"), line_no),
            description=description,
            debit=debit,
            credit=credit,
            narration=(row.get("narration") or "").strip(),
            reference_number=(row.get("reference_number") or row.get("reference") or "").strip(),
            balance=balance,
        )


def parse_statement_csv(text: str) -> List[StatementRow]:
    """Parse CSV text with a header row (date, description, debit, credit, ...)."""
    reader = csv.DictReader(io.StringIO(text))
    if not reader.fieldnames:
        raise ValidationError("Statement is empty")
    # line 1 is the header
    return [
        StatementRow.from_mapping(record, line_no)
        for line_no, record in enumerate(reader, start=2)
    ]


def import_hash(txn_date: datetime.date, description: str, amount) -> str:
    """sha256 of "date|description|amount", amount without trailing zeros."""
    amount = format(to_decimal(amount).normalize(), "f")
    payload = f"{txn_date.isoformat()}|{description}|{amount}"
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


# ----------------------------
# Import
# ----------------------------
def import_statement_rows(company, rows: Iterable, bank_account_label: Optional[str] = None) -> dict:
    """
    Insert statement rows for a company; rows already imported are skipped.
    Either every new row is stored or none is.
    """
    rows = [
        row if isinstance(row, StatementRow) else StatementRow.from_mapping(row, i)
        for i, row in enumerate(rows, start=1)
    ]
    imported = skipped = 0

    with transaction.atomic():
        for row in rows:
            txn = BankTransaction(
                company=company,
                txn_date=row.txn_date,
                description=row.description,
                narration=row.narration,
                reference_number=row.reference_number,
                debit=row.debit,
                credit=row.credit,
                balance=row.balance,
                bank_account_label=bank_account_label or "",
                import_hash=import_hash(row.txn_date, row.description, row.amount),
            )
            try:
                # savepoint per row keeps the outer transaction usable
                with transaction.atomic():
                    txn.save()
            except IntegrityError:
                # only the (company, import_hash) clash means "already imported"
                if not BankTransaction.objects.filter(
                        company=company, import_hash=txn.import_hash).exists():
                    raise
                skipped += 1
                continue
            imported += 1

    logger.info(
        "Imported %d statement rows for company %s (%d skipped)",
        imported, company.pk, skipped,
    )
    return {"imported": imported, "skipped": skipped, "total": len(rows)}


# ----------------------------
# Suggestions
# ----------------------------
def score_candidate(txn: BankTransaction, invoice: Invoice) -> int:
    credit = txn.credit
    balance = invoice.balance_due
    score = 0

    if abs(credit - balance) < TOLERANCE:
        score += 50
    elif abs(credit - invoice.total_amount) < TOLERANCE:
        score += 40
    elif balance > 0 and abs(credit - balance) / balance < Decimal("0.05"):
        score += 20

    text = f"{txn.description} {txn.narration or ''}".lower()
    words = [w for w in invoice.customer.name.lower().split() if len(w) > 2]
    if any(w in text for w in words):
        score += 15

    if invoice.invoice_number.lower() in text:
        score += 30

    if txn.reference_number and txn.reference_number in invoice.invoice_number:
        score += 20

    return score


def open_invoices(company):
    return (
        Invoice.objects.for_company(company)
        .alive()
        .filter(status__in=OPEN_INVOICE_STATUSES, balance_due__gt=0)
        .select_related("customer")
        .order_by("due_date", "id")
    )


def suggest_matches(company, limit: int = 100) -> list:
    """Advisory: top candidates per unmatched bank credit. Writes nothing."""
    txns = list(
        BankTransaction.objects.for_company(company)
        .filter(status="unmatched", credit__gt=0)
        .order_by("-txn_date", "-id")[:limit]
    )
    if not txns:
        return []
    invoices = list(open_invoices(company))

    suggestions = []
    for txn in txns:
        scored = []
        for invoice in invoices:
            score = score_candidate(txn, invoice)
            if score > 0:
                scored.append({"invoice": invoice, "score": score})
        if not scored:
            continue
        # sorted() is stable: ties keep due-date order
        scored = sorted(scored, key=lambda c: c["score"], reverse=True)
        suggestions.append({"transaction": txn, "candidates": scored[:MAX_CANDIDATES]})
    return suggestions


# ----------------------------
# Match / ignore
# ----------------------------
def _lock_transaction(txn) -> BankTransaction:
    try:
        return BankTransaction.objects.select_for_update().get(pk=txn.pk)
    except BankTransaction.DoesNotExist:
        raise NotFoundError(f"Bank transaction {txn.pk} does not exist")


def match_transaction(
    txn: BankTransaction,
    invoice: Invoice,
    amount=None,
    payment_date: Optional[datetime.date] = None,
    payment_mode: str = "bank_transfer",
    user=None,
) -> Payment:
    """
    Confirm a suggestion: record the payment on the invoice and mark the
    bank line matched. Payment, invoice and bank line commit together.
    """
    with transaction.atomic():
        locked = _lock_transaction(txn)
        if locked.status != "unmatched":
            raise ValidationError(f"Only unmatched transactions can be matched ({locked.status})")
        if locked.credit <= 0:
            raise ValidationError("Only incoming (credit) transactions can be matched to invoices")
        if invoice.company_id != locked.company_id:
            raise NotFoundError(f"{invoice} does not belong to this company")

        if amount is None:
            # record_payment re-reads the balance under lock
            current = Invoice.objects.get(pk=invoice.pk)
            amount = min(locked.credit, current.balance_due)
        elif to_decimal(amount, "amount") > locked.credit:
            raise ValidationError(
                f"Cannot match {amount} against a bank credit of {locked.credit}")

        payment = record_payment(
            invoice,
            amount,
            payment_date or locked.txn_date,
            payment_mode=payment_mode,
            reference_number=locked.reference_number,
            notes=f"Matched from bank: {locked.description}"[:500],
            user=user,
        )

        locked.matched_payment = payment
        locked.transition_to("matched")

        log_action(
            action="match",
            instance=locked,
            user=user,
            changes={"payment": payment.pk, "invoice": invoice.invoice_number,
                     "amount": str(payment.amount)},
        )

    txn.status = locked.status
    txn.matched_payment = payment
    logger.info("Matched bank transaction %s to %s", locked.pk, invoice.invoice_number)
    return payment


def _set_status(txn, new_status, action, user=None) -> BankTransaction:
    with transaction.atomic():
        locked = _lock_transaction(txn)
        # transition_to() rejects anything outside the allowed map
        locked.transition_to(new_status)
        log_action(action=action, instance=locked, user=user)
    txn.status = locked.status
    txn.matched_payment = locked.matched_payment
    return txn


def ignore_transaction(txn: BankTransaction, user=None) -> BankTransaction:
    if txn.status != "unmatched":
        raise ValidationError(f"Only unmatched transactions can be ignored ({txn.status})")
    return _set_status(txn, "ignored", "ignore", user)


def unignore_transaction(txn: BankTransaction, user=None) -> BankTransaction:
    if txn.status != "ignored":
        raise ValidationError(f"Only ignored transactions can be restored ({txn.status})")
    return _set_status(txn, "unmatched", "unignore", user)
