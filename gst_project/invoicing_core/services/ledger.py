"""
Party ledgers: a read-only merge of documents and payments.

Customer ledger: invoices are debits, receipts are credits,
balance = what the customer owes us.
Vendor ledger: bills are credits, payments made are debits,
balance = what we owe the vendor.
"""
from ..models import Customer, Payment
from .gst import ZERO

# same-day documents come before payments
_KIND_ORDER = {"invoice": 0, "bill": 0, "payment": 1}


def _entry(date, kind, reference, description, debit=ZERO, credit=ZERO):
    return {
        "date": date,
        "kind": kind,
        "reference": reference,
        "description": description,
        "debit": debit,
        "credit": credit,
        "balance": ZERO,
    }


def _run(party, entries, sign):
    entries.sort(key=lambda e: (e["date"], _KIND_ORDER[e["kind"]]))
    balance = party.opening_balance or ZERO
    opening = balance
    for entry in entries:
        balance += sign * (entry["debit"] - entry["credit"])
        entry["balance"] = balance
    return {
        "party": party,
        "opening_balance": opening,
        "entries": entries,
        "closing_balance": balance,
    }


def build_customer_ledger(customer) -> dict:
    invoices = (
        customer.invoices.filter(deleted_at__isnull=True)
        .exclude(status__in=("draft", "cancelled"))
        .order_by("invoice_date", "id")
    )
    payments = Payment.objects.filter(
        customer=customer, direction="received", deleted_at__isnull=True
    ).order_by("payment_date", "id")

    entries = [
        _entry(inv.invoice_date, "invoice", inv.invoice_number,
               f"Invoice {inv.invoice_number}", debit=inv.total_amount)
        for inv in invoices
    ]
    entries += [
        _entry(p.payment_date, "payment", p.reference_number,
               f"Payment received ({p.get_payment_mode_display()})", credit=p.amount)
        for p in payments
    ]
    return _run(customer, entries, 1)


def build_vendor_ledger(vendor) -> dict:
    bills = (
        vendor.bills.filter(deleted_at__isnull=True)
        .exclude(status="cancelled")
        .order_by("bill_date", "id")
    )
    payments = Payment.objects.filter(
        vendor=vendor, direction="made", deleted_at__isnull=True
    ).order_by("payment_date", "id")

    entries = [
        _entry(bill.bill_date, "bill", bill.bill_number,
               f"Bill {bill.bill_number}", credit=bill.total_amount)
        for bill in bills
    ]
    entries += [
        _entry(p.payment_date, "payment", p.reference_number,
               f"Payment made ({p.get_payment_mode_display()})", debit=p.amount)
        for p in payments
    ]
    return _run(vendor, entries, -1)


def build_ledger(party) -> dict:
    if isinstance(party, Customer):
        return build_customer_ledger(party)
    return build_vendor_ledger(party)
