"""
Read-only report projections over invoices and vendor bills.
Nothing here writes; money stays Decimal.
"""
from django.db.models import Count, Sum
from django.db.models.functions import TruncMonth
from django.utils import timezone

from ..models import Invoice, VendorBill
from .gst import ZERO

AGING_BUCKETS = ("Current", "1-30 days", "31-60 days", "61-90 days", "90+ days")


def aging_bucket(days_overdue: int) -> str:
    if days_overdue <= 0:
        return "Current"
    if days_overdue <= 30:
        return "1-30 days"
    if days_overdue <= 60:
        return "31-60 days"
    if days_overdue <= 90:
        return "61-90 days"
    return "90+ days"


def outstanding_aging(company, today=None) -> dict:
    """Open invoices with a balance, bucketed by days past due."""
    today = today or timezone.localdate()
    invoices = (
        Invoice.objects.for_company(company)
        .alive()
        .filter(status__in=("sent", "partially_paid", "overdue"), balance_due__gt=0)
        .select_related("customer")
        .order_by("due_date", "id")
    )

    rows = []
    totals = {bucket: ZERO for bucket in AGING_BUCKETS}
    for inv in invoices:
        days = (today - inv.due_date).days
        bucket = aging_bucket(days)
        totals[bucket] += inv.balance_due
        rows.append({
            "invoice_number": inv.invoice_number,
            "customer_name": inv.customer.name,
            "invoice_date": inv.invoice_date,
            "due_date": inv.due_date,
            "total_amount": inv.total_amount,
            "balance_due": inv.balance_due,
            "days_overdue": max(0, days),
            "bucket": bucket,
        })
    return {"rows": rows, "totals": totals}


def tds_register(company) -> list:
    invoices = (
        Invoice.objects.for_company(company)
        .alive()
        .filter(tds_applicable=True)
        .select_related("customer")
        .order_by("-invoice_date", "-id")
    )
    return [
        {
            "invoice_number": inv.invoice_number,
            "invoice_date": inv.invoice_date,
            "customer_name": inv.customer.name,
            "customer_pan": inv.customer.pan,
            "total_amount": inv.total_amount,
            "tds_rate": inv.tds_rate or ZERO,
            "tds_amount": inv.tds_amount,
            "certificate_status": inv.tds_certificate_status,
            "certificate_received_date": inv.tds_certificate_received_date,
        }
        for inv in invoices
    ]


def sales_summary(company) -> list:
    """Month-wise issued sales, newest month first."""
    rows = (
        Invoice.objects.for_company(company)
        .alive()
        .exclude(status__in=("draft", "cancelled"))
        .annotate(month=TruncMonth("invoice_date"))
        .values("month")
        .annotate(
            invoice_count=Count("id"),
            taxable_amount=Sum("taxable_amount"),
            cgst=Sum("cgst_amount"),
            sgst=Sum("sgst_amount"),
            igst=Sum("igst_amount"),
            total_amount=Sum("total_amount"),
            collected=Sum("amount_paid"),
        )
        .order_by("-month")
    )
    return [dict(row, month=row["month"].strftime("%Y-%m")) for row in rows]


def vendor_gst_register(company) -> list:
    """Bill-wise input GST with GSTR-2B / ITC tracking flags."""
    bills = (
        VendorBill.objects.for_company(company)
        .alive()
        .select_related("vendor")
        .order_by("-bill_date", "-id")
    )
    return [
        {
            "bill_number": bill.bill_number,
            "bill_date": bill.bill_date,
            "vendor_name": bill.vendor.name,
            "vendor_gstin": bill.vendor.gstin,
            "taxable_amount": bill.taxable_amount,
            "cgst": bill.cgst_amount,
            "sgst": bill.sgst_amount,
            "igst": bill.igst_amount,
            "total_amount": bill.total_amount,
            "gst_filed": bill.gst_filed,
            "gstr2b_reflected": bill.gstr2b_reflected,
            "itc_eligible": bill.itc_eligible,
            "portal_check_date": bill.portal_check_date,
            "tds_applicable": bill.tds_applicable,
            "tds_amount": bill.tds_amount,
        }
        for bill in bills
    ]
