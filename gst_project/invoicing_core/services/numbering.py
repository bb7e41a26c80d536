import datetime

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from ..exceptions import NotFoundError
from ..models import Company


def financial_year(on_date: datetime.date, start_month: int = 4) -> str:
    """Financial year label like "2024-25" for a year starting in start_month."""
    if on_date.month >= start_month:
        start_year = on_date.year
    else:
        start_year = on_date.year - 1
    # January start: the year is the calendar year, still labelled "2025-26"
    return f"{start_year}-{str(start_year + 1)[2:]}"


def format_invoice_number(prefix: str, fy: str, serial: int) -> str:
    return f"{prefix}{fy}/{serial:03d}"


def reserve_invoice_serial(company_id) -> tuple:
    """
    Atomically bump the company's counter and return (company, serial).
    The counter holds the *next* serial, so the reserved one is value - 1.
    Two concurrent callers serialize on the company row lock.
    """
    with transaction.atomic():
        updated = Company.objects.filter(pk=company_id).update(
            invoice_next_number=F("invoice_next_number") + 1
        )
        if not updated:
            raise NotFoundError(f"Company {company_id} does not exist")
        # read back inside the same transaction (row is locked by the UPDATE)
        company = Company.objects.select_for_update().get(pk=company_id)
    return company, company.invoice_next_number - 1


def next_invoice_number(company, on_date=None) -> str:
    """
    Reserve and format the next invoice number, e.g. "TES/2024-25/001".
    Call inside the transaction that creates the invoice, so a failed
    create never leaves a number reserved without a document (and
    never hands out a number that was not durably reserved).
    """
    company_id = getattr(company, "pk", company)
    company, serial = reserve_invoice_serial(company_id)
    on_date = on_date or timezone.localdate()
    fy = financial_year(on_date, company.financial_year_start)
    return format_invoice_number(company.invoice_prefix, fy, serial)
