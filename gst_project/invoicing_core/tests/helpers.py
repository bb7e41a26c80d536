import datetime

from django.utils import timezone
from django.utils.text import slugify

from ..models import Company, Customer, Vendor
from ..services.documents import create_invoice, create_vendor_bill

# 50,000 + 18% GST = 59,000
CONSULTING = {"description": "Consulting", "hsn_sac_code": "998311",
              "quantity": 1, "rate": "50000", "gst_rate": 18}
PAPER = {"description": "Printer paper", "quantity": 10, "rate": "450", "gst_rate": 12}


def make_company(name="Test Co", state_code="27", **kwargs):
    kwargs.setdefault("invoice_prefix", "TES/")
    return Company.objects.create(
        name=name, slug=slugify(name), state_code=state_code, **kwargs)


def make_customer(company, name="Acme Traders", state_code="27", **kwargs):
    return Customer.objects.create(company=company, name=name, state_code=state_code, **kwargs)


def make_vendor(company, name="Office Supplies Co", state_code="27", **kwargs):
    return Vendor.objects.create(company=company, name=name, state_code=state_code, **kwargs)


def make_invoice(company, customer, lines=None, status="sent", invoice_date=None,
                 due_date=None, **kwargs):
    """Issued invoice, due in 30 days unless told otherwise."""
    today = timezone.localdate()
    invoice_date = invoice_date or today
    if due_date is None:
        due_date = max(invoice_date, today) + datetime.timedelta(days=30)
    return create_invoice(
        company, customer, [CONSULTING] if lines is None else lines, invoice_date,
        due_date=due_date, status=status, **kwargs)


def make_bill(company, vendor, bill_number="OSC-1001", lines=None, bill_date=None,
              due_date=None, **kwargs):
    today = timezone.localdate()
    bill_date = bill_date or today
    if due_date is None:
        due_date = max(bill_date, today) + datetime.timedelta(days=30)
    return create_vendor_bill(
        company, vendor, bill_number, [PAPER] if lines is None else lines, bill_date,
        due_date=due_date, **kwargs)
