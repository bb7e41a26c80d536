import datetime
import logging
from typing import Iterable, Mapping, Optional

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone

from ..exceptions import ConflictError, NotFoundError
from ..models import Invoice, InvoiceLine, VendorBill, VendorBillLine
from ..models.invoice import TDS_CERTIFICATE_STATUS_CHOICES
from .audit_helper import log_action
from .gst import (HUNDRED, ZERO, calc_document_totals, calc_line_item,
                  is_inter_state, round2, to_decimal)
from .numbering import next_invoice_number
from .status import derive_status, refresh_status, refresh_statuses

logger = logging.getLogger(__name__)

CREATE_STATUSES = ("draft", "sent")


# ----------------------------------------------
# Helpers
# ----------------------------------------------
def _check_party(company, party):
    if party.company_id != company.pk:
        raise NotFoundError(f"{party} does not belong to {company}")
    if party.deleted_at is not None:
        raise NotFoundError(f"{party} has been deleted")


def _due_date(document_date, due_date, party, company):
    if due_date is None:
        days = party.payment_terms_days
        if days is None:
            days = company.default_payment_terms_days
        due_date = document_date + datetime.timedelta(days=days)
    if due_date < document_date:
        raise ValidationError("Due date cannot be before the document date")
    return due_date


def compute_lines(lines: Iterable[Mapping], inter_state: bool):
    """Run the tax calculator over raw line dicts → [(fields, LineCalc)]."""
    lines = list(lines or [])
    if not lines:
        raise ValidationError("At least one line item is required")

    computed = []
    for idx, line in enumerate(lines):
        description = (line.get("description") or "").strip()
        if not description:
            raise ValidationError(f"Line {idx + 1}: description is required")
        discount_type = line.get("discount_type") or None
        calc = calc_line_item(
            line.get("quantity", 1),
            line.get("rate"),
            line.get("gst_rate", 0),
            discount_type=discount_type,
            discount_value=line.get("discount_value"),
            is_inter_state=inter_state,
        )
        fields = {
            "sort_order": idx,
            "description": description,
            "hsn_sac_code": line.get("hsn_sac_code") or "",
            "quantity": to_decimal(line.get("quantity", 1), "quantity"),
            "unit": line.get("unit") or "nos",
            "rate": to_decimal(line.get("rate"), "rate"),
            "gst_rate": to_decimal(line.get("gst_rate", 0), "gst_rate"),
            "discount_type": discount_type,
            "discount_value": (
                to_decimal(line["discount_value"], "discount_value")
                if discount_type and line.get("discount_value") is not None else None
            ),
            "discount_amount": calc.discount_amount,
            "taxable_amount": calc.taxable_amount,
            "cgst_amount": calc.cgst_amount,
            "sgst_amount": calc.sgst_amount,
            "igst_amount": calc.igst_amount,
            "line_total": calc.line_total,
        }
        computed.append((fields, calc))
    return computed


def _totals_fields(computed) -> dict:
    totals = calc_document_totals(calc for _, calc in computed)
    fields = totals._asdict()
    fields["amount_paid"] = ZERO
    fields["balance_due"] = totals.total_amount
    return fields


# ----------------------------------------------
# Create
# ----------------------------------------------
def create_invoice(
    company,
    customer,
    lines,
    invoice_date: datetime.date,
    due_date: Optional[datetime.date] = None,
    place_of_supply: Optional[str] = None,
    status: str = "draft",
    notes: Optional[str] = None,
    terms: Optional[str] = None,
    user=None,
) -> Invoice:
    """
    Create an invoice with its lines under a freshly reserved number.
    Number, header and lines commit together.
    """
    _check_party(company, customer)
    if status not in CREATE_STATUSES:
        raise ValidationError(f"New invoices must be draft or sent, not {status!r}")
    if not isinstance(invoice_date, datetime.date):
        raise ValidationError("Invoice date is required")

    place_of_supply = place_of_supply or customer.state_code or ""
    inter_state = is_inter_state(company.state_code, place_of_supply)
    computed = compute_lines(lines, inter_state)
    totals = _totals_fields(computed)
    due_date = _due_date(invoice_date, due_date, customer, company)

    for attempt in (1, 2):
        try:
            with transaction.atomic():
                number = next_invoice_number(company, invoice_date)
                if attempt == 2 and Invoice.objects.filter(
                        company=company, invoice_number=number).exists():
                    # number was issued outside the counter; step past it once
                    number = next_invoice_number(company, invoice_date)
                invoice = Invoice(
                    company=company,
                    customer=customer,
                    invoice_number=number,
                    invoice_date=invoice_date,
                    due_date=due_date,
                    place_of_supply=place_of_supply,
                    status=status,
                    notes=notes if notes is not None else company.default_terms,
                    terms=terms or "",
                    bank_name=company.bank_name,
                    bank_account_no=company.bank_account_no,
                    bank_ifsc=company.bank_ifsc,
                    bank_upi_id=company.bank_upi_id,
                    created_by=user if getattr(user, "pk", None) else None,
                    **totals,
                )
                # "sent" with a past due date starts out overdue
                invoice.status = derive_status(invoice)
                invoice.check_invariants()
                invoice.save()
                InvoiceLine.objects.bulk_create(
                    InvoiceLine(company=company, invoice=invoice, **fields)
                    for fields, _ in computed
                )
                log_action(
                    action="create",
                    instance=invoice,
                    user=user,
                    changes={"invoice_number": invoice.invoice_number,
                             "total_amount": str(invoice.total_amount)},
                )
            break
        except IntegrityError:
            if attempt == 2:
                raise ConflictError(
                    f"Could not allocate a unique invoice number for {company}")
            logger.warning("Invoice number clash for company %s, retrying", company.pk)

    logger.info("Created invoice %s (%s)", invoice.invoice_number, invoice.total_amount)
    return invoice


def create_vendor_bill(
    company,
    vendor,
    bill_number: str,
    lines,
    bill_date: datetime.date,
    due_date: Optional[datetime.date] = None,
    place_of_supply: Optional[str] = None,
    notes: Optional[str] = None,
    attachment_id: Optional[str] = None,
    user=None,
) -> VendorBill:
    """Record a vendor's bill; the number is the vendor's own and must be unique."""
    _check_party(company, vendor)
    bill_number = (bill_number or "").strip()
    if not bill_number:
        raise ValidationError("Bill number is required")
    if not isinstance(bill_date, datetime.date):
        raise ValidationError("Bill date is required")

    place_of_supply = place_of_supply or vendor.state_code or ""
    inter_state = is_inter_state(company.state_code, place_of_supply)
    computed = compute_lines(lines, inter_state)
    totals = _totals_fields(computed)
    due_date = _due_date(bill_date, due_date, vendor, company)

    try:
        with transaction.atomic():
            bill = VendorBill(
                company=company,
                vendor=vendor,
                bill_number=bill_number,
                bill_date=bill_date,
                due_date=due_date,
                place_of_supply=place_of_supply,
                notes=notes or "",
                attachment_id=attachment_id or "",
                created_by=user if getattr(user, "pk", None) else None,
                **totals,
            )
            bill.status = derive_status(bill)
            bill.check_invariants()
            bill.save()
            VendorBillLine.objects.bulk_create(
                VendorBillLine(company=company, bill=bill, **fields)
                for fields, _ in computed
            )
            log_action(
                action="create",
                instance=bill,
                user=user,
                changes={"bill_number": bill_number, "total_amount": str(bill.total_amount)},
            )
    except IntegrityError:
        raise ConflictError(f"Bill {bill_number} already exists for {company}")
    return bill


# ----------------------------------------------
# Status / lifecycle
# ----------------------------------------------
def _lock(document):
    model = type(document)
    try:
        return model.objects.select_for_update().get(pk=document.pk)
    except model.DoesNotExist:
        raise NotFoundError(f"{model.__name__} {document.pk} does not exist")


def change_status(document, new_status: str, user=None):
    """Manual transition (send, dispute, hold, cancel) through transition_to()."""
    with transaction.atomic():
        locked = _lock(document)
        if locked.deleted_at is not None:
            raise NotFoundError(f"{locked} has been deleted")
        old_status = locked.status
        locked.transition_to(new_status)
        if new_status == locked.open_status:
            # lifting a hold lands on what the payments and due date say
            derived = derive_status(locked)
            if derived != new_status:
                locked.status = derived
                locked.save(update_fields=["status", "updated_at"])
        log_action(action="status_change", instance=locked, user=user,
                   changes={"from": old_status, "to": locked.status})
    document.status = locked.status
    return document


def soft_delete_document(document, user=None):
    with transaction.atomic():
        locked = _lock(document)
        if locked.deleted_at is not None:
            raise NotFoundError(f"{locked} has already been deleted")
        locked.deleted_at = timezone.now()
        locked.save(update_fields=["deleted_at", "updated_at"])
        log_action(action="delete", instance=locked, user=user)
    document.deleted_at = locked.deleted_at
    return document


def restore_document(document, user=None):
    """Bring a tombstoned document back and bring its status up to date."""
    with transaction.atomic():
        locked = _lock(document)
        if locked.deleted_at is None:
            raise ValidationError(f"{locked} is not deleted")
        locked.deleted_at = None
        locked.status = derive_status(locked)
        locked.save(update_fields=["deleted_at", "status", "updated_at"])
        log_action(action="restore", instance=locked, user=user,
                   changes={"status": locked.status})
    document.deleted_at = None
    document.status = locked.status
    return document


# ----------------------------------------------
# Listing (lazy status rewrite)
# ----------------------------------------------
def list_invoices(company, status=None, customer=None, search=None, show_deleted=False):
    qs = Invoice.objects.for_company(company).select_related("customer")
    qs = qs.deleted() if show_deleted else qs.alive()
    if customer is not None:
        qs = qs.filter(customer=customer)
    if search:
        qs = qs.filter(
            Q(invoice_number__icontains=search) | Q(customer__name__icontains=search)
        )
    qs = qs.order_by("-invoice_date", "-id")

    invoices = list(qs) if show_deleted else refresh_statuses(qs)
    # filter after the refresh so stale rows land in the right bucket
    if status:
        invoices = [inv for inv in invoices if inv.status == status]
    return invoices


def list_vendor_bills(company, status=None, vendor=None, search=None, show_deleted=False):
    qs = VendorBill.objects.for_company(company).select_related("vendor")
    qs = qs.deleted() if show_deleted else qs.alive()
    if vendor is not None:
        qs = qs.filter(vendor=vendor)
    if search:
        qs = qs.filter(
            Q(bill_number__icontains=search) | Q(vendor__name__icontains=search)
        )
    qs = qs.order_by("-bill_date", "-id")

    bills = list(qs) if show_deleted else refresh_statuses(qs)
    if status:
        bills = [bill for bill in bills if bill.status == status]
    return bills


def get_document(model, company, pk):
    """Tenant-scoped fetch for detail views; refreshes status on read."""
    try:
        document = model.objects.for_company(company).alive().get(pk=pk)
    except model.DoesNotExist:
        raise NotFoundError(f"{model.__name__} {pk} not found")
    refresh_status(document)
    return document


# ----------------------------------------------
# Compliance (TDS / GST filing)
# ----------------------------------------------
INVOICE_COMPLIANCE_FIELDS = (
    "tds_applicable", "tds_rate", "tds_amount",
    "tds_certificate_status", "tds_certificate_received_date",
    "next_follow_up_date", "follow_up_notes",
)
BILL_COMPLIANCE_FIELDS = (
    "tds_applicable", "tds_rate", "tds_amount",
    "gst_filed", "gstr2b_reflected", "itc_eligible",
    "portal_check_date", "compliance_notes",
)
TDS_CERTIFICATE_STATUSES = [value for value, _ in TDS_CERTIFICATE_STATUS_CHOICES]


def _update_compliance(document, allowed, fields, user=None):
    unknown = set(fields) - set(allowed)
    if unknown:
        raise ValidationError(f"Unknown compliance fields: {', '.join(sorted(unknown))}")

    with transaction.atomic():
        locked = _lock(document)
        if locked.deleted_at is not None:
            raise NotFoundError(f"{locked} has been deleted")

        if fields.get("tds_rate") is not None:
            rate = to_decimal(fields["tds_rate"], "tds_rate")
            if rate < 0 or rate > HUNDRED:
                raise ValidationError("TDS rate must be between 0 and 100")
            fields["tds_rate"] = rate
            if fields.get("tds_amount") is None:
                fields["tds_amount"] = round2(locked.taxable_amount * rate / HUNDRED)
        if fields.get("tds_amount") is not None:
            fields["tds_amount"] = round2(to_decimal(fields["tds_amount"], "tds_amount"))
            if fields["tds_amount"] < 0:
                raise ValidationError("TDS amount must not be negative")
        elif "tds_amount" in fields:
            fields["tds_amount"] = ZERO

        certificate = fields.get("tds_certificate_status")
        if certificate is not None and certificate not in TDS_CERTIFICATE_STATUSES:
            raise ValidationError(f"Unknown TDS certificate status {certificate!r}")

        for name, value in fields.items():
            setattr(locked, name, value)
        locked.save(update_fields=list(fields) + ["updated_at"])
        log_action(action="compliance_update", instance=locked, user=user,
                   changes={k: str(v) for k, v in fields.items()})

    for name in fields:
        setattr(document, name, getattr(locked, name))
    return document


def update_invoice_compliance(invoice, user=None, **fields):
    return _update_compliance(invoice, INVOICE_COMPLIANCE_FIELDS, fields, user)


def update_bill_compliance(bill, user=None, **fields):
    return _update_compliance(bill, BILL_COMPLIANCE_FIELDS, fields, user)
