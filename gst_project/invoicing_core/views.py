import json
import logging
from functools import wraps

from django.core.exceptions import ObjectDoesNotExist, ValidationError
from django.http import JsonResponse
from django.utils.dateparse import parse_date
from django.views.decorators.http import require_GET, require_POST

from .exceptions import ConflictError, NotFoundError, RateLimitExceeded
from .models import BankTransaction, Customer, Invoice, Payment, Vendor, VendorBill
from .ratelimit import bank_import_limiter
from .services import banking, documents, ledger, reports
from .services.payment import delete_payment, record_payment

logger = logging.getLogger(__name__)


# ----------------------------
# Plumbing
# ----------------------------
def _error(message, status):
    return JsonResponse({"ok": False, "error": message}, status=status)


def _messages(exc):
    return "; ".join(exc.messages) if hasattr(exc, "messages") else str(exc)


def company_view(view):
    """Require a tenant on the request and map service errors to HTTP codes."""
    @wraps(view)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return _error("Authentication required", 401)
        if getattr(request, "company", None) is None:
            return _error("No active company", 403)
        try:
            return view(request, *args, **kwargs)
        except ValidationError as e:
            return _error(_messages(e), 400)
        except ObjectDoesNotExist as e:  # NotFoundError included
            return _error(str(e) or "Not found", 404)
        except ConflictError as e:
            return _error(str(e), 409)
        except RateLimitExceeded as e:
            return _error(str(e), 429)
    return wrapper


def _body(request):
    if not request.body:
        return {}
    try:
        data = json.loads(request.body)
    except ValueError:
        raise ValidationError("Request body must be JSON")
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _date(value, field, required=True):
    if value in (None, ""):
        if required:
            raise ValidationError(f"{field} is required")
        return None
    parsed = parse_date(str(value))
    if parsed is None:
        raise ValidationError(f"{field} must be a YYYY-MM-DD date")
    return parsed


def _get(model, company, pk):
    # tenant scoping: another company's id is indistinguishable from a missing one
    try:
        return model.objects.for_company(company).get(pk=pk)
    except (model.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(f"{model.__name__} {pk} not found")


def _flag(request, name):
    return request.GET.get(name, "").lower() in ("1", "true", "yes")


def invoice_to_dict(inv):
    return {
        "id": inv.pk,
        "invoice_number": inv.invoice_number,
        "customer": inv.customer.name,
        "invoice_date": inv.invoice_date,
        "due_date": inv.due_date,
        "status": inv.status,
        "taxable_amount": inv.taxable_amount,
        "cgst_amount": inv.cgst_amount,
        "sgst_amount": inv.sgst_amount,
        "igst_amount": inv.igst_amount,
        "total_amount": inv.total_amount,
        "amount_paid": inv.amount_paid,
        "balance_due": inv.balance_due,
        "deleted": inv.is_deleted,
    }


def bill_to_dict(bill):
    return {
        "id": bill.pk,
        "bill_number": bill.bill_number,
        "vendor": bill.vendor.name,
        "bill_date": bill.bill_date,
        "due_date": bill.due_date,
        "status": bill.status,
        "total_amount": bill.total_amount,
        "amount_paid": bill.amount_paid,
        "balance_due": bill.balance_due,
        "attachment_id": bill.attachment_id,
        "deleted": bill.is_deleted,
    }


def txn_to_dict(txn):
    return {
        "id": txn.pk,
        "txn_date": txn.txn_date,
        "description": txn.description,
        "reference_number": txn.reference_number,
        "debit": txn.debit,
        "credit": txn.credit,
        "status": txn.status,
        "matched_payment": txn.matched_payment_id,
    }


# ----------------------------
# Invoices
# ----------------------------
@require_GET
@company_view
def invoice_list_view(request):
    customer = None
    if request.GET.get("customer"):
        customer = _get(Customer, request.company, request.GET["customer"])
    invoices = documents.list_invoices(
        request.company,
        status=request.GET.get("status") or None,
        customer=customer,
        search=request.GET.get("search") or None,
        show_deleted=_flag(request, "show_deleted"),
    )
    return JsonResponse({"ok": True, "invoices": [invoice_to_dict(i) for i in invoices]})


@require_POST
@company_view
def invoice_create_view(request):
    data = _body(request)
    customer = _get(Customer, request.company, data.get("customer_id"))
    invoice = documents.create_invoice(
        request.company,
        customer,
        data.get("lines") or [],
        _date(data.get("invoice_date"), "invoice_date"),
        due_date=_date(data.get("due_date"), "due_date", required=False),
        place_of_supply=data.get("place_of_supply"),
        status=data.get("status") or "draft",
        notes=data.get("notes"),
        terms=data.get("terms"),
        user=request.user,
    )
    return JsonResponse({"ok": True, "invoice": invoice_to_dict(invoice)}, status=201)


@require_GET
@company_view
def invoice_detail_view(request, invoice_id):
    invoice = documents.get_document(Invoice, request.company, invoice_id)
    payload = invoice_to_dict(invoice)
    payload["lines"] = list(invoice.lines.values(
        "description", "hsn_sac_code", "quantity", "unit", "rate", "gst_rate",
        "discount_amount", "taxable_amount", "cgst_amount", "sgst_amount",
        "igst_amount", "line_total",
    ))
    payload["payments"] = list(
        invoice.payments.filter(deleted_at__isnull=True)
        .order_by("-payment_date")
        .values("id", "payment_date", "amount", "payment_mode", "reference_number")
    )
    return JsonResponse({"ok": True, "invoice": payload})


@require_POST
@company_view
def invoice_status_view(request, invoice_id):
    invoice = _get(Invoice, request.company, invoice_id)
    documents.change_status(invoice, _body(request).get("status"), user=request.user)
    return JsonResponse({"ok": True, "status": invoice.status})


@require_POST
@company_view
def invoice_payment_view(request, invoice_id):
    invoice = _get(Invoice, request.company, invoice_id)
    data = _body(request)
    payment = record_payment(
        invoice,
        data.get("amount"),
        _date(data.get("payment_date"), "payment_date"),
        payment_mode=data.get("payment_mode") or "bank_transfer",
        reference_number=data.get("reference_number"),
        notes=data.get("notes"),
        user=request.user,
    )
    return JsonResponse(
        {"ok": True, "payment_id": payment.pk, "invoice": invoice_to_dict(invoice)},
        status=201,
    )


# ----------------------------
# Vendor bills
# ----------------------------
@require_GET
@company_view
def bill_list_view(request):
    vendor = None
    if request.GET.get("vendor"):
        vendor = _get(Vendor, request.company, request.GET["vendor"])
    bills = documents.list_vendor_bills(
        request.company,
        status=request.GET.get("status") or None,
        vendor=vendor,
        search=request.GET.get("search") or None,
        show_deleted=_flag(request, "show_deleted"),
    )
    return JsonResponse({"ok": True, "bills": [bill_to_dict(b) for b in bills]})


@require_POST
@company_view
def bill_create_view(request):
    data = _body(request)
    vendor = _get(Vendor, request.company, data.get("vendor_id"))
    bill = documents.create_vendor_bill(
        request.company,
        vendor,
        data.get("bill_number"),
        data.get("lines") or [],
        _date(data.get("bill_date"), "bill_date"),
        due_date=_date(data.get("due_date"), "due_date", required=False),
        place_of_supply=data.get("place_of_supply"),
        notes=data.get("notes"),
        attachment_id=data.get("attachment_id"),
        user=request.user,
    )
    return JsonResponse({"ok": True, "bill": bill_to_dict(bill)}, status=201)


@require_POST
@company_view
def bill_payment_view(request, bill_id):
    bill = _get(VendorBill, request.company, bill_id)
    data = _body(request)
    payment = record_payment(
        bill,
        data.get("amount"),
        _date(data.get("payment_date"), "payment_date"),
        payment_mode=data.get("payment_mode") or "bank_transfer",
        reference_number=data.get("reference_number"),
        notes=data.get("notes"),
        user=request.user,
    )
    return JsonResponse(
        {"ok": True, "payment_id": payment.pk, "bill": bill_to_dict(bill)}, status=201)


@require_POST
@company_view
def payment_delete_view(request, payment_id):
    payment = _get(Payment, request.company, payment_id)
    delete_payment(payment, user=request.user)
    return JsonResponse({"ok": True})


# ----------------------------
# Banking
# ----------------------------
@require_POST
@company_view
def bank_import_view(request, limiter=None):
    limiter = limiter or bank_import_limiter()
    limiter.check(f"{request.company.pk}:{request.user.pk}")

    if request.content_type == "application/json":
        data = _body(request)
        rows = [
            banking.StatementRow.from_mapping(row, i)
            for i, row in enumerate(data.get("rows") or [], start=1)
        ]
        label = data.get("bank_account_label")
    else:
        rows = banking.parse_statement_csv(request.body.decode("utf-8-sig"))
        label = request.GET.get("bank_account_label")

    result = banking.import_statement_rows(request.company, rows, bank_account_label=label)
    return JsonResponse({"ok": True, **result})


@require_GET
@company_view
def bank_suggestions_view(request):
    suggestions = banking.suggest_matches(request.company)
    return JsonResponse({"ok": True, "suggestions": [
        {
            "transaction": txn_to_dict(s["transaction"]),
            "candidates": [
                {"invoice": invoice_to_dict(c["invoice"]), "score": c["score"]}
                for c in s["candidates"]
            ],
        }
        for s in suggestions
    ]})


@require_POST
@company_view
def bank_match_view(request, txn_id):
    txn = _get(BankTransaction, request.company, txn_id)
    data = _body(request)
    invoice = _get(Invoice, request.company, data.get("invoice_id"))
    payment = banking.match_transaction(
        txn,
        invoice,
        amount=data.get("amount"),
        payment_date=_date(data.get("payment_date"), "payment_date", required=False),
        user=request.user,
    )
    return JsonResponse({"ok": True, "payment_id": payment.pk, "transaction": txn_to_dict(txn)})


@require_POST
@company_view
def bank_ignore_view(request, txn_id):
    txn = _get(BankTransaction, request.company, txn_id)
    banking.ignore_transaction(txn, user=request.user)
    return JsonResponse({"ok": True, "transaction": txn_to_dict(txn)})


@require_POST
@company_view
def bank_unignore_view(request, txn_id):
    txn = _get(BankTransaction, request.company, txn_id)
    banking.unignore_transaction(txn, user=request.user)
    return JsonResponse({"ok": True, "transaction": txn_to_dict(txn)})


# ----------------------------
# Ledgers & reports
# ----------------------------
def _ledger_payload(result):
    return {
        "ok": True,
        "party": result["party"].name,
        "opening_balance": result["opening_balance"],
        "entries": result["entries"],
        "closing_balance": result["closing_balance"],
    }


@require_GET
@company_view
def customer_ledger_view(request, customer_id):
    customer = _get(Customer, request.company, customer_id)
    return JsonResponse(_ledger_payload(ledger.build_customer_ledger(customer)))


@require_GET
@company_view
def vendor_ledger_view(request, vendor_id):
    vendor = _get(Vendor, request.company, vendor_id)
    return JsonResponse(_ledger_payload(ledger.build_vendor_ledger(vendor)))


REPORTS = {
    "aging": lambda company: reports.outstanding_aging(company),
    "tds": reports.tds_register,
    "sales-summary": reports.sales_summary,
    "vendor-gst": reports.vendor_gst_register,
}


@require_GET
@company_view
def report_view(request, name):
    if name not in REPORTS:
        raise NotFoundError(f"Unknown report {name!r}")
    return JsonResponse({"ok": True, "report": name, "data": REPORTS[name](request.company)})
