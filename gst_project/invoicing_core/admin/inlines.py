from django.contrib import admin

from invoicing_core.models import InvoiceLine, Payment, VendorBillLine

# ---------- Inline admin classes ----------
# Line amounts come from the tax calculator, so lines are shown read-only;
# documents are created through the service layer.

LINE_FIELDS = (
    "sort_order",
    "description",
    "hsn_sac_code",
    "quantity",
    "unit",
    "rate",
    "gst_rate",
    "discount_type",
    "discount_value",
    "taxable_amount",
    "cgst_amount",
    "sgst_amount",
    "igst_amount",
    "line_total",
)


class ReadOnlyInline(admin.TabularInline):
    extra = 0
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False


class InvoiceLineInline(ReadOnlyInline):
    """Show InvoiceLine rows on the Invoice page"""
    model = InvoiceLine
    fields = LINE_FIELDS
    readonly_fields = LINE_FIELDS
    ordering = ("sort_order", "id")


class VendorBillLineInline(ReadOnlyInline):
    model = VendorBillLine
    fields = LINE_FIELDS
    readonly_fields = LINE_FIELDS
    ordering = ("sort_order", "id")


class InvoicePaymentInline(ReadOnlyInline):
    model = Payment
    fk_name = "invoice"
    fields = ("payment_date", "amount", "payment_mode", "reference_number", "deleted_at")
    readonly_fields = fields


class BillPaymentInline(ReadOnlyInline):
    model = Payment
    fk_name = "vendor_bill"
    fields = ("payment_date", "amount", "payment_mode", "reference_number", "deleted_at")
    readonly_fields = fields
