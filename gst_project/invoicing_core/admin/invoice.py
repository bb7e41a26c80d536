from django.contrib import admin

from invoicing_core.models import Customer, Invoice
from .actions import (cancel_documents, mark_inv_as_sent, refresh_document_status,
                      restore_documents, soft_delete_documents)
from .inlines import InvoiceLineInline, InvoicePaymentInline
from .mixins import TenantAdminMixin

MONEY_FIELDS = (
    "subtotal",
    "discount_amount",
    "taxable_amount",
    "cgst_amount",
    "sgst_amount",
    "igst_amount",
    "total_amount",
    "amount_paid",
    "balance_due",
)


# Register `Customer` model
@admin.register(Customer)
class CustomerAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = ("id", "company", "name", "gstin", "state_code", "is_active", "deleted_at")
    list_filter = ("company", "is_active", "state_code")
    search_fields = ("name", "gstin", "contact_email")


# Register `Invoice` model
@admin.register(Invoice)
class InvoiceAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = (
        "id",
        "company",
        "invoice_number",
        "customer",
        "invoice_date",
        "due_date",
        "status",
        "total_amount",
        "balance_due",
    )
    list_filter = ("company", "status", "invoice_date", "tds_applicable")
    search_fields = ("invoice_number", "customer__name")
    actions = [
        mark_inv_as_sent,
        cancel_documents,
        refresh_document_status,
        soft_delete_documents,
        restore_documents,
    ]
    inlines = [InvoiceLineInline, InvoicePaymentInline]
    # number, money and status are owned by the service layer
    readonly_fields = ("invoice_number", "status", "deleted_at") + MONEY_FIELDS

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        # Use a SQL join so it fetches company & customer
        # in the same query as Invoice
        return qs.select_related("company", "customer")

    def has_add_permission(self, request):
        # invoices are numbered and taxed by create_invoice()
        return False

    def has_delete_permission(self, request, obj=None):
        # documents with payments are soft-deleted via the action instead
        if obj is not None and obj.payments.exists():
            return False
        return super().has_delete_permission(request, obj)
