from django.contrib import admin

from invoicing_core.models import Vendor, VendorBill
from .actions import (cancel_documents, refresh_document_status,
                      restore_documents, soft_delete_documents)
from .inlines import BillPaymentInline, VendorBillLineInline
from .invoice import MONEY_FIELDS
from .mixins import TenantAdminMixin


# Register `Vendor` model
@admin.register(Vendor)
class VendorAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = ("id", "company", "name", "gstin", "state_code", "is_active", "deleted_at")
    list_filter = ("company", "is_active", "state_code")
    search_fields = ("name", "gstin", "contact_email")


# Register `VendorBill` model
@admin.register(VendorBill)
class VendorBillAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = (
        "id",
        "company",
        "bill_number",
        "vendor",
        "bill_date",
        "due_date",
        "status",
        "total_amount",
        "balance_due",
        "gstr2b_reflected",
    )
    list_filter = ("company", "status", "bill_date", "gst_filed", "gstr2b_reflected", "itc_eligible")
    search_fields = ("bill_number", "vendor__name")
    actions = [cancel_documents, refresh_document_status, soft_delete_documents, restore_documents]
    inlines = [VendorBillLineInline, BillPaymentInline]
    readonly_fields = ("status", "deleted_at") + MONEY_FIELDS

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("company", "vendor")

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        if obj is not None and obj.payments.exists():
            return False
        return super().has_delete_permission(request, obj)
