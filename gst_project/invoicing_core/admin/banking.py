from django.contrib import admin

from invoicing_core.models import BankTransaction, Payment
from .actions import ignore_bank_transactions, reverse_payments, unignore_bank_transactions
from .mixins import TenantAdminMixin


# Register `BankTransaction` model
@admin.register(BankTransaction)
class BankTransactionAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = (
        "id", "company", "txn_date", "description", "debit", "credit", "status", "matched_payment")
    list_filter = ("company", "status", "txn_date", "bank_account_label")
    search_fields = ("description", "narration", "reference_number")
    actions = [ignore_bank_transactions, unignore_bank_transactions]
    # imported rows are immutable; only status moves, via actions
    readonly_fields = (
        "txn_date", "description", "narration", "reference_number", "debit", "credit",
        "balance", "status", "matched_payment", "import_hash",
    )

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("company", "matched_payment")

    def has_add_permission(self, request):
        return False


# Register `Payment` model
@admin.register(Payment)
class PaymentAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = (
        "id", "company", "direction", "payment_date", "amount", "payment_mode",
        "invoice", "vendor_bill", "deleted_at",
    )
    list_filter = ("company", "direction", "payment_mode", "payment_date")
    search_fields = ("reference_number", "invoice__invoice_number", "vendor_bill__bill_number")
    actions = [reverse_payments]
    readonly_fields = ("direction", "amount", "invoice", "vendor_bill", "customer", "vendor", "deleted_at")

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("company", "invoice", "vendor_bill", "customer", "vendor")

    def has_add_permission(self, request):
        # payments move balances; they go through record_payment()
        return False

    def has_delete_permission(self, request, obj=None):
        return False
