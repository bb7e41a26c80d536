from .actions import (cancel_documents, ignore_bank_transactions, mark_inv_as_sent,
                      refresh_document_status, restore_documents, reverse_payments,
                      soft_delete_documents, unignore_bank_transactions)
from .auditlog import AuditLogAdmin
from .banking import BankTransactionAdmin, PaymentAdmin
from .bill import VendorAdmin, VendorBillAdmin
from .forms import UserAdminChangeForm, UserAdminCreationForm
from .inlines import (BillPaymentInline, InvoiceLineInline, InvoicePaymentInline,
                      VendorBillLineInline)
from .invoice import CustomerAdmin, InvoiceAdmin
from .membership import CompanyAdmin, EntityMembershipAdmin, UserAdmin
from .mixins import TenantAdminMixin
