from django.urls import path

from . import views

app_name = "invoicing_core"

urlpatterns = [
    path("invoices/", views.invoice_list_view, name="invoice-list"),
    path("invoices/create/", views.invoice_create_view, name="invoice-create"),
    path("invoices/<int:invoice_id>/", views.invoice_detail_view, name="invoice-detail"),
    path("invoices/<int:invoice_id>/status/", views.invoice_status_view, name="invoice-status"),
    path("invoices/<int:invoice_id>/payments/", views.invoice_payment_view, name="invoice-payment"),
    path("bills/", views.bill_list_view, name="bill-list"),
    path("bills/create/", views.bill_create_view, name="bill-create"),
    path("bills/<int:bill_id>/payments/", views.bill_payment_view, name="bill-payment"),
    path("payments/<int:payment_id>/delete/", views.payment_delete_view, name="payment-delete"),
    path("bank/import/", views.bank_import_view, name="bank-import"),
    path("bank/suggestions/", views.bank_suggestions_view, name="bank-suggestions"),
    path("bank/<int:txn_id>/match/", views.bank_match_view, name="bank-match"),
    path("bank/<int:txn_id>/ignore/", views.bank_ignore_view, name="bank-ignore"),
    path("bank/<int:txn_id>/unignore/", views.bank_unignore_view, name="bank-unignore"),
    path("customers/<int:customer_id>/ledger/", views.customer_ledger_view, name="customer-ledger"),
    path("vendors/<int:vendor_id>/ledger/", views.vendor_ledger_view, name="vendor-ledger"),
    path("reports/<slug:name>/", views.report_view, name="report"),
]
