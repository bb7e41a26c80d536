from django.db import models
from ..managers import TenantManager
from .customer import Customer
from .document import GSTDocument, GSTLine

INV_STATUS_CHOICES = [
    ("draft", "Draft"),
    ("sent", "Sent"),
    ("partially_paid", "Partially Paid"),
    ("paid", "Paid"),
    ("overdue", "Overdue"),
    ("disputed", "Disputed"),
    ("on_hold", "On Hold"),
    ("cancelled", "Cancelled"),
]

TDS_CERTIFICATE_STATUS_CHOICES = [
    ("not_applicable", "Not Applicable"),
    ("pending", "Pending"),
    ("requested", "Requested"),
    ("received", "Received"),
]


class Invoice(GSTDocument):  # Represents a customer (sales) invoice
    kind = "sales"
    open_status = "sent"
    """ Workflow:
        draft = not yet issued, never auto-recomputed.
        sent = issued, nothing paid, not yet due.
        partially_paid / overdue / paid = derived from balance + due date.
        disputed / on_hold = manual holds.
        cancelled = void, never auto-recomputed. """
    frozen_statuses = ("draft", "cancelled")
    unpayable_statuses = ("draft", "cancelled")
    hold_statuses = ("disputed", "on_hold")
    # Manual transitions only; payment-driven states come from the status deriver
    allowed_transitions = {
        "draft": ["sent", "cancelled"],
        "sent": ["disputed", "on_hold", "cancelled"],
        "overdue": ["disputed", "on_hold", "cancelled"],
        "partially_paid": ["disputed", "on_hold"],
        "disputed": ["sent", "cancelled"],
        "on_hold": ["sent", "cancelled"],
        "paid": [],
        "cancelled": [],
    }

    # prevent deleting customer who has an invoice
    customer = models.ForeignKey(
        Customer, on_delete=models.PROTECT, related_name="invoices")

    # human-readable (e.g. "TES/2024-25/001")
    invoice_number = models.CharField(max_length=64)
    invoice_date = models.DateField()  # issue date

    status = models.CharField(
        max_length=20, choices=INV_STATUS_CHOICES, default="draft"
    )

    terms = models.TextField(blank=True)

    # Bank details snapshot printed on the invoice
    bank_name = models.CharField(max_length=120, blank=True)
    bank_account_no = models.CharField(max_length=40, blank=True)
    bank_ifsc = models.CharField(max_length=11, blank=True)
    bank_upi_id = models.CharField(max_length=80, blank=True)

    tds_certificate_status = models.CharField(
        max_length=20,
        choices=TDS_CERTIFICATE_STATUS_CHOICES,
        default="not_applicable",
    )
    tds_certificate_received_date = models.DateField(null=True, blank=True)

    # Collections follow-up
    next_follow_up_date = models.DateField(null=True, blank=True)
    follow_up_notes = models.TextField(blank=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        indexes = [
            models.Index(fields=["company", "status"], name="invoice_company_status_idx"),
            models.Index(fields=["company", "customer"], name="invoice_company_customer_idx"),
            models.Index(fields=["company", "due_date"], name="invoice_company_due_idx"),
        ]

        constraints = [
            # Within one company, each invoice number must be unique
            # Across companies, duplicates are allowed
            models.UniqueConstraint(
                fields=["company", "invoice_number"],
                name="uq_invoice_company_number"
            ),
            models.CheckConstraint(
                condition=models.Q(amount_paid__gte=0) & models.Q(balance_due__gte=0),
                name="invoice_non_negative_balance",
            ),
        ]

    def __str__(self):
        return f"Inv {self.invoice_number or self.pk}"

    @property
    def document_number(self):
        return self.invoice_number

    @property
    def document_date(self):
        return self.invoice_date

    @property
    def party(self):
        return self.customer


class InvoiceLine(GSTLine):
    # Each line describes a product/service sold on the invoice
    invoice = models.ForeignKey(
        Invoice, on_delete=models.CASCADE, related_name="lines")

    objects = TenantManager()

    class Meta:
        ordering = ["sort_order", "id"]
        indexes = [
            models.Index(fields=["company", "invoice"], name="invoiceline_company_inv_idx"),
        ]

        # Ensure quantity & rate are never negative
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=0) & models.Q(rate__gte=0),
                name="invl_non_negative_amounts",
            ),
        ]

    def __str__(self):
        return f"Invoice: {self.invoice.invoice_number} - {self.description} - Total: {self.line_total}"
