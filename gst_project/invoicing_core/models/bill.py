from django.db import models
from ..managers import TenantManager
from .document import GSTDocument, GSTLine
from .vendor import Vendor

BILL_STATUS_CHOICES = [
    ("pending", "Pending"),
    ("partially_paid", "Partially Paid"),
    ("paid", "Paid"),
    ("overdue", "Overdue"),
    ("cancelled", "Cancelled"),
]

# ---------- Vendor bills / lines ----------


class VendorBill(GSTDocument):  # Purchase document (payables)
    kind = "purchase"
    open_status = "pending"
    frozen_statuses = ("cancelled",)
    unpayable_statuses = ("cancelled",)
    allowed_transitions = {
        "pending": ["cancelled"],
        "overdue": ["cancelled"],
        "partially_paid": [],
        "paid": [],
        "cancelled": [],
    }

    # prevent deleting vendor who has a bill
    vendor = models.ForeignKey(
        Vendor, on_delete=models.PROTECT, related_name="bills")

    # Vendor's own invoice number (e.g. "INV-4567")
    bill_number = models.CharField(max_length=64)
    bill_date = models.DateField()

    status = models.CharField(
        max_length=20, choices=BILL_STATUS_CHOICES, default="pending"
    )

    # Opaque reference into the attachment store
    attachment_id = models.CharField(max_length=100, blank=True)

    # GST compliance (GSTR-2B / input tax credit tracking)
    gst_filed = models.BooleanField(default=False)
    gstr2b_reflected = models.BooleanField(default=False)
    itc_eligible = models.BooleanField(default=True)
    portal_check_date = models.DateField(null=True, blank=True)
    compliance_notes = models.TextField(blank=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        indexes = [
            models.Index(fields=["company", "status"], name="bill_company_status_idx"),
            models.Index(fields=["company", "vendor"], name="bill_company_vendor_idx"),
        ]

        constraints = [
            # Within one company, each bill number must be unique
            models.UniqueConstraint(
                fields=["company", "bill_number"],
                name="uq_bill_company_number"
            ),
            models.CheckConstraint(
                condition=models.Q(amount_paid__gte=0) & models.Q(balance_due__gte=0),
                name="bill_non_negative_balance",
            ),
        ]

    def __str__(self):
        return f"Bill: {self.bill_number or self.pk}"

    @property
    def document_number(self):
        return self.bill_number

    @property
    def document_date(self):
        return self.bill_date

    @property
    def party(self):
        return self.vendor


class VendorBillLine(GSTLine):
    bill = models.ForeignKey(
        VendorBill, on_delete=models.CASCADE, related_name="lines")

    objects = TenantManager()

    class Meta:
        ordering = ["sort_order", "id"]
        indexes = [
            models.Index(fields=["company", "bill"], name="billline_company_bill_idx"),
        ]

        # Ensure quantity & rate are never negative
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=0) & models.Q(rate__gte=0),
                name="bl_non_negative_amounts",
            ),
        ]

    def __str__(self):
        return f"Bill: {self.bill.bill_number} - {self.description} - Total: {self.line_total}"
