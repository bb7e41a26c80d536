from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from ..managers import TenantManager
from .bill import VendorBill
from .customer import Customer
from .entitymembership import Company
from .invoice import Invoice
from .vendor import Vendor

PAYMENT_MODES = [
    ("bank_transfer", "Bank Transfer"),
    ("upi", "UPI"),
    ("cash", "Cash"),
    ("cheque", "Cheque"),
]

PAYMENT_DIRECTIONS = [
    ("received", "Received"),  # from a customer, against an invoice
    ("made", "Made"),          # to a vendor, against a bill
]


class Payment(models.Model):
    """Money moved on a date. Linked to at most one document."""
    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    direction = models.CharField(max_length=10, choices=PAYMENT_DIRECTIONS)

    invoice = models.ForeignKey(
        Invoice, null=True, blank=True,
        on_delete=models.PROTECT, related_name="payments")
    vendor_bill = models.ForeignKey(
        VendorBill, null=True, blank=True,
        on_delete=models.PROTECT, related_name="payments")
    customer = models.ForeignKey(
        Customer, null=True, blank=True,
        on_delete=models.PROTECT, related_name="payments")
    vendor = models.ForeignKey(
        Vendor, null=True, blank=True,
        on_delete=models.PROTECT, related_name="payments")

    payment_date = models.DateField()
    # always positive; direction says which way the money moved
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    payment_mode = models.CharField(
        max_length=20, choices=PAYMENT_MODES, default="bank_transfer")
    reference_number = models.CharField(max_length=100, blank=True)
    notes = models.TextField(blank=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )
    deleted_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        indexes = [
            models.Index(fields=["company", "payment_date"], name="payment_company_date_idx"),
            models.Index(fields=["company", "customer"], name="payment_company_customer_idx"),
            models.Index(fields=["company", "vendor"], name="payment_company_vendor_idx"),
        ]

        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=0),
                name="payment_amount_positive",
            ),
            # A payment settles an invoice or a bill, never both
            models.CheckConstraint(
                condition=models.Q(invoice__isnull=True) | models.Q(vendor_bill__isnull=True),
                name="payment_single_document",
            ),
        ]

    def __str__(self):
        return f"Payment {self.direction} {self.amount} on {self.payment_date}"

    @property
    def document(self):
        return self.invoice or self.vendor_bill

    @property
    def party(self):
        return self.customer or self.vendor

    def clean(self):
        if self.amount is not None and self.amount <= 0:
            raise ValidationError("Payment amount must be positive")
        if self.invoice_id and self.vendor_bill_id:
            raise ValidationError("Payment can settle an invoice or a bill, not both")
        if self.direction == "received" and (self.vendor_bill_id or self.vendor_id):
            raise ValidationError("Received payments belong to customers and invoices")
        if self.direction == "made" and (self.invoice_id or self.customer_id):
            raise ValidationError("Payments made belong to vendors and bills")

        # Prevent cross-company contamination
        for related in (self.invoice, self.vendor_bill, self.customer, self.vendor):
            if related is not None and related.company_id != self.company_id:
                raise ValidationError(
                    f"{related} must belong to the same company.")

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)
