from decimal import Decimal
from django.core.exceptions import ValidationError
from django.db import models

from ..managers import TenantManager
from .entitymembership import Company


# ---------- Customer ----------
# Represents client who receives invoices (receivables side)
class Customer(models.Model):
    party_kind = "customer"

    # Multi-tenant: every customer belongs to a single company.
    company = models.ForeignKey(Company, on_delete=models.CASCADE)

    # The customer's legal or trade name
    name = models.CharField(max_length=200)

    gstin = models.CharField(max_length=15, blank=True)
    pan = models.CharField(max_length=10, blank=True)
    # Billing state; used as place of supply when the invoice gives none
    state_code = models.CharField(max_length=2, blank=True)
    state_name = models.CharField(max_length=100, blank=True)

    contact_name = models.CharField(max_length=200, blank=True)
    contact_email = models.EmailField(null=True, blank=True)
    contact_phone = models.CharField(max_length=32, blank=True)

    # Standard credit terms
    payment_terms_days = models.PositiveIntegerField(null=True, blank=True)
    """ Example: If terms = 30 → invoice due 30 days after issue.
        Empty → company default. """

    # What the customer owed before the first invoice in the system
    opening_balance = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )

    is_active = models.BooleanField(default=True)
    deleted_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        indexes = [
            models.Index(fields=["company", "name"], name="customer_company_name_idx"),
        ]

        # Enforce uniqueness per tenant
        constraints = [
            models.UniqueConstraint(
                fields=["company", "name"], name="uq_company_customer_name"
            ),
        ]

    # Display customer name in admin/UI
    def __str__(self):
        return self.name

    def clean(self):
        if self.gstin and len(self.gstin) != 15:
            raise ValidationError("GSTIN must be 15 characters")
        return super().clean()

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)
