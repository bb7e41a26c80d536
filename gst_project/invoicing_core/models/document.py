from decimal import Decimal
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from ..exceptions import ConsistencyError
from .entitymembership import Company

ZERO = Decimal("0.00")

DISCOUNT_TYPE_CHOICES = [
    ("percentage", "Percentage"),
    ("fixed", "Fixed"),
]


def money_field(**kwargs):
    # Every stored amount is in rupees with paise (2 dp)
    kwargs.setdefault("default", ZERO)
    return models.DecimalField(max_digits=14, decimal_places=2, **kwargs)


# ---------- Shared document header ----------
# Invoice (sales) and VendorBill (purchase) carry the same money columns
class GSTDocument(models.Model):
    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    due_date = models.DateField()
    # State code deciding CGST+SGST vs IGST
    place_of_supply = models.CharField(max_length=2, blank=True)

    # Derived money fields (written by services, never typed in)
    subtotal = money_field()          # sum of qty * rate
    discount_amount = money_field()
    taxable_amount = money_field()
    cgst_amount = money_field()
    sgst_amount = money_field()
    igst_amount = money_field()
    total_amount = money_field()      # taxable + cgst + sgst + igst
    amount_paid = money_field()
    balance_due = money_field()       # total - paid, never negative

    tds_applicable = models.BooleanField(default=False)
    tds_rate = models.DecimalField(
        max_digits=5, decimal_places=2, null=True, blank=True)
    tds_amount = money_field()

    notes = models.TextField(blank=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )
    # Tombstone: documents with payment history are never hard-deleted
    deleted_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    # Subclasses fill these in
    kind = None
    open_status = None
    frozen_statuses = ()
    unpayable_statuses = ()
    allowed_transitions = {}

    class Meta:
        abstract = True

    @property
    def is_deleted(self):
        return self.deleted_at is not None

    def check_invariants(self):
        """Raise ConsistencyError when stored money fields disagree."""
        tax_total = self.cgst_amount + self.sgst_amount + self.igst_amount
        if self.total_amount != self.taxable_amount + tax_total:
            raise ConsistencyError(
                f"{self}: total {self.total_amount} != taxable + tax "
                f"{self.taxable_amount + tax_total}"
            )
        if self.igst_amount > 0 and (self.cgst_amount > 0 or self.sgst_amount > 0):
            raise ConsistencyError(f"{self}: both IGST and CGST/SGST are set")
        if self.amount_paid < 0 or self.balance_due < 0:
            raise ConsistencyError(f"{self}: negative paid or balance")
        if self.amount_paid > self.total_amount:
            raise ConsistencyError(f"{self}: paid exceeds total")
        if self.balance_due != self.total_amount - self.amount_paid:
            raise ConsistencyError(
                f"{self}: balance {self.balance_due} != total - paid "
                f"{self.total_amount - self.amount_paid}"
            )

    def transition_to(self, new_status):
        # Look up what states are allowed from current self.status
        if new_status not in self.allowed_transitions.get(self.status, []):
            # If requested new_status isn't allowed → block it
            raise ValidationError(
                f"Cannot go from {self.status} to {new_status}")

        if new_status == "cancelled" and self.amount_paid > 0:
            raise ValidationError(
                "Cannot cancel a document with payments; delete the payments first")

        # If valid, update self.status and persist
        self.status = new_status
        self.save(update_fields=["status", "updated_at"])
        return self


# ---------- Shared line item ----------
class GSTLine(models.Model):
    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    sort_order = models.PositiveIntegerField(default=0)
    description = models.TextField()
    hsn_sac_code = models.CharField(max_length=8, blank=True)

    quantity = models.DecimalField(
        max_digits=14, decimal_places=4, default=Decimal("1")
    )
    unit = models.CharField(max_length=20, default="nos")
    rate = models.DecimalField(max_digits=14, decimal_places=2, default=ZERO)
    gst_rate = models.DecimalField(max_digits=5, decimal_places=2, default=ZERO)

    discount_type = models.CharField(
        max_length=10, choices=DISCOUNT_TYPE_CHOICES, null=True, blank=True
    )
    discount_value = models.DecimalField(
        max_digits=14, decimal_places=2, null=True, blank=True
    )

    # Derived by the tax calculator
    discount_amount = money_field()
    taxable_amount = money_field()
    cgst_amount = money_field()
    sgst_amount = money_field()
    igst_amount = money_field()
    line_total = money_field()

    class Meta:
        abstract = True
