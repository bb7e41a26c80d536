from decimal import Decimal
from django.core.exceptions import ValidationError
from django.db import models
from ..managers import TenantManager
from .entitymembership import Company
from .payment import Payment

BT_STATUS_CHOICES = [
    ("unmatched", "Unmatched"),
    ("matched", "Matched"),
    ("ignored", "Ignored"),
]


# ---------- Banking ----------


class BankTransaction(models.Model):
    """One imported bank statement line (an inflow or an outflow)."""
    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    txn_date = models.DateField()  # when it cleared
    description = models.TextField()
    narration = models.TextField(blank=True)
    reference_number = models.CharField(max_length=100, blank=True)
    debit = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00"))
    credit = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00"))
    # running balance as printed on the statement
    balance = models.DecimalField(
        max_digits=14, decimal_places=2, null=True, blank=True)
    bank_account_label = models.CharField(max_length=100, blank=True)

    status = models.CharField(
        max_length=20, choices=BT_STATUS_CHOICES, default="unmatched"
    )
    # Payment created when the row was reconciled
    matched_payment = models.ForeignKey(
        Payment,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="bank_transactions",
    )
    # sha256 of date|description|amount, makes re-imports idempotent
    import_hash = models.CharField(max_length=64)
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        indexes = [
            models.Index(fields=["company", "status"], name="banktxn_company_status_idx"),
            models.Index(fields=["company", "txn_date"], name="banktxn_company_date_idx"),
        ]

        constraints = [
            # Same statement line can be imported only once per company
            models.UniqueConstraint(
                fields=["company", "import_hash"], name="uq_bt_company_import_hash"
            ),
            models.CheckConstraint(
                condition=models.Q(debit__gte=0) & models.Q(credit__gte=0),
                name="bt_non_negative_amounts",
            ),
        ]

    def __str__(self):
        amount = self.credit if self.credit > 0 else -self.debit
        return f"{self.txn_date} - {self.description[:40]} - {amount} ({self.status})"

    @property
    def amount(self):
        """Whichever of credit/debit is set (credit wins)."""
        return self.credit if self.credit > 0 else self.debit

    def clean(self):
        if self.debit < 0 or self.credit < 0:
            raise ValidationError("Debit and credit must be non-negative")
        if self.debit > 0 and self.credit > 0:
            raise ValidationError("A statement line is either a debit or a credit")
        if self.matched_payment_id and self.matched_payment.company_id != self.company_id:
            raise ValidationError("Matched payment must belong to the same company.")

    def transition_to(self, new_status):
        # Current state vs. allowed next states
        allowed = {
            "unmatched": ["matched", "ignored"],
            "ignored": ["unmatched"],
            "matched": ["unmatched"],  # only when the payment is reversed
        }
        if new_status not in allowed.get(self.status, []):
            raise ValidationError(
                f"Cannot go from {self.status} to {new_status}")

        self.status = new_status
        if new_status == "unmatched":
            self.matched_payment = None
        self.save(update_fields=["status", "matched_payment"])
        return self
