from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from ..managers import UserManager


# ---------- Tenant / Company ----------
class Company(models.Model):

    """Tenant / Organization"""
    name = models.CharField(max_length=200)
    legal_name = models.CharField(max_length=200, blank=True)

    slug = models.SlugField(  # A URL-friendly identifier
        max_length=80, unique=True  # no two companies can have the same slug
    )

    # GST registration
    gstin = models.CharField(max_length=15, blank=True)
    pan = models.CharField(max_length=10, blank=True)
    # 2-digit GST state code ("27" = Maharashtra)
    # Decides intra-state (CGST+SGST) vs inter-state (IGST) supply
    state_code = models.CharField(max_length=2, blank=True)
    state_name = models.CharField(max_length=100, blank=True)

    # Invoice numbering: {invoice_prefix}{financial year}/{serial}
    invoice_prefix = models.CharField(max_length=20, default="INV/")
    # Next serial to hand out. Only moves forward, never reused
    invoice_next_number = models.PositiveIntegerField(default=1)
    # Month the financial year starts in (4 = April, Indian FY)
    financial_year_start = models.PositiveSmallIntegerField(
        default=4,
        validators=[MinValueValidator(1), MaxValueValidator(12)],
    )

    default_payment_terms_days = models.PositiveIntegerField(default=30)
    default_terms = models.TextField(blank=True)

    # Printed on invoices (copied at creation time)
    bank_name = models.CharField(max_length=120, blank=True)
    bank_account_no = models.CharField(max_length=40, blank=True)
    bank_ifsc = models.CharField(max_length=11, blank=True)
    bank_upi_id = models.CharField(max_length=80, blank=True)

    currency_code = models.CharField(max_length=3, default="INR")

    # Link to a user account (creator or admin of company)
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="owned_companies",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name_plural = "companies"
        constraints = [
            models.CheckConstraint(
                condition=models.Q(invoice_next_number__gte=1),
                name="company_invoice_counter_positive",
            ),
        ]

    def __str__(self):
        return self.name


# ---------- Custom User ----------
class User(AbstractUser):
    """
    Keep AUTH_USER_MODEL = "invoicing_core.User" in settings.py
    before the very first migrate
    """
    # Company a user lands in when no other is picked
    default_company = models.ForeignKey(
        "Company",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="default_users",
    )

    phone = models.CharField(max_length=32, blank=True)

    objects = UserManager()

    class Meta:
        indexes = [models.Index(fields=["default_company"], name="user_default_company_idx")]

    def __str__(self):
        return self.get_full_name() or self.username

    def is_member_of(self, company):
        if company is None:
            return False
        return self.memberships.filter(company=company, is_active=True).exists()


# ---------- EntityMembership ----------
class EntityMembership(models.Model):
    """Join model between User and Company, carries the user's role."""

    ROLE_CHOICES = [
        ("admin", "Admin"),        # settings, users, everything
        ("accounts", "Accounts"),  # invoices, payments, reconciliation
        ("staff", "Staff"),        # day-to-day entry
    ]

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="memberships",
    )
    company = models.ForeignKey(
        "Company", on_delete=models.CASCADE, related_name="memberships"
    )
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default="staff")

    # Suspend access without deleting the record
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["user", "company"], name="uq_user_company_membership"
            ),
        ]
        indexes = [
            models.Index(fields=["company", "user"], name="membership_company_user_idx"),
        ]

    def __str__(self):
        return f"{self.user} @ {self.company} ({self.role})"

    def clean(self):
        """
        A user's default_company must be one of their memberships.
        The membership being validated counts.
        """
        default_company_id = getattr(self.user, "default_company_id", None)
        if not default_company_id or default_company_id == self.company_id:
            return
        others = self.user.memberships.all()
        if self.pk:
            others = others.exclude(pk=self.pk)
        if not others.filter(company_id=default_company_id).exists():
            raise ValidationError(
                f"Default company {self.user.default_company} must be a user's membership."
            )

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)
