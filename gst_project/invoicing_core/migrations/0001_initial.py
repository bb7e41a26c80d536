import django.contrib.auth.validators
import django.core.validators
import django.db.models.deletion
import django.utils.timezone
import invoicing_core.managers
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


def money(**kwargs):
    kwargs.setdefault("default", Decimal("0.00"))
    return models.DecimalField(decimal_places=2, max_digits=14, **kwargs)


def document_fields():
    # columns shared by Invoice and VendorBill (GSTDocument)
    return [
        ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
        ("due_date", models.DateField()),
        ("place_of_supply", models.CharField(blank=True, max_length=2)),
        ("subtotal", money()),
        ("discount_amount", money()),
        ("taxable_amount", money()),
        ("cgst_amount", money()),
        ("sgst_amount", money()),
        ("igst_amount", money()),
        ("total_amount", money()),
        ("amount_paid", money()),
        ("balance_due", money()),
        ("tds_applicable", models.BooleanField(default=False)),
        ("tds_rate", models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
        ("tds_amount", money()),
        ("notes", models.TextField(blank=True)),
        ("deleted_at", models.DateTimeField(blank=True, null=True)),
        ("created_at", models.DateTimeField(auto_now_add=True)),
        ("updated_at", models.DateTimeField(auto_now=True)),
        ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="invoicing_core.company")),
        ("created_by", models.ForeignKey(
            blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
            related_name="+", to=settings.AUTH_USER_MODEL)),
    ]


def line_fields():
    # columns shared by InvoiceLine and VendorBillLine (GSTLine)
    return [
        ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
        ("sort_order", models.PositiveIntegerField(default=0)),
        ("description", models.TextField()),
        ("hsn_sac_code", models.CharField(blank=True, max_length=8)),
        ("quantity", models.DecimalField(decimal_places=4, default=Decimal("1"), max_digits=14)),
        ("unit", models.CharField(default="nos", max_length=20)),
        ("rate", money()),
        ("gst_rate", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=5)),
        ("discount_type", models.CharField(
            blank=True, choices=[("percentage", "Percentage"), ("fixed", "Fixed")],
            max_length=10, null=True)),
        ("discount_value", models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True)),
        ("discount_amount", money()),
        ("taxable_amount", money()),
        ("cgst_amount", money()),
        ("sgst_amount", money()),
        ("igst_amount", money()),
        ("line_total", money()),
        ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="invoicing_core.company")),
    ]


def party_fields():
    return [
        ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
        ("name", models.CharField(max_length=200)),
        ("gstin", models.CharField(blank=True, max_length=15)),
        ("pan", models.CharField(blank=True, max_length=10)),
        ("state_code", models.CharField(blank=True, max_length=2)),
        ("state_name", models.CharField(blank=True, max_length=100)),
        ("contact_name", models.CharField(blank=True, max_length=200)),
        ("contact_email", models.EmailField(blank=True, max_length=254, null=True)),
        ("contact_phone", models.CharField(blank=True, max_length=32)),
        ("payment_terms_days", models.PositiveIntegerField(blank=True, null=True)),
        ("opening_balance", money()),
        ("is_active", models.BooleanField(default=True)),
        ("deleted_at", models.DateTimeField(blank=True, null=True)),
        ("created_at", models.DateTimeField(auto_now_add=True)),
        ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="invoicing_core.company")),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("auth", "0012_alter_user_first_name_max_length"),
    ]

    operations = [
        migrations.CreateModel(
            name="Company",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("legal_name", models.CharField(blank=True, max_length=200)),
                ("slug", models.SlugField(max_length=80, unique=True)),
                ("gstin", models.CharField(blank=True, max_length=15)),
                ("pan", models.CharField(blank=True, max_length=10)),
                ("state_code", models.CharField(blank=True, max_length=2)),
                ("state_name", models.CharField(blank=True, max_length=100)),
                ("invoice_prefix", models.CharField(default="INV/", max_length=20)),
                ("invoice_next_number", models.PositiveIntegerField(default=1)),
                ("financial_year_start", models.PositiveSmallIntegerField(
                    default=4,
                    validators=[
                        django.core.validators.MinValueValidator(1),
                        django.core.validators.MaxValueValidator(12),
                    ])),
                ("default_payment_terms_days", models.PositiveIntegerField(default=30)),
                ("default_terms", models.TextField(blank=True)),
                ("bank_name", models.CharField(blank=True, max_length=120)),
                ("bank_account_no", models.CharField(blank=True, max_length=40)),
                ("bank_ifsc", models.CharField(blank=True, max_length=11)),
                ("bank_upi_id", models.CharField(blank=True, max_length=80)),
                ("currency_code", models.CharField(default="INR", max_length=3)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "verbose_name_plural": "companies",
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("invoice_next_number__gte", 1)),
                        name="company_invoice_counter_positive",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="User",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("password", models.CharField(max_length=128, verbose_name="password")),
                ("last_login", models.DateTimeField(blank=True, null=True, verbose_name="last login")),
                ("is_superuser", models.BooleanField(
                    default=False,
                    help_text="Designates that this user has all permissions without explicitly assigning them.",
                    verbose_name="superuser status")),
                ("username", models.CharField(
                    error_messages={"unique": "A user with that username already exists."},
                    help_text="Required. 150 characters or fewer. Letters, digits and @/./+/-/_ only.",
                    max_length=150, unique=True,
                    validators=[django.contrib.auth.validators.UnicodeUsernameValidator()],
                    verbose_name="username")),
                ("first_name", models.CharField(blank=True, max_length=150, verbose_name="first name")),
                ("last_name", models.CharField(blank=True, max_length=150, verbose_name="last name")),
                ("email", models.EmailField(blank=True, max_length=254, verbose_name="email address")),
                ("is_staff", models.BooleanField(
                    default=False,
                    help_text="Designates whether the user can log into this admin site.",
                    verbose_name="staff status")),
                ("is_active", models.BooleanField(
                    default=True,
                    help_text="Designates whether this user should be treated as active. Unselect this instead of deleting accounts.",
                    verbose_name="active")),
                ("date_joined", models.DateTimeField(default=django.utils.timezone.now, verbose_name="date joined")),
                ("phone", models.CharField(blank=True, max_length=32)),
                ("default_company", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="default_users", to="invoicing_core.company")),
                ("groups", models.ManyToManyField(
                    blank=True,
                    help_text="The groups this user belongs to. A user will get all permissions granted to each of their groups.",
                    related_name="user_set", related_query_name="user", to="auth.group",
                    verbose_name="groups")),
                ("user_permissions", models.ManyToManyField(
                    blank=True, help_text="Specific permissions for this user.",
                    related_name="user_set", related_query_name="user", to="auth.permission",
                    verbose_name="user permissions")),
            ],
            options={
                "verbose_name": "user",
                "verbose_name_plural": "users",
                "abstract": False,
                "indexes": [models.Index(fields=["default_company"], name="user_default_company_idx")],
            },
            managers=[
                ("objects", invoicing_core.managers.UserManager()),
            ],
        ),
        migrations.AddField(
            model_name="company",
            name="owner",
            field=models.ForeignKey(
                blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                related_name="owned_companies", to=settings.AUTH_USER_MODEL),
        ),
        migrations.CreateModel(
            name="EntityMembership",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("role", models.CharField(
                    choices=[("admin", "Admin"), ("accounts", "Accounts"), ("staff", "Staff")],
                    default="staff", max_length=20)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name="memberships",
                    to="invoicing_core.company")),
                ("user", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name="memberships",
                    to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "indexes": [models.Index(fields=["company", "user"], name="membership_company_user_idx")],
                "constraints": [
                    models.UniqueConstraint(fields=("user", "company"), name="uq_user_company_membership"),
                ],
            },
        ),
        migrations.CreateModel(
            name="AuditLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("action", models.CharField(max_length=50)),
                ("object_type", models.CharField(max_length=100)),
                ("object_id", models.CharField(max_length=100)),
                ("changes", models.JSONField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    to="invoicing_core.company")),
                ("user", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "indexes": [
                    models.Index(fields=["company", "user"], name="auditlog_company_user_idx"),
                    models.Index(fields=["company", "created_at"], name="auditlog_company_created_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Customer",
            fields=party_fields(),
            options={
                "indexes": [models.Index(fields=["company", "name"], name="customer_company_name_idx")],
                "constraints": [
                    models.UniqueConstraint(fields=("company", "name"), name="uq_company_customer_name"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Vendor",
            fields=party_fields(),
            options={
                "indexes": [models.Index(fields=["company", "name"], name="vendor_company_name_idx")],
                "constraints": [
                    models.UniqueConstraint(fields=("company", "name"), name="uq_company_vendor_name"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Invoice",
            fields=document_fields() + [
                ("invoice_number", models.CharField(max_length=64)),
                ("invoice_date", models.DateField()),
                ("status", models.CharField(
                    choices=[
                        ("draft", "Draft"), ("sent", "Sent"), ("partially_paid", "Partially Paid"),
                        ("paid", "Paid"), ("overdue", "Overdue"), ("disputed", "Disputed"),
                        ("on_hold", "On Hold"), ("cancelled", "Cancelled"),
                    ],
                    default="draft", max_length=20)),
                ("terms", models.TextField(blank=True)),
                ("bank_name", models.CharField(blank=True, max_length=120)),
                ("bank_account_no", models.CharField(blank=True, max_length=40)),
                ("bank_ifsc", models.CharField(blank=True, max_length=11)),
                ("bank_upi_id", models.CharField(blank=True, max_length=80)),
                ("tds_certificate_status", models.CharField(
                    choices=[
                        ("not_applicable", "Not Applicable"), ("pending", "Pending"),
                        ("requested", "Requested"), ("received", "Received"),
                    ],
                    default="not_applicable", max_length=20)),
                ("tds_certificate_received_date", models.DateField(blank=True, null=True)),
                ("next_follow_up_date", models.DateField(blank=True, null=True)),
                ("follow_up_notes", models.TextField(blank=True)),
                ("customer", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT, related_name="invoices",
                    to="invoicing_core.customer")),
            ],
            options={
                "indexes": [
                    models.Index(fields=["company", "status"], name="invoice_company_status_idx"),
                    models.Index(fields=["company", "customer"], name="invoice_company_customer_idx"),
                    models.Index(fields=["company", "due_date"], name="invoice_company_due_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("company", "invoice_number"), name="uq_invoice_company_number"),
                    models.CheckConstraint(
                        condition=models.Q(("amount_paid__gte", 0), ("balance_due__gte", 0)),
                        name="invoice_non_negative_balance",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="InvoiceLine",
            fields=line_fields() + [
                ("invoice", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name="lines",
                    to="invoicing_core.invoice")),
            ],
            options={
                "ordering": ["sort_order", "id"],
                "indexes": [models.Index(fields=["company", "invoice"], name="invoiceline_company_inv_idx")],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("quantity__gte", 0), ("rate__gte", 0)),
                        name="invl_non_negative_amounts",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="VendorBill",
            fields=document_fields() + [
                ("bill_number", models.CharField(max_length=64)),
                ("bill_date", models.DateField()),
                ("status", models.CharField(
                    choices=[
                        ("pending", "Pending"), ("partially_paid", "Partially Paid"),
                        ("paid", "Paid"), ("overdue", "Overdue"), ("cancelled", "Cancelled"),
                    ],
                    default="pending", max_length=20)),
                ("attachment_id", models.CharField(blank=True, max_length=100)),
                ("gst_filed", models.BooleanField(default=False)),
                ("gstr2b_reflected", models.BooleanField(default=False)),
                ("itc_eligible", models.BooleanField(default=True)),
                ("portal_check_date", models.DateField(blank=True, null=True)),
                ("compliance_notes", models.TextField(blank=True)),
                ("vendor", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT, related_name="bills",
                    to="invoicing_core.vendor")),
            ],
            options={
                "indexes": [
                    models.Index(fields=["company", "status"], name="bill_company_status_idx"),
                    models.Index(fields=["company", "vendor"], name="bill_company_vendor_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("company", "bill_number"), name="uq_bill_company_number"),
                    models.CheckConstraint(
                        condition=models.Q(("amount_paid__gte", 0), ("balance_due__gte", 0)),
                        name="bill_non_negative_balance",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="VendorBillLine",
            fields=line_fields() + [
                ("bill", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name="lines",
                    to="invoicing_core.vendorbill")),
            ],
            options={
                "ordering": ["sort_order", "id"],
                "indexes": [models.Index(fields=["company", "bill"], name="billline_company_bill_idx")],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("quantity__gte", 0), ("rate__gte", 0)),
                        name="bl_non_negative_amounts",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Payment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("direction", models.CharField(
                    choices=[("received", "Received"), ("made", "Made")], max_length=10)),
                ("payment_date", models.DateField()),
                ("amount", models.DecimalField(decimal_places=2, max_digits=14)),
                ("payment_mode", models.CharField(
                    choices=[
                        ("bank_transfer", "Bank Transfer"), ("upi", "UPI"),
                        ("cash", "Cash"), ("cheque", "Cheque"),
                    ],
                    default="bank_transfer", max_length=20)),
                ("reference_number", models.CharField(blank=True, max_length=100)),
                ("notes", models.TextField(blank=True)),
                ("deleted_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, to="invoicing_core.company")),
                ("created_by", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="+", to=settings.AUTH_USER_MODEL)),
                ("customer", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.PROTECT,
                    related_name="payments", to="invoicing_core.customer")),
                ("invoice", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.PROTECT,
                    related_name="payments", to="invoicing_core.invoice")),
                ("vendor", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.PROTECT,
                    related_name="payments", to="invoicing_core.vendor")),
                ("vendor_bill", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.PROTECT,
                    related_name="payments", to="invoicing_core.vendorbill")),
            ],
            options={
                "indexes": [
                    models.Index(fields=["company", "payment_date"], name="payment_company_date_idx"),
                    models.Index(fields=["company", "customer"], name="payment_company_customer_idx"),
                    models.Index(fields=["company", "vendor"], name="payment_company_vendor_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("amount__gt", 0)), name="payment_amount_positive"),
                    models.CheckConstraint(
                        condition=models.Q(("invoice__isnull", True), ("vendor_bill__isnull", True), _connector="OR"),
                        name="payment_single_document",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="BankTransaction",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("txn_date", models.DateField()),
                ("description", models.TextField()),
                ("narration", models.TextField(blank=True)),
                ("reference_number", models.CharField(blank=True, max_length=100)),
                ("debit", money()),
                ("credit", money()),
                ("balance", models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True)),
                ("bank_account_label", models.CharField(blank=True, max_length=100)),
                ("status", models.CharField(
                    choices=[("unmatched", "Unmatched"), ("matched", "Matched"), ("ignored", "Ignored")],
                    default="unmatched", max_length=20)),
                ("import_hash", models.CharField(max_length=64)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, to="invoicing_core.company")),
                ("matched_payment", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="bank_transactions", to="invoicing_core.payment")),
            ],
            options={
                "indexes": [
                    models.Index(fields=["company", "status"], name="banktxn_company_status_idx"),
                    models.Index(fields=["company", "txn_date"], name="banktxn_company_date_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("company", "import_hash"), name="uq_bt_company_import_hash"),
                    models.CheckConstraint(
                        condition=models.Q(("debit__gte", 0), ("credit__gte", 0)),
                        name="bt_non_negative_amounts",
                    ),
                ],
            },
        ),
    ]

