from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from django.utils import timezone
from django.utils.text import slugify

from invoicing_core.models import Company, Customer, EntityMembership, Vendor
from invoicing_core.services.banking import StatementRow, import_statement_rows
from invoicing_core.services.documents import create_invoice, create_vendor_bill
from invoicing_core.services.payment import record_payment

User = get_user_model()


class Command(BaseCommand):
    help = (
        "Create a demo tenant (company), admin user and sample GST documents for testing."
    )

    # Define command-line arguments
    def add_arguments(self, parser):
        parser.add_argument(
            "--company-name",
            default="Demo Traders",
            help="Name of the demo company to create.",
        )
        parser.add_argument(
            "--state-code", default="27", help="GST state code of the company (27 = Maharashtra)."
        )
        parser.add_argument(
            "--username", default="demo", help="Username for the demo user."
        )
        parser.add_argument(
            "--password", default="demo123", help="Password for the demo user."
        )

    # Generate unique slug for company
    def unique_slug_for_company(self, name, max_tries=100):
        base = slugify(name) or "company"
        slug = base
        i = 1
        # If plain slug is taken, append -1, -2, etc.
        while Company.objects.filter(slug=slug).exists():
            slug = f"{base}-{i}"
            i += 1
            if i > max_tries:
                raise CommandError("Couldn't generate unique slug")
        return slug

    @transaction.atomic
    def handle(self, *args, **options):
        company_name = options["company_name"]
        state_code = options["state_code"]
        username = options["username"]
        password = options["password"]
        today = timezone.localdate()

        # 1. Create company
        company = Company.objects.create(
            name=company_name,
            slug=self.unique_slug_for_company(company_name),
            state_code=state_code,
            invoice_prefix=(slugify(company_name)[:3].upper() or "INV") + "/",
            bank_name="Demo Bank",
            bank_account_no="000123456789",
            bank_ifsc="DEMO0000001",
        )
        self.stdout.write(self.style.SUCCESS(f"Created company: {company}"))

        # 2. Create user + membership
        user, created = User.objects.get_or_create(
            username=username,
            defaults={"email": f"{username}@example.com"},
        )
        if created:
            user.set_password(password)
        EntityMembership.objects.create(user=user, company=company, role="admin")
        user.default_company = company
        user.save()
        self.stdout.write(
            self.style.SUCCESS(f"Created user: {user.username} (pw={password})")
        )

        # 3. Parties: one local, one out-of-state
        local = Customer.objects.create(
            company=company, name="Sharma Electronics", state_code=state_code)
        remote = Customer.objects.create(
            company=company, name="Kaveri Textiles", state_code="29" if state_code != "29" else "27")
        vendor = Vendor.objects.create(
            company=company, name="Office Supplies Co", state_code=state_code)
        self.stdout.write(self.style.SUCCESS("Created customers and vendor"))

        # 4. Documents
        line = {"description": "Consulting services", "hsn_sac_code": "998311",
                "quantity": 1, "rate": "50000", "gst_rate": 18}
        intra = create_invoice(company, local, [line], today, status="sent", user=user)
        inter = create_invoice(company, remote, [line], today, status="sent", user=user)
        create_vendor_bill(
            company, vendor, "OSC-1001",
            [{"description": "Printer paper", "quantity": 10, "rate": "450", "gst_rate": 12}],
            today, user=user,
        )
        record_payment(intra, Decimal("30000.00"), today, payment_mode="upi", user=user)
        self.stdout.write(self.style.SUCCESS(
            f"Created invoices {intra.invoice_number}, {inter.invoice_number} and one bill"))

        # 5. A bank credit the matcher can pair with the inter-state invoice
        result = import_statement_rows(company, [
            StatementRow(
                txn_date=today,
                description=f"NEFT CR {remote.name.upper()} {inter.invoice_number}",
                credit=inter.total_amount,
            ),
        ], bank_account_label="Demo Current A/c")
        self.stdout.write(self.style.SUCCESS(f"Imported bank rows: {result}"))
        self.stdout.write(self.style.SUCCESS("Demo tenant setup complete!"))
