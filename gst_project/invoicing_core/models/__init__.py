from .auditlog import AuditLog
from .banking import BankTransaction
from .bill import VendorBill, VendorBillLine
from .customer import Customer
from .entitymembership import Company, EntityMembership, User
from .invoice import Invoice, InvoiceLine
from .payment import Payment
from .vendor import Vendor
