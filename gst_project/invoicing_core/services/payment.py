import datetime
import logging
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

# Import models
from ..exceptions import NotFoundError
from ..models import (BankTransaction, Customer, Invoice, Payment,
                      VendorBill)
from ..models.payment import PAYMENT_MODES
from .audit_helper import log_action
from .gst import ZERO, round2, to_decimal
from .status import derive_status

logger = logging.getLogger(__name__)

PAYMENT_MODE_VALUES = [value for value, _ in PAYMENT_MODES]


def _validate_amount(amount) -> Decimal:
    amount = to_decimal(amount, "amount")
    if amount <= 0:
        raise ValidationError("Payment amount must be positive")
    if amount != round2(amount):
        raise ValidationError("Payment amount cannot have more than 2 decimal places")
    return amount


def _validate_mode(payment_mode):
    if payment_mode not in PAYMENT_MODE_VALUES:
        raise ValidationError(f"Unknown payment mode {payment_mode!r}")


def _validate_date(payment_date):
    if not isinstance(payment_date, datetime.date):
        raise ValidationError("Payment date is required")


def _lock_document(model, pk):
    """Re-load and lock a document row for the rest of the transaction."""
    try:
        document = model.objects.select_for_update().get(pk=pk)
    except model.DoesNotExist:
        raise NotFoundError(f"{model.__name__} {pk} does not exist")
    if document.deleted_at is not None:
        raise NotFoundError(f"{document} has been deleted")
    return document


def _sync(target, source):
    # hand the fresh values back to the caller's instance
    if target is not None and target is not source:
        for field in ("amount_paid", "balance_due", "status"):
            setattr(target, field, getattr(source, field))


def _settle(document, amount_paid, today=None):
    """Write paid / balance / status and check the money invariants."""
    document.amount_paid = amount_paid
    document.balance_due = max(ZERO, document.total_amount - amount_paid)
    document.status = derive_status(document, today)
    # raises ConsistencyError → whole transaction rolls back
    document.check_invariants()
    document.save(update_fields=["amount_paid", "balance_due", "status", "updated_at"])
    return document


# ----------------------------
# Payment-related workflows
# ----------------------------
def record_payment(
    document,
    amount,
    payment_date: datetime.date,
    payment_mode: str = "bank_transfer",
    reference_number: str = "",
    notes: str = "",
    user=None,
) -> Payment:
    """
    Apply a payment to an invoice (received) or a vendor bill (made).
    The Payment row and the document's paid/balance/status commit together.
    Overpayment is rejected: amount may not exceed balance_due.
    """
    amount = _validate_amount(amount)
    _validate_mode(payment_mode)
    _validate_date(payment_date)

    # Everything inside either succeeds
    # as one unit or rolls back if something fails
    with transaction.atomic():
        doc = _lock_document(type(document), document.pk)

        if doc.status in doc.unpayable_statuses:
            raise ValidationError(f"Cannot record a payment on a {doc.status} document")
        if amount > doc.balance_due:
            raise ValidationError(
                f"Payment {amount} exceeds balance due {doc.balance_due}")

        payment = Payment(
            company=doc.company,
            payment_date=payment_date,
            amount=amount,
            payment_mode=payment_mode,
            reference_number=reference_number or "",
            notes=notes or "",
            created_by=user if getattr(user, "pk", None) else None,
        )
        if isinstance(doc, Invoice):
            payment.direction = "received"
            payment.invoice = doc
            payment.customer_id = doc.customer_id
        else:
            payment.direction = "made"
            payment.vendor_bill = doc
            payment.vendor_id = doc.vendor_id
        payment.save()

        _settle(doc, doc.amount_paid + amount)

        log_action(
            action="apply_payment",
            instance=payment,
            user=user,
            changes={
                "document": str(doc),
                "amount": str(amount),
                "amount_paid": str(doc.amount_paid),
                "balance_due": str(doc.balance_due),
                "status": doc.status,
            },
        )

    _sync(document, doc)
    logger.info("Recorded payment %s of %s against %s", payment.pk, amount, doc)
    return payment


def record_unapplied_payment(
    party,
    amount,
    payment_date: datetime.date,
    payment_mode: str = "bank_transfer",
    reference_number: str = "",
    notes: str = "",
    user=None,
) -> Payment:
    """Standalone payment from a customer / to a vendor, not tied to a document."""
    amount = _validate_amount(amount)
    _validate_mode(payment_mode)
    _validate_date(payment_date)
    if party.deleted_at is not None:
        raise NotFoundError(f"{party} has been deleted")

    with transaction.atomic():
        payment = Payment(
            company=party.company,
            payment_date=payment_date,
            amount=amount,
            payment_mode=payment_mode,
            reference_number=reference_number or "",
            notes=notes or "",
            created_by=user if getattr(user, "pk", None) else None,
        )
        if isinstance(party, Customer):
            payment.direction = "received"
            payment.customer = party
        else:
            payment.direction = "made"
            payment.vendor = party
        payment.save()
        log_action(action="create", instance=payment, user=user,
                   changes={"amount": str(amount), "party": str(party)})
    return payment


def delete_payment(payment: Payment, user=None) -> None:
    """
    Soft-delete a payment and reverse its effect on the linked document.
    A reversed document falls back to its open state (sent / pending,
    or overdue), never to draft. A bank line matched to this payment
    goes back to unmatched.
    """
    with transaction.atomic():
        try:
            locked = Payment.objects.select_for_update().get(pk=payment.pk)
        except Payment.DoesNotExist:
            raise NotFoundError(f"Payment {payment.pk} does not exist")
        if locked.deleted_at is not None:
            raise NotFoundError(f"{locked} has already been deleted")

        locked.deleted_at = timezone.now()
        locked.save(update_fields=["deleted_at"])

        doc = None
        if locked.invoice_id:
            doc = Invoice.objects.select_for_update().get(pk=locked.invoice_id)
        elif locked.vendor_bill_id:
            doc = VendorBill.objects.select_for_update().get(pk=locked.vendor_bill_id)

        if doc is not None:
            _settle(doc, max(ZERO, doc.amount_paid - locked.amount))

        released = BankTransaction.objects.filter(
            matched_payment=locked, status="matched"
        ).update(status="unmatched", matched_payment=None)

        log_action(
            action="reverse_payment",
            instance=locked,
            user=user,
            changes={
                "amount": str(locked.amount),
                "document": str(doc) if doc is not None else None,
                "status": doc.status if doc is not None else None,
                "released_bank_transactions": released,
            },
        )

    payment.deleted_at = locked.deleted_at
    if doc is not None:
        _sync(payment.document, doc)
    logger.info("Reversed payment %s of %s", locked.pk, locked.amount)
