import logging

from django.db import DatabaseError, transaction
from django.utils import timezone

logger = logging.getLogger(__name__)


# ----------------------------------------------
# Status derivation (pure, no writes)
# ----------------------------------------------
def derive_invoice_status(invoice, today=None) -> str:
    """Compute invoice status from balance + due date (skips draft/cancelled)."""
    today = today or timezone.localdate()
    status = invoice.status
    if status in invoice.frozen_statuses:
        return status
    if invoice.balance_due <= 0:
        return "paid"
    if invoice.due_date < today:
        return "overdue"
    # manual holds survive part payments until someone lifts them
    if status in invoice.hold_statuses:
        return status
    if invoice.amount_paid > 0:
        return "partially_paid"
    return invoice.open_status


def derive_bill_status(bill, today=None) -> str:
    """Compute vendor bill status from balance + due date (skips cancelled)."""
    today = today or timezone.localdate()
    if bill.status in bill.frozen_statuses:
        return bill.status
    if bill.balance_due <= 0:
        return "paid"
    if bill.amount_paid > 0:
        return "partially_paid"
    if bill.due_date < today:
        return "overdue"
    return bill.open_status


def derive_status(document, today=None) -> str:
    if document.kind == "sales":
        return derive_invoice_status(document, today)
    return derive_bill_status(document, today)


# ----------------------------------------------
# Lazy rewrite-on-read
# ----------------------------------------------
def refresh_status(document, today=None, persist=True) -> str:
    """
    Recompute the displayed status and store it if it went stale.
    The write is best-effort: a failed UPDATE is logged and the
    computed status is still returned to the caller.
    """
    computed = derive_status(document, today)
    if computed == document.status:
        return computed

    stale = document.status
    document.status = computed
    if persist and document.pk:
        try:
            # savepoint, so a failure cannot poison an outer transaction
            with transaction.atomic():
                type(document).objects.filter(pk=document.pk, status=stale).update(
                    status=computed
                )
        except DatabaseError:
            logger.warning(
                "Could not persist status %s -> %s for %s",
                stale, computed, document, exc_info=True,
            )
    return computed


def refresh_statuses(documents, today=None, persist=True):
    """Refresh a batch (a list or queryset) and return it as a list."""
    today = today or timezone.localdate()
    documents = list(documents)
    changed = 0
    for document in documents:
        before = document.status
        if refresh_status(document, today, persist=persist) != before:
            changed += 1
    if changed:
        logger.info("Refreshed status on %d of %d documents", changed, len(documents))
    return documents
