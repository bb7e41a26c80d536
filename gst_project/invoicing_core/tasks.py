import logging

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task  # register this function as a Celery task
def refresh_document_statuses(company_id):
    """Nightly: persist derived status (e.g. overdue) for a company's live documents."""
    # import models lazily to avoid circular imports at module import time
    from .models import Invoice, VendorBill
    from .services.status import refresh_statuses

    changed = 0
    for model in (Invoice, VendorBill):
        documents = (
            model.objects.filter(company_id=company_id)
            .alive()
            .exclude(status__in=model.frozen_statuses)
        )
        before = {doc.pk: doc.status for doc in documents}
        for doc in refresh_statuses(documents):
            if before[doc.pk] != doc.status:
                changed += 1

    logger.info("Status refresh for company %s changed %d documents", company_id, changed)
    return changed


@shared_task
def refresh_all_document_statuses():
    """Fan out one refresh task per company (scheduled by celery beat)."""
    from .models import Company

    company_ids = list(Company.objects.values_list("id", flat=True))
    for company_id in company_ids:
        refresh_document_statuses.delay(company_id)
    return len(company_ids)
