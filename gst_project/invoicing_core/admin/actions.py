from django.contrib import admin, messages
from django.core.exceptions import ObjectDoesNotExist, ValidationError

from invoicing_core.services.banking import ignore_transaction, unignore_transaction
from invoicing_core.services.documents import (change_status, restore_document,
                                               soft_delete_document)
from invoicing_core.services.payment import delete_payment
from invoicing_core.services.status import refresh_statuses

# ---------- Admin actions ----------
# Every action goes through the service layer so the same rules
# (allowed transitions, payment checks, audit log) apply as in the API.


def _run_each(modeladmin, request, queryset, func, verb):
    done = 0
    for obj in queryset:
        try:
            func(obj)
            done += 1
        except (ValidationError, ObjectDoesNotExist) as e:
            modeladmin.message_user(request, f"{obj}: {e}", level=messages.ERROR)
    modeladmin.message_user(
        request,
        f"{verb} {done} of {len(queryset)} selected.",
        level=messages.SUCCESS if done == len(queryset) else messages.WARNING,
    )


@admin.action(description="Mark selected invoices as Sent")
def mark_inv_as_sent(modeladmin, request, queryset):
    _run_each(modeladmin, request, queryset,
              lambda inv: change_status(inv, "sent", user=request.user), "Sent")


@admin.action(description="Cancel selected documents")
def cancel_documents(modeladmin, request, queryset):
    _run_each(modeladmin, request, queryset,
              lambda doc: change_status(doc, "cancelled", user=request.user), "Cancelled")


@admin.action(description="Recompute status (paid / overdue)")
def refresh_document_status(modeladmin, request, queryset):
    documents = refresh_statuses(queryset.filter(deleted_at__isnull=True))
    modeladmin.message_user(request, f"Checked {len(documents)} documents.")


@admin.action(description="Soft-delete selected documents")
def soft_delete_documents(modeladmin, request, queryset):
    _run_each(modeladmin, request, queryset,
              lambda doc: soft_delete_document(doc, user=request.user), "Deleted")


@admin.action(description="Restore selected documents")
def restore_documents(modeladmin, request, queryset):
    _run_each(modeladmin, request, queryset,
              lambda doc: restore_document(doc, user=request.user), "Restored")


@admin.action(description="Ignore selected bank transactions")
def ignore_bank_transactions(modeladmin, request, queryset):
    _run_each(modeladmin, request, queryset,
              lambda txn: ignore_transaction(txn, user=request.user), "Ignored")


@admin.action(description="Un-ignore selected bank transactions")
def unignore_bank_transactions(modeladmin, request, queryset):
    _run_each(modeladmin, request, queryset,
              lambda txn: unignore_transaction(txn, user=request.user), "Restored")


@admin.action(description="Reverse selected payments")
def reverse_payments(modeladmin, request, queryset):
    _run_each(modeladmin, request, queryset,
              lambda p: delete_payment(p, user=request.user), "Reversed")
