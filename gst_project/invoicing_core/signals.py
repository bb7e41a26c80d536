from django.core.exceptions import ValidationError
from django.db.models.signals import pre_delete
from django.dispatch import receiver

from .models import Customer, Invoice, Payment, Vendor, VendorBill

""" Documents with payment history are tombstoned (deleted_at), never removed."""


# pre_delete signal auto-fires just before Django deletes a model instance
@receiver(pre_delete, sender=Invoice)
def prevent_delete_invoice_with_payments(sender, instance, **kwargs):
    # soft-deleted payments count too: they are still history
    if Payment.objects.filter(invoice=instance).exists():
        raise ValidationError("Cannot delete invoice with payments; soft-delete it instead.")


@receiver(pre_delete, sender=VendorBill)
def prevent_delete_bill_with_payments(sender, instance, **kwargs):
    if Payment.objects.filter(vendor_bill=instance).exists():
        raise ValidationError("Cannot delete bill with payments; soft-delete it instead.")


"""Block deleting a party that still has payments on file."""


@receiver(pre_delete, sender=Customer)
@receiver(pre_delete, sender=Vendor)
def prevent_delete_party_with_payments(sender, instance, **kwargs):
    if instance.payments.exists():
        raise ValidationError(f"Cannot delete {instance} with payments on file.")
