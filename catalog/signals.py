from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from catalog.models import Vendor
from catalog.services import priority as priority_services


@receiver(post_save, sender=Vendor)
def invalidate_priority_on_vendor_save(sender, instance, **kwargs):
    """
    Drop cached priorities whenever a vendor row is saved through the ORM.

    Renames also need the previous name invalidated, which only the vendor
    services know about.
    """
    priority_services.invalidate_vendor(instance)


@receiver(post_delete, sender=Vendor)
def invalidate_priority_on_vendor_delete(sender, instance, **kwargs):
    priority_services.invalidate_vendor(instance)
