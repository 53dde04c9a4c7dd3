"""Keep materialised DateSlot prices in step with pricing inputs."""

import logging

from django.db import transaction
from django.db.models.signals import post_delete, post_save, pre_save
from django.dispatch import receiver

from . import slots
from .models import PricingRule, Property

logger = logging.getLogger(__name__)

PRICE_FIELDS = ("base_price", "currency", "weekend_days")


def _schedule_refresh(property_id: int) -> None:
    def refresh() -> None:
        property_obj = Property.objects.filter(pk=property_id).first()
        if property_obj is None:
            return
        updated = slots.refresh_prices(property_obj)
        logger.debug("Refreshed %s slot prices for property %s", updated, property_id)

    transaction.on_commit(refresh)


@receiver([post_save, post_delete], sender=PricingRule)
def pricing_rule_changed(sender, instance, **kwargs):
    """Re-price future slots whenever a rule is added, edited or removed."""
    _schedule_refresh(instance.property_id)


@receiver(pre_save, sender=Property)
def remember_price_inputs(sender, instance, **kwargs):
    if not instance.pk:
        instance._previous_price_inputs = None
        return
    instance._previous_price_inputs = (
        sender.objects.filter(pk=instance.pk).values_list(*PRICE_FIELDS).first()
    )


@receiver(post_save, sender=Property)
def property_price_changed(sender, instance, created, **kwargs):
    previous = getattr(instance, "_previous_price_inputs", None)
    if hasattr(instance, "_previous_price_inputs"):
        delattr(instance, "_previous_price_inputs")
    if created or previous is None:
        return
    current = tuple(getattr(instance, name) for name in PRICE_FIELDS)
    if tuple(previous) != current:
        _schedule_refresh(instance.pk)
