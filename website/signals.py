"""
Change notification for the public tables.

``records_changed`` is sent after any save or delete of an Appointment,
JobPost, JobApplication or Message, with ``instance`` and ``action``
("created", "updated" or "deleted"). Views and caches subscribe with
``records_changed.connect(...)`` instead of polling the tables.
"""
import logging

from django.db import transaction
from django.db.models.signals import post_delete, post_save
from django.dispatch import Signal, receiver

from . import availability
from .models import Appointment, JobApplication, JobPost, Message

logger = logging.getLogger(__name__)

records_changed = Signal()

WATCHED_MODELS = (Appointment, JobPost, JobApplication, Message)


def notify_changed(sender, instance, action):
    logger.debug("%s %s %s", sender.__name__, instance.pk, action)
    records_changed.send(sender=sender, instance=instance, action=action)


@receiver(post_save)
def record_saved(sender, instance, created, **kwargs):
    if sender in WATCHED_MODELS:
        notify_changed(sender, instance, "created" if created else "updated")


@receiver(post_delete)
def record_deleted(sender, instance, **kwargs):
    if sender in WATCHED_MODELS:
        notify_changed(sender, instance, "deleted")


@receiver(records_changed, sender=Appointment)
def invalidate_availability(sender, instance, action, **kwargs):
    # bump now for this request, and again once committed so a window
    # cached from pre-commit rows is dropped too
    availability.invalidate_cache()
    transaction.on_commit(availability.invalidate_cache)
