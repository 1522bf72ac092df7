import logging

from django.db.models.signals import post_save
from django.dispatch import receiver

from .models import Notification

logger = logging.getLogger(__name__)


@receiver(post_save, sender=Notification)
def log_notification_created(sender, instance, created, **kwargs):
    if created:
        logger.info(
            "Notification %s (%s) stored for user %s",
            instance.pk,
            instance.notification_type,
            instance.recipient_id,
        )
