"""
Profile bootstrap.

Display names are read from ``user.profile``, so the row is created in
the same save that creates the user.
"""

import logging

from django.conf import settings
from django.db.models.signals import post_save
from django.dispatch import receiver

logger = logging.getLogger(__name__)


@receiver(post_save, sender=settings.AUTH_USER_MODEL)
def create_user_profile(sender, instance, created, **kwargs):
    if not created:
        return

    from authentication.models import Profile

    Profile.objects.get_or_create(user=instance)
    logger.debug(f"Profile created for user {instance.pk}")
