from django.db.models.signals import post_save
from django.dispatch import receiver

from .models import User, UserPermission


@receiver(post_save, sender=User)
def ensure_user_permission(sender, instance, created, **kwargs):
    """Every user owns exactly one permission row"""
    if created:
        UserPermission.objects.get_or_create(user=instance)
