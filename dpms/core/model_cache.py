"""
Caching for slow-changing reference data: the active master lists and the
software settings.

Lists are cached as serialized payloads. Saving or deleting a master row
drops its list so the next read rebuilds it.
"""
from django.core.cache import cache
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
import logging

logger = logging.getLogger('dpms.core')

MASTER_LIST_KEY_PREFIX = 'master_active:'
APP_SETTINGS_KEY = 'app_settings'

MASTER_LIST_CACHE_TTL = 600  # 10 minutes
APP_SETTINGS_CACHE_TTL = 900  # 15 minutes

# Model name -> master kind used in URLs
MASTER_MODELS = {
    'ItemType': 'item-types',
    'Material': 'materials',
    'OwnerType': 'owner-types',
    'ItemStatus': 'item-statuses',
}


def get_master_list_cache_key(kind: str) -> str:
    return f"{MASTER_LIST_KEY_PREFIX}{kind}"


def get_cached_master_list(kind: str):
    cached_data = cache.get(get_master_list_cache_key(kind))
    if cached_data is not None:
        logger.debug(f"Cache hit for active {kind}")
    return cached_data


def cache_master_list(kind: str, data, ttl: int = None):
    cache.set(get_master_list_cache_key(kind), data, ttl or MASTER_LIST_CACHE_TTL)
    logger.debug(f"Cached active {kind} ({len(data)} rows)")


def invalidate_master_list(kind: str):
    cache.delete(get_master_list_cache_key(kind))
    logger.debug(f"Invalidated active {kind} cache")


def get_cached_app_settings():
    return cache.get(APP_SETTINGS_KEY)


def cache_app_settings(data, ttl: int = None):
    cache.set(APP_SETTINGS_KEY, data, ttl or APP_SETTINGS_CACHE_TTL)


def invalidate_app_settings():
    cache.delete(APP_SETTINGS_KEY)


# ==================== DJANGO SIGNALS ====================

def _invalidate_for(sender):
    model_name = sender.__name__
    if model_name in MASTER_MODELS and sender._meta.app_label == 'catalog':
        invalidate_master_list(MASTER_MODELS[model_name])
    elif model_name == 'AppSettings' and sender._meta.app_label == 'core':
        invalidate_app_settings()


@receiver(post_save)
def model_post_save(sender, instance, **kwargs):
    """Invalidate cached lists when reference data is saved"""
    _invalidate_for(sender)


@receiver(post_delete)
def model_post_delete(sender, instance, **kwargs):
    """Invalidate cached lists when reference data is deleted"""
    _invalidate_for(sender)
