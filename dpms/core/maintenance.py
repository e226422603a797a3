"""System reset and default data seeding, shared by the API and management commands"""
import logging

from django.core.cache import cache
from django.db import transaction

from .models import User, UserPermission, UserLocationAccess, AppSettings, AuditLog

logger = logging.getLogger('dpms.core')

DEFAULT_ADMIN_USERNAME = 'admin'
DEFAULT_ADMIN_PASSWORD = 'admin123'


def _reset_order():
    """Models in child-before-parent order"""
    from dpms.quality.models import QcItem, QcEntry
    from dpms.inventory.models import InwardLine, Inward, OutwardLine, Outward, JobWorkItem, JobWork
    from dpms.purchasing.models import PurchaseOrderItem, PurchaseOrder, PurchaseIndentItem, PurchaseIndent
    from dpms.catalog.models import ItemChangeLog, Item, ItemType, Material, OwnerType, ItemStatus
    from dpms.parties.models import Party
    from dpms.locations.models import Location, Company

    return [
        QcItem, QcEntry,
        InwardLine, Inward,
        OutwardLine, Outward,
        JobWorkItem, JobWork,
        PurchaseOrderItem, PurchaseOrder,
        PurchaseIndentItem, PurchaseIndent,
        ItemChangeLog, Item,
        ItemType, Material, OwnerType, ItemStatus,
        Party,
        UserLocationAccess,
        Location, Company,
        AuditLog,
    ]


def reset_system(keep_username=DEFAULT_ADMIN_USERNAME):
    """
    Delete all transactional and master data and every user except `keep_username`.

    Returns a dict of deleted row counts keyed by model name.
    """
    counts = {}
    with transaction.atomic():
        removed_users = User.objects.exclude(username=keep_username)
        # Users reference companies/locations, so they go before those tables.
        counts['User'] = removed_users.count()
        for model in _reset_order():
            if model.__name__ == 'Location':
                removed_users.delete()
            counts[model.__name__] = model.objects.all().delete()[0]
    cache.clear()
    logger.warning(f"System reset completed, kept user '{keep_username}': {counts}")
    return counts


def seed_defaults():
    """Create the default admin user and software settings when missing"""
    created = {'admin': False, 'settings': False}
    with transaction.atomic():
        admin = User.objects.filter(username=DEFAULT_ADMIN_USERNAME).first()
        if admin is None:
            admin = User(
                username=DEFAULT_ADMIN_USERNAME,
                first_name='System',
                last_name='Admin',
                email='admin@dpms.local',
                role='QC_ADMIN',
                is_staff=True,
                is_superuser=True,
                is_active=True,
            )
            admin.set_password(DEFAULT_ADMIN_PASSWORD)
            admin.save()
            created['admin'] = True

        permission, _ = UserPermission.objects.get_or_create(user=admin)
        for flag in UserPermission.FLAG_FIELDS:
            setattr(permission, flag, True)
        permission.save()

        if not AppSettings.objects.exists():
            AppSettings.objects.create(software_name='DPMS v1.0', primary_color='#3b82f6')
            created['settings'] = True
    logger.info(f"Seeded defaults: {created}")
    return created
