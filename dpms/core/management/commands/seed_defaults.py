"""
Create the default admin account and software settings.
Usage: python manage.py seed_defaults
"""
from django.core.management.base import BaseCommand

from dpms.core.maintenance import seed_defaults, DEFAULT_ADMIN_USERNAME


class Command(BaseCommand):
    help = 'Create the default admin user (all permissions) and software settings'

    def handle(self, *args, **options):
        created = seed_defaults()
        if created['admin']:
            self.stdout.write(self.style.SUCCESS(f"Created admin user '{DEFAULT_ADMIN_USERNAME}'"))
        else:
            self.stdout.write(f"Admin user '{DEFAULT_ADMIN_USERNAME}' already exists, permissions refreshed")
        if created['settings']:
            self.stdout.write(self.style.SUCCESS('Created default software settings'))
