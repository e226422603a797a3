"""
Management command to clear all masters, documents, items and users (except admin)
Usage: python manage.py reset_system [--confirm]
"""
from django.core.management.base import BaseCommand

from dpms.core.maintenance import reset_system, DEFAULT_ADMIN_USERNAME


class Command(BaseCommand):
    help = 'Delete all transactional and master data and every user except admin'

    def add_arguments(self, parser):
        parser.add_argument(
            '--confirm',
            action='store_true',
            help='Skip confirmation prompt',
        )
        parser.add_argument(
            '--keep-user',
            default=DEFAULT_ADMIN_USERNAME,
            help='Username to keep (default: admin)',
        )

    def handle(self, *args, **options):
        if not options['confirm']:
            self.stdout.write(self.style.WARNING('WARNING: This will delete ALL:'))
            self.stdout.write('  - Companies, locations and parties')
            self.stdout.write('  - Masters and items (with change history)')
            self.stdout.write('  - Purchase indents, purchase orders, inwards, outwards, job works and QC entries')
            self.stdout.write('  - Audit logs')
            self.stdout.write(f"  - Every user except '{options['keep_user']}'")
            self.stdout.write('')

            confirm = input('Type "YES" to confirm: ')
            if confirm != 'YES':
                self.stdout.write(self.style.ERROR('Operation cancelled.'))
                return

        self.stdout.write('Starting system reset...')
        counts = reset_system(keep_username=options['keep_user'])
        for model_name, count in counts.items():
            self.stdout.write(f'  - {model_name}: {count}')
        self.stdout.write(self.style.SUCCESS('System reset completed.'))
