import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('locations', '0001_initial'),
        ('parties', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='ItemStatus',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=150, unique=True)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name_plural': 'item statuses',
                'db_table': 'item_statuses',
                'ordering': ['name'],
                'abstract': False,
            },
        ),
        migrations.CreateModel(
            name='ItemType',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=150, unique=True)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'item_types',
                'ordering': ['name'],
                'abstract': False,
            },
        ),
        migrations.CreateModel(
            name='Material',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=150, unique=True)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'materials',
                'ordering': ['name'],
                'abstract': False,
            },
        ),
        migrations.CreateModel(
            name='OwnerType',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=150, unique=True)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'owner_types',
                'ordering': ['name'],
                'abstract': False,
            },
        ),
        migrations.CreateModel(
            name='Item',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('main_part_name', models.CharField(max_length=200, unique=True)),
                ('current_name', models.CharField(max_length=200)),
                ('drawing_no', models.CharField(blank=True, max_length=100, null=True)),
                ('revision_no', models.CharField(blank=True, max_length=50, null=True)),
                ('current_process', models.CharField(choices=[('NOT_IN_STOCK', 'Not In Stock'), ('IN_PI', 'In Purchase Indent'), ('IN_PO', 'In Purchase Order'), ('IN_QC', 'In QC'), ('IN_JOBWORK', 'In Job Work'), ('OUTWARD', 'Outward'), ('IN_STOCK', 'In Stock')], default='NOT_IN_STOCK', max_length=20)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('current_location', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='held_items', to='locations.location')),
                ('current_party', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='held_items', to='parties.party')),
                ('location', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='items', to='locations.location')),
                ('item_type', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='items', to='catalog.itemtype')),
                ('material', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='items', to='catalog.material')),
                ('owner_type', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='items', to='catalog.ownertype')),
                ('status', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='items', to='catalog.itemstatus')),
            ],
            options={
                'db_table': 'items',
                'ordering': ['main_part_name'],
                'indexes': [models.Index(fields=['current_process'], name='idx_item_process'), models.Index(fields=['location', 'is_active'], name='idx_item_location_active'), models.Index(fields=['current_name'], name='idx_item_current_name')],
                'constraints': [models.UniqueConstraint(condition=models.Q(('drawing_no__isnull', False), models.Q(('drawing_no', ''), _negated=True)), fields=('drawing_no',), name='uniq_item_drawing_no')],
            },
        ),
        migrations.CreateModel(
            name='ItemChangeLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('old_name', models.CharField(max_length=200)),
                ('new_name', models.CharField(max_length=200)),
                ('old_revision', models.CharField(blank=True, max_length=50, null=True)),
                ('new_revision', models.CharField(blank=True, max_length=50, null=True)),
                ('change_type', models.CharField(choices=[('MODIFICATION', 'Modification'), ('REPAIR', 'Repair')], max_length=20)),
                ('remarks', models.TextField(blank=True, null=True)),
                ('is_reverted', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='item_changes', to=settings.AUTH_USER_MODEL)),
                ('item', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='change_logs', to='catalog.item')),
            ],
            options={
                'db_table': 'item_change_logs',
                'ordering': ['-created_at', '-id'],
                'indexes': [models.Index(fields=['item', '-created_at'], name='idx_changelog_item_date')],
            },
        ),
    ]
