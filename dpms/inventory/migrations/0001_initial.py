import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('catalog', '0001_initial'),
        ('locations', '0001_initial'),
        ('parties', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Inward',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('inward_no', models.CharField(max_length=30)),
                ('inward_date', models.DateField(default=django.utils.timezone.localdate)),
                ('remarks', models.TextField(blank=True, null=True)),
                ('status', models.CharField(choices=[('DRAFT', 'Draft'), ('SUBMITTED', 'Submitted')], default='DRAFT', max_length=20)),
                ('attachment_urls', models.JSONField(blank=True, default=list)),
                ('submitted_at', models.DateTimeField(blank=True, null=True)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='inwards', to=settings.AUTH_USER_MODEL)),
                ('location', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='inwards', to='locations.location')),
                ('vendor', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='inwards', to='parties.party')),
            ],
            options={
                'db_table': 'inwards',
                'ordering': ['-inward_date', '-id'],
                'indexes': [models.Index(fields=['location', 'status'], name='idx_inward_location_status')],
                'constraints': [models.UniqueConstraint(fields=('location', 'inward_no'), name='uniq_inward_no_per_location')],
            },
        ),
        migrations.CreateModel(
            name='InwardLine',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('quantity', models.PositiveIntegerField(default=1)),
                ('source_type', models.CharField(choices=[('PO', 'Purchase Order'), ('OUTWARD_RETURN', 'Outward Return'), ('JOB_WORK', 'Job Work')], max_length=20)),
                ('source_ref_id', models.IntegerField(blank=True, null=True)),
                ('remarks', models.TextField(blank=True, null=True)),
                ('item_type_name', models.CharField(blank=True, max_length=150, null=True)),
                ('material_name', models.CharField(blank=True, max_length=150, null=True)),
                ('drawing_no', models.CharField(blank=True, max_length=100, null=True)),
                ('revision_no', models.CharField(blank=True, max_length=50, null=True)),
                ('rate', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('gst_percent', models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                ('is_qc_pending', models.BooleanField(default=False)),
                ('is_qc_approved', models.BooleanField(blank=True, null=True)),
                ('inward', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='lines', to='inventory.inward')),
                ('item', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='inward_lines', to='catalog.item')),
            ],
            options={
                'db_table': 'inward_lines',
                'ordering': ['id'],
                'indexes': [models.Index(fields=['is_qc_pending'], name='idx_inward_line_qc_pending'), models.Index(fields=['source_type', 'source_ref_id'], name='idx_inward_line_source')],
                'constraints': [models.UniqueConstraint(fields=('inward', 'item'), name='uniq_inward_item')],
            },
        ),
        migrations.CreateModel(
            name='Outward',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('outward_no', models.CharField(max_length=30)),
                ('outward_date', models.DateField(default=django.utils.timezone.localdate)),
                ('remarks', models.TextField(blank=True, null=True)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='outwards', to=settings.AUTH_USER_MODEL)),
                ('location', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='outwards', to='locations.location')),
                ('party', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='outwards', to='parties.party')),
            ],
            options={
                'db_table': 'outwards',
                'ordering': ['-outward_date', '-id'],
                'constraints': [models.UniqueConstraint(fields=('location', 'outward_no'), name='uniq_outward_no_per_location')],
            },
        ),
        migrations.CreateModel(
            name='OutwardLine',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('quantity', models.PositiveIntegerField(default=1)),
                ('remarks', models.TextField(blank=True, null=True)),
                ('item', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='outward_lines', to='catalog.item')),
                ('outward', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='lines', to='inventory.outward')),
            ],
            options={
                'db_table': 'outward_lines',
                'ordering': ['id'],
            },
        ),
        migrations.CreateModel(
            name='JobWork',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('job_work_no', models.CharField(max_length=30)),
                ('description', models.TextField(blank=True, null=True)),
                ('remarks', models.TextField(blank=True, null=True)),
                ('status', models.CharField(choices=[('PENDING', 'Pending'), ('IN_TRANSIT', 'In Transit'), ('COMPLETED', 'Completed')], default='PENDING', max_length=20)),
                ('attachment_urls', models.JSONField(blank=True, default=list)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='job_works', to=settings.AUTH_USER_MODEL)),
                ('location', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='job_works', to='locations.location')),
                ('to_party', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='job_works', to='parties.party')),
            ],
            options={
                'db_table': 'job_works',
                'ordering': ['-created_at', '-id'],
                'indexes': [models.Index(fields=['location', 'status'], name='idx_job_work_location_status')],
                'constraints': [models.UniqueConstraint(fields=('location', 'job_work_no'), name='uniq_job_work_no_per_location')],
            },
        ),
        migrations.CreateModel(
            name='JobWorkItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('rate', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('gst_percent', models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                ('remarks', models.TextField(blank=True, null=True)),
                ('item', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='job_work_items', to='catalog.item')),
                ('job_work', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='inventory.jobwork')),
            ],
            options={
                'db_table': 'job_work_items',
                'ordering': ['id'],
                'constraints': [models.UniqueConstraint(fields=('job_work', 'item'), name='uniq_job_work_item')],
            },
        ),
    ]
