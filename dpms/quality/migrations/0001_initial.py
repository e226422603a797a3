import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('inventory', '0001_initial'),
        ('locations', '0001_initial'),
        ('parties', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='QcEntry',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('qc_no', models.CharField(max_length=30)),
                ('source_type', models.CharField(blank=True, choices=[('PO', 'Purchase Order'), ('OUTWARD_RETURN', 'Outward Return'), ('JOB_WORK', 'Job Work')], max_length=20, null=True)),
                ('remarks', models.TextField(blank=True, null=True)),
                ('status', models.CharField(choices=[('PENDING', 'Pending'), ('APPROVED', 'Approved'), ('REJECTED', 'Rejected')], default='PENDING', max_length=20)),
                ('attachment_urls', models.JSONField(blank=True, default=list)),
                ('approved_at', models.DateTimeField(blank=True, null=True)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('approved_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='approved_qc_entries', to=settings.AUTH_USER_MODEL)),
                ('created_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_qc_entries', to=settings.AUTH_USER_MODEL)),
                ('location', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='qc_entries', to='locations.location')),
                ('party', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='qc_entries', to='parties.party')),
            ],
            options={
                'verbose_name_plural': 'QC entries',
                'db_table': 'qc_entries',
                'ordering': ['-created_at', '-id'],
                'indexes': [models.Index(fields=['location', 'status'], name='idx_qc_location_status')],
                'constraints': [models.UniqueConstraint(fields=('location', 'qc_no'), name='uniq_qc_no_per_location')],
            },
        ),
        migrations.CreateModel(
            name='QcItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('is_approved', models.BooleanField(blank=True, null=True)),
                ('remarks', models.TextField(blank=True, null=True)),
                ('decided_at', models.DateTimeField(blank=True, null=True)),
                ('inward_line', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='qc_items', to='inventory.inwardline')),
                ('qc_entry', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='quality.qcentry')),
            ],
            options={
                'db_table': 'qc_items',
                'ordering': ['id'],
                'constraints': [models.UniqueConstraint(fields=('qc_entry', 'inward_line'), name='uniq_qc_inward_line')],
            },
        ),
    ]
