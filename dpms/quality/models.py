from django.conf import settings
from django.db import models


class QcEntry(models.Model):
    """Inspection of a batch of inwarded items"""
    STATUS_CHOICES = [
        ('PENDING', 'Pending'),
        ('APPROVED', 'Approved'),
        ('REJECTED', 'Rejected'),
    ]
    SOURCE_CHOICES = [
        ('PO', 'Purchase Order'),
        ('OUTWARD_RETURN', 'Outward Return'),
        ('JOB_WORK', 'Job Work'),
    ]

    qc_no = models.CharField(max_length=30)
    location = models.ForeignKey('locations.Location', on_delete=models.PROTECT, related_name='qc_entries')
    party = models.ForeignKey(
        'parties.Party', on_delete=models.SET_NULL, null=True, blank=True, related_name='qc_entries'
    )
    source_type = models.CharField(max_length=20, choices=SOURCE_CHOICES, blank=True, null=True)
    remarks = models.TextField(blank=True, null=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='PENDING')
    attachment_urls = models.JSONField(default=list, blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='created_qc_entries'
    )
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='approved_qc_entries'
    )
    approved_at = models.DateTimeField(null=True, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.qc_no

    @property
    def has_decisions(self):
        return self.items.filter(is_approved__isnull=False).exists()

    class Meta:
        db_table = 'qc_entries'
        ordering = ['-created_at', '-id']
        verbose_name_plural = 'QC entries'
        constraints = [
            models.UniqueConstraint(fields=['location', 'qc_no'], name='uniq_qc_no_per_location'),
        ]
        indexes = [
            models.Index(fields=['location', 'status'], name='idx_qc_location_status'),
        ]


class QcItem(models.Model):
    """Decision on one inward line; is_approved stays null until decided"""
    qc_entry = models.ForeignKey(QcEntry, on_delete=models.CASCADE, related_name='items')
    inward_line = models.ForeignKey('inventory.InwardLine', on_delete=models.PROTECT, related_name='qc_items')
    is_approved = models.BooleanField(null=True, blank=True)
    remarks = models.TextField(blank=True, null=True)
    decided_at = models.DateTimeField(null=True, blank=True)

    def __str__(self):
        return f"{self.qc_entry.qc_no} - {self.inward_line.item}"

    class Meta:
        db_table = 'qc_items'
        ordering = ['id']
        constraints = [
            models.UniqueConstraint(fields=['qc_entry', 'inward_line'], name='uniq_qc_inward_line'),
        ]
