from django.conf import settings
from django.db import models
from django.utils import timezone


class Inward(models.Model):
    """Receipt of items at a location (from a PO, an outward return or a job work)"""
    STATUS_CHOICES = [
        ('DRAFT', 'Draft'),
        ('SUBMITTED', 'Submitted'),
    ]

    inward_no = models.CharField(max_length=30)
    inward_date = models.DateField(default=timezone.localdate)
    location = models.ForeignKey('locations.Location', on_delete=models.PROTECT, related_name='inwards')
    vendor = models.ForeignKey(
        'parties.Party', on_delete=models.SET_NULL, null=True, blank=True, related_name='inwards'
    )
    remarks = models.TextField(blank=True, null=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='DRAFT')
    attachment_urls = models.JSONField(default=list, blank=True)
    submitted_at = models.DateTimeField(null=True, blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='inwards'
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.inward_no

    class Meta:
        db_table = 'inwards'
        ordering = ['-inward_date', '-id']
        constraints = [
            models.UniqueConstraint(fields=['location', 'inward_no'], name='uniq_inward_no_per_location'),
        ]
        indexes = [
            models.Index(fields=['location', 'status'], name='idx_inward_location_status'),
        ]


class InwardLine(models.Model):
    SOURCE_CHOICES = [
        ('PO', 'Purchase Order'),
        ('OUTWARD_RETURN', 'Outward Return'),
        ('JOB_WORK', 'Job Work'),
    ]

    inward = models.ForeignKey(Inward, on_delete=models.CASCADE, related_name='lines')
    item = models.ForeignKey('catalog.Item', on_delete=models.PROTECT, related_name='inward_lines')
    quantity = models.PositiveIntegerField(default=1)
    source_type = models.CharField(max_length=20, choices=SOURCE_CHOICES)
    source_ref_id = models.IntegerField(null=True, blank=True)  # PO / outward / job work id
    remarks = models.TextField(blank=True, null=True)
    # Item details as they were when received
    item_type_name = models.CharField(max_length=150, blank=True, null=True)
    material_name = models.CharField(max_length=150, blank=True, null=True)
    drawing_no = models.CharField(max_length=100, blank=True, null=True)
    revision_no = models.CharField(max_length=50, blank=True, null=True)
    rate = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    gst_percent = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    is_qc_pending = models.BooleanField(default=False)
    is_qc_approved = models.BooleanField(null=True, blank=True)

    def __str__(self):
        return f"{self.inward.inward_no} - {self.item}"

    class Meta:
        db_table = 'inward_lines'
        ordering = ['id']
        constraints = [
            models.UniqueConstraint(fields=['inward', 'item'], name='uniq_inward_item'),
        ]
        indexes = [
            models.Index(fields=['is_qc_pending'], name='idx_inward_line_qc_pending'),
            models.Index(fields=['source_type', 'source_ref_id'], name='idx_inward_line_source'),
        ]


class Outward(models.Model):
    """Items sent out to a party"""
    outward_no = models.CharField(max_length=30)
    outward_date = models.DateField(default=timezone.localdate)
    location = models.ForeignKey('locations.Location', on_delete=models.PROTECT, related_name='outwards')
    party = models.ForeignKey('parties.Party', on_delete=models.PROTECT, related_name='outwards')
    remarks = models.TextField(blank=True, null=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='outwards'
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.outward_no

    class Meta:
        db_table = 'outwards'
        ordering = ['-outward_date', '-id']
        constraints = [
            models.UniqueConstraint(fields=['location', 'outward_no'], name='uniq_outward_no_per_location'),
        ]


class OutwardLine(models.Model):
    outward = models.ForeignKey(Outward, on_delete=models.CASCADE, related_name='lines')
    item = models.ForeignKey('catalog.Item', on_delete=models.PROTECT, related_name='outward_lines')
    quantity = models.PositiveIntegerField(default=1)
    remarks = models.TextField(blank=True, null=True)

    def __str__(self):
        return f"{self.outward.outward_no} - {self.item}"

    class Meta:
        db_table = 'outward_lines'
        ordering = ['id']


class JobWork(models.Model):
    """Items sent to a party for machining, repair or modification"""
    STATUS_CHOICES = [
        ('PENDING', 'Pending'),
        ('IN_TRANSIT', 'In Transit'),
        ('COMPLETED', 'Completed'),
    ]

    job_work_no = models.CharField(max_length=30)
    location = models.ForeignKey('locations.Location', on_delete=models.PROTECT, related_name='job_works')
    to_party = models.ForeignKey('parties.Party', on_delete=models.PROTECT, related_name='job_works')
    description = models.TextField(blank=True, null=True)
    remarks = models.TextField(blank=True, null=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='PENDING')
    attachment_urls = models.JSONField(default=list, blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='job_works'
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.job_work_no

    class Meta:
        db_table = 'job_works'
        ordering = ['-created_at', '-id']
        constraints = [
            models.UniqueConstraint(fields=['location', 'job_work_no'], name='uniq_job_work_no_per_location'),
        ]
        indexes = [
            models.Index(fields=['location', 'status'], name='idx_job_work_location_status'),
        ]


class JobWorkItem(models.Model):
    job_work = models.ForeignKey(JobWork, on_delete=models.CASCADE, related_name='items')
    item = models.ForeignKey('catalog.Item', on_delete=models.PROTECT, related_name='job_work_items')
    rate = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    gst_percent = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    remarks = models.TextField(blank=True, null=True)

    def __str__(self):
        return f"{self.job_work.job_work_no} - {self.item}"

    class Meta:
        db_table = 'job_work_items'
        ordering = ['id']
        constraints = [
            models.UniqueConstraint(fields=['job_work', 'item'], name='uniq_job_work_item'),
        ]
