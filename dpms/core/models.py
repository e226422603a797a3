from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Application user with role and default working location"""
    ROLE_CHOICES = [
        ('QC_ADMIN', 'Admin'),
        ('QC_MANAGER', 'Manager'),
        ('QC_USER', 'User'),
    ]

    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default='QC_USER')
    mobile_number = models.CharField(max_length=20, blank=True, null=True)
    avatar = models.ImageField(upload_to='avatars/', blank=True, null=True)
    default_company = models.ForeignKey(
        'locations.Company', on_delete=models.SET_NULL, null=True, blank=True, related_name='default_users'
    )
    default_location = models.ForeignKey(
        'locations.Location', on_delete=models.SET_NULL, null=True, blank=True, related_name='default_users'
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'users'


class UserPermission(models.Model):
    """Granular feature flags for a user. Admin role bypasses these."""
    NAVIGATION_CHOICES = [
        ('VERTICAL', 'Vertical'),
        ('HORIZONTAL', 'Horizontal'),
    ]

    FLAG_FIELDS = [
        'view_dashboard', 'view_master',
        'manage_company', 'manage_location', 'manage_party',
        'manage_item_type', 'manage_material', 'manage_owner_type', 'manage_item_status', 'manage_item',
        'view_pi', 'create_pi', 'edit_pi', 'approve_pi',
        'view_po', 'create_po', 'edit_po', 'approve_po',
        'view_inward', 'create_inward', 'edit_inward',
        'view_qc', 'create_qc', 'edit_qc', 'approve_qc',
        'view_movement', 'create_movement',
        'manage_changes', 'revert_changes',
        'view_reports', 'manage_users', 'access_settings',
    ]

    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='permission')

    view_dashboard = models.BooleanField(default=True)
    view_master = models.BooleanField(default=False)
    manage_company = models.BooleanField(default=False)
    manage_location = models.BooleanField(default=False)
    manage_party = models.BooleanField(default=False)
    manage_item_type = models.BooleanField(default=False)
    manage_material = models.BooleanField(default=False)
    manage_owner_type = models.BooleanField(default=False)
    manage_item_status = models.BooleanField(default=False)
    manage_item = models.BooleanField(default=False)

    view_pi = models.BooleanField(default=False)
    create_pi = models.BooleanField(default=False)
    edit_pi = models.BooleanField(default=False)
    approve_pi = models.BooleanField(default=False)

    view_po = models.BooleanField(default=False)
    create_po = models.BooleanField(default=False)
    edit_po = models.BooleanField(default=False)
    approve_po = models.BooleanField(default=False)

    view_inward = models.BooleanField(default=False)
    create_inward = models.BooleanField(default=False)
    edit_inward = models.BooleanField(default=False)

    view_qc = models.BooleanField(default=False)
    create_qc = models.BooleanField(default=False)
    edit_qc = models.BooleanField(default=False)
    approve_qc = models.BooleanField(default=False)

    view_movement = models.BooleanField(default=False)
    create_movement = models.BooleanField(default=False)

    manage_changes = models.BooleanField(default=False)
    revert_changes = models.BooleanField(default=False)

    view_reports = models.BooleanField(default=False)
    manage_users = models.BooleanField(default=False)
    access_settings = models.BooleanField(default=False)

    navigation_layout = models.CharField(max_length=20, choices=NAVIGATION_CHOICES, default='VERTICAL')
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Permissions for {self.user.username}"

    def as_dict(self):
        data = {flag: getattr(self, flag) for flag in self.FLAG_FIELDS}
        data['navigation_layout'] = self.navigation_layout
        return data

    class Meta:
        db_table = 'user_permissions'


class UserLocationAccess(models.Model):
    """Company/location pairs a non-admin user may work in"""
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='location_access')
    company = models.ForeignKey('locations.Company', on_delete=models.CASCADE, related_name='user_access')
    location = models.ForeignKey('locations.Location', on_delete=models.CASCADE, related_name='user_access')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.user.username} @ {self.location}"

    class Meta:
        db_table = 'user_location_access'
        unique_together = [['user', 'company', 'location']]


class Setting(models.Model):
    """System settings"""
    key = models.CharField(max_length=100, unique=True)
    value = models.TextField()
    description = models.TextField(blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.key

    class Meta:
        db_table = 'settings'


class AppSettings(models.Model):
    """Branding and support details shown by the client. Single row."""
    software_name = models.CharField(max_length=100, default='DPMS v1.0')
    primary_color = models.CharField(max_length=20, default='#3b82f6')
    support_email = models.EmailField(blank=True, null=True)
    support_phone = models.CharField(max_length=20, blank=True, null=True)
    address = models.TextField(blank=True, null=True)
    website = models.CharField(max_length=255, blank=True, null=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.software_name

    @classmethod
    def load(cls):
        obj = cls.objects.order_by('id').first()
        if obj is None:
            obj = cls.objects.create()
        return obj

    class Meta:
        db_table = 'app_settings'


class AuditLog(models.Model):
    """Audit log for critical operations"""
    ACTION_CHOICES = [
        ('create', 'Create'),
        ('update', 'Update'),
        ('delete', 'Delete'),
        ('approve', 'Approve'),
        ('reject', 'Reject'),
        ('submit', 'Submit'),
        ('status_change', 'Status Change'),
        ('item_change', 'Item Changed'),
        ('item_revert', 'Item Change Reverted'),
        ('import', 'Import'),
        ('permission_change', 'Permission Change'),
        ('system_reset', 'System Reset'),
        ('login', 'Login'),
    ]

    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='audit_logs')
    action = models.CharField(max_length=50, choices=ACTION_CHOICES)
    model_name = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100)
    object_name = models.CharField(max_length=255, blank=True, null=True, help_text="Human-readable name of the object (e.g., item name, PO number)")
    object_reference = models.CharField(max_length=255, blank=True, null=True, help_text="Reference identifier (e.g., PI number, inward number)")
    location = models.ForeignKey('locations.Location', on_delete=models.SET_NULL, null=True, blank=True, related_name='audit_logs')
    changes = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['-created_at'], name='idx_audit_created'),
            models.Index(fields=['action'], name='idx_audit_action'),
            models.Index(fields=['model_name'], name='idx_audit_model'),
            models.Index(fields=['object_reference'], name='idx_audit_reference'),
        ]
