from django.db import models

from dpms.core.validators import phone_validator


class Party(models.Model):
    """Vendor or job-work party that items are bought from or sent to"""
    name = models.CharField(max_length=200)
    party_code = models.CharField(max_length=50, unique=True, blank=True, null=True)
    contact_person = models.CharField(max_length=200, blank=True, null=True)
    phone = models.CharField(max_length=10, blank=True, null=True, validators=[phone_validator])
    email = models.EmailField(blank=True, null=True)
    address = models.TextField(blank=True, null=True)
    gst_no = models.CharField(max_length=15, blank=True, null=True)
    company = models.ForeignKey(
        'locations.Company', on_delete=models.SET_NULL, null=True, blank=True, related_name='parties'
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'parties'
        ordering = ['name']
        verbose_name_plural = 'parties'
        indexes = [
            models.Index(fields=['name'], name='idx_party_name'),
            models.Index(fields=['is_active'], name='idx_party_active'),
        ]
