from django.db import models

from dpms.core.validators import gst_validator, phone_validator, pincode_validator


class Company(models.Model):
    """Legal entity that owns one or more locations"""
    name = models.CharField(max_length=200, unique=True)
    address = models.TextField(blank=True, null=True)
    gst_no = models.CharField(max_length=15, blank=True, null=True, validators=[gst_validator])
    gst_date = models.DateField(blank=True, null=True)
    state = models.CharField(max_length=100, blank=True, null=True)
    city = models.CharField(max_length=100, blank=True, null=True)
    pincode = models.CharField(max_length=6, blank=True, null=True, validators=[pincode_validator])
    contact_person = models.CharField(max_length=150, blank=True, null=True)
    contact_number = models.CharField(max_length=10, blank=True, null=True, validators=[phone_validator])
    logo = models.ImageField(upload_to='company-logos/', blank=True, null=True)
    use_as_party = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'companies'
        ordering = ['name']
        verbose_name_plural = 'companies'


class Location(models.Model):
    """Plant, store or yard belonging to a company; documents are numbered per location"""
    name = models.CharField(max_length=200)
    company = models.ForeignKey(Company, on_delete=models.PROTECT, related_name='locations')
    address = models.TextField(blank=True, null=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.company.name} - {self.name}"

    class Meta:
        db_table = 'locations'
        ordering = ['company__name', 'name']
        unique_together = [['company', 'name']]
