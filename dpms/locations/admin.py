from django.contrib import admin
from .models import Company, Location


class LocationInline(admin.TabularInline):
    model = Location
    extra = 0


@admin.register(Company)
class CompanyAdmin(admin.ModelAdmin):
    list_display = ['name', 'gst_no', 'city', 'state', 'contact_person', 'contact_number', 'is_active', 'created_at']
    list_filter = ['is_active', 'state', 'created_at']
    search_fields = ['name', 'gst_no', 'city', 'contact_person']
    ordering = ['name']
    inlines = [LocationInline]


@admin.register(Location)
class LocationAdmin(admin.ModelAdmin):
    list_display = ['name', 'company', 'is_active', 'created_at']
    list_filter = ['is_active', 'company', 'created_at']
    search_fields = ['name', 'company__name']
    ordering = ['company__name', 'name']
