from django.contrib import admin
from .models import Inward, InwardLine, Outward, OutwardLine, JobWork, JobWorkItem


class InwardLineInline(admin.TabularInline):
    model = InwardLine
    extra = 0
    fields = ['item', 'quantity', 'source_type', 'source_ref_id', 'rate', 'gst_percent', 'is_qc_pending', 'is_qc_approved']
    raw_id_fields = ['item']


@admin.register(Inward)
class InwardAdmin(admin.ModelAdmin):
    list_display = ['inward_no', 'inward_date', 'location', 'vendor', 'status', 'created_by', 'is_active']
    list_filter = ['status', 'location', 'inward_date', 'is_active']
    search_fields = ['inward_no', 'remarks', 'vendor__name']
    inlines = [InwardLineInline]
    readonly_fields = ['created_at', 'updated_at', 'submitted_at']


class OutwardLineInline(admin.TabularInline):
    model = OutwardLine
    extra = 0
    fields = ['item', 'quantity', 'remarks']
    raw_id_fields = ['item']


@admin.register(Outward)
class OutwardAdmin(admin.ModelAdmin):
    list_display = ['outward_no', 'outward_date', 'location', 'party', 'created_by', 'is_active']
    list_filter = ['location', 'outward_date', 'is_active']
    search_fields = ['outward_no', 'remarks', 'party__name']
    inlines = [OutwardLineInline]
    readonly_fields = ['created_at', 'updated_at']


class JobWorkItemInline(admin.TabularInline):
    model = JobWorkItem
    extra = 0
    fields = ['item', 'rate', 'gst_percent', 'remarks']
    raw_id_fields = ['item']


@admin.register(JobWork)
class JobWorkAdmin(admin.ModelAdmin):
    list_display = ['job_work_no', 'location', 'to_party', 'status', 'created_by', 'is_active', 'created_at']
    list_filter = ['status', 'location', 'is_active']
    search_fields = ['job_work_no', 'description', 'to_party__name']
    inlines = [JobWorkItemInline]
    readonly_fields = ['created_at', 'updated_at']
