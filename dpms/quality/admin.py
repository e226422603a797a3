from django.contrib import admin
from .models import QcEntry, QcItem


class QcItemInline(admin.TabularInline):
    model = QcItem
    extra = 0
    fields = ['inward_line', 'is_approved', 'remarks', 'decided_at']
    raw_id_fields = ['inward_line']
    readonly_fields = ['decided_at']


@admin.register(QcEntry)
class QcEntryAdmin(admin.ModelAdmin):
    list_display = ['qc_no', 'location', 'party', 'source_type', 'status', 'created_by', 'approved_by', 'is_active']
    list_filter = ['status', 'source_type', 'location', 'is_active']
    search_fields = ['qc_no', 'remarks', 'party__name']
    inlines = [QcItemInline]
    readonly_fields = ['created_at', 'updated_at', 'approved_at']
