from django.contrib import admin
from .models import PurchaseIndent, PurchaseIndentItem, PurchaseOrder, PurchaseOrderItem


class PurchaseIndentItemInline(admin.TabularInline):
    model = PurchaseIndentItem
    extra = 0
    fields = ['item', 'remarks']
    raw_id_fields = ['item']


@admin.register(PurchaseIndent)
class PurchaseIndentAdmin(admin.ModelAdmin):
    list_display = ['pi_no', 'type', 'status', 'location', 'created_by', 'approved_by', 'is_active', 'created_at']
    list_filter = ['status', 'type', 'location', 'is_active']
    search_fields = ['pi_no', 'remarks']
    ordering = ['-created_at']
    inlines = [PurchaseIndentItemInline]
    readonly_fields = ['created_at', 'updated_at', 'approved_at']


class PurchaseOrderItemInline(admin.TabularInline):
    model = PurchaseOrderItem
    extra = 0
    fields = ['purchase_indent_item', 'rate']
    raw_id_fields = ['purchase_indent_item']


@admin.register(PurchaseOrder)
class PurchaseOrderAdmin(admin.ModelAdmin):
    list_display = ['po_no', 'vendor', 'status', 'gst_type', 'get_total', 'location', 'is_active', 'created_at']
    list_filter = ['status', 'gst_type', 'location', 'is_active']
    search_fields = ['po_no', 'quotation_no', 'vendor__name']
    ordering = ['-created_at']
    inlines = [PurchaseOrderItemInline]
    readonly_fields = ['created_at', 'updated_at', 'approved_at']

    def get_total(self, obj):
        return f"₹{obj.get_total():.2f}"
    get_total.short_description = 'Total'
