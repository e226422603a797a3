from django.contrib import admin
from .models import ItemType, Material, OwnerType, ItemStatus, Item, ItemChangeLog


class MasterAdmin(admin.ModelAdmin):
    list_display = ['name', 'is_active', 'created_at']
    list_filter = ['is_active']
    search_fields = ['name']


admin.site.register(ItemType, MasterAdmin)
admin.site.register(Material, MasterAdmin)
admin.site.register(OwnerType, MasterAdmin)
admin.site.register(ItemStatus, MasterAdmin)


class ItemChangeLogInline(admin.TabularInline):
    model = ItemChangeLog
    extra = 0
    fields = ['old_name', 'new_name', 'old_revision', 'new_revision', 'change_type', 'is_reverted', 'created_by', 'created_at']
    readonly_fields = fields


@admin.register(Item)
class ItemAdmin(admin.ModelAdmin):
    list_display = ['main_part_name', 'current_name', 'item_type', 'drawing_no', 'location', 'current_process', 'is_active']
    list_filter = ['current_process', 'item_type', 'material', 'owner_type', 'status', 'location', 'is_active']
    search_fields = ['main_part_name', 'current_name', 'drawing_no']
    readonly_fields = ['created_at', 'updated_at']
    inlines = [ItemChangeLogInline]


@admin.register(ItemChangeLog)
class ItemChangeLogAdmin(admin.ModelAdmin):
    list_display = ['item', 'old_name', 'new_name', 'change_type', 'is_reverted', 'created_by', 'created_at']
    list_filter = ['change_type', 'is_reverted']
    search_fields = ['item__main_part_name', 'old_name', 'new_name']
