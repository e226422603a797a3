from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import User, UserPermission, UserLocationAccess, Setting, AppSettings, AuditLog


class UserPermissionInline(admin.StackedInline):
    model = UserPermission
    can_delete = False
    extra = 0


class UserLocationAccessInline(admin.TabularInline):
    model = UserLocationAccess
    extra = 0


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ['username', 'first_name', 'last_name', 'role', 'default_location', 'is_active', 'date_joined']
    list_filter = ['role', 'is_active', 'is_superuser', 'date_joined']
    search_fields = ['username', 'email', 'first_name', 'last_name', 'mobile_number']
    ordering = ['username']
    inlines = [UserPermissionInline, UserLocationAccessInline]
    fieldsets = BaseUserAdmin.fieldsets + (
        ('DPMS', {'fields': ('role', 'mobile_number', 'avatar', 'default_company', 'default_location')}),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ('DPMS', {'fields': ('role', 'mobile_number')}),
    )


@admin.register(Setting)
class SettingAdmin(admin.ModelAdmin):
    list_display = ['key', 'value', 'updated_at']
    search_fields = ['key', 'description']
    ordering = ['key']
    readonly_fields = ['updated_at']


@admin.register(AppSettings)
class AppSettingsAdmin(admin.ModelAdmin):
    list_display = ['software_name', 'primary_color', 'support_email', 'support_phone', 'updated_at']
    readonly_fields = ['updated_at']


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ['user', 'action', 'model_name', 'object_reference', 'location', 'ip_address', 'created_at']
    list_filter = ['action', 'model_name', 'created_at']
    search_fields = ['user__username', 'model_name', 'object_id', 'object_reference']
    ordering = ['-created_at']
    readonly_fields = ['user', 'action', 'model_name', 'object_id', 'object_name', 'object_reference',
                       'location', 'changes', 'ip_address', 'created_at']
